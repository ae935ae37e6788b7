"""
Message Manager Utilities

Parsing helpers for driver payloads, commands and WhatsApp ids.
"""

from typing import Any, Dict, List, Optional, Tuple

from .types import InboundMessage


def normalize_jid(jid: str) -> str:
    """'2547@s.whatsapp.net', '2547:12@s.whatsapp.net' and '2547' all become '2547'"""
    user = (jid or "").split("@", 1)[0]
    return user.split(":", 1)[0].strip()


def is_owner(sender: str, owner_jids: List[str]) -> bool:
    user = normalize_jid(sender)
    return bool(user) and any(normalize_jid(owner) == user for owner in owner_jids)


def parse_command(text: str, prefix: str) -> Tuple[Optional[str], List[str]]:
    """
    Split '!bloom bot2' into ('bloom', ['bot2'])

    Returns:
        (None, []) when text does not start with prefix followed by a word
    """
    stripped = (text or "").strip()
    if not prefix or not stripped.startswith(prefix):
        return None, []
    parts = stripped[len(prefix):].split()
    if not parts:
        return None, []
    return parts[0].lower(), parts[1:]


def parse_message(instance_id: str, payload: Dict[str, Any], prefix: str) -> InboundMessage:
    """
    Build an InboundMessage from a driver payload

    Expected payload keys: chat_id, sender (defaults to chat_id), text,
    message_id, from_me.
    """
    chat_id = str(payload.get("chat_id") or "")
    text = str(payload.get("text") or "")
    command, args = parse_command(text, prefix)
    return InboundMessage(
        instance_id=instance_id,
        chat_id=chat_id,
        sender=str(payload.get("sender") or chat_id),
        text=text,
        message_id=payload.get("message_id"),
        from_me=bool(payload.get("from_me", False)),
        command=command,
        args=args,
        raw=payload,
    )
