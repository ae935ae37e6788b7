"""
Credentials Manager Utilities

Helpers for the local creds.json file and remote session tokens.
"""

import json
import os
from typing import Any, Dict, Optional

from bloom.lib.config import SESSION_TOKEN_MARKER

CREDS_FILENAME = "creds.json"


def parse_session_token(token: str, marker: str = SESSION_TOKEN_MARKER) -> Optional[str]:
    """
    Extract the remote id from a '<marker>~<remoteId>' token

    Args:
        token: Raw token from configuration
        marker: Expected token prefix

    Returns:
        Remote id, or None when the token is empty or malformed
    """
    if not token:
        return None
    prefix, sep, remote_id = token.strip().partition("~")
    if not sep or prefix != marker or not remote_id.strip():
        return None
    return remote_id.strip()


def parse_credentials(raw: str) -> Optional[Dict[str, Any]]:
    """JSON object from raw text, or None for anything else"""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def read_credentials_file(path: str) -> Optional[Dict[str, Any]]:
    """Read creds.json; missing, unreadable or non-object files count as absent"""
    if not os.path.isfile(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return parse_credentials(f.read())
    except (OSError, UnicodeDecodeError):
        return None


def write_credentials_file(path: str, credentials: Dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(credentials, f, indent=2)
    os.replace(tmp_path, path)
