"""
Message Manager Type Definitions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .main import MessageRouter

STATUS_BROADCAST_JID = "status@broadcast"


class MessageDisposition(Enum):
    """What the router did with an inbound message"""
    IGNORED = "ignored"          # status broadcast, own message or empty
    BLOCKED = "blocked"          # a middleware stopped it
    DISPATCHED = "dispatched"    # handed to a command handler
    UNHANDLED = "unhandled"      # allowed through but nothing handles it


@dataclass(frozen=True)
class InboundMessage:
    """Driver-neutral view of one inbound chat message"""
    instance_id: str
    chat_id: str
    sender: str
    text: str = ""
    message_id: Optional[str] = None
    from_me: bool = False
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_command(self) -> bool:
        return self.command is not None


# Reply helper handed to command handlers: await reply("text")
Reply = Callable[[str], Awaitable[Any]]

# Command handler: (message, reply)
CommandHandler = Callable[[InboundMessage, Reply], Awaitable[Any]]

# Middleware: (router, message) -> continue?
Middleware = Callable[['MessageRouter', InboundMessage], Awaitable[bool]]
