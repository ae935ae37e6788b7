"""
Message Manager Package

Inbound message gating (maintenance mode, active-instance check) and
command dispatch.

Structure:
- main.py: MessageRouter
- middlewares.py: maintenance and instance-check middlewares
- types.py: InboundMessage, MessageDisposition and handler types
- utils.py: Payload, command and jid parsing
"""

from .main import MessageRouter
from .middlewares import (
    INSTANCE_SWITCH_COMMAND, format_maintenance_notice,
    maintenance_middleware, instance_check_middleware
)
from .types import InboundMessage, MessageDisposition, CommandHandler, Middleware, Reply
from .utils import normalize_jid, is_owner, parse_command, parse_message

__all__ = [
    'MessageRouter', 'INSTANCE_SWITCH_COMMAND', 'format_maintenance_notice',
    'maintenance_middleware', 'instance_check_middleware',
    'InboundMessage', 'MessageDisposition', 'CommandHandler', 'Middleware', 'Reply',
    'normalize_jid', 'is_owner', 'parse_command', 'parse_message',
]
