"""
Message Router - inbound message gating and dispatch

Every inbound message from every instance passes through here. Status
broadcasts and the bot's own messages are dropped, the middleware chain
decides whether this instance may act on it, and commands go to their
registered handler (or the default handler).
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

from .middlewares import instance_check_middleware, maintenance_middleware
from .types import (
    STATUS_BROADCAST_JID, CommandHandler, InboundMessage, MessageDisposition, Middleware
)
from .utils import is_owner, parse_message

if TYPE_CHECKING:
    from bloom.context import BloomContext
    from bloom.managers.connection_manager import ConnectionSupervisor

ActiveInstanceProvider = Callable[[], Awaitable[str]]


class MessageRouter:
    """
    Routes inbound messages to command handlers

    Responsibilities:
    - Drop status broadcasts and own messages
    - Run the gating middlewares (maintenance, active-instance check)
    - Dispatch commands, owner-only ones only for owners
    - Reply through the receiving instance's session
    """

    def __init__(self,
                 context: 'BloomContext',
                 supervisor: 'ConnectionSupervisor',
                 logger=None,
                 middlewares: Optional[List[Middleware]] = None,
                 active_instance_provider: Optional[ActiveInstanceProvider] = None):
        self.context = context
        self.supervisor = supervisor
        self.active_instance_provider = active_instance_provider
        self.logger = logger or context.get_logger("messages")
        self.prefix = context.settings.prefix
        self.owner_jids = context.settings.owner_jids
        self.middlewares: List[Middleware] = (
            list(middlewares) if middlewares is not None else [maintenance_middleware, instance_check_middleware]
        )
        self._commands: Dict[str, CommandHandler] = {}
        self._owner_only: Dict[str, bool] = {}
        self._default_handler: Optional[CommandHandler] = None

        self.supervisor.set_message_handler(self.handle)

    def register_command(self, name: str, handler: CommandHandler, owner_only: bool = False) -> None:
        self._commands[name.lower()] = handler
        self._owner_only[name.lower()] = owner_only

    def set_default_handler(self, handler: CommandHandler) -> None:
        """Handler for every allowed message no registered command claims (feature modules)"""
        self._default_handler = handler

    def add_middleware(self, middleware: Middleware) -> None:
        self.middlewares.append(middleware)

    def set_active_instance_provider(self, provider: ActiveInstanceProvider) -> None:
        """Resolves (and repairs) the active instance when the stored pointer is unusable"""
        self.active_instance_provider = provider

    def is_owner(self, sender: str) -> bool:
        return is_owner(sender, self.owner_jids)

    async def reply(self, message: InboundMessage, text: str) -> Any:
        try:
            return await self.supervisor.send(
                message.instance_id, message.chat_id, {"text": text, "quoted": message.message_id}
            )
        except Exception as e:
            self.logger.error(f"❌ [MESSAGES] Reply from {message.instance_id} to {message.chat_id} failed: {e}")
            return None

    async def handle(self, instance_id: str, payload: Dict[str, Any]) -> MessageDisposition:
        """
        Process one driver payload received by instance_id

        Returns:
            MessageDisposition describing the outcome
        """
        message = parse_message(instance_id, payload, self.prefix)
        if not message.chat_id or message.chat_id == STATUS_BROADCAST_JID or message.from_me:
            return MessageDisposition.IGNORED

        for middleware in self.middlewares:
            if not await middleware(self, message):
                self.logger.debug(
                    f"🔇 [MESSAGES] {instance_id}: {getattr(middleware, '__name__', 'middleware')} blocked message"
                )
                return MessageDisposition.BLOCKED

        handler = self._commands.get(message.command) if message.command else None
        if handler is not None and self._owner_only.get(message.command) and not self.is_owner(message.sender):
            self.logger.warning(f"⚠️ [MESSAGES] {instance_id}: {message.sender} is not allowed to run {message.command}")
            return MessageDisposition.BLOCKED
        if handler is None:
            handler = self._default_handler
        if handler is None:
            return MessageDisposition.UNHANDLED

        async def reply(text: str) -> Any:
            return await self.reply(message, text)

        try:
            await handler(message, reply)
        except Exception as e:
            self.logger.error(f"❌ [MESSAGES] {instance_id}: handler for {message.command or 'message'} failed: {e}")
        return MessageDisposition.DISPATCHED
