"""
Connection Supervisor - per-instance reconnect state machine

Wraps the transport driver for every instance:

    Idle -> Connecting -> Connected
                 |            |
                 v            v (transient close)
             Terminated <- Backoff -> Connecting ...

A logout is terminal. Transient closes retry with exponential backoff until
the retry budget is spent.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from bloom.context import BloomContext
from bloom.errors import (
    ConnectionAlreadyActiveError, ConnectionSupervisorError,
    LoggedOutError, ReconnectExhaustedError
)
from bloom.lib.config import InstanceDescriptor
from bloom.managers.store_manager import utcnow
from .types import (
    ConnectionDriver, ConnectionResult, ConnectionState, ConnectionStatus,
    DisconnectEvent, DisconnectReason, DriverCallbacks, DriverSession, FatalHandler, PostConnectTask
)
from .utils import compute_backoff_delay

QrHandler = Callable[[str, str], Awaitable[None]]
MessageHandler = Callable[[str, Dict[str, Any]], Awaitable[Any]]
CredentialsHandler = Callable[[InstanceDescriptor, Dict[str, Any]], Awaitable[Any]]
ActiveInstanceProvider = Callable[[], Awaitable[str]]
Announcer = Callable[[InstanceDescriptor], Awaitable[Any]]


class ConnectionSupervisor:
    """
    Supervises one transport connection per instance

    Responsibilities:
    - Guard against overlapping connect attempts (active flag)
    - Resolve start() waiters when the driver reports connected
    - Schedule reconnects with capped exponential backoff
    - Run post-connect tasks and the one-time online announcement
    - Route inbound messages, QR challenges and credential updates
    """

    def __init__(self,
                 context: BloomContext,
                 driver: ConnectionDriver,
                 logger=None,
                 fatal_handler: Optional[FatalHandler] = None):
        """
        Initialize Connection Supervisor

        Args:
            context: Process context (settings, scheduler, connection states)
            driver: Transport adapter used for every instance
            logger: Logger (defaults to the context's 'connection' logger)
            fatal_handler: Called with LoggedOutError / ReconnectExhaustedError
        """
        self.context = context
        self.driver = driver
        self.logger = logger or context.get_logger("connection")
        self.settings = context.settings.reconnect
        self.scheduler = context.scheduler
        self.states: Dict[str, ConnectionState] = context.connection_states

        self.fatal_handler: Optional[FatalHandler] = fatal_handler
        self.qr_handler: Optional[QrHandler] = None
        self.message_handler: Optional[MessageHandler] = None
        self.credentials_handler: Optional[CredentialsHandler] = None
        self.active_instance_provider: Optional[ActiveInstanceProvider] = None
        self.announcer: Optional[Announcer] = None
        self._post_connect_tasks: List[PostConnectTask] = []

        self._sessions: Dict[str, DriverSession] = {}
        self._descriptors: Dict[str, InstanceDescriptor] = {}
        self._credentials: Dict[str, Optional[Dict[str, Any]]] = {}
        self._waiters: Dict[str, asyncio.Future] = {}
        self._generations: Dict[str, int] = {}
        self._background: Set[asyncio.Task] = set()

    # =================== WIRING ===================

    def add_post_connect_task(self, task: PostConnectTask) -> None:
        """Register a coroutine function run (concurrently with the others) after every connect"""
        self._post_connect_tasks.append(task)

    def set_qr_handler(self, handler: QrHandler) -> None:
        self.qr_handler = handler

    def set_message_handler(self, handler: MessageHandler) -> None:
        self.message_handler = handler

    def set_credentials_handler(self, handler: CredentialsHandler) -> None:
        self.credentials_handler = handler

    def set_active_instance_provider(self, provider: ActiveInstanceProvider) -> None:
        self.active_instance_provider = provider

    def set_announcer(self, announcer: Announcer) -> None:
        self.announcer = announcer

    # =================== QUERIES ===================

    def get_state(self, instance_id: str) -> Optional[ConnectionState]:
        return self.states.get(instance_id)

    def is_active(self, instance_id: str) -> bool:
        """True while a connect attempt or live session is in flight"""
        state = self.states.get(instance_id)
        return bool(state and state.active)

    def is_connected(self, instance_id: str) -> bool:
        state = self.states.get(instance_id)
        return bool(state and state.status == ConnectionStatus.CONNECTED)

    def get_session(self, instance_id: str) -> Optional[DriverSession]:
        return self._sessions.get(instance_id)

    def compute_backoff_delay(self, attempts: int) -> float:
        return compute_backoff_delay(attempts, self.settings.base_delay, self.settings.max_delay)

    def connected_ids(self) -> List[str]:
        return [i for i in self.context.registry.ids() if self.is_connected(i)]

    # =================== LIFECYCLE ===================

    async def start(self,
                    descriptor: InstanceDescriptor,
                    credentials: Optional[Dict[str, Any]] = None) -> asyncio.Future:
        """
        Start connecting descriptor's instance

        Args:
            descriptor: Instance to connect
            credentials: Session credentials, or None for QR pairing

        Returns:
            Future resolving to a ConnectionResult when the driver reports
            connected (across reconnects), or failing with LoggedOutError /
            ReconnectExhaustedError / the driver's exception

        Raises:
            ConnectionAlreadyActiveError: If an attempt or session is already in flight
        """
        state = self._get_or_create_state(descriptor.id)
        if state.active:
            raise ConnectionAlreadyActiveError(descriptor.id)

        self._descriptors[descriptor.id] = descriptor
        self._credentials[descriptor.id] = credentials
        waiter = self._waiters.get(descriptor.id)
        if waiter is None or waiter.done():
            waiter = asyncio.get_running_loop().create_future()
            self._waiters[descriptor.id] = waiter

        try:
            await self._attempt(descriptor)
        except Exception as e:
            self._fail_waiter(descriptor.id, e)
            raise
        return waiter

    async def stop(self, instance_id: str) -> None:
        """Cancel any pending retry, close the session and go Idle"""
        self.scheduler.cancel(self._reconnect_key(instance_id))
        self._bump_generation(instance_id)

        session = self._sessions.pop(instance_id, None)
        if session is not None:
            try:
                await session.close()
            except Exception as e:
                self.logger.warning(f"⚠️ [CONNECTION] {instance_id}: error closing session: {e}")

        state = self.states.get(instance_id)
        if state is not None:
            state.active = False
            state.status = ConnectionStatus.IDLE

        waiter = self._waiters.pop(instance_id, None)
        if waiter is not None and not waiter.done():
            waiter.cancel()
        self.logger.info(f"⏹️ [CONNECTION] {instance_id}: stopped")

    async def stop_all(self) -> None:
        for instance_id in list(self.states):
            await self.stop(instance_id)
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def send(self, instance_id: str, target: str, payload: Dict[str, Any]) -> Any:
        """Send through instance_id's live session"""
        session = self._sessions.get(instance_id)
        if session is None or not self.is_connected(instance_id):
            raise ConnectionSupervisorError(instance_id, f"{instance_id} is not connected")
        return await session.send(target, payload)

    # =================== INTERNALS ===================

    def _reconnect_key(self, instance_id: str) -> str:
        return f"reconnect:{instance_id}"

    def _get_or_create_state(self, instance_id: str) -> ConnectionState:
        state = self.states.get(instance_id)
        if state is None:
            state = ConnectionState(instance_id=instance_id)
            self.states[instance_id] = state
        return state

    def _bump_generation(self, instance_id: str) -> int:
        generation = self._generations.get(instance_id, 0) + 1
        self._generations[instance_id] = generation
        return generation

    def _is_current(self, instance_id: str, generation: int) -> bool:
        return self._generations.get(instance_id) == generation

    async def _attempt(self, descriptor: InstanceDescriptor) -> None:
        instance_id = descriptor.id
        state = self._get_or_create_state(instance_id)
        # Flag goes up before the driver call so overlapping attempts are rejected
        state.active = True
        state.status = ConnectionStatus.CONNECTING
        state.last_attempt_at = utcnow()
        self.scheduler.cancel(self._reconnect_key(instance_id))
        generation = self._bump_generation(instance_id)

        self.logger.info(f"🔌 [CONNECTION] {instance_id}: connecting (attempt {state.attempt_count + 1})")
        try:
            session = await self.driver.connect(
                descriptor, self._credentials.get(instance_id), self._build_callbacks(descriptor, generation)
            )
        except Exception as e:
            state.active = False
            state.status = ConnectionStatus.IDLE
            state.last_error = str(e)
            self.logger.error(f"❌ [CONNECTION] {instance_id}: driver connect failed: {e}")
            raise

        if self._is_current(instance_id, generation):
            self._sessions[instance_id] = session
        else:
            # Stopped or dropped while the driver was connecting
            try:
                await session.close()
            except Exception as e:
                self.logger.warning(f"⚠️ [CONNECTION] {instance_id}: error closing stale session: {e}")

    def _build_callbacks(self, descriptor: InstanceDescriptor, generation: int) -> DriverCallbacks:
        instance_id = descriptor.id

        async def on_qr(qr: str) -> None:
            if not self._is_current(instance_id, generation):
                return
            if self.qr_handler:
                await self.qr_handler(instance_id, qr)
            else:
                self.logger.info(f"📱 [CONNECTION] {instance_id}: scan QR code to pair: {qr}")

        async def on_connected() -> None:
            if self._is_current(instance_id, generation):
                await self._handle_connected(descriptor)

        async def on_disconnected(event: DisconnectEvent) -> None:
            if self._is_current(instance_id, generation):
                await self._handle_disconnected(descriptor, event)

        async def on_message(message: Dict[str, Any]) -> None:
            if not self._is_current(instance_id, generation) or self.message_handler is None:
                return
            try:
                await self.message_handler(instance_id, message)
            except Exception as e:
                self.logger.error(f"❌ [CONNECTION] {instance_id}: message handler failed: {e}")

        async def on_credentials_update(credentials: Dict[str, Any]) -> None:
            self._credentials[instance_id] = credentials
            if self.credentials_handler:
                await self.credentials_handler(descriptor, credentials)

        return DriverCallbacks(
            on_qr=on_qr,
            on_connected=on_connected,
            on_disconnected=on_disconnected,
            on_message=on_message,
            on_credentials_update=on_credentials_update,
        )

    async def _handle_connected(self, descriptor: InstanceDescriptor) -> None:
        state = self._get_or_create_state(descriptor.id)
        state.status = ConnectionStatus.CONNECTED
        state.active = True
        state.attempt_count = 0
        state.last_error = None
        self.logger.info(f"✅ [CONNECTION] {descriptor.id}: connected")

        waiter = self._waiters.get(descriptor.id)
        if waiter is not None and not waiter.done():
            waiter.set_result(ConnectionResult(
                instance_id=descriptor.id, connected=True, status=ConnectionStatus.CONNECTED
            ))

        task = asyncio.ensure_future(self._run_post_connect(descriptor))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_post_connect(self, descriptor: InstanceDescriptor) -> None:
        if self._post_connect_tasks:
            results = await asyncio.gather(
                *(task(descriptor.id) for task in self._post_connect_tasks), return_exceptions=True
            )
            for task, result in zip(self._post_connect_tasks, results):
                if isinstance(result, Exception):
                    name = getattr(task, "__name__", repr(task))
                    self.logger.error(f"❌ [CONNECTION] {descriptor.id}: post-connect task {name} failed: {result}")

        await self._maybe_announce(descriptor)

    async def _maybe_announce(self, descriptor: InstanceDescriptor) -> None:
        state = self._get_or_create_state(descriptor.id)
        if state.announced or descriptor.id != self.context.primary_instance_id or self.announcer is None:
            return

        if self.active_instance_provider is not None:
            try:
                active_id = await self.active_instance_provider()
            except Exception as e:
                self.logger.warning(f"⚠️ [CONNECTION] {descriptor.id}: cannot read active instance: {e}")
                return
            if active_id != descriptor.id:
                self.logger.debug(f"🔇 [CONNECTION] {descriptor.id}: not the active instance, skipping announcement")
                return

        state.announced = True
        try:
            await self.announcer(descriptor)
        except Exception as e:
            self.logger.error(f"❌ [CONNECTION] {descriptor.id}: online announcement failed: {e}")

    async def _handle_disconnected(self, descriptor: InstanceDescriptor, event: DisconnectEvent) -> None:
        instance_id = descriptor.id
        state = self._get_or_create_state(instance_id)
        was_connected = state.status == ConnectionStatus.CONNECTED
        # The closed session is dead: its late callbacks are ignored and a
        # connect() still in flight closes what it returns
        self._bump_generation(instance_id)
        state.active = False
        state.last_error = event.message or event.reason.value
        self._sessions.pop(instance_id, None)

        if event.reason.is_terminal:
            state.status = ConnectionStatus.TERMINATED
            self.logger.error(f"🚫 [CONNECTION] {instance_id}: logged out, not reconnecting")
            await self._terminate(instance_id, LoggedOutError(instance_id))
            return

        if state.attempt_count >= self.settings.max_retries:
            state.status = ConnectionStatus.TERMINATED
            self.logger.error(f"🚫 [CONNECTION] {instance_id}: giving up after {state.attempt_count} retries")
            await self._terminate(instance_id, ReconnectExhaustedError(instance_id, state.attempt_count))
            return

        delay = self.compute_backoff_delay(state.attempt_count)
        state.attempt_count += 1
        state.status = ConnectionStatus.BACKOFF
        verb = "connection lost" if was_connected else "connection closed"
        self.logger.warning(
            f"🔄 [CONNECTION] {instance_id}: {verb} ({event.reason.value}), "
            f"retry {state.attempt_count}/{self.settings.max_retries} in {delay:.1f}s"
        )
        self.scheduler.arm(self._reconnect_key(instance_id), delay, lambda: self._retry(instance_id))

    async def _retry(self, instance_id: str) -> None:
        state = self.states.get(instance_id)
        descriptor = self._descriptors.get(instance_id)
        if state is None or descriptor is None or state.active:
            return

        try:
            await self._attempt(descriptor)
        except Exception as e:
            # A failing driver call counts as another transient close
            await self._handle_disconnected(descriptor, DisconnectEvent(
                reason=DisconnectReason.CONNECTION_CLOSED, message=str(e)
            ))

    async def _terminate(self, instance_id: str, error: Exception) -> None:
        self.scheduler.cancel(self._reconnect_key(instance_id))
        self._fail_waiter(instance_id, error)
        if self.fatal_handler is None:
            return
        try:
            result = self.fatal_handler(error)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.error(f"❌ [CONNECTION] {instance_id}: fatal handler failed: {e}")

    def _fail_waiter(self, instance_id: str, error: Exception) -> None:
        waiter = self._waiters.get(instance_id)
        if waiter is None or waiter.done():
            return
        waiter.set_exception(error)
        # Mark the exception retrieved when nobody is waiting any more
        waiter.add_done_callback(lambda f: f.cancelled() or f.exception())

