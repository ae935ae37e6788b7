"""
Startup Manager - brings bot instances online

Starts every registered instance in priority order (or all at once in
concurrent mode). One instance failing never stops the others; the caller
decides what zero successes means.
"""

import asyncio
from typing import Dict, List

from bloom.context import BloomContext
from bloom.errors import StartupTimeoutError
from bloom.lib.config import InstanceDescriptor
from bloom.managers.connection_manager import ConnectionSupervisor
from bloom.managers.credentials_manager import CredentialsManager
from .types import QrCallback, StartupResult, summarize_results


class StartupManager:
    """
    Orchestrates instance startup

    Responsibilities:
    - Prepare session directories
    - Resolve credentials for each instance
    - Hand each instance to the connection supervisor and bound the wait
    - Route QR challenges to registered callbacks
    - Report one StartupResult per instance, in priority order
    """

    def __init__(self,
                 context: BloomContext,
                 supervisor: ConnectionSupervisor,
                 credentials: CredentialsManager,
                 logger=None):
        """
        Initialize Startup Manager

        Args:
            context: Process context (registry, startup settings)
            supervisor: Connection supervisor that owns the transports
            credentials: Credential resolver for local/store/remote sessions
            logger: Logger (defaults to the context's 'startup' logger)
        """
        self.context = context
        self.supervisor = supervisor
        self.credentials = credentials
        self.settings = context.settings.startup
        self.logger = logger or context.get_logger("startup")
        self._qr_callbacks: Dict[str, List[QrCallback]] = {}
        self._last_sources: Dict[str, str] = {}

        self.supervisor.set_qr_handler(self._handle_qr)
        self.supervisor.set_credentials_handler(self.credentials.update)

    def register_qr_callback(self, instance_id: str, callback: QrCallback) -> None:
        """Receive QR challenges for instance_id (e.g. to render them in a terminal)"""
        self.context.registry.get(instance_id)
        self._qr_callbacks.setdefault(instance_id, []).append(callback)

    def ensure_session_dirs(self) -> List[str]:
        return self.credentials.ensure_session_dirs(self.context.registry.list())

    async def start_all(self) -> List[StartupResult]:
        """
        Start every registered instance

        Returns:
            One StartupResult per instance in priority order; never raises
            for a single instance failing
        """
        descriptors = self.context.registry.list()
        self.ensure_session_dirs()
        mode = "sequential" if self.settings.sequential_start else "concurrent"
        self.logger.info(f"🚀 [STARTUP] Starting {len(descriptors)} instances ({mode})")

        if self.settings.sequential_start:
            results = []
            for index, descriptor in enumerate(descriptors):
                results.append(await self._start_guarded(descriptor))
                if index < len(descriptors) - 1 and self.settings.inter_instance_delay > 0:
                    await asyncio.sleep(self.settings.inter_instance_delay)
        else:
            results = list(await asyncio.gather(*(self._start_guarded(d) for d in descriptors)))

        summary = summarize_results(results)
        if any(r.success for r in results):
            self.logger.info(f"🎯 [STARTUP] {summary}")
        else:
            self.logger.error(f"❌ [STARTUP] {summary}")
        return results

    async def start_instance(self, descriptor: InstanceDescriptor) -> bool:
        """
        Resolve credentials, connect and wait for 'connected'

        Returns:
            True once the instance is connected

        Raises:
            StartupTimeoutError: If not connected within connect_timeout (the
                attempt keeps running in the background)
            Exception: Whatever the supervisor or driver raised
        """
        credentials, source = await self.credentials.resolve(descriptor)
        self._last_sources[descriptor.id] = source.value

        waiter = await self.supervisor.start(descriptor, credentials)
        try:
            # Shielded: a timeout stops waiting without cancelling the attempt
            await asyncio.wait_for(asyncio.shield(waiter), timeout=self.settings.connect_timeout)
        except asyncio.TimeoutError:
            raise StartupTimeoutError(descriptor.id, self.settings.connect_timeout)
        return True

    async def _start_guarded(self, descriptor: InstanceDescriptor) -> StartupResult:
        self.logger.info(f"🔄 [STARTUP] Starting {descriptor.id} (priority {descriptor.priority})")
        try:
            await self.start_instance(descriptor)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"❌ [STARTUP] {descriptor.id} failed to start: {e}")
            return StartupResult(
                instance_id=descriptor.id, success=False, error=str(e),
                credential_source=self._last_sources.get(descriptor.id)
            )

        self.logger.info(f"✅ [STARTUP] {descriptor.id} started")
        return StartupResult(
            instance_id=descriptor.id, success=True,
            credential_source=self._last_sources.get(descriptor.id)
        )

    async def _handle_qr(self, instance_id: str, qr: str) -> None:
        callbacks = self._qr_callbacks.get(instance_id)
        if not callbacks:
            self.logger.info(f"📱 [STARTUP] {instance_id}: scan this QR code to pair: {qr}")
            return
        for callback in callbacks:
            try:
                await callback(instance_id, qr)
            except Exception as e:
                self.logger.error(f"❌ [STARTUP] {instance_id}: QR callback failed: {e}")
