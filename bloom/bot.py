"""
Bloom runtime

Wires the managers together and runs the whole multi-instance bot in one
event loop: store -> rotation settings -> startup -> rotation timer ->
status API, until SIGINT/SIGTERM.
"""

import asyncio
import signal
import sys
import time
from datetime import datetime, timezone
from typing import List, Optional, Set

import uvicorn

from bloom import __version__
from bloom.context import BloomContext
from bloom.errors import BloomError, ConfigurationError, ConnectionSupervisorError, LoggedOutError
from bloom.lib.config import BloomSettings, get_bloom_settings
from bloom.lib.config.loader import describe_settings
from bloom.managers.admin_manager import AdminManager
from bloom.managers.connection_manager import (
    ConnectionDriver, ConnectionStatus, ConnectionSupervisor, load_driver
)
from bloom.managers.credentials_manager import CredentialsManager
from bloom.managers.logging_manager import LoggingManager
from bloom.managers.message_manager import MessageRouter
from bloom.managers.notification_manager import NotificationManager
from bloom.managers.rotation_manager import RotationManager
from bloom.managers.startup_manager import StartupManager, StartupResult, summarize_results
from bloom.managers.store_manager import SessionStore, SqlAlchemySessionStore


class Bloom:
    """
    The multi-instance bot process

    Owns one BloomContext and every manager built on it. Tests inject an
    in-memory store and a scripted driver; production loads the driver from
    BLOOM_DRIVER and uses the SQLAlchemy store.
    """

    def __init__(self,
                 settings: BloomSettings,
                 store: Optional[SessionStore] = None,
                 driver: Optional[ConnectionDriver] = None,
                 logging_manager: Optional[LoggingManager] = None):
        self.settings = settings
        self.logging_manager = logging_manager or LoggingManager(
            bot_name=settings.notifications.bot_name, version=__version__
        )
        self.logger = self.logging_manager.get_combined_logger()
        for key, value in describe_settings(settings).items():
            self.logger.info(f"📋 [BLOOM] {key}: {value}")

        self.store = store or SqlAlchemySessionStore(
            settings.database_url, logger=self.logging_manager.get_manager_logger("store_manager")
        )
        self.context = BloomContext(settings, self.store, logging_manager=self.logging_manager)

        if driver is None:
            if not settings.driver_path:
                raise ConfigurationError("BLOOM_DRIVER is not set (expected 'package.module:factory')")
            driver = load_driver(settings.driver_path)
        self.driver = driver

        # Managers
        self.supervisor = ConnectionSupervisor(self.context, self.driver, fatal_handler=self._on_fatal)
        self.credentials = CredentialsManager(
            self.store, settings.sessions_root, settings.startup,
            logger=self.context.get_logger("credentials_manager"),
        )
        self.startup = StartupManager(self.context, self.supervisor, self.credentials)
        self.rotation = RotationManager(self.context)
        self.notifications = NotificationManager(self.context, self.supervisor)
        self.router = MessageRouter(
            self.context, self.supervisor, active_instance_provider=self.rotation.get_current_active_instance
        )
        self.admin = AdminManager(self.context, self.rotation, self.notifications)

        # Wiring
        self.admin.register_commands(self.router)
        self.rotation.add_observer(self.notifications.notify_rotation)
        self.supervisor.set_active_instance_provider(self.rotation.get_current_active_instance)
        self.supervisor.set_announcer(self.notifications.notify_online)
        self.supervisor.add_post_connect_task(self._warm_resources)
        self.supervisor.add_post_connect_task(self._record_connected)

        self.started_at = datetime.now(timezone.utc)
        self._started_monotonic = time.monotonic()
        self.startup_results: List[StartupResult] = []
        self._seen_connected: Set[str] = set()
        self._shutdown_event: Optional[asyncio.Event] = None
        self._server: Optional[uvicorn.Server] = None
        self.exit_code = 0

    # =================== STATUS ===================

    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started_monotonic

    # =================== POST-CONNECT / FATAL ===================

    async def _warm_resources(self, instance_id: str) -> None:
        await self.context.resource_cache.get(instance_id)

    async def _record_connected(self, instance_id: str) -> None:
        if instance_id in self._seen_connected:
            self.logging_manager.log_connection_event(instance_id, "connected", "(reconnected)")
            await self.notifications.notify_connection_restored(instance_id)
        else:
            self._seen_connected.add(instance_id)
            self.logging_manager.log_connection_event(instance_id, "connected")

    async def _on_fatal(self, error: Exception) -> None:
        instance_id = error.instance_id if isinstance(error, ConnectionSupervisorError) else "unknown"
        if isinstance(error, LoggedOutError):
            self.logging_manager.log_connection_event(instance_id, "logged_out", "- pair the session again")
            await self.notifications.notify_logged_out(instance_id)
        else:
            self.logging_manager.log_connection_event(instance_id, "error", str(error))
            await self.notifications.notify_critical_error(str(error))

        states = self.context.connection_states.values()
        if states and all(s.status == ConnectionStatus.TERMINATED for s in states):
            self.logger.error("❌ [BLOOM] Every instance is terminated, shutting down")
            self.request_shutdown(exit_code=1)

    # =================== LIFECYCLE ===================

    async def start(self) -> List[StartupResult]:
        """Bring the store, settings and instances up; arm rotation if anything connected"""
        await self.store.wait_until_ready()
        await self.rotation.initialize()

        self.startup_results = await self.startup.start_all()
        if any(r.success for r in self.startup_results):
            await self.rotation.start_rotation()
            await self.notifications.notify_startup_complete(summarize_results(self.startup_results))
        return self.startup_results

    def request_shutdown(self, exit_code: Optional[int] = None) -> None:
        if exit_code is not None:
            self.exit_code = exit_code
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Stop rotation, close every session and release the store"""
        self.logger.info("🧹 [BLOOM] Shutting down...")
        self.rotation.stop_rotation()
        try:
            await self.supervisor.stop_all()
        except Exception as e:
            self.logger.error(f"❌ [BLOOM] Error stopping connections: {e}")
        self.context.scheduler.cancel_all()
        await self.context.scheduler.wait_idle()
        await self.store.close()
        self.logging_manager.cleanup()
        self.logger.info("✅ [BLOOM] Shutdown complete")

    async def _serve_status_api(self) -> None:
        from bloom_api.main import create_app

        config = uvicorn.Config(
            create_app(self),
            host=self.settings.server.host,
            port=self.settings.server.port,
            log_level="info",
        )
        self._server = uvicorn.Server(config)
        self.logger.info(f"🌐 [BLOOM] Status API on {self.settings.server.host}:{self.settings.server.port}")
        await self._server.serve()

    async def run_async(self) -> int:
        """
        Run until a shutdown signal (or every instance terminating)

        Returns:
            Process exit code: 0 on a clean shutdown, 1 when no instance
            started or a fatal error occurred
        """
        loop = asyncio.get_running_loop()
        self._shutdown_event = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                pass  # Windows event loops

        waiters: List[asyncio.Future] = []
        try:
            self.logger.info(f"🚀 [BLOOM] Starting {self.settings.notifications.bot_name} v{__version__}")
            results = await self.start()
            if not any(r.success for r in results):
                self.logger.error(f"❌ [BLOOM] No instance could be started ({summarize_results(results)})")
                return 1

            waiters.append(asyncio.ensure_future(self._shutdown_event.wait()))
            if self.settings.server.enabled:
                waiters.append(asyncio.ensure_future(self._serve_status_api()))
            self.logger.info("🎯 [BLOOM] Running - press Ctrl+C to stop")
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            return self.exit_code

        except BloomError as e:
            self.logger.error(f"❌ [BLOOM] Fatal error: {e}")
            return 1
        finally:
            self._shutdown_event.set()
            if self._server is not None:
                self._server.should_exit = True
            if waiters:
                await asyncio.wait(waiters, timeout=5)
                for waiter in waiters:
                    if not waiter.done():
                        waiter.cancel()
            await self.shutdown()

    def run(self) -> int:
        return asyncio.run(self.run_async())


def main() -> None:
    """Console entry point: `bloom`"""
    try:
        settings = get_bloom_settings()
        bloom = Bloom(settings)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(bloom.run())


if __name__ == "__main__":
    main()
