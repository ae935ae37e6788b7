"""
Rotation Manager - active instance rotation

Exactly one instance is "active" at a time. The pointer lives in the shared
GlobalSettings document and moves to the next instance (priority order,
wrapping around) every time the active instance's rotation period elapses.
"""

import math
from datetime import datetime, timedelta
from typing import List, Optional

from bloom.context import BloomContext
from bloom.errors import StoreError
from bloom.managers.store_manager import GlobalSettings, utcnow
from .types import ROTATION_TIMER_KEY, RotationObserver, RotationResult, RotationStatus


class RotationManager:
    """
    Manages the active-instance pointer

    Responsibilities:
    - Create the settings document with defaults on first run
    - Self-heal an active id that no longer resolves in the registry
    - Advance the pointer round-robin, at most one rotation in flight
    - Keep a single rotation timer armed with the active instance's period
    - Tell observers about every successful rotation
    """

    def __init__(self, context: BloomContext, logger=None):
        """
        Initialize Rotation Manager

        Args:
            context: Process context (registry, store, scheduler, rotation settings)
            logger: Logger (defaults to the context's 'rotation' logger)
        """
        self.context = context
        self.registry = context.registry
        self.store = context.store
        self.scheduler = context.scheduler
        self.settings = context.settings.rotation
        self.logger = logger or context.get_logger("rotation")

        self._is_rotating = False
        self._observers: List[RotationObserver] = []
        self.timer_armed_at: Optional[datetime] = None
        self.timer_period: Optional[timedelta] = None

    def add_observer(self, observer: RotationObserver) -> None:
        """Call observer(previous_id, new_id) after every successful rotation"""
        self._observers.append(observer)

    # =================== SETTINGS DOCUMENT ===================

    async def initialize(self) -> GlobalSettings:
        """
        Create the settings document if it is missing (idempotent)

        Returns:
            The current settings document
        """
        settings = await self.store.find_global_settings()
        if settings is None:
            settings = await self._create_default_settings()
        else:
            active_id = await self.get_current_active_instance()
            self.logger.info(f"✅ [ROTATION] Initialized with active instance {active_id}")
        return settings

    async def get_current_active_instance(self) -> str:
        """
        Id of the active instance, always a registry member

        An unknown stored id is reset to the default instance and the fix is
        persisted; a missing document is created with defaults. On store
        errors the default id is returned without writing.
        """
        default_id = self.registry.default().id
        try:
            settings = await self.store.find_global_settings()
        except StoreError as e:
            self.logger.error(f"❌ [ROTATION] Error reading active instance: {e}")
            return default_id

        if settings is None:
            try:
                await self._create_default_settings()
            except StoreError as e:
                self.logger.error(f"❌ [ROTATION] Error creating settings: {e}")
            return default_id

        active_id = settings.active_instance_id
        if active_id is None:
            return default_id

        if active_id not in self.registry:
            self.logger.warning(f"⚠️ [ROTATION] Invalid active instance {active_id} in store, resetting to {default_id}")
            try:
                await self.store.upsert_global_settings({"active_instance_id": default_id})
            except StoreError as e:
                self.logger.error(f"❌ [ROTATION] Error persisting reset active instance: {e}")
            return default_id

        return active_id

    async def _create_default_settings(self) -> GlobalSettings:
        default_id = self.registry.default().id
        settings = await self.store.upsert_global_settings({
            "active_instance_id": default_id,
            "rotation_enabled": True,
            "last_rotation_at": utcnow(),
        })
        self.logger.info(f"✅ [ROTATION] Settings created with active instance {default_id}")
        return settings

    # =================== ROTATION ===================

    async def rotate_instance(self) -> RotationResult:
        """
        Advance the active pointer to the next instance

        Returns:
            RotationResult describing what happened; never raises for store errors
        """
        if self._is_rotating:
            self.logger.debug("⏭️ [ROTATION] Rotation already in progress, skipping")
            return RotationResult(status=RotationStatus.SKIPPED_IN_FLIGHT)

        self._is_rotating = True
        try:
            if not self.settings.enabled:
                self.logger.info("ℹ️ [ROTATION] Rotation is disabled in config")
                return RotationResult(status=RotationStatus.SKIPPED_DISABLED)

            # Re-read right before writing; the document may have been changed by an admin
            settings = await self.store.find_global_settings()
            if settings is not None and not settings.rotation_enabled:
                self.logger.info("ℹ️ [ROTATION] Rotation is disabled in settings")
                return RotationResult(status=RotationStatus.SKIPPED_DISABLED)

            current_id = settings.active_instance_id if settings else None
            if current_id is None or current_id not in self.registry:
                default = self.registry.default()
                self.logger.warning(f"⚠️ [ROTATION] Invalid active instance {current_id}, resetting to {default.id}")
                await self.store.upsert_global_settings({"active_instance_id": default.id})
                return RotationResult(
                    status=RotationStatus.HEALED, previous_instance_id=current_id, new_instance_id=default.id
                )

            next_instance = self.registry.next_after(current_id)
            position = self.registry.index_of(next_instance.id) + 1
            self.logger.info(
                f"🔄 [ROTATION] Rotating from {current_id} to {next_instance.id} ({position}/{len(self.registry)})"
            )

            rotated_at = utcnow()
            await self.store.upsert_global_settings({
                "active_instance_id": next_instance.id,
                "last_rotation_at": rotated_at,
            })
            self.reset_rotation_timer(next_instance.rotation_period)
            self.logger.info(
                f"✅ [ROTATION] Active instance is now {next_instance.id} "
                f"(next rotation in {next_instance.rotation_hours:g} hours)"
            )
        except StoreError as e:
            self.logger.error(f"❌ [ROTATION] Error during rotation: {e}")
            return RotationResult(status=RotationStatus.FAILED, error=str(e))
        finally:
            self._is_rotating = False

        await self._notify_observers(current_id, next_instance.id)
        return RotationResult(
            status=RotationStatus.ROTATED,
            previous_instance_id=current_id,
            new_instance_id=next_instance.id,
            rotated_at=rotated_at,
        )

    async def _notify_observers(self, previous_id: str, new_id: str) -> None:
        for observer in self._observers:
            try:
                await observer(previous_id, new_id)
            except Exception as e:
                self.logger.error(f"❌ [ROTATION] Error broadcasting rotation: {e}")

    # =================== TIMER ===================

    def reset_rotation_timer(self, period: timedelta) -> None:
        """Cancel any armed rotation timer and arm a new one for period"""
        self.scheduler.arm(ROTATION_TIMER_KEY, period.total_seconds(), self._on_rotation_timer, repeat=True)
        self.timer_armed_at = utcnow()
        self.timer_period = period
        self.logger.info(f"⏰ [ROTATION] Rotation timer set for {period.total_seconds() / 3600:g} hours")

    async def _on_rotation_timer(self) -> RotationResult:
        # The scheduler has already re-armed the repeating timer
        self.timer_armed_at = utcnow()
        return await self.rotate_instance()

    def get_next_rotation_time(self) -> Optional[timedelta]:
        """Time left until the next rotation, or None when no timer is armed"""
        if not self.is_running() or self.timer_armed_at is None or self.timer_period is None:
            return None
        remaining = self.timer_period - (utcnow() - self.timer_armed_at)
        return max(remaining, timedelta(0))

    def hours_until_next_rotation(self) -> Optional[int]:
        """Remaining time rounded up to whole hours (dashboard display)"""
        remaining = self.get_next_rotation_time()
        if remaining is None:
            return None
        return max(0, math.ceil(remaining.total_seconds() / 3600))

    async def start_rotation(self) -> bool:
        """
        Arm the rotation timer for the current active instance (idempotent)

        Returns:
            True when rotation is running afterwards
        """
        if self.is_running():
            return True
        if not self.settings.enabled:
            self.logger.info("ℹ️ [ROTATION] Rotation is disabled in config")
            return False

        active_id = await self.get_current_active_instance()
        descriptor = self.registry.get(active_id)
        self.reset_rotation_timer(descriptor.rotation_period)
        self.logger.info(
            f"✅ [ROTATION] Rotation started with instance {descriptor.id} "
            f"(interval: {descriptor.rotation_hours:g} hours)"
        )
        return True

    def stop_rotation(self) -> None:
        """Cancel the rotation timer (idempotent)"""
        if self.scheduler.cancel(ROTATION_TIMER_KEY):
            self.logger.info("⏹️ [ROTATION] Rotation stopped")
        self.timer_armed_at = None
        self.timer_period = None

    def is_running(self) -> bool:
        return self.scheduler.is_armed(ROTATION_TIMER_KEY)
