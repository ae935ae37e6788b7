"""
Instance Resource Cache

One memoized InstanceResources bundle per instance id. Concurrent callers
share a single in-flight construction; failed constructions are never
cached so the next call retries.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from bloom.errors import ResourceConstructionError, StoreError
from bloom.managers.store_manager import SessionStore
from .types import (
    FEATURE_COLLECTIONS, GlobalSettingsAccessor, InstanceCredentialsAccessor,
    InstanceResources, instance_namespace
)


class InstanceResourceCache:
    """
    Keyed cache of per-instance data accessors

    Responsibilities:
    - Build a bundle on first request (after the store is reachable)
    - Share one construction between concurrent callers
    - Expose a non-constructing peek for cheap read paths
    """

    def __init__(self, store: SessionStore, logger=None, store_timeout: float = 30.0):
        self.store = store
        self.logger = logger or logging.getLogger("bloom.resources")
        self.store_timeout = store_timeout
        self._bundles: Dict[str, InstanceResources] = {}
        self._pending: Dict[str, asyncio.Task] = {}
        self.construction_count = 0

    async def get(self, instance_id: str) -> InstanceResources:
        """
        Bundle for instance_id, constructing it on first use

        Raises:
            ResourceConstructionError: When the store is unreachable or construction fails
        """
        bundle = self._bundles.get(instance_id)
        if bundle is not None:
            return bundle

        task = self._pending.get(instance_id)
        if task is None:
            task = asyncio.ensure_future(self._construct(instance_id))
            self._pending[instance_id] = task
            task.add_done_callback(lambda t, key=instance_id: self._on_constructed(key, t))

        # Shielded so one cancelled caller does not abort the shared construction
        return await asyncio.shield(task)

    def peek(self, instance_id: str) -> Optional[InstanceResources]:
        return self._bundles.get(instance_id)

    def invalidate(self, instance_id: str) -> bool:
        removed = self._bundles.pop(instance_id, None) is not None
        if removed:
            self.logger.debug(f"🗑️ [RESOURCES] Invalidated bundle for {instance_id}")
        return removed

    def clear(self) -> None:
        self._bundles.clear()

    def cached_ids(self) -> List[str]:
        return sorted(self._bundles)

    def _on_constructed(self, instance_id: str, task: asyncio.Task) -> None:
        self._pending.pop(instance_id, None)
        if task.cancelled():
            return
        if task.exception() is None:
            self._bundles[instance_id] = task.result()

    async def _construct(self, instance_id: str) -> InstanceResources:
        self.construction_count += 1
        try:
            await self.store.wait_until_ready(self.store_timeout)
        except StoreError as e:
            self.logger.error(f"❌ [RESOURCES] Store not ready for {instance_id}: {e}")
            raise ResourceConstructionError(f"Store not ready for {instance_id}: {e}") from e

        namespace = instance_namespace(instance_id)
        try:
            collections = {name: self.store.collection(namespace, name) for name in FEATURE_COLLECTIONS}
            bundle = InstanceResources(
                instance_id=instance_id,
                namespace=namespace,
                settings=GlobalSettingsAccessor(self.store),
                credentials=InstanceCredentialsAccessor(self.store, instance_id),
                **collections,
            )
        except Exception as e:
            self.logger.error(f"❌ [RESOURCES] Building bundle for {instance_id} failed: {e}")
            raise ResourceConstructionError(f"Building bundle for {instance_id} failed: {e}") from e

        self.logger.info(f"📦 [RESOURCES] Bundle ready for {instance_id} (namespace {namespace})")
        return bundle
