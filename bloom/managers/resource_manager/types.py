"""
Resource Manager Type Definitions

The per-instance bundle of data accessors handed to feature code.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from bloom.managers.store_manager import DocumentCollection, GlobalSettings, SessionStore

# Feature collections every bundle carries, in declaration order
FEATURE_COLLECTIONS: Tuple[str, ...] = (
    "users",
    "group_settings",
    "exp",
    "afk",
    "tictactoe",
    "reminders",
    "tickets",
    "counters",
    "user_counters",
    "pokemon",
)

NAMESPACE_PREFIX = "bloom_"


def instance_namespace(instance_id: str) -> str:
    return f"{NAMESPACE_PREFIX}{instance_id}"


class GlobalSettingsAccessor:
    """Read/patch the shared settings document"""

    def __init__(self, store: SessionStore):
        self._store = store

    async def get(self) -> Optional[GlobalSettings]:
        return await self._store.find_global_settings()

    async def update(self, patch: Dict[str, Any]) -> GlobalSettings:
        return await self._store.upsert_global_settings(patch)


class InstanceCredentialsAccessor:
    """Durable session credentials of a single instance"""

    def __init__(self, store: SessionStore, instance_id: str):
        self._store = store
        self.instance_id = instance_id

    async def get(self) -> Optional[Dict[str, Any]]:
        return await self._store.get_instance_credentials(self.instance_id)

    async def exists(self) -> bool:
        return await self._store.credentials_exist(self.instance_id)

    async def save(self, credentials: Dict[str, Any]) -> None:
        await self._store.save_instance_credentials(self.instance_id, credentials)


@dataclass(frozen=True)
class InstanceResources:
    """Every data accessor one instance's feature code may use"""
    instance_id: str
    namespace: str
    settings: GlobalSettingsAccessor
    credentials: InstanceCredentialsAccessor
    users: DocumentCollection
    group_settings: DocumentCollection
    exp: DocumentCollection
    afk: DocumentCollection
    tictactoe: DocumentCollection
    reminders: DocumentCollection
    tickets: DocumentCollection
    counters: DocumentCollection
    user_counters: DocumentCollection
    pokemon: DocumentCollection

    def collection(self, name: str) -> DocumentCollection:
        if name not in FEATURE_COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        return getattr(self, name)
