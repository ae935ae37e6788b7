"""
SQLAlchemy Session Store

Async SQLAlchemy implementation of the SessionStore protocol. PostgreSQL
(asyncpg) in production, SQLite (aiosqlite) for local runs and tests.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from bloom.errors import StoreError, StoreUnavailableError
from .models import Base, BotSettingsRecord, DocumentRecord, InstanceSessionRecord
from .types import GLOBAL_SETTINGS_FIELDS, GLOBAL_SETTINGS_ID, GlobalSettings, utcnow


class SqlDocumentCollection:
    """
    One (namespace, collection) slice of the documents table

    Filtering happens in Python on the decoded JSON so the same code works on
    every dialect.
    """

    def __init__(self, session_factory, namespace: str, name: str):
        self._session_factory = session_factory
        self.namespace = namespace
        self.name = name

    def _key(self, doc_id: str):
        return (self.namespace, self.name, doc_id)

    async def find_one(self, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                record = await session.get(DocumentRecord, self._key(doc_id))
                return dict(record.data) if record else None
        except SQLAlchemyError as e:
            raise StoreError(f"find_one {self.namespace}.{self.name}/{doc_id} failed: {e}") from e

    async def find(self, **filters: Any) -> List[Dict[str, Any]]:
        query = select(DocumentRecord).filter(
            DocumentRecord.namespace == self.namespace,
            DocumentRecord.collection == self.name,
        ).order_by(DocumentRecord.doc_id)
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                documents = [dict(record.data) for record in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"find {self.namespace}.{self.name} failed: {e}") from e

        return [doc for doc in documents if all(doc.get(k) == v for k, v in filters.items())]

    async def upsert(self, doc_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self._session_factory() as session:
                record = await session.get(DocumentRecord, self._key(doc_id))
                if record is None:
                    record = DocumentRecord(namespace=self.namespace, collection=self.name, doc_id=doc_id, data={})
                    session.add(record)
                # Assign a new dict so the JSON column registers the change
                record.data = {**(record.data or {}), **patch, "_id": doc_id}
                await session.commit()
                return dict(record.data)
        except SQLAlchemyError as e:
            raise StoreError(f"upsert {self.namespace}.{self.name}/{doc_id} failed: {e}") from e

    async def delete(self, doc_id: str) -> bool:
        try:
            async with self._session_factory() as session:
                record = await session.get(DocumentRecord, self._key(doc_id))
                if record is None:
                    return False
                await session.delete(record)
                await session.commit()
                return True
        except SQLAlchemyError as e:
            raise StoreError(f"delete {self.namespace}.{self.name}/{doc_id} failed: {e}") from e

    async def count(self) -> int:
        query = select(func.count()).select_from(DocumentRecord).filter(
            DocumentRecord.namespace == self.namespace,
            DocumentRecord.collection == self.name,
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise StoreError(f"count {self.namespace}.{self.name} failed: {e}") from e


class SqlAlchemySessionStore:
    """
    Session store backed by an async SQLAlchemy engine

    Responsibilities:
    - Create the schema on first use
    - Read/upsert the shared GlobalSettings row
    - Persist per-instance session credentials
    - Hand out namespaced document collections
    """

    def __init__(self, database_url: str, logger=None, poll_interval: float = 0.5, echo: bool = False):
        self.database_url = database_url
        self.logger = logger
        self.poll_interval = poll_interval

        engine_options: Dict[str, Any] = {"echo": echo, "future": True}
        if not database_url.startswith("sqlite"):
            engine_options.update(
                pool_size=5,             # A handful of instances share the pool
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=3600,       # Recycle connections after 1 hour
                pool_pre_ping=True,      # Validate connections before use
            )
        self.engine = create_async_engine(database_url, **engine_options)
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False,
            bind=self.engine, class_=AsyncSession,
        )
        self._ready = False
        self._ready_lock = asyncio.Lock()

    def _log(self, level: str, message: str) -> None:
        if self.logger:
            getattr(self.logger, level)(message)

    # =================== CONNECTIVITY ===================

    async def wait_until_ready(self, timeout: float = 30.0) -> None:
        """
        Wait for the database to answer and the schema to exist

        Raises:
            StoreUnavailableError: If the database is unreachable for `timeout` seconds
        """
        if self._ready:
            return

        async with self._ready_lock:
            if self._ready:
                return

            deadline = time.monotonic() + timeout
            last_error: Optional[Exception] = None
            while True:
                try:
                    async with self.engine.begin() as conn:
                        await conn.execute(text("SELECT 1"))
                        await conn.run_sync(Base.metadata.create_all)
                    self._ready = True
                    self._log("info", "✅ [STORE] Database connected and schema ready")
                    return
                except (SQLAlchemyError, OSError) as e:
                    last_error = e
                    if time.monotonic() >= deadline:
                        break
                    self._log("warning", f"🔄 [STORE] Database not reachable yet: {e}")
                    await asyncio.sleep(self.poll_interval)

            raise StoreUnavailableError(f"Database connection timeout after {timeout:.0f}s: {last_error}")

    def is_ready(self) -> bool:
        return self._ready

    async def close(self) -> None:
        await self.engine.dispose()
        self._ready = False
        self._log("info", "💤 [STORE] Database connection closed")

    # =================== GLOBAL SETTINGS ===================

    async def find_global_settings(self) -> Optional[GlobalSettings]:
        try:
            async with self._session_factory() as session:
                record = await session.get(BotSettingsRecord, GLOBAL_SETTINGS_ID)
                return GlobalSettings.model_validate(record) if record else None
        except SQLAlchemyError as e:
            raise StoreError(f"Reading global settings failed: {e}") from e

    async def upsert_global_settings(self, patch: Dict[str, Any]) -> GlobalSettings:
        """
        Apply patch to the settings row, creating it if missing

        The whole patch lands in one commit. Two writers racing on the first
        insert retry once as an update (last write wins).
        """
        unknown = set(patch) - set(GLOBAL_SETTINGS_FIELDS)
        if unknown:
            raise StoreError(f"Unknown global settings fields: {', '.join(sorted(unknown))}")

        for attempt in range(2):
            try:
                async with self._session_factory() as session:
                    record = await session.get(BotSettingsRecord, GLOBAL_SETTINGS_ID)
                    if record is None:
                        record = BotSettingsRecord(
                            id=GLOBAL_SETTINGS_ID, rotation_enabled=True,
                            maintenance_mode=False, maintenance_reason="",
                        )
                        session.add(record)
                    for key, value in patch.items():
                        setattr(record, key, value)
                    record.updated_at = utcnow()
                    await session.commit()
                    return GlobalSettings.model_validate(record)
            except IntegrityError as e:
                if attempt == 1:
                    raise StoreError(f"Upserting global settings failed: {e}") from e
            except SQLAlchemyError as e:
                raise StoreError(f"Upserting global settings failed: {e}") from e
        raise StoreError("Upserting global settings failed")

    # =================== CREDENTIALS ===================

    async def get_instance_credentials(self, instance_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                record = await session.get(InstanceSessionRecord, instance_id)
                return dict(record.credentials) if record else None
        except SQLAlchemyError as e:
            raise StoreError(f"Reading credentials for {instance_id} failed: {e}") from e

    async def credentials_exist(self, instance_id: str) -> bool:
        query = select(func.count()).select_from(InstanceSessionRecord).filter(
            InstanceSessionRecord.instance_id == instance_id
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return int(result.scalar_one()) > 0
        except SQLAlchemyError as e:
            raise StoreError(f"Checking credentials for {instance_id} failed: {e}") from e

    async def save_instance_credentials(self, instance_id: str, credentials: Dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                record = await session.get(InstanceSessionRecord, instance_id)
                if record is None:
                    session.add(InstanceSessionRecord(instance_id=instance_id, credentials=dict(credentials)))
                else:
                    record.credentials = dict(credentials)
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Saving credentials for {instance_id} failed: {e}") from e

    # =================== DOCUMENTS ===================

    def collection(self, namespace: str, name: str) -> SqlDocumentCollection:
        return SqlDocumentCollection(self._session_factory, namespace, name)
