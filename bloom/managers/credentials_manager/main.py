"""
Credentials Manager - session bootstrap for bot instances

Resolution order for one instance:
1. Valid local <session_dir>/creds.json
2. Credentials saved in the session store (written back to the local file)
3. Remote token BLOOM~<remoteId> fetched over HTTP (must be a JSON object)
4. Nothing: the driver falls back to QR pairing
"""

import asyncio
import logging
import os
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from bloom.errors import CredentialError, StoreError
from bloom.lib.config import InstanceDescriptor, StartupSettings
from bloom.managers.store_manager import SessionStore
from .utils import (
    CREDS_FILENAME, parse_credentials, parse_session_token,
    read_credentials_file, write_credentials_file
)


class CredentialSource(Enum):
    """Where an instance's credentials came from"""
    LOCAL = "local"
    STORE = "store"
    REMOTE = "remote"
    QR = "qr"


class CredentialsManager:
    """
    Resolves and persists session credentials

    Responsibilities:
    - Check for a usable local creds.json
    - Restore credentials from the session store
    - Download credentials from a remote paste token
    - Persist credential updates pushed by the driver
    """

    def __init__(self,
                 store: SessionStore,
                 sessions_root: str = ".",
                 startup_settings: Optional[StartupSettings] = None,
                 logger=None):
        """
        Initialize Credentials Manager

        Args:
            store: Session store holding durable credentials
            sessions_root: Directory that contains every instance's session_dir
            startup_settings: Paste URL and fetch timeout
            logger: Logger (defaults to bloom.credentials)
        """
        self.store = store
        self.sessions_root = sessions_root
        self.settings = startup_settings or StartupSettings()
        self.logger = logger or logging.getLogger("bloom.credentials")

    def session_path(self, descriptor: InstanceDescriptor) -> str:
        return os.path.join(self.sessions_root, descriptor.session_dir)

    def creds_path(self, descriptor: InstanceDescriptor) -> str:
        return os.path.join(self.session_path(descriptor), CREDS_FILENAME)

    def ensure_session_dirs(self, descriptors: List[InstanceDescriptor]) -> List[str]:
        """Create every instance's session directory; returns the paths"""
        paths = []
        for descriptor in descriptors:
            path = self.session_path(descriptor)
            os.makedirs(path, exist_ok=True)
            paths.append(path)
        self.logger.debug(f"📁 [CREDS] Session directories ready: {', '.join(paths)}")
        return paths

    def has_local_credentials(self, descriptor: InstanceDescriptor) -> bool:
        return read_credentials_file(self.creds_path(descriptor)) is not None

    async def resolve(self, descriptor: InstanceDescriptor) -> Tuple[Optional[Dict[str, Any]], CredentialSource]:
        """
        Resolve credentials for descriptor

        Store and remote failures are logged and fall through to the next
        source; a None result means the driver must pair by QR.

        Returns:
            (credentials or None, source)
        """
        local = read_credentials_file(self.creds_path(descriptor))
        if local is not None:
            self.logger.info(f"✅ [CREDS] {descriptor.id}: using local session")
            return local, CredentialSource.LOCAL

        try:
            stored = await self.store.get_instance_credentials(descriptor.id)
        except StoreError as e:
            self.logger.warning(f"⚠️ [CREDS] {descriptor.id}: store lookup failed: {e}")
            stored = None
        if stored:
            self._write_local(descriptor, stored)
            self.logger.info(f"✅ [CREDS] {descriptor.id}: restored session from store")
            return stored, CredentialSource.STORE

        if descriptor.credential_source:
            try:
                remote = await self.fetch_remote(descriptor.credential_source)
            except CredentialError as e:
                self.logger.warning(f"⚠️ [CREDS] {descriptor.id}: {e}")
            else:
                self._write_local(descriptor, remote)
                await self.save(descriptor.id, remote)
                self.logger.info(f"✅ [CREDS] {descriptor.id}: session downloaded from remote token")
                return remote, CredentialSource.REMOTE

        self.logger.info(f"📱 [CREDS] {descriptor.id}: no session found, QR pairing required")
        return None, CredentialSource.QR

    async def fetch_remote(self, token: str) -> Dict[str, Any]:
        """
        Download credentials for a BLOOM~<remoteId> token

        Raises:
            CredentialError: Malformed token, HTTP failure or a body that is not a JSON object
        """
        remote_id = parse_session_token(token)
        if remote_id is None:
            raise CredentialError("Invalid session token format, expected BLOOM~<remoteId>")

        url = f"{self.settings.session_paste_url.rstrip('/')}/{remote_id}"
        timeout = aiohttp.ClientTimeout(total=self.settings.fetch_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise CredentialError(f"Session download failed with HTTP {response.status}")
                    body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CredentialError(f"Session download failed: {e}") from e
        except UnicodeDecodeError as e:
            raise CredentialError(f"Downloaded session is not valid text: {e}") from e

        credentials = parse_credentials(body)
        if credentials is None:
            raise CredentialError("Downloaded session is not a JSON object")
        return credentials

    async def save(self, instance_id: str, credentials: Dict[str, Any]) -> bool:
        """Persist credentials to the store; failures are logged and reported as False"""
        try:
            await self.store.save_instance_credentials(instance_id, credentials)
            return True
        except StoreError as e:
            self.logger.error(f"❌ [CREDS] {instance_id}: saving session failed: {e}")
            return False

    async def update(self, descriptor: InstanceDescriptor, credentials: Dict[str, Any]) -> None:
        """Driver pushed fresh credentials: refresh the local file and the store"""
        self._write_local(descriptor, credentials)
        await self.save(descriptor.id, credentials)

    def _write_local(self, descriptor: InstanceDescriptor, credentials: Dict[str, Any]) -> None:
        try:
            write_credentials_file(self.creds_path(descriptor), credentials)
        except OSError as e:
            self.logger.error(f"❌ [CREDS] {descriptor.id}: writing creds.json failed: {e}")
