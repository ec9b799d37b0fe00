import secrets
from datetime import timedelta

import structlog

from parishsite import utils
from parishsite.config import Config
from parishsite.core.core import Service
from parishsite.core.modules.trusted_device.models import TrustedDevice, hash_device_token
from parishsite.core.storage import Storage
from parishsite.errors import StorageUnavailableError

logger = structlog.get_logger(__name__)


class TrustedDeviceService(Service):
    """Persistent set of hashed bearer tokens that waive the one-time code.

    Storage failures never propagate: an unreadable store means the device is
    not trusted, an unwritable one means no token is issued.
    """

    def __init__(self, config: Config, storage: Storage) -> None:
        super().__init__(config, storage)
        self._store = storage.collection("trusted_devices")

    async def is_trusted(self, raw_token: str | None) -> bool:
        """Check whether raw_token matches an unexpired trusted device record."""
        if not raw_token:
            return False
        try:
            # Expired records are dropped by the store during this lookup
            record = await self._store.get(hash_device_token(raw_token))
        except StorageUnavailableError as e:
            logger.warning("trusted_device_lookup_failed", error=str(e))
            return False
        return record is not None

    async def issue(self, ttl: timedelta | None = None) -> str | None:
        """Mint a new device token, persist its hash and return the raw token."""
        raw_token = secrets.token_urlsafe(32)
        expires_at = utils.now() + (ttl if ttl is not None else self.ttl)
        device = TrustedDevice(token_hash=hash_device_token(raw_token), expires_at=expires_at, created_at=utils.now())
        try:
            await self._store.set(device.token_hash, device.to_record(), device.expires_at)
        except StorageUnavailableError as e:
            logger.warning("trusted_device_issue_failed", error=str(e))
            return None
        logger.info("trusted_device_issued", expires_at=expires_at.isoformat())
        return raw_token

    async def revoke(self, raw_token: str | None) -> None:
        """Forget the device holding raw_token."""
        if not raw_token:
            return
        try:
            await self._store.delete(hash_device_token(raw_token))
        except StorageUnavailableError as e:
            logger.warning("trusted_device_revoke_failed", error=str(e))
            return
        logger.info("trusted_device_revoked")

    async def purge_expired(self) -> int:
        try:
            removed = await self._store.purge_expired()
        except StorageUnavailableError as e:
            logger.warning("trusted_device_purge_failed", error=str(e))
            return 0
        logger.debug("trusted_devices_purged", removed=removed)
        return removed

    @property
    def ttl(self) -> timedelta:
        return timedelta(days=self.config.trusted_device_days)

    async def on_start(self) -> None:
        await self.purge_expired()
