import secrets
from datetime import timedelta

import structlog

from parishsite import utils
from parishsite.config import Config
from parishsite.core.core import Service
from parishsite.core.modules.session.models import Session, SessionId
from parishsite.core.storage import Storage
from parishsite.errors import StorageUnavailableError

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Service for managing admin sessions with a sliding inactivity window."""

    def __init__(self, config: Config, storage: Storage) -> None:
        super().__init__(config, storage)
        self._store = storage.collection("sessions")

    @property
    def idle_timeout(self) -> timedelta:
        return timedelta(minutes=self.config.session_idle_minutes)

    async def create_session(self) -> Session:
        """Create a fresh authenticated admin session under a new random id."""
        current = utils.now()
        session = Session(
            id=SessionId(secrets.token_urlsafe(32)),
            logged_in=True,
            is_admin=True,
            created_at=current,
            last_seen_at=current,
            expires_at=current + self.idle_timeout,
        )
        await self._store.set(session.id, session.to_record(), session.expires_at)
        return session

    async def get_session(self, session_id: SessionId) -> Session | None:
        """Load a live session and push its expiry forward. Returns None for anonymous."""
        try:
            record = await self._store.get(session_id)
            if record is None:
                return None
            current = utils.now()
            session = Session.from_record(session_id, current + self.idle_timeout, record)
            session.last_seen_at = current
            if not await self._store.expire(session_id, session.expires_at, session.to_record()):
                return None
        except StorageUnavailableError as e:
            logger.warning("session_lookup_failed", error=str(e))
            return None
        return session

    async def destroy_session(self, session_id: SessionId) -> None:
        try:
            await self._store.delete(session_id)
        except StorageUnavailableError as e:
            logger.warning("session_destroy_failed", error=str(e))

    async def on_start(self) -> None:
        try:
            removed = await self._store.purge_expired()
        except StorageUnavailableError as e:
            logger.warning("session_purge_failed", error=str(e))
            return
        logger.debug("sessions_purged", removed=removed)
