from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog

from parishsite.config import Config
from parishsite.core.core import Core
from parishsite.core.modules.content.models import TeamDocument
from parishsite.core.modules.faculty.models import FacultyDocument, FacultyMember, FacultyRole, StaffRole
from parishsite.core.modules.session.models import LoginResult, Session, SessionId
from parishsite.core.storage import Storage
from parishsite.errors import AuthenticationError, StorageUnavailableError

logger = structlog.get_logger(__name__)


class App:
    """Facade for all application operations, validates access before delegating to Core."""

    def __init__(self, config: Config, storage: Storage | None = None) -> None:
        self._core = Core(config, storage)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Authentication ===
    async def login(
        self,
        password: str,
        code: str,
        remember_device: bool,
        remote_addr: str,
        device_token: str | None = None,
        previous_session_id: SessionId | None = None,
    ) -> LoginResult:
        """Check credentials and issue a fresh session, plus a device token if asked.

        The whole login is one check-then-issue step. Nothing is stored for a
        half-finished login.
        """
        services = self._core.services
        await services.rate_limit.check_login_attempt(remote_addr)

        device_trusted = await services.trusted_device.is_trusted(device_token)
        if not services.credential.verify(password, code, device_trusted=device_trusted):
            logger.info("login_failed", remote_addr=remote_addr, device_trusted=device_trusted)
            raise AuthenticationError

        # Never promote a pre-login session id
        if previous_session_id:
            await services.session.destroy_session(previous_session_id)
        try:
            session = await services.session.create_session()
        except StorageUnavailableError as e:
            # Credentials were fine but nothing can be issued; answer like any failed login
            logger.error("login_session_unavailable", remote_addr=remote_addr, error=str(e))
            raise AuthenticationError from e

        new_device_token = None
        if remember_device and not device_trusted:
            new_device_token = await services.trusted_device.issue()

        logger.info("login_succeeded", remote_addr=remote_addr, device_trusted=device_trusted)
        return LoginResult(session=session, device_token=new_device_token)

    async def logout(self, session_id: SessionId | None, device_token: str | None = None, forget_device: bool = False) -> None:
        """Destroy the session; with forget_device also revoke the presented device token."""
        if session_id:
            await self._core.services.session.destroy_session(session_id)
        if forget_device:
            await self._core.services.trusted_device.revoke(device_token)

    async def get_session(self, session_id: SessionId) -> Session | None:
        """Resolve a session id to a live session, extending it. None means anonymous."""
        return await self._core.services.session.get_session(session_id)

    # === Events ===
    def get_events(self) -> dict[str, Any]:
        return self._core.services.content.get_events()

    async def save_events(self, session: Session | None, document: Any) -> None:
        """Replace the events document (admin only)."""
        self._core.services.access.ensure_admin(session)
        await self._core.services.content.save_events(document)

    # === Team ===
    def get_team(self) -> TeamDocument:
        return self._core.services.content.get_team()

    async def add_team_member(
        self, session: Session | None, name: object, subject: object, image: object = None, bio: object = None
    ) -> TeamDocument:
        """Add a team member (admin only)."""
        self._core.services.access.ensure_admin(session)
        return await self._core.services.content.add_member(name, subject, image, bio)

    async def update_team_member(
        self,
        session: Session | None,
        index: int,
        name: object = None,
        subject: object = None,
        image: object = None,
        bio: object = None,
    ) -> TeamDocument:
        """Update a team member's fields (admin only)."""
        self._core.services.access.ensure_admin(session)
        return await self._core.services.content.update_member(index, name, subject, image, bio)

    async def delete_team_member(self, session: Session | None, index: int) -> TeamDocument:
        """Remove a team member (admin only)."""
        self._core.services.access.ensure_admin(session)
        return await self._core.services.content.delete_member(index)

    # === Faculty ===
    def get_faculty(self) -> FacultyDocument:
        return self._core.services.faculty.get_faculty()

    async def add_faculty_member(
        self, session: Session | None, role: StaffRole, name: object = None, subject: object = None, image: object = None
    ) -> tuple[int, FacultyMember]:
        """Add a teacher or administrator (admin only)."""
        self._core.services.access.ensure_admin(session)
        return await self._core.services.faculty.add_member(role, name, subject, image)

    async def update_faculty_member(
        self,
        session: Session | None,
        role: FacultyRole,
        index: int | None = None,
        name: object = None,
        subject: object = None,
        image: object = None,
    ) -> FacultyMember:
        """Update the principal, a teacher or an administrator (admin only)."""
        self._core.services.access.ensure_admin(session)
        return await self._core.services.faculty.update(role, index, name, subject, image)

    async def delete_faculty_member(self, session: Session | None, role: StaffRole, index: int) -> None:
        """Remove a teacher or administrator (admin only)."""
        self._core.services.access.ensure_admin(session)
        await self._core.services.faculty.delete_member(role, index)
