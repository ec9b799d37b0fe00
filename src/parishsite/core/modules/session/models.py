"""Session management models."""

from datetime import datetime
from typing import Any, NewType, Self

from pydantic import BaseModel

SessionId = NewType("SessionId", str)


class Session(BaseModel):
    """Server-side admin session.

    Stored under its id with a sliding expiry; the id itself only ever
    travels in the signed session cookie.
    """

    id: SessionId
    logged_in: bool
    is_admin: bool
    created_at: datetime
    last_seen_at: datetime
    expires_at: datetime

    @property
    def is_authenticated_admin(self) -> bool:
        return self.logged_in and self.is_admin

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"id", "expires_at"})

    @classmethod
    def from_record(cls, session_id: SessionId, expires_at: datetime, record: dict[str, Any]) -> Self:
        return cls.model_validate({**record, "id": session_id, "expires_at": expires_at})


class LoginResult(BaseModel):
    """Outcome of a successful login."""

    session: Session
    device_token: str | None = None  # Raw trusted-device token, set only when a new one was minted
