"""Trusted device models."""

import hashlib
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from parishsite.utils import now


def hash_device_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw device token. Only this value is ever stored."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class TrustedDevice(BaseModel):
    """A browser allowed to skip the one-time code until expires_at."""

    token_hash: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=now)

    def to_record(self) -> dict[str, Any]:
        return {"created_at": self.created_at.isoformat()}
