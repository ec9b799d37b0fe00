"""Admin credential models."""

import base64
import binascii
from typing import Self

from pydantic import BaseModel, ConfigDict, field_validator

from parishsite.config import Config


class AdminCredentials(BaseModel):
    """Immutable copy of the admin secrets, taken once at startup."""

    model_config = ConfigDict(frozen=True)

    password: str  # Plaintext or bcrypt hash
    totp_secret: str  # Base32

    @field_validator("totp_secret")
    @classmethod
    def validate_totp_secret(cls, value: str) -> str:
        normalized = value.replace(" ", "").upper()
        try:
            base64.b32decode(normalized + "=" * (-len(normalized) % 8))
        except binascii.Error as e:
            raise ValueError("TOTP secret must be base32") from e
        return normalized

    @property
    def is_password_hashed(self) -> bool:
        return self.password.startswith(("$2a$", "$2b$", "$2y$"))

    @classmethod
    def from_config(cls, config: Config) -> Self:
        return cls(password=config.admin_password, totp_secret=config.admin_totp_secret)
