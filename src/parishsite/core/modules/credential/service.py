import hashlib
import hmac
import re

import bcrypt
import pyotp
from pydantic import ValidationError as PydanticValidationError

from parishsite import utils
from parishsite.config import Config
from parishsite.core.core import Service
from parishsite.core.modules.credential.models import AdminCredentials
from parishsite.core.storage import Storage
from parishsite.errors import ConfigurationError

CODE_RE = re.compile(r"^\d{6}$")


class CredentialService(Service):
    """Checks the admin password and one-time code. Has no side effects."""

    def __init__(self, config: Config, storage: Storage) -> None:
        super().__init__(config, storage)
        try:
            self._credentials = AdminCredentials.from_config(config)
        except PydanticValidationError as e:
            raise ConfigurationError("Invalid admin TOTP secret") from e
        self._totp = pyotp.TOTP(self._credentials.totp_secret)

    def verify(self, password: str, code: str, device_trusted: bool) -> bool:
        """Return True when both factors pass, the code being waived for trusted devices.

        Both checks always run so response timing does not reveal which one failed.
        """
        password_ok = self.verify_password(password)
        code_ok = self.verify_code(code)
        return password_ok and (device_trusted or code_ok)

    def verify_password(self, password: str) -> bool:
        if self._credentials.is_password_hashed:
            try:
                return bcrypt.checkpw(password.encode("utf-8"), self._credentials.password.encode("utf-8"))
            except ValueError:
                # bcrypt refuses input over 72 bytes; such a password can never match
                return False
        # Digests have a fixed length, so the comparison leaks nothing about the secret's length
        submitted = hashlib.sha256(password.encode("utf-8")).digest()
        expected = hashlib.sha256(self._credentials.password.encode("utf-8")).digest()
        return hmac.compare_digest(submitted, expected)

    def verify_code(self, code: str) -> bool:
        """Verify a 6-digit TOTP code, accepting one step of clock drift either way."""
        code = code.replace(" ", "")
        if not CODE_RE.fullmatch(code):
            return False
        return self._totp.verify(code, for_time=utils.now(), valid_window=1)
