from parishsite.core.core import Service
from parishsite.core.modules.session.models import Session
from parishsite.errors import AccessDeniedError


class AccessService(Service):
    def ensure_admin(self, session: Session | None) -> Session:
        """Ensure the request carries a logged-in admin session, raise AccessDeniedError if not."""
        if session is None or not session.is_authenticated_admin:
            raise AccessDeniedError
        return session
