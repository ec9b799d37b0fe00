import math
from datetime import timedelta

import structlog

from parishsite import utils
from parishsite.config import Config
from parishsite.core.core import Service
from parishsite.core.storage import Storage
from parishsite.errors import RateLimitedError, StorageUnavailableError

logger = structlog.get_logger(__name__)


class RateLimitService(Service):
    """Fixed-window attempt budget per remote address."""

    def __init__(self, config: Config, storage: Storage) -> None:
        super().__init__(config, storage)
        self._store = storage.collection("rate_limits")

    @property
    def window(self) -> timedelta:
        return timedelta(minutes=self.config.login_rate_limit_window_minutes)

    async def check_login_attempt(self, remote_addr: str) -> None:
        """Count a login attempt, raising RateLimitedError once the budget is spent.

        Every attempt counts, successful or not. An unreachable store rejects
        the attempt.
        """
        current = utils.now()
        try:
            count, window_end = await self._store.increment(f"login:{remote_addr}", current + self.window)
        except StorageUnavailableError as e:
            logger.warning("rate_limit_store_failed", error=str(e))
            raise RateLimitedError(retry_after=int(self.window.total_seconds())) from e

        if count > self.config.login_rate_limit_attempts:
            retry_after = max(1, math.ceil((window_end - current).total_seconds()))
            logger.warning("login_rate_limited", remote_addr=remote_addr, attempts=count)
            raise RateLimitedError(retry_after=retry_after)
