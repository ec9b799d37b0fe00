from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

from parishsite.config import Config
from parishsite.core.storage import Storage, create_storage

if TYPE_CHECKING:
    from parishsite.core.modules.access.service import AccessService
    from parishsite.core.modules.content.service import ContentService
    from parishsite.core.modules.credential.service import CredentialService
    from parishsite.core.modules.faculty.service import FacultyService
    from parishsite.core.modules.rate_limit.service import RateLimitService
    from parishsite.core.modules.session.service import SessionService
    from parishsite.core.modules.trusted_device.service import TrustedDeviceService


class Service:
    """Base class for services with access to config and storage."""

    def __init__(self, config: Config, storage: Storage) -> None:
        self.config = config
        self.storage = storage

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""


class Services:
    """Service registry that automatically discovers and initializes services."""

    credential: CredentialService
    trusted_device: TrustedDeviceService
    session: SessionService
    rate_limit: RateLimitService
    access: AccessService
    content: ContentService
    faculty: FacultyService

    def __init__(self, config: Config, storage: Storage) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        service_configs = [
            ("credential", "parishsite.core.modules.credential.service", "CredentialService"),
            ("trusted_device", "parishsite.core.modules.trusted_device.service", "TrustedDeviceService"),
            ("session", "parishsite.core.modules.session.service", "SessionService"),
            ("rate_limit", "parishsite.core.modules.rate_limit.service", "RateLimitService"),
            ("access", "parishsite.core.modules.access.service", "AccessService"),
            ("content", "parishsite.core.modules.content.service", "ContentService"),
            ("faculty", "parishsite.core.modules.faculty.service", "FacultyService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(config, storage)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, storage, and all service instances."""

    config: Config
    storage: Storage
    services: Services

    def __init__(self, config: Config, storage: Storage | None = None) -> None:
        """Initialize core with config and storage, and auto-register services."""
        self.config = config
        self.storage = storage if storage is not None else create_storage(config.database_url)
        self.services = Services(config, self.storage)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Prepare storage, then start all services."""
        await self.storage.on_start()
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and release storage on shutdown."""
        await self.services.stop_all()
        await self.storage.on_stop()
