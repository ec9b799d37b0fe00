import asyncio
import json
from pathlib import Path

import structlog
from pydantic import ValidationError as PydanticValidationError

from parishsite.config import Config
from parishsite.core.core import Service
from parishsite.core.modules.content.storage import read_json_file, write_json_atomic
from parishsite.core.modules.content.utils import IMAGE_MAX, NAME_MAX, SUBJECT_MAX, clean_string, is_local_image_path
from parishsite.core.modules.faculty.models import FacultyDocument, FacultyMember, FacultyRole, StaffRole
from parishsite.core.storage import Storage
from parishsite.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

FACULTY_FILE = "faculty.json"

DEFAULT_SUBJECTS: dict[StaffRole, str] = {"teacher": "Subject", "admin": "Administrator"}
ROLE_LABELS: dict[StaffRole, str] = {"teacher": "Teacher", "admin": "Admin"}


class FacultyService(Service):
    """The faculty page document: principal, administrators and teachers."""

    def __init__(self, config: Config, storage: Storage) -> None:
        super().__init__(config, storage)
        self._path = Path(config.content_path) / FACULTY_FILE
        self._write_lock = asyncio.Lock()

    @property
    def faculty_path(self) -> Path:
        return self._path

    def get_faculty(self) -> FacultyDocument:
        """Read the faculty document. A missing or unreadable file gives the default page."""
        try:
            data = read_json_file(self._path)
        except FileNotFoundError:
            return FacultyDocument()
        except json.JSONDecodeError:
            logger.exception("faculty_file_corrupt", path=str(self._path))
            return FacultyDocument()
        if not isinstance(data, dict):
            return FacultyDocument()

        # Older files have no admin list
        data.setdefault("admin", [])
        try:
            return FacultyDocument.model_validate(data)
        except PydanticValidationError:
            logger.exception("faculty_file_invalid", path=str(self._path))
            return FacultyDocument()

    async def add_member(
        self, role: StaffRole, name: object = None, subject: object = None, image: object = None
    ) -> tuple[int, FacultyMember]:
        """Append a teacher or administrator, filling unset fields with placeholders."""
        member = FacultyMember(subject=DEFAULT_SUBJECTS[role])
        self._apply(member, name, subject, image)
        async with self._write_lock:
            document = self.get_faculty()
            members = document.members(role)
            members.append(member)
            self._write(document)
        index = len(members) - 1
        logger.info("faculty_member_added", role=role, index=index)
        return index, member

    async def update_principal(self, name: object = None, subject: object = None, image: object = None) -> FacultyMember:
        async with self._write_lock:
            document = self.get_faculty()
            self._apply(document.principal, name, subject, image)
            self._write(document)
        logger.info("faculty_member_updated", role="principal")
        return document.principal

    async def update_member(
        self, role: StaffRole, index: int, name: object = None, subject: object = None, image: object = None
    ) -> FacultyMember:
        """Update one teacher or administrator. Empty fields are left unchanged."""
        async with self._write_lock:
            document = self.get_faculty()
            member = document.members(role)[self._check_index(document, role, index)]
            self._apply(member, name, subject, image)
            self._write(document)
        logger.info("faculty_member_updated", role=role, index=index)
        return member

    async def update(
        self, role: FacultyRole, index: int | None, name: object = None, subject: object = None, image: object = None
    ) -> FacultyMember:
        """Update by role; index is required for teachers and administrators."""
        if role == "principal":
            return await self.update_principal(name, subject, image)
        if index is None:
            raise ValidationError("index is required")
        return await self.update_member(role, index, name, subject, image)

    async def delete_member(self, role: StaffRole, index: int) -> None:
        async with self._write_lock:
            document = self.get_faculty()
            del document.members(role)[self._check_index(document, role, index)]
            self._write(document)
        logger.info("faculty_member_deleted", role=role, index=index)

    def _write(self, document: FacultyDocument) -> None:
        write_json_atomic(self._path, document.model_dump())

    @staticmethod
    def _check_index(document: FacultyDocument, role: StaffRole, index: int) -> int:
        if index < 0 or index >= len(document.members(role)):
            raise NotFoundError(f"{ROLE_LABELS[role]} not found")
        return index

    @staticmethod
    def _apply(member: FacultyMember, name: object, subject: object, image: object) -> None:
        # Validate everything before touching the member
        clean_name = clean_string(name, NAME_MAX)
        clean_subject = clean_string(subject, SUBJECT_MAX)
        clean_image = clean_string(image, IMAGE_MAX)
        if clean_image and not is_local_image_path(clean_image):
            raise ValidationError("Invalid image path")

        if clean_name:
            member.name = clean_name
        if clean_subject:
            member.subject = clean_subject
        if clean_image:
            member.image = clean_image
