import asyncio
import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from parishsite.config import Config
from parishsite.core.core import Service
from parishsite.core.modules.content.models import PLACEHOLDER_IMAGE, TeamDocument, TeamMember
from parishsite.core.modules.content.storage import read_json_file, write_json_atomic
from parishsite.core.modules.content.utils import (
    IMAGE_MAX,
    NAME_MAX,
    SUBJECT_MAX,
    clean_string,
    is_local_image_path,
    normalize_bio,
)
from parishsite.core.storage import Storage
from parishsite.errors import PayloadTooLargeError, ValidationError

logger = structlog.get_logger(__name__)

EVENTS_FILE = "events.json"
TEAM_FILE = "team.json"
MAX_EVENTS_BYTES = 200 * 1024


class ContentService(Service):
    """Admin-editable JSON documents: the events list and the team page."""

    def __init__(self, config: Config, storage: Storage) -> None:
        super().__init__(config, storage)
        self._root = Path(config.content_path)
        self._write_lock = asyncio.Lock()

    @property
    def events_path(self) -> Path:
        return self._root / EVENTS_FILE

    @property
    def team_path(self) -> Path:
        return self._root / TEAM_FILE

    # === Events ===
    def get_events(self) -> dict[str, Any]:
        """Return the events document, or an empty one when the file is missing or unreadable."""
        try:
            data = read_json_file(self.events_path)
        except FileNotFoundError:
            return {"events": []}
        except json.JSONDecodeError:
            logger.exception("events_file_corrupt", path=str(self.events_path))
            return {"events": []}
        if not isinstance(data, dict):
            return {"events": []}
        return data

    async def save_events(self, document: Any) -> None:
        """Replace the events document after shape and size checks."""
        if not isinstance(document, dict):
            raise ValidationError("Invalid payload")
        if "events" in document and not isinstance(document["events"], list):
            raise ValidationError("Invalid events format")
        if len(json.dumps(document, ensure_ascii=False).encode("utf-8")) > MAX_EVENTS_BYTES:
            raise PayloadTooLargeError

        async with self._write_lock:
            write_json_atomic(self.events_path, document)
        logger.info("events_saved", count=len(document.get("events", [])))

    # === Team ===
    def get_team(self) -> TeamDocument:
        """Read the team document, skipping entries that do not look like members."""
        try:
            data = read_json_file(self.team_path)
        except FileNotFoundError:
            return TeamDocument()
        except json.JSONDecodeError:
            logger.exception("team_file_corrupt", path=str(self.team_path))
            return TeamDocument()

        raw_members = data.get("team") if isinstance(data, dict) else None
        if not isinstance(raw_members, list):
            return TeamDocument()

        members: list[TeamMember] = []
        for raw in raw_members:
            try:
                members.append(TeamMember.model_validate(raw))
            except PydanticValidationError:
                logger.warning("team_member_skipped", entry=repr(raw)[:200])
        return TeamDocument(team=members)

    async def add_member(self, name: object, subject: object, image: object = None, bio: object = None) -> TeamDocument:
        """Append a team member. Name and subject are required."""
        clean_name = clean_string(name, NAME_MAX)
        clean_subject = clean_string(subject, SUBJECT_MAX)
        if not clean_name or not clean_subject:
            raise ValidationError("name and subject are required fields")

        member = TeamMember(
            name=clean_name,
            subject=clean_subject,
            image=self._clean_image(image) or PLACEHOLDER_IMAGE,
            bio=normalize_bio(bio) or "",
        )
        async with self._write_lock:
            document = self.get_team()
            document.team.append(member)
            self._write_team(document)
        logger.info("team_member_added", index=len(document.team) - 1)
        return document

    async def update_member(
        self, index: int, name: object = None, subject: object = None, image: object = None, bio: object = None
    ) -> TeamDocument:
        """Update the given fields of one member. Fields left as None are unchanged."""
        async with self._write_lock:
            document = self.get_team()
            member = document.team[self._check_index(document, index)]

            if name is not None:
                clean_name = clean_string(name, NAME_MAX)
                if not clean_name:
                    raise ValidationError("name cannot be empty")
                member.name = clean_name
            if subject is not None:
                clean_subject = clean_string(subject, SUBJECT_MAX)
                if not clean_subject:
                    raise ValidationError("subject cannot be empty")
                member.subject = clean_subject
            if image is not None:
                member.image = self._clean_image(image) or PLACEHOLDER_IMAGE
            if bio is not None:
                member.bio = normalize_bio(bio) or ""

            self._write_team(document)
        logger.info("team_member_updated", index=index)
        return document

    async def delete_member(self, index: int) -> TeamDocument:
        async with self._write_lock:
            document = self.get_team()
            del document.team[self._check_index(document, index)]
            self._write_team(document)
        logger.info("team_member_deleted", index=index)
        return document

    def _write_team(self, document: TeamDocument) -> None:
        write_json_atomic(self.team_path, document.model_dump())

    @staticmethod
    def _check_index(document: TeamDocument, index: int) -> int:
        if index < 0 or index >= len(document.team):
            raise ValidationError("Invalid member index")
        return index

    @staticmethod
    def _clean_image(image: object) -> str | None:
        path = clean_string(image, IMAGE_MAX)
        if path and not is_local_image_path(path):
            raise ValidationError("Invalid image path")
        return path
