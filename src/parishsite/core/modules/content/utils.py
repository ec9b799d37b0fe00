"""Normalisation of admin-submitted team fields."""

import re

NAME_MAX = 80
SUBJECT_MAX = 120
IMAGE_MAX = 300
BIO_MAX = 24000

TRAILING_SPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)


def clean_string(value: object, max_length: int) -> str | None:
    """Trim and clamp a value to max_length characters. None stays None."""
    if value is None:
        return None
    text = str(value).strip()
    return text[:max_length]


def is_local_image_path(path: str) -> bool:
    """Only site-local images are allowed, which rules out javascript: and remote URLs."""
    return path.startswith("/images/") and ".." not in path


def normalize_bio(bio: object) -> str | None:
    """Normalise a biography into a single string.

    Accepts a string or a list of paragraphs. Line endings become ``\\n``,
    trailing whitespace is stripped from each line, empty paragraphs are
    dropped and the total text is capped at BIO_MAX characters.
    """
    if bio is None:
        return None

    if isinstance(bio, list):
        raw_parts = [str(part) for part in bio]
    else:
        raw_parts = str(bio).replace("\r\n", "\n").split("\n\n")

    parts = [TRAILING_SPACE_RE.sub("", part.replace("\r\n", "\n")) for part in raw_parts]
    parts = [part for part in parts if part.strip()]

    trimmed: list[str] = []
    remaining = BIO_MAX
    for part in parts:
        if remaining <= 0:
            break
        trimmed.append(part[:remaining])
        remaining -= len(trimmed[-1])

    return "\n\n".join(trimmed)
