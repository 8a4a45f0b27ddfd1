"""Trimming and length caps for free-form text coming from clients."""

from __future__ import annotations

MAX_NAME_LENGTH = 32
MAX_CHAT_LENGTH = 280
MAX_ROOM_NAME_LENGTH = 48
MAX_PASSWORD_LENGTH = 64
MAX_PROMPT_BLOB_LENGTH = 2000

DEFAULT_DISPLAY_NAME = "Guest"
DEFAULT_ROOM_NAME = "New room"


def clean_text(value: object, max_length: int) -> str:
    """Strip surrounding whitespace and cut to ``max_length`` characters."""
    if value is None:
        return ""
    return str(value).strip()[:max_length]


def clean_display_name(value: object) -> str:
    return clean_text(value, MAX_NAME_LENGTH) or DEFAULT_DISPLAY_NAME


def clean_room_name(value: object) -> str:
    return clean_text(value, MAX_ROOM_NAME_LENGTH) or DEFAULT_ROOM_NAME


def clean_password(value: object) -> str:
    return clean_text(value, MAX_PASSWORD_LENGTH)


def normalize_prompts(blob: str | list[str] | None) -> list[str]:
    """Split a custom prompt blob into trimmed, non-empty lines.

    The blob is capped before splitting, so a long list loses its tail
    rather than having each line truncated.
    """
    if blob is None:
        return []
    if isinstance(blob, list):
        blob = "\n".join(str(line) for line in blob)
    capped = clean_text(blob, MAX_PROMPT_BLOB_LENGTH)
    return [line.strip() for line in capped.split("\n") if line.strip()]
