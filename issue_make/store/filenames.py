"""Filename codec: issue title and id to a file name and back.

Active issues (stash, doing) are stored as {slug}.{id}.md, archived ones as
{slug}.md. Both shapes share one slug rule so a title keeps its slug across
stages.
"""

import re

MAX_SLUG_LENGTH = 80
UNTITLED = "untitled"

_INVALID_CHARS_RE = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE_RE = re.compile(r"\s+")
_UNDERSCORES_RE = re.compile(r"_+")
_DASHES_RE = re.compile(r"-+")
_ID_SUFFIX_RE = re.compile(r"\.(\d+)\.md$")
_ALNUM_RE = re.compile(r"[^\W_]")


def sanitize_title(title: str) -> str:
    """Turn a free-form title into a filename-safe slug.

    Characters invalid on common filesystems become "_", whitespace runs
    become "-", repeated "_" and "-" collapse, dashes are trimmed from both
    ends and the result is cut to 80 characters, then trimmed again. A slug
    without any letter or digit becomes "untitled".
    """
    slug = _INVALID_CHARS_RE.sub("_", title or "")
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _UNDERSCORES_RE.sub("_", slug)
    slug = _DASHES_RE.sub("-", slug).strip("-")
    slug = slug[:MAX_SLUG_LENGTH].strip("-")
    if not slug or not _ALNUM_RE.search(slug):
        return UNTITLED
    return slug


def encode_active(title: str, issue_id: int) -> str:
    """File name for an issue in stash or doing."""
    return f"{sanitize_title(title)}.{issue_id}.md"


def encode_archived(title: str) -> str:
    """File name for an issue in achieved (no id)."""
    return f"{sanitize_title(title)}.md"


def decode_id(filename: str) -> int | None:
    """Id from the rightmost .{digits}.md suffix, or None."""
    m = _ID_SUFFIX_RE.search(filename)
    return int(m.group(1)) if m else None


def is_active_filename(filename: str) -> bool:
    return _ID_SUFFIX_RE.search(filename) is not None


def title_from_filename(filename: str) -> str:
    """Slug part of an active or archived file name."""
    stem = _ID_SUFFIX_RE.sub("", filename)
    if stem == filename and stem.endswith(".md"):
        stem = stem[: -len(".md")]
    return stem
