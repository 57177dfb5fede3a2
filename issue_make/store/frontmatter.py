"""Frontmatter codec for issue files.

    ---
    Create Date: 2026-01-31
    Type: feat
    Index: 3
    ---

    <body>

Text that does not start with a "---" line is all body with empty metadata;
hand-written files without frontmatter still load that far. Once the
delimiters are there, the YAML between them must parse to a mapping.
"""

import re
from typing import Any

import yaml

from issue_make.errors import InvalidMetadataError

DELIMITER = "---"

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(?:(.*?)\r?\n)??---[ \t]*(?:\r?\n|\Z)(?:\r?\n)?(.*)\Z", re.DOTALL)
_OPENING_RE = re.compile(r"\A---[ \t]*\r?\n")


def encode(metadata: dict[str, Any], body: str) -> str:
    """Render metadata and body as a frontmatter document."""
    raw = yaml.dump(
        metadata,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=1000,
    )
    return f"{DELIMITER}\n{raw}{DELIMITER}\n\n{body}"


def decode(text: str) -> tuple[dict[str, Any], str]:
    """Split a document into (metadata, body).

    Raises InvalidMetadataError when the opening delimiter is present but
    the block is unterminated, is not valid YAML, or is not a mapping.
    """
    if not _OPENING_RE.match(text):
        return {}, text
    m = _FRONTMATTER_RE.match(text)
    if not m:
        raise InvalidMetadataError(None, "frontmatter opened with --- but never closed")
    block, body = m.group(1) or "", m.group(2)
    try:
        data = yaml.safe_load(block) if block.strip() else {}
    except (yaml.YAMLError, ValueError) as e:
        # ValueError: out-of-range dates such as 2026-13-01
        raise InvalidMetadataError(None, f"frontmatter is not valid YAML: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidMetadataError(None, "frontmatter is not a key-value mapping")
    return data, body
