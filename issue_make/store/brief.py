"""Collaborator brief: the marker-delimited task block in AGENTS_BRIEF.md.

The brief holds at most one block between BLOCK_START and BLOCK_END. publish
replaces it, retract removes it. Text outside the markers is never changed.
"""

import logging
import re
from pathlib import Path

from issue_make.errors import BriefError
from issue_make.models import BriefResult, Issue

BLOCK_START = "<!-- ISSUE-MAKE:START -->"
BLOCK_END = "<!-- ISSUE-MAKE:END -->"

DEFAULT_HEADER = "# Agents Brief\n\nThis file contains tasks for AI agents.\n\n"

BLOCK_TEMPLATE = """{start}
## Task: {title}

Issue ID: {number}
Type: {type}
Created: {created}

### Description
{content}

### Instructions
- Work on this issue and implement the solution
- Document your progress in {solution_path}
- When complete, run `issue-make close {number}` to archive

{end}
"""

# Non-greedy: a block ends at the first END marker after its START
_BLOCK_RE = re.compile(re.escape(BLOCK_START) + r".*?" + re.escape(BLOCK_END) + r"\n?", re.DOTALL)

LOG = logging.getLogger("issue_make.store.brief")


def strip_block(text: str) -> str:
    """Remove every marker block (and one newline after each) from text."""
    return _BLOCK_RE.sub("", text)


def has_block(text: str) -> bool:
    return _BLOCK_RE.search(text) is not None


def render_block(issue: Issue, solution_path: Path | str) -> str:
    """Task block for issue, ending with a newline."""
    content = issue.content.strip("\n") or "(no description)"
    return BLOCK_TEMPLATE.format(
        start=BLOCK_START,
        end=BLOCK_END,
        title=issue.title,
        number=issue.number,
        type=issue.type.value,
        created=issue.create_date.isoformat(),
        content=content,
        solution_path=solution_path,
    )


class BriefReconciler:
    """Owns the task block inside the brief document at path."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BriefError(self.path, f"cannot read: {e}") from e

    def _write(self, text: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise BriefError(self.path, f"cannot write: {e}") from e

    def publish(self, issue: Issue, solution_path: Path | str) -> BriefResult:
        """Replace any task block with one describing issue.

        A missing brief starts from DEFAULT_HEADER. Calling this twice for
        the same issue leaves the document unchanged the second time.
        """
        try:
            current = self._read()
            created = current is None
            cleaned = strip_block(DEFAULT_HEADER if current is None else current)
            if cleaned and not cleaned.endswith("\n"):
                cleaned += "\n"
            self._write(cleaned + render_block(issue, solution_path))
        except BriefError as e:
            LOG.warning("Failed to publish issue #%s to brief: %s", issue.number, e)
            return BriefResult(success=False, error=e)
        LOG.info("Published issue #%s to %s", issue.number, self.path)
        return BriefResult(success=True, created=created)

    def retract(self) -> BriefResult:
        """Remove the task block.

        A brief that does not exist is a failure: every close follows an
        open that wrote it.
        """
        try:
            current = self._read()
            if current is None:
                raise BriefError(self.path, "does not exist; nothing to retract")
            removed = has_block(current)
            if removed:
                self._write(strip_block(current))
        except BriefError as e:
            LOG.warning("Failed to retract task block: %s", e)
            return BriefResult(success=False, error=e)
        LOG.info("Retracted task block from %s", self.path)
        return BriefResult(success=True, removed=removed)
