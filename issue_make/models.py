"""Data models for issues, their frontmatter and operation results."""

from datetime import date
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from issue_make.errors import IssueMakeError


class IssueType(str, Enum):
    """Kind of work an issue describes. Fixed at creation."""

    FEAT = "feat"
    TODO = "todo"
    BUG = "bug"
    REFACT = "refact"


class IssueStage(str, Enum):
    """Lifecycle stage; also the name of the directory holding the file."""

    STASH = "stash"
    DOING = "doing"
    ACHIEVED = "achieved"


def parse_issue_type(value: str | None) -> IssueType | None:
    """Return the IssueType for value, or None if it is not one of the four."""
    if value is None:
        return None
    if isinstance(value, IssueType):
        return value
    try:
        return IssueType(str(value).strip().lower())
    except ValueError:
        return None


class IssueMetadata(BaseModel):
    """Frontmatter block of an issue file in stash or doing."""

    create_date: date = Field(..., alias="Create Date", description="Creation day, YYYY-MM-DD")
    type: IssueType = Field(..., alias="Type", description="feat, todo, bug or refact")
    index: int = Field(..., ge=0, alias="Index", description="Issue number (also in filename)")

    model_config = {"extra": "forbid", "populate_by_name": True}

    def to_frontmatter(self) -> dict:
        """Ordered mapping with the on-disk key names.

        create_date stays a date so YAML writes it unquoted.
        """
        return {
            "Create Date": self.create_date,
            "Type": self.type.value,
            "Index": self.index,
        }


class Issue(BaseModel):
    """An issue as seen by callers of the store."""

    title: str = Field(..., description="Title; after a reload this is the filename slug")
    number: int = Field(..., ge=0, description="Unique id, never reused")
    type: IssueType
    content: str = Field(default="", description="Original description, verbatim")
    create_date: date
    stage: IssueStage = IssueStage.STASH
    path: Path | None = Field(default=None, description="File backing this issue")


class _Result(BaseModel):
    model_config = {"arbitrary_types_allowed": True}

    error: IssueMakeError | None = None

    @property
    def error_message(self) -> str:
        return str(self.error) if self.error is not None else ""


class CreateResult(_Result):
    success: bool
    issue: Issue | None = None
    file_path: Path | None = None


class FindResult(_Result):
    """Outcome of a lookup. found=False with error=NotFoundError is the common miss."""

    found: bool
    issue: Issue | None = None
    skipped: list[tuple[Path, IssueMakeError]] = Field(default_factory=list)


class OpenResult(_Result):
    """moved=True with success=False means the file moved but a later step failed."""

    success: bool
    issue: Issue | None = None
    solution_path: Path | None = None
    moved: bool = False


class CloseResult(_Result):
    """archived_path is set once the archive file was written, even on a later failure."""

    success: bool
    issue: Issue | None = None
    archived_path: Path | None = None


class ListResult(_Result):
    success: bool
    issues: list[Issue] = Field(default_factory=list)
    skipped: list[tuple[Path, IssueMakeError]] = Field(default_factory=list)


class BriefResult(_Result):
    success: bool
    created: bool = False
    removed: bool = False


class TitleResult(BaseModel):
    success: bool
    title: str | None = None
    error: str | None = None
