"""Issue store: issue files in .issues/{stash,doing,achieved}/.

One file per issue. The directory is the stage, so transitions are renames
(stash -> doing) or a rewrite into achieved followed by deletes
(doing -> achieved). open and close are several separate writes with no
rollback; a failure part-way leaves the files where the last successful step
put them, and the result says how far it got.
"""

import logging
import re
from datetime import date
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from issue_make.errors import (
    AlreadyInProgressError,
    InvalidMetadataError,
    IssueMakeError,
    NotFoundError,
    NotInProgressError,
    SolutionMissingError,
    StorageError,
)
from issue_make.models import (
    CloseResult,
    CreateResult,
    FindResult,
    Issue,
    IssueMetadata,
    IssueStage,
    IssueType,
    ListResult,
    OpenResult,
    parse_issue_type,
)
from issue_make.store import frontmatter
from issue_make.store.brief import BriefReconciler
from issue_make.store.filenames import (
    decode_id,
    encode_active,
    encode_archived,
    is_active_filename,
    title_from_filename,
)
from issue_make.store.ids import DirectoryLister, list_filenames, next_id
from issue_make.store.layout import (
    ACTIVE_STAGES,
    BRIEF_FILE,
    ISSUES_DIR,
    brief_path,
    issues_dir,
    solution_path,
    stage_dir,
    stage_of,
)

LOG = logging.getLogger("issue_make.store.issue_store")

SOLUTION_HEADER = "# Solution for Issue #{number}: {title}\n\n"
ARCHIVE_TEMPLATE = "{content}\n\n---\n\n## Solution\n\n{solution}"

_NUMBER_RE = re.compile(r"^\d+$")
_SEPARATORS_RE = re.compile(r"[-_]+")
_PUNCTUATION_RE = re.compile(r"[^\w\s]+")
_SPACES_RE = re.compile(r"\s+")


def normalize_for_search(text: str) -> str:
    """Lowercase, "-"/"_" and punctuation to spaces, single spaces, trimmed."""
    s = _SEPARATORS_RE.sub(" ", text.lower())
    s = _PUNCTUATION_RE.sub(" ", s)
    return _SPACES_RE.sub(" ", s).strip()


def titles_match(query: str, candidate: str) -> bool:
    """Either normalized string contains the other. Empty strings never match."""
    if not query or not candidate:
        return False
    return query in candidate or candidate in query


class IssueStore:
    """Create, find, open and close issues under a project root."""

    def __init__(
        self,
        root: Path,
        issues_dir_name: str = ISSUES_DIR,
        brief_file: str = BRIEF_FILE,
        lister: DirectoryLister = list_filenames,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.root = Path(root)
        self._issues_dir_name = issues_dir_name
        self._lister = lister
        self._today = today
        self.brief = BriefReconciler(brief_path(self.root, brief_file))

    @property
    def issues_dir(self) -> Path:
        return issues_dir(self.root, self._issues_dir_name)

    @property
    def solution_path(self) -> Path:
        return solution_path(self.root, self._issues_dir_name)

    def stage_dir(self, stage: IssueStage) -> Path:
        return stage_dir(self.root, stage, self._issues_dir_name)

    def ensure_directories(self) -> None:
        """Create .issues/ and the three stage directories if missing."""
        for path in [self.issues_dir] + [self.stage_dir(s) for s in IssueStage]:
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError("create directory", path, e) from e

    def _listing(self, stage: IssueStage) -> list[str]:
        directory = self.stage_dir(stage)
        try:
            return self._lister(directory)
        except OSError as e:
            raise StorageError("list", directory, e) from e

    def _active_files(self, stage: IssueStage) -> list[Path]:
        """Numbered files of a stage, lowest id first."""
        names = [n for n in self._listing(stage) if is_active_filename(n)]
        names.sort(key=lambda n: (decode_id(n), n))
        return [self.stage_dir(stage) / n for n in names]

    def next_id(self) -> int:
        """One past the highest id in stash and doing, 0 for an empty store.

        Nothing is reserved; create the file right after calling this.
        """
        return next_id(self._listing(stage) for stage in ACTIVE_STAGES)

    def load_from_file(self, path: Path) -> Issue:
        """Parse an issue file; the stage comes from its parent directory.

        Raises InvalidMetadataError for malformed frontmatter or an unknown
        type, StorageError when the file cannot be read.
        """
        path = Path(path)
        stage = stage_of(path)
        if stage is None:
            raise StorageError("infer stage of", path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError("read", path, e) from e
        try:
            data, body = frontmatter.decode(text)
        except InvalidMetadataError as e:
            raise InvalidMetadataError(path, e.reason) from e
        declared = data.get("Type")
        # Exact lowercase values only; parse_issue_type is for user input
        if not isinstance(declared, str) or declared not in {t.value for t in IssueType}:
            raise InvalidMetadataError(
                path,
                f"type {declared!r} is not one of {', '.join(t.value for t in IssueType)}",
            )
        try:
            meta = IssueMetadata.model_validate(data)
        except ValidationError as e:
            raise InvalidMetadataError(path, str(e)) from e
        number = decode_id(path.name)
        return Issue(
            title=title_from_filename(path.name),
            number=number if number is not None else meta.index,
            type=meta.type,
            content=body,
            create_date=meta.create_date,
            stage=stage,
            path=path,
        )

    def create(self, title: str, issue_type: IssueType | str, content: str) -> CreateResult:
        """Write a new issue into stash with the next free id."""
        parsed_type = parse_issue_type(issue_type)
        if parsed_type is None:
            err = InvalidMetadataError(None, f"type {issue_type!r} is not one of feat, todo, bug, refact")
            return CreateResult(success=False, error=err)
        try:
            self.ensure_directories()
            number = self.next_id()
            meta = IssueMetadata(create_date=self._today(), type=parsed_type, index=number)
            path = self.stage_dir(IssueStage.STASH) / encode_active(title, number)
            try:
                # "x": never overwrite an issue that took the same id meanwhile
                with path.open("x", encoding="utf-8") as f:
                    f.write(frontmatter.encode(meta.to_frontmatter(), content))
            except OSError as e:
                raise StorageError("write", path, e) from e
        except StorageError as e:
            LOG.warning("Failed to create issue %r: %s", title, e)
            return CreateResult(success=False, error=e)
        issue = Issue(
            title=title,
            number=number,
            type=parsed_type,
            content=content,
            create_date=meta.create_date,
            stage=IssueStage.STASH,
            path=path,
        )
        LOG.info("Created issue #%s (%s) in stash", number, parsed_type.value)
        return CreateResult(success=True, issue=issue, file_path=path)

    def find(self, identifier: str) -> FindResult:
        """Look up by number when identifier is all digits, else by title."""
        ident = (identifier or "").strip()
        if _NUMBER_RE.match(ident):
            return self.find_by_number(int(ident))
        return self.find_by_title(ident)

    def find_by_number(self, number: int) -> FindResult:
        try:
            for stage in ACTIVE_STAGES:
                for path in self._active_files(stage):
                    if decode_id(path.name) == number:
                        return FindResult(found=True, issue=self.load_from_file(path))
        except IssueMakeError as e:
            return FindResult(found=False, error=e)
        return FindResult(
            found=False,
            error=NotFoundError(str(number), f"Issue with number {number} not found in stash or doing"),
        )

    def find_by_title(self, query: str) -> FindResult:
        """First issue whose slug fuzzily matches query.

        Stash is searched before doing and lower ids before higher ones, so
        among several matches the result is stable. Files with broken
        frontmatter are skipped and listed in the result.
        """
        wanted = normalize_for_search(query or "")
        not_found = NotFoundError(query, f'Issue with title containing "{query}" not found')
        if not wanted:
            return FindResult(found=False, error=not_found)
        skipped: list[tuple[Path, IssueMakeError]] = []
        try:
            for stage in ACTIVE_STAGES:
                for path in self._active_files(stage):
                    candidate = normalize_for_search(title_from_filename(path.name))
                    if not titles_match(wanted, candidate):
                        continue
                    try:
                        issue = self.load_from_file(path)
                    except InvalidMetadataError as e:
                        LOG.warning("Skipping %s: %s", path, e.reason)
                        skipped.append((path, e))
                        continue
                    return FindResult(found=True, issue=issue, skipped=skipped)
        except StorageError as e:
            return FindResult(found=False, error=e, skipped=skipped)
        if skipped:
            return FindResult(found=False, error=skipped[0][1], skipped=skipped)
        return FindResult(found=False, error=not_found)

    def list_issues(self) -> ListResult:
        """All stash and doing issues, stash first, by id."""
        issues: list[Issue] = []
        skipped: list[tuple[Path, IssueMakeError]] = []
        try:
            for stage in ACTIVE_STAGES:
                for path in self._active_files(stage):
                    try:
                        issues.append(self.load_from_file(path))
                    except InvalidMetadataError as e:
                        LOG.warning("Skipping %s: %s", path, e.reason)
                        skipped.append((path, e))
        except StorageError as e:
            return ListResult(success=False, error=e, issues=issues, skipped=skipped)
        return ListResult(success=True, issues=issues, skipped=skipped)

    def open(self, identifier: str) -> OpenResult:
        """Move an issue from stash to doing, seed solution.md, publish the brief.

        moved=True on a failed result means the issue is already in doing
        and only the solution file or the brief needs fixing by hand.
        """
        found = self.find(identifier)
        if not found.found or found.issue is None:
            return OpenResult(success=False, error=found.error or NotFoundError(identifier))
        issue = found.issue
        if issue.stage == IssueStage.DOING:
            return OpenResult(success=False, issue=issue, error=AlreadyInProgressError(issue.number, issue.title))

        try:
            self.ensure_directories()
            in_progress = self._active_files(IssueStage.DOING)
            if in_progress:
                LOG.warning("Opening #%s while %s is in doing; solution.md is replaced", issue.number, in_progress[0].name)
            target = self.stage_dir(IssueStage.DOING) / encode_active(issue.title, issue.number)
            if target.exists():
                raise StorageError("move issue onto existing", target)
            try:
                issue.path.rename(target)
            except OSError as e:
                raise StorageError(f"move {issue.path} to", target, e) from e
        except StorageError as e:
            LOG.warning("Failed to open issue #%s: %s", issue.number, e)
            return OpenResult(success=False, issue=issue, error=e)
        issue = issue.model_copy(update={"stage": IssueStage.DOING, "path": target})
        LOG.info("Issue #%s stash -> doing", issue.number)

        solution = self.solution_path
        try:
            solution.write_text(SOLUTION_HEADER.format(number=issue.number, title=issue.title), encoding="utf-8")
        except OSError as e:
            err = StorageError("write", solution, e)
            LOG.warning("Issue #%s moved to doing but solution file failed: %s", issue.number, err)
            return OpenResult(success=False, issue=issue, moved=True, error=err)

        published = self.brief.publish(issue, solution)
        if not published.success:
            return OpenResult(success=False, issue=issue, solution_path=solution, moved=True, error=published.error)
        return OpenResult(success=True, issue=issue, solution_path=solution, moved=True)

    def close(self, identifier: str) -> CloseResult:
        """Archive a doing issue together with solution.md and clear the brief.

        Nothing is touched unless solution.md exists. After a failure
        part-way the doing file and solution.md may both still be there;
        running close again finishes the job.
        """
        found = self.find(identifier)
        if not found.found or found.issue is None:
            return CloseResult(success=False, error=found.error or NotFoundError(identifier))
        issue = found.issue
        if issue.stage != IssueStage.DOING:
            return CloseResult(success=False, issue=issue, error=NotInProgressError(issue.number, issue.stage.value))

        solution = self.solution_path
        if not solution.is_file():
            return CloseResult(success=False, issue=issue, error=SolutionMissingError(solution))

        archived: Path | None = None
        try:
            try:
                solution_text = solution.read_text(encoding="utf-8")
            except OSError as e:
                raise StorageError("read", solution, e) from e
            self.ensure_directories()
            target = self.stage_dir(IssueStage.ACHIEVED) / encode_archived(issue.title)
            if target.exists():
                LOG.warning("Overwriting existing archive %s", target)
            try:
                target.write_text(
                    ARCHIVE_TEMPLATE.format(content=issue.content, solution=solution_text),
                    encoding="utf-8",
                )
            except OSError as e:
                raise StorageError("write", target, e) from e
            archived = target
            for path in (issue.path, solution):
                try:
                    path.unlink()
                except OSError as e:
                    raise StorageError("delete", path, e) from e
        except StorageError as e:
            LOG.warning("Failed to close issue #%s: %s", issue.number, e)
            return CloseResult(success=False, issue=issue, archived_path=archived, error=e)
        LOG.info("Issue #%s doing -> achieved (%s)", issue.number, archived.name)

        issue = issue.model_copy(update={"stage": IssueStage.ACHIEVED, "path": archived})
        retracted = self.brief.retract()
        if not retracted.success:
            return CloseResult(success=False, issue=issue, archived_path=archived, error=retracted.error)
        return CloseResult(success=True, issue=issue, archived_path=archived)
