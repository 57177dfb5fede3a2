"""Tests for the issue store (.issues/{stash,doing,achieved}/*.md)."""

from datetime import date
from pathlib import Path

import pytest

from issue_make.errors import (
    AlreadyInProgressError,
    BriefError,
    InvalidMetadataError,
    NotFoundError,
    NotInProgressError,
    SolutionMissingError,
    StorageError,
)
from issue_make.models import IssueStage, IssueType
from issue_make.store.brief import BLOCK_START
from issue_make.store.issue_store import IssueStore, normalize_for_search, titles_match

TODAY = date(2026, 10, 18)


@pytest.fixture
def store(tmp_path: Path) -> IssueStore:
    return IssueStore(tmp_path, today=lambda: TODAY)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_create_writes_stash_file(store: IssueStore, tmp_path: Path) -> None:
    """create writes .issues/stash/{slug}.{id}.md with frontmatter."""
    result = store.create("Add login", IssueType.FEAT, "desc")
    assert result.success
    assert result.issue is not None
    assert result.issue.number == 0
    assert result.issue.stage == IssueStage.STASH
    path = tmp_path / ".issues" / "stash" / "Add-login.0.md"
    assert result.file_path == path
    assert path.read_text(encoding="utf-8") == "---\nCreate Date: 2026-10-18\nType: feat\nIndex: 0\n---\n\ndesc"


def test_create_makes_all_stage_dirs(store: IssueStore, tmp_path: Path) -> None:
    store.create("x", "todo", "")
    for stage in ("stash", "doing", "achieved"):
        assert (tmp_path / ".issues" / stage).is_dir()


def test_create_accepts_type_string(store: IssueStore) -> None:
    result = store.create("x", "Bug", "")
    assert result.success
    assert result.issue.type == IssueType.BUG


def test_create_rejects_unknown_type(store: IssueStore, tmp_path: Path) -> None:
    result = store.create("x", "chore", "")
    assert not result.success
    assert isinstance(result.error, InvalidMetadataError)
    assert not (tmp_path / ".issues").exists()


def test_create_storage_failure(tmp_path: Path) -> None:
    """A file where .issues should be makes directory creation fail."""
    (tmp_path / ".issues").write_text("", encoding="utf-8")
    result = IssueStore(tmp_path).create("x", IssueType.FEAT, "")
    assert not result.success
    assert isinstance(result.error, StorageError)


def test_ids_increase_and_archived_middle_id_not_reused(store: IssueStore) -> None:
    numbers = [store.create(f"Issue {i}", IssueType.TODO, "d").issue.number for i in range(3)]
    assert numbers == [0, 1, 2]
    store.open("1")
    store.solution_path.write_text("done", encoding="utf-8")
    assert store.close("1").success
    assert store.create("Next", IssueType.TODO, "d").issue.number == 3


def test_next_id_counts_doing(store: IssueStore) -> None:
    store.create("a", IssueType.FEAT, "")
    store.create("b", IssueType.FEAT, "")
    store.open("1")
    assert store.next_id() == 2


def test_find_by_number(store: IssueStore) -> None:
    store.create("Add login", IssueType.FEAT, "desc")
    found = store.find("0")
    assert found.found
    issue = found.issue
    assert issue.number == 0
    assert issue.title == "Add-login"
    assert issue.type == IssueType.FEAT
    assert issue.content == "desc"
    assert issue.create_date == TODAY
    assert issue.stage == IssueStage.STASH


def test_find_by_number_missing(store: IssueStore) -> None:
    store.create("Add login", IssueType.FEAT, "desc")
    found = store.find("5")
    assert not found.found
    assert isinstance(found.error, NotFoundError)


def test_find_on_empty_project(store: IssueStore) -> None:
    """Missing directories are an ordinary miss."""
    assert isinstance(store.find("0").error, NotFoundError)
    assert isinstance(store.find("anything").error, NotFoundError)


def test_find_digits_with_whitespace(store: IssueStore) -> None:
    store.create("a", IssueType.FEAT, "")
    assert store.find(" 0 ").found


def test_fuzzy_title_search(store: IssueStore) -> None:
    store.create("Add User Authentication Feature", IssueType.FEAT, "d")
    found = store.find("auth")
    assert found.found
    assert found.issue.title == "Add-User-Authentication-Feature"
    assert isinstance(store.find("nonexistent").error, NotFoundError)


def test_fuzzy_title_search_is_bidirectional(store: IssueStore) -> None:
    """A query longer than the title still matches when it contains it."""
    store.create("Login", IssueType.FEAT, "d")
    assert store.find("fix the login page").found


def test_fuzzy_title_search_prefers_lowest_id(store: IssueStore) -> None:
    store.create("Login form", IssueType.FEAT, "")
    store.create("Login page", IssueType.FEAT, "")
    store.create("Login api", IssueType.FEAT, "")
    assert store.find("login").issue.number == 0


def test_fuzzy_title_search_stash_before_doing(store: IssueStore) -> None:
    store.create("Login form", IssueType.FEAT, "")
    store.create("Login page", IssueType.FEAT, "")
    store.open("0")
    found = store.find("login")
    assert found.issue.number == 1
    assert found.issue.stage == IssueStage.STASH


def test_empty_query_not_found(store: IssueStore) -> None:
    store.create("a", IssueType.FEAT, "")
    assert isinstance(store.find("").error, NotFoundError)
    assert isinstance(store.find("--").error, NotFoundError)


def test_title_scan_skips_malformed_file(store: IssueStore, tmp_path: Path) -> None:
    _write(tmp_path / ".issues" / "stash" / "Login-broken.0.md", "---\nType: nope\n---\n\nx")
    store.create("Login ok", IssueType.BUG, "")
    found = store.find("login")
    assert found.found
    assert found.issue.number == 1
    assert len(found.skipped) == 1
    assert isinstance(found.skipped[0][1], InvalidMetadataError)


def test_title_scan_only_malformed_reports_metadata_error(store: IssueStore, tmp_path: Path) -> None:
    _write(tmp_path / ".issues" / "stash" / "Login.0.md", "---\nType: nope\n---\n\nx")
    found = store.find("login")
    assert not found.found
    assert isinstance(found.error, InvalidMetadataError)


def test_find_by_number_malformed(store: IssueStore, tmp_path: Path) -> None:
    _write(tmp_path / ".issues" / "stash" / "x.3.md", "no frontmatter at all")
    found = store.find("3")
    assert not found.found
    assert isinstance(found.error, InvalidMetadataError)


def test_load_from_file_unknown_type(store: IssueStore, tmp_path: Path) -> None:
    path = _write(tmp_path / ".issues" / "stash" / "x.0.md", "---\nCreate Date: 2026-01-01\nType: chore\nIndex: 0\n---\n\nb")
    with pytest.raises(InvalidMetadataError) as exc_info:
        store.load_from_file(path)
    assert exc_info.value.path == path
    assert "chore" in str(exc_info.value)


def test_load_from_file_stage_from_directory(store: IssueStore, tmp_path: Path) -> None:
    """Stage comes from the parent directory, not from the content."""
    text = "---\nCreate Date: 2026-01-01\nType: todo\nIndex: 4\n---\n\nmentions doing and stash"
    issue = store.load_from_file(_write(tmp_path / ".issues" / "doing" / "x.4.md", text))
    assert issue.stage == IssueStage.DOING
    issue = store.load_from_file(_write(tmp_path / ".issues" / "stash" / "doing-things.5.md", text))
    assert issue.stage == IssueStage.STASH


def test_list_issues(store: IssueStore, tmp_path: Path) -> None:
    store.create("b", IssueType.FEAT, "")
    store.create("a", IssueType.BUG, "")
    store.create("c", IssueType.TODO, "")
    store.open("0")
    _write(tmp_path / ".issues" / "stash" / "bad.9.md", "---\n: [\n---\n\n")
    result = store.list_issues()
    assert result.success
    assert [(i.number, i.stage) for i in result.issues] == [
        (1, IssueStage.STASH),
        (2, IssueStage.STASH),
        (0, IssueStage.DOING),
    ]
    assert [p.name for p, _ in result.skipped] == ["bad.9.md"]


def test_open_moves_to_doing(store: IssueStore, tmp_path: Path) -> None:
    store.create("Add login", IssueType.FEAT, "desc")
    result = store.open("0")
    assert result.success
    assert result.moved
    assert result.issue.stage == IssueStage.DOING
    assert not (tmp_path / ".issues" / "stash" / "Add-login.0.md").exists()
    assert (tmp_path / ".issues" / "doing" / "Add-login.0.md").is_file()
    assert result.solution_path == tmp_path / ".issues" / "solution.md"
    assert result.solution_path.read_text(encoding="utf-8") == "# Solution for Issue #0: Add-login\n\n"


def test_open_by_title(store: IssueStore, tmp_path: Path) -> None:
    store.create("Add login", IssueType.FEAT, "desc")
    assert store.open("add login").success
    assert (tmp_path / ".issues" / "doing" / "Add-login.0.md").is_file()


def test_open_not_found(store: IssueStore) -> None:
    result = store.open("42")
    assert not result.success
    assert not result.moved
    assert isinstance(result.error, NotFoundError)


def test_open_twice_fails(store: IssueStore) -> None:
    store.create("Add login", IssueType.FEAT, "desc")
    store.open("0")
    result = store.open("0")
    assert not result.success
    assert isinstance(result.error, AlreadyInProgressError)
    assert "already in progress" in str(result.error)


def test_open_brief_failure_reports_moved(store: IssueStore, tmp_path: Path) -> None:
    """The move is committed even when the brief cannot be written."""
    (tmp_path / "AGENTS_BRIEF.md").mkdir()
    store.create("Add login", IssueType.FEAT, "desc")
    result = store.open("0")
    assert not result.success
    assert result.moved
    assert isinstance(result.error, BriefError)
    assert (tmp_path / ".issues" / "doing" / "Add-login.0.md").is_file()
    assert result.solution_path.is_file()


def test_close_without_solution_changes_nothing(store: IssueStore, tmp_path: Path) -> None:
    store.create("Add login", IssueType.FEAT, "desc")
    store.open("0")
    store.solution_path.unlink()
    brief_before = store.brief.path.read_text(encoding="utf-8")
    result = store.close("0")
    assert not result.success
    assert isinstance(result.error, SolutionMissingError)
    assert ".issues/solution.md" in str(result.error)
    assert (tmp_path / ".issues" / "doing" / "Add-login.0.md").is_file()
    assert list((tmp_path / ".issues" / "achieved").iterdir()) == []
    assert store.brief.path.read_text(encoding="utf-8") == brief_before


def test_close_stash_issue_fails(store: IssueStore, tmp_path: Path) -> None:
    store.create("Add login", IssueType.FEAT, "desc")
    store.solution_path.write_text("done", encoding="utf-8")
    result = store.close("0")
    assert isinstance(result.error, NotInProgressError)
    assert (tmp_path / ".issues" / "stash" / "Add-login.0.md").is_file()
    assert store.solution_path.is_file()


def test_close_not_found(store: IssueStore) -> None:
    assert isinstance(store.close("nothing").error, NotFoundError)


def test_close_without_brief_archives_but_fails(store: IssueStore, tmp_path: Path) -> None:
    store.create("Add login", IssueType.FEAT, "desc")
    store.open("0")
    store.brief.path.unlink()
    store.solution_path.write_text("done", encoding="utf-8")
    result = store.close("0")
    assert not result.success
    assert isinstance(result.error, BriefError)
    assert result.archived_path == tmp_path / ".issues" / "achieved" / "Add-login.md"
    assert result.archived_path.is_file()


def test_close_retry_after_partial_failure(store: IssueStore, tmp_path: Path) -> None:
    """An archive left by an interrupted close is overwritten on retry."""
    store.create("Add login", IssueType.FEAT, "desc")
    store.open("0")
    store.solution_path.write_text("done", encoding="utf-8")
    _write(tmp_path / ".issues" / "achieved" / "Add-login.md", "stale")
    result = store.close("0")
    assert result.success
    assert "done" in result.archived_path.read_text(encoding="utf-8")


def test_full_lifecycle(store: IssueStore, tmp_path: Path) -> None:
    """create -> open -> open again -> write solution -> close."""
    issues = tmp_path / ".issues"
    created = store.create("Add login", IssueType.FEAT, "desc")
    assert created.issue.number == 0
    assert "Type: feat" in (issues / "stash" / "Add-login.0.md").read_text(encoding="utf-8")

    opened = store.open("0")
    assert opened.success
    assert (issues / "doing" / "Add-login.0.md").is_file()
    assert (issues / "solution.md").is_file()
    brief = (tmp_path / "AGENTS_BRIEF.md").read_text(encoding="utf-8")
    assert brief.count(BLOCK_START) == 1
    assert "Issue ID: 0" in brief

    assert isinstance(store.open("0").error, AlreadyInProgressError)

    (issues / "solution.md").write_text("done", encoding="utf-8")
    closed = store.close("0")
    assert closed.success
    archived = issues / "achieved" / "Add-login.md"
    assert closed.archived_path == archived
    assert archived.read_text(encoding="utf-8") == "desc\n\n---\n\n## Solution\n\ndone"
    assert not (issues / "doing" / "Add-login.0.md").exists()
    assert not (issues / "solution.md").exists()
    assert BLOCK_START not in (tmp_path / "AGENTS_BRIEF.md").read_text(encoding="utf-8")


def test_custom_layout(tmp_path: Path) -> None:
    store = IssueStore(tmp_path, issues_dir_name="tasks", brief_file="AGENTS.md")
    store.create("a", IssueType.FEAT, "")
    store.open("0")
    assert (tmp_path / "tasks" / "doing" / "a.0.md").is_file()
    assert (tmp_path / "AGENTS.md").is_file()


def test_normalize_for_search() -> None:
    assert normalize_for_search("Add-User_Authentication!!  Feature") == "add user authentication feature"
    assert normalize_for_search("  ") == ""


def test_titles_match() -> None:
    assert titles_match("auth", "add user authentication feature")
    assert titles_match("add login page", "login")
    assert not titles_match("", "x")
    assert not titles_match("x", "")


def test_archiving_highest_id_frees_it(store: IssueStore) -> None:
    """Ids come from stash and doing only, so the top id is handed out again once archived."""
    store.create("a", IssueType.FEAT, "")
    store.create("b", IssueType.FEAT, "")
    store.open("1")
    store.solution_path.write_text("done", encoding="utf-8")
    assert store.close("1").success
    assert store.create("c", IssueType.FEAT, "").issue.number == 1


@pytest.mark.parametrize("day", ["2026-13-01", "2026-02-30"])
def test_impossible_date_is_metadata_error(store: IssueStore, tmp_path: Path, day: str) -> None:
    """A hand-edited date that is not a real day gives results, not exceptions."""
    _write(tmp_path / ".issues" / "stash" / "Login.0.md", f"---\nCreate Date: {day}\nType: feat\nIndex: 0\n---\n\nx")
    found = store.find("0")
    assert not found.found
    assert isinstance(found.error, InvalidMetadataError)
    by_title = store.find("login")
    assert isinstance(by_title.error, InvalidMetadataError)
    assert len(by_title.skipped) == 1
    opened = store.open("login")
    assert not opened.success
    assert isinstance(opened.error, InvalidMetadataError)
    assert isinstance(store.close("0").error, InvalidMetadataError)
    listed = store.list_issues()
    assert listed.success
    assert listed.issues == []
    assert [p.name for p, _ in listed.skipped] == ["Login.0.md"]


def test_type_on_disk_must_be_exact(store: IssueStore, tmp_path: Path) -> None:
    path = _write(tmp_path / ".issues" / "stash" / "x.0.md", "---\nCreate Date: 2026-01-01\nType: Feat\nIndex: 0\n---\n\nb")
    with pytest.raises(InvalidMetadataError):
        store.load_from_file(path)


def test_long_title_keeps_filename_through_open(store: IssueStore, tmp_path: Path) -> None:
    """A slug cut at a dash keeps the same file name in stash and doing."""
    created = store.create("a" * 79 + " tail", IssueType.FEAT, "")
    name = created.file_path.name
    assert name == "a" * 79 + ".0.md"
    assert store.open("0").success
    assert (tmp_path / ".issues" / "doing" / name).is_file()
