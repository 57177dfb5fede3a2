"""Directory layout of an issue-make project.

    <root>/.issues/stash/{slug}.{id}.md
    <root>/.issues/doing/{slug}.{id}.md
    <root>/.issues/achieved/{slug}.md
    <root>/.issues/solution.md       (only while an issue is in doing)
    <root>/AGENTS_BRIEF.md
"""

from pathlib import Path

from issue_make.models import IssueStage

ISSUES_DIR = ".issues"
SOLUTION_FILE = "solution.md"
BRIEF_FILE = "AGENTS_BRIEF.md"

# Stages that hold numbered files, in scan order
ACTIVE_STAGES = (IssueStage.STASH, IssueStage.DOING)


def issues_dir(root: Path, name: str = ISSUES_DIR) -> Path:
    return Path(root) / name


def stage_dir(root: Path, stage: IssueStage, name: str = ISSUES_DIR) -> Path:
    return issues_dir(root, name) / stage.value


def solution_path(root: Path, name: str = ISSUES_DIR) -> Path:
    return issues_dir(root, name) / SOLUTION_FILE


def brief_path(root: Path, filename: str = BRIEF_FILE) -> Path:
    return Path(root) / filename


def stage_of(path: Path) -> IssueStage | None:
    """Stage implied by the directory a file lives in, or None."""
    try:
        return IssueStage(Path(path).parent.name)
    except ValueError:
        return None
