"""Identifier allocation from the files already on disk.

There is no counter file: the next id is one past the highest id found in
stash and doing. Archived files carry no id, so an id that reached achieved
is still never handed out again as long as a higher one exists in stash or
doing.

Nothing is reserved between allocation and the write of the new file. Two
processes allocating at the same time can get the same id; issue-make is a
single-user tool and accepts that window.
"""

from pathlib import Path
from typing import Callable, Iterable

from issue_make.store.filenames import decode_id

DirectoryLister = Callable[[Path], list[str]]


def list_filenames(directory: Path) -> list[str]:
    """File names in directory; a missing directory is empty."""
    path = Path(directory)
    if not path.is_dir():
        return []
    return [p.name for p in path.iterdir() if p.is_file()]


def next_id(listings: Iterable[Iterable[str]]) -> int:
    """Next free id for a snapshot of directory listings.

    Returns max(found) + 1, or 0 when no listing holds a numbered file.
    """
    highest = -1
    for names in listings:
        for name in names:
            issue_id = decode_id(name)
            if issue_id is not None and issue_id > highest:
                highest = issue_id
    return highest + 1
