"""Storage for issues (.issues/) and the collaborator brief."""

from issue_make.store.brief import BLOCK_END, BLOCK_START, BriefReconciler, render_block, strip_block
from issue_make.store.filenames import decode_id, encode_active, encode_archived, is_active_filename, sanitize_title
from issue_make.store.ids import list_filenames, next_id
from issue_make.store.issue_store import IssueStore

__all__ = [
    "BLOCK_END",
    "BLOCK_START",
    "BriefReconciler",
    "IssueStore",
    "decode_id",
    "encode_active",
    "encode_archived",
    "is_active_filename",
    "list_filenames",
    "next_id",
    "render_block",
    "sanitize_title",
    "strip_block",
]
