"""issue-make: local development issues as markdown files.

Issues move through .issues/stash -> .issues/doing -> .issues/achieved; the
currently open one is mirrored into a brief for coding agents.
"""

__version__ = "1.0.0"
