"""issue-make entry point.

Usage: issue-make [--root DIR] [--config FILE] init | add | open | close | list | test-llm
"""

import argparse
import logging
import sys
from pathlib import Path

from issue_make.config import AppConfig, config_exists, default_config_path, load_config, save_config
from issue_make.errors import BriefError, SolutionMissingError
from issue_make.logging import IssueMakeLogging
from issue_make.models import IssueType, parse_issue_type
from issue_make.store import IssueStore
from issue_make.title_generator import TitleGenerator, TitleGeneratorError, fallback_title

LOG = logging.getLogger("issue_make.main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="issue-make",
        description="A lightweight issue management tool for developers",
    )
    parser.add_argument("--root", type=Path, default=Path.cwd(), help="Project root (default: cwd)")
    parser.add_argument("--config", "-c", type=Path, default=None, help="Settings file (default: ~/.issue-make/settings.yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Write default global settings")

    add = sub.add_parser("add", help="Create a new issue from a description file")
    add.add_argument("--type", default=IssueType.FEAT.value, help="Issue type (feat, todo, bug, refact)")
    add.add_argument("path", type=Path, help="Path to description file")

    open_ = sub.add_parser("open", help="Start working on an issue")
    open_.add_argument("identifier", help="Issue number or title")

    close = sub.add_parser("close", help="Complete and archive an issue")
    close.add_argument("identifier", help="Issue number or title")

    sub.add_parser("list", help="Show issues in stash and doing")
    sub.add_parser("test-llm", help="Test LLM connection")
    return parser.parse_args(argv)


def _store(args: argparse.Namespace, config: AppConfig) -> IssueStore:
    return IssueStore(
        args.root,
        issues_dir_name=config.project.issues_dir,
        brief_file=config.project.brief_file,
    )


def cmd_init(args: argparse.Namespace) -> int:
    path = args.config or default_config_path()
    try:
        save_config(AppConfig(), path)
    except OSError as e:
        print(f"✗ Failed to initialize configuration: {e}", file=sys.stderr)
        return 1
    print("✓ Configuration initialized successfully")
    print(f"  Config file: {path}")
    print("\nNext steps:")
    print(f"  1. Configure AI settings (ai.url, ai.api, ai.model) in {path}")
    print("  2. Start managing issues: issue-make add --type feat path/to/description.md")
    return 0


def cmd_add(args: argparse.Namespace, config: AppConfig) -> int:
    issue_type = parse_issue_type(args.type)
    if issue_type is None:
        print(f"✗ Invalid issue type: {args.type}", file=sys.stderr)
        print("  Valid types: feat, todo, bug, refact", file=sys.stderr)
        return 1
    try:
        description = args.path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"✗ Failed to read description file: {args.path}", file=sys.stderr)
        print(f"  Error: {e}", file=sys.stderr)
        return 1
    if not description.strip():
        print(f"✗ Description file is empty: {args.path}", file=sys.stderr)
        return 1

    if not config_exists(args.config):
        print('⚠ Config file not found. Run "issue-make init" to enable AI titles.')
    generator = TitleGenerator(config.ai)
    if generator.is_configured():
        print("Generating title with AI...")
        generated = generator.generate_title(description)
        if generated.success and generated.title:
            title = generated.title
            print(f"✓ Generated title: {title}")
        else:
            print(f"⚠ AI generation failed ({generated.error}), using fallback title")
            title = fallback_title()
    else:
        print("⚠ AI not configured, using fallback title")
        title = fallback_title()

    result = _store(args, config).create(title, issue_type, description)
    if not result.success or result.issue is None:
        print("✗ Failed to create issue", file=sys.stderr)
        print(f"  Error: {result.error_message}", file=sys.stderr)
        return 1
    print("✓ Issue created successfully")
    print(f"  ID: {result.issue.number}")
    print(f"  Title: {result.issue.title}")
    print(f"  Type: {result.issue.type.value}")
    print(f"  File: {result.file_path}")
    return 0


def cmd_open(args: argparse.Namespace, config: AppConfig) -> int:
    store = _store(args, config)
    result = store.open(args.identifier)
    if result.success and result.issue is not None:
        print("✓ Issue opened successfully")
        print(f"  ID: {result.issue.number}")
        print(f"  Title: {result.issue.title}")
        print(f"  Type: {result.issue.type.value}")
        print(f"  Solution file: {result.solution_path}")
        print(f"✓ Updated brief: {store.brief.path}")
        return 0
    if result.moved:
        print(f"⚠ Issue #{result.issue.number} moved to doing, but the follow-up failed", file=sys.stderr)
        print(f"  Error: {result.error_message}", file=sys.stderr)
        print("  Fix the problem and update the brief by hand; do not open the issue again.", file=sys.stderr)
        return 1
    print("✗ Failed to open issue", file=sys.stderr)
    print(f"  Error: {result.error_message}", file=sys.stderr)
    return 1


def cmd_close(args: argparse.Namespace, config: AppConfig) -> int:
    store = _store(args, config)
    result = store.close(args.identifier)
    if result.success:
        print("✓ Issue closed successfully")
        print(f"  Archived: {result.archived_path}")
        print(f"✓ Cleaned up brief: {store.brief.path}")
        return 0
    if isinstance(result.error, BriefError):
        print("⚠ Issue archived, but the brief was not cleaned up", file=sys.stderr)
        print(f"  Archived: {result.archived_path}", file=sys.stderr)
        print(f"  Error: {result.error_message}", file=sys.stderr)
        return 1
    print("✗ Failed to close issue", file=sys.stderr)
    print(f"  Error: {result.error_message}", file=sys.stderr)
    if isinstance(result.error, SolutionMissingError):
        print("  Hint: create .issues/solution.md first or ask your agent to create it", file=sys.stderr)
    return 1


def cmd_list(args: argparse.Namespace, config: AppConfig) -> int:
    result = _store(args, config).list_issues()
    if not result.success:
        print("✗ Failed to list issues", file=sys.stderr)
        print(f"  Error: {result.error_message}", file=sys.stderr)
        return 1
    for path, err in result.skipped:
        print(f"⚠ Skipped {path}: {err}", file=sys.stderr)
    if not result.issues:
        print("No issues found.")
        return 0
    header = ["Index", "Type", "Status", "Title"]
    rows = [[str(i.number), i.type.value, i.stage.value, i.title] for i in result.issues]
    widths = [max(len(row[col]) for row in [header] + rows) for col in range(len(header))]

    def fmt(row: list[str]) -> str:
        return "  ".join(cell.ljust(widths[col]) for col, cell in enumerate(row)).rstrip()

    print(fmt(header))
    print("  ".join("-" * w for w in widths))
    for row in rows:
        print(fmt(row))
    return 0


def cmd_test_llm(args: argparse.Namespace, config: AppConfig) -> int:
    if not config_exists(args.config):
        print("✗ Configuration not found", file=sys.stderr)
        print("  Please run: issue-make init", file=sys.stderr)
        return 1
    ai = config.ai
    print("Testing LLM connection...")
    print(f"  URL: {ai.url}")
    print(f"  Model: {ai.model}")
    try:
        reply, seconds = TitleGenerator(ai).check_connection()
    except TitleGeneratorError as e:
        print("✗ LLM connection failed", file=sys.stderr)
        print(f"  Error: {e}", file=sys.stderr)
        return 1
    print("✓ LLM connection successful")
    print(f"  Response: {reply}")
    print(f"  Duration: {int(seconds * 1000)}ms")
    return 0


COMMANDS = {
    "add": cmd_add,
    "open": cmd_open,
    "close": cmd_close,
    "list": cmd_list,
    "test-llm": cmd_test_llm,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse args, load settings, dispatch."""
    args = parse_args(argv)
    if args.command == "init":
        return cmd_init(args)
    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"✗ Failed to read settings: {e}", file=sys.stderr)
        return 1
    IssueMakeLogging(config.logging, verbose=args.verbose).setup()
    try:
        return COMMANDS[args.command](args, config)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
