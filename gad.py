#!/usr/bin/env python3
"""
GitHub Agile Dashboard

Sprint, backlog and review views of a GitHub repository's issues and pull requests.
Run with commands to print them and exit, or without to start an interactive prompt.
"""
# /// script
# requires-python = ">=3.8"
# dependencies = [
#     "requests",
#     "python-dotenv",
#     "rich",
# ]
# ///

import argparse
import sys
from typing import Callable, List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.text import Text

try:
    import readline  # noqa: F401  (line editing and history for input())
except ImportError:
    pass

from config import (
    PROMPT,
    EXIT_COMMANDS,
    DashboardConfig,
    get_default_remote,
    get_github_user,
    get_github_token,
    get_cache_dir,
    validate_configuration
)
from dashboard import Dashboard, Result


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='gad',
        description='Sprint, backlog and review views of a GitHub repository',
        epilog='''
Commands:
  status      Number of issues and pull requests fetched
  sprint      Current sprint (open milestone with the nearest due date)
  sprints     All open milestones
  backlog     Open milestones after the current sprint
  review      Pull requests awaiting your review
  changelog   Markdown changelog of the current sprint
  estimate    Open issues without a story point estimate
  refresh     Fetch again (unchanged responses come from the cache)
  reset       Clear the cache and fetch everything again

Defaults:
  owner/repo  from the origin remote of the current git repository
  user        git config --global github.user, $GITHUB_USER or $USER
  token       git config --global github.token or $GITHUB_TOKEN
        ''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('commands', nargs='*', help='Commands to run (interactive prompt when omitted)')
    parser.add_argument('--owner', '-o', help='Repository owner/organization')
    parser.add_argument('--repo', '-r', help='Repository name')
    parser.add_argument('--user', '-u', help='Your GitHub login (used by the review command)')
    parser.add_argument('--token', '--password', '-t', '-p', dest='token', help='GitHub personal access token')
    parser.add_argument('--cache-dir', '--cacheDir', '-c', dest='cache_dir', help='Response cache directory')
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> DashboardConfig:
    """Resolve command line arguments against git config and environment defaults"""
    owner, repo = args.owner, args.repo
    if not owner or not repo:
        default_owner, default_repo = get_default_remote()
        owner = owner or default_owner
        repo = repo or default_repo

    return DashboardConfig(
        owner=owner or '',
        repo=repo or '',
        user=(args.user or get_github_user()).strip(),
        token=args.token or get_github_token(),
        cache_dir=args.cache_dir or get_cache_dir(),
    )


def print_result(console: Console, result: Result):
    """Print a command result, one entry per block"""
    if isinstance(result, str):
        result = [result]
    for entry in result:
        console.print(Text(entry))


def run_interactive(dashboard: Dashboard, console: Console, read_line: Callable[[str], str] = input):
    """Prompt for commands until quit, exit or end of input"""
    while True:
        try:
            line = read_line(PROMPT)
        except EOFError:
            console.print()
            return
        except KeyboardInterrupt:
            console.print()
            continue

        line = line.strip()
        if not line:
            continue
        if line.lower() in EXIT_COMMANDS:
            return

        print_result(console, dashboard.execute(line))


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    # Load environment variables from .env file
    load_dotenv()

    args = parse_arguments(argv)
    config = build_config(args)
    console = Console()

    config_status = validate_configuration(config)
    if not config_status['repository']:
        console.print("❌ Could not determine the repository. Use --owner and --repo.", style="red")
        return 1
    for issue in config_status['issues']:
        console.print(f"⚠️  {issue}", style="yellow")

    console.print(f"Loading repository: {config.repository}")
    dashboard = Dashboard(config)

    try:
        print_result(console, dashboard.execute('refresh'))

        if args.commands:
            for command in args.commands:
                print_result(console, dashboard.execute(command))
            return 0 if dashboard.project is not None else 1

        run_interactive(dashboard, console)
    except KeyboardInterrupt:
        console.print("\n⚠️  Interrupted by user.", style="yellow")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
