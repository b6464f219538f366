"""crowcode CLI - browse AI skills, MCP servers, tools and plugins.

Usage:
    crowcode skills -q pdf          # Search skills
    crowcode servers -c Databases   # Filter MCP servers by category
    crowcode plugins -s official    # Official plugins only
    crowcode show skills pdf-writer # Item detail (+ --live GitHub stats)
    crowcode install servers github-mcp

Account commands:
    crowcode login / logout / whoami
    crowcode fav skills pdf-writer  # Toggle a favorite
    crowcode favorites
    crowcode submit / submissions
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

from . import __version__
from .config import STORE_BACKENDS, Settings
from .logs import configure_logging

console = Console()


def cmd_config(args: argparse.Namespace) -> int:
    """Show or update persistent settings."""
    s = Settings.load()
    changed = False
    if args.store:
        s.store = args.store
        changed = True
    if args.data_dir is not None:
        s.data_dir = args.data_dir
        changed = True
    if args.firestore_project is not None:
        s.firestore_project = args.firestore_project
        changed = True
    if args.new_log_level:
        s.log_level = args.new_log_level.upper()
        changed = True

    if changed:
        path = s.save()
        console.print(f"[green]✓ Wrote config:[/green] {path}")

    lines = [
        f"[bold]Store:[/bold] {s.store}",
        f"[bold]Data dir:[/bold] {s.resolved_data_dir()}",
        f"[bold]Firestore project:[/bold] {s.firestore_project or '-'}",
        f"[bold]GitHub token:[/bold] {'set' if s.github_token else 'not set'}",
        f"[bold]Log level:[/bold] {s.log_level} ({s.log_format})",
    ]
    console.print(Panel("\n".join(lines), title="crowcode config", border_style="cyan"))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crowcode",
        description="crowcode: a directory of AI agent skills, MCP servers, tools and plugins",
    )
    parser.add_argument("--version", action="version", version=f"crowcode {__version__}")
    parser.add_argument("--log-level", help="Override log level (DEBUG, INFO, WARNING, ERROR)")

    sub = parser.add_subparsers(dest="subcmd")

    from .catalog.commands import add_catalog_commands
    add_catalog_commands(sub)

    from .account import add_account_commands
    add_account_commands(sub)

    p_config = sub.add_parser("config", help="Show or change settings")
    p_config.add_argument("--store", choices=STORE_BACKENDS, help="Profile store backend")
    p_config.add_argument("--data-dir", help="Directory for the local store")
    p_config.add_argument("--firestore-project", help="Google Cloud project for Firestore")
    p_config.add_argument("--set-log-level", dest="new_log_level", help="Persist a log level")
    p_config.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.load()
    configure_logging(args.log_level or settings.log_level, settings.log_format)

    if not getattr(args, "func", None):
        parser.print_help()
        raise SystemExit(0)

    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main(sys.argv[1:])
