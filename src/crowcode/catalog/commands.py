"""Catalog CLI commands for crowcode.

Browsing commands:
- skills/servers/tools/plugins (search + facets)
- categories
- show
- install / setup-script
- trending
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Dict, FrozenSet, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import Settings
from .filter import FilterCriteria, category_counts, filter_items, source_counts
from .github import GitHubClient, format_stars
from .models import ALL_CATEGORIES, CatalogItem, Domain, MCPServer, Plugin, SourceFacet, Tool, categories_for
from .store import CatalogError, CatalogStore

console = Console()

LIST_COMMANDS = {
    "skills": Domain.SKILLS,
    "servers": Domain.MCP_SERVERS,
    "tools": Domain.TOOLS,
    "plugins": Domain.PLUGINS,
}


def _favorite_ids(domain: Domain) -> FrozenSet[str]:
    """Favorites of the signed-in user, or nothing when anonymous."""
    from ..account import open_session_and

    async def read(session):
        return session.favorites.state.ids(domain)

    return asyncio.run(open_session_and(read))


def _truncate(text: str, width: int = 60) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def _parse_domain(value: str) -> Optional[Domain]:
    try:
        return Domain.parse(value)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return None


# --- Listing ---

def cmd_list(args: argparse.Namespace) -> int:
    """Search and filter one domain."""
    domain: Domain = args.domain
    catalog = CatalogStore.default()

    category = args.category or ALL_CATEGORIES
    if category not in categories_for(domain):
        console.print(f"[red]Unknown category:[/red] {category}")
        console.print("Available: " + ", ".join(categories_for(domain)))
        return 1

    criteria = FilterCriteria(
        query=args.query or "",
        category=category,
        source=getattr(args, "source", None),
    )
    items = filter_items(catalog.items(domain), criteria)

    favorites = _favorite_ids(domain)
    if args.favorites:
        items = [i for i in items if i.id in favorites]

    if getattr(args, "live", False) and items:
        client = GitHubClient(token=Settings.load().github_token)
        items = client.refresh_servers(items)

    if not items:
        console.print(f"[yellow]No {domain.label.lower()} match your search.[/yellow]")
        return 0

    table = Table(title=domain.label)
    table.add_column("", width=1)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Category")
    if domain is Domain.MCP_SERVERS:
        table.add_column("Stars", justify="right")
    if domain is Domain.PLUGINS:
        table.add_column("Source")
    table.add_column("Description")

    for item in items:
        row = ["[yellow]★[/yellow]" if item.id in favorites else "", item.id, item.name, item.category]
        if isinstance(item, MCPServer):
            row.append(format_stars(item.stars))
        if isinstance(item, Plugin):
            row.append(item.source.value)
        row.append(_truncate(item.description))
        table.add_row(*row)

    console.print(table)
    console.print(f"\nShowing {len(items)} of {len(catalog.items(domain))}")
    return 0


def cmd_categories(args: argparse.Namespace) -> int:
    """Show category (and source) counts for a domain."""
    domain = _parse_domain(args.domain)
    if domain is None:
        return 1
    items = CatalogStore.default().items(domain)
    counts = category_counts(items)

    table = Table(title=f"{domain.label} categories")
    table.add_column("Category", style="bold")
    table.add_column("Items", justify="right")
    for category in categories_for(domain):
        table.add_row(category, str(counts.get(category, 0)))
    console.print(table)

    if domain is Domain.PLUGINS:
        sources = source_counts(items)
        console.print(
            f"Official: {sources[SourceFacet.OFFICIAL.value]}  "
            f"Community: {sources[SourceFacet.COMMUNITY.value]}"
        )
    return 0


# --- Detail ---

def cmd_show(args: argparse.Namespace) -> int:
    """Show one item in detail."""
    from ..install import item_install_command

    domain = _parse_domain(args.domain)
    if domain is None:
        return 1
    try:
        item = CatalogStore.default().get(domain, args.id)
    except CatalogError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    lines = [
        f"[bold]{item.name}[/bold]  [dim]{item.id}[/dim]",
        "",
        item.description,
        "",
        f"[bold]Category:[/bold] {item.category}",
    ]
    if item.author:
        lines.append(f"[bold]Author:[/bold] {item.author}")
    if item.tags:
        lines.append(f"[bold]Tags:[/bold] {', '.join(item.tags)}")
    if isinstance(item, MCPServer):
        lines.append(f"[bold]Stars:[/bold] {format_stars(item.stars)}")
    if isinstance(item, Plugin):
        lines.append(f"[bold]Source:[/bold] {item.source.value}")
    if isinstance(item, Tool) and item.open_source:
        lines.append("[bold]Open source:[/bold] yes")
    if item.link:
        lines.append(f"[bold]Link:[/bold] {item.link}")

    if args.live and item.github_url:
        client = GitHubClient(token=Settings.load().github_token)
        stats = client.fetch_repo(item.github_url)
        if stats is None:
            lines.append("[yellow]Live GitHub stats unavailable.[/yellow]")
        else:
            lines.append(
                f"[bold]GitHub:[/bold] ★ {format_stars(stats.stars)}  "
                f"forks {stats.forks}  issues {stats.open_issues}"
                + (f"  {stats.language}" if stats.language else "")
            )

    command = item_install_command(item)
    if command:
        lines += ["", "[bold]Install:[/bold]", f"  {command}"]

    if item.id in _favorite_ids(domain):
        lines += ["", "[yellow]★ In your favorites[/yellow]"]

    console.print(Panel("\n".join(lines), title=domain.label, border_style="cyan"))
    return 0


# --- Install ---

def cmd_install(args: argparse.Namespace) -> int:
    """Print the install command for an item."""
    from ..install import item_install_command

    domain = _parse_domain(args.domain)
    if domain is None:
        return 1
    try:
        item = CatalogStore.default().get(domain, args.id)
    except CatalogError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    command = item_install_command(
        item,
        global_install=args.global_install,
        target=args.target,
        platform_name=args.platform,
    )
    if not command:
        console.print(f"[yellow]No install command for {item.name}.[/yellow]")
        return 1
    # Plain print so the command can be piped
    print(command)
    return 0


def cmd_setup_script(args: argparse.Namespace) -> int:
    """Print a setup script for the given (or favorited) skills and servers."""
    from ..install import install_script, setup_script

    catalog = CatalogStore.default()
    skills: List[str] = args.skill or []
    servers: List[str] = args.server or []
    if not skills and not servers:
        skills = sorted(_favorite_ids(Domain.SKILLS))
        servers = sorted(_favorite_ids(Domain.MCP_SERVERS))

    found: Dict[Domain, List[CatalogItem]] = {Domain.SKILLS: [], Domain.MCP_SERVERS: []}
    names: Dict[Domain, List[str]] = {Domain.SKILLS: [], Domain.MCP_SERVERS: []}
    for domain, ids in ((Domain.SKILLS, skills), (Domain.MCP_SERVERS, servers)):
        for item_id in ids:
            item = catalog.find(domain, item_id)
            names[domain].append(item.name if item else item_id)
            if item is not None:
                found[domain].append(item)

    if args.commands:
        script = install_script(found[Domain.SKILLS], found[Domain.MCP_SERVERS],
                                global_install=args.global_install, target=args.target)
    else:
        script = setup_script(names[Domain.SKILLS], names[Domain.MCP_SERVERS])
    print(script, end="")
    return 0


# --- GitHub ---

def cmd_trending(args: argparse.Namespace) -> int:
    """List popular MCP repositories on GitHub."""
    client = GitHubClient(token=Settings.load().github_token)
    hits = client.trending_mcp_repos()
    if not hits:
        console.print("[yellow]Could not reach GitHub (or no results).[/yellow]")
        return 1

    table = Table(title="Trending MCP repositories")
    table.add_column("Repository", style="cyan")
    table.add_column("Stars", justify="right")
    table.add_column("Description")
    for hit in hits:
        table.add_row(hit.name, format_stars(hit.stars), _truncate(hit.description))
    console.print(table)
    return 0


# --- Parser Setup ---

def add_catalog_commands(subparsers: argparse._SubParsersAction) -> None:
    """Add browsing commands to the main parser."""

    for name, domain in LIST_COMMANDS.items():
        p = subparsers.add_parser(name, help=f"Search {domain.label.lower()}")
        p.add_argument("--query", "-q", default="", help="Case-insensitive text search")
        p.add_argument("--category", "-c", default=ALL_CATEGORIES, help="Category (default: All)")
        if domain is Domain.PLUGINS:
            p.add_argument(
                "--source", "-s",
                choices=[f.value for f in SourceFacet],
                default=SourceFacet.ALL.value,
                help="Official or community plugins",
            )
        p.add_argument("--favorites", "-f", action="store_true", help="Only show favorites")
        if domain is Domain.MCP_SERVERS:
            p.add_argument("--live", action="store_true", help="Refresh stars and descriptions from GitHub")
        p.set_defaults(func=cmd_list, domain=domain)

    # categories
    p_categories = subparsers.add_parser("categories", help="Show categories for a domain")
    p_categories.add_argument("domain", help="skills, servers, tools or plugins")
    p_categories.set_defaults(func=cmd_categories)

    # show
    p_show = subparsers.add_parser("show", help="Show item detail")
    p_show.add_argument("domain", help="skills, servers, tools or plugins")
    p_show.add_argument("id", help="Item ID")
    p_show.add_argument("--live", action="store_true", help="Fetch live GitHub stats")
    p_show.set_defaults(func=cmd_show)

    # install
    p_install = subparsers.add_parser("install", help="Print the install command for an item")
    p_install.add_argument("domain", help="skills, servers, tools or plugins")
    p_install.add_argument("id", help="Item ID")
    p_install.add_argument("--global", dest="global_install", action="store_true",
                           help="Install skills for all projects")
    p_install.add_argument("--target", default="claude", choices=["claude", "cursor", "codex", "generic"],
                           help="Agent whose skills folder to use")
    p_install.add_argument("--platform", choices=["macos", "linux", "windows"],
                           help="Platform for tool installs (default: detected)")
    p_install.set_defaults(func=cmd_install)

    # setup-script
    p_setup = subparsers.add_parser("setup-script", help="Print a setup script")
    p_setup.add_argument("--skill", action="append", help="Skill ID (repeatable)")
    p_setup.add_argument("--server", action="append", help="MCP server ID (repeatable)")
    p_setup.add_argument("--commands", action="store_true",
                         help="Emit the real install commands instead of a summary")
    p_setup.add_argument("--global", dest="global_install", action="store_true",
                         help="Clone skills for all projects (with --commands)")
    p_setup.add_argument("--target", default="claude", choices=["claude", "cursor", "codex", "generic"],
                         help="Agent whose skills folder to use (with --commands)")
    p_setup.set_defaults(func=cmd_setup_script)

    # trending
    p_trending = subparsers.add_parser("trending", help="Popular MCP repositories on GitHub")
    p_trending.set_defaults(func=cmd_trending)
