"""Account CLI commands for crowcode.

- login/logout/whoami
- fav (toggle) / favorites
- submit / submissions
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .auth import AuthProvider, Credentials, LocalAuth
from .catalog.models import CATEGORIES, Domain
from .catalog.store import CatalogError, CatalogStore
from .config import Settings
from .favorites import ToggleStatus
from .session import IdentitySession, SessionState
from .store import StoreError, open_store
from .submissions import SubmissionForm, SubmissionService

console = Console()

R = TypeVar("R")


def prompt_credentials(provider: AuthProvider) -> Optional[Credentials]:
    """Ask who is signing in. Empty email means the user backed out."""
    console.print(f"Signing in with [bold]{provider.name.title()}[/bold] (leave email empty to cancel)")
    email = console.input("Email: ").strip()
    if not email:
        return None
    name = console.input("Display name (optional): ").strip()
    return Credentials(email=email, display_name=name)


async def open_session_and(
    fn: Callable[[IdentitySession], Awaitable[R]],
    prompt: Optional[Callable[[AuthProvider], Optional[Credentials]]] = None,
    settings: Optional[Settings] = None,
) -> R:
    """Run ``fn`` inside a started, hydrated session."""
    settings = settings or Settings.load()
    store = open_store(settings)
    auth = LocalAuth(prompt=prompt or prompt_credentials)
    async with IdentitySession(auth, store) as session:
        await session.wait_settled()
        return await fn(session)


# --- Authentication Commands ---

def cmd_login(args: argparse.Namespace) -> int:
    """Sign in with an identity provider."""
    try:
        provider = AuthProvider.parse(args.provider)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    prompt = None
    if args.email:
        def prompt(_provider: AuthProvider) -> Credentials:
            return Credentials(email=args.email, display_name=args.name or "")

    async def run(session: IdentitySession) -> int:
        result = await session.sign_in(provider)
        if result.cancelled:
            return 0
        if not result.ok:
            console.print(f"[red]{result.message}[/red]")
            return 1
        console.print(f"[green]Signed in as {result.identity.label}.[/green]")
        if session.profile is None:
            console.print("[yellow]Profile unavailable; favorites will not be shown.[/yellow]")
        return 0

    return asyncio.run(open_session_and(run, prompt=prompt))


def cmd_logout(args: argparse.Namespace) -> int:
    """Sign out."""
    async def run(session: IdentitySession) -> int:
        if session.state is not SessionState.AUTHENTICATED:
            console.print("Not signed in.")
            return 0
        await session.sign_out()
        console.print("[green]Signed out.[/green]")
        return 0

    return asyncio.run(open_session_and(run))


def cmd_whoami(args: argparse.Namespace) -> int:
    """Show the signed-in identity and favorite counts."""
    async def run(session: IdentitySession) -> int:
        identity = session.identity
        if identity is None:
            console.print("Not signed in. Run [bold]crowcode login[/bold].")
            return 1
        lines = [
            f"[bold]Name:[/bold] {identity.display_name or '-'}",
            f"[bold]Email:[/bold] {identity.email or '-'}",
            f"[bold]UID:[/bold] {identity.uid}",
            f"[bold]Providers:[/bold] {', '.join(identity.provider_data) or '-'}",
            "",
        ]
        for domain in Domain:
            lines.append(f"{domain.label}: {len(session.favorites.state.ids(domain))} favorite(s)")
        if session.profile is None:
            lines += ["", "[yellow]Profile store unreachable.[/yellow]"]
        console.print(Panel("\n".join(lines), title="Account", border_style="cyan"))
        return 0

    return asyncio.run(open_session_and(run))


# --- Favorites Commands ---

def cmd_fav(args: argparse.Namespace) -> int:
    """Toggle an item in favorites."""
    try:
        domain = Domain.parse(args.domain)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    catalog = CatalogStore.default()
    try:
        item = catalog.get(domain, args.id)
    except CatalogError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    async def run(session: IdentitySession) -> int:
        result = await session.toggle_favorite(domain, item.id)
        if result.status is ToggleStatus.SIGN_IN_REQUIRED:
            console.print("[yellow]Sign in to save favorites:[/yellow] crowcode login")
            return 1
        if result.status is ToggleStatus.APPLIED:
            verb = "Added" if result.favorited else "Removed"
            prep = "to" if result.favorited else "from"
            console.print(f"[green]{verb} {item.name} {prep} favorites.[/green]")
            return 0
        if result.message:
            console.print(f"[red]{result.message}[/red]")
        return 1

    return asyncio.run(open_session_and(run))


def cmd_favorites(args: argparse.Namespace) -> int:
    """List favorites across all domains."""
    catalog = CatalogStore.default()

    async def run(session: IdentitySession) -> int:
        if session.identity is None:
            console.print("[yellow]Sign in to see favorites:[/yellow] crowcode login")
            return 1
        if session.favorites.state.is_empty():
            console.print("No favorites yet. Use [bold]crowcode fav <domain> <id>[/bold].")
            return 0

        table = Table(title="Favorites")
        table.add_column("Domain")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="bold")
        for domain in Domain:
            for item_id in sorted(session.favorites.state.ids(domain)):
                item = catalog.find(domain, item_id)
                # Ids of items no longer in the catalog are kept but dimmed
                name = item.name if item else "[dim](no longer listed)[/dim]"
                table.add_row(domain.label, item_id, name)
        console.print(table)
        return 0

    return asyncio.run(open_session_and(run))


# --- Submission Commands ---

def cmd_submit(args: argparse.Namespace) -> int:
    """Submit a new skill for review."""
    form = SubmissionForm(
        name=args.name if args.name is not None else console.input("Skill name: "),
        description=args.description if args.description is not None else console.input("Description: "),
        category=args.category,
        github_url=args.github_url if args.github_url is not None else console.input("GitHub URL: "),
        tags=args.tags if args.tags is not None else console.input("Tags (comma separated): "),
    )

    async def run(session: IdentitySession) -> int:
        service = SubmissionService(session.store)
        result = await service.submit(session.identity, form)
        if result.ok:
            console.print(f"[green]Skill submitted for review.[/green] ID: {result.submission_id}")
            return 0
        for field_name, message in result.errors.items():
            console.print(f"[red]{field_name}:[/red] {message}")
        if result.message:
            console.print(f"[red]{result.message}[/red]")
        return 1

    return asyncio.run(open_session_and(run))


def cmd_submissions(args: argparse.Namespace) -> int:
    """List your submissions."""
    async def run(session: IdentitySession) -> int:
        if session.identity is None:
            console.print("[yellow]Sign in first:[/yellow] crowcode login")
            return 1
        service = SubmissionService(session.store)
        try:
            submissions = await service.list_for(session.identity)
        except StoreError as e:
            console.print(f"[red]Error:[/red] {e}")
            return 1
        if not submissions:
            console.print("No submissions yet.")
            return 0
        table = Table(title="Your submissions")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="bold")
        table.add_column("Category")
        table.add_column("Status")
        for s in submissions:
            table.add_row(s.id or "", s.name, s.category, s.status.value)
        console.print(table)
        return 0

    return asyncio.run(open_session_and(run))


# --- Parser Setup ---

def add_account_commands(subparsers: argparse._SubParsersAction) -> None:
    p_login = subparsers.add_parser("login", help="Sign in")
    p_login.add_argument("--provider", "-p", default="github", help="google, github or apple")
    p_login.add_argument("--email", help="Email (skips the prompt)")
    p_login.add_argument("--name", help="Display name")
    p_login.set_defaults(func=cmd_login)

    p_logout = subparsers.add_parser("logout", help="Sign out")
    p_logout.set_defaults(func=cmd_logout)

    p_whoami = subparsers.add_parser("whoami", help="Show the signed-in account")
    p_whoami.set_defaults(func=cmd_whoami)

    p_fav = subparsers.add_parser("fav", help="Toggle an item in favorites")
    p_fav.add_argument("domain", help="skills, servers, tools or plugins")
    p_fav.add_argument("id", help="Item ID")
    p_fav.set_defaults(func=cmd_fav)

    p_favorites = subparsers.add_parser("favorites", help="List favorites")
    p_favorites.set_defaults(func=cmd_favorites)

    p_submit = subparsers.add_parser("submit", help="Submit a skill for review")
    p_submit.add_argument("--name")
    p_submit.add_argument("--description")
    p_submit.add_argument("--category", default="Development", choices=list(CATEGORIES[Domain.SKILLS]))
    p_submit.add_argument("--github-url")
    p_submit.add_argument("--tags")
    p_submit.set_defaults(func=cmd_submit)

    p_submissions = subparsers.add_parser("submissions", help="List your submissions")
    p_submissions.set_defaults(func=cmd_submissions)
