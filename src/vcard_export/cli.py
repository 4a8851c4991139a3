from __future__ import annotations

import enum
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from .backend import BackendClient
from .config import ensure_workspace
from .encoder import encode_profile
from .export import Acknowledgement, ExportSession, export_contact
from .io import load_profile, read_vcards_from_files, write_card
from .model import Tier
from .photo import resolve_photo
from .report import print_export_result, print_inspect_table
from .runtime import LocalRuntime, UserAgent
from .server import PORT, serve as run_server

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="vcard-export: turn digital business card profiles into .vcf files.",
)
console = Console()
err_console = Console(stderr=True)


class TierChoice(str, enum.Enum):
    auto = "auto"
    minimal = "minimal"
    simple = "simple"
    full = "full"


def pick_tier(choice: TierChoice, user_agent: UserAgent) -> Tier:
    """`auto` means the mobile card for phones, the full card everywhere else."""
    if choice is TierChoice.auto:
        return Tier.SIMPLE if user_agent.is_mobile else Tier.FULL
    return Tier(choice.value)


def _read_profile(path: Path):
    try:
        return load_profile(path)
    except (OSError, ValueError) as exc:
        err_console.print(f"[bold red]Cannot read profile {path}:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ── `encode` command ───────────────────────────────────────────────────────────

@app.command()
def encode(
    profile_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Profile JSON file"),
    tier: Tier = typer.Option(Tier.FULL, "--tier", "-t", case_sensitive=False),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to this .vcf instead of stdout"),
    no_photo: bool = typer.Option(False, "--no-photo", help="Never embed the profile photo"),
    workspace: Path | None = typer.Option(None, "--workspace", "-w", help="Workspace root (default: cwd)"),
) -> None:
    """Encode one profile as a vCard."""
    _, settings = ensure_workspace(workspace)
    profile = _read_profile(profile_path)

    photo = None
    if tier is Tier.FULL and not no_photo:
        photo = resolve_photo(
            profile.personal_info.profile_photo,
            max_bytes=settings.max_photo_bytes,
            timeout=settings.photo_timeout,
        )

    card = encode_profile(
        profile,
        tier,
        photo=photo,
        public_base_url=settings.public_base_url or None,
        phone_region=settings.phone_region or None,
    )
    if output is None:
        typer.echo(card.text, nl=False)
        return
    write_card(card, output)
    console.print(f"[green]Wrote {card.filename} ({tier.value}) -> {output}[/green]")


# ── `export` command ───────────────────────────────────────────────────────────

@app.command()
def export(
    profile_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Profile JSON file"),
    tier: TierChoice = typer.Option(TierChoice.auto, "--tier", "-t", case_sensitive=False),
    user_agent: str = typer.Option("", "--user-agent", help="Pretend to be this browser"),
    downloads: Path | None = typer.Option(None, "--downloads", "-d", help="Where saved cards land"),
    api: str | None = typer.Option(None, "--api", help="Backend base URL for fallback and analytics"),
    no_photo: bool = typer.Option(False, "--no-photo", help="Never embed the profile photo"),
    launch: bool = typer.Option(False, "--open", help="Open the saved card with the default app"),
    workspace: Path | None = typer.Option(None, "--workspace", "-w", help="Workspace root (default: cwd)"),
) -> None:
    """Save a profile's contact card the way the "Save Contact" button does."""
    paths, settings = ensure_workspace(workspace)
    profile = _read_profile(profile_path)
    if no_photo:
        profile.personal_info.profile_photo = None

    ua = UserAgent(user_agent)
    runtime = LocalRuntime(downloads or paths.downloads_dir, ua, launch=launch, console=console)
    backend = BackendClient(api or settings.api_base_url, timeout=settings.fallback_timeout)

    result = export_contact(
        profile,
        pick_tier(tier, ua),
        runtime=runtime,
        session=ExportSession.start(),
        backend=backend,
        settings=settings,
        acknowledgement=Acknowledgement(),
    )
    print_export_result(result, out=console)
    if not result.ok:
        raise typer.Exit(code=1)


# ── `inspect` command ──────────────────────────────────────────────────────────

@app.command()
def inspect(
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help=".vcf file(s)"),
) -> None:
    """Parse .vcf files and show what a contacts app would import."""
    pairs = read_vcards_from_files(files)
    if not pairs:
        err_console.print("[bold red]No vCards found.[/bold red]")
        raise typer.Exit(code=2)
    print_inspect_table(pairs, out=console)


# ── `serve` command ────────────────────────────────────────────────────────────

@app.command()
def serve(
    profiles: Path = typer.Option(Path("profiles"), "--profiles", "-p", help="Folder of profile JSON files"),
    port: int = typer.Option(PORT, "--port"),
    host: str = typer.Option("127.0.0.1", "--host"),
    workspace: Path | None = typer.Option(None, "--workspace", "-w", help="Workspace root (default: cwd)"),
) -> None:
    """Serve profiles, server-rendered cards and analytics locally."""
    paths, _ = ensure_workspace(workspace)
    console.print(f"\n  Profiles : {profiles}")
    console.print(f"  Analytics: {paths.var_dir / 'analytics.jsonl'}")
    console.print(f"\n  http://{host}:{port}\n  Press Ctrl-C to stop\n")
    run_server(profiles, paths.var_dir, host=host, port=port)


if __name__ == "__main__":
    app()
