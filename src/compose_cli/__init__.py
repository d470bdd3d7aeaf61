#!/usr/bin/env python3
# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "typer",
#     "rich",
#     "httpx",
#     "truststore",
# ]
# ///
"""
Instant Compose CLI - bootstrap Compose Multiplatform projects

Usage:
    compose init <project-name>
    compose update

Or run the single-file build directly:
    python compose.pyz init <project-name>
"""

import ssl
import sys
from pathlib import Path

import httpx
import truststore
import typer
from rich.align import Align
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from typer.core import TyperGroup

from .archive import fetch_and_extract
from .config import DEFAULT_PROJECT_NAME, RuntimeConfig, github_auth_headers
from .errors import DirectoryExistsError, ReplaceError
from .project import MODIFICATION_STEPS, apply_modifications
from .tracker import StepTracker
from .updater import self_update

__version__ = "0.4.0"

ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

BANNER = """
╦╔╗╔╔═╗╔╦╗╔═╗╔╗╔╔╦╗  ╔═╗╔═╗╔╦╗╔═╗╔═╗╔═╗╔═╗
║║║║╚═╗ ║ ╠═╣║║║ ║   ║  ║ ║║║║╠═╝║ ║╚═╗║╣
╩╝╚╝╚═╝ ╩ ╩ ╩╝╚╝ ╩   ╚═╝╚═╝╩ ╩╩  ╚═╝╚═╝╚═╝
"""

TAGLINE = "Instant Compose - Compose Multiplatform in one command"
HELP_URL = "https://github.com/EmilFlach/instant-compose"


def build_client(verify: bool = True) -> httpx.Client:
    return httpx.Client(verify=ssl_context if verify else False)


def show_banner(console):
    """Display the ASCII art banner."""
    banner_lines = BANNER.strip().split('\n')
    colors = ["bright_blue", "blue", "cyan"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        styled_banner.append(line + "\n", style=colors[i % len(colors)])

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


def _runtime(ctx: typer.Context) -> RuntimeConfig:
    if ctx.obj is None:
        ctx.obj = RuntimeConfig.discover()
    return ctx.obj


def _debug_panel() -> Panel:
    env_pairs = [
        ("Python", sys.version.split()[0]),
        ("Platform", sys.platform),
        ("CWD", str(Path.cwd())),
    ]
    label_width = max(len(k) for k, _ in env_pairs)
    env_lines = [f"{k.ljust(label_width)} → [bright_black]{v}[/bright_black]" for k, v in env_pairs]
    return Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta")


def validate_project_name(name: str) -> str:
    name = name.strip()
    if not name or name in {".", ".."} or "/" in name or "\\" in name:
        raise typer.BadParameter(f"'{name}' is not a valid project directory name", param_hint="'PROJECT_NAME'")
    return name


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner(_runtime(ctx).console)
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="compose",
    help="Bootstrap Compose Multiplatform projects",
    epilog=f"If you have any problems or need help, do not hesitate to ask at {HELP_URL}",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


def _version_callback(value: bool):
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        None, "-v", "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
):
    """Show banner when no subcommand is provided."""
    runtime = _runtime(ctx)
    if ctx.invoked_subcommand is None:
        show_banner(runtime.console)
        runtime.console.print(Align.center("[dim]Run 'compose --help' for usage information[/dim]"))
        runtime.console.print()


@app.command()
def init(
    ctx: typer.Context,
    project_name: str = typer.Argument(None, help=f"Name for your new project directory (default: {DEFAULT_PROJECT_NAME})"),
    skip_tls: bool = typer.Option(False, "--skip-tls", help="Skip SSL/TLS verification (not recommended)"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose diagnostic output for network and extraction failures"),
):
    """
    Initialize a new Compose Multiplatform project.

    This command will:
    1. Download a generated project from the Kotlin Multiplatform wizard
    2. Extract it into a new directory named after the project
    3. Add the dev module, CI workflows, docs and web entry points

    Examples:
        compose init
        compose init MyApp
    """
    runtime = _runtime(ctx)
    console = runtime.console
    name = validate_project_name(project_name or DEFAULT_PROJECT_NAME)
    project_path = Path.cwd() / name

    if project_path.exists():
        error_panel = Panel(
            f"Directory '[cyan]{name}[/cyan]' already exists\n"
            "Please choose a different project name or remove the existing directory.",
            title="[red]Directory Conflict[/red]",
            border_style="red",
            padding=(1, 2)
        )
        runtime.err_console.print()
        runtime.err_console.print(error_panel)
        raise typer.Exit(1)

    show_banner(console)
    setup_lines = [
        "[cyan]Instant Compose Project Setup[/cyan]",
        "",
        f"{'Project':<15} [green]{name}[/green]",
        f"{'Target Path':<15} [dim]{project_path}[/dim]",
    ]
    console.print(Panel("\n".join(setup_lines), border_style="cyan", padding=(1, 2)))

    tracker = StepTracker("Initialize Instant Compose Project")
    for key, label in [
        ("fetch", "Download project from wizard"),
        ("extract", "Extract project"),
        ("cleanup", "Remove temporary archive"),
        *MODIFICATION_STEPS,
        ("final", "Finalize"),
    ]:
        tracker.add(key, label)

    failure = None
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        try:
            with build_client(verify=not skip_tls) as client:
                fetch_and_extract(client, name, project_path, runtime.wizard_url, tracker=tracker, console=console)
            apply_modifications(project_path, name, runtime.resources, tracker=tracker)
            tracker.complete("final", "project ready")
        except DirectoryExistsError as e:
            tracker.error("extract", str(e))
            failure = e
        except Exception as e:
            tracker.error(tracker.running or "final", str(e))
            failure = e

    console.print(tracker.render())
    if failure is not None:
        runtime.err_console.print(Panel(f"Failed to initialize project: {escape(str(failure))}", title="Failure", border_style="red"))
        if debug:
            runtime.err_console.print(_debug_panel())
        raise typer.Exit(1)

    console.print("\n[bold green]✨ Project initialized successfully![/bold green]")
    steps_lines = [
        f"1. Go to the project folder: [cyan]cd {name}[/cyan]",
        "2. Start the dev app: [cyan]./gradlew :dev:run[/cyan]",
    ]
    console.print()
    console.print(Panel("\n".join(steps_lines), title="Next Steps", border_style="cyan", padding=(1, 2)))


@app.command()
def update(
    ctx: typer.Context,
    skip_tls: bool = typer.Option(False, "--skip-tls", help="Skip SSL/TLS verification (not recommended)"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose diagnostic output for network and download failures"),
    github_token: str = typer.Option(None, "--github-token", help="GitHub token to use for API requests (or set GH_TOKEN or GITHUB_TOKEN environment variable)"),
):
    """Update the CLI tool to the latest released version."""
    runtime = _runtime(ctx)
    console = runtime.console
    show_banner(console)
    console.print(Panel(
        f"{'Installed At':<15} [dim]{runtime.install_path or 'not a release artifact'}[/dim]\n"
        f"{'Current':<15} [green]{__version__}[/green]",
        title="[cyan]Instant Compose Update[/cyan]",
        border_style="cyan",
        padding=(1, 2),
    ))

    tracker = StepTracker("Update Instant Compose CLI")
    for key, label in [
        ("tag", "Fetch latest version"),
        ("download", "Download release"),
        ("replace", "Replace installed CLI"),
    ]:
        tracker.add(key, label)

    release = None
    failure = None
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        try:
            with build_client(verify=not skip_tls) as client:
                release = self_update(
                    client,
                    runtime.install_path,
                    runtime.release_api_url,
                    runtime.artifact_url,
                    headers=github_auth_headers(github_token),
                    tracker=tracker,
                )
        except Exception as e:
            tracker.error(tracker.running or "tag", str(e))
            failure = e

    console.print(tracker.render())
    if isinstance(failure, ReplaceError):
        runtime.err_console.print(Panel(
            f"{escape(str(failure))}\nYou might need to replace it manually.\n"
            f"New version location: [cyan]{failure.temp_path}[/cyan]",
            title="Update Incomplete",
            border_style="red",
        ))
        raise typer.Exit(1)
    if failure is not None:
        runtime.err_console.print(Panel(f"Update failed: {escape(str(failure))}", title="Failure", border_style="red"))
        if debug:
            runtime.err_console.print(_debug_panel())
        raise typer.Exit(1)

    console.print(f"\n[bold green]✓ Successfully updated to {release.tag}[/bold green]")


def main():
    app()


if __name__ == "__main__":
    main()
