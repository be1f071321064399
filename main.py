#!/usr/bin/env python3
"""
HolistiqueSync - Static Site Content Sync
=========================================

Command line entry point for the blog and events sync runs.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py sync-blog [--dry-run]     # Import new Medium posts
    python main.py sync-events [--dry-run]   # Refresh Eventbrite listings
    python main.py send-newsletter           # Announce the newest post

The sync commands print ``POSTS_CHANGED=true|false`` or
``EVENTS_CHANGED=true|false`` on their last line for CI workflows.
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from sitesync.config.settings import get_settings
from sitesync.delivery.newsletter import NewsletterNotifier
from sitesync.models import PostsManifest
from sitesync.processing.pipeline import (
    BlogSyncPipeline,
    EventSyncPipeline,
    SyncResult,
    SyncStatus,
)
from sitesync.storage.manifest_repository import ManifestRepository
from sitesync.utils.exceptions import SiteSyncError, get_user_friendly_message
from sitesync.utils.logging import configure_application_logging

console = Console()


def _load_settings(ctx):
    """Load settings and configure logging once per invocation."""
    try:
        settings = get_settings()
    except SiteSyncError as e:
        console.print(f"[bold red]❌ Configuration error: {e.user_message}[/bold red]")
        sys.exit(1)

    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get("debug") else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
    )
    return settings


def _report(result: SyncResult, label: str) -> None:
    """Print a run summary and the machine-readable change flag."""
    if result.dry_run:
        console.print("[yellow]📋 Dry run mode - no files were written[/yellow]")

    for diagnostic in result.diagnostics:
        console.print(f"  [yellow]⚠️  Warning: {diagnostic}[/yellow]")

    if result.status == SyncStatus.ABORTED:
        message = get_user_friendly_message(result.error) if result.error else "Sync failed"
        console.print(f"[bold red]❌ {message}[/bold red]")
    elif result.status == SyncStatus.NO_CHANGES:
        console.print(f"[green]✅ {result.message or 'Nothing to do.'}[/green]")
    else:
        for name in result.written:
            console.print(f"  📝 Wrote {name}")
        console.print(f"[bold green]✅ Sync complete! {result.message}[/bold green]")

    # Plain output so CI can grep it
    click.echo(f"{label}={'true' if result.changed else 'false'}")


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx, debug):
    """HolistiqueSync - keep the static site in step with Medium and Eventbrite."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking HolistiqueSync Configuration[/bold blue]")
    settings = _load_settings(ctx)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    site_root = settings.site.root_path
    blog_manifest = settings.site_file(settings.blog.manifest_file)
    rows = [
        ("Site root", site_root.is_dir(), str(site_root.resolve())),
        ("Blog feed", True, settings.blog.feed_url),
        ("Posts manifest", blog_manifest.is_file(), str(blog_manifest)),
        ("Eventbrite", settings.events.is_configured(),
         "Token and organization ID set" if settings.events.is_configured() else "Not configured (events sync skipped)"),
        ("Newsletter", settings.newsletter.is_configured(),
         "Webhook and secret set" if settings.newsletter.is_configured() else "Not configured (sends skipped)"),
        ("Logging", True,
         f"Level: {settings.get_effective_log_level()}, File: {settings.logging.file_path or '-'}"),
    ]

    required_ok = True
    for name, ok, details in rows:
        table.add_row(name, "✅ Valid" if ok else "⚠️  Missing", details)
        if name in ("Site root", "Posts manifest") and not ok:
            required_ok = False

    console.print(table)

    if required_ok:
        console.print("[bold green]✅ All required configuration checks passed![/bold green]")
    else:
        console.print("[bold red]❌ Configuration validation failed[/bold red]")
        sys.exit(1)


@cli.command()
@click.option("--dry-run", is_flag=True, help="Compute everything but write nothing")
@click.option("--notify", is_flag=True, help="Send the newsletter for each imported post")
@click.pass_context
def sync_blog(ctx, dry_run, notify):
    """Import new posts from the Medium RSS feed."""
    console.print("[bold blue]📡 Syncing blog posts[/bold blue]")
    settings = _load_settings(ctx)

    result = BlogSyncPipeline(settings, dry_run=dry_run).run()
    _report(result, "POSTS_CHANGED")

    if result.status == SyncStatus.ABORTED:
        sys.exit(1)

    if notify and result.changed and not dry_run:
        notifier = NewsletterNotifier(settings)
        try:
            for entry in result.new_entries:
                notifier.send(entry)
        except SiteSyncError as e:
            console.print(f"[bold red]❌ {e.message}[/bold red]")
            sys.exit(1)


@cli.command()
@click.option("--dry-run", is_flag=True, help="Compute everything but write nothing")
@click.pass_context
def sync_events(ctx, dry_run):
    """Refresh event listings from Eventbrite."""
    console.print("[bold blue]📅 Syncing events[/bold blue]")
    settings = _load_settings(ctx)

    result = EventSyncPipeline(settings, dry_run=dry_run).run()
    _report(result, "EVENTS_CHANGED")

    if result.status == SyncStatus.ABORTED:
        sys.exit(1)


@cli.command()
@click.pass_context
def send_newsletter(ctx):
    """Announce the most recently imported post."""
    console.print("[bold blue]✉️  Sending newsletter[/bold blue]")
    settings = _load_settings(ctx)

    notifier = NewsletterNotifier(settings)
    if not notifier.is_configured:
        console.print("[yellow]Newsletter webhook or secret not set. Skipping newsletter send.[/yellow]")
        return

    try:
        manifest = ManifestRepository(
            settings.site_file(settings.blog.manifest_file), PostsManifest
        ).load()
        latest = manifest.latest_entry()
        if latest is None:
            console.print("[yellow]No posts found in manifest.[/yellow]")
            return

        console.print(f"Sending newsletter for: \"{latest.title}\"")
        notifier.send(latest)
    except SiteSyncError as e:
        console.print(f"[bold red]❌ {e.message}[/bold red]")
        sys.exit(1)

    console.print("[bold green]✅ Newsletter sent successfully.[/bold green]")


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 HolistiqueSync interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[bold red]❌ Unexpected error: {e}[/bold red]")
        sys.exit(1)
