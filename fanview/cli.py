"""CLI commands for Fanview."""

import asyncio
import base64
import logging
import re
import secrets
import shutil
import sys
from pathlib import Path

import click


@click.group()
@click.version_option(package_name="fanview")
def cli():
    """Fanview - subscription content platform API."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=5000, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(host, port, reload, workers, log_level):
    """Run the Fanview API server."""
    import signal

    from hypercorn.asyncio import serve as hypercorn_serve
    from hypercorn.config import Config

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = Config()
    config.application_path = "fanview.asgi:app"
    config.bind = [f"{host}:{port}"]
    config.workers = 1 if reload else workers
    config.loglevel = log_level.upper()
    config.include_server_header = False

    if reload:
        config.use_reloader = True
        from hypercorn.run import run
        run(config)
        return

    from fanview.asgi import create_app

    app = create_app()
    shutdown_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_event.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)
    try:
        loop.run_until_complete(
            hypercorn_serve(app, config, shutdown_trigger=shutdown_event.wait)
        )
    finally:
        loop.close()


@cli.command()
@click.option(
    "--write",
    type=click.Path(),
    default=None,
    help="Write SECRET_KEY to a .env file",
)
@click.option(
    "--format",
    "fmt",
    default="urlsafe",
    type=click.Choice(["urlsafe", "hex", "base64"]),
    help="Output format for the secret key",
)
@click.option("--length", default=32, type=int, help="Number of random bytes")
def secret(write, fmt, length):
    """Generate a secure secret key."""
    if fmt == "urlsafe":
        key = secrets.token_urlsafe(length)
    elif fmt == "hex":
        key = secrets.token_hex(length)
    else:
        key = base64.b64encode(secrets.token_bytes(length)).decode("ascii")

    if not write:
        click.echo(key)
        return

    env_path = Path(write)
    env_content = env_path.read_text() if env_path.exists() else ""

    secret_key_pattern = re.compile(r"^SECRET_KEY=.*$", re.MULTILINE)
    new_line = f"SECRET_KEY={key}"

    if secret_key_pattern.search(env_content):
        env_content = secret_key_pattern.sub(new_line, env_content)
    else:
        if env_content and not env_content.endswith("\n"):
            env_content += "\n"
        env_content += new_line + "\n"

    env_path.write_text(env_content)
    click.echo(f"SECRET_KEY written to {env_path}")


def _run_alembic(args: list[str]) -> None:
    """Build an Alembic Config programmatically and run the given command."""
    from alembic.config import CommandLine, Config

    package_dir = Path(__file__).parent
    alembic_ini = package_dir / "alembic.ini"
    if not alembic_ini.exists():
        click.echo("Error: Could not find alembic.ini", err=True)
        sys.exit(1)

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(package_dir / "alembic"))

    cmd = CommandLine()
    options = cmd.parser.parse_args(args)
    if not hasattr(options, "cmd"):
        cmd.parser.error("too few arguments")
    else:
        cfg.cmd_opts = options
        fn, positional, kwarg = options.cmd
        fn(
            cfg,
            *[getattr(options, k, None) for k in positional],
            **{k: getattr(options, k, None) for k in kwarg},
        )


@cli.command(
    context_settings=dict(
        ignore_unknown_options=True,
        allow_extra_args=True,
    )
)
@click.pass_context
def db(ctx):
    """Run database migrations via Alembic.

    \b
    Examples:
        fanview db upgrade head    # Apply all migrations
        fanview db downgrade -1    # Rollback one migration
        fanview db current         # Show current revision
        fanview db history         # Show migration history
    """
    if not ctx.args:
        click.echo(ctx.get_help())
        return
    _run_alembic(ctx.args)


def _with_session(fn):
    """Run ``fn(session, settings)`` against the configured database."""
    from fanview.asgi import create_db_config
    from fanview.config import get_settings

    settings = get_settings()
    db_config = create_db_config(settings)

    async def _main():
        try:
            async with db_config.get_session() as session:
                return await fn(session, settings)
        finally:
            await db_config.get_engine().dispose()

    return asyncio.run(_main())


@cli.command("backfill-folders")
def backfill_folders():
    """Assign storage folder names to creators that have none."""
    from fanview.asgi import create_placement

    async def _run(session, settings):
        resolver = create_placement(settings).resolver
        return await resolver.backfill(session)

    assigned = _with_session(_run)
    for creator_id, folder_name in assigned.items():
        click.echo(f"{creator_id} -> {folder_name}")
    click.echo(f"Assigned {len(assigned)} folder name(s)")


@cli.command("backfill-usernames")
def backfill_usernames():
    """Assign usernames to creators that have none."""
    from fanview.db.services import creator_service

    async def _run(session, settings):
        return await creator_service.backfill_usernames(session)

    assigned = _with_session(_run)
    for creator_id, username in assigned.items():
        click.echo(f"{creator_id} -> {username}")
    click.echo(f"Assigned {len(assigned)} username(s)")


@cli.command("migrate-content-layout")
@click.option("--dry-run", is_flag=True, help="Only print what would be moved")
def migrate_content_layout(dry_run):
    """Move legacy uploads/content/<folder>/ files to uploads/creators/<folder>/content/."""
    from fanview.config import get_settings

    root = get_settings().upload_root
    legacy_root = root / "content"
    if not legacy_root.is_dir():
        click.echo(f"No legacy content directory at {legacy_root}")
        return

    moved = 0
    moved_folders = []
    for folder in sorted(p for p in legacy_root.iterdir() if p.is_dir()):
        target_dir = root / "creators" / folder.name / "content"
        for item in sorted(p for p in folder.iterdir() if p.is_file()):
            target = target_dir / item.name
            click.echo(f"{item} -> {target}")
            if dry_run:
                continue
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(item), str(target))
            moved += 1
        if dry_run:
            continue
        moved_folders.append(folder.name)
        if not any(folder.iterdir()):
            folder.rmdir()

    click.echo(f"Moved {moved} file(s)")
    if dry_run or not moved:
        return

    from sqlalchemy import func, update

    from fanview.db.models import Content

    async def _rewrite_urls(session, settings):
        prefix = settings.uploads.public_prefix.rstrip("/")
        rewritten = 0
        for name in moved_folders:
            legacy = f"{prefix}/content/{name}/"
            current = f"{prefix}/creators/{name}/content/"
            result = await session.execute(
                update(Content)
                .where(Content.content_url.startswith(legacy))
                .values(content_url=func.replace(Content.content_url, legacy, current))
                .execution_options(synchronize_session=False)
            )
            rewritten += result.rowcount
        await session.commit()
        return rewritten

    rewritten = _with_session(_rewrite_urls)
    click.echo(f"Rewrote {rewritten} content URL(s)")


@cli.command("check-db")
def check_db():
    """Show row counts for every Fanview table."""
    from sqlalchemy import func, select

    from fanview.db import models

    tables = [
        models.User,
        models.Creator,
        models.Content,
        models.ContentLike,
        models.Subscription,
        models.Wallet,
        models.WalletTransaction,
    ]

    async def _run(session, settings):
        counts = {}
        for model in tables:
            counts[model.__tablename__] = await session.scalar(select(func.count()).select_from(model))
        return counts

    for table, count in _with_session(_run).items():
        click.echo(f"{table:<22} {count}")


@cli.command("send-test-email")
@click.argument("recipient")
def send_test_email(recipient):
    """Check the SMTP connection and send a test email to RECIPIENT."""
    from fanview.config import get_settings
    from fanview.lib.email import EmailDeliveryError, EmailService

    settings = get_settings()
    service = EmailService(settings.email, settings.frontend_url)
    if not settings.email.enabled:
        click.echo("Email delivery is disabled (email.enabled is false)", err=True)
        sys.exit(1)

    if not asyncio.run(service.verify_connection()):
        click.echo(f"Could not connect to SMTP server {settings.email.host}:{settings.email.port}", err=True)
        sys.exit(1)
    try:
        asyncio.run(service.send_test_email(recipient))
    except EmailDeliveryError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Test email sent to {recipient}")

