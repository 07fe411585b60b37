"""
Command-line interface of the multipart upload client.
"""

import asyncio
import logging
import signal
import sys
from contextlib import nullcontext
from typing import Any, Optional

import typer

from .application.startup import UploadApplication, create_key_value_store
from .core.domain.files import LocalFile
from .core.domain.models import SessionStatus, UploadProgress, UploadResult, UploadStrategy
from .core.exceptions import UploadCancelledError, UploadError
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig
from .infrastructure.storage.session_store import LocalSessionStore

cli = typer.Typer(
    name="multipart-relay",
    help="Resumable multipart uploads to object storage through presigned URLs"
)

logger = logging.getLogger(__name__)

EXIT_CANCELLED = 130


def load_config(
    config_file: Optional[str],
    backend_url: Optional[str] = None,
    token: Optional[str] = None,
    project: Optional[str] = None,
    chunk_size_mb: Optional[int] = None,
    log_level: Optional[str] = None,
    debug: bool = False
) -> ApplicationConfig:
    """Load configuration and apply command line overrides."""
    config = ConfigLoader().load_config(config_file)

    if backend_url:
        config.backend.base_url = backend_url
    if token:
        config.backend.token = token
    if project:
        config.upload.project_id = project
    if chunk_size_mb:
        config.upload.chunk_size_mb = chunk_size_mb
    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.debug = True
        config.logging.level = "DEBUG"

    return config


def open_file(config: ApplicationConfig, path: str) -> LocalFile:
    return LocalFile.from_path(path, hash_head=config.upload.fingerprint_content_hash)


class ProgressBarReporter:
    """Feeds orchestrator progress into a typer progress bar."""

    def __init__(self, bar: Any) -> None:
        self._bar = bar
        self._reported = 0

    def __call__(self, progress: UploadProgress) -> None:
        delta = progress.bytes_uploaded - self._reported
        if delta > 0:
            self._bar.update(delta)
            self._reported = progress.bytes_uploaded


async def run_upload(
    config: ApplicationConfig,
    path: str,
    timeout: Optional[float] = None,
    show_progress: bool = True
) -> UploadResult:
    """
    Upload one file, cancelling on SIGINT or when ``timeout`` expires.
    """
    file = open_file(config, path)

    async with UploadApplication(config) as app:
        orchestrator = app.orchestrator
        loop = asyncio.get_running_loop()

        timer = None
        if timeout:
            timer = loop.call_later(
                timeout, orchestrator.cancel, f"Upload timed out after {timeout}s")

        try:
            loop.add_signal_handler(signal.SIGINT, orchestrator.cancel, "Upload canceled by user.")
            signal_installed = True
        except (NotImplementedError, RuntimeError):
            signal_installed = False

        bar_context: Any = (
            typer.progressbar(length=max(file.size, 1), label=file.name)
            if show_progress else nullcontext())
        try:
            with bar_context as bar:
                reporter = ProgressBarReporter(bar) if bar is not None else None
                return await orchestrator.upload(
                    file,
                    config.upload.project_id,
                    chunk_size=config.upload.chunk_size_bytes,
                    progress_callback=reporter)
        finally:
            if timer is not None:
                timer.cancel()
            if signal_installed:
                loop.remove_signal_handler(signal.SIGINT)


async def run_abort(config: ApplicationConfig, path: str, project: Optional[str] = None) -> bool:
    """Abort under ``project`` if given, else under the session's own project."""
    file = open_file(config, path)
    async with UploadApplication(config) as app:
        return await app.orchestrator.abort_saved(file, project)


async def run_status(config: ApplicationConfig, path: str) -> Optional[SessionStatus]:
    file = open_file(config, path)
    async with UploadApplication(config) as app:
        return await app.orchestrator.describe(file)


@cli.command()
def upload(
    path: str = typer.Argument(..., help="File to upload"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Owning project ID"
    ),
    chunk_size_mb: Optional[int] = typer.Option(
        None, "--chunk-size-mb", min=1, max=1024, help="Multipart chunk size in MB"
    ),
    backend_url: Optional[str] = typer.Option(
        None, "--backend-url", help="Backend API base URL"
    ),
    token: Optional[str] = typer.Option(
        None, "--token", envvar="MULTIPART_RELAY_API_TOKEN", help="Bearer token"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Cancel the upload after this many seconds"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Do not draw a progress bar"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug logging"
    )
) -> None:
    """Upload a file, resuming a previous attempt when possible."""
    config = load_config(
        config_file, backend_url, token, project, chunk_size_mb, log_level, debug)

    try:
        result = asyncio.run(run_upload(config, path, timeout, not no_progress))
    except UploadCancelledError as e:
        typer.echo(f"{e.message}. Server-side upload aborted and local state removed.", err=True)
        sys.exit(EXIT_CANCELLED)
    except (UploadError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.strategy is UploadStrategy.SINGLE:
        typer.echo(f"Uploaded {result.file_name} ({result.file_size} bytes) in a single request")
    else:
        resumed = f", {result.parts_skipped} resumed" if result.resumed else ""
        typer.echo(
            f"Uploaded {result.file_name} ({result.file_size} bytes) in "
            f"{len(result.parts)} parts{resumed}, upload id {result.upload_id}")
        if result.message:
            typer.echo(result.message)


@cli.command()
def abort(
    path: str = typer.Argument(..., help="File whose cached upload to abort"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Owning project ID"
    ),
    token: Optional[str] = typer.Option(
        None, "--token", envvar="MULTIPART_RELAY_API_TOKEN", help="Bearer token"
    )
) -> None:
    """Abort the cached multipart upload of a file."""
    config = load_config(config_file, token=token, project=project)

    try:
        aborted = asyncio.run(run_abort(config, path, project))
    except OSError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if aborted:
        typer.echo("Server-side multipart aborted and local state removed.")
    else:
        typer.echo("No abortable upload found for this file.", err=True)
        sys.exit(1)


@cli.command()
def status(
    path: str = typer.Argument(..., help="File to inspect"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    token: Optional[str] = typer.Option(
        None, "--token", envvar="MULTIPART_RELAY_API_TOKEN", help="Bearer token"
    )
) -> None:
    """Show the cached session of a file and the server's progress."""
    config = load_config(config_file, token=token)

    try:
        session_status = asyncio.run(run_status(config, path))
    except OSError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if session_status is None:
        typer.echo("No upload in progress for this file.")
        return

    session = session_status.session
    typer.echo(f"Upload id: {session.upload_id}")
    typer.echo(f"Project: {session.project_id}")
    typer.echo(f"Chunk size: {session.chunk_size} bytes")
    if session_status.remote_error:
        typer.echo(f"Server status unavailable: {session_status.remote_error}")
    else:
        typer.echo(
            f"Server reported {session_status.parts_confirmed}/"
            f"{session_status.parts_total} parts uploaded")


@cli.command()
def sessions(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    )
) -> None:
    """List cached upload sessions."""
    config = load_config(config_file)
    store = LocalSessionStore(create_key_value_store(config.sessions))

    cached = store.list_sessions()
    if not cached:
        typer.echo("No cached upload sessions.")
        return

    for key, session in cached.items():
        typer.echo(f"{session.upload_id}  {session.project_id}  {session.file_name}  {key}")


@cli.command()
def init_config(
    output: str = typer.Option(
        "config.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""
    config = ApplicationConfig()
    config_loader = ConfigLoader()

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
    except ValueError as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(...,
                                      help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""
    config_loader = ConfigLoader()

    try:
        config = config_loader.load_config(config_file)
        typer.echo(f"Configuration file {config_file} is valid")
        typer.echo(f"Backend: {config.backend.base_url}")
        typer.echo(f"Project: {config.upload.project_id}")
    except (ValueError, TypeError, FileNotFoundError) as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
