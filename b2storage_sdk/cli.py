"""
Command-line interface for the B2 storage SDK.

This module provides the ``b2storage`` tool: bucket management plus
concurrent ``get``/``put`` of files through the TransferOrchestrator.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table

from . import __version__
from .bucket import Bucket
from .client import B2Client
from .config import ClientConfig
from .exceptions import B2Error, ConfigurationError, NotFoundError
from .models import BucketType, FileInfo, TransferResult
from .orchestrator import TransferOrchestrator
from .utils import format_file_size, format_timestamp, parse_metadata


# Initialize Rich consoles
console = Console()
err_console = Console(stderr=True)


class CLIContext:
    """State shared between the group and its commands for one invocation."""

    def __init__(self, config: ClientConfig, bucket_name: Optional[str] = None, verbose: bool = False):
        self.config = config
        self.bucket_name = bucket_name
        self.verbose = verbose
        self._client: Optional[B2Client] = None

    def get_client(self) -> B2Client:
        """Get the client, creating it on first use."""
        if self._client is None:
            self._client = B2Client(self.config)
        return self._client

    def require_bucket_name(self) -> str:
        if not self.bucket_name:
            raise ConfigurationError("No bucket specified. Use -b/--bucket or set B2_BUCKET.", config_key="bucket")
        return self.bucket_name

    def get_bucket(self) -> Bucket:
        return self.get_client().get_bucket(self.require_bucket_name())


def setup_logging(debug: bool):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    # urllib3 connection chatter drowns out the API call log
    logging.getLogger("urllib3").setLevel(logging.INFO if debug else logging.WARNING)


def fail(message: str):
    console.print(f"❌ {message}", markup=False, highlight=False)
    sys.exit(1)


def run_transfers(
    transfer: Callable[[Any], FileInfo],
    items: List[Any],
    threads: int,
    cancel_on_error: bool,
    description: str,
    show_progress: bool,
) -> List[TransferResult]:
    """Run ``transfer`` over ``items`` on a worker pool, optionally with a progress bar."""
    if not show_progress:
        orchestrator = TransferOrchestrator(transfer, workers=threads, cancel_on_error=cancel_on_error)
        return orchestrator.run(items)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=err_console,
    ) as progress:
        task = progress.add_task(description, total=len(items))
        orchestrator = TransferOrchestrator(
            transfer,
            workers=threads,
            cancel_on_error=cancel_on_error,
            on_result=lambda result: progress.advance(task),
        )
        return orchestrator.run(items)


def report_results(results: Iterable[TransferResult], verb: str) -> int:
    """Print one line per result and return the number of failed or skipped items."""
    failures = 0
    for result in results:
        if result.ok:
            console.print(f"✅ {verb}: {result.file.name} (ID: {result.file.file_id})", markup=False)
        elif result.skipped:
            failures += 1
            console.print(f"⏭ Skipped: {result.item}", markup=False)
        else:
            failures += 1
            console.print(f"❌ Failed: {result.item}: {result.error}", markup=False)
    return failures


@click.group()
@click.option('--account', envvar='B2_ACCOUNT_ID', help='The account ID to use')
@click.option('--app-key', envvar='B2_APP_KEY', help='The application key to use')
@click.option('-b', '--bucket', envvar='B2_BUCKET', help='The bucket to access')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='JSON config file')
@click.option('-d', '--debug', is_flag=True, help='Debug API requests')
@click.option('-v', '--verbose', is_flag=True, help='Display verbose output')
@click.version_option(__version__, prog_name='b2storage')
@click.pass_context
def cli(ctx, account, app_key, bucket, config_path, debug, verbose):
    """b2storage - command line access to Backblaze B2 buckets."""
    setup_logging(debug)

    try:
        config = ClientConfig.load(config_path, account_id=account, application_key=app_key)
    except ConfigurationError as e:
        fail(str(e))

    ctx.obj = CLIContext(config, bucket_name=bucket, verbose=verbose)


@cli.command()
@click.argument('files', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('-j', '--threads', default=5, show_default=True, type=click.IntRange(min=1),
              help='Maximum simultaneous uploads')
@click.option('-m', '--meta', multiple=True, help='File info entry as key=value (repeatable)')
@click.option('--cancel-on-error', is_flag=True, help='Stop starting new uploads after a failure')
@click.pass_obj
def put(obj: CLIContext, files, threads, meta, cancel_on_error):
    """Upload one or more files to the bucket."""
    try:
        metadata = parse_metadata(meta)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--meta')

    try:
        bucket = obj.get_bucket()
    except B2Error as e:
        fail(f"Upload failed: {e}")

    def upload(path: str) -> FileInfo:
        with open(path, 'rb') as f:
            return bucket.upload_file(Path(path).name, f, metadata or None)

    results = run_transfers(upload, list(files), threads, cancel_on_error, "Uploading", obj.verbose)
    if report_results(results, "Uploaded"):
        sys.exit(1)


def resolve_output(output: str, names: List[str]):
    """
    Work out where downloads go.

    Returns ``(directory, file_name)``; ``file_name`` is set only when a single
    download is written to an explicit file path.
    """
    target = Path(output)
    if target.is_dir():
        return target, None
    if target.exists():
        if len(names) > 1:
            raise click.UsageError(f"Single (existing) output file specified for multiple targets: {output}")
        return target.parent, target.name

    parent = target.parent
    if not parent.is_dir():
        raise click.UsageError(f"Directory does not exist: {parent}")
    if len(names) > 1:
        return target, None
    return parent, target.name


@cli.command()
@click.argument('files', nargs=-1, required=True)
@click.option('-j', '--threads', default=5, show_default=True, type=click.IntRange(min=1),
              help='Maximum simultaneous downloads')
@click.option('-o', '--output', default='.', show_default=True, help='Output file name or directory')
@click.option('--discard', is_flag=True, help='Discard downloaded data')
@click.option('--cancel-on-error', is_flag=True, help='Stop starting new downloads after a failure')
@click.pass_obj
def get(obj: CLIContext, files, threads, output, discard, cancel_on_error):
    """Download one or more files from the bucket."""
    out_dir, out_name = resolve_output(output, list(files))

    try:
        bucket = obj.get_bucket()
    except B2Error as e:
        fail(f"Download failed: {e}")

    def download(name: str) -> FileInfo:
        file_info, stream = bucket.download_file_by_name(name)
        with stream:
            if discard:
                for _ in stream.iter_content():
                    pass
                return file_info

            path = out_dir / (out_name or name)
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                with open(path, 'wb') as f:
                    for chunk in stream.iter_content():
                        f.write(chunk)
            except BaseException:
                if path.exists():
                    os.remove(path)
                raise
        return file_info

    results = run_transfers(download, list(files), threads, cancel_on_error, "Downloading", obj.verbose)
    if report_results(results, "Downloaded"):
        sys.exit(1)


@cli.command(name='list')
@click.option('-a', '--all-versions', is_flag=True, help='List all versions of files')
@click.option('--prefix', default='', help='Only list names starting with this prefix')
@click.option('--page-size', default=1000, show_default=True, type=click.IntRange(1, 10000),
              help='Files requested per API call')
@click.pass_obj
def list_files(obj: CLIContext, all_versions, prefix, page_size):
    """List files in the bucket."""
    try:
        bucket = obj.get_bucket()
        if all_versions:
            files = list(bucket.iter_file_versions(prefix=prefix, page_size=page_size))
        else:
            files = list(bucket.iter_file_names(prefix=prefix, page_size=page_size))
    except B2Error as e:
        fail(f"Failed to list files: {e}")

    if not obj.verbose:
        for file in files:
            console.print(f"{file.name}:{file.file_id}" if all_versions else file.name, markup=False, highlight=False)
        return

    if not files:
        console.print("No files found.")
        return

    table = Table(title=f"Contents of {bucket.name}/")
    if all_versions:
        table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Size", style="yellow")
    table.add_column("Uploaded", style="magenta")
    table.add_column("Action", style="blue")

    for file in files:
        row = [
            file.name,
            format_file_size(file.content_length),
            format_timestamp(file.upload_timestamp),
            file.action.value,
        ]
        if all_versions:
            row.insert(0, file.file_id)
        table.add_row(*row)

    console.print(table)


@cli.command()
@click.pass_obj
def listbuckets(obj: CLIContext):
    """List buckets in the account."""
    try:
        buckets = obj.get_client().list_buckets()
    except B2Error as e:
        fail(f"Failed to list buckets: {e}")

    if not obj.verbose:
        for bucket in buckets:
            console.print(bucket.name, markup=False, highlight=False)
        return

    table = Table(title="Buckets")
    table.add_column("Name", style="green")
    table.add_column("Id", style="cyan")
    table.add_column("Type", style="yellow")
    for bucket in buckets:
        table.add_row(bucket.name, bucket.bucket_id, bucket.bucket_type.value)
    console.print(table)


@cli.command()
@click.option('-p', '--public', is_flag=True, help='Make bucket contents public')
@click.pass_obj
def createbucket(obj: CLIContext, public):
    """Create a new bucket."""
    bucket_type = BucketType.ALL_PUBLIC if public else BucketType.ALL_PRIVATE

    try:
        bucket = obj.get_client().create_bucket(obj.require_bucket_name(), bucket_type)
    except B2Error as e:
        fail(f"Failed to create bucket: {e}")

    console.print(f"Created bucket: {bucket.name}")


@cli.command()
@click.pass_obj
def deletebucket(obj: CLIContext):
    """Delete an empty bucket."""
    try:
        bucket = obj.get_bucket()
        bucket.delete()
    except B2Error as e:
        fail(f"Failed to delete bucket: {e}")

    console.print(f"Deleted bucket: {bucket.name}")


def delete_versions(bucket: Bucket, name: str, all_versions: bool, verbose: bool) -> int:
    """Delete the newest (or every) version of ``name``; returns how many were deleted."""
    count = 0
    for version in bucket.iter_file_versions(prefix=name):
        if version.name != name:
            break
        if verbose and all_versions:
            console.print(f"  {version.file_id} {format_timestamp(version.upload_timestamp)}")
        bucket.delete_file_version(name, version.file_id)
        count += 1
        if not all_versions:
            break

    if count == 0:
        raise NotFoundError(f"File not found: {name}", resource=name)
    return count


@cli.command()
@click.argument('files', nargs=-1, required=True)
@click.option('--hide', is_flag=True, help='Hide the file, leaving previous versions in place')
@click.option('-a', '--all', 'all_versions', is_flag=True, help='Remove all versions of a file')
@click.pass_obj
def delete(obj: CLIContext, files, hide, all_versions):
    """
    Delete files from the bucket.

    Give a file name to delete its latest version (or all of them with --all,
    or hide it with --hide). Give fileName:fileId to delete one specific version.
    """
    try:
        bucket = obj.get_bucket()

        for file in files:
            if obj.verbose:
                console.print(file, markup=False, highlight=False)

            name, sep, file_id = file.partition(':')
            if sep:
                bucket.delete_file_version(name, file_id)
            elif hide:
                bucket.hide_file(file)
            else:
                delete_versions(bucket, file, all_versions, obj.verbose)
    except B2Error as e:
        fail(f"Delete failed: {e}")


if __name__ == '__main__':
    cli()
