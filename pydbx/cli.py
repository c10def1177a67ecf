"""CLI interface for pydbx."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import DbxClient
from .auth import require_token
from .exceptions import (
    DbxAPIError,
    DbxFormatError,
    DbxNotFoundError,
    SyncUsageError,
)
from .formatting import DEFAULT_LONG_FORMAT, ListingFormatter
from .models import RemoteEntry
from .output import OutputFormatter
from .sync import (
    ChunkedTransferEngine,
    RemoteTreeWalker,
    SyncEngine,
    SyncOperations,
    SyncOptions,
    SyncPair,
    SyncReport,
)
from .utils import (
    EXIT_FATAL,
    EXIT_USAGE,
    REMOTE_PREFIX,
    format_size,
    is_remote_path,
    join_remote,
    normalize_remote_path,
    parent_paths,
    relative_remote_path,
)

logger = logging.getLogger(__name__)

HUMAN_LONG_FORMAT = DEFAULT_LONG_FORMAT.replace("%10b", "%10s")


def _configure_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
            force=True,
        )
        logging.getLogger("pydbx").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def _make_client(ctx: Any, out: OutputFormatter) -> DbxClient:
    token = require_token(ctx, out)
    return DbxClient(access_token=token)


def _compile_format(ctx: Any, out: OutputFormatter, template: str) -> ListingFormatter:
    try:
        return ListingFormatter(template)
    except DbxFormatError as e:
        out.error(f"Invalid format: {e}")
        ctx.exit(EXIT_USAGE)
        raise


def _depth(base: str, entry: RemoteEntry) -> int:
    relative_path = relative_remote_path(base, entry.path)
    return relative_path.count("/") + 1 if relative_path else 0


@click.group()
@click.option(
    "--token",
    "-t",
    envvar="PYDBX_ACCESS_TOKEN",
    help="Access token (default: $PYDBX_ACCESS_TOKEN or config file)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging output")
@click.version_option(version=__version__, prog_name="pydbx")
@click.pass_context
def main(ctx: Any, token: Optional[str], verbose: bool, debug: bool) -> None:
    """pydbx - list, copy, transfer and sync files with a Dropbox-style store.

    Remote paths are written with the 'dropbox:' prefix where a command
    accepts both local and remote paths (get, put, sync).
    """
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["out"] = OutputFormatter()
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    _configure_logging(debug)


@main.command()
@click.argument("path", type=str, required=False, default="/")
@click.option("--long", "-l", "long_format", is_flag=True, help="Long listing")
@click.option("--human", "-h", is_flag=True, help="Human-readable sizes")
@click.option("--printf", "-p", "template", help="Output format (see 'find')")
@click.option("--json", "json_output", is_flag=True, help="Output metadata as JSON")
@click.pass_context
def ls(
    ctx: Any,
    path: str,
    long_format: bool,
    human: bool,
    template: Optional[str],
    json_output: bool,
) -> None:
    """List a remote directory.

    PATH: Remote directory (default: /)
    """
    out: OutputFormatter = ctx.obj["out"]
    if template is None and long_format:
        template = HUMAN_LONG_FORMAT if human else DEFAULT_LONG_FORMAT
    elif template is None:
        template = "%p"
    formatter = _compile_format(ctx, out, template)
    client = _make_client(ctx, out)

    try:
        listing = client.list(normalize_remote_path(path))
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return

    if not listing.is_dir:
        entries = [listing.entry]
    else:
        entries = [child for child in listing.children if not child.is_deleted]

    if json_output:
        out.output_json([entry.to_dict() for entry in entries])
        return
    for entry in entries:
        out.print(formatter.format(entry, depth=1 if listing.is_dir else 0))


@main.command()
@click.argument("path", type=str, required=False, default="/")
@click.option(
    "--printf",
    "-p",
    "template",
    default="%p",
    show_default=True,
    help=(
        "Output format. Placeholders: %p path, %n name, %d depth, %b bytes, "
        "%s size, %t modified, %c client modified, %r revision, %M mime type, "
        "%i icon, %e thumbnail, %y type, %% percent; escapes \\n \\t"
    ),
)
@click.pass_context
def find(ctx: Any, path: str, template: str) -> None:
    """Recursively list a remote directory.

    PATH: Remote directory (default: /)
    """
    out: OutputFormatter = ctx.obj["out"]
    formatter = _compile_format(ctx, out, template)
    client = _make_client(ctx, out)
    report = SyncReport(output=out)

    try:
        base = client.metadata(normalize_remote_path(path)).path
        for entry in RemoteTreeWalker(client).walk(base, report):
            out.print(formatter.format(entry, depth=_depth(base, entry)))
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return

    ctx.exit(report.exit_status)


@main.command()
@click.argument("path", type=str, required=False, default="/")
@click.option("--human", "-h", is_flag=True, help="Human-readable sizes")
@click.option(
    "--max-depth", "-d", type=int, default=None, help="Deepest directory level shown"
)
@click.pass_context
def du(ctx: Any, path: str, human: bool, max_depth: Optional[int]) -> None:
    """Show disk usage of a remote directory tree.

    PATH: Remote directory (default: /)
    """
    out: OutputFormatter = ctx.obj["out"]
    client = _make_client(ctx, out)
    report = SyncReport(output=out)

    try:
        base = client.metadata(normalize_remote_path(path)).path
        # Directory relative path -> bytes below it, "" is the root
        totals: dict[str, int] = {"": 0}
        for entry in RemoteTreeWalker(client).walk(base, report):
            relative_path = relative_remote_path(base, entry.path)
            if entry.is_dir:
                totals.setdefault(relative_path, 0)
                continue
            totals[""] += entry.bytes
            for parent in parent_paths(relative_path):
                totals[parent] = totals.get(parent, 0) + entry.bytes
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return

    for relative_path in sorted(totals, key=lambda p: (p.count("/") + bool(p), p)):
        depth = relative_path.count("/") + 1 if relative_path else 0
        if max_depth is not None and depth > max_depth:
            continue
        size = totals[relative_path]
        size_str = format_size(size) if human else str(size)
        out.print(f"{size_str}\t{join_remote(base, relative_path)}")

    ctx.exit(report.exit_status)


@main.command()
@click.argument("source", type=str)
@click.argument("destination", type=str)
@click.pass_context
def cp(ctx: Any, source: str, destination: str) -> None:
    """Copy a remote file or folder."""
    out: OutputFormatter = ctx.obj["out"]
    client = _make_client(ctx, out)
    try:
        entry = client.copy(
            normalize_remote_path(source), normalize_remote_path(destination)
        )
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return
    if ctx.obj["verbose"]:
        out.success(f"Copied to {entry.path}")


@main.command()
@click.argument("source", type=str)
@click.argument("destination", type=str)
@click.pass_context
def mv(ctx: Any, source: str, destination: str) -> None:
    """Move or rename a remote file or folder."""
    out: OutputFormatter = ctx.obj["out"]
    client = _make_client(ctx, out)
    try:
        entry = client.move(
            normalize_remote_path(source), normalize_remote_path(destination)
        )
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return
    if ctx.obj["verbose"]:
        out.success(f"Moved to {entry.path}")


@main.command()
@click.argument("path", type=str)
@click.pass_context
def mkdir(ctx: Any, path: str) -> None:
    """Create a remote folder (parents included)."""
    out: OutputFormatter = ctx.obj["out"]
    client = _make_client(ctx, out)
    try:
        entry = client.create_folder(normalize_remote_path(path))
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return
    if ctx.obj["verbose"]:
        out.success(f"Folder created: {entry.path}")


@main.command()
@click.argument("path", type=str)
@click.pass_context
def rm(ctx: Any, path: str) -> None:
    """Delete a remote file or folder (folders recursively)."""
    out: OutputFormatter = ctx.obj["out"]
    client = _make_client(ctx, out)
    try:
        entry = client.delete(normalize_remote_path(path))
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return
    if ctx.obj["verbose"]:
        out.success(f"Deleted: {entry.path}")


@main.command()
@click.argument("source", type=str)
@click.argument("destination", type=click.Path(path_type=Path), default=Path("."))
@click.pass_context
def get(ctx: Any, source: str, destination: Path) -> None:
    """Download a remote file.

    SOURCE: Remote file (dropbox:/path)

    DESTINATION: Local file or existing directory (default: .)
    """
    out: OutputFormatter = ctx.obj["out"]
    if not is_remote_path(source):
        out.error(f"Source must start with '{REMOTE_PREFIX}'")
        ctx.exit(EXIT_USAGE)
    client = _make_client(ctx, out)

    try:
        entry = client.metadata(normalize_remote_path(source))
        if entry.is_dir or entry.is_deleted:
            out.error(f"Not a file: {entry.path}")
            ctx.exit(EXIT_FATAL)
        target = destination / entry.name if destination.is_dir() else destination
        operations = SyncOperations(client, ChunkedTransferEngine(client, out))
        operations.download_file(entry.path, target, mtime=entry.modified_epoch)
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return

    if ctx.obj["verbose"]:
        out.success(f"Downloaded {REMOTE_PREFIX}{entry.path} -> {target}")


@main.command()
@click.argument(
    "source", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.argument("destination", type=str)
@click.pass_context
def put(ctx: Any, source: Path, destination: str) -> None:
    """Upload a local file.

    SOURCE: Local file

    DESTINATION: Remote file or existing folder (dropbox:/path)
    """
    out: OutputFormatter = ctx.obj["out"]
    if not is_remote_path(destination):
        out.error(f"Destination must start with '{REMOTE_PREFIX}'")
        ctx.exit(EXIT_USAGE)
    client = _make_client(ctx, out)
    verbose = ctx.obj["verbose"]

    remote_path = normalize_remote_path(destination)
    try:
        try:
            existing = client.metadata(remote_path)
            if existing.is_dir and not existing.is_deleted:
                remote_path = join_remote(existing.path, source.name)
        except DbxNotFoundError:
            pass
        transfer = ChunkedTransferEngine(client, out, verbose=verbose)
        entry = transfer.upload(source, remote_path)
    except DbxAPIError as e:
        out.error(str(e))
        ctx.exit(EXIT_FATAL)
        return

    if verbose:
        out.success(f"Uploaded {source} -> {REMOTE_PREFIX}{entry.path}")


@main.command()
@click.argument("source", type=str)
@click.argument("destination", type=str)
@click.option(
    "--dry-run", "-n", is_flag=True, help="Show what would be done without doing it"
)
@click.option(
    "--delete",
    "-D",
    is_flag=True,
    help="Delete destination items that do not exist on the source",
)
@click.option("--verbose", "-v", is_flag=True, help="Show skipped items and progress")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging output")
@click.pass_context
def sync(
    ctx: Any,
    source: str,
    destination: str,
    dry_run: bool,
    delete: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Sync a local directory with a remote directory.

    Exactly one of SOURCE and DESTINATION carries the 'dropbox:' prefix; the
    other is the local directory. The source side is mirrored onto the
    destination side.

    Examples:
        pydbx sync dropbox:/Photos ./photos          # download
        pydbx sync ./photos dropbox:/Photos          # upload
        pydbx sync -n -D dropbox:/Photos ./photos    # preview, with deletions

    Exit status: 0 on success, 3 if some items failed or were skipped,
    1 on fatal errors, 2 on usage errors.
    """
    out: OutputFormatter = ctx.obj["out"]
    if debug:
        _configure_logging(True)

    options = SyncOptions(
        dry_run=dry_run,
        delete=delete,
        verbose=verbose or ctx.obj["verbose"],
        debug=debug or ctx.obj["debug"],
    )
    logger.debug(f"Sync {source} -> {destination} with {options}")

    # Argument errors are reported before any remote call
    try:
        SyncPair.from_args(source, destination).validate_local()
    except SyncUsageError as e:
        out.error(str(e))
        ctx.exit(EXIT_USAGE)

    client = _make_client(ctx, out)
    if dry_run:
        out.info("Dry run: no changes will be made")

    try:
        engine = SyncEngine(client, options, out)
        report = engine.sync(source, destination)
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
        return
    except SyncUsageError as e:
        out.error(str(e))
        ctx.exit(EXIT_USAGE)
        return
    except DbxAPIError as e:
        out.error(f"Sync aborted: {e}")
        ctx.exit(EXIT_FATAL)
        return
    finally:
        client.close()

    ctx.exit(report.exit_status)


if __name__ == "__main__":
    main()
