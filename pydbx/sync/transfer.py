"""Upload transfer engine: single-shot for small files, chunked for large ones."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Callable, Optional

from rich.progress import Progress, ProgressColumn, Task, TextColumn
from rich.text import Text

from ..api import DbxClient
from ..exceptions import (
    DbxAPIError,
    DbxAuthenticationError,
    DbxFileNotFoundError,
    DbxUploadError,
)
from ..models import RemoteEntry
from ..output import OutputFormatter
from ..utils import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CHUNKED_UPLOAD_THRESHOLD,
    DEFAULT_READ_SIZE,
)

logger = logging.getLogger(__name__)

PROGRESS_BAR_WIDTH = 40


class TransferState(str, Enum):
    """Stages of a chunked upload."""

    START = "start"
    SENDING_CHUNK = "sending_chunk"
    AWAITING_ACK = "awaiting_ack"
    COMMITTING = "committing"
    DONE = "done"


@dataclass
class TransferSession:
    """Server-side handle and progress of one chunked upload.

    Owned by a single upload call and discarded when it returns.
    """

    total_size: int
    upload_id: Optional[str] = None
    """Issued by the server in reply to the first chunk"""

    offset: int = 0
    """Bytes committed so far"""

    state: TransferState = TransferState.START


def render_progress_bar(done: int, total: int, width: int = PROGRESS_BAR_WIDTH) -> str:
    """Render a fixed-width ASCII progress bar.

    Examples:
        >>> render_progress_bar(45, 100, width=10)
        '[====>     ]  45%'
        >>> render_progress_bar(100, 100, width=10)
        '[==========] 100%'
    """
    fraction = 1.0 if total <= 0 else max(0.0, min(done / total, 1.0))
    filled = int(width * fraction)
    bar = "=" * filled
    if filled < width:
        bar += ">"
    return f"[{bar.ljust(width)}] {int(fraction * 100):3d}%"


class AsciiBarColumn(ProgressColumn):
    """Rich progress column drawing :func:`render_progress_bar`."""

    def __init__(self, width: int = PROGRESS_BAR_WIDTH):
        self.width = width
        super().__init__()

    def render(self, task: Task) -> Text:
        return Text(
            render_progress_bar(int(task.completed), int(task.total or 0), self.width)
        )


class ChunkedTransferEngine:
    """Uploads local files, choosing single-shot or chunked transfer by size.

    Chunked protocol: read up to ``chunk_size`` bytes (in ``read_size``
    sub-reads), send them with the current session, take the new offset and
    upload id from the reply, and commit once a read comes back short. There
    is no retry: any failure while sending or committing raises
    DbxUploadError with the server's error text.
    """

    def __init__(
        self,
        client: DbxClient,
        output: Optional[OutputFormatter] = None,
        verbose: bool = False,
        threshold: int = DEFAULT_CHUNKED_UPLOAD_THRESHOLD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        read_size: int = DEFAULT_READ_SIZE,
    ):
        """Initialize the transfer engine.

        Args:
            client: Remote store client
            output: Output formatter whose console draws progress bars
            verbose: Draw a progress bar for chunked uploads
            threshold: Files at or above this size use chunked upload
            chunk_size: Bytes sent per chunk
            read_size: Size of the sub-reads filling a chunk
        """
        self.client = client
        self.output = output
        self.verbose = verbose
        self.threshold = threshold
        self.chunk_size = chunk_size
        self.read_size = min(read_size, chunk_size)

    def upload(self, local_path: Path, remote_path: str) -> RemoteEntry:
        """Upload a local file, overwriting the remote path.

        Args:
            local_path: File to upload
            remote_path: Remote destination

        Returns:
            Metadata of the stored file

        Raises:
            DbxFileNotFoundError: If the local file is missing
            DbxUploadError: If the upload fails
            DbxAuthenticationError: If the access token is rejected
        """
        try:
            size = local_path.stat().st_size
        except FileNotFoundError:
            raise DbxFileNotFoundError(str(local_path)) from None

        chunked = getattr(self.client, "supports_chunked_upload", False)
        if size < self.threshold or not chunked:
            logger.debug(f"Single-shot upload of {local_path} ({size} bytes)")
            with open(local_path, "rb") as f:
                try:
                    return self.client.put_file(
                        remote_path, f, overwrite=True, size=size
                    )
                except (DbxAuthenticationError, DbxUploadError):
                    raise
                except DbxAPIError as e:
                    raise DbxUploadError(str(e)) from e

        return self._upload_chunked(local_path, remote_path, size)

    def _read_chunk(self, source: IO[bytes]) -> bytes:
        """Fill a buffer of at most ``chunk_size`` bytes from ``source``."""
        buffer = bytearray()
        while len(buffer) < self.chunk_size:
            block = source.read(min(self.read_size, self.chunk_size - len(buffer)))
            if not block:
                break
            buffer.extend(block)
        return bytes(buffer)

    def _send_chunk(self, session: TransferSession, chunk: bytes) -> None:
        session.state = TransferState.SENDING_CHUNK
        try:
            reply = self.client.chunked_upload(
                chunk, upload_id=session.upload_id, offset=session.offset
            )
        except DbxAuthenticationError:
            raise
        except DbxAPIError as e:
            raise DbxUploadError(str(e)) from e

        session.state = TransferState.AWAITING_ACK
        upload_id = reply.get("upload_id") or session.upload_id
        if not upload_id:
            raise DbxUploadError("Server did not return an upload id")
        expected = session.offset + len(chunk)
        offset = int(reply.get("offset", expected))
        if offset != expected:
            raise DbxUploadError(
                f"Server acknowledged offset {offset}, expected {expected}"
            )
        session.upload_id = upload_id
        session.offset = offset

    def _upload_chunked(
        self, local_path: Path, remote_path: str, size: int
    ) -> RemoteEntry:
        session = TransferSession(total_size=size)
        logger.debug(f"Chunked upload of {local_path} ({size} bytes)")

        with open(local_path, "rb") as source, self._progress(
            local_path.name, size
        ) as update:
            while True:
                chunk = self._read_chunk(source)
                # A short read right after a full chunk has nothing left to send
                if chunk or session.upload_id is None:
                    self._send_chunk(session, chunk)
                    update(session.offset)
                    logger.debug(
                        f"Chunk acknowledged: {session.offset}/{size} bytes "
                        f"(upload_id={session.upload_id})"
                    )
                if len(chunk) < self.chunk_size:
                    break

        session.state = TransferState.COMMITTING
        if session.upload_id is None:
            raise DbxUploadError("Nothing was sent, cannot commit")
        try:
            entry = self.client.commit_chunked_upload(
                remote_path, session.upload_id, overwrite=True
            )
        except DbxAuthenticationError:
            raise
        except DbxAPIError as e:
            raise DbxUploadError(str(e)) from e
        session.state = TransferState.DONE
        return entry

    @contextmanager
    def _progress(self, name: str, total: int) -> Iterator[Callable[[int], None]]:
        """Yield a callback redrawing the progress bar at a new offset."""
        if not self.verbose or self.output is None:
            yield lambda offset: None
            return

        with Progress(
            TextColumn("{task.description}"),
            AsciiBarColumn(),
            console=self.output.console,
            transient=False,
        ) as progress:
            task = progress.add_task(name, total=total)

            def update(offset: int) -> None:
                progress.update(task, completed=offset)

            yield update
