from typing import Optional
from typing import Protocol

from onlinevar import logging
from onlinevar.exceptions import SerializationError


_logger = logging.get_logger(__name__)


class ByteSink(Protocol):
    """Anything bytes can be written to, e.g. a binary file or :class:`io.BytesIO`.

    ``write`` returns the number of bytes accepted. :obj:`None` is taken as the whole chunk.
    """

    def write(self, data: bytes) -> Optional[int]:
        ...


class ByteSource(Protocol):
    """Anything bytes can be read from, e.g. a binary file or :class:`io.BytesIO`.

    ``read`` returns at most ``size`` bytes and an empty result at the end of the stream.
    """

    def read(self, size: int) -> bytes:
        ...


def _write_fully(sink: ByteSink, data: bytes, n_bytes: int) -> int:
    # `n_bytes` counts what has already been written by the caller, for error reporting.
    offset = 0
    while offset < len(data):
        try:
            written = sink.write(data[offset:])
        except Exception as e:
            _logger.debug("Write failed after {} byte(s).".format(n_bytes + offset))
            raise SerializationError(
                "Failed to write accumulator state: {}".format(e), n_bytes + offset
            ) from e
        if written is None:
            written = len(data) - offset
        if written <= 0:
            raise SerializationError(
                "Sink accepted no bytes after {} byte(s).".format(n_bytes + offset),
                n_bytes + offset,
            )
        offset += written
    return n_bytes + offset


def _read_fully(source: ByteSource, size: int, n_bytes: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        try:
            chunk = source.read(remaining)
        except Exception as e:
            _logger.debug("Read failed after {} byte(s).".format(n_bytes + size - remaining))
            raise SerializationError(
                "Failed to read accumulator state: {}".format(e), n_bytes + size - remaining
            ) from e
        if not chunk:
            raise SerializationError(
                "Unexpected end of stream after {} byte(s).".format(n_bytes + size - remaining),
                n_bytes + size - remaining,
            )
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)
