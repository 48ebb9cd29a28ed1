class OnlineVarError(Exception):
    """Base class for onlinevar specific errors."""

    pass


class SerializationError(OnlineVarError):
    """Exception raised when the binary state of an accumulator cannot be written or read.

    The failure of the underlying byte sink or source, if any, is chained as ``__cause__``. A
    premature end of stream while reading is reported without a cause.

    Args:
        message:
            A human readable description of the failure.
        n_bytes:
            The number of bytes successfully written to the sink or consumed from the source
            before the failure. Since every field of the binary format is 8 bytes long,
            ``n_bytes // 8`` is the index of the field that failed.
    """

    def __init__(self, message: str, n_bytes: int) -> None:

        super(SerializationError, self).__init__(message)
        self.n_bytes = n_bytes
