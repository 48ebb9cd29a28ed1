import logging
from logging import CRITICAL  # NOQA
from logging import DEBUG  # NOQA
from logging import ERROR  # NOQA
from logging import FATAL  # NOQA
from logging import INFO  # NOQA
from logging import WARN  # NOQA
from logging import WARNING  # NOQA
import threading
from typing import Optional

import colorlog


_lock = threading.Lock()
_default_handler = None  # type: Optional[logging.Handler]


def create_default_formatter() -> colorlog.ColoredFormatter:
    """Create a default formatter of log messages.

    This function is not supposed to be directly accessed by library users.
    """

    return colorlog.ColoredFormatter(
        "%(log_color)s[%(levelname)1.1s %(asctime)s]%(reset)s %(message)s"
    )


def _get_library_name() -> str:

    return __name__.split(".")[0]


def _get_library_root_logger() -> logging.Logger:

    return logging.getLogger(_get_library_name())


def _configure_library_root_logger() -> None:

    global _default_handler

    with _lock:
        if _default_handler:
            # This library has already configured the library root logger.
            return
        _default_handler = logging.StreamHandler()  # Set sys.stderr as stream.
        _default_handler.setFormatter(create_default_formatter())

        # Apply our default configuration to the library root logger.
        library_root_logger = _get_library_root_logger()
        library_root_logger.addHandler(_default_handler)
        library_root_logger.setLevel(logging.WARNING)
        library_root_logger.propagate = False


def _reset_library_root_logger() -> None:

    global _default_handler

    with _lock:
        if not _default_handler:
            return

        library_root_logger = _get_library_root_logger()
        library_root_logger.removeHandler(_default_handler)
        library_root_logger.setLevel(logging.NOTSET)
        _default_handler = None


def get_logger(name: str) -> logging.Logger:
    """Return a logger with the specified name.

    This function is not supposed to be directly accessed by library users.
    """

    _configure_library_root_logger()
    return logging.getLogger(name)


def get_verbosity() -> int:
    """Return the current level for the onlinevar's root logger.

    Returns:
        Logging level, e.g., ``onlinevar.logging.DEBUG`` and ``onlinevar.logging.WARNING``.

    .. note::
        onlinevar has following logging levels:

        - ``onlinevar.logging.CRITICAL``, ``onlinevar.logging.FATAL``
        - ``onlinevar.logging.ERROR``
        - ``onlinevar.logging.WARNING``, ``onlinevar.logging.WARN``
        - ``onlinevar.logging.INFO``
        - ``onlinevar.logging.DEBUG``
    """

    _configure_library_root_logger()
    return _get_library_root_logger().getEffectiveLevel()


def set_verbosity(verbosity: int) -> None:
    """Set the level for the onlinevar's root logger.

    Example:

        Log merge and serialization events of the library.

        .. testcode::

            import onlinevar

            onlinevar.logging.set_verbosity(onlinevar.logging.DEBUG)

            merged = onlinevar.merge_all([onlinevar.Accumulator(), onlinevar.Accumulator()])

    Args:
        verbosity:
            Logging level, e.g., ``onlinevar.logging.DEBUG`` and ``onlinevar.logging.WARNING``.
    """

    _configure_library_root_logger()
    _get_library_root_logger().setLevel(verbosity)


def disable_default_handler() -> None:
    """Disable the default handler of the onlinevar's root logger.

    .. seealso::
        :func:`~onlinevar.logging.enable_default_handler`
    """

    _configure_library_root_logger()

    assert _default_handler is not None
    _get_library_root_logger().removeHandler(_default_handler)


def enable_default_handler() -> None:
    """Enable the default handler of the onlinevar's root logger.

    .. seealso::
        :func:`~onlinevar.logging.disable_default_handler`
    """

    _configure_library_root_logger()

    assert _default_handler is not None
    _get_library_root_logger().addHandler(_default_handler)


def disable_propagation() -> None:
    """Disable propagation of the library log outputs.

    Note that log propagation is disabled by default.
    """

    _configure_library_root_logger()
    _get_library_root_logger().propagate = False


def enable_propagation() -> None:
    """Enable propagation of the library log outputs.

    Please disable the onlinevar's default handler to prevent double logging if the root logger
    has been configured.

    Example:

        Propagate all log output to the root logger in order to save them to the file.

        .. testcode::

            import logging

            import onlinevar

            logger = logging.getLogger()

            logger.setLevel(logging.DEBUG)  # Setup the root logger.
            logger.addHandler(logging.FileHandler("foo.log", mode="w"))

            onlinevar.logging.enable_propagation()  # Propagate logs to the root logger.
            onlinevar.logging.disable_default_handler()  # Stop showing logs in sys.stderr.
            onlinevar.logging.set_verbosity(onlinevar.logging.DEBUG)

            onlinevar.merge_all([onlinevar.Accumulator()])

            with open("foo.log") as f:
                assert f.readline().startswith("Merged 0 of 1 accumulator(s)")
    """

    _configure_library_root_logger()
    _get_library_root_logger().propagate = True


_configure_library_root_logger()
