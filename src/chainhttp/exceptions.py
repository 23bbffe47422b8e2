"""Exception hierarchy for chainhttp.

All exceptions inherit from :class:`ChainHttpError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`chainhttp.exit_codes`.

Exceptions never cross the asynchronous boundary of a transfer: the
executor turns them into the message handed to the caller's error handler.
They are raised at the synchronous seams only (opening files before
dispatch, resolving encodings, loading configuration, the CLI).

Subclass hierarchy::

    ChainHttpError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- TransferError       (exit 3)
    +-- LocalFileError      (exit 4)
    +-- EncodingError       (exit 5)
    +-- ConfigError         (exit 1)
"""

from chainhttp.exit_codes import (
    EXIT_ENCODING_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LOCAL_FILE_ERROR,
    EXIT_TRANSFER_ERROR,
)


class ChainHttpError(Exception):
    """Base exception for all chainhttp errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ChainHttpError):
    """Raised for malformed CLI arguments (e.g. a header without a colon)."""

    exit_code = EXIT_INVALID_USAGE


class TransferError(ChainHttpError):
    """A transfer failed at the transport level (DNS, connection, TLS, timeout)."""

    exit_code = EXIT_TRANSFER_ERROR


class LocalFileError(ChainHttpError):
    """A download destination or upload source could not be opened.

    Reported before any network call is made.
    """

    exit_code = EXIT_LOCAL_FILE_ERROR


class EncodingError(ChainHttpError):
    """The response text encoding name is not known to :mod:`codecs`."""

    exit_code = EXIT_ENCODING_ERROR


class ConfigError(ChainHttpError):
    """Raised for configuration problems (invalid JSON, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE


def describe_error(exc: BaseException) -> str:
    """Return the message handed to an error handler for *exc*.

    ``httpx`` exceptions frequently carry an empty message (a bare
    ``ReadTimeout()`` for instance), so the class name is always included.
    """
    text = str(exc).strip()
    name = type(exc).__name__
    return f"{name}: {text}" if text else name
