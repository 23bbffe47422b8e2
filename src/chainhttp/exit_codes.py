"""Numeric process exit codes for the ``chainhttp`` command-line tool.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~chainhttp.exceptions.ChainHttpError` subclass.
Shell scripts can inspect the exit code to tell a refused connection from
a missing upload file without parsing stderr.

Example::

    $ chainhttp upload http://localhost:8080/upload missing.jpg
    $ echo $?
    4   # EXIT_LOCAL_FILE_ERROR -- the file could not be opened
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_TRANSFER_ERROR = 3
"""A transport-level error occurred (DNS, connection, TLS, timeout)."""

EXIT_LOCAL_FILE_ERROR = 4
"""A download destination or upload source could not be opened."""

EXIT_ENCODING_ERROR = 5
"""The requested response text encoding is unknown."""
