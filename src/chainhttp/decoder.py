"""Response body decoding.

Bodies are decoded with a caller-chosen text encoding and read line by
line; line terminators (``\\r\\n``, ``\\r``, ``\\n``) are dropped and the
lines joined with no separator, so ``b"a\\nb"`` decodes to ``"ab"``.

Decoding is lossy: byte sequences that are malformed under the chosen
encoding become U+FFFD. There is no separate error channel for them.
"""

from __future__ import annotations

import codecs
import re

from chainhttp.exceptions import EncodingError

DEFAULT_ENCODING = "UTF-8"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def resolve_encoding(name: str | None) -> str:
    """Return the canonical codec name for *name*.

    ``None`` or an empty string selects :data:`DEFAULT_ENCODING`.

    Raises:
        EncodingError: If :mod:`codecs` does not know the encoding.
    """
    try:
        return codecs.lookup(name or DEFAULT_ENCODING).name
    except LookupError as exc:
        raise EncodingError(f"Unknown text encoding: {name}") from exc


def read_reply(data: bytes, encoding: str = DEFAULT_ENCODING) -> str:
    """Decode a full response body into one string without line breaks.

    Args:
        data: The raw response body.
        encoding: Any name accepted by :func:`codecs.lookup`.

    Returns:
        The decoded lines concatenated with no separator.
    """
    text = data.decode(resolve_encoding(encoding), errors="replace")
    return "".join(_LINE_BREAK.split(text))
