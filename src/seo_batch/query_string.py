"""Query-string decoding for request URLs."""

import logging
import re
from typing import Dict, Optional
from urllib.parse import unquote_plus

logger = logging.getLogger(__name__)

# A '%' that does not start a two-digit hex escape
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _decode_component(value: str) -> str:
    """Percent-decode one key or value, rejecting malformed escapes."""
    if _BAD_ESCAPE.search(value):
        raise ValueError(f"Malformed percent-encoding in '{value}'")
    return unquote_plus(value, encoding="utf-8", errors="strict")


def parse_query_params(url: Optional[str]) -> Dict[str, str]:
    """Decode the query string of a URL into a key/value mapping.

    The query is everything after the first '?'. Pairs are separated by '&'
    and split on their first '='. A pair with a blank key is skipped, a pair
    without '=' maps to an empty string, and a repeated key keeps its last
    value. A pair whose encoding cannot be decoded is dropped on its own.

    Args:
        url: Any URL string, possibly None

    Returns:
        Decoded parameters in query order
    """
    params: Dict[str, str] = {}
    if not url:
        return params

    _, separator, query = url.partition("?")
    if not separator or not query:
        return params

    for pair in query.split("&"):
        if not pair.strip():
            continue
        key, _, value = pair.partition("=")
        if not key.strip():
            continue
        try:
            params[_decode_component(key)] = _decode_component(value)
        except ValueError as e:
            logger.debug(f"Dropping undecodable query pair '{pair}': {e}")

    return params
