"""Request canonicalization for Azure SharedKeyLite signing.

Builds the deterministic header and resource strings that the signers
combine into a string-to-sign. Only ``x-ms-`` headers take part in the
canonical header block, and only the ``comp`` query parameter survives in
the canonical resource.

Reference: https://docs.microsoft.com/rest/api/storageservices/authorize-with-shared-key
"""

import re
import string
from typing import Dict, List, Mapping
from urllib.parse import quote_plus, unquote, unquote_plus, urlencode, urlsplit

from azstore.exceptions import CanonicalizationError

MS_HEADER_PREFIX = "x-ms-"

# Characters passed through unescaped by the resource path encoder
_PATH_SAFE = frozenset(string.ascii_letters + string.digits + "/,$=")

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def canonical_header(headers: Mapping[str, str]) -> str:
    """Build the canonicalized headers string.

    Rules:
    1. Keep headers whose lowercased name starts with "x-ms-"
    2. Sort them lexicographically by lowercased name
    3. Format as "name:value", one per line, no trailing newline

    Values are used verbatim.

    Args:
        headers: HTTP headers dictionary

    Returns:
        Canonicalized headers string, empty when no header matches

    Example:
        >>> canonical_header({"x-ms-version": "2014-02-14", "x-ms-blob-type": "BlockBlob"})
        'x-ms-blob-type:BlockBlob\\nx-ms-version:2014-02-14'
    """
    ms_headers: Dict[str, str] = {}

    for name, value in headers.items():
        name_lower = name.strip().lower()
        if name_lower.startswith(MS_HEADER_PREFIX):
            ms_headers[name_lower] = value

    if not ms_headers:
        return ""

    return "\n".join(f"{name}:{ms_headers[name]}" for name in sorted(ms_headers))


def canonical_resource(account_name: str, url: str) -> str:
    """Build the canonicalized resource string.

    Format: "/<account-name><encoded-path>[?comp=<value>]"

    Args:
        account_name: Storage account name
        url: Full request URL, or a bare path with optional query

    Returns:
        Canonicalized resource string

    Raises:
        CanonicalizationError: If the query string is malformed

    Example:
        >>> canonical_resource("foo", "https://foo.blob.core.windows.net/path?a=b&comp=ok")
        '/foo/path?comp=ok'
    """
    parsed = urlsplit(url)
    resource = f"/{account_name}{encode_components(unquote(parsed.path))}"

    params = parse_query_string(parsed.query)

    comp = params.get("comp", [""])[0]
    if comp:
        resource += "?" + urlencode({"comp": comp})

    return resource


def encode_components(path: str) -> str:
    """
    Escape a resource path for signing.

    ASCII letters, digits and the characters ``/,$=`` pass through; every
    other character goes through a query escaper.
    """
    return "".join(c if c in _PATH_SAFE else quote_plus(c, safe="") for c in path)


def parse_query_string(query: str) -> Dict[str, List[str]]:
    """
    Parse a raw query string into name -> values.

    Unlike ``urllib.parse.parse_qs`` this rejects bad percent escapes and
    semicolon separators instead of passing them through.

    Args:
        query: Raw query string (without the leading "?")

    Returns:
        Dict of parameter name -> list of values, in order of appearance

    Raises:
        CanonicalizationError: If the query string is malformed
    """
    params: Dict[str, List[str]] = {}

    for param in query.split("&"):
        if not param:
            continue

        if ";" in param:
            raise CanonicalizationError(
                f"storage: error parsing the request for signing: "
                f"invalid semicolon separator in query: {query!r}"
            )

        name, _, value = param.partition("=")

        for part in (name, value):
            if _BAD_ESCAPE.search(part):
                raise CanonicalizationError(
                    f"storage: error parsing the request for signing: "
                    f"invalid URL escape in query: {part!r}"
                )

        params.setdefault(unquote_plus(name), []).append(unquote_plus(value))

    return params
