"""
Revision Extraction
===================
Turns a CLI input token into a revision hash.

    https://treeherder.mozilla.org/jobs?repo=try&revision=abc123  → "abc123"
    abc123                                                         → "abc123"

A token starting with "http" is treated as a URL and must carry a
`revision` query parameter; anything else is returned as-is.
"""
from urllib.parse import parse_qs, urlsplit

from treeherder_cli.core.errors import InvalidInput


def extract_revision(token: str) -> str:
    token = token.strip()
    if not token:
        raise InvalidInput("Empty revision input")

    if not token.startswith("http"):
        return token

    try:
        parts = urlsplit(token)
    except ValueError as exc:
        raise InvalidInput(f"Could not parse URL {token!r}: {exc}") from exc

    if not parts.scheme or not parts.netloc:
        raise InvalidInput(f"Could not parse URL {token!r}")

    # Treeherder puts the query after a "#/" fragment in older links
    query = parts.query or (parts.fragment.split("?", 1)[1] if "?" in parts.fragment else "")
    values = parse_qs(query).get("revision")
    if not values or not values[0]:
        raise InvalidInput(f"No revision found in URL {token!r}")
    return values[0]
