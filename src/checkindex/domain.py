"""
Domain normalization.

Turns a domain or URL into the canonical key used by the cache, the rate
limiter and bulk deduplication: a lowercase bare hostname without scheme,
``www.`` prefix or port. International hostnames are IDNA-encoded.
"""

import re
from urllib.parse import urlsplit

import idna

# Characters that cannot appear in a hostname. Input containing them is
# not a parseable URL and is returned as-is (lowercased).
FORBIDDEN_HOST_CHARS = re.compile(
    r'[\x00-\x20\x7f'
    r'!"#$%&\'()*+,/;<=>?@\[\\\]^`{|}~]'
)


def normalize_domain(value: str) -> str:
    """
    Normalize a domain or URL to a lowercase bare hostname.

    Handles full URLs, ``www.`` prefix, uppercase and ports. Invalid input
    is returned lowercased and otherwise unchanged.

    Args:
        value: Domain or URL as typed by a user

    Returns:
        The canonical hostname
    """
    if not value:
        return value

    candidate = value if "://" in value else f"https://{value}"

    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
        # Accessing .port validates it
        parts.port
    except ValueError:
        return value.lower()

    if not hostname or FORBIDDEN_HOST_CHARS.search(hostname):
        return value.lower()

    if any(ord(c) > 127 for c in hostname):
        try:
            hostname = idna.encode(hostname, uts46=True).decode("ascii")
        except idna.IDNAError:
            return value.lower()

    hostname = hostname.lower()
    if hostname.startswith("www."):
        hostname = hostname[len("www."):]
    return hostname
