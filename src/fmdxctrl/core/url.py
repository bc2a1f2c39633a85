"""Server address normalization.

Users type tuner addresses in many shapes: a bare host, an ``http(s)://``
URL, or the ``ws(s)://`` URL shown by the server's web page. All of them
are reduced to one canonical ``http``/``https`` form, which is what gets
persisted and handed to the collaborators.
"""

import ipaddress
import logging
import re
from urllib.parse import urlsplit, urlunsplit

from fmdxctrl.errors import InvalidInput

logger = logging.getLogger(__name__)

_HOSTNAME_LABEL = r"[a-zA-Z0-9](?:[a-zA-Z0-9_-]{0,61}[a-zA-Z0-9])?"
_HOST_RE = re.compile(rf"^{_HOSTNAME_LABEL}(?:\.{_HOSTNAME_LABEL})*$")

_DEFAULT_PORTS = {"http": 80, "https": 443}

# Any "<scheme>://" prefix, accepted or not
_SCHEME_PREFIX_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")

# Scheme prefix -> scheme used after normalization
_SCHEME_MAP = (
    ("http://", "http"),
    ("https://", "https"),
    ("ws://", "http"),
    ("wss://", "https"),
)


def _valid_host(host: str) -> bool:
    """Return True for a DNS name, IPv4 or IPv6 address."""
    if _HOST_RE.match(host):
        return True
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def normalize_server_url(raw: str) -> str:
    """Normalize a user-entered server address.

    ``ws``/``wss`` map to ``http``/``https``, a missing scheme becomes
    ``http``, host and scheme are lowercased, a default port is dropped,
    and a path consisting only of ``/`` is stripped. Idempotent.

    Args:
        raw: Address as typed by the user.

    Returns:
        The canonical server URL.

    Raises:
        InvalidInput: If the address is blank or not a valid URL.
    """
    trimmed = raw.strip()
    if not trimmed:
        raise InvalidInput("Server URL is required")

    scheme = "http"
    rest = trimmed
    lowered = trimmed.lower()
    for prefix, mapped in _SCHEME_MAP:
        if lowered.startswith(prefix):
            scheme = mapped
            rest = trimmed[len(prefix):]
            break
    else:
        if _SCHEME_PREFIX_RE.match(trimmed):
            raise InvalidInput(f"Unsupported scheme in server URL: {raw!r}")

    try:
        parts = urlsplit(f"{scheme}://{rest}")
        port = parts.port
    except ValueError as e:
        raise InvalidInput(f"Invalid server URL: {raw!r}") from e
    if parts.netloc.endswith(":"):
        raise InvalidInput(f"Invalid server URL: {raw!r}")

    host = parts.hostname
    if not host or not _valid_host(host):
        raise InvalidInput(f"Invalid server URL: {raw!r}")

    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path
    if path == "/" and not parts.query and not parts.fragment:
        path = ""

    normalized = urlunsplit((scheme, netloc, path, parts.query, parts.fragment))
    logger.debug("Normalized server URL %r -> %s", raw, normalized)
    return normalized
