"""Path and URL algebra for experiment resources.

Overrides in a manifest can be written three ways:
- a simple token (``"bar"``), relative to a base path
- an absolute URL on the current origin, reduced to its path
- an absolute URL on another origin, kept as a URL

Nothing here touches the network.
"""

from urllib.parse import urlsplit


def is_absolute(ref: str) -> bool:
    """True when the reference carries a scheme and a host."""
    parts = urlsplit(ref)
    return bool(parts.scheme and parts.netloc)


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for an absolute URL, or "" otherwise."""
    parts = urlsplit(url)
    if not (parts.scheme and parts.netloc):
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def path_of(ref: str) -> str:
    """Return the path component of an absolute URL; other references pass through."""
    if not is_absolute(ref):
        return ref
    return urlsplit(ref).path or "/"


def resolve(base_path: str, ref: str, origin: str = "", block_name: str | None = None) -> str:
    """Resolve a block override reference to a base location.

    The result never ends with a slash, so callers can append ``/<file>``.
    """
    ref = ref.strip()
    origin = origin.rstrip("/")

    if is_absolute(ref):
        ref_origin = origin_of(ref)
        path = urlsplit(ref).path
        same_origin = bool(origin) and ref_origin == origin
        if path in ("", "/"):
            # Bare origin: point at that site's copy of the block
            prefix = "" if same_origin else ref_origin
            if block_name:
                return f"{prefix}/blocks/{block_name}"
            return prefix
        if same_origin:
            return path.rstrip("/")
        return ref.rstrip("/")

    if ref.startswith("/"):
        return ref.rstrip("/")

    ref = ref.rstrip("/")
    if not base_path:
        return ref
    return f"{base_path.rstrip('/')}/{ref}"
