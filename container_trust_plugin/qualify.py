"""
qualify.py

Decides whether a reference names its registry and, when it does not, which
registry the daemon is going to pull it from.
"""
from typing import Sequence, Tuple

from .errors import AmbiguousQualificationError, QualificationError
from .reference import ImageReference

DEFAULT_PUBLIC_REGISTRY = "docker.io"
AMBIGUOUS_MESSAGE = "can't check signatures, please pull with a fully qualified image name"


def is_valid_hostname(hostname: str) -> bool:
    """Same heuristic the engine uses to tell ``host/repo`` from ``user/repo``."""
    return (
        hostname != ""
        and "/" not in hostname
        and ("." in hostname or ":" in hostname or hostname == "localhost")
    )


def split_host(ref: ImageReference) -> Tuple[str, str]:
    """Return ``(host, remainder)``; host is empty for an unqualified name."""
    first, sep, rest = ref.name.partition("/")
    if sep and is_valid_hostname(first):
        return first, rest
    return "", ref.name


def is_fully_qualified(ref: ImageReference) -> bool:
    return split_host(ref)[0] != ""


def qualify(ref: ImageReference, host: str) -> ImageReference:
    """Prefix an unqualified reference with ``host``, keeping its tag or digest."""
    if not is_valid_hostname(host):
        raise QualificationError(f'Invalid hostname "{host}"')
    if is_fully_qualified(ref):
        return ref
    return ref.with_name(f"{host}/{ref.name}")


def qualify_for_registries(ref: ImageReference, registries: Sequence[str]) -> ImageReference:
    """
    Resolve ``ref`` against the daemon's ordered registry search list.

    Only the first registry can be checked; with more than one configured the
    daemon may fall through to another, so unqualified pulls are refused.
    """
    if is_fully_qualified(ref):
        return ref
    if len(registries) > 1:
        raise AmbiguousQualificationError(AMBIGUOUS_MESSAGE)
    default = registries[0] if registries else ""
    if default and default != DEFAULT_PUBLIC_REGISTRY:
        return qualify(ref, default)
    return ref
