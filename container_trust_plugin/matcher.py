"""
matcher.py

Recognizes the engine API calls that pull an image and pulls the repository
and tag (or digest) out of their query string. Anything else is not a pull
and is left alone.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote_plus

from .errors import MalformedRequestError
from .reference import is_digest

PULL_METHOD = "POST"
PULL_PATH = re.compile(r"/images/create\Z")
BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

ALL_TAGS_MESSAGE = "unable to verify all tags for the given image"


@dataclass(frozen=True)
class PullMatch:
    repository: str
    token: str
    is_digest: bool


def decode(value: str) -> str:
    if BAD_ESCAPE.search(value):
        raise MalformedRequestError(f"invalid URL escape in {value!r}")
    try:
        return unquote_plus(value, errors="strict")
    except UnicodeDecodeError as e:
        raise MalformedRequestError(f"invalid URL escape in {value!r}: {e}") from e


def split_query(query: str) -> List[Tuple[str, str]]:
    """Raw ``(key, value)`` pairs, still percent-encoded."""
    pairs = []
    for pair in query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        pairs.append((key, value))
    return pairs


def decode_query(pairs: List[Tuple[str, str]]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for key, value in pairs:
        params.setdefault(decode(key), decode(value))
    return params


def match_pull(method: str, uri: str) -> Optional[PullMatch]:
    """
    Return the pull request's repository and tag-or-digest token, or None when
    the call is not a pull.

    ``POST /v1.41/images/create?fromImage=busybox&tag=latest`` is a pull;
    ``?fromSrc=...`` is an import and passes through, as does a call without
    ``fromImage``; neither is decoded. A pull without a tag would fetch every
    tag of the repository, which cannot be verified.
    """
    if method.upper() != PULL_METHOD:
        return None
    path, _, query = uri.partition("?")
    if not PULL_PATH.search(path):
        return None
    pairs = split_query(query)
    keys = {key for key, _ in pairs}
    if "fromSrc" in keys or "fromImage" not in keys:
        return None
    params = decode_query(pairs)
    repository = params.get("fromImage", "")
    token = params.get("tag", "")
    if not token:
        raise MalformedRequestError(ALL_TAGS_MESSAGE)
    return PullMatch(repository=repository, token=token, is_digest=is_digest(token))
