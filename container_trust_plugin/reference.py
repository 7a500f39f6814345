"""
reference.py

Parsing and printing of image references: a repository name, optionally
prefixed by a registry host, with at most one of a tag or a content digest.

    busybox
    library/busybox:latest
    registry.example.com:5000/team/app@sha256:<64 hex chars>
"""
import re
from dataclasses import dataclass, replace
from typing import Optional

from .errors import MalformedRequestError

DEFAULT_TAG = "latest"
NAME_TOTAL_LENGTH_MAX = 255

_COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|[-]*)[a-z0-9]+)*"
_HOST_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_HOSTNAME = _HOST_COMPONENT + r"(?:\." + _HOST_COMPONENT + r")*(?::[0-9]+)?"
_NAME = r"(?:" + _HOSTNAME + r"/)?" + _COMPONENT + r"(?:/" + _COMPONENT + r")*"
_TAG = r"[\w][\w.-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"

NAME_PATTERN = re.compile(_NAME, re.ASCII)
TAG_PATTERN = re.compile(_TAG, re.ASCII)
DIGEST_PATTERN = re.compile(r"([a-zA-Z0-9_+.-]+):([a-fA-F0-9]+)", re.ASCII)
REFERENCE_PATTERN = re.compile(
    r"(" + _NAME + r")(?::(" + _TAG + r"))?(?:@(" + _DIGEST + r"))?", re.ASCII
)
IDENTIFIER_PATTERN = re.compile(r"[a-f0-9]{64}", re.ASCII)

# hex length per supported digest algorithm
DIGEST_ALGORITHMS = {"sha256": 64, "sha384": 96, "sha512": 128}


def parse_digest(value: str) -> str:
    """Validate an ``algorithm:hex`` content digest and return it unchanged."""
    m = DIGEST_PATTERN.fullmatch(value)
    if not m:
        raise MalformedRequestError(f"invalid digest format: {value!r}")
    algorithm, encoded = m.groups()
    size = DIGEST_ALGORITHMS.get(algorithm)
    if size is None:
        raise MalformedRequestError(f"unsupported digest algorithm: {algorithm}")
    if len(encoded) != size:
        raise MalformedRequestError(f"invalid checksum digest length: {value!r}")
    return value


def is_digest(value: str) -> bool:
    try:
        parse_digest(value)
    except MalformedRequestError:
        return False
    return True


def validate_name(name: str) -> str:
    if not name:
        raise MalformedRequestError("repository name must have at least one component")
    if len(name) > NAME_TOTAL_LENGTH_MAX:
        raise MalformedRequestError(
            f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters"
        )
    if IDENTIFIER_PATTERN.fullmatch(name):
        raise MalformedRequestError(
            f"Invalid repository name ({name}), cannot specify 64-byte hexadecimal strings"
        )
    if not NAME_PATTERN.fullmatch(name):
        if NAME_PATTERN.fullmatch(name.lower()):
            raise MalformedRequestError("repository name must be lowercase")
        raise MalformedRequestError("invalid reference format")
    return name


@dataclass(frozen=True)
class ImageReference:
    """A repository name carrying a tag, a digest, or neither (name-only)."""

    name: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    def __post_init__(self) -> None:
        if self.tag is not None and self.digest is not None:
            raise ValueError("a reference carries either a tag or a digest, not both")

    @property
    def is_name_only(self) -> bool:
        return self.tag is None and self.digest is None

    @property
    def is_tagged(self) -> bool:
        return self.tag is not None

    @property
    def is_digested(self) -> bool:
        return self.digest is not None

    def with_tag(self, tag: str) -> "ImageReference":
        if not TAG_PATTERN.fullmatch(tag):
            raise MalformedRequestError(f"invalid tag format: {tag!r}")
        return replace(self, tag=tag, digest=None)

    def with_digest(self, digest: str) -> "ImageReference":
        return replace(self, tag=None, digest=parse_digest(digest))

    def with_default_tag(self) -> "ImageReference":
        if self.is_name_only:
            return self.with_tag(DEFAULT_TAG)
        return self

    def with_name(self, name: str) -> "ImageReference":
        """Same tag or digest under another repository name."""
        return replace(self, name=validate_name(name))

    def __str__(self) -> str:
        if self.digest is not None:
            return f"{self.name}@{self.digest}"
        if self.tag is not None:
            return f"{self.name}:{self.tag}"
        return self.name


def parse(value: str) -> ImageReference:
    """Parse ``name[:tag][@digest]``. A digest wins over a tag when both appear."""
    if not value:
        raise MalformedRequestError("repository name must have at least one component")
    m = REFERENCE_PATTERN.fullmatch(value)
    if not m:
        validate_name(value)
        raise MalformedRequestError("invalid reference format")
    name, tag, digest = m.groups()
    ref = ImageReference(validate_name(name))
    if digest:
        return ref.with_digest(digest)
    if tag:
        return ref.with_tag(tag)
    return ref
