"""
policy.py

Trust policy evaluation. A policy maps scopes (registry, namespace,
repository, or a single tagged/digested image) to a list of requirements,
and falls back to a default list:

    {
      "default": [{"type": "reject"}],
      "transports": {
        "docker": {
          "registry.access.redhat.com": [{"type": "insecureAcceptAnything"}],
          "docker.io/library/busybox": [
            {"type": "pinnedDigest", "digests": ["sha256:..."]}
          ]
        }
      }
    }

All requirements of the most specific matching scope must accept the image.
"""
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from .engine import EngineClient
from .errors import EngineError, MalformedRequestError, PolicyEvaluationError, PolicyFormatError
from .qualify import DEFAULT_PUBLIC_REGISTRY, split_host
from .reference import ImageReference, parse_digest

DEFAULT_POLICY_PATH = "/etc/containers/policy.json"
TRANSPORT = "docker"
LEGACY_PUBLIC_REGISTRY = "index.docker.io"
OFFICIAL_NAMESPACE = "library"

ACCEPT_ANYTHING = "insecureAcceptAnything"
REJECT = "reject"
PINNED_DIGEST = "pinnedDigest"
REQUIREMENT_TYPES = (ACCEPT_ANYTHING, REJECT, PINNED_DIGEST)


@dataclass(frozen=True)
class PolicyVerdict:
    allowed: bool
    manifest_digest: str


def canonical_name(ref: ImageReference) -> str:
    """``busybox`` -> ``docker.io/library/busybox``; qualified names stay as they are."""
    host, remainder = split_host(ref)
    if host in ("", LEGACY_PUBLIC_REGISTRY):
        host = DEFAULT_PUBLIC_REGISTRY
    if host == DEFAULT_PUBLIC_REGISTRY and "/" not in remainder:
        remainder = f"{OFFICIAL_NAMESPACE}/{remainder}"
    return f"{host}/{remainder}"


def policy_scopes(ref: ImageReference) -> Iterator[str]:
    """Scopes that apply to ``ref``, most specific first."""
    name = canonical_name(ref)
    if ref.digest is not None:
        yield f"{name}@{ref.digest}"
    elif ref.tag is not None:
        yield f"{name}:{ref.tag}"
    while True:
        yield name
        parent, sep, _ = name.rpartition("/")
        if not sep:
            break
        name = parent


def _check_requirements(requirements: Any, where: str) -> List[Dict[str, Any]]:
    if not isinstance(requirements, list) or not requirements:
        raise PolicyFormatError(f"{where}: policy requirements must be a non-empty list")
    for req in requirements:
        if not isinstance(req, dict):
            raise PolicyFormatError(f"{where}: policy requirement must be an object")
        kind = req.get("type")
        if kind not in REQUIREMENT_TYPES:
            raise PolicyFormatError(f"{where}: unsupported policy requirement type {kind!r}")
        if kind == PINNED_DIGEST:
            digests = req.get("digests")
            if not isinstance(digests, list) or not all(isinstance(d, str) for d in digests):
                raise PolicyFormatError(f"{where}: pinnedDigest requires a list of digests")
    return requirements


class TrustPolicy:
    def __init__(
        self,
        default: List[Dict[str, Any]],
        scopes: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    ) -> None:
        self.default = default
        self.scopes = scopes or {}

    @classmethod
    def from_dict(cls, doc: Any) -> "TrustPolicy":
        if not isinstance(doc, dict):
            raise PolicyFormatError("policy document must be a JSON object")
        default = _check_requirements(doc.get("default"), "default")
        transports = doc.get("transports") or {}
        if not isinstance(transports, dict):
            raise PolicyFormatError("transports must be an object")
        scopes = transports.get(TRANSPORT) or {}
        if not isinstance(scopes, dict):
            raise PolicyFormatError(f"transports.{TRANSPORT} must be an object")
        for scope, requirements in scopes.items():
            _check_requirements(requirements, f"transports.{TRANSPORT}.{scope or '<default>'}")
        return cls(default, scopes)

    @classmethod
    def load(cls, path: str = DEFAULT_POLICY_PATH) -> "TrustPolicy":
        with open(path, "r", encoding="utf-8") as f:
            try:
                doc = json.load(f)
            except json.JSONDecodeError as e:
                raise PolicyFormatError(f"invalid policy file {path}: {e}") from e
        return cls.from_dict(doc)

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"default": self.default}
        if self.scopes:
            doc["transports"] = {TRANSPORT: self.scopes}
        return doc

    def save(self, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")

    def requirements_for(self, ref: ImageReference) -> List[Dict[str, Any]]:
        for scope in policy_scopes(ref):
            if scope in self.scopes:
                return self.scopes[scope]
        if "" in self.scopes:
            return self.scopes[""]
        return self.default

    def is_allowed(self, ref: ImageReference, manifest_digest: str) -> bool:
        for req in self.requirements_for(ref):
            kind = req["type"]
            if kind == REJECT:
                return False
            if kind == PINNED_DIGEST and manifest_digest not in req["digests"]:
                return False
        return True

    def pin(self, ref: ImageReference, digest: str) -> bool:
        """Trust ``digest`` for the repository of ``ref``. False if already pinned."""
        scope = canonical_name(ref)
        requirements = self.scopes.setdefault(scope, [])
        for req in requirements:
            if req["type"] == PINNED_DIGEST:
                if digest in req["digests"]:
                    return False
                req["digests"].append(digest)
                return True
        requirements.append({"type": PINNED_DIGEST, "digests": [digest]})
        return True

    def pinned_digests(self) -> List[str]:
        found: List[str] = []
        for requirements in [self.default, *self.scopes.values()]:
            for req in requirements:
                if req["type"] != PINNED_DIGEST:
                    continue
                for digest in req["digests"]:
                    if digest not in found:
                        found.append(digest)
        return found


class TrustPolicyEvaluator:
    """
    Evaluates references against the policy file, re-read on every call so
    edits apply to the next pull. The manifest digest comes from the registry
    through the daemon and identifies exactly what the policy was checked
    against.
    """

    def __init__(self, engine: EngineClient, policy_path: str = DEFAULT_POLICY_PATH) -> None:
        self.engine = engine
        self.policy_path = policy_path

    def evaluate(self, ref: ImageReference) -> PolicyVerdict:
        try:
            policy = TrustPolicy.load(self.policy_path)
            digest = parse_digest(self.engine.manifest_digest(str(ref)))
        except (OSError, ValueError, EngineError, MalformedRequestError) as e:
            raise PolicyEvaluationError(str(e)) from e
        return PolicyVerdict(allowed=policy.is_allowed(ref, digest), manifest_digest=digest)
