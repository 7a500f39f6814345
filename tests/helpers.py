"""Shared digests and in-memory fakes for the engine and policy evaluator."""
from typing import Any, Dict, List, Optional

from container_trust_plugin.errors import EngineError
from container_trust_plugin.policy import PolicyVerdict

DIGEST_A = "sha256:" + "a" * 64
DIGEST_B = "sha256:" + "b" * 64
DIGEST_C = "sha256:" + "c" * 64


class FakeEngine:
    """Records engine calls; behaviour is set through attributes."""

    def __init__(self) -> None:
        self.registry_names: List[str] = []
        self.registries_error: Optional[str] = None
        self.digests: Dict[str, str] = {}
        self.repo_digests: Dict[str, str] = {}
        self.pull_events: List[Dict[str, Any]] = [{"status": "Downloaded newer image"}]
        self.pull_error: Optional[str] = None
        self.tag_error: Optional[str] = None
        self.calls: List[tuple] = []

    def ping(self) -> None:
        self.calls.append(("ping",))

    def registries(self) -> List[str]:
        self.calls.append(("registries",))
        if self.registries_error:
            raise EngineError(self.registries_error)
        return list(self.registry_names)

    def manifest_digest(self, reference: str) -> str:
        self.calls.append(("manifest_digest", reference))
        if reference not in self.digests:
            raise EngineError(f"manifest unknown: {reference}")
        return self.digests[reference]

    def pull(self, reference: str):
        self.calls.append(("pull", reference))
        if self.pull_error:
            raise EngineError(self.pull_error)
        for event in self.pull_events:
            yield event

    def tag(self, source: str, target: str) -> None:
        self.calls.append(("tag", source, target))
        if self.tag_error:
            raise EngineError(self.tag_error)

    def local_repo_digest(self, image_name: str) -> str:
        if image_name not in self.repo_digests:
            raise EngineError(f"No such image: {image_name}")
        return self.repo_digests[image_name]


class FakeEvaluator:
    def __init__(self, allowed: bool = True, digest: str = DIGEST_A) -> None:
        self.verdict = PolicyVerdict(allowed=allowed, manifest_digest=digest)
        self.seen: List[str] = []

    def evaluate(self, ref):
        self.seen.append(str(ref))
        return self.verdict

