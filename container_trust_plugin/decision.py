"""
decision.py

Turns one intercepted engine API call into an allow/deny decision:

    match pull -> parse reference -> qualify registry -> evaluate policy
    -> reconcile the requested tag or digest with the evaluated digest

Any failure along the way denies the pull. Calls that are not pulls are
always allowed.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from .engine import EngineClient
from .errors import (
    AutoPullError,
    DigestMismatchError,
    EngineError,
    ManualPullRequiredError,
    PolicyDeniedError,
    RegistryListError,
    TrustPluginError,
)
from .matcher import PullMatch, match_pull
from .policy import PolicyVerdict
from .qualify import qualify_for_registries
from .reference import ImageReference, parse


@dataclass(frozen=True)
class InterceptedRequest:
    method: str
    uri: str


@dataclass(frozen=True)
class Decision:
    allow: bool
    message: Optional[str] = None
    error: Optional[str] = None
    pull: bool = False
    image: Optional[str] = None
    digest: Optional[str] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error or self.message


class PolicyEvaluator(Protocol):
    def evaluate(self, ref: ImageReference) -> PolicyVerdict: ...


@dataclass(frozen=True)
class Collaborators:
    """Everything ``decide`` needs from outside; fixed at startup."""

    registries: Callable[[], Sequence[str]]
    evaluator: PolicyEvaluator
    engine: EngineClient
    auto_pull: bool = False


def resolve_reference(match: PullMatch) -> ImageReference:
    ref = parse(match.repository)
    if match.is_digest:
        return ref.with_digest(match.token)
    return ref.with_tag(match.token)


def registry_list(collaborators: Collaborators) -> Sequence[str]:
    try:
        return list(collaborators.registries())
    except EngineError as e:
        raise RegistryListError(str(e)) from e


def auto_pull(engine: EngineClient, name: str, digest: str, tag: str) -> None:
    """Pull ``name@digest`` to completion, then point ``name:tag`` at it."""
    source = f"{name}@{digest}"
    try:
        for event in engine.pull(source):
            if event.get("error"):
                raise AutoPullError(event["error"])
        engine.tag(source, f"{name}:{tag}")
    except EngineError as e:
        raise AutoPullError(str(e)) from e


def reconcile(match: PullMatch, name: str, verdict: PolicyVerdict, collaborators: Collaborators) -> None:
    """
    Check the requested tag or digest against the digest the policy allowed.

    A digest must match exactly. A tag is mutable and is only allowed once the
    verified digest has been pulled and tagged locally, either by us
    (auto-pull) or by the user.
    """
    if match.is_digest:
        if match.token != verdict.manifest_digest:
            raise DigestMismatchError(match.token, verdict.manifest_digest)
        return
    if not collaborators.auto_pull:
        raise ManualPullRequiredError(name, verdict.manifest_digest, match.token)
    auto_pull(collaborators.engine, name, verdict.manifest_digest, match.token)


def decide(request: InterceptedRequest, collaborators: Collaborators) -> Decision:
    try:
        match = match_pull(request.method, request.uri)
    except TrustPluginError as err:
        return _deny(err)
    if match is None:
        return Decision(allow=True)

    ref: Optional[ImageReference] = None
    verdict: Optional[PolicyVerdict] = None
    try:
        requested = resolve_reference(match)
        ref = qualify_for_registries(requested, registry_list(collaborators))
        ref = ref.with_default_tag()
        verdict = collaborators.evaluator.evaluate(ref)
        if not verdict.allowed:
            raise PolicyDeniedError()
        reconcile(match, requested.name, verdict, collaborators)
    except TrustPluginError as err:
        return _deny(err, ref, verdict)
    return Decision(allow=True, pull=True, image=str(ref), digest=verdict.manifest_digest)


def _deny(
    err: TrustPluginError,
    ref: Optional[ImageReference] = None,
    verdict: Optional[PolicyVerdict] = None,
) -> Decision:
    text = str(err)
    return Decision(
        allow=False,
        message=text if err.as_message else None,
        error=None if err.as_message else text,
        pull=True,
        image=str(ref) if ref is not None else None,
        digest=verdict.manifest_digest if verdict is not None else None,
    )
