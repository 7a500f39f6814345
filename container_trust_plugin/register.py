"""
register.py

Trusts a local Docker image by pinning its registry digest in the trust
policy. Later pulls of that repository are allowed only for pinned digests
(unless a broader policy scope allows them anyway).
"""
import argparse
import os
import sys

from colorama import init as colorama_init

from .console import log_error, log_info, log_warn
from .engine import DEFAULT_DOCKER_HOST, EngineClient
from .errors import EngineError, MalformedRequestError
from .policy import DEFAULT_POLICY_PATH, REJECT, TrustPolicy, canonical_name
from .reference import parse, parse_digest


def load_or_create_policy(path: str) -> TrustPolicy:
    """Load the policy, or start one that rejects everything not registered."""
    if os.path.exists(path):
        return TrustPolicy.load(path)
    log_warn(f"Trust policy not found at {path}; creating one that rejects unregistered images.")
    return TrustPolicy(default=[{"type": REJECT}])


def register_image(engine: EngineClient, image_name: str, policy_path: str) -> str:
    """Pin the image's digest in the policy and return the digest."""
    ref = parse(image_name)
    digest = parse_digest(engine.local_repo_digest(image_name))
    policy = load_or_create_policy(policy_path)
    scope = canonical_name(ref)
    if policy.pin(ref, digest):
        policy.save(policy_path)
        log_info(f"Policy updated: {policy_path}")
    else:
        log_info(f"Digest {digest} already registered for {scope}")
    if any(req["type"] == REJECT for req in policy.scopes[scope]):
        log_warn(f"Scope {scope} also carries a reject requirement; the image stays blocked.")
    return digest


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Pin a local image's registry digest in the trust policy.")
    parser.add_argument("image", help="Local image, e.g. busybox:latest")
    parser.add_argument("--host", default=DEFAULT_DOCKER_HOST, help="Docker daemon host")
    parser.add_argument("--policy", default=DEFAULT_POLICY_PATH, help="Trust policy file")
    return parser.parse_args(argv)


def main(argv=None):
    colorama_init(autoreset=True)
    args = parse_args(argv)
    try:
        engine = EngineClient.connect(args.host)
        digest = register_image(engine, args.image, args.policy)
    except (EngineError, MalformedRequestError, OSError, ValueError) as e:
        log_error(f"Failed to register image: {e}")
        sys.exit(1)
    log_info(f"Image '{args.image}' successfully registered with digest {digest}.")


if __name__ == "__main__":
    main()
