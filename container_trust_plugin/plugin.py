"""
plugin.py

Runs the container trust authorization plugin. Every image pull the Docker
daemon is about to execute is checked against the trust policy; pulls by tag
are only allowed once the verified digest is present locally (or auto-pull
fetches and tags it). All other API calls pass through untouched.
"""
import argparse
import os
import sys

from colorama import init as colorama_init

from .config import DEFAULT_AUDIT_LOG, DEFAULT_CONFIG_PATH, DEFAULT_SOCKET_PATH, load_config
from .console import log_error, log_info, log_warn
from .decision import Collaborators
from .engine import DEFAULT_DOCKER_HOST, EngineClient
from .errors import EngineError
from .policy import DEFAULT_POLICY_PATH, TrustPolicyEvaluator
from .server import create_app, serve


def check_permissions(path: str) -> None:
    if not os.path.exists(path):
        log_warn(f"Trust policy not found at {path}. Every pull will be denied until it exists.")
        return
    try:
        st = os.stat(path)
    except OSError as e:
        log_warn(f"Could not check trust policy permissions: {e}")
        return
    if st.st_mode & 0o022:  # group/other writable
        log_warn(
            f"Trust policy permissions are too open ({oct(st.st_mode & 0o777)}). "
            "Recommended 644 or stricter."
        )


def self_check(engine: EngineClient, policy_path: str, audit_log: str) -> bool:
    """Validate environment: daemon reachable, audit dir present, policy perms."""
    try:
        engine.ping()
    except EngineError as e:
        log_error(f"Docker daemon is not reachable: {e}")
        return False

    try:
        os.makedirs(os.path.dirname(audit_log) or ".", exist_ok=True)
    except OSError as e:
        log_warn(f"Cannot create audit log directory: {e}")
    check_permissions(policy_path)
    return True


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description=(
            "Docker authorization plugin that only lets images be pulled when the trust "
            "policy allows the exact digest being pulled."
        )
    )
    parser.add_argument(
        "--host",
        default=DEFAULT_DOCKER_HOST,
        help="Specifies the host where to contact the docker daemon",
    )
    parser.add_argument(
        "--cert-path",
        default="",
        help="Certificates path to connect to Docker (cert.pem, key.pem)",
    )
    parser.add_argument(
        "--tls-verify",
        action="store_true",
        help="Whether to verify certificates or not",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Plugin configuration file")
    parser.add_argument("--policy", default=DEFAULT_POLICY_PATH, help="Trust policy file")
    parser.add_argument("--socket", default=DEFAULT_SOCKET_PATH, help="Plugin unix socket to listen on")
    parser.add_argument("--audit-log", default=DEFAULT_AUDIT_LOG, help="JSONL audit log of pull decisions")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level of the HTTP server",
    )
    return parser.parse_args(argv)


def main(argv=None):
    colorama_init(autoreset=True)
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        log_error(f"Failed to read plugin configuration {args.config}: {e}")
        sys.exit(1)

    try:
        engine = EngineClient.connect(args.host, args.cert_path, args.tls_verify)
    except EngineError as e:
        log_error(str(e))
        sys.exit(1)
    if not self_check(engine, args.policy, args.audit_log):
        sys.exit(1)

    collaborators = Collaborators(
        registries=engine.registries,
        evaluator=TrustPolicyEvaluator(engine, args.policy),
        engine=engine,
        auto_pull=config.auto_pull,
    )
    if not config.enabled:
        log_warn("Plugin disabled in configuration: every request will be allowed")
    if config.auto_pull:
        log_info("Auto-pull enabled: allowed tags are pulled by digest and tagged locally")

    os.makedirs(os.path.dirname(args.socket), exist_ok=True)
    log_info(f"Listening on {args.socket}, policy {args.policy}")
    app = create_app(collaborators, enabled=config.enabled, audit_log=args.audit_log)
    serve(app, args.socket, log_level=args.log_level)


if __name__ == "__main__":
    main()
