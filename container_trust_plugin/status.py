"""
status.py

Shows a summary dashboard for the container trust plugin:
- Number of digests pinned in the trust policy
- Total allowed and denied pulls from the audit log
- Last security events
"""
import argparse

from colorama import Fore, Style, init as colorama_init

from .audit import ALLOWED, DENIED, load_audit, parse_time
from .config import DEFAULT_AUDIT_LOG
from .console import log_warn
from .errors import PolicyFormatError
from .policy import DEFAULT_POLICY_PATH, TrustPolicy


def count_pinned(policy_path: str) -> int:
    try:
        return len(TrustPolicy.load(policy_path).pinned_digests())
    except FileNotFoundError:
        return 0
    except (OSError, PolicyFormatError) as e:
        log_warn(f"Cannot read trust policy: {e}")
        return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Show trust plugin statistics and recent decisions.")
    parser.add_argument("--audit-log", default=DEFAULT_AUDIT_LOG, help="JSONL audit log")
    parser.add_argument("--policy", default=DEFAULT_POLICY_PATH, help="Trust policy file")
    parser.add_argument("--last", type=int, default=5, help="Number of recent events to show")
    return parser.parse_args(argv)


def main(argv=None):
    colorama_init(autoreset=True)
    args = parse_args(argv)

    pinned = count_pinned(args.policy)
    events = load_audit(args.audit_log)
    allowed = sum(1 for e in events if e.get("event") == ALLOWED)
    denied = sum(1 for e in events if e.get("event") == DENIED)
    last_events = sorted(events, key=lambda e: parse_time(e.get("timestamp")), reverse=True)[: args.last]

    print(f"{Fore.CYAN}== Container Trust Plugin Status =={Style.RESET_ALL}")
    print(f"{Fore.GREEN}Pinned digests:{Style.RESET_ALL} {pinned}")
    print(f"{Fore.GREEN}Allowed pulls:{Style.RESET_ALL} {allowed}")
    print(f"{Fore.RED}Denied pulls:{Style.RESET_ALL} {denied}")

    print()
    print(f"{Fore.CYAN}Last {args.last} events:{Style.RESET_ALL}")
    if not last_events:
        print("(no events yet)")
        return
    for e in last_events:
        ts = e.get("timestamp", "?")
        ev = e.get("event", "?")
        img = e.get("image") or e.get("uri") or "?"
        msg = e.get("message", "")
        color = Fore.GREEN if ev == ALLOWED else Fore.RED
        print(f"{color}{ts}{Style.RESET_ALL} {ev:<7} {img} - {msg}")


if __name__ == "__main__":
    main()
