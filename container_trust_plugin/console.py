"""Colorized console output shared by the plugin commands."""
from colorama import Fore, Style


def cprint(prefix: str, msg: str, color: str) -> None:
    print(f"{color}{prefix}{Style.RESET_ALL} {msg}", flush=True)


def log_info(msg: str) -> None:
    cprint("[INFO]", msg, Fore.GREEN)


def log_warn(msg: str) -> None:
    cprint("[WARNING]", msg, Fore.YELLOW)


def log_block(msg: str) -> None:
    cprint("[SECURITY BLOCK]", msg, Fore.RED)


def log_error(msg: str) -> None:
    cprint("[ERROR]", msg, Fore.RED)
