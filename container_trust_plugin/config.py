"""
config.py

Plugin configuration, read once at startup:

    {"Enabled": true, "AutoPull": false}

Keys are matched case-insensitively.
"""
import json
from dataclasses import dataclass

DEFAULT_CONFIG_PATH = "/etc/docker/container-trust-plugin.json"
DEFAULT_SOCKET_PATH = "/run/docker/plugins/container-trust-plugin.sock"
DEFAULT_AUDIT_LOG = "/var/lib/container-trust-plugin/audit.log"


@dataclass(frozen=True)
class PluginConfig:
    enabled: bool = True
    auto_pull: bool = False


def _flag(doc: dict, key: str, default: bool) -> bool:
    value = doc.get(key.lower(), default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def parse_config(doc) -> PluginConfig:
    if not isinstance(doc, dict):
        raise ValueError("plugin configuration must be a JSON object")
    lowered = {str(k).lower(): v for k, v in doc.items()}
    return PluginConfig(
        enabled=_flag(lowered, "Enabled", True),
        auto_pull=_flag(lowered, "AutoPull", False),
    )


def load_config(path: str = DEFAULT_CONFIG_PATH) -> PluginConfig:
    """Raises OSError if the file can't be read, ValueError if it is invalid."""
    with open(path, "r", encoding="utf-8") as f:
        return parse_config(json.load(f))
