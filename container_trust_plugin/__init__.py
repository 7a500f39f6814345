"""Docker authorization plugin that gates image pulls on a trust policy."""

__version__ = "0.1.0"
