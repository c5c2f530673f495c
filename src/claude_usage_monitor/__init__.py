"""Claude usage monitor: remote plan usage and local token consumption."""

__version__ = "0.4.0"
