"""IPTV playlist/guide engine and streaming proxy gateway."""

__version__ = "0.1.0"
