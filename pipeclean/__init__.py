"""Streaming sanitizer that scrubs sensitive values from MySQL dumps and JSON documents."""

__version__ = "0.1.0"