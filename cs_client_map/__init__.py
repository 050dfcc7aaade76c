"""Aggregate CloudSecure activity logs into a per-client path map."""

__version__ = "0.8.2"

__all__ = ["__version__"]
