"""Cloudflare dynamic DNS updater with poller and listener modes."""

__version__ = "0.1.0"
__all__ = ["cli", "cloudflare", "common", "config", "listener", "poller"]