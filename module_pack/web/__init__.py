"""HTTP API (requires the ``web`` extra)."""

from module_pack.web.app import create_app

__all__ = ["create_app"]
