"""
CI Server module.

FastAPI application receiving GitHub webhooks and serving build logs.
"""

from .app import create_app

__all__ = ["create_app"]
