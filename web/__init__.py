"""FastAPI web application for Gosh USB Creator.

This module provides the HTTP API over the same application context the
CLI drives. All lifecycle logic is delegated to gosh_usb.core.
"""

from web.app import app, create_app

__all__ = ["app", "create_app"]
