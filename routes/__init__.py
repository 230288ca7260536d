"""Aggregate blueprint for the binder app routes."""

from __future__ import annotations

from .base import views

# Register route modules
from . import (
    auth,       # noqa: F401
    binders,    # noqa: F401
    catalog,    # noqa: F401
    sharing,    # noqa: F401
)

__all__ = ["views"]
