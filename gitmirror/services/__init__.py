"""
Services layer for gitmirror.

All CLI operations go through MirrorSession rather than directly accessing
the repository adapter.

Usage:
    from gitmirror.services.session import MirrorSession

    with MirrorSession() as session:
        result = session.checkout(url, "origin/main", "/tmp/work")
"""

from __future__ import annotations

from . import config_models
from .config_models import AppSettings, ErrorPatternSettings, GitSettings, MirrorSettings
from .session import MirrorSession

__all__ = [
    "MirrorSession",
    "MirrorSettings",
    "GitSettings",
    "ErrorPatternSettings",
    "AppSettings",
    "config_models",
]
