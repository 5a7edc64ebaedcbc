"""Repository Manager - bare Git mirrors and worktree checkout.

This package provides mirror creation, forced fetch, ref verification and
forced checkout, with git failures translated into typed errors.
"""

from __future__ import annotations

from .errors import ErrorRule, ErrorTranslator
from .escaping import escape_url, unescape_name
from .executor import CommandExecutor, SubprocessExecutor
from .manager import (
    GitRepository,
    checkout_reference,
    list_mirrors,
    mirror_path,
)
from .models import (
    CheckoutFailed,
    CheckoutResult,
    CommandFailed,
    CommandInvocation,
    CommandOutcome,
    FetchFailed,
    GitStep,
    InitializationFailed,
    MirrorState,
    RefNotFound,
    RemoteRepository,
    RepositoryError,
    StorageError,
)
from .registry import MirrorHandle, MirrorRegistry

__all__ = [
    # Manager
    "GitRepository",
    "MirrorRegistry",
    "MirrorHandle",
    # Collaborators
    "ErrorTranslator",
    "ErrorRule",
    "CommandExecutor",
    "SubprocessExecutor",
    # Convenience functions
    "checkout_reference",
    "escape_url",
    "unescape_name",
    "list_mirrors",
    "mirror_path",
    # Models
    "RemoteRepository",
    "MirrorState",
    "GitStep",
    "CommandInvocation",
    "CommandOutcome",
    "CheckoutResult",
    # Exceptions
    "CheckoutFailed",
    "CommandFailed",
    "FetchFailed",
    "InitializationFailed",
    "RefNotFound",
    "RepositoryError",
    "StorageError",
]
