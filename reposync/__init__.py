"""
reposync - keep a local working copy of a private git repository up to date.

The repository is cloned on first run and fast-forwarded (or, on request,
hard-reset) on every later run, always authenticating with one deploy key.
"""

__version__ = "1.0.0"
__author__ = "reposync maintainers"
__description__ = "Clone or update a private git repository with a dedicated deploy key"

from .errors import SyncError, PreconditionError, TransportError, DivergenceError
from .git_sync import Synchronizer, SyncRequest, OperationResult, SyncAction, synchronize
from .cli import main

__all__ = [
    "main",
    "synchronize",
    "Synchronizer",
    "SyncRequest",
    "OperationResult",
    "SyncAction",
    "SyncError",
    "PreconditionError",
    "TransportError",
    "DivergenceError",
]
