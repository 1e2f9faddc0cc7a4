"""
Local Store (SQLite-based).

Key-value persistence for:
- Theme preference
- Selected scorer model
- Scorer credential
- Scan history (JSON list)
"""

from .sqlite_store import (
    CREDENTIAL_KEY,
    HISTORY_KEY,
    MODEL_KEY,
    THEME_KEY,
    LocalStore,
)

__all__ = [
    "LocalStore",
    "THEME_KEY",
    "MODEL_KEY",
    "CREDENTIAL_KEY",
    "HISTORY_KEY",
]
