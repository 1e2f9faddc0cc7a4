"""
User preferences: theme, scorer model and scorer credential.

Preferences have defaults on first run and are only ever overwritten. The
credential is the one exception: saving a blank credential removes it, which
puts the scanner back into mock mode.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from .config import DEFAULT_MODEL
from .local_store import CREDENTIAL_KEY, MODEL_KEY, THEME_KEY

if TYPE_CHECKING:
    from .local_store import LocalStore

logger = logging.getLogger(__name__)


class Theme(str, Enum):
    """Known display themes."""

    LIGHT = "light"
    DARK = "dark"
    TYPEWRITER = "typewriter"


DEFAULT_THEME = Theme.LIGHT


class Preferences:
    """Preferences backed by the local store.

    Reads go straight to the store so several components can share one
    store without caching stale values.
    """

    def __init__(self, store: LocalStore, default_model: str = DEFAULT_MODEL) -> None:
        self.store = store
        self.default_model = default_model

    @property
    def theme(self) -> Theme:
        """Current theme; unknown stored values fall back to the default."""
        raw = self.store.get(THEME_KEY)
        if raw is None:
            return DEFAULT_THEME
        try:
            return Theme(raw)
        except ValueError:
            logger.warning("Unknown stored theme %r, using %s", raw, DEFAULT_THEME.value)
            return DEFAULT_THEME

    @property
    def model(self) -> str:
        """Selected scorer model identifier."""
        return self.store.get(MODEL_KEY) or self.default_model

    @property
    def credential(self) -> str | None:
        """Stored scorer credential, or None when blank or absent."""
        raw = self.store.get(CREDENTIAL_KEY)
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    @property
    def has_credential(self) -> bool:
        return self.credential is not None

    def set_theme(self, theme: Theme | str) -> Theme:
        """Persist a theme choice.

        Raises:
            ValueError: If theme is not a known Theme value
        """
        value = Theme(theme)
        self.store.set(THEME_KEY, value.value)
        return value

    def select_model(self, model_id: str) -> str:
        """Persist the selected scorer model."""
        model_id = model_id.strip()
        if not model_id:
            raise ValueError("Model identifier must not be empty")
        self.store.set(MODEL_KEY, model_id)
        logger.info("Model preference saved: %s", model_id)
        return model_id

    def save_settings(self, theme: Theme | str | None, credential: str | None) -> str:
        """Save theme and credential together.

        A blank credential removes the stored one.

        Returns:
            User-facing notice describing what was saved
        """
        if theme is not None:
            self.set_theme(theme)

        key = (credential or "").strip()
        if key:
            self.store.set(CREDENTIAL_KEY, key)
            logger.info("Scorer credential saved")
            return "Settings Saved"

        self.store.remove(CREDENTIAL_KEY)
        logger.info("Scorer credential removed, scans will use mock data")
        return "Theme Updated"

    def credential_status(self) -> str:
        """Short status line for the credential."""
        if self.has_credential:
            return "API Key Saved"
        return "No API Key (Using Mock Data)"
