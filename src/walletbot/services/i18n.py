# This project was developed with assistance from AI tools.
"""Localized reply text.

Each language is a YAML file in ``walletbot/locales/`` holding nested
string templates; nested keys are addressed with dots (``menu.main``).
Lookups fall back to the default language, then to the key itself.

Tables are reloaded when their YAML file changes (mtime-based). If a
reload fails (bad YAML), the last valid table is kept and a warning is
logged.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from ..core.config import settings

logger = logging.getLogger(__name__)

_LOCALES_DIR = Path(__file__).resolve().parents[1] / "locales"


def _flatten(tree: dict[str, Any], prefix: str = "") -> dict[str, str]:
    flat: dict[str, str] = {}
    for key, value in tree.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = str(value)
    return flat


class Translator:
    """Loads string tables and renders templates with fallback."""

    def __init__(self, locales_dir: Path = _LOCALES_DIR, default_language: str | None = None):
        self._dir = locales_dir
        self._default = default_language or settings.DEFAULT_LANGUAGE
        # language -> (flattened table, mtime)
        self._tables: dict[str, tuple[dict[str, str], float]] = {}

    @property
    def default_language(self) -> str:
        return self._default

    def languages(self) -> list[str]:
        """Return codes of all available languages (based on YAML files on disk)."""
        if not self._dir.exists():
            return []
        return sorted(p.stem for p in self._dir.glob("*.yaml"))

    def has_language(self, language: str) -> bool:
        return (self._dir / f"{language}.yaml").exists()

    def _table(self, language: str) -> dict[str, str]:
        path = self._dir / f"{language}.yaml"
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return self._tables.get(language, ({}, 0.0))[0]

        cached = self._tables.get(language)
        if cached is not None and mtime <= cached[1]:
            return cached[0]

        try:
            table = _flatten(yaml.safe_load(path.read_text(encoding="utf-8")) or {})
        except yaml.YAMLError as exc:
            if cached is not None:
                logger.warning("Failed to reload locale %s (%s), keeping last table", language, exc)
                self._tables[language] = (cached[0], mtime)
                return cached[0]
            logger.warning("Failed to load locale %s (%s)", language, exc)
            return {}
        self._tables[language] = (table, mtime)
        logger.info("Loaded locale %s (%d strings)", language, len(table))
        return table

    def text(self, language: str, key: str, **params: Any) -> str:
        """Render ``key`` in ``language``.

        Falls back to the default language, then to the key itself.
        """
        template = self._table(language).get(key)
        if template is None and language != self._default:
            template = self._table(self._default).get(key)
        if template is None:
            logger.warning("Missing translation for %s", key)
            return key
        try:
            return template.format(**params)
        except (KeyError, IndexError, ValueError):
            logger.warning("Bad format params for %s: %s", key, sorted(params))
            return template


# Module-level singleton
_translator = Translator()


def get_translator() -> Translator:
    """Return the module-level Translator singleton."""
    return _translator
