"""
Translation catalogs and message resolution.

Catalogs are JSON files laid out as locales/<language>/<namespace>.json.
Keys are written "namespace:DOTTED.PATH" (e.g. "auth:TOKEN.EXPIRED") and
messages use str.format placeholders ("{token_type} has expired.").
"""

import json
import logging
import string
from pathlib import Path
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

LOCALES_DIR = Path(__file__).parent / "locales"
DEFAULT_MESSAGE = "Something went wrong."


class TranslationError(Exception):
    """Raised when a key cannot be translated."""


class _SafeDict(dict):
    """Leaves unknown placeholders untouched instead of raising KeyError."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class Translator:
    """
    Looks up localized messages.

    Language fallback chain: exact language, base language ("en" for
    "en-US"), then the default language.
    """

    def __init__(
        self,
        catalogs: Mapping[str, Mapping[str, Any]],
        default_language: str = "en",
    ):
        self._catalogs = catalogs
        self.default_language = default_language

    @classmethod
    def from_directory(
        cls,
        directory: Path = LOCALES_DIR,
        default_language: str = "en",
    ) -> "Translator":
        """Load every <language>/<namespace>.json file under directory."""
        catalogs: dict[str, dict[str, Any]] = {}
        for language_dir in sorted(p for p in directory.iterdir() if p.is_dir()):
            namespaces: dict[str, Any] = {}
            for path in sorted(language_dir.glob("*.json")):
                with path.open(encoding="utf-8") as fh:
                    namespaces[path.stem] = json.load(fh)
            catalogs[language_dir.name] = namespaces
        logger.debug("Loaded translation catalogs for %s", ", ".join(catalogs))
        return cls(catalogs, default_language=default_language)

    @property
    def languages(self) -> list[str]:
        return list(self._catalogs)

    def _candidates(self, language: Optional[str]) -> list[str]:
        chain = []
        if language:
            chain.append(language)
            base = language.split("-")[0]
            if base != language:
                chain.append(base)
        chain.append(self.default_language)
        return chain

    def _lookup(self, key: str, language: str) -> Optional[str]:
        namespace, _, path = key.partition(":")
        if not path:
            return None
        node: Any = self._catalogs.get(language, {}).get(namespace)
        for part in path.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node if isinstance(node, str) else None

    def translate(
        self,
        key: str,
        language: Optional[str] = None,
        values: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Translate a key into the requested language.

        Raises:
            TranslationError: If no language in the fallback chain has the key
        """
        for lng in self._candidates(language):
            template = self._lookup(key, lng)
            if template is not None:
                if not values:
                    return template
                return string.Formatter().vformat(template, (), _SafeDict(values))
        raise TranslationError(f"Missing translation: {key}")

    def resolve_message(
        self,
        translation_key: Optional[str],
        message: Optional[str] = None,
        language: Optional[str] = None,
        values: Optional[Mapping[str, Any]] = None,
        prioritize_message: bool = False,
        default: str = DEFAULT_MESSAGE,
    ) -> str:
        """
        Pick the message to show the caller. Never raises.

        Order: explicit message when prioritized, translation, fixed
        message, generic default.
        """
        fallback = (message or "").strip() or default
        if prioritize_message and message and message.strip():
            return message
        if not translation_key:
            return fallback
        try:
            return self.translate(translation_key, language, values)
        except TranslationError:
            logger.debug("No translation for %s (%s)", translation_key, language)
            return fallback
        except (ValueError, IndexError, AttributeError):
            logger.warning(
                "Failed to render translation %s (%s)",
                translation_key,
                language,
                exc_info=True,
            )
            return fallback
