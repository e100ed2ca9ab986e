from __future__ import annotations

import json
import locale
import logging
import os
from pathlib import Path
from typing import Mapping

from partydeck.engine.game import GameState
from partydeck.engine.serialize import (
    game_state_from_dict,
    game_state_to_dict,
    language_data_from_dict,
    language_data_to_dict,
)
from partydeck.engine.types import FALLBACK_LANGUAGE, Language, LanguageData

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


def _read_document(path: Path) -> dict[str, object] | None:
    """Read a JSON object from `path`; None if missing. Raises StorageError if corrupt."""
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"Unreadable document {path}: {e}") from e
    if not isinstance(raw, dict):
        raise StorageError(f"{path} must contain a JSON object")
    return raw


def _write_document(path: Path, data: Mapping[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


class GameStateStore:
    def __init__(self, path: Path) -> None:
        self._path = path

    def save(self, state: GameState) -> None:
        _write_document(self._path, game_state_to_dict(state))

    def load(self) -> GameState | None:
        """Return the saved state, or None when there is none or it is unusable."""
        try:
            raw = _read_document(self._path)
            if raw is None:
                return None
            return game_state_from_dict(raw)
        except (StorageError, ValueError):
            logger.warning("Discarding saved game state at %s", self._path, exc_info=True)
            return None

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


class TargetStore:
    """Remembers the target picked for a card slot so re-renders agree."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @staticmethod
    def _key(index: int) -> str:
        return f"targetPlayer-{index}"

    def _read(self) -> dict[str, object]:
        try:
            return _read_document(self._path) or {}
        except StorageError:
            logger.warning("Resetting unreadable target store %s", self._path, exc_info=True)
            return {}

    def get(self, index: int) -> str | None:
        v = self._read().get(self._key(index))
        return v if isinstance(v, str) and v else None

    def set(self, index: int, name: str) -> None:
        data = self._read()
        data[self._key(index)] = name
        _write_document(self._path, data)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


class LanguageDataStore:
    def __init__(self, path: Path) -> None:
        self._path = path

    def save(self, data: Mapping[Language, LanguageData]) -> None:
        _write_document(self._path, language_data_to_dict(data))

    def load(self) -> dict[Language, LanguageData] | None:
        try:
            raw = _read_document(self._path)
            if raw is None:
                return None
            return language_data_from_dict(raw)
        except (StorageError, ValueError):
            logger.warning("Discarding saved language data at %s", self._path, exc_info=True)
            return None


def detect_language() -> Language:
    """Best-effort language from the process locale, English otherwise."""
    candidates = [os.environ.get("LANG", ""), os.environ.get("LC_ALL", "")]
    try:
        candidates.append(locale.getlocale()[0] or "")
    except ValueError:
        pass
    for raw in candidates:
        code = raw.split(".")[0].split("_")[0].split("-")[0].lower()
        try:
            return Language(code)
        except ValueError:
            continue
    return FALLBACK_LANGUAGE


class LanguagePreferenceStore:
    def __init__(self, path: Path) -> None:
        self._path = path

    def get(self) -> Language:
        try:
            raw = _read_document(self._path) or {}
        except StorageError:
            logger.warning("Ignoring unreadable language preference %s", self._path, exc_info=True)
            raw = {}
        try:
            return Language(raw.get("selectedLanguage"))
        except ValueError:
            return detect_language()

    def set(self, language: Language) -> None:
        _write_document(self._path, {"selectedLanguage": language.value})
