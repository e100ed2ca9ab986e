from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

import requests
from jsonschema import Draft202012Validator
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from partydeck.engine.types import CardCatalog, CatalogCard, Tag
from partydeck.paths import Paths

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: tuple[float, float] = (5.0, 15.0)  # connect, read


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Expected int for {key}")
    return v


def _require_text_map(obj: Mapping[str, object], key: str) -> dict[str, str]:
    v = obj.get(key)
    if not isinstance(v, dict):
        raise ContentError(f"Expected language mapping for {key}")
    return {k: t for k, t in v.items() if isinstance(k, str) and isinstance(t, str)}


def _parse_tags(raw: object) -> tuple[Tag, ...]:
    if not isinstance(raw, list):
        raise ContentError("tags must be a list")
    tags: list[Tag] = []
    for item in raw:
        # schema restricts values; "untagged" is a filter sentinel only
        if item == Tag.UNTAGGED.value:
            continue
        try:
            tags.append(Tag(item))
        except ValueError as e:
            raise ContentError(f"Unknown tag: {item!r}") from e
    return tuple(tags)


def parse_catalog(raw: object) -> CardCatalog:
    if not isinstance(raw, dict):
        raise ContentError("catalog must be an object")
    raw_cards = raw.get("cards")
    if not isinstance(raw_cards, list):
        raise ContentError("catalog.cards must be a list")

    cards: list[CatalogCard] = []
    seen: set[int] = set()
    for item in raw_cards:
        if not isinstance(item, dict):
            continue
        card = CatalogCard(
            id=_require_int(item, "id"),
            title=_require_text_map(item, "title"),
            description=_require_text_map(item, "description"),
            tags=_parse_tags(item.get("tags", [])),
            required=bool(item.get("required", False)),
        )
        if card.id in seen:
            raise ContentError(f"Duplicate card id: {card.id}")
        seen.add(card.id)
        cards.append(card)
    return CardCatalog(cards=tuple(cards))


class CatalogSource(Protocol):
    def fetch(self) -> CardCatalog: ...


class FileCatalogSource:
    """Catalog read from a JSON file on disk (the bundled deck by default)."""

    def __init__(self, path: Path, schema_path: Path | None = None) -> None:
        self._path = path
        self._schema_path = schema_path

    def fetch(self) -> CardCatalog:
        raw = _load_json(self._path)
        if self._schema_path is not None:
            validate_json(raw, _load_json(self._schema_path), context=str(self._path))
        catalog = parse_catalog(raw)
        logger.debug("Loaded %d catalog cards from %s", len(catalog.cards), self._path)
        return catalog


class HttpCatalogSource:
    """Catalog fetched over HTTP(S), retried with exponential backoff."""

    def __init__(
        self,
        url: str,
        *,
        schema_path: Path | None = None,
        session: requests.Session | None = None,
        timeout: tuple[float, float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.url = url
        self._schema_path = schema_path
        self.session = session or self._build_session()
        self.timeout = timeout

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET"}),
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def fetch(self) -> CardCatalog:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ContentError(f"Failed to fetch catalog from {self.url}") from e
        try:
            raw = response.json()
        except ValueError as e:
            raise ContentError(f"Invalid JSON from {self.url}") from e
        if self._schema_path is not None:
            validate_json(raw, _load_json(self._schema_path), context=self.url)
        catalog = parse_catalog(raw)
        logger.debug("Fetched %d catalog cards from %s", len(catalog.cards), self.url)
        return catalog


@dataclass(frozen=True)
class DeckConfig:
    # When set, the catalog is fetched from this URL instead of the bundled file.
    catalog_url: str | None = None
    catalog_path: Path | None = None
    validate: bool = True


def catalog_source_for(config: DeckConfig, paths: Paths) -> CatalogSource:
    schema = paths.cards_schema_path if config.validate else None
    if config.catalog_url:
        return HttpCatalogSource(config.catalog_url, schema_path=schema)
    return FileCatalogSource(config.catalog_path or paths.cards_path, schema)
