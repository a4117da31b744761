"""Read-only view over an exported snapshot of the host application's world.

The snapshot is a JSON document written by the host (collections, active game
system, installed modules, CONFIG summary and document classes). Tools never
write to it; every accessor returns fresh objects.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger("familiar.world")

COLLECTION_TYPES = (
    "journals", "scenes", "actors", "items",
    "playlists", "tables", "macros", "cards", "folders",
)

DOCUMENT_TYPES = ("actor", "item", "scene", "journal", "macro", "playlist", "table")

SEARCH_CONTENT_LIMIT = 300


class WorldError(LookupError):
    """Raised when a collection, entry or document type cannot be found."""


@dataclass
class CollectionEntry:
    id: str
    name: str
    type: str
    folder: str | None = None
    content: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchHit:
    id: str
    name: str
    type: str
    content: str
    relevance: str  # "name" or "content"
    folder: str | None = None


@dataclass
class ModuleInfo:
    id: str
    title: str
    version: str = "Unknown"
    active: bool = False
    api: bool = False
    config_contributions: list[str] = field(default_factory=list)
    document_modifications: list[str] = field(default_factory=list)


@dataclass
class GameSystem:
    system_id: str
    system_title: str
    version: str
    document_types: dict[str, list[str]] = field(default_factory=dict)
    data_models: dict[str, list[str]] = field(default_factory=dict)
    template_types: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class DocumentSchema:
    document_type: str
    document_class: str
    data_schema: dict[str, dict[str, Any]] = field(default_factory=dict)
    system_fields: dict[str, str] = field(default_factory=dict)
    module_fields: dict[str, dict[str, str]] = field(default_factory=dict)
    methods: list[str] = field(default_factory=list)


@dataclass
class ConfigSummary:
    foundry_version: str
    system_config: dict[str, dict[str, Any]] = field(default_factory=dict)
    module_config: dict[str, str] = field(default_factory=dict)
    status_effects: list[Any] = field(default_factory=list)
    conditions: list[str] = field(default_factory=list)


@dataclass
class Inheritance:
    inheritance_chain: list[str] = field(default_factory=list)
    mixins: list[str] = field(default_factory=list)
    data_fields: dict[str, dict[str, Any]] = field(default_factory=dict)
    default_values: dict[str, Any] = field(default_factory=dict)


def _entry_name(raw: dict[str, Any], type_: str) -> str:
    return raw.get("name") or raw.get("title") or f"Unnamed {type_}"


class WorldSnapshot:
    """Collection and data-model queries over one snapshot document."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}

    @classmethod
    def load(cls, path: str | Path) -> WorldSnapshot:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"World snapshot {path} must contain a JSON object")
        snapshot = cls(data)
        counts = ", ".join(
            f"{t}={len(snapshot._raw_collection(t))}"
            for t in COLLECTION_TYPES
            if snapshot._raw_collection(t)
        )
        logger.info(f"Loaded world snapshot from {path} ({counts or 'no collections'})")
        return snapshot

    # ── Collections ─────────────────────────────────────────────────

    def get_available_collection_types(self) -> list[str]:
        return list(COLLECTION_TYPES)

    def _raw_collection(self, type_: str) -> list[dict[str, Any]]:
        return list((self._data.get("collections") or {}).get(type_, []))

    def _collection(self, type_: str) -> list[dict[str, Any]]:
        key = type_.lower()
        if key not in COLLECTION_TYPES:
            raise WorldError(
                f"Unknown collection type: {type_}. "
                f"Available types: {', '.join(COLLECTION_TYPES)}"
            )
        return self._raw_collection(key)

    def _to_entry(self, raw: dict[str, Any], type_: str) -> CollectionEntry:
        return CollectionEntry(
            id=str(raw.get("id", "")),
            name=_entry_name(raw, type_),
            type=type_,
            folder=raw.get("folder") or None,
            content=raw.get("content") or "No detailed information available",
            metadata=dict(raw.get("metadata") or {}),
        )

    def list_collection(self, type_: str) -> list[CollectionEntry]:
        key = type_.lower()
        return [self._to_entry(raw, key) for raw in self._collection(key)]

    def get_collection_member(self, type_: str, id_: str) -> CollectionEntry:
        key = type_.lower()
        for raw in self._collection(key):
            if str(raw.get("id", "")) == id_:
                return self._to_entry(raw, key)
        raise WorldError(f"No {type_} found with ID: {id_}")

    def search_collection(self, type_: str, query: str) -> list[SearchHit]:
        """Case-insensitive search; name matches sort before content matches."""
        key = type_.lower()
        needle = query.lower()
        hits: list[SearchHit] = []

        for raw in self._collection(key):
            entry = self._to_entry(raw, key)
            if needle in entry.name.lower():
                relevance = "name"
            elif needle in entry.content.lower():
                relevance = "content"
            else:
                continue
            content = entry.content
            if len(content) > SEARCH_CONTENT_LIMIT:
                content = content[:SEARCH_CONTENT_LIMIT] + "..."
            hits.append(SearchHit(
                id=entry.id,
                name=entry.name,
                type=key,
                content=content,
                relevance=relevance,
                folder=entry.folder,
            ))

        hits.sort(key=lambda h: (h.relevance != "name", h.name))
        return hits

    # ── Data models ─────────────────────────────────────────────────

    def analyze_game_system(self) -> GameSystem:
        system = self._data.get("system") or {}
        return GameSystem(
            system_id=system.get("id", "unknown"),
            system_title=system.get("title") or "Unknown System",
            version=system.get("version") or "Unknown",
            document_types=dict(system.get("document_types") or {}),
            data_models=dict(system.get("data_models") or {}),
            template_types=dict(system.get("templates") or {}),
        )

    def analyze_modules(self) -> list[ModuleInfo]:
        """Installed modules, active ones first, then by title."""
        modules = []
        for raw in self._data.get("modules") or []:
            mod_id = raw.get("id", "")
            modules.append(ModuleInfo(
                id=mod_id,
                title=raw.get("title") or mod_id,
                version=raw.get("version") or "Unknown",
                active=bool(raw.get("active")),
                api=bool(raw.get("api")),
                config_contributions=list(raw.get("config_contributions") or []),
                document_modifications=list(raw.get("document_modifications") or []),
            ))
        modules.sort(key=lambda m: (not m.active, m.title))
        return modules

    def _document(self, document_type: str) -> dict[str, Any]:
        key = document_type.lower()
        documents = self._data.get("documents") or {}
        if key not in DOCUMENT_TYPES or key not in documents:
            raise WorldError(
                f"Unknown document type: {document_type}. "
                f"Available types: {', '.join(DOCUMENT_TYPES)}"
            )
        return documents[key]

    def analyze_document_schema(self, document_type: str) -> DocumentSchema:
        doc = self._document(document_type)
        return DocumentSchema(
            document_type=document_type,
            document_class=doc.get("class", "Unknown"),
            data_schema=dict(doc.get("schema") or {}),
            system_fields=dict(doc.get("system_fields") or {}),
            module_fields=dict(doc.get("module_fields") or {}),
            methods=sorted(doc.get("methods") or []),
        )

    def analyze_config(self) -> ConfigSummary:
        config = self._data.get("config") or {}
        return ConfigSummary(
            foundry_version=self._data.get("version") or "Unknown",
            system_config=dict(config.get("system") or {}),
            module_config=dict(config.get("modules") or {}),
            status_effects=list(config.get("status_effects") or []),
            conditions=list(config.get("conditions") or []),
        )

    def analyze_datamodel_inheritance(self, document_type: str) -> Inheritance:
        doc = self._document(document_type)
        return Inheritance(
            inheritance_chain=list(doc.get("inheritance") or []),
            mixins=list(doc.get("mixins") or []),
            data_fields=dict(doc.get("data_fields") or {}),
            default_values=dict(doc.get("defaults") or {}),
        )


def load_world(path: str | Path | None) -> WorldSnapshot:
    """Load the configured snapshot, falling back to an empty world."""
    if not path:
        logger.warning("No world snapshot configured; tools will see an empty world")
        return WorldSnapshot()
    try:
        return WorldSnapshot.load(path)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load world snapshot {path}: {e}")
        return WorldSnapshot()
