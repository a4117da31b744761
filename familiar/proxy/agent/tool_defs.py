from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from .models import ToolFunction


class ToolName(str, Enum):
    LIST_COLLECTION_TYPES = "list_collection_types"
    LIST_COLLECTION = "list_collection"
    GET_COLLECTION_MEMBER = "get_collection_member"
    SEARCH_COLLECTION = "search_collection"
    LIST_BY_FOLDER = "list_by_folder"
    ANALYZE_GAME_SYSTEM = "analyze_game_system"
    ANALYZE_MODULES = "analyze_modules"
    ANALYZE_DOCUMENT_SCHEMA = "analyze_document_schema"
    ANALYZE_CONFIG = "analyze_config"
    ANALYZE_DATAMODEL_INHERITANCE = "analyze_datamodel_inheritance"


@dataclass(frozen=True)
class ToolSpec:
    """Static half of a tool: what the model is told about it."""

    name: ToolName
    description: str
    parameters: tuple[str, ...] = ()
    parameter_doc: str = "none"

    @property
    def arity(self) -> int:
        return len(self.parameters)

    @property
    def signature(self) -> str:
        return f"{self.name.value}({','.join(self.parameters)})"

    @property
    def usage(self) -> str:
        return f"PARAMS: {', '.join(self.parameters)}" if self.parameters else "PARAMS:"


@dataclass(frozen=True)
class ToolDescriptor:
    spec: ToolSpec
    execute: ToolFunction

    @property
    def name(self) -> str:
        return self.spec.name.value


TOOL_SPECS: tuple[ToolSpec, ...] = (
    # Generic collection tools
    ToolSpec(
        ToolName.LIST_COLLECTION_TYPES,
        "Lists all available collection types (journals, scenes, actors, items, etc.)",
    ),
    ToolSpec(
        ToolName.LIST_COLLECTION,
        "Lists all entries in a collection with ID, name, and folder location",
        ("type",),
        "type (string) - Collection type (journals, scenes, actors, items, playlists, tables, macros, cards, folders)",
    ),
    ToolSpec(
        ToolName.GET_COLLECTION_MEMBER,
        "Gets detailed information about a specific collection member",
        ("type", "id"),
        "type,id (string) - Collection type and member ID separated by comma",
    ),
    ToolSpec(
        ToolName.SEARCH_COLLECTION,
        "Searches a collection for entries matching a query (by name or content)",
        ("type", "query"),
        "type,query (string) - Collection type and search query separated by comma",
    ),
    ToolSpec(
        ToolName.LIST_BY_FOLDER,
        "Lists entries in a specific folder (supports partial folder name matching)",
        ("type", "folderName"),
        "type,folderName (string) - Collection type and folder name separated by comma",
    ),
    # DataModel analysis tools
    ToolSpec(
        ToolName.ANALYZE_GAME_SYSTEM,
        "Analyzes current game system's data models and configuration",
    ),
    ToolSpec(
        ToolName.ANALYZE_MODULES,
        "Analyzes all installed modules and their integrations",
    ),
    ToolSpec(
        ToolName.ANALYZE_DOCUMENT_SCHEMA,
        "Analyzes schema and structure of a document type",
        ("type",),
        "documentType (string) - Document type to analyze (actor, item, scene, journal, etc.)",
    ),
    ToolSpec(
        ToolName.ANALYZE_CONFIG,
        "Analyzes CONFIG object and system settings",
    ),
    ToolSpec(
        ToolName.ANALYZE_DATAMODEL_INHERITANCE,
        "Analyzes inheritance chain for a document type",
        ("type",),
        "documentType (string) - Document type to analyze inheritance for",
    ),
)

SPECS_BY_NAME: Mapping[ToolName, ToolSpec] = MappingProxyType({s.name: s for s in TOOL_SPECS})


def build_registry(functions: Mapping[ToolName, ToolFunction]) -> Mapping[str, ToolDescriptor]:
    """Bind an implementation to every tool variant.

    Raises ValueError if a variant is left without an implementation or an
    implementation is given for something that is not a declared tool, so a
    half-registered tool set can never reach the dispatcher.
    """
    missing = [n.value for n in ToolName if n not in functions]
    unknown = [str(n) for n in functions if not isinstance(n, ToolName)]
    if missing or unknown:
        raise ValueError(
            f"Tool registry mismatch: missing={missing or '[]'} unknown={unknown or '[]'}"
        )
    registry = {
        spec.name.value: ToolDescriptor(spec=spec, execute=functions[spec.name])
        for spec in TOOL_SPECS
    }
    return MappingProxyType(registry)


def describe_tools(specs: tuple[ToolSpec, ...] = TOOL_SPECS) -> str:
    """One line per tool, in the form used by the system prompt."""
    return "\n".join(f"- {s.signature}: {s.description}" for s in specs)
