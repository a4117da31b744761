from __future__ import annotations

import inspect
import json
import logging
import time
from typing import Mapping

from ..world import WorldError, WorldSnapshot
from .formatters import USER_VIEW_MARKER
from .models import ToolFunction
from .tool_defs import SPECS_BY_NAME, ToolDescriptor, ToolName, build_registry
from .validators import check_params, split_params

logger = logging.getLogger("familiar.agent")

MAX_LIST_RESULTS = 20
MAX_SEARCH_RESULTS = 10  # fewer for search since previews are longer
PREVIEW_LENGTH = 100
MAX_LISTED_METHODS = 10


def _with_user_view(machine: str, human: str) -> str:
    return f"{machine}\n\n{USER_VIEW_MARKER}\n{human}"


def _preview(content: str) -> str:
    return content[:PREVIEW_LENGTH] + "..." if len(content) > PREVIEW_LENGTH else content


class WorldTools:
    """Tool implementations over a read-only world snapshot.

    Each tool takes the split parameter fields and returns one string. Where
    the model needs internal IDs for follow-up calls, the result carries a
    USER_VIEW block that restates it without them.
    """

    def __init__(self, world: WorldSnapshot) -> None:
        self.world = world

    def functions(self) -> dict[ToolName, ToolFunction]:
        return {
            ToolName.LIST_COLLECTION_TYPES: self.list_collection_types,
            ToolName.LIST_COLLECTION: self.list_collection,
            ToolName.GET_COLLECTION_MEMBER: self.get_collection_member,
            ToolName.SEARCH_COLLECTION: self.search_collection,
            ToolName.LIST_BY_FOLDER: self.list_by_folder,
            ToolName.ANALYZE_GAME_SYSTEM: self.analyze_game_system,
            ToolName.ANALYZE_MODULES: self.analyze_modules,
            ToolName.ANALYZE_DOCUMENT_SCHEMA: self.analyze_document_schema,
            ToolName.ANALYZE_CONFIG: self.analyze_config,
            ToolName.ANALYZE_DATAMODEL_INHERITANCE: self.analyze_datamodel_inheritance,
        }

    # ── Collection tools ────────────────────────────────────────────

    def list_collection_types(self, params: list[str]) -> str:
        types = self.world.get_available_collection_types()
        return "Available collection types:\n" + "\n".join(f"- {t}" for t in types)

    def list_collection(self, params: list[str]) -> str:
        usage = check_params(SPECS_BY_NAME[ToolName.LIST_COLLECTION], params)
        if usage:
            return usage
        type_ = params[0]
        try:
            entries = self.world.list_collection(type_)
        except WorldError as e:
            return str(e)

        if not entries:
            return f"No {type_} found in the game."

        shown = entries[:MAX_LIST_RESULTS]
        machine_lines = []
        human_lines = []
        for i, entry in enumerate(shown, 1):
            folder = f" [Folder: {entry.folder}]" if entry.folder else ""
            machine_lines.append(f"{i}. {entry.name} (ID: {entry.id}){folder}")
            human_lines.append(f"{i}. {entry.name}{folder}")

        machine = f"RESULT: list_collection\nCOUNT: {len(entries)}\nENTRIES:\n" + "\n".join(machine_lines)
        if len(entries) > MAX_LIST_RESULTS:
            machine += (
                f"\n\n[Showing first {MAX_LIST_RESULTS} of {len(entries)} entries. "
                "Use get_collection_member(type, id) for details on specific entries]"
            )
            human_lines.append(f"[Showing first {MAX_LIST_RESULTS} of {len(entries)} entries]")
        return _with_user_view(machine, "\n".join(human_lines))

    def get_collection_member(self, params: list[str]) -> str:
        usage = check_params(SPECS_BY_NAME[ToolName.GET_COLLECTION_MEMBER], params)
        if usage:
            return usage
        type_, id_ = params
        try:
            member = self.world.get_collection_member(type_, id_)
        except WorldError as e:
            return str(e)

        header = f"=== {member.name} ({member.type}) ===\n"
        folder = f"Folder: {member.folder}\n" if member.folder else ""

        common = ""
        if member.metadata:
            common += "\nMetadata:\n"
            common += "".join(f"- {key}: {value}\n" for key, value in member.metadata.items())
        machine = header + f"ID: {member.id}\n" + folder + common + f"\nContent:\n{member.content}"
        # A blank line would end the human view early
        human = header + folder + common + f"Content:\n{member.content}"
        human = "\n".join(line for line in human.splitlines() if line.strip())
        return _with_user_view(machine.rstrip(), human)

    def search_collection(self, params: list[str]) -> str:
        usage = check_params(SPECS_BY_NAME[ToolName.SEARCH_COLLECTION], params)
        if usage:
            return usage
        type_, query = params
        try:
            hits = self.world.search_collection(type_, query)
        except WorldError as e:
            return str(e)

        if not hits:
            return f'No {type_} found matching "{query}".'

        shown = hits[:MAX_SEARCH_RESULTS]
        machine_lines = []
        human_lines = []
        for i, hit in enumerate(shown, 1):
            preview = _preview(hit.content).replace("\n", " ")
            machine_lines.append(f"{i}. {hit.name} (ID: {hit.id}) - {hit.relevance} match\n   Preview: {preview}")
            human_lines.append(f"{i}. {hit.name} - {hit.relevance} match\n   Preview: {preview}")

        # Single newlines keep the whole list inside the human view
        machine = (
            f"RESULT: search_collection\nCOUNT: {len(hits)}\nQUERY: {query}\nENTRIES:\n"
            + "\n\n".join(machine_lines)
        )
        if len(hits) > MAX_SEARCH_RESULTS:
            machine += (
                f"\n\n[Showing first {MAX_SEARCH_RESULTS} of {len(hits)} matches. "
                "Use get_collection_member(type, id) for full details]"
            )
            human_lines.append(f"[Showing first {MAX_SEARCH_RESULTS} of {len(hits)} matches]")
        return _with_user_view(machine, "\n".join(human_lines))

    def list_by_folder(self, params: list[str]) -> str:
        usage = check_params(SPECS_BY_NAME[ToolName.LIST_BY_FOLDER], params)
        if usage:
            return usage
        type_, folder_name = params
        try:
            entries = self.world.list_collection(type_)
        except WorldError as e:
            return str(e)

        needle = folder_name.lower()
        filtered = [e for e in entries if e.folder and needle in e.folder.lower()]
        if not filtered:
            return f'No {type_} found in folders containing "{folder_name}".'

        shown = filtered[:MAX_LIST_RESULTS]
        machine_lines = [f"{i}. {e.name} (ID: {e.id})" for i, e in enumerate(shown, 1)]
        human_lines = [f"{i}. {e.name}" for i, e in enumerate(shown, 1)]

        machine = (
            f"RESULT: list_by_folder\nCOUNT: {len(filtered)}\nFOLDER: {folder_name}\nENTRIES:\n"
            + "\n".join(machine_lines)
        )
        if len(filtered) > MAX_LIST_RESULTS:
            note = f"[Showing first {MAX_LIST_RESULTS} of {len(filtered)} entries]"
            machine += f"\n\n{note}"
            human_lines.append(note)
        return _with_user_view(machine, "\n".join(human_lines))

    # ── DataModel analysis tools ────────────────────────────────────

    def analyze_game_system(self, params: list[str]) -> str:
        analysis = self.world.analyze_game_system()

        lines = [
            "=== GAME SYSTEM ANALYSIS ===",
            f"System: {analysis.system_title} ({analysis.system_id})",
            f"Version: {analysis.version}",
            "",
        ]
        sections = (
            ("Document Types", analysis.document_types),
            ("Data Models", analysis.data_models),
            ("Template Types", analysis.template_types),
        )
        for title, mapping in sections:
            if not mapping:
                continue
            lines.append(f"{title}:")
            lines.extend(f"- {doc_type}: {', '.join(names)}" for doc_type, names in mapping.items())
            lines.append("")
        return "\n".join(lines).rstrip()

    def analyze_modules(self, params: list[str]) -> str:
        modules = self.world.analyze_modules()
        active = [m for m in modules if m.active]
        inactive = [m for m in modules if not m.active]

        result = "=== MODULES ANALYSIS ===\n"
        result += f"Total Modules: {len(modules)}\n"
        result += f"Active: {len(active)} | Inactive: {len(inactive)}\n"

        if active:
            result += "\nACTIVE MODULES:\n"
            for module in active:
                result += f"\n- {module.title} ({module.id}) v{module.version}\n"
                if module.api:
                    result += "  • Has API exposed\n"
                if module.config_contributions:
                    result += f"  • CONFIG contributions: {', '.join(module.config_contributions)}\n"
                if module.document_modifications:
                    result += f"  • Document modifications: {', '.join(module.document_modifications)}\n"

        if inactive:
            result += f"\n\nINACTIVE MODULES: {', '.join(m.title for m in inactive)}"
        return result.rstrip()

    def analyze_document_schema(self, params: list[str]) -> str:
        usage = check_params(SPECS_BY_NAME[ToolName.ANALYZE_DOCUMENT_SCHEMA], params)
        if usage:
            return usage
        document_type = params[0]
        try:
            schema = self.world.analyze_document_schema(document_type)
        except WorldError as e:
            return f"Error analyzing document schema: {e}"

        result = f"=== {document_type.upper()} DOCUMENT SCHEMA ===\n"
        result += f"Document Class: {schema.document_class}\n\n"

        if schema.data_schema:
            result += "Data Schema Fields:\n"
            for name, info in schema.data_schema.items():
                required = " (required)" if info.get("required") else ""
                result += f"- {name}: {info.get('type', 'Unknown')}{required}\n"
            result += "\n"

        if schema.system_fields:
            result += "System Fields (sample from existing document):\n"
            result += "".join(f"- {name}: {kind}\n" for name, kind in schema.system_fields.items())
            result += "\n"

        if schema.module_fields:
            result += "Module Fields (flags):\n"
            for module_id, fields in schema.module_fields.items():
                result += f"- {module_id}:\n"
                result += "".join(f"  • {name}: {kind}\n" for name, kind in fields.items())
            result += "\n"

        if schema.methods:
            more = "..." if len(schema.methods) > MAX_LISTED_METHODS else ""
            result += f"Available Methods: {', '.join(schema.methods[:MAX_LISTED_METHODS])}{more}\n"
        return result.rstrip()

    def analyze_config(self, params: list[str]) -> str:
        config = self.world.analyze_config()

        result = "=== CONFIG ANALYSIS ===\n"
        result += f"Foundry Version: {config.foundry_version}\n\n"

        if config.system_config:
            result += "System Configuration:\n"
            for key, props in config.system_config.items():
                result += f"- {key}:\n"
                for prop, value in props.items():
                    if not value:
                        continue
                    shown = f"[{', '.join(map(str, value))}]" if isinstance(value, list) else type(value).__name__
                    result += f"  • {prop}: {shown}\n"
            result += "\n"

        if config.module_config:
            result += "Module CONFIG Additions:\n"
            result += "".join(f"- CONFIG.{key}: {kind}\n" for key, kind in config.module_config.items())
            result += "\n"

        if config.status_effects:
            result += f"Status Effects: {len(config.status_effects)} configured\n"
        if config.conditions:
            result += f"Conditions: {', '.join(config.conditions)}\n"
        return result.rstrip()

    def analyze_datamodel_inheritance(self, params: list[str]) -> str:
        usage = check_params(SPECS_BY_NAME[ToolName.ANALYZE_DATAMODEL_INHERITANCE], params)
        if usage:
            return usage
        document_type = params[0]
        try:
            inheritance = self.world.analyze_datamodel_inheritance(document_type)
        except WorldError as e:
            return f"Error analyzing inheritance: {e}"

        result = f"=== {document_type.upper()} INHERITANCE ANALYSIS ===\n"

        if inheritance.inheritance_chain:
            result += "Inheritance Chain:\n"
            for depth, class_name in enumerate(inheritance.inheritance_chain):
                arrow = "↳ " if depth else ""
                result += f"{'  ' * depth}{arrow}{class_name}\n"
            result += "\n"

        if inheritance.mixins:
            result += f"Mixins: {', '.join(inheritance.mixins)}\n\n"

        if inheritance.data_fields:
            result += "Data Fields:\n"
            for name, info in inheritance.data_fields.items():
                required = " (required)" if info.get("required") else ""
                result += f"- {name}: {info.get('type', 'Unknown')}{required}\n"
            result += "\n"

        if inheritance.default_values:
            result += "Default Values:\n"
            result += "".join(
                f"- {name}: {json.dumps(value, default=str)}\n"
                for name, value in inheritance.default_values.items()
            )
        return result.rstrip()


class ToolDispatcher:
    """Runs a tool by name. Always returns a string, never raises."""

    def __init__(self, registry: Mapping[str, ToolDescriptor]) -> None:
        self.registry = registry

    @classmethod
    def for_world(cls, world: WorldSnapshot) -> ToolDispatcher:
        return cls(build_registry(WorldTools(world).functions()))

    async def execute(self, tool_name: str, raw_params: str) -> str:
        descriptor = self.registry.get(tool_name)
        if descriptor is None:
            logger.warning(f"Model requested unknown tool: {tool_name}")
            return (
                f"Unknown tool: {tool_name}. Error: no tool with that name is registered. "
                f"Available tools: {', '.join(self.registry)}"
            )

        params = split_params(raw_params)
        start_time = time.time()
        try:
            result = descriptor.execute(params)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Tool {tool_name} raised: {e}")
            return f"Error executing tool: {e}"

        if not isinstance(result, str):
            result = str(result)
        logger.debug(f"Tool {tool_name} finished in {time.time() - start_time:.3f}s ({len(result)} chars)")
        return result
