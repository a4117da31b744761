"""Tests for WorldSnapshot queries and the ten tools built on it."""

import asyncio
import json

import pytest

from familiar.proxy.agent.executors import MAX_LIST_RESULTS, ToolDispatcher, WorldTools
from familiar.proxy.agent.formatters import split_tool_result
from familiar.proxy.world import WorldError, WorldSnapshot, load_world


@pytest.fixture
def world(world_data):
    return WorldSnapshot(world_data)


@pytest.fixture
def tools(world):
    return WorldTools(world)


# ═══════════════════════════════════════════════════════════════
# WorldSnapshot
# ═══════════════════════════════════════════════════════════════

class TestWorldSnapshot:

    def test_list_collection(self, world):
        entries = world.list_collection("actors")
        assert [e.name for e in entries] == ["Flameheart", "Brother Ash", "Mira"]
        assert entries[0].folder == "Dragons"
        assert entries[0].metadata == {"type": "npc", "cr": 17}

    def test_collection_type_is_case_insensitive(self, world):
        assert len(world.list_collection("Actors")) == 3

    def test_empty_known_collection(self, world):
        assert world.list_collection("scenes") == []

    def test_unknown_collection_type(self, world):
        with pytest.raises(WorldError, match="Unknown collection type: monsters"):
            world.list_collection("monsters")

    def test_member_lookup(self, world):
        assert world.get_collection_member("actors", "a2").name == "Brother Ash"

    def test_member_missing(self, world):
        with pytest.raises(WorldError, match="No actors found with ID: zz"):
            world.get_collection_member("actors", "zz")

    def test_search_name_matches_first(self, world):
        hits = world.search_collection("actors", "flameheart")
        assert [(h.name, h.relevance) for h in hits] == [
            ("Flameheart", "name"),
            ("Brother Ash", "content"),
        ]

    def test_search_truncates_content(self, world_data):
        world_data["collections"]["items"] = [{"id": "i1", "name": "Tome", "content": "x" * 400}]
        hit = WorldSnapshot(world_data).search_collection("items", "tome")[0]
        assert hit.content == "x" * 300 + "..."

    def test_modules_active_first(self, world):
        modules = world.analyze_modules()
        assert [m.id for m in modules] == ["dice-so-nice", "midi-qol", "old-map"]
        assert modules[2].version == "Unknown"

    def test_unknown_document_type(self, world):
        with pytest.raises(WorldError, match="Unknown document type: item"):
            world.analyze_document_schema("item")

    def test_load_from_file(self, tmp_path, world_data):
        path = tmp_path / "world.json"
        path.write_text(json.dumps(world_data), encoding="utf-8")
        assert len(WorldSnapshot.load(path).list_collection("journals")) == 1

    def test_load_rejects_non_object(self, tmp_path):
        path = tmp_path / "world.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError):
            WorldSnapshot.load(path)

    def test_load_world_falls_back_to_empty(self, tmp_path):
        assert load_world("").list_collection("actors") == []
        assert load_world(tmp_path / "missing.json").list_collection("actors") == []


# ═══════════════════════════════════════════════════════════════
# Collection tools
# ═══════════════════════════════════════════════════════════════

class TestCollectionTools:

    def test_list_collection_types(self, tools):
        result = tools.list_collection_types([])
        assert result.startswith("Available collection types:\n- journals\n- scenes")
        assert split_tool_result(result).human_view is None

    def test_list_collection_views(self, tools):
        split = split_tool_result(tools.list_collection(["actors"]))
        assert split.machine_view.startswith("RESULT: list_collection\nCOUNT: 3\nENTRIES:\n")
        assert "1. Flameheart (ID: a1) [Folder: Dragons]" in split.machine_view
        assert split.human_view.splitlines() == [
            "1. Flameheart [Folder: Dragons]",
            "2. Brother Ash [Folder: Pre-Gen Characters]",
            "3. Mira [Folder: Pre-Gen Characters]",
        ]

    def test_list_collection_empty(self, tools):
        assert tools.list_collection(["scenes"]) == "No scenes found in the game."

    def test_list_collection_unknown_type(self, tools):
        assert tools.list_collection(["monsters"]).startswith("Unknown collection type: monsters.")

    def test_list_collection_usage(self, tools):
        assert tools.list_collection([]).startswith("Error: list_collection requires 1 parameter")

    def test_list_collection_caps_entries(self, world_data):
        world_data["collections"]["items"] = [
            {"id": f"i{n}", "name": f"Potion {n}"} for n in range(MAX_LIST_RESULTS + 5)
        ]
        result = WorldTools(WorldSnapshot(world_data)).list_collection(["items"])
        split = split_tool_result(result)
        assert "COUNT: 25" in split.machine_view
        assert split.machine_view.endswith(
            "[Showing first 20 of 25 entries. Use get_collection_member(type, id) for details on specific entries]"
        )
        human = split.human_view.splitlines()
        assert len(human) == MAX_LIST_RESULTS + 1
        assert human[-1] == "[Showing first 20 of 25 entries]"

    def test_search_collection_caps_matches(self, world_data):
        world_data["collections"]["items"] = [
            {"id": f"i{n}", "name": f"Potion {n}", "folder": "Shelf"} for n in range(25)
        ]
        split = split_tool_result(WorldTools(WorldSnapshot(world_data)).search_collection(["items", "potion"]))
        assert split.machine_view.endswith(
            "[Showing first 10 of 25 matches. Use get_collection_member(type, id) for full details]"
        )
        assert split.human_view.endswith("[Showing first 10 of 25 matches]")
        assert "ID:" not in split.human_view

    def test_list_by_folder_caps_entries(self, world_data):
        world_data["collections"]["items"] = [
            {"id": f"i{n}", "name": f"Potion {n}", "folder": "Shelf"} for n in range(25)
        ]
        split = split_tool_result(WorldTools(WorldSnapshot(world_data)).list_by_folder(["items", "shelf"]))
        assert split.machine_view.endswith("20. Potion 19 (ID: i19)\n\n[Showing first 20 of 25 entries]")
        assert split.human_view.endswith("20. Potion 19\n[Showing first 20 of 25 entries]")

    def test_get_collection_member_views(self, tools):
        split = split_tool_result(tools.get_collection_member(["actors", "a1"]))
        assert split.machine_view.startswith("=== Flameheart (actors) ===\nID: a1\nFolder: Dragons\n")
        assert "- cr: 17" in split.machine_view
        assert "ID: a1" not in split.human_view
        assert "Content:\nAn ancient red dragon" in split.human_view

    def test_get_collection_member_keeps_full_content_in_human_view(self, tools):
        split = split_tool_result(tools.get_collection_member(["journals", "j1"]))
        assert "They left at dawn." in split.machine_view
        assert split.human_view.endswith("The party met in Emberfall.\nThey left at dawn.")

    def test_get_collection_member_missing(self, tools):
        assert tools.get_collection_member(["actors", "zz"]) == "No actors found with ID: zz"

    def test_search_collection(self, tools):
        split = split_tool_result(tools.search_collection(["actors", "Flameheart"]))
        assert "COUNT: 2\nQUERY: Flameheart" in split.machine_view
        assert "(ID: a1) - name match" in split.machine_view
        assert split.human_view.startswith("1. Flameheart - name match\n   Preview: An ancient red dragon")
        assert "ID:" not in split.human_view

    def test_search_collection_no_hits(self, tools):
        assert tools.search_collection(["actors", "lich"]) == 'No actors found matching "lich".'

    def test_list_by_folder_partial_match(self, tools):
        split = split_tool_result(tools.list_by_folder(["actors", "pre-gen"]))
        assert "COUNT: 2\nFOLDER: pre-gen" in split.machine_view
        assert split.human_view == "1. Brother Ash\n2. Mira"

    def test_list_by_folder_no_match(self, tools):
        assert tools.list_by_folder(["actors", "Villains"]) == 'No actors found in folders containing "Villains".'


# ═══════════════════════════════════════════════════════════════
# Data-model analysis tools
# ═══════════════════════════════════════════════════════════════

class TestAnalysisTools:

    def test_analyze_game_system(self, tools):
        result = tools.analyze_game_system([])
        assert result.startswith("=== GAME SYSTEM ANALYSIS ===\nSystem: Dungeons & Dragons Fifth Edition (dnd5e)\nVersion: 4.1.2")
        assert "- Actor: character, npc" in result
        assert "Template Types" not in result

    def test_analyze_modules(self, tools):
        result = tools.analyze_modules(["none"])
        assert "Total Modules: 3\nActive: 2 | Inactive: 1" in result
        assert "  • Has API exposed" in result
        assert "  • CONFIG contributions: midiQOL" in result
        assert result.endswith("INACTIVE MODULES: Old Map Pack")

    def test_analyze_document_schema(self, tools):
        result = tools.analyze_document_schema(["actor"])
        assert result.startswith("=== ACTOR DOCUMENT SCHEMA ===\nDocument Class: Actor5e")
        assert "- name: StringField (required)" in result
        assert "- midi-qol:\n  • onUseMacroName: string" in result
        assert "Available Methods: applyDamage, longRest, rollAbilityTest" in result

    def test_analyze_document_schema_unknown(self, tools):
        assert tools.analyze_document_schema(["vehicle"]).startswith(
            "Error analyzing document schema: Unknown document type: vehicle"
        )

    def test_analyze_config(self, tools):
        result = tools.analyze_config([])
        assert "Foundry Version: 12.331" in result
        assert "  • keys: [str, dex]" in result
        assert "- CONFIG.midiQOL: object" in result
        assert "Status Effects: 3 configured" in result
        assert result.endswith("Conditions: blinded, charmed")

    def test_analyze_datamodel_inheritance(self, tools):
        result = tools.analyze_datamodel_inheritance(["actor"])
        assert "Inheritance Chain:\nActor5e\n  ↳ Actor\n    ↳ ClientDocument" in result
        assert "Mixins: ClientDocumentMixin" in result
        assert result.endswith('- type: "character"')


# ═══════════════════════════════════════════════════════════════
# Dispatch over the world
# ═══════════════════════════════════════════════════════════════

class TestWorldDispatcher:

    def test_for_world_registers_all_tools(self, world):
        dispatcher = ToolDispatcher.for_world(world)
        assert len(dispatcher.registry) == 10

    def test_dispatch_through_world(self, world):
        dispatcher = ToolDispatcher.for_world(world)
        result = asyncio.run(dispatcher.execute("get_collection_member", "actors, a3"))
        assert split_tool_result(result).machine_view.startswith("=== Mira (actors) ===")
