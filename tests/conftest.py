"""Shared fixtures: isolated config, a scripted model transport and a sample world."""

import pytest

import familiar.proxy.config as config_module
from familiar.proxy.config import DEFAULT_CONFIG, Config, LoopOptions
from familiar.proxy.llm import ChatRequest


def chat_response(content):
    """Build a chat completions body carrying ``content``."""
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


class ScriptedTransport:
    """Replays canned replies in order, repeating the last one, and records requests."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests: list[ChatRequest] = []

    async def send(self, request):
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, str):
            return chat_response(reply)
        return reply

    @property
    def round_trips(self):
        return len(self.requests)


@pytest.fixture(autouse=True)
def default_config():
    """Never touch ~/.familiar: every test sees the built-in defaults."""
    cfg = Config(**DEFAULT_CONFIG)
    config_module._config = cfg
    yield cfg
    config_module.reset_config()


@pytest.fixture
def options():
    return LoopOptions(model="test-model", temperature=0.2, max_tokens=256)


@pytest.fixture
def world_data():
    return {
        "version": "12.331",
        "system": {
            "id": "dnd5e",
            "title": "Dungeons & Dragons Fifth Edition",
            "version": "4.1.2",
            "document_types": {"Actor": ["character", "npc"], "Item": ["weapon", "spell"]},
            "data_models": {"Actor": ["CharacterData", "NPCData"]},
            "templates": {},
        },
        "collections": {
            "actors": [
                {
                    "id": "a1",
                    "name": "Flameheart",
                    "folder": "Dragons",
                    "content": "An ancient red dragon who hoards sunstones.",
                    "metadata": {"type": "npc", "cr": 17},
                },
                {
                    "id": "a2",
                    "name": "Brother Ash",
                    "folder": "Pre-Gen Characters",
                    "content": "A cleric sworn to hunt Flameheart.",
                },
                {"id": "a3", "name": "Mira", "folder": "Pre-Gen Characters", "content": "Rogue."},
            ],
            "journals": [
                {"id": "j1", "name": "Session 1", "content": "The party met in Emberfall.\n\nThey left at dawn."},
            ],
        },
        "modules": [
            {"id": "dice-so-nice", "title": "Dice So Nice!", "version": "5.0", "active": True, "api": True},
            {
                "id": "midi-qol",
                "title": "Midi QOL",
                "version": "11.4",
                "active": True,
                "config_contributions": ["midiQOL"],
                "document_modifications": ["Actor.rollAttack"],
            },
            {"id": "old-map", "title": "Old Map Pack", "active": False},
        ],
        "config": {
            "system": {"abilities": {"keys": ["str", "dex"], "labels": {}}},
            "modules": {"midiQOL": "object"},
            "status_effects": ["dead", "prone", "blind"],
            "conditions": ["blinded", "charmed"],
        },
        "documents": {
            "actor": {
                "class": "Actor5e",
                "schema": {"name": {"type": "StringField", "required": True}, "img": {"type": "FilePathField"}},
                "system_fields": {"attributes": "object", "details": "object"},
                "module_fields": {"midi-qol": {"onUseMacroName": "string"}},
                "methods": ["rollAbilityTest", "applyDamage", "longRest"],
                "inheritance": ["Actor5e", "Actor", "ClientDocument", "Document"],
                "mixins": ["ClientDocumentMixin"],
                "data_fields": {"system": {"type": "TypeDataField"}},
                "defaults": {"type": "character"},
            },
        },
    }
