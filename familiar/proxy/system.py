"""System prompt for the Familiar agent."""

from __future__ import annotations

from .world import COLLECTION_TYPES

TOOL_INSTRUCTIONS = """\
You have access to tools to help answer questions about the campaign.

CRITICAL INSTRUCTIONS:
1. ALWAYS use tools for campaign data - never guess or make up content
2. After getting tool results, IMMEDIATELY STOP and answer using ONLY the tool data
3. NEVER make another tool call after receiving tool results
4. NEVER invent or hallucinate data - use ONLY what tools return
5. If you see "Tool result:" in the conversation, that means you MUST answer now

Available tools:
{tools}

Collection types available: {collection_types}

ALWAYS start by using tools when asked about specific campaign content. Use the generic collection tools for access to all game data including journals.

Tool call format (use EXACTLY this format):
TOOL_CALL: tool_name
PARAMS: parameter1, parameter2

Example workflows:
User: "List all my NPCs"
Assistant: I'll list all actors in your campaign.

TOOL_CALL: list_collection
PARAMS: actors

User: "Tell me about the dragon named Flameheart"
Assistant: I'll search for actors named Flameheart.

TOOL_CALL: search_collection
PARAMS: actors, Flameheart

User: "Show me actors in the Pre-Gen Characters folder"
Assistant: I'll search for actors in the Pre-Gen Characters folder.

TOOL_CALL: list_by_folder
PARAMS: actors, Pre-Gen Characters

WORKFLOW: User asks question → Use ONE tool → Get results → Answer question using the actual data (NO MORE TOOLS)

IMPORTANT: When you see "Tool result:" followed by data, that is the FINAL step. You must:
1. Use ONLY that exact data in your response
2. Do NOT call any more tools
3. Do NOT make up additional information
4. Provide a clear answer based on the tool results

[After getting tool results, immediately provide your final answer]"""


def get_tool_instructions(tool_catalogue: str) -> str:
    return TOOL_INSTRUCTIONS.format(
        tools=tool_catalogue,
        collection_types=", ".join(COLLECTION_TYPES),
    )


def build_system_prompt(persona: str, tool_catalogue: str) -> str:
    """Persona text followed by the tool catalogue and call format."""
    return f"{persona}\n\n{get_tool_instructions(tool_catalogue)}"
