"""FastAPI proxy server: bridges a chat client ↔ the agent loop ↔ the model endpoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from markdown_it import MarkdownIt
from pydantic import BaseModel, Field

from .agent import AgentLoop, ToolDispatcher
from .agent.models import AgentResult
from .agent.tool_defs import TOOL_SPECS
from .config import get_config
from .llm import LLMClient
from .world import load_world

logger = logging.getLogger("familiar.server")

# Global instances
llm_client: LLMClient | None = None
agent: AgentLoop | None = None

_markdown = MarkdownIt("commonmark", {"html": False}).enable("table")


def render_html(text: str) -> str:
    """Render a model answer as HTML for chat clients."""
    return _markdown.render(text)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    global llm_client, agent

    cfg = get_config()
    logger.info(f"Starting Familiar Proxy on {cfg.proxy_host}:{cfg.proxy_port}")
    logger.info(f"  LLM: {cfg.llm_endpoint} (model: {cfg.model})")
    logger.info(f"  Tool calls: {'enabled' if cfg.enable_tool_calls else 'disabled'}")

    llm_client = LLMClient()
    dispatcher = ToolDispatcher.for_world(load_world(cfg.world_snapshot))
    agent = AgentLoop(llm_client, dispatcher, cfg.loop_options())

    ok, message = await llm_client.test_connection()
    logger.info(f"  LLM status: {'✓' if ok else '✗'} {message}")

    yield

    # Shutdown
    if llm_client:
        await llm_client.close()
    logger.info("Familiar Proxy shutdown complete")


app = FastAPI(
    title="Familiar Proxy",
    version="0.2.0",
    description="Text-protocol tool-calling agent for a tabletop game host",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Request/Response Models ─────────────────────────────────────────

class AskRequest(BaseModel):
    message: str = Field(min_length=1)
    max_iterations: int | None = Field(default=None, ge=0)


class AnswerResponse(BaseModel):
    speaker: str
    answer: str
    html: str
    outcome: str
    iterations: int
    tool_calls: list[str]


def _answer_payload(result: AgentResult) -> dict:
    cfg = get_config()
    summary = result.summary()
    return AnswerResponse(
        speaker=f"{cfg.familiar_icon} {cfg.familiar_name}",
        answer=result.answer,
        html=render_html(result.answer),
        outcome=summary["outcome"],
        iterations=summary["iterations"],
        tool_calls=summary["tool_calls"],
    ).model_dump()


# ─── Routes ──────────────────────────────────────────────────────────

@app.get("/api/status")
async def get_status() -> JSONResponse:
    """Configuration the proxy is running with."""
    cfg = get_config()
    return JSONResponse({
        "status": "ok" if agent else "starting",
        "llm": {
            "endpoint": cfg.llm_endpoint,
            "model": cfg.model,
        },
        "agent": {
            "tools_enabled": agent.options.tools_enabled if agent else cfg.enable_tool_calls,
            "max_iterations": agent.options.max_iterations if agent else cfg.agent_max_iterations,
        },
        "familiar": {
            "name": cfg.familiar_name,
            "icon": cfg.familiar_icon,
        },
    })


@app.get("/api/tools")
async def list_tools() -> JSONResponse:
    """List the tools the model is told about."""
    tools = [
        {
            "name": spec.name.value,
            "signature": spec.signature,
            "description": spec.description,
            "parameters": list(spec.parameters),
        }
        for spec in TOOL_SPECS
    ]
    return JSONResponse({"count": len(tools), "tools": tools})


@app.post("/api/ask")
async def ask(request: AskRequest) -> JSONResponse:
    """Answer a question, letting the model call tools."""
    if not agent:
        return JSONResponse({"error": "Agent not initialized"}, status_code=503)
    result = await agent.converse(
        request.message,
        get_config().system_prompt,
        max_iterations=request.max_iterations,
    )
    return JSONResponse(_answer_payload(result))


@app.post("/api/summon")
async def summon(request: AskRequest) -> JSONResponse:
    """Answer a question in a single round-trip with tools disabled."""
    if not agent:
        return JSONResponse({"error": "Agent not initialized"}, status_code=503)
    result = await agent.converse(
        request.message,
        get_config().system_prompt,
        tools_enabled=False,
    )
    return JSONResponse(_answer_payload(result))


@app.post("/api/test-connection")
async def test_connection() -> JSONResponse:
    """Probe the model endpoint."""
    if not llm_client:
        return JSONResponse({"success": False, "message": "LLM client not initialized"}, status_code=503)
    ok, message = await llm_client.test_connection()
    return JSONResponse({"success": ok, "message": message})


def run_server() -> None:
    """Run the proxy server."""
    import uvicorn

    cfg = get_config()

    uvicorn.run(
        "familiar.proxy.server:app",
        host=cfg.proxy_host,
        port=cfg.proxy_port,
        log_level="warning",
        log_config=None,  # keep the logging set up by familiar.logger
        reload=False,
    )
