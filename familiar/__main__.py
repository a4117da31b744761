"""Familiar CLI entry point."""

from __future__ import annotations

import argparse
import os
import sys


def main(argv: list[str] | None = None) -> int:

    import importlib.metadata

    try:
        version = importlib.metadata.version("familiar")
    except importlib.metadata.PackageNotFoundError:
        version = "0.2.0"

    parser = argparse.ArgumentParser(
        prog="familiar",
        description="Familiar: a tool-calling assistant for your game world",
    )
    # Global arguments
    parser.add_argument("--version", action="version", version=f"%(prog)s {version}")
    parser.add_argument("--config", default=None, help="Path to custom configuration file (default: ~/.familiar/config.json)")
    parser.add_argument("--world", default=None, help="Path to a world snapshot JSON file (overrides world_snapshot)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Trace every agent round-trip to the log")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ask_parser = subparsers.add_parser("ask", help="Ask a question, letting the model use tools")
    ask_parser.add_argument("question", nargs="+", help="The question to ask")
    ask_parser.add_argument("--max-iterations", type=int, default=None, help="Override agent_max_iterations")

    summon_parser = subparsers.add_parser("summon", help="Ask a question with tools disabled")
    summon_parser.add_argument("question", nargs="+", help="The question to ask")

    subparsers.add_parser("tools", help="List the tools the model can call")
    subparsers.add_parser("test-connection", help="Probe the configured model endpoint")

    serve_parser = subparsers.add_parser("serve", help="Start the proxy server")
    serve_parser.add_argument("--host", default=None, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to bind to")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    # Set env vars BEFORE the config singleton is created so they are picked up
    if args.world:
        os.environ["FAMILIAR_WORLD_SNAPSHOT"] = args.world
    if getattr(args, "host", None):
        os.environ["FAMILIAR_PROXY_HOST"] = args.host
    if getattr(args, "port", None):
        os.environ["FAMILIAR_PROXY_PORT"] = str(args.port)

    from familiar.logger import setup_logging
    from familiar.proxy.config import get_config

    cfg = get_config(args.config)
    setup_logging(
        verbose=args.verbose or cfg.enable_console_logging,
        console=args.command == "serve" or args.verbose,
    )

    if args.command == "ask":
        return _run_ask(args, tools_enabled=None)
    if args.command == "summon":
        return _run_ask(args, tools_enabled=False)
    if args.command == "tools":
        return _run_tools()
    if args.command == "test-connection":
        return _run_test_connection()
    return _run_serve()


def _run_ask(args, tools_enabled: bool | None) -> int:
    """Answer one question and render it as markdown."""
    import asyncio

    from rich.console import Console
    from rich.markdown import Markdown

    from familiar.proxy.agent import AgentLoop, ToolDispatcher
    from familiar.proxy.config import get_config
    from familiar.proxy.llm import LLMClient
    from familiar.proxy.world import load_world

    cfg = get_config()
    question = " ".join(args.question)
    console = Console()

    async def converse():
        client = LLMClient()
        try:
            loop = AgentLoop(
                client,
                ToolDispatcher.for_world(load_world(cfg.world_snapshot)),
                cfg.loop_options(tools_enabled),
            )
            return await loop.converse(
                question,
                cfg.system_prompt,
                max_iterations=getattr(args, "max_iterations", None),
            )
        finally:
            await client.close()

    with console.status(f"{cfg.familiar_icon} {cfg.familiar_name} is thinking..."):
        result = asyncio.run(converse())

    console.print(f"[bold magenta]{cfg.familiar_icon} {cfg.familiar_name}[/bold magenta]")
    console.print(Markdown(result.answer))
    if args.verbose:
        summary = result.summary()
        tools = ", ".join(summary["tool_calls"]) or "none"
        console.print(
            f"[dim]{summary['outcome']} · {summary['iterations']} round-trip(s) · tools: {tools}[/dim]"
        )
    return 1 if result.outcome == "failed" else 0


def _run_tools() -> int:
    """Print the tool catalogue."""
    from rich.console import Console
    from rich.table import Table

    from familiar.proxy.agent.tool_defs import TOOL_SPECS

    table = Table(title="Familiar tools")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Parameters")
    table.add_column("Description")
    for spec in TOOL_SPECS:
        table.add_row(spec.name.value, spec.parameter_doc, spec.description)
    Console().print(table)
    return 0


def _run_test_connection() -> int:
    """Send a tiny probe to the model endpoint."""
    import asyncio

    from rich.console import Console

    from familiar.proxy.config import get_config
    from familiar.proxy.llm import LLMClient

    cfg = get_config()

    async def probe():
        client = LLMClient()
        try:
            return await client.test_connection()
        finally:
            await client.close()

    ok, message = asyncio.run(probe())
    style = "green" if ok else "red"
    Console().print(f"[{style}]{'●' if ok else '✗'} {message}[/{style}] [dim]({cfg.llm_endpoint}, model: {cfg.model})[/dim]")
    return 0 if ok else 1


def _run_serve() -> int:
    """Start the proxy server."""
    from familiar.proxy.server import run_server
    run_server()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
