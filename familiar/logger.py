"""Logging configuration for Familiar."""

import logging
from pathlib import Path


def setup_logging(
    log_file: str = "log/familiar.log",
    level: int = logging.INFO,
    verbose: bool = False,
    console: bool = True,
) -> None:
    """Setup logging to file and optionally stderr.

    ``verbose`` mirrors the ``enable_console_logging`` setting: it turns the
    familiar loggers up to DEBUG so every round-trip of the agent loop is traced.
    ``console`` is off for one-shot CLI answers so log lines don't interleave
    with the rendered reply.
    """

    # Create log directory if it doesn't exist
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.FileHandler(log_path, mode="a", encoding="utf-8"),
    ]
    if console:
        handlers.append(logging.StreamHandler())

    # Configure root logger
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True  # Overwrite existing config
    )

    # Suppress noisy third-party logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("markdown_it").setLevel(logging.WARNING)

    logging.getLogger("familiar").setLevel(logging.DEBUG if verbose else level)

    logging.info("=" * 60)
    logging.info(f"Familiar Logging Started. Writing to {log_path.absolute()}")
    logging.info("=" * 60)
