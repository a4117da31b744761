"""Configuration management for the Familiar proxy."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger("familiar.config")

APP_DIR_NAME = ".familiar"
CONFIG_FILENAME = "config.json"

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful magical familiar assisting a game master. "
    "You have access to tools to help answer questions about the campaign."
)

DEFAULT_CONFIG = {
    "llm_endpoint": "http://localhost:11434/v1/chat/completions",
    "api_key": "",
    "model": "qwen3",
    "temperature": 0.1,
    "max_tokens": 600,
    "llm_timeout": 120.0,
    "system_prompt": DEFAULT_SYSTEM_PROMPT,
    "enable_tool_calls": True,
    "agent_max_iterations": 5,
    "enable_console_logging": False,
    "familiar_name": "Familiar",
    "familiar_icon": "🧙",
    "world_snapshot": "",
    "proxy_host": "127.0.0.1",
    "proxy_port": 3000,
}


@dataclass(frozen=True)
class LoopOptions:
    """Per-run knobs of the agent loop, threaded in explicitly."""

    model: str
    temperature: float | None = None
    max_tokens: int | None = None
    tools_enabled: bool = True
    max_iterations: int = 5


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from ~/.familiar/config.json."""

    # Model endpoint (OpenAI-compatible chat completions)
    llm_endpoint: str
    api_key: str
    model: str
    llm_timeout: float

    # Sampling
    temperature: float
    max_tokens: int

    # Behaviour
    system_prompt: str
    enable_tool_calls: bool
    agent_max_iterations: int
    enable_console_logging: bool

    # Presentation
    familiar_name: str
    familiar_icon: str

    # Host data export the tools read from
    world_snapshot: str

    # Proxy server
    proxy_host: str
    proxy_port: int

    def loop_options(self, tools_enabled: bool | None = None) -> LoopOptions:
        return LoopOptions(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            tools_enabled=self.enable_tool_calls if tools_enabled is None else tools_enabled,
            max_iterations=self.agent_max_iterations,
        )

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> Config:
        """Load config from specified path or default ~/.familiar/config.json."""
        if config_path:
            config_file = Path(config_path)
        else:
            config_dir = Path.home() / APP_DIR_NAME
            config_file = config_dir / CONFIG_FILENAME
            config_dir.mkdir(parents=True, exist_ok=True)

        current_config = DEFAULT_CONFIG.copy()

        if config_file.exists():
            try:
                with open(config_file, "r", encoding="utf-8") as f:
                    user_config = json.load(f)
                # Unknown keys are ignored so old config files keep loading
                current_config.update(
                    {k: v for k, v in user_config.items() if k in DEFAULT_CONFIG}
                )
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Failed to load config from {config_file}: {e}")
                logger.error("Using default configuration.")
        elif config_path is None:
            logger.info(f"No config found. Generating default config at {config_file}")
            try:
                with open(config_file, "w", encoding="utf-8") as f:
                    json.dump(DEFAULT_CONFIG, f, indent=4, ensure_ascii=False)
            except OSError as e:
                logger.error(f"Failed to write default config: {e}")
        else:
            logger.warning(f"Configuration file not found at {config_file}")
            logger.warning("Using default configuration settings.")

        # Environment overrides, e.g. FAMILIAR_MODEL=llama3.2
        for key in current_config:
            env_key = f"FAMILIAR_{key.upper()}"
            if env_key not in os.environ:
                continue
            val = os.environ[env_key]
            default_val = DEFAULT_CONFIG[key]
            if isinstance(default_val, bool):
                current_config[key] = val.lower() in ("true", "1", "yes")
            elif isinstance(default_val, int):
                try:
                    current_config[key] = int(val)
                except ValueError:
                    logger.warning(f"Ignoring {env_key}={val!r}: not an integer")
            elif isinstance(default_val, float):
                try:
                    current_config[key] = float(val)
                except ValueError:
                    logger.warning(f"Ignoring {env_key}={val!r}: not a number")
            else:
                current_config[key] = val

        return cls(**current_config)


# Singleton
_config: Config | None = None


def get_config(config_path: str | None = None) -> Config:
    """Get or create the global config instance, optionally loading from a path."""
    global _config
    if _config is None:
        _config = Config.load(config_path)
    return _config


def reset_config() -> None:
    global _config
    _config = None
