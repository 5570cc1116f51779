"""Configuration for Base Yield Agent.

Settings live in ``.base-yield-agent/config.yaml``. String values may
reference ``${VAR}`` environment variables, and the deployment variables
``AI_PROVIDER``, ``AI_PROVIDER_API_KEY``, ``MODEL_ID`` and ``BASE_RPC_URL``
are layered on top by :func:`apply_env_overrides`.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, Field

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def _interpolate(node: object, env: Mapping[str, str] = os.environ) -> object:
    """Expand ``${VAR}`` in every string of a parsed YAML tree.

    Unset variables stay as literal placeholders.
    """
    if isinstance(node, dict):
        return {key: _interpolate(value, env) for key, value in node.items()}
    if isinstance(node, list):
        return [_interpolate(item, env) for item in node]
    if isinstance(node, str):
        return _PLACEHOLDER.sub(lambda m: env.get(m.group(1), m.group(0)), node)
    return node


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------

DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-5-20250929",
    "openai": "gpt-4o",
}


class LLMProviderConfig(BaseModel):
    """Credentials and model for one LLM backend."""

    api_key: str = ""
    model: str = ""
    base_url: Optional[str] = None  # OpenAI-compatible servers
    max_tokens: int = 4096


class LLMConfig(BaseModel):
    """Which backend chat uses, plus the settings of each."""

    default_provider: str = "anthropic"
    anthropic: Optional[LLMProviderConfig] = None
    openai: Optional[LLMProviderConfig] = None


class AgentSettings(BaseModel):
    """Chat agent behaviour."""

    max_steps: int = 10             # LLM/tool round trips per user message
    system_prompt: str = ""         # empty = built-in DeFi advisor prompt


class ChainsConfig(BaseModel):
    """Per-chain RPC endpoint overrides, keyed by chain name."""

    rpc_urls: dict[str, str] = Field(default_factory=dict)


class ServerConfig(BaseModel):
    """HTTP API settings."""

    host: str = "127.0.0.1"
    port: int = 8787
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class StorageConfig(BaseModel):
    """Chat session storage."""

    db_path: str = "sessions.db"   # relative paths resolve against the config dir


class AppConfig(BaseModel):
    """Root configuration object."""

    name: str = "Base Yield Agent"
    llm: LLMConfig = Field(default_factory=LLMConfig)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    chains: ChainsConfig = Field(default_factory=ChainsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


# ---------------------------------------------------------------------------
# Locating, loading and saving
# ---------------------------------------------------------------------------

CONFIG_DIR_NAME = ".base-yield-agent"
CONFIG_FILE_NAME = "config.yaml"


def get_config_dir(base: Path | None = None) -> Path:
    """``<base>/.base-yield-agent``, with *base* defaulting to the cwd. Not created."""
    return (base or Path.cwd()) / CONFIG_DIR_NAME


def get_config_path(base: Path | None = None) -> Path:
    return get_config_dir(base) / CONFIG_FILE_NAME


def resolve_db_path(config: AppConfig, config_dir: Path) -> Path:
    path = Path(config.storage.db_path)
    return path if path.is_absolute() else config_dir / path


def load_config(path: Path) -> AppConfig:
    """Parse *path* as YAML, expand ``${VAR}`` placeholders, and validate."""
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return AppConfig.model_validate(_interpolate(raw))


def load_or_default(path: Path | None) -> AppConfig:
    """Load *path* if it exists, otherwise return defaults. Env overrides apply to both."""
    config = load_config(path) if path is not None and path.exists() else AppConfig()
    return apply_env_overrides(config)


def save_config(config: AppConfig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(config.model_dump(exclude_none=True), sort_keys=False),
        encoding="utf-8",
    )


def apply_env_overrides(config: AppConfig, environ: dict[str, str] | None = None) -> AppConfig:
    """Apply the deployment environment variables on top of *config*.

    ``AI_PROVIDER`` selects the default provider, ``AI_PROVIDER_API_KEY`` and
    ``MODEL_ID`` fill that provider's block, and ``BASE_RPC_URL`` overrides
    the Base endpoint. Unset variables leave the config untouched.
    """
    env = os.environ if environ is None else environ

    provider = env.get("AI_PROVIDER")
    if provider:
        if provider not in ("anthropic", "openai"):
            raise ValueError(f"Unsupported AI provider: {provider}")
        config.llm.default_provider = provider

    api_key = env.get("AI_PROVIDER_API_KEY")
    model = env.get("MODEL_ID")
    if api_key or model:
        name = config.llm.default_provider
        block = getattr(config.llm, name, None) or LLMProviderConfig(
            model=DEFAULT_MODELS.get(name, "")
        )
        if api_key:
            block.api_key = api_key
        if model:
            block.model = model
        setattr(config.llm, name, block)

    rpc = env.get("BASE_RPC_URL")
    if rpc:
        config.chains.rpc_urls["base"] = rpc

    return config
