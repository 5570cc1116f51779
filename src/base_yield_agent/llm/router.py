"""Builds the configured LLM provider on demand."""

from __future__ import annotations

import importlib
import logging

from base_yield_agent.config import DEFAULT_MODELS, LLMConfig
from base_yield_agent.llm.base import BaseLLMProvider

logger = logging.getLogger("base_yield_agent.llm.router")

# Provider name -> implementation class. Imported lazily so that only the
# SDK actually in use is loaded.
_PROVIDER_CLASSES: dict[str, str] = {
    "anthropic": "base_yield_agent.llm.anthropic.AnthropicProvider",
    "openai": "base_yield_agent.llm.openai.OpenAIProvider",
}


def _import_provider_class(dotted_path: str) -> type[BaseLLMProvider]:
    module_path, class_name = dotted_path.rsplit(".", 1)
    cls = getattr(importlib.import_module(module_path), class_name)
    if not (isinstance(cls, type) and issubclass(cls, BaseLLMProvider)):
        raise TypeError(f"Expected a BaseLLMProvider subclass at '{dotted_path}', got {cls!r}")
    return cls


class LLMRouter:
    """Resolves provider names to cached provider instances.

    Parameters
    ----------
    llm_config:
        The ``llm`` section of the application configuration.
    """

    def __init__(self, llm_config: LLMConfig):
        self._config = llm_config
        self._providers: dict[str, BaseLLMProvider] = {}

    def get_provider(self, provider_name: str | None = None) -> BaseLLMProvider:
        """Return the provider for *provider_name* (default: the configured one).

        Raises
        ------
        ValueError
            If the provider is unknown, not configured, or has no API key.
        """
        name = provider_name or self._config.default_provider
        if name in self._providers:
            return self._providers[name]

        if name not in _PROVIDER_CLASSES:
            raise ValueError(
                f"Unsupported AI provider: {name}. "
                f"Supported providers: {sorted(_PROVIDER_CLASSES)}"
            )

        block = getattr(self._config, name, None)
        if block is None:
            raise ValueError(
                f"Provider '{name}' is not configured. "
                f"Add an 'llm.{name}' section to config.yaml or set AI_PROVIDER_API_KEY."
            )
        if not block.api_key:
            raise ValueError(f"API key for provider '{name}' is empty.")

        provider_cls = _import_provider_class(_PROVIDER_CLASSES[name])
        provider = provider_cls(
            api_key=block.api_key,
            model=block.model or DEFAULT_MODELS[name],
            base_url=block.base_url,
            max_tokens=block.max_tokens,
        )
        self._providers[name] = provider
        logger.info(
            "Created %s provider (model=%s, base_url=%s)",
            name,
            provider.model,
            block.base_url or "default",
        )
        return provider
