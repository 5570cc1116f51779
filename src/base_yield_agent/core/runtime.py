"""Runtime - wires config, chain access, registry, storage and the chat agent."""

from __future__ import annotations

import logging
from pathlib import Path

from base_yield_agent.config import AppConfig, get_config_dir, load_or_default, resolve_db_path
from base_yield_agent.chain.provider import Web3Provider
from base_yield_agent.core.agent import YieldAgent
from base_yield_agent.core.coordinator import AgentCoordinator
from base_yield_agent.core.session import SessionStore
from base_yield_agent.llm.base import BaseLLMProvider
from base_yield_agent.llm.router import LLMRouter
from base_yield_agent.storage.database import Database
from base_yield_agent.tools.blockchain_tools import set_web3_provider
from base_yield_agent.tools.coordinator_tools import set_coordinator

logger = logging.getLogger("base_yield_agent.runtime")


class Runtime:
    """Everything a request handler needs, for the life of the process.

    The registry lives only in memory and is gone when the process exits;
    chat sessions survive restarts through the SQLite database.
    """

    def __init__(
        self,
        config: AppConfig,
        db: Database,
        web3: Web3Provider | None = None,
        coordinator: AgentCoordinator | None = None,
        llm: BaseLLMProvider | None = None,
    ):
        self.config = config
        self.db = db
        self.web3 = web3 or Web3Provider(config.chains.rpc_urls)
        self.coordinator = coordinator or AgentCoordinator()
        self.sessions = SessionStore(db)
        if llm is None:
            llm = self._build_llm(config)
        self.agent = YieldAgent(
            provider=llm,
            sessions=self.sessions,
            max_steps=config.agent.max_steps,
            system_prompt=config.agent.system_prompt,
        )

    @staticmethod
    def _build_llm(config: AppConfig) -> BaseLLMProvider | None:
        try:
            return LLMRouter(config.llm).get_provider()
        except ValueError as e:
            logger.warning(f"LLM provider unavailable, chat disabled: {e}")
            return None

    @classmethod
    async def load(cls, config_path: Path | None = None, **overrides) -> Runtime:
        """Load config (defaults when the file is missing) and start the runtime."""
        if config_path is None:
            config_dir = get_config_dir()
            config_path = config_dir / "config.yaml"
        else:
            config_dir = config_path.parent
        config = load_or_default(config_path)
        db = Database(resolve_db_path(config, config_dir))
        runtime = cls(config, db, **overrides)
        await runtime.start()
        return runtime

    async def start(self) -> None:
        if not self.db.connected:
            await self.db.connect()
        await self.coordinator.initialize()
        set_web3_provider(self.web3)
        set_coordinator(self.coordinator)
        logger.info(f"Runtime started for '{self.config.name}'")

    async def shutdown(self) -> None:
        await self.db.close()
