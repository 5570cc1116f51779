"""Base Yield Agent - an LLM DeFi advisor wired to EVM chain reads and an agent registry."""

__version__ = "0.1.0"
