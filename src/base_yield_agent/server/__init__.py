"""HTTP API for Base Yield Agent."""

from base_yield_agent.server.app import create_app, run_server

__all__ = ["create_app", "run_server"]
