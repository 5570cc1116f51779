"""Session storage layer -- async SQLite database."""

from base_yield_agent.storage.database import Database

__all__ = ["Database"]
