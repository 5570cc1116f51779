"""Exceptions raised by the agent registry."""

from __future__ import annotations


class CoordinatorError(Exception):
    """Base class for agent registry errors."""


class AgentNotFoundError(CoordinatorError, LookupError):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


class DelegationNotFoundError(CoordinatorError, LookupError):
    def __init__(self, task_id: str):
        super().__init__(f"Delegation not found: {task_id}")
        self.task_id = task_id


class NoCapableAgentError(CoordinatorError):
    """Raised by workflow composition when a step has no matching agent."""

    def __init__(self, capability: str):
        super().__init__(f"No agent found with capability: {capability}")
        self.capability = capability
