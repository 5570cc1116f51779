"""Agent-facing registry tools: discovery, messaging, delegation, workflows."""

from __future__ import annotations

import logging
from typing import Any

from base_yield_agent.core.coordinator import AgentCoordinator
from base_yield_agent.core.models import DelegationStatus, MessageType
from base_yield_agent.exceptions import CoordinatorError
from base_yield_agent.tools.registry import schema, tool

logger = logging.getLogger("base_yield_agent.tools.coordinator")

# Module-level state, set at runtime by the server / CLI
_coordinator: AgentCoordinator | None = None


def set_coordinator(coordinator: AgentCoordinator) -> None:
    """Inject the AgentCoordinator instance (called on startup)."""
    global _coordinator
    _coordinator = coordinator


def _require_coordinator() -> AgentCoordinator:
    if _coordinator is None:
        raise RuntimeError("Agent coordinator not configured.")
    return _coordinator


def _failure(e: CoordinatorError) -> dict:
    return {"success": False, "error": str(e)}


@tool(
    "discover_agents",
    "Find registered agents advertising a chain, protocol, or operation, best reputation first.",
    schema(
        {"capability": {"type": "string", "description": "Chain, protocol, or operation tag"}},
        ["capability"],
    ),
)
async def discover_agents(capability: str) -> dict:
    agents = await _require_coordinator().discover_agents(capability)
    return {
        "success": True,
        "capability": capability,
        "agents": [a.model_dump(mode="json") for a in agents],
    }


@tool(
    "list_agents",
    "List every registered agent.",
    schema({}),
)
async def list_agents() -> dict:
    agents = await _require_coordinator().list_agents()
    return {"success": True, "agents": [a.model_dump(mode="json") for a in agents]}


@tool(
    "send_agent_message",
    "Send a message to another agent's mailbox.",
    schema(
        {
            "fromAgent": {"type": "string", "description": "Sender agent id"},
            "toAgent": {"type": "string", "description": "Recipient agent id"},
            "type": {
                "type": "string",
                "enum": [t.value for t in MessageType],
                "description": "Message type",
            },
            "payload": {"description": "Message body (any JSON value)"},
        },
        ["fromAgent", "toAgent", "type"],
    ),
)
async def send_agent_message(fromAgent: str, toAgent: str, type: str, payload: Any = None) -> dict:
    message = await _require_coordinator().send_message(fromAgent, toAgent, type, payload)
    return {"success": True, "message": message.model_dump(mode="json")}


@tool(
    "receive_agent_messages",
    "Read and clear an agent's mailbox.",
    schema({"agentId": {"type": "string", "description": "Agent id"}}, ["agentId"]),
)
async def receive_agent_messages(agentId: str) -> dict:
    messages = await _require_coordinator().receive_messages(agentId)
    return {"success": True, "messages": [m.model_dump(mode="json") for m in messages]}


@tool(
    "delegate_task",
    "Delegate a task to another agent. Returns the pending delegation with its taskId.",
    schema(
        {
            "fromAgent": {"type": "string", "description": "Delegating agent id"},
            "toAgent": {"type": "string", "description": "Target agent id"},
            "taskType": {"type": "string", "description": "Task type, usually a capability tag"},
            "description": {"type": "string", "description": "What the delegate should do"},
            "parameters": {"type": "object", "description": "Task parameters"},
        },
        ["fromAgent", "toAgent", "taskType"],
    ),
)
async def delegate_task(
    fromAgent: str,
    toAgent: str,
    taskType: str,
    description: str = "",
    parameters: dict | None = None,
) -> dict:
    delegation = await _require_coordinator().delegate_task(
        fromAgent,
        toAgent,
        {"type": taskType, "description": description, "parameters": parameters},
    )
    return {"success": True, "delegation": delegation.model_dump(mode="json")}


@tool(
    "get_delegation",
    "Look up a delegated task by id.",
    schema({"taskId": {"type": "string", "description": "Delegation task id"}}, ["taskId"]),
)
async def get_delegation(taskId: str) -> dict:
    delegation = await _require_coordinator().get_delegation(taskId)
    if delegation is None:
        return {"success": False, "error": f"Delegation not found: {taskId}"}
    return {"success": True, "delegation": delegation.model_dump(mode="json")}


@tool(
    "update_delegation",
    "Set the status of a delegated task and notify the delegating agent.",
    schema(
        {
            "taskId": {"type": "string", "description": "Delegation task id"},
            "status": {"type": "string", "enum": [s.value for s in DelegationStatus]},
            "result": {"description": "Task result (any JSON value)"},
            "error": {"type": "string", "description": "Failure reason"},
        },
        ["taskId", "status"],
    ),
)
async def update_delegation(
    taskId: str,
    status: str,
    result: Any = None,
    error: str | None = None,
) -> dict:
    try:
        delegation = await _require_coordinator().update_delegation(taskId, status, result, error)
    except CoordinatorError as e:
        return _failure(e)
    return {"success": True, "delegation": delegation.model_dump(mode="json")}


@tool(
    "update_reputation",
    "Adjust an agent's reputation by a delta (result is clamped to 0..200).",
    schema(
        {
            "agentId": {"type": "string", "description": "Agent id"},
            "delta": {"type": "integer", "description": "Reputation change"},
        },
        ["agentId", "delta"],
    ),
)
async def update_reputation(agentId: str, delta: int) -> dict:
    try:
        agent = await _require_coordinator().update_reputation(agentId, int(delta))
    except CoordinatorError as e:
        return _failure(e)
    return {"success": True, "agentId": agent.id, "reputation": agent.reputation}


@tool(
    "compose_workflow",
    (
        "Delegate a sequence of steps, each to the best agent for its capability. "
        "Delegations are created and returned immediately; they do not wait for completion."
    ),
    schema(
        {
            "name": {"type": "string", "description": "Workflow name"},
            "steps": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "agentCapability": {"type": "string"},
                        "task": {"description": "Step parameters"},
                    },
                    "required": ["agentCapability"],
                },
            },
        },
        ["name", "steps"],
    ),
)
async def compose_workflow(name: str, steps: list[dict]) -> dict:
    try:
        results = await _require_coordinator().compose_workflow(
            name,
            [{"agent_capability": s["agentCapability"], "task": s.get("task")} for s in steps],
        )
    except CoordinatorError as e:
        return _failure(e)
    return {"success": True, "workflow": name, "steps": [r.model_dump(mode="json") for r in results]}
