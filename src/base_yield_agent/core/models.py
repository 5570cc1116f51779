"""Pydantic models for the agent registry: agents, messages, delegations."""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class MessageType(str, Enum):
    REQUEST = "request"
    RESPONSE = "response"
    EVENT = "event"
    DELEGATION = "delegation"


class DelegationStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_task_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Registry records
# ---------------------------------------------------------------------------

class Capability(BaseModel):
    """A tagged unit of functionality an agent advertises."""

    id: str
    name: str
    description: str = ""
    chains: list[str] = Field(default_factory=list)
    protocols: list[str] = Field(default_factory=list)
    operations: list[str] = Field(default_factory=list)

    def matches(self, tag: str) -> bool:
        return tag in self.operations or tag in self.protocols or tag in self.chains


class RegisteredAgent(BaseModel):
    id: str
    name: str
    endpoint: str
    capabilities: list[Capability] = Field(default_factory=list)
    registered_at: datetime = Field(default_factory=utcnow)
    last_seen: datetime = Field(default_factory=utcnow)
    reputation: int = 100

    def has_capability(self, tag: str) -> bool:
        return any(cap.matches(tag) for cap in self.capabilities)


class AgentMessage(BaseModel):
    from_agent: str
    to_agent: str
    type: MessageType
    payload: Any = None
    timestamp: int = Field(default_factory=now_ms)
    signature: Optional[str] = None  # carried, never verified


class TaskSpec(BaseModel):
    type: str
    description: str = ""
    parameters: Any = None


class TaskDelegation(BaseModel):
    task_id: str = Field(default_factory=new_task_id)
    from_agent: str
    to_agent: str
    task: TaskSpec
    status: DelegationStatus = DelegationStatus.PENDING
    result: Any = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------

class WorkflowStep(BaseModel):
    agent_capability: str
    task: Any = None


class WorkflowStepResult(BaseModel):
    step: str
    agent: str
    result: TaskDelegation
