"""In-memory agent registry: discovery, mailboxes, and task delegation."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from base_yield_agent.core.models import (
    AgentMessage,
    Capability,
    DelegationStatus,
    MessageType,
    RegisteredAgent,
    TaskDelegation,
    TaskSpec,
    WorkflowStep,
    WorkflowStepResult,
    utcnow,
)
from base_yield_agent.exceptions import (
    AgentNotFoundError,
    DelegationNotFoundError,
    NoCapableAgentError,
)

logger = logging.getLogger("base_yield_agent.coordinator")

COORDINATOR_ID = "coordinator"
MIN_REPUTATION = 0
MAX_REPUTATION = 200
INITIAL_REPUTATION = 100


class AgentCoordinator:
    """Registry of agents with per-agent mailboxes and tracked delegations.

    All state lives in three insertion-ordered dicts for the lifetime of the
    instance. Nothing is persisted and nothing is locked: every operation
    runs to completion without yielding, so a single event loop is safe but
    concurrent threads are not.

    Mailboxes are unbounded. A recipient that never calls
    :meth:`receive_messages` accumulates messages indefinitely.
    """

    def __init__(self) -> None:
        self._agents: dict[str, RegisteredAgent] = {}
        self._mailboxes: dict[str, list[AgentMessage]] = {}
        self._delegations: dict[str, TaskDelegation] = {}

    async def initialize(self) -> None:
        logger.info("Initializing agent coordinator")

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    async def register_agent(
        self,
        id: str,
        name: str,
        endpoint: str,
        capabilities: Iterable[Capability | dict] = (),
    ) -> RegisteredAgent:
        """Register an agent, replacing any previous entry with the same id."""
        now = utcnow()
        agent = RegisteredAgent(
            id=id,
            name=name,
            endpoint=endpoint,
            capabilities=[
                c if isinstance(c, Capability) else Capability.model_validate(c)
                for c in capabilities
            ],
            registered_at=now,
            last_seen=now,
            reputation=INITIAL_REPUTATION,
        )
        # Re-inserting an existing key keeps its original position, so
        # discovery order stays stable across re-registration.
        self._agents[id] = agent
        logger.info(f"Agent registered: {name} ({id})")
        return agent

    async def discover_agents(self, capability: str) -> list[RegisteredAgent]:
        """Return agents advertising *capability*, best reputation first.

        A tag matches when it appears in any capability's operations,
        protocols, or chains. Ties keep registration order.
        """
        matching = [a for a in self._agents.values() if a.has_capability(capability)]
        return sorted(matching, key=lambda a: a.reputation, reverse=True)

    async def list_agents(self) -> list[RegisteredAgent]:
        return list(self._agents.values())

    async def get_agent(self, agent_id: str) -> RegisteredAgent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    async def update_reputation(self, agent_id: str, delta: int) -> RegisteredAgent:
        agent = await self.get_agent(agent_id)
        agent.reputation = max(MIN_REPUTATION, min(MAX_REPUTATION, agent.reputation + delta))
        agent.last_seen = utcnow()
        return agent

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send_message(
        self,
        from_agent: str,
        to_agent: str,
        type: MessageType | str,
        payload: Any = None,
        signature: str | None = None,
    ) -> AgentMessage:
        """Stamp a message and append it to the recipient's mailbox."""
        message = AgentMessage(
            from_agent=from_agent,
            to_agent=to_agent,
            type=MessageType(type),
            payload=payload,
            signature=signature,
        )
        self._mailboxes.setdefault(to_agent, []).append(message)
        logger.debug(f"Message sent from {from_agent} to {to_agent} ({message.type.value})")
        return message

    async def receive_messages(self, agent_id: str) -> list[AgentMessage]:
        """Drain the mailbox for *agent_id*. Reading is destructive."""
        messages = self._mailboxes.pop(agent_id, [])
        agent = self._agents.get(agent_id)
        if agent is not None:
            agent.last_seen = utcnow()
        return messages

    # ------------------------------------------------------------------
    # Delegation
    # ------------------------------------------------------------------

    async def delegate_task(
        self,
        from_agent: str,
        to_agent: str,
        task: TaskSpec | dict,
    ) -> TaskDelegation:
        """Record a pending delegation and notify the target agent."""
        spec = task if isinstance(task, TaskSpec) else TaskSpec.model_validate(task)
        delegation = TaskDelegation(from_agent=from_agent, to_agent=to_agent, task=spec)
        self._delegations[delegation.task_id] = delegation

        await self.send_message(
            from_agent=from_agent,
            to_agent=to_agent,
            type=MessageType.DELEGATION,
            payload={
                "taskId": delegation.task_id,
                "task": spec.model_dump(mode="json"),
            },
        )
        logger.info(f"Task delegated: {delegation.task_id} from {from_agent} to {to_agent}")
        return delegation

    async def update_delegation(
        self,
        task_id: str,
        status: DelegationStatus | str,
        result: Any = None,
        error: str | None = None,
    ) -> TaskDelegation:
        """Set a delegation's status and notify the originating agent.

        ``result`` and ``error`` overwrite the stored values only when given.
        Any status may follow any other.
        """
        delegation = self._delegations.get(task_id)
        if delegation is None:
            raise DelegationNotFoundError(task_id)

        status = DelegationStatus(status)
        delegation.status = status
        if result is not None:
            delegation.result = result
        if error is not None:
            delegation.error = error

        await self.send_message(
            from_agent=delegation.to_agent,
            to_agent=delegation.from_agent,
            type=MessageType.RESPONSE,
            payload={
                "taskId": task_id,
                "status": status.value,
                "result": result,
                "error": error,
            },
        )
        return delegation

    async def get_delegation(self, task_id: str) -> TaskDelegation | None:
        return self._delegations.get(task_id)

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def compose_workflow(
        self,
        name: str,
        steps: Iterable[WorkflowStep | dict],
    ) -> list[WorkflowStepResult]:
        """Delegate each step to the best-reputed capable agent, in order.

        Delegation is fire-and-forget: a step's result is the delegation
        record as created (status ``pending``), not the delegate's eventual
        outcome. Callers that need completion must poll
        :meth:`get_delegation`.

        Raises :class:`NoCapableAgentError` on the first step with no
        matching agent; earlier steps stay delegated.
        """
        results: list[WorkflowStepResult] = []
        for raw in steps:
            step = raw if isinstance(raw, WorkflowStep) else WorkflowStep.model_validate(raw)
            candidates = await self.discover_agents(step.agent_capability)
            if not candidates:
                raise NoCapableAgentError(step.agent_capability)

            best = candidates[0]
            delegation = await self.delegate_task(
                from_agent=COORDINATOR_ID,
                to_agent=best.id,
                task=TaskSpec(
                    type=step.agent_capability,
                    description=f"Workflow step: {name}",
                    parameters=step.task,
                ),
            )
            results.append(
                WorkflowStepResult(step=step.agent_capability, agent=best.name, result=delegation)
            )
        logger.info(f"Workflow '{name}' composed with {len(results)} step(s)")
        return results
