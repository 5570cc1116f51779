"""FastAPI HTTP API for Base Yield Agent."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from base_yield_agent import __version__
from base_yield_agent.chain import reads
from base_yield_agent.chain.chains import CHAINS
from base_yield_agent.config import ServerConfig
from base_yield_agent.core.models import TaskSpec, WorkflowStep
from base_yield_agent.core.runtime import Runtime
from base_yield_agent.exceptions import CoordinatorError

logger = logging.getLogger("base_yield_agent.server")


def _extract_message(body: dict) -> str:
    """Pull the latest user text from either ``{"message"}`` or ``{"messages": [...]}``."""
    if isinstance(body.get("message"), str):
        return body["message"]
    for msg in reversed(body.get("messages") or []):
        if msg.get("role", "user") != "user":
            continue
        content = msg.get("content")
        if isinstance(content, str):
            return content
        parts = content or msg.get("parts") or []
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    return ""


def create_app(
    runtime: Runtime | None = None,
    config_path: Path | None = None,
    server_config: ServerConfig | None = None,
) -> FastAPI:
    """Build the API app.

    With *runtime* given the app uses it as-is; otherwise the runtime is
    loaded from *config_path* at startup and shut down with the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "runtime", None) is None:
            owned = await Runtime.load(config_path)
            app.state.runtime = owned
        logger.info(f"API started for '{app.state.runtime.config.name}'")
        yield
        if owned is not None:
            await owned.shutdown()

    app = FastAPI(title="Base Yield Agent", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime

    cors = server_config or (runtime.config.server if runtime else ServerConfig())
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.cors_origins,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Session-Id"],
        max_age=86400,
    )

    def rt(request: Request) -> Runtime:
        return request.app.state.runtime

    # ------------------------------------------------------------------
    # Status and network data
    # ------------------------------------------------------------------

    @app.get("/api/health")
    async def api_health():
        return {"status": "ok", "version": __version__}

    @app.get("/api/chains")
    async def api_chains():
        return [
            {
                "name": c.name,
                "chainId": c.chain_id,
                "nativeSymbol": c.native_symbol,
                "explorerUrl": c.explorer_url,
            }
            for c in CHAINS.values()
        ]

    @app.get("/api/base-data")
    async def api_base_data(request: Request, chain: str = Query("base")):
        stats = await reads.get_network_stats(rt(request).web3, chain)
        if stats["success"]:
            stats["network"] = CHAINS[chain].name.capitalize()
        return stats

    @app.post("/api/eth-balance")
    async def api_eth_balance(request: Request, body: dict):
        return await reads.get_native_balance(
            rt(request).web3, body.get("chain", "base"), body.get("address", "")
        )

    @app.post("/api/token-balance")
    async def api_token_balance(request: Request, body: dict):
        return await reads.get_token_balance(
            rt(request).web3,
            body.get("chain", "base"),
            body.get("address", ""),
            body.get("tokenAddress", ""),
        )

    # ------------------------------------------------------------------
    # Chain tools
    # ------------------------------------------------------------------

    @app.post("/api/tools/call-contract")
    async def api_call_contract(request: Request, body: dict):
        return await reads.call_contract(
            rt(request).web3,
            body.get("chain", ""),
            body.get("contractAddress", ""),
            body.get("functionName", ""),
            body.get("abi", []),
            body.get("args"),
        )

    @app.post("/api/tools/simulate")
    async def api_simulate(request: Request, body: dict):
        return await reads.simulate_transaction(
            rt(request).web3,
            body.get("chain", ""),
            body.get("from", ""),
            body.get("to", ""),
            body.get("data"),
            body.get("value"),
        )

    @app.post("/api/tools/build-transaction")
    async def api_build_transaction(body: dict):
        return reads.build_transaction(
            body.get("chain", ""),
            body.get("contractAddress", ""),
            body.get("functionName", ""),
            body.get("abi", []),
            body.get("args"),
            body.get("value"),
        )

    @app.post("/api/tools/aave")
    async def api_aave(request: Request, body: dict):
        return await reads.get_aave_data(rt(request).web3, body.get("chain", ""), body.get("asset", ""))

    @app.post("/api/tools/uniswap-pool")
    async def api_uniswap_pool(request: Request, body: dict):
        return await reads.get_uniswap_pool(
            rt(request).web3, body.get("chain", ""), body.get("poolAddress", "")
        )

    @app.post("/api/tools/multi-chain-balance")
    async def api_multi_chain_balance(request: Request, body: dict):
        return await reads.get_multi_chain_balance(
            rt(request).web3,
            body.get("address", ""),
            body.get("tokenAddress", ""),
            body.get("chains", []),
        )

    # ------------------------------------------------------------------
    # Agent registry
    # ------------------------------------------------------------------

    @app.get("/api/agents")
    async def api_list_agents(request: Request):
        agents = await rt(request).coordinator.list_agents()
        return [a.model_dump(mode="json") for a in agents]

    @app.post("/api/agents")
    async def api_register_agent(request: Request, body: dict):
        try:
            agent = await rt(request).coordinator.register_agent(
                id=body["id"],
                name=body["name"],
                endpoint=body["endpoint"],
                capabilities=body.get("capabilities", []),
            )
        except KeyError as e:
            return {"error": f"Missing field: {e.args[0]}"}
        except ValueError as e:
            return {"error": str(e)}
        return agent.model_dump(mode="json")

    @app.get("/api/agents/discover")
    async def api_discover(request: Request, capability: str = Query(...)):
        agents = await rt(request).coordinator.discover_agents(capability)
        return [a.model_dump(mode="json") for a in agents]

    @app.post("/api/agents/{agent_id}/reputation")
    async def api_reputation(request: Request, agent_id: str, body: dict):
        try:
            delta = int(body.get("delta", 0))
        except (TypeError, ValueError):
            return {"error": f"Invalid delta: {body.get('delta')!r}"}
        try:
            agent = await rt(request).coordinator.update_reputation(agent_id, delta)
        except CoordinatorError as e:
            return {"error": str(e)}
        return agent.model_dump(mode="json")

    @app.get("/api/agents/{agent_id}/messages")
    async def api_receive(request: Request, agent_id: str):
        messages = await rt(request).coordinator.receive_messages(agent_id)
        return [m.model_dump(mode="json") for m in messages]

    @app.post("/api/agents/{agent_id}/messages")
    async def api_send(request: Request, agent_id: str, body: dict):
        try:
            message = await rt(request).coordinator.send_message(
                from_agent=body["from"],
                to_agent=agent_id,
                type=body.get("type", "request"),
                payload=body.get("payload"),
                signature=body.get("signature"),
            )
        except KeyError as e:
            return {"error": f"Missing field: {e.args[0]}"}
        except ValueError as e:
            return {"error": str(e)}
        return message.model_dump(mode="json")

    @app.post("/api/delegations")
    async def api_delegate(request: Request, body: dict):
        try:
            delegation = await rt(request).coordinator.delegate_task(
                from_agent=body["fromAgent"],
                to_agent=body["toAgent"],
                task=TaskSpec.model_validate(body["task"]),
            )
        except KeyError as e:
            return {"error": f"Missing field: {e.args[0]}"}
        except ValueError as e:
            return {"error": str(e)}
        return delegation.model_dump(mode="json")

    @app.get("/api/delegations/{task_id}")
    async def api_get_delegation(request: Request, task_id: str):
        delegation = await rt(request).coordinator.get_delegation(task_id)
        if delegation is None:
            return {"error": f"Delegation not found: {task_id}"}
        return delegation.model_dump(mode="json")

    @app.patch("/api/delegations/{task_id}")
    async def api_update_delegation(request: Request, task_id: str, body: dict):
        try:
            delegation = await rt(request).coordinator.update_delegation(
                task_id,
                body.get("status", ""),
                result=body.get("result"),
                error=body.get("error"),
            )
        except (CoordinatorError, ValueError) as e:
            return {"error": str(e)}
        return delegation.model_dump(mode="json")

    @app.post("/api/workflows")
    async def api_compose_workflow(request: Request, body: dict):
        try:
            steps = [
                WorkflowStep(agent_capability=s["agentCapability"], task=s.get("task"))
                for s in body.get("steps", [])
            ]
            results = await rt(request).coordinator.compose_workflow(body.get("name", ""), steps)
        except KeyError as e:
            return {"error": f"Missing field: {e.args[0]}"}
        except CoordinatorError as e:
            return {"error": str(e)}
        return [r.model_dump(mode="json") for r in results]

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    @app.post("/agent/chat")
    @app.post("/agent/chat/{session_id}")
    async def agent_chat(request: Request, body: dict, session_id: str | None = None):
        session_id = session_id or str(uuid.uuid4())
        message = _extract_message(body)
        return StreamingResponse(
            rt(request).agent.chat_stream(session_id, message),
            media_type="text/plain; charset=utf-8",
            headers={"X-Session-Id": session_id},
        )

    @app.get("/api/sessions")
    async def api_sessions(request: Request):
        return await rt(request).sessions.list_sessions()

    return app


# ------------------------------------------------------------------
# Runner
# ------------------------------------------------------------------


def run_server(host: str = "127.0.0.1", port: int = 8787, config_path: Path | None = None) -> None:
    app = create_app(config_path=config_path)
    uvicorn.run(app, host=host, port=port, log_level="info")
