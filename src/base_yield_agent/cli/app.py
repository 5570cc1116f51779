"""CLI for Base Yield Agent - query DeFi data and chat with the agent from the terminal."""

from __future__ import annotations

import asyncio
import json
import uuid
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from base_yield_agent.chain import reads
from base_yield_agent.chain.chains import CHAINS, list_chain_names
from base_yield_agent.chain.provider import Web3Provider
from base_yield_agent.config import (
    AppConfig,
    DEFAULT_MODELS,
    LLMProviderConfig,
    get_config_path,
    load_or_default,
    save_config,
)

app = typer.Typer(
    name="base-yield-agent",
    help="DeFi yield agent for Base and other EVM chains.",
    no_args_is_help=True,
)
console = Console()

_config_path: Path | None = None


def _version_callback(value: bool):
    if value:
        from base_yield_agent import __version__
        console.print(f"base-yield-agent {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.yaml (default: ./.base-yield-agent/config.yaml)",
        envvar="BASE_YIELD_AGENT_CONFIG",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """DeFi yield agent for Base and other EVM chains."""
    global _config_path
    _config_path = config


def _resolved_config_path() -> Path:
    return _config_path or get_config_path()


def _load() -> AppConfig:
    return load_or_default(_resolved_config_path())


def _provider() -> Web3Provider:
    return Web3Provider(_load().chains.rpc_urls)


def _print_envelope(result: dict) -> None:
    """Render a chain-read envelope; failures in red."""
    if result.get("success"):
        console.print_json(json.dumps(result, default=str))
    else:
        console.print(f"[red]Error:[/red] {result.get('error', 'unknown error')}")
        raise typer.Exit(code=1)


# ------------------------------------------------------------------
# init / chains / serve
# ------------------------------------------------------------------


@app.command()
def init(
    provider: str = typer.Option("anthropic", "--provider", "-p", help="LLM provider (anthropic or openai)"),
    api_key: str = typer.Option(None, "--api-key", "-k", help="API key (default: ${AI_PROVIDER_API_KEY})"),
    model: str = typer.Option(None, "--model", "-m", help="Model name (defaults per provider)"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
):
    """Write a starter config.yaml."""
    if provider not in DEFAULT_MODELS:
        console.print(f"[red]Unsupported provider '{provider}'.[/red] Choose: {', '.join(DEFAULT_MODELS)}")
        raise typer.Exit(code=1)

    path = _resolved_config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}.[/yellow] Use --force to overwrite.")
        raise typer.Exit(code=1)

    config = AppConfig()
    config.llm.default_provider = provider
    setattr(
        config.llm,
        provider,
        LLMProviderConfig(
            api_key=api_key or "${AI_PROVIDER_API_KEY}",
            model=model or DEFAULT_MODELS[provider],
        ),
    )
    save_config(config, path)
    console.print(Panel(f"Config written to [bold]{path}[/bold]", title="Base Yield Agent"))


@app.command()
def chains():
    """List supported chains and their RPC endpoints."""
    provider = _provider()
    table = Table(title="Supported chains")
    table.add_column("Name", style="cyan")
    table.add_column("Chain ID", justify="right")
    table.add_column("Symbol")
    table.add_column("RPC URL")
    for name in list_chain_names():
        chain = provider.resolve_chain(name)
        table.add_row(chain.name, str(chain.chain_id), chain.native_symbol, chain.rpc_url)
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", help="Port (default from config)"),
):
    """Run the HTTP API."""
    from base_yield_agent.server.app import run_server

    server = _load().server
    run_server(host=host or server.host, port=port or server.port, config_path=_resolved_config_path())


# ------------------------------------------------------------------
# Chain reads
# ------------------------------------------------------------------


@app.command()
def aave(
    asset: str = typer.Argument(..., help="Reserve asset address"),
    chain: str = typer.Option("base", "--chain", help="Chain name"),
):
    """Show Aave V3 supply/borrow APY for an asset."""
    _print_envelope(asyncio.run(reads.get_aave_data(_provider(), chain, asset)))


@app.command()
def pool(
    address: str = typer.Argument(..., help="Uniswap V3 pool address"),
    chain: str = typer.Option("base", "--chain", help="Chain name"),
):
    """Show Uniswap V3 pool state."""
    _print_envelope(asyncio.run(reads.get_uniswap_pool(_provider(), chain, address)))


@app.command()
def balance(
    address: str = typer.Argument(..., help="Wallet address"),
    token: str = typer.Argument(..., help="ERC-20 token address"),
    chain: list[str] = typer.Option(None, "--chain", help="Chain to check (repeatable; default: all)"),
):
    """Show an ERC-20 balance across chains."""
    names = chain or list_chain_names()
    result = asyncio.run(reads.get_multi_chain_balance(_provider(), address, token, names))
    if not result.get("success"):
        _print_envelope(result)
        return

    table = Table(title=f"Balance of {address}")
    table.add_column("Chain", style="cyan")
    table.add_column("Balance (raw)", justify="right")
    for name, value in result["balances"].items():
        style = "red" if value.startswith("Error:") else ""
        table.add_row(name, f"[{style}]{value}[/{style}]" if style else value)
    console.print(table)


@app.command()
def simulate(
    from_address: str = typer.Option(..., "--from", help="Sender address"),
    to: str = typer.Option(..., "--to", help="Recipient/contract address"),
    data: str = typer.Option(None, "--data", help="Calldata (hex)"),
    value: str = typer.Option(None, "--value", help="Value in wei"),
    chain: str = typer.Option("base", "--chain", help="Chain name"),
):
    """Dry-run a transaction and estimate gas."""
    result = asyncio.run(reads.simulate_transaction(_provider(), chain, from_address, to, data, value))
    sim = result["simulation"]
    if sim["willSucceed"]:
        console.print(f"[green]Will succeed[/green] - estimated gas {sim['estimatedGas']}")
        console.print(f"Returned data: {sim['result']}")
    else:
        console.print(f"[red]Will fail:[/red] {sim['error']}")
        raise typer.Exit(code=1)


# ------------------------------------------------------------------
# Chat
# ------------------------------------------------------------------


@app.command()
def chat(
    session: str = typer.Option(None, "--session", "-s", help="Session id to resume"),
):
    """Chat with the agent interactively. Type 'exit' to quit."""
    from base_yield_agent.core.runtime import Runtime

    session_id = session or uuid.uuid4().hex[:12]

    async def _chat():
        runtime = await Runtime.load(_resolved_config_path())
        console.print(f"[dim]Session {session_id} on {', '.join(CHAINS)}[/dim]")
        try:
            while True:
                message = console.input("[bold cyan]you>[/bold cyan] ").strip()
                if message.lower() in ("exit", "quit"):
                    break
                if not message:
                    continue
                async for chunk in runtime.agent.chat_stream(session_id, message):
                    console.print(chunk, end="", markup=False, highlight=False)
                console.print()
        except (EOFError, KeyboardInterrupt):
            pass
        finally:
            await runtime.shutdown()

    asyncio.run(_chat())
