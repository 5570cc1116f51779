"""Tests for the CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from base_yield_agent import __version__
from base_yield_agent.cli import app as cli
from base_yield_agent.config import load_config
from conftest import TOKEN, USER, FakeChainClient, FakeWeb3Provider

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for var in ("BASE_YIELD_AGENT_CONFIG", "AI_PROVIDER", "AI_PROVIDER_API_KEY", "MODEL_ID", "BASE_RPC_URL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_chain(monkeypatch) -> FakeWeb3Provider:
    reserve = [0] * 15
    reserve[2] = 5 * 10**25
    reserve[8] = TOKEN
    provider = FakeWeb3Provider(
        {
            "base": FakeChainClient({"getReserveData": tuple(reserve), "balanceOf": 12}),
            "arbitrum": FakeChainClient(error=ConnectionError("unreachable")),
        }
    )
    monkeypatch.setattr(cli, "_provider", lambda: provider)
    return provider


def test_version() -> None:
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_writes_config(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"

    result = runner.invoke(cli.app, ["--config", str(path), "init", "--provider", "openai", "--api-key", "sk-1"])

    assert result.exit_code == 0
    config = load_config(path)
    assert config.llm.default_provider == "openai"
    assert config.llm.openai.api_key == "sk-1"
    assert config.llm.openai.model == "gpt-4o"


def test_init_refuses_to_overwrite(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    runner.invoke(cli.app, ["--config", str(path), "init", "--api-key", "k"])

    result = runner.invoke(cli.app, ["--config", str(path), "init", "--api-key", "other"])
    assert result.exit_code == 1
    assert load_config(path).llm.anthropic.api_key == "k"

    forced = runner.invoke(cli.app, ["--config", str(path), "init", "--api-key", "other", "--force"])
    assert forced.exit_code == 0
    assert load_config(path).llm.anthropic.api_key == "other"


def test_init_rejects_unknown_provider(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["--config", str(tmp_path / "c.yaml"), "init", "--provider", "cohere"])
    assert result.exit_code == 1


def test_chains(fake_chain: FakeWeb3Provider) -> None:
    result = runner.invoke(cli.app, ["chains"])
    assert result.exit_code == 0
    assert "8453" in result.output
    assert "42161" in result.output


def test_aave(fake_chain: FakeWeb3Provider) -> None:
    result = runner.invoke(cli.app, ["aave", TOKEN])
    assert result.exit_code == 0
    assert "5.00%" in result.output


def test_aave_failure_exits_nonzero(fake_chain: FakeWeb3Provider) -> None:
    result = runner.invoke(cli.app, ["aave", TOKEN, "--chain", "arbitrum"])
    assert result.exit_code == 1
    assert "unreachable" in result.output


def test_balance_table(fake_chain: FakeWeb3Provider) -> None:
    result = runner.invoke(cli.app, ["balance", USER, TOKEN, "--chain", "base", "--chain", "arbitrum"])
    assert result.exit_code == 0
    assert "12" in result.output
    assert "unreachable" in result.output


def test_simulate(fake_chain: FakeWeb3Provider) -> None:
    ok = runner.invoke(cli.app, ["simulate", "--from", USER, "--to", TOKEN])
    assert ok.exit_code == 0
    assert "21000" in ok.output

    failed = runner.invoke(cli.app, ["simulate", "--from", USER, "--to", TOKEN, "--chain", "arbitrum"])
    assert failed.exit_code == 1
    assert "Will fail" in failed.output


def test_pool(fake_chain: FakeWeb3Provider) -> None:
    fake_chain.fakes["base"].reads.update(
        {"token0": TOKEN, "token1": USER, "fee": 500, "liquidity": 1, "slot0": (1, 7, 0, 0, 0, 0, True)}
    )
    result = runner.invoke(cli.app, ["pool", USER])
    assert result.exit_code == 0
    assert "0.05%" in result.output
