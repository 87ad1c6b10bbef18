# tests/test_cli.py
"""
Tests for the deployplan command-line interface (CLI).

Scope
-----
1.  **Command Registration**: `--help` lists `inspect` and `export`.
2.  **Argument Validation**: Typer's `exists=True` check on the input file.
3.  **Plan Loading**: module files are imported and their plans rendered.
4.  **Error Handling**: declaration errors exit with code 1, not a traceback.

We use `typer.testing.CliRunner` to invoke the app in-process.
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from deployplan.cli import app, load_plans

BANK_MODULE = textwrap.dedent(
    """
    from deployplan import Plan, declare_module

    plan = Plan("bank")

    bank_module = declare_module(
        "BankModule", lambda m: {"bankContract": m.contract("Bank", [])}, plan=plan
    )
    vault_module = declare_module(
        "VaultModule",
        lambda m: {"vault": m.contract("Vault", [m.use_module(bank_module)["bankContract"]])},
        plan=plan,
    )
    """
)

BROKEN_MODULE = textwrap.dedent(
    """
    from deployplan import declare_module

    def build(m):
        m.contract("Bank", [])
        m.contract("Bank", [])
        return {}

    broken = declare_module("Broken", build)
    """
)


@pytest.fixture  # type: ignore[misc]
def runner() -> CliRunner:
    """Create a fresh CliRunner for each test."""
    return CliRunner()


@pytest.fixture  # type: ignore[misc]
def bank_file(tmp_path: Path) -> Path:
    path = tmp_path / "bank.py"
    path.write_text(BANK_MODULE, encoding="utf-8")
    return path


def test_cli_help_shows_usage(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, f"Help failed: {result.output}"
    assert "inspect" in result.output
    assert "export" in result.output


def test_inspect_fails_on_missing_file(runner: CliRunner) -> None:
    result = runner.invoke(app, ["inspect", "ghost.py"])
    assert result.exit_code != 0
    assert "does not exist" in result.output


def test_load_plans_seals_each_plan_once(bank_file: Path) -> None:
    plans = load_plans(bank_file)
    assert len(plans) == 1
    assert plans[0].name == "bank"
    assert plans[0].sealed is True
    assert list(plans[0].modules) == ["BankModule", "VaultModule"]


def test_inspect_renders_table(runner: CliRunner, bank_file: Path) -> None:
    result = runner.invoke(app, ["inspect", str(bank_file)])
    assert result.exit_code == 0, f"CLI Failed with Output:\n{result.output}"
    assert "BankModule#Bank" in result.output
    assert "VaultModule#Vault" in result.output
    assert "bankContract" in result.output


def test_inspect_json_output(runner: CliRunner, bank_file: Path) -> None:
    result = runner.invoke(app, ["inspect", str(bank_file), "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["name"] == "bank"
    assert data["order"] == ["BankModule#Bank", "VaultModule#Vault"]


def test_inspect_reports_unknown_artifacts(
    runner: CliRunner, bank_file: Path, tmp_path: Path
) -> None:
    artifacts = tmp_path / "artifacts"
    artifacts.mkdir()
    (artifacts / "Bank.json").write_text(json.dumps({"contractName": "Bank"}), encoding="utf-8")

    result = runner.invoke(app, ["inspect", str(bank_file), "--artifacts", str(artifacts)])
    assert result.exit_code == 1, result.output
    assert "Unknown artifact" in result.output
    assert "Vault" in result.output

    (artifacts / "Vault.json").write_text(json.dumps({"contractName": "Vault"}), encoding="utf-8")
    result = runner.invoke(app, ["inspect", str(bank_file), "--artifacts", str(artifacts)])
    assert result.exit_code == 0, result.output
    assert "All artifacts found" in result.output


def test_inspect_declaration_error_exits_1(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "broken.py"
    path.write_text(BROKEN_MODULE, encoding="utf-8")

    result = runner.invoke(app, ["inspect", str(path)])
    assert result.exit_code == 1, result.output
    assert "Declaration Error" in result.output
    assert "Broken#Bank" in result.output


def test_inspect_without_modules_exits_1(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "empty.py"
    path.write_text("x = 1\n", encoding="utf-8")

    result = runner.invoke(app, ["inspect", str(path)])
    assert result.exit_code == 1
    assert "No modules declared" in result.output


def test_export_writes_payload(runner: CliRunner, bank_file: Path, tmp_path: Path) -> None:
    out = tmp_path / "out" / "plan.json"
    result = runner.invoke(app, ["export", str(bank_file), "--output", str(out)])
    assert result.exit_code == 0, result.output

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["sealed"] is True
    assert [m["id"] for m in data["modules"]] == ["BankModule", "VaultModule"]
    vault = next(f for f in data["futures"] if f["id"] == "VaultModule#Vault")
    assert vault["args"] == [{"$future": "BankModule#Bank"}]


def test_inspect_check_uses_configured_artifacts_dir(
    runner: CliRunner, bank_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """`--check` without `--artifacts` falls back to DEPLOYPLAN_ARTIFACTS_DIR."""
    from deployplan.core.settings import load_settings

    artifacts = tmp_path / "configured"
    artifacts.mkdir()
    for name in ("Bank", "Vault"):
        (artifacts / f"{name}.json").write_text(
            json.dumps({"contractName": name}), encoding="utf-8"
        )
    monkeypatch.setenv("DEPLOYPLAN_ARTIFACTS_DIR", str(artifacts))
    load_settings.cache_clear()

    try:
        result = runner.invoke(app, ["inspect", str(bank_file), "--check"])
        assert result.exit_code == 0, result.output
        assert "All artifacts found" in result.output

        (artifacts / "Vault.json").unlink()
        result = runner.invoke(app, ["inspect", str(bank_file), "--check"])
        assert result.exit_code == 1, result.output
        assert "Unknown artifact" in result.output
    finally:
        load_settings.cache_clear()


def test_export_without_output_writes_one_file_per_plan(
    runner: CliRunner, bank_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    result = runner.invoke(app, ["export", str(bank_file)])
    assert result.exit_code == 0, result.output

    written = workdir / "bank.plan.json"
    assert written.exists()
    data = json.loads(written.read_text(encoding="utf-8"))
    assert data["name"] == "bank"
    assert data["order"] == ["BankModule#Bank", "VaultModule#Vault"]
