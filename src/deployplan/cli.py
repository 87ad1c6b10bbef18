# src/deployplan/cli.py
"""
deployplan Command Line Interface (CLI).

A thin, read-only window onto declared plans, built with `typer` and `rich`.
Nothing here deploys anything: the CLI imports a Python file that declares
modules, seals the plans it finds, and prints or exports them.

Usage
-----
    # Show every plan declared in a file, in execution order
    $ deployplan inspect modules/bank.py

    # Also verify artifact ids against Hardhat build output
    $ deployplan inspect modules/bank.py --artifacts artifacts/

    # Write the executor hand-off document
    $ deployplan export modules/bank.py --output plan.json
"""

from __future__ import annotations

import importlib.util
import json
import traceback
import uuid
from pathlib import Path
from types import ModuleType
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from deployplan.core.errors import DeclarationError
from deployplan.core.plan import Module, Plan
from deployplan.core.registry import DirectoryArtifactRegistry, check_artifacts
from deployplan.core.settings import get_logger, load_settings

load_dotenv()

app = typer.Typer(
    help="deployplan: inspect declarative smart-contract deployment plans.",
    rich_markup_mode="markdown",
)
console = Console()
logger = get_logger(__name__)


# --------------------------------------------------------------------------- #
# Helpers: Loading
# --------------------------------------------------------------------------- #


def _import_file(path: Path) -> ModuleType:
    """Execute ``path`` as a throwaway Python module and return it."""
    name = f"_deployplan_user_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def load_plans(path: Path) -> list[Plan]:
    """Import ``path`` and return the plans of its module-level `Module` objects.

    Plans are returned in the order their first module appears in the file
    and are sealed before being handed back.
    """
    namespace = _import_file(path)
    plans: list[Plan] = []
    for value in vars(namespace).values():
        if isinstance(value, Module) and not any(p is value.plan for p in plans):
            plans.append(value.plan)
    for plan in plans:
        plan.seal()
    logger.debug("loaded %d plans from %s", len(plans), path)
    return plans


def _load_or_exit(path: Path, verbose: bool) -> list[Plan]:
    try:
        plans = load_plans(path)
    except DeclarationError as e:
        console.print(f"\n[bold red]Declaration Error:[/bold red] {e}")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from e
    except Exception as e:
        console.print(f"\n[bold red]Load Error:[/bold red] {e}")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from e

    if not plans:
        console.print(f"[bold red]No modules declared in {path.name}.[/bold red]")
        raise typer.Exit(code=1)
    return plans


# --------------------------------------------------------------------------- #
# Helpers: Rendering
# --------------------------------------------------------------------------- #


def _render_plan(plan: Plan) -> None:
    """Render one plan as a table of futures in execution order."""
    table = Table(title=f"Plan: {plan.name}", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Module", style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Target")
    table.add_column("Depends on", style="dim")

    dag = plan.dag()
    for i, future_id in enumerate(dag.topological_order(), start=1):
        node = dag.nodes[future_id]
        future = plan.future(future_id)
        target = getattr(future, "artifact_id", None)
        if target is None:
            contract = getattr(future, "contract", None)
            function = getattr(future, "function_name", "")
            target = f"{contract.id}.{function}" if contract is not None else ""
        deps = ", ".join(sorted(dag.rev_edges[future_id]))
        table.add_row(
            str(i), str(node.meta["module"]), node.label, str(node.meta["kind"]), target, deps
        )

    console.print(table)
    for module in plan.modules.values():
        exports = ", ".join(f"{k} -> {f.id}" for k, f in module.exports.items()) or "-"
        console.print(f" [bold]{module.id}[/bold] exports: {exports}")
    params = plan.parameters()
    if params:
        console.print(" Parameters: " + ", ".join(p.key for p in params))


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def inspect(
    file: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Python file declaring one or more modules.",
        ),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the plan payload(s) as JSON instead of a table."),
    ] = False,
    artifacts: Annotated[
        Path | None,
        typer.Option(
            "--artifacts",
            "-a",
            help="Directory of compiled artifacts to check artifact ids against.",
        ),
    ] = None,
    check: Annotated[
        bool,
        typer.Option(
            "--check",
            help="Check artifact ids against DEPLOYPLAN_ARTIFACTS_DIR when --artifacts is absent.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show full error tracebacks for debugging."),
    ] = False,
) -> None:
    """
    Show every plan declared in FILE.

    With `--artifacts`, unknown artifact ids are listed and the command exits 1.
    """
    plans = _load_or_exit(file, verbose)

    if as_json:
        payload = [plan.to_payload().model_dump(mode="json") for plan in plans]
        typer.echo(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2))
    else:
        console.print(
            Panel.fit(
                f"[bold cyan]deployplan[/bold cyan]\nInspecting: [u]{file.name}[/u]",
                border_style="cyan",
            )
        )
        for plan in plans:
            _render_plan(plan)

    if artifacts is None and check:
        artifacts = load_settings().artifacts_dir
    if artifacts is None:
        return

    registry = DirectoryArtifactRegistry(artifacts)
    failed = False
    for plan in plans:
        report = check_artifacts(plan, registry)
        for artifact_id, users in report.missing.items():
            failed = True
            console.print(
                f"[bold red]Unknown artifact[/bold red] {artifact_id!r} "
                f"(used by {', '.join(users)})"
            )
    if failed:
        raise typer.Exit(code=1)
    console.print("[bold green]All artifacts found.[/bold green]")


@app.command()  # type: ignore[misc]
def export(
    file: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Python file declaring one or more modules.",
        ),
    ],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Destination JSON file (defaults to '<plan name>.plan.json' per plan).",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show full error tracebacks for debugging."),
    ] = False,
) -> None:
    """
    Write the executor hand-off document for every plan declared in FILE.

    A single `--output` file receives a list when FILE declares several plans.
    """
    plans = _load_or_exit(file, verbose)
    payloads = [plan.to_payload().model_dump(mode="json") for plan in plans]

    if output is not None:
        targets = [(output, payloads[0] if len(payloads) == 1 else payloads)]
    else:
        targets = [(Path(f"{p['name']}.plan.json"), p) for p in payloads]

    for path, data in targets:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        console.print(f"[dim]Wrote {path}[/dim]")


if __name__ == "__main__":
    app()
