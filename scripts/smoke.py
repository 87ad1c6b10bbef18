# scripts/smoke.py
"""
Smoke test script for deployplan.

Usage
-----
1. Declare the built-in Bank/Vault example and print its payload:
    $ python scripts/smoke.py

2. Load module files instead:
    $ python scripts/smoke.py --file examples/modules/bank.py
"""

import argparse
from pathlib import Path

from dotenv import load_dotenv

from deployplan import Plan, declare_module
from deployplan.cli import load_plans
from deployplan.core.settings import get_logger

load_dotenv()
logger = get_logger("deployplan.smoke")


def _default_plan() -> Plan:
    plan = Plan("smoke")
    bank = declare_module(
        "BankModule", lambda m: {"bankContract": m.contract("Bank", [])}, plan=plan
    )
    declare_module(
        "VaultModule",
        lambda m: {
            "vault": m.contract(
                "Vault",
                [m.use_module(bank)["bankContract"], m.get_parameter("cap", 1_000)],
            )
        },
        plan=plan,
    )
    return plan.seal()


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run deployplan smoke test")
    parser.add_argument("--file", "-f", type=str, help="Python file declaring modules")
    ns = parser.parse_args()

    plans = load_plans(Path(ns.file)) if ns.file else [_default_plan()]
    for plan in plans:
        print(plan.to_payload().model_dump_json(indent=2))
        logger.info("order: %s", " -> ".join(plan.execution_order()))


if __name__ == "__main__":
    main()
