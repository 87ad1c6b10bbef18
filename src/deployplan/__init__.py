"""deployplan: declarative deployment plans for smart-contract modules.

The public surface is intentionally small:

    from deployplan import Plan, declare_module

    bank = declare_module("BankModule", lambda m: {"bankContract": m.contract("Bank")})
    bank.exports["bankContract"].unit.artifact_id  # -> "Bank"

Declaring a module only records *what* should be deployed. Realizing a
:class:`Plan` against a live network is the job of an external executor.
"""

from __future__ import annotations

from deployplan.core.builder import ModuleBuilder, declare_module
from deployplan.core.errors import DeclarationError
from deployplan.core.plan import Module, Plan

__all__ = [
    "__version__",
    "DeclarationError",
    "Module",
    "ModuleBuilder",
    "Plan",
    "declare_module",
]
__version__ = "0.1.0"
