"""
Plan contracts: the JSON-safe hand-off format between builder and executor.

A :class:`~deployplan.core.plan.Plan` is a graph of live Python objects. An
executor running in another process (or written in another language) needs a
plain document instead; these Pydantic models define it.

- :class:`FuturePayload`: one declared future with tagged arguments.
- :class:`ModulePayload`: a module id, its exports and submodules.
- :class:`PlanPayload`: the whole plan plus a valid execution order.

Argument encoding
-----------------
Arguments keep their JSON shape; symbolic values are tagged objects:
``{"$future": "BankModule#Bank"}``, ``{"$account": 0}`` and
``{"$parameter": {"module": ..., "name": ..., "default": ...}}``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FutureKind = Literal["contract", "library", "contract_at", "call", "static_call"]


class FuturePayload(BaseModel):
    """A single declared future."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Plan-unique id, '<ModuleId>#<name>'.")
    kind: FutureKind
    module: str = Field(description="Id of the declaring module.")
    artifact: str | None = Field(
        default=None, description="Artifact id for contract, library and contract_at futures."
    )
    args: list[Any] = Field(
        default_factory=list, description="Constructor or call arguments (tagged JSON)."
    )
    contract: str | None = Field(default=None, description="Target future id of a call.")
    function: str | None = Field(default=None, description="Function name of a call.")
    address: Any = Field(default=None, description="Address (or tagged source) of contract_at.")
    value: Any = Field(default=None, description="Wei sent with a deployment or call.")
    sender: Any = Field(default=None, description="Account placeholder or literal address.")
    libraries: dict[str, str] = Field(
        default_factory=dict, description="Library name -> future id."
    )
    dependencies: list[str] = Field(
        default_factory=list, description="Ids of every future this one consumes."
    )


class ModulePayload(BaseModel):
    """A declared module."""

    model_config = ConfigDict(frozen=True)

    id: str
    futures: list[str] = Field(default_factory=list)
    submodules: list[str] = Field(default_factory=list)
    exports: dict[str, str] = Field(
        default_factory=dict, description="Export name -> future id."
    )


class PlanPayload(BaseModel):
    """The complete plan as consumed by an executor."""

    model_config = ConfigDict(frozen=True)

    name: str
    sealed: bool = False
    modules: list[ModulePayload] = Field(default_factory=list)
    futures: list[FuturePayload] = Field(
        default_factory=list, description="Futures in declaration order."
    )
    order: list[str] = Field(
        default_factory=list, description="Future ids in a dependency-respecting order."
    )

    def future(self, future_id: str) -> FuturePayload:
        """Return the payload of ``future_id`` or raise ``KeyError``."""
        for item in self.futures:
            if item.id == future_id:
                return item
        raise KeyError(future_id)


class ArtifactCheckReport(BaseModel):
    """Outcome of checking a plan's artifact ids against a registry."""

    plan: str
    checked: list[str] = Field(
        default_factory=list, description="Distinct artifact ids looked up, in plan order."
    )
    missing: dict[str, list[str]] = Field(
        default_factory=dict, description="Unknown artifact id -> ids of futures using it."
    )

    @property
    def ok(self) -> bool:
        """Return True when every artifact was found."""
        return not self.missing


__all__ = [
    "ArtifactCheckReport",
    "FutureKind",
    "FuturePayload",
    "ModulePayload",
    "PlanPayload",
]
