"""Deployment units and the symbolic futures that reference them.

A :class:`Future` is the handle returned to the caller of every builder
operation. It has no live value: an executor realizes it later, e.g. turning
a :class:`ContractFuture` into a deployed address.

Identity
--------
Futures compare and hash by identity (``eq=False``). Two declarations with
identical fields in different plans are different futures. ``plan_name``
records the owning plan; membership itself is checked with
``plan.owns(future)`` rather than by name.

Ids
---
Every future id has the form ``"<ModuleId>#<logical name>"``; the logical
name is unique within a plan.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

from .runtime import Account, ModuleParameter

if TYPE_CHECKING:
    from .values import ArgumentValue


def _no_libraries() -> Mapping[str, LibraryFuture]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class DeploymentUnit:
    """One contract (or library) deployment: artifact plus constructor input.

    Attributes
    ----------
    artifact_id:
        Name of the compiled artifact, e.g. ``"Bank"`` or
        ``"contracts/Bank.sol:Bank"``.
    constructor_args:
        Frozen, ordered constructor arguments. Empty for libraries.
    value:
        Wei sent along with the deployment (or a parameter resolving to it).
    sender:
        Optional account placeholder or literal address that deploys the unit.
    libraries:
        Read-only mapping of library name to the future that deploys it.
    """

    artifact_id: str
    constructor_args: tuple[ArgumentValue, ...] = ()
    value: int | ModuleParameter = 0
    sender: Account | str | None = None
    libraries: Mapping[str, LibraryFuture | ContractFuture] = field(default_factory=_no_libraries)

    # Arguments and libraries may be read-only mappings.
    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True, eq=False, kw_only=True)
class Future:
    """Base class of every symbolic handle registered in a plan."""

    id: str
    module_id: str
    plan_name: str
    after: tuple[Future, ...] = ()

    kind: ClassVar[str] = "future"

    @property
    def name(self) -> str:
        """Logical name: the part of :attr:`id` after ``#``."""
        return self.id.partition("#")[2]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"


@dataclass(frozen=True, eq=False, kw_only=True, repr=False)
class ContractFuture(Future):
    """A contract that will be deployed from :attr:`unit`."""

    unit: DeploymentUnit

    kind: ClassVar[str] = "contract"

    @property
    def artifact_id(self) -> str:
        return self.unit.artifact_id


@dataclass(frozen=True, eq=False, kw_only=True, repr=False)
class LibraryFuture(Future):
    """A linked library; deployed like a contract but never constructed."""

    unit: DeploymentUnit

    kind: ClassVar[str] = "library"

    @property
    def artifact_id(self) -> str:
        return self.unit.artifact_id


@dataclass(frozen=True, eq=False, kw_only=True, repr=False)
class ContractAtFuture(Future):
    """An already-deployed contract bound to an artifact's ABI."""

    artifact_id: str
    address: str | StaticCallFuture | ModuleParameter

    kind: ClassVar[str] = "contract_at"


@dataclass(frozen=True, eq=False, kw_only=True, repr=False)
class CallFuture(Future):
    """A state-changing call on a contract declared earlier in the plan."""

    contract: ContractFuture | ContractAtFuture
    function_name: str
    args: tuple[ArgumentValue, ...] = ()
    value: int | ModuleParameter = 0
    sender: Account | str | None = None

    kind: ClassVar[str] = "call"


@dataclass(frozen=True, eq=False, kw_only=True, repr=False)
class StaticCallFuture(Future):
    """A read-only call whose result can feed later declarations."""

    contract: ContractFuture | ContractAtFuture
    function_name: str
    args: tuple[ArgumentValue, ...] = ()
    sender: Account | str | None = None

    kind: ClassVar[str] = "static_call"


DeployableFuture = ContractFuture | LibraryFuture
ContractLikeFuture = ContractFuture | ContractAtFuture

__all__ = [
    "CallFuture",
    "ContractAtFuture",
    "ContractFuture",
    "ContractLikeFuture",
    "DeployableFuture",
    "DeploymentUnit",
    "Future",
    "LibraryFuture",
    "StaticCallFuture",
]
