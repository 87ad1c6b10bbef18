"""
Module builder: the declaration API handed to a module's builder function.

Usage
-----
    from deployplan import declare_module

    def build_bank(m):
        bank = m.contract("Bank", [])
        return {"bankContract": bank}

    bank_module = declare_module("BankModule", build_bank)
    future = bank_module.exports["bankContract"]
    future.id    # "BankModule#Bank"
    future.unit  # DeploymentUnit(artifact_id="Bank", constructor_args=())

Every operation on :class:`ModuleBuilder` is synchronous and performs no I/O:
it validates its inputs, appends a future to the plan and returns it. Whether
an artifact exists, or whether the constructor arity matches, is left to the
executor (see :mod:`deployplan.core.registry`).

Composition
-----------
Modules declared into the same :class:`Plan` compose through
:meth:`ModuleBuilder.use_module`, which returns the other module's exports.
Futures can only reference futures that are already registered, so the plan's
dependency graph is acyclic by construction.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from .errors import (
    DeclarationError,
    ForeignFutureError,
    InvalidArgumentError,
    InvalidArtifactError,
)
from .futures import (
    CallFuture,
    ContractAtFuture,
    ContractFuture,
    ContractLikeFuture,
    DeploymentUnit,
    Future,
    LibraryFuture,
    StaticCallFuture,
)
from .plan import Module, Plan
from .runtime import Account, ModuleParameter
from .settings import get_logger
from .values import ArgumentValue, freeze_args, freeze_value, iter_futures

logger = get_logger(__name__)

# Module ids and custom future ids.
_ID_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
# "Bank" or a fully qualified "contracts/Bank.sol:Bank".
_ARTIFACT_RE = re.compile(r"^(?:[A-Za-z0-9_\-./@]+:)?[A-Za-z_$][A-Za-z0-9_$]*$")
# "deposit" or "transfer(address,uint256)".
_FUNCTION_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*(?:\([A-Za-z0-9_,\[\]() ]*\))?$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

ExportsRecord = Mapping[str, Future]
BuilderFn = Callable[["ModuleBuilder"], Mapping[str, Future] | None]


def _check_id(value: Any, what: str) -> str:
    if not isinstance(value, str) or not _ID_RE.match(value):
        raise InvalidArgumentError(
            f"{what} {value!r} is invalid: use alphanumerics and underscores, "
            "starting with a letter"
        )
    return value


def _check_artifact(artifact_id: Any) -> str:
    if not isinstance(artifact_id, str) or not artifact_id:
        raise InvalidArtifactError(f"artifact id must be a non-empty string, got {artifact_id!r}")
    if not _ARTIFACT_RE.match(artifact_id):
        raise InvalidArtifactError(f"artifact id {artifact_id!r} is not a valid contract name")
    return artifact_id


def _contract_name(artifact_id: str) -> str:
    """Return the bare contract name of a possibly fully qualified artifact id."""
    return artifact_id.rpartition(":")[2]


class ModuleBuilder:
    """Declaration context passed to a module's builder function.

    One builder exists per module declaration. It records the futures the
    module declares and the submodules it uses; :func:`declare_module` turns
    that record into a :class:`Module` once the builder function returns.
    """

    def __init__(self, module_id: str, plan: Plan) -> None:
        self.module_id: str = module_id
        self.plan: Plan = plan
        self._futures: list[Future] = []
        self._submodules: list[Module] = []

    def __repr__(self) -> str:
        return f"ModuleBuilder({self.module_id!r}, plan={self.plan.name!r})"

    # ----------------------------------------------------------------------
    # Deployments
    # ----------------------------------------------------------------------

    def contract(
        self,
        artifact_id: str,
        constructor_args: list[Any] | tuple[Any, ...] = (),
        *,
        id: str | None = None,
        after: Iterable[Future] = (),
        value: int | ModuleParameter = 0,
        sender: Account | str | None = None,
        libraries: Mapping[str, Future] | None = None,
    ) -> ContractFuture:
        """Declare the deployment of ``artifact_id`` with ``constructor_args``.

        Parameters
        ----------
        artifact_id:
            Contract name, optionally fully qualified (``"path/Bank.sol:Bank"``).
        constructor_args:
            Ordered constructor arguments; may contain futures and runtime values.
        id:
            Logical name overriding the default (the bare contract name).
        after:
            Futures that must be realized first even though nothing is consumed.
        value:
            Wei to send with the deployment.
        sender:
            Account placeholder or address deploying the contract.
        libraries:
            Library name -> library (or contract) future to link against.

        Raises
        ------
        DeclarationError
            On a duplicate logical name, a malformed artifact id or argument list,
            a future from another plan, or a sealed plan.
        """
        self.plan.ensure_open()
        artifact_id = _check_artifact(artifact_id)
        unit = DeploymentUnit(
            artifact_id=artifact_id,
            constructor_args=self._args(constructor_args, "constructor_args"),
            value=self._value(value),
            sender=self._sender(sender),
            libraries=self._libraries(libraries),
        )
        future = ContractFuture(
            id=self._future_id(id, _contract_name(artifact_id)),
            module_id=self.module_id,
            plan_name=self.plan.name,
            after=self._after(after),
            unit=unit,
        )
        return self._register(future)

    def library(
        self,
        artifact_id: str,
        *,
        id: str | None = None,
        after: Iterable[Future] = (),
        sender: Account | str | None = None,
        libraries: Mapping[str, Future] | None = None,
    ) -> LibraryFuture:
        """Declare the deployment of a linkable library."""
        self.plan.ensure_open()
        artifact_id = _check_artifact(artifact_id)
        unit = DeploymentUnit(
            artifact_id=artifact_id,
            sender=self._sender(sender),
            libraries=self._libraries(libraries),
        )
        future = LibraryFuture(
            id=self._future_id(id, _contract_name(artifact_id)),
            module_id=self.module_id,
            plan_name=self.plan.name,
            after=self._after(after),
            unit=unit,
        )
        return self._register(future)

    def contract_at(
        self,
        artifact_id: str,
        address: str | StaticCallFuture | ModuleParameter,
        *,
        id: str | None = None,
        after: Iterable[Future] = (),
    ) -> ContractAtFuture:
        """Bind an existing deployment at ``address`` to ``artifact_id``'s ABI."""
        self.plan.ensure_open()
        artifact_id = _check_artifact(artifact_id)
        if isinstance(address, str):
            if not _ADDRESS_RE.match(address):
                raise InvalidArgumentError(f"address {address!r} is not a 20-byte hex address")
        elif isinstance(address, StaticCallFuture):
            self._owned(address, "address")
        elif not isinstance(address, ModuleParameter):
            raise InvalidArgumentError(
                f"address must be a string, static call or parameter, got {type(address).__name__}"
            )
        future = ContractAtFuture(
            id=self._future_id(id, _contract_name(artifact_id)),
            module_id=self.module_id,
            plan_name=self.plan.name,
            after=self._after(after),
            artifact_id=artifact_id,
            address=address,
        )
        return self._register(future)

    # ----------------------------------------------------------------------
    # Calls
    # ----------------------------------------------------------------------

    def call(
        self,
        contract: ContractLikeFuture,
        function_name: str,
        args: list[Any] | tuple[Any, ...] = (),
        *,
        id: str | None = None,
        after: Iterable[Future] = (),
        value: int | ModuleParameter = 0,
        sender: Account | str | None = None,
    ) -> CallFuture:
        """Declare a state-changing call of ``function_name`` on ``contract``."""
        self.plan.ensure_open()
        target = self._target(contract)
        function_name = self._function(function_name)
        future = CallFuture(
            id=self._future_id(id, f"{target.name}.{function_name.partition('(')[0]}"),
            module_id=self.module_id,
            plan_name=self.plan.name,
            after=self._after(after),
            contract=target,
            function_name=function_name,
            args=self._args(args, "args"),
            value=self._value(value),
            sender=self._sender(sender),
        )
        return self._register(future)

    def static_call(
        self,
        contract: ContractLikeFuture,
        function_name: str,
        args: list[Any] | tuple[Any, ...] = (),
        *,
        id: str | None = None,
        after: Iterable[Future] = (),
        sender: Account | str | None = None,
    ) -> StaticCallFuture:
        """Declare a read-only call whose result later declarations may consume."""
        self.plan.ensure_open()
        target = self._target(contract)
        function_name = self._function(function_name)
        future = StaticCallFuture(
            id=self._future_id(id, f"{target.name}.{function_name.partition('(')[0]}"),
            module_id=self.module_id,
            plan_name=self.plan.name,
            after=self._after(after),
            contract=target,
            function_name=function_name,
            args=self._args(args, "args"),
            sender=self._sender(sender),
        )
        return self._register(future)

    # ----------------------------------------------------------------------
    # Runtime values & composition
    # ----------------------------------------------------------------------

    def get_parameter(self, name: str, default: ArgumentValue = None) -> ModuleParameter:
        """Return a placeholder for the deploy-time parameter ``name``."""
        _check_id(name, "parameter name")
        frozen = freeze_value(default, path=f"parameter {name!r} default")
        if any(True for _ in iter_futures(frozen)):
            raise InvalidArgumentError(f"parameter {name!r} default cannot contain futures")
        return ModuleParameter(module_id=self.module_id, name=name, default=frozen)

    def get_account(self, index: int) -> Account:
        """Return a placeholder for the executor's ``index``-th account."""
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise InvalidArgumentError(f"account index must be a non-negative int, got {index!r}")
        return Account(index=index)

    def use_module(self, module: Module) -> ExportsRecord:
        """Compose ``module`` (declared into the same plan) and return its exports."""
        if not isinstance(module, Module):
            raise InvalidArgumentError(f"use_module expects a Module, got {type(module).__name__}")
        if module.plan is not self.plan:
            raise ForeignFutureError(
                f"module {module.id!r} belongs to plan {module.plan.name!r}, "
                f"not {self.plan.name!r}"
            )
        if module not in self._submodules:
            self._submodules.append(module)
        return module.exports

    # ----------------------------------------------------------------------
    # Helpers
    # ----------------------------------------------------------------------

    def _future_id(self, custom: str | None, default: str) -> str:
        name = default if custom is None else _check_id(custom, "future id")
        return f"{self.module_id}#{name}"

    def _register(self, future: Any) -> Any:
        self.plan.register(future)
        self._futures.append(future)
        return future

    def _owned(self, future: Future, where: str) -> Future:
        if not self.plan.owns(future):
            raise ForeignFutureError(
                f"{where}: future {future.id!r} is not registered in plan {self.plan.name!r}"
            )
        return future

    def _args(self, args: Any, what: str) -> tuple[ArgumentValue, ...]:
        frozen = freeze_args(args, what=what)
        for dep in iter_futures(frozen):
            self._owned(dep, what)
        return frozen

    def _after(self, after: Iterable[Future]) -> tuple[Future, ...]:
        if isinstance(after, Future) or not isinstance(after, Iterable):
            raise InvalidArgumentError("after must be an iterable of futures")
        deps: list[Future] = []
        for dep in after:
            if not isinstance(dep, Future):
                raise InvalidArgumentError(f"after: expected a future, got {type(dep).__name__}")
            self._owned(dep, "after")
            if dep not in deps:
                deps.append(dep)
        return tuple(deps)

    def _value(self, value: Any) -> int | ModuleParameter:
        if isinstance(value, ModuleParameter):
            return value
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidArgumentError(f"value must be a non-negative int, got {value!r}")
        return value

    def _sender(self, sender: Any) -> Account | str | None:
        if sender is None or isinstance(sender, Account):
            return sender
        if isinstance(sender, str) and _ADDRESS_RE.match(sender):
            return sender
        raise InvalidArgumentError(f"sender must be an account or an address, got {sender!r}")

    def _libraries(self, libraries: Mapping[str, Future] | None) -> Mapping[str, Any]:
        if libraries is None:
            return MappingProxyType({})
        if not isinstance(libraries, Mapping):
            raise InvalidArgumentError("libraries must be a mapping of name -> future")
        linked: dict[str, Future] = {}
        for name, lib in libraries.items():
            if not isinstance(name, str) or not name:
                raise InvalidArgumentError(f"library name must be a non-empty string, got {name!r}")
            if not isinstance(lib, LibraryFuture | ContractFuture):
                raise InvalidArgumentError(
                    f"library {name!r} must be a library or contract future, got {lib!r}"
                )
            linked[name] = self._owned(lib, f"libraries.{name}")
        return MappingProxyType(linked)

    def _target(self, contract: Any) -> ContractLikeFuture:
        if not isinstance(contract, ContractFuture | ContractAtFuture):
            raise InvalidArgumentError(
                f"calls need a contract or contract_at future, got {contract!r}"
            )
        self._owned(contract, "contract")
        return contract

    def _function(self, function_name: Any) -> str:
        if not isinstance(function_name, str) or not _FUNCTION_RE.match(function_name):
            raise InvalidArgumentError(f"function name {function_name!r} is invalid")
        return function_name


def _collect_exports(module_id: str, returned: Any, plan: Plan) -> dict[str, Future]:
    """Validate the builder's return value and copy it into a plain dict."""
    if returned is None:
        return {}
    if not isinstance(returned, Mapping):
        raise InvalidArgumentError(
            f"module {module_id!r} must return a mapping of exports, got {type(returned).__name__}"
        )
    exports: dict[str, Future] = {}
    for name, future in returned.items():
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError(f"module {module_id!r}: export names must be non-empty str")
        if not isinstance(future, Future):
            raise InvalidArgumentError(
                f"module {module_id!r}: export {name!r} is not a future ({type(future).__name__})"
            )
        if not plan.owns(future):
            raise ForeignFutureError(
                f"module {module_id!r}: export {name!r} references {future.id!r} "
                f"from outside plan {plan.name!r}"
            )
        exports[name] = future
    return exports


def declare_module(name: str, builder_fn: BuilderFn, *, plan: Plan | None = None) -> Module:
    """Declare module ``name`` by running ``builder_fn`` against a fresh builder.

    Parameters
    ----------
    name:
        Module id; alphanumerics and underscores, starting with a letter.
    builder_fn:
        Called once with a :class:`ModuleBuilder`; returns the module's exports
        (a mapping of export name -> future) or ``None``.
    plan:
        Plan to declare into. A new ``Plan(name)`` is created when omitted.

    Returns
    -------
    Module
        The declared module; ``module.plan`` is the plan it lives in.

    Raises
    ------
    DeclarationError
        On any invalid declaration. Exceptions raised by ``builder_fn`` itself
        propagate unchanged; the module id is released but futures declared
        before the failure stay in the plan.
    """
    _check_id(name, "module id")
    if not callable(builder_fn):
        raise InvalidArgumentError(f"builder for module {name!r} is not callable")
    target = plan if plan is not None else Plan(name)
    if not isinstance(target, Plan):
        raise DeclarationError(f"plan must be a Plan, got {type(target).__name__}")

    target.begin_module(name)
    builder = ModuleBuilder(name, target)
    try:
        exports = _collect_exports(name, builder_fn(builder), target)
    except BaseException:
        target.abort_module(name)
        raise

    module = Module(
        id=name,
        plan=target,
        exports=MappingProxyType(exports),
        futures=tuple(builder._futures),
        submodules=tuple(builder._submodules),
    )
    target.finish_module(module)
    logger.info(
        "declared module %s into plan %s (%d futures, %d exports)",
        name,
        target.name,
        len(module.futures),
        len(exports),
    )
    return module


__all__ = ["BuilderFn", "ExportsRecord", "ModuleBuilder", "declare_module"]
