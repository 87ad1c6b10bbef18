"""
Plan and Module: the explicit, in-memory result of declaring modules.

A :class:`Plan` is created once per deployment session and passed to (or
created by) :func:`deployplan.core.builder.declare_module`. It is mutated only
during the synchronous declaration phase; :meth:`Plan.seal` ends that phase
and the executor reads the plan from then on.

There is no process-wide module registry. Everything a declaration touches
lives on the Plan instance it was declared into.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .contracts.plan import FuturePayload, ModulePayload, PlanPayload
from .errors import DeclarationError, DuplicateNameError, PlanSealedError
from .futures import (
    CallFuture,
    ContractAtFuture,
    ContractFuture,
    DeploymentUnit,
    Future,
    LibraryFuture,
    StaticCallFuture,
)
from .planner.dag import DAG
from .runtime import ModuleParameter
from .settings import get_logger
from .values import iter_futures, iter_parameters, to_json

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class Module:
    """A declared module: a name, the plan it lives in, and its exports.

    Attributes
    ----------
    id:
        Module id, unique within :attr:`plan`.
    plan:
        The plan the module was declared into.
    exports:
        Read-only mapping of export name to future; exactly what the builder
        function returned.
    futures:
        Futures declared directly by this module, in declaration order.
    submodules:
        Modules composed through ``m.use_module``.
    """

    id: str
    plan: Plan
    exports: Mapping[str, Future]
    futures: tuple[Future, ...] = ()
    submodules: tuple[Module, ...] = ()

    def __getitem__(self, export: str) -> Future:
        return self.exports[export]

    def __repr__(self) -> str:
        return f"Module({self.id!r}, exports={sorted(self.exports)!r})"


class Plan:
    """Named, ordered collection of declared futures and modules."""

    def __init__(self, name: str) -> None:
        if not isinstance(name, str) or not name.strip():
            raise DeclarationError("plan name must be a non-empty string")
        self.name: str = name
        self._futures: dict[str, Future] = {}
        self._modules: dict[str, Module] = {}
        # module id -> (futures, modules) counts when its declaration began
        self._building: dict[str, tuple[int, int]] = {}
        self._sealed: bool = False

    def __repr__(self) -> str:
        state = "sealed" if self._sealed else "open"
        return f"Plan({self.name!r}, futures={len(self._futures)}, {state})"

    def __len__(self) -> int:
        return len(self._futures)

    def __iter__(self) -> Iterator[Future]:
        return iter(self._futures.values())

    # ------------------------------------------------------------------ views

    @property
    def sealed(self) -> bool:
        """Return True once the declaration phase has ended."""
        return self._sealed

    @property
    def futures(self) -> Mapping[str, Future]:
        """Read-only view of future id -> future, in declaration order."""
        return MappingProxyType(self._futures)

    @property
    def modules(self) -> Mapping[str, Module]:
        """Read-only view of module id -> module, in completion order."""
        return MappingProxyType(self._modules)

    @property
    def units(self) -> tuple[DeploymentUnit, ...]:
        """Every deployment unit (contracts and libraries) in declaration order."""
        return tuple(
            f.unit for f in self._futures.values() if isinstance(f, ContractFuture | LibraryFuture)
        )

    def future(self, future_id: str) -> Future:
        """Return the future registered as ``future_id`` or raise ``KeyError``."""
        return self._futures[future_id]

    def owns(self, future: Future) -> bool:
        """Return True if ``future`` is the very object registered in this plan."""
        return self._futures.get(future.id) is future

    # -------------------------------------------------------------- lifecycle

    def seal(self) -> Plan:
        """End the declaration phase; later declarations raise PlanSealedError."""
        if self._building:
            raise DeclarationError(
                f"cannot seal plan {self.name!r} while module "
                f"{next(reversed(self._building))!r} is being declared"
            )
        if not self._sealed:
            self._sealed = True
            logger.info("sealed plan %s with %d futures", self.name, len(self._futures))
        return self

    def ensure_open(self) -> None:
        """Raise :class:`PlanSealedError` if the plan no longer accepts declarations."""
        if self._sealed:
            raise PlanSealedError(f"plan {self.name!r} is sealed; no further declarations")

    # ---------------------------------------------- declaration-phase mutators
    #
    # Only the builder calls these. They keep the plan's invariants: unique
    # future ids, unique module ids, no re-entrant module declarations.

    def begin_module(self, module_id: str) -> None:
        self.ensure_open()
        if module_id in self._modules or module_id in self._building:
            raise DuplicateNameError(f"module {module_id!r} is already declared in plan {self.name!r}")
        self._building[module_id] = (len(self._futures), len(self._modules))

    def abort_module(self, module_id: str) -> None:
        """Drop everything declared since ``begin_module(module_id)``."""
        mark = self._building.pop(module_id, None)
        if mark is None:
            return
        n_futures, n_modules = mark
        for future_id in list(self._futures)[n_futures:]:
            del self._futures[future_id]
        for nested_id in list(self._modules)[n_modules:]:
            del self._modules[nested_id]
        logger.debug("rolled back module %s in plan %s", module_id, self.name)

    def finish_module(self, module: Module) -> None:
        del self._building[module.id]
        self._modules[module.id] = module

    def register(self, future: Future) -> None:
        self.ensure_open()
        if future.id in self._futures:
            raise DuplicateNameError(f"future {future.id!r} is already declared in plan {self.name!r}")
        self._futures[future.id] = future
        logger.debug("declared %s %s", future.kind, future.id)

    # ------------------------------------------------------------- executor side

    def dependencies(self, future: Future) -> tuple[Future, ...]:
        """Return the futures ``future`` consumes, deduplicated, in first-seen order."""
        found: dict[int, Future] = {}

        def add(dep: Future) -> None:
            found.setdefault(id(dep), dep)

        if isinstance(future, ContractFuture | LibraryFuture):
            for arg in future.unit.constructor_args:
                for dep in iter_futures(arg):
                    add(dep)
            for lib in future.unit.libraries.values():
                add(lib)
        elif isinstance(future, CallFuture | StaticCallFuture):
            add(future.contract)
            for arg in future.args:
                for dep in iter_futures(arg):
                    add(dep)
        elif isinstance(future, ContractAtFuture) and isinstance(future.address, Future):
            add(future.address)

        for dep in future.after:
            add(dep)
        return tuple(found.values())

    def dag(self) -> DAG:
        """Return the dependency DAG of this plan."""
        return DAG.from_plan(self)

    def execution_order(self) -> list[str]:
        """Return future ids in an order where dependencies come first."""
        return self.dag().topological_order()

    def parameters(self) -> list[ModuleParameter]:
        """Return every module parameter referenced by the plan, first use wins."""
        seen: dict[str, ModuleParameter] = {}
        for future in self._futures.values():
            for value in _values_of(future):
                for param in iter_parameters(value):
                    seen.setdefault(param.key, param)
        return list(seen.values())

    def to_payload(self) -> PlanPayload:
        """Return the JSON-safe hand-off document for an executor."""
        return PlanPayload(
            name=self.name,
            sealed=self._sealed,
            modules=[
                ModulePayload(
                    id=m.id,
                    futures=[f.id for f in m.futures],
                    submodules=[s.id for s in m.submodules],
                    exports={k: f.id for k, f in m.exports.items()},
                )
                for m in self._modules.values()
            ],
            futures=[self._future_payload(f) for f in self._futures.values()],
            order=self.execution_order(),
        )

    def _future_payload(self, future: Future) -> FuturePayload:
        fields: dict[str, object] = {
            "id": future.id,
            "kind": future.kind,
            "module": future.module_id,
            "dependencies": [d.id for d in self.dependencies(future)],
        }
        if isinstance(future, ContractFuture | LibraryFuture):
            unit = future.unit
            fields.update(
                artifact=unit.artifact_id,
                args=to_json(unit.constructor_args),
                value=to_json(unit.value),
                sender=to_json(unit.sender),
                libraries={name: lib.id for name, lib in unit.libraries.items()},
            )
        elif isinstance(future, ContractAtFuture):
            fields.update(artifact=future.artifact_id, address=to_json(future.address))
        elif isinstance(future, CallFuture):
            fields.update(
                contract=future.contract.id,
                function=future.function_name,
                args=to_json(future.args),
                value=to_json(future.value),
                sender=to_json(future.sender),
            )
        elif isinstance(future, StaticCallFuture):
            fields.update(
                contract=future.contract.id,
                function=future.function_name,
                args=to_json(future.args),
                sender=to_json(future.sender),
            )
        return FuturePayload.model_validate(fields)


def _values_of(future: Future) -> tuple[object, ...]:
    """Return every argument-like value carried by ``future``."""
    if isinstance(future, ContractFuture | LibraryFuture):
        return (future.unit.constructor_args, future.unit.value)
    if isinstance(future, CallFuture):
        return (future.args, future.value)
    if isinstance(future, StaticCallFuture):
        return (future.args,)
    if isinstance(future, ContractAtFuture):
        return (future.address,)
    return ()


__all__ = ["Module", "Plan"]
