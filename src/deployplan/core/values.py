"""Argument values accepted by constructor and call declarations.

An argument is a tagged variant::

    str | int | float | bool | None
    | Future | ModuleParameter | Account
    | Sequence[ArgumentValue] | Mapping[str, ArgumentValue]

Declarations freeze their arguments on the way in: sequences become tuples
and mappings become read-only views, so a :class:`DeploymentUnit` cannot be
mutated by the caller after the fact. Scalars, futures and runtime values are
kept as-is so identity checks against the plan still work.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any, TypeAlias

from .errors import InvalidArgumentError
from .futures import Future
from .runtime import Account, ModuleParameter

ArgumentValue: TypeAlias = (
    str
    | int
    | float
    | bool
    | None
    | Future
    | ModuleParameter
    | Account
    | Sequence["ArgumentValue"]
    | Mapping[str, "ArgumentValue"]
)


def freeze_value(value: Any, *, path: str = "value") -> ArgumentValue:
    """Validate ``value`` and return an immutable copy of it.

    Parameters
    ----------
    value:
        Candidate argument value.
    path:
        Location used in error messages, e.g. ``"constructor_args[2].owner"``.

    Raises
    ------
    InvalidArgumentError
        If ``value`` (or anything nested in it) is not an ``ArgumentValue``.
    """
    if value is None or isinstance(value, bool | int | str):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidArgumentError(f"{path}: non-finite number {value!r}")
        return value
    if isinstance(value, Future | ModuleParameter | Account):
        return value
    if isinstance(value, Mapping):
        frozen: dict[str, ArgumentValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise InvalidArgumentError(f"{path}: mapping keys must be str, got {key!r}")
            frozen[key] = freeze_value(item, path=f"{path}.{key}")
        return MappingProxyType(frozen)
    if isinstance(value, list | tuple):
        return tuple(freeze_value(item, path=f"{path}[{i}]") for i, item in enumerate(value))
    raise InvalidArgumentError(f"{path}: unsupported argument type {type(value).__name__}")


def freeze_args(args: Any, *, what: str = "args") -> tuple[ArgumentValue, ...]:
    """Validate an ordered argument list and return it as a frozen tuple."""
    if not isinstance(args, list | tuple):
        raise InvalidArgumentError(
            f"{what} must be a list or tuple, got {type(args).__name__}"
        )
    return tuple(freeze_value(item, path=f"{what}[{i}]") for i, item in enumerate(args))


def iter_futures(value: ArgumentValue) -> Iterator[Future]:
    """Yield every :class:`Future` nested anywhere inside ``value``."""
    if isinstance(value, Future):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_futures(item)
    elif isinstance(value, tuple | list):
        for item in value:
            yield from iter_futures(item)


def iter_parameters(value: ArgumentValue) -> Iterator[ModuleParameter]:
    """Yield every :class:`ModuleParameter` nested inside ``value``."""
    if isinstance(value, ModuleParameter):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_parameters(item)
    elif isinstance(value, tuple | list):
        for item in value:
            yield from iter_parameters(item)


def to_json(value: ArgumentValue) -> Any:
    """Return the tagged, JSON-safe form of ``value``.

    Futures become ``{"$future": id}``, parameters
    ``{"$parameter": {"module": ..., "name": ..., "default": ...}}`` and
    accounts ``{"$account": index}``.
    """
    if isinstance(value, Future):
        return {"$future": value.id}
    if isinstance(value, ModuleParameter):
        return {
            "$parameter": {
                "module": value.module_id,
                "name": value.name,
                "default": to_json(value.default),
            }
        }
    if isinstance(value, Account):
        return {"$account": value.index}
    if isinstance(value, Mapping):
        return {key: to_json(item) for key, item in value.items()}
    if isinstance(value, tuple | list):
        return [to_json(item) for item in value]
    return value


__all__ = [
    "ArgumentValue",
    "freeze_args",
    "freeze_value",
    "iter_futures",
    "iter_parameters",
    "to_json",
]
