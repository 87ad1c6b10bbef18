"""Runtime placeholders that only the executor can resolve.

A plan is declared without any chain context, so values such as "the deployer
account" or "the ``initialOwner`` parameter supplied at deploy time" are
recorded as symbolic placeholders and substituted later.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from .values import ArgumentValue


@dataclass(frozen=True, slots=True)
class ModuleParameter:
    """A module-scoped deployment parameter, e.g. ``m.get_parameter("owner")``.

    Parameters
    ----------
    module_id:
        Id of the module that asked for the parameter.
    name:
        Parameter name as supplied to the executor.
    default:
        Frozen fallback used when the executor receives no value.
    """

    module_id: str
    name: str
    default: ArgumentValue = None

    # The default may be a read-only mapping.
    __hash__ = None  # type: ignore[assignment]

    kind: ClassVar[str] = "parameter"

    @property
    def key(self) -> str:
        """Return the ``<ModuleId>.<name>`` key used in parameter files."""
        return f"{self.module_id}.{self.name}"


@dataclass(frozen=True, slots=True)
class Account:
    """The executor's ``index``-th configured account."""

    index: int

    kind: ClassVar[str] = "account"


RuntimeValue = ModuleParameter | Account

__all__ = ["Account", "ModuleParameter", "RuntimeValue"]
