"""Artifact registries and the lazy artifact check used before execution.

The builder never looks artifacts up: a plan can be declared without a
compiler or a chain. An executor (or the ``deployplan inspect`` command) calls
:func:`check_artifacts` once the plan is complete.

Registries
----------
- :class:`MemoryArtifactRegistry`: a fixed set of names, handy in tests.
- :class:`DirectoryArtifactRegistry`: Hardhat-style build output, i.e. JSON
  files carrying ``contractName`` and ``sourceName`` keys. Debug files
  (``*.dbg.json``) and unreadable JSON are skipped.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from .contracts.plan import ArtifactCheckReport
from .futures import ContractAtFuture, ContractFuture, LibraryFuture
from .plan import Plan
from .settings import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ArtifactRegistry(Protocol):
    """Anything that can answer "does this artifact exist?"."""

    def has_artifact(self, artifact_id: str) -> bool: ...


class MemoryArtifactRegistry:
    """Registry backed by an in-memory set of artifact ids."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: set[str] = set(names)

    def add(self, artifact_id: str) -> None:
        self._names.add(artifact_id)

    def has_artifact(self, artifact_id: str) -> bool:
        return artifact_id in self._names


class DirectoryArtifactRegistry:
    """Registry built by scanning a directory of compiled JSON artifacts.

    Each artifact is known both by its bare ``contractName`` and by its fully
    qualified ``"<sourceName>:<contractName>"`` form.
    """

    def __init__(self, root: Path) -> None:
        self.root: Path = Path(root)
        self._names: set[str] | None = None

    def _scan(self) -> set[str]:
        names: set[str] = set()
        if not self.root.is_dir():
            logger.warning("artifact directory %s does not exist", self.root)
            return names
        for path in sorted(self.root.rglob("*.json")):
            if path.name.endswith(".dbg.json"):
                continue
            try:
                with path.open("r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as exc:
                logger.debug("skipping unreadable artifact %s: %s", path, exc)
                continue
            if not isinstance(data, dict):
                continue
            contract = data.get("contractName")
            if not isinstance(contract, str) or not contract:
                continue
            names.add(contract)
            source = data.get("sourceName")
            if isinstance(source, str) and source:
                names.add(f"{source}:{contract}")
        logger.debug("found %d artifact names under %s", len(names), self.root)
        return names

    @property
    def names(self) -> frozenset[str]:
        """Return every known artifact id (scanned once, lazily)."""
        if self._names is None:
            self._names = self._scan()
        return frozenset(self._names)

    def has_artifact(self, artifact_id: str) -> bool:
        return artifact_id in self.names


def check_artifacts(plan: Plan, registry: ArtifactRegistry) -> ArtifactCheckReport:
    """Look up every artifact id used by ``plan`` in ``registry``.

    Unknown artifacts are reported, not raised: deciding whether a missing
    artifact is fatal is the executor's call.
    """
    checked: list[str] = []
    missing: dict[str, list[str]] = {}
    for future in plan.futures.values():
        if isinstance(future, ContractFuture | LibraryFuture | ContractAtFuture):
            artifact_id = future.artifact_id
        else:
            continue
        if artifact_id not in checked:
            checked.append(artifact_id)
        if not registry.has_artifact(artifact_id):
            missing.setdefault(artifact_id, []).append(future.id)
    if missing:
        logger.info("plan %s references %d unknown artifacts", plan.name, len(missing))
    return ArtifactCheckReport(plan=plan.name, checked=checked, missing=missing)


__all__ = [
    "ArtifactRegistry",
    "DirectoryArtifactRegistry",
    "MemoryArtifactRegistry",
    "check_artifacts",
]
