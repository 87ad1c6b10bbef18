"""Declaration-time error taxonomy.

Every error here is raised synchronously by the plan builder while a module is
being declared. Nothing in this package performs I/O, so there is no retry or
recovery path: the caller fixes the declaration and tries again.

Execution-time failures (constructor mismatch, reverted transactions, network
errors) belong to the executor and are deliberately absent.
"""

from __future__ import annotations


class DeclarationError(ValueError):
    """Base class for every error raised while declaring a plan."""


class DuplicateNameError(DeclarationError):
    """A future id or module id is declared twice in the same plan."""


class InvalidArtifactError(DeclarationError):
    """An artifact identifier is empty or not a valid contract name."""


class InvalidArgumentError(DeclarationError):
    """A constructor/call argument list or a declaration option is malformed."""


class ForeignFutureError(DeclarationError):
    """A future that is not registered in the current plan was referenced."""


class PlanSealedError(DeclarationError):
    """A declaration was attempted after the plan was sealed."""


__all__ = [
    "DeclarationError",
    "DuplicateNameError",
    "ForeignFutureError",
    "InvalidArgumentError",
    "InvalidArtifactError",
    "PlanSealedError",
]
