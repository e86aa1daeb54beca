"""
Error types shared across the engine.

Public engine operations never raise these to callers; they are caught at
the engine and interpreter boundaries and turned into boolean results and
game log entries. Lower layers (catalog loading, the document store, the
HTTP service) let them propagate.
"""

from __future__ import annotations


class CardforgeError(Exception):
    """Base class for all engine errors."""


class EngineValidationError(CardforgeError):
    """A precondition of an engine action was not met."""

    def __init__(self, message: str, error_code: str = "INVALID_ACTION"):
        super().__init__(message)
        self.error_code = error_code


class EffectExecutionError(CardforgeError):
    """An effect invocation could not complete."""


class CapabilityError(EffectExecutionError):
    """An effect used a capability its API does not grant."""


class ExpressionError(EffectExecutionError):
    """An effect expression could not be evaluated."""


class TargetSelectionError(EffectExecutionError):
    """The target selector returned nothing usable."""


class CatalogValidationError(CardforgeError):
    """Raised when card definitions fail validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Catalog validation failed: {'; '.join(errors)}")


class DocumentNotFoundError(CardforgeError):
    """No document is stored under the requested id."""

    def __init__(self, doc_id: str):
        super().__init__(f"Document not found: {doc_id}")
        self.doc_id = doc_id
