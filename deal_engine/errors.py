"""
Error taxonomy for the deal engine.

Data sparsity is never an error: the engine returns None or substitutes a
neutral default. Exceptions are reserved for malformed caller input.
"""

from __future__ import annotations


class ValidationError(ValueError):
    """Raised when MAO inputs are malformed or out of range."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field} {message}")


class AnalysisNotFoundError(LookupError):
    """Raised when no stored analysis exists for a subject."""

    def __init__(self, subject_id: str):
        self.subject_id = subject_id
        super().__init__(f"No analysis found for subject {subject_id}")


class ComparableNotFoundError(LookupError):
    """Raised when a referenced comp is not in the subject's comp set."""

    def __init__(self, subject_id: str, comp_ids):
        self.subject_id = subject_id
        self.comp_ids = list(comp_ids)
        super().__init__(
            f"Comps not found for subject {subject_id}: {', '.join(self.comp_ids)}"
        )
