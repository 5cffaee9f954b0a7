"""Error taxonomy for the integrity pipeline.

Only :class:`ContentMutationDetected` is ever raised inside a derivation, and
the derivation wrapper converts it into a tagged result. Every other category
travels as a machine-readable reason string on a result object.
"""
from __future__ import annotations

# Machine-readable reasons, stable across releases (they end up in exports
# and the audit log).
MISSING_INPUT = "missing_input"
INVALID_CONTENT_TYPE = "invalid_content_type"
HASH_UNAVAILABLE = "hash_unavailable"
HASH_FAILED = "hash_failed"
OFFSET_NOT_FOUND = "offset_not_found"
CONTENT_MUTATED = "content_raw_modified"
DUPLICATE_BLOCKED = "duplicate_blocked"
SOURCE_CHANGED = "source_changed"
NO_PREVIOUS_HASH = "no_previous_hash"
HASH_COMPUTATION_FAILED = "hash_computation_failed"


class IntegrityError(RuntimeError):
    """Base class for violations of content_raw integrity."""


class ContentMutationDetected(IntegrityError):
    """content_raw changed while structure/references were being derived."""

    reason = CONTENT_MUTATED

    def __init__(self, checksum_before: str, checksum_after: str) -> None:
        super().__init__(
            "content_raw was modified during structure derivation "
            f"({checksum_before} -> {checksum_after})"
        )
        self.checksum_before = checksum_before
        self.checksum_after = checksum_after


class ManifestSchemaError(ValueError):
    """Raised when a persisted manifest blob cannot be read as a manifest."""
