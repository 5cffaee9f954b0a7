"""Core types shared by every layer of the integrity pipeline.

All offsets are zero-based character positions in ``content_raw`` (never
section-relative, never positions in the normalized copy). All dataclasses
use slots=True.

Type hierarchy:
  Ok[T] / Err[E]: strict algebraic Result type
  ContentHash: algorithm-tagged digest of content_raw
  HashFailure: typed failure for hash computation
  Scope: nearest enclosing section/subsection/clause of an offset
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")

# Offset sentinel for "text not found in content_raw". Never coerced to 0.
NOT_FOUND = -1


# ---------------------------------------------------------------------------
# Result ADT
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success case of Result[T, E].

    Usage::

        result: Result[ContentHash, HashFailure] = compute_content_hash(raw)
        match result:
            case Ok(value=h): print(h.value)
            case Err(error=e): print(e.reason)
    """
    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure case of Result[T, E].

    Carries a typed failure record with its reason.
    """
    error: E


Result: TypeAlias = "Ok[T] | Err[E]"


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ContentHash:
    """Algorithm-tagged hex digest, serialized as ``"<algorithm>:<hex>"``."""
    algorithm: str      # "sha256"
    hexdigest: str      # lowercase hex, length fixed by the algorithm
    hash_source: str = "content_raw"

    def __post_init__(self) -> None:
        if not self.algorithm or ":" in self.algorithm:
            raise ValueError(f"Invalid hash algorithm tag: {self.algorithm!r}")
        if self.hexdigest != self.hexdigest.lower():
            raise ValueError("ContentHash.hexdigest must be lowercase hex")

    @property
    def value(self) -> str:
        return f"{self.algorithm}:{self.hexdigest}"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, tagged: str) -> ContentHash:
        """Parse ``"sha256:abcd..."`` back into a ContentHash."""
        algorithm, sep, digest = tagged.partition(":")
        if not sep or not digest:
            raise ValueError(f"Not an algorithm-tagged hash: {tagged!r}")
        return cls(algorithm=algorithm, hexdigest=digest)


@dataclass(frozen=True, slots=True)
class HashFailure:
    """Typed failure for hash computation. None erases the reason; this preserves it."""
    reason: str         # "missing_input" | "invalid_content_type" | "hash_unavailable" | "hash_failed"
    message: str
    hash_source: str = "content_raw"


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Scope:
    """Nearest enclosing structural nodes of a character offset.

    All fields are None when the offset lies outside every section range.
    """
    section: str | None = None
    subsection: str | None = None
    clause: str | None = None
    dom_section_index: int | None = None

    def to_dict(self) -> dict[str, str | int | None]:
        return {
            "section": self.section,
            "subsection": self.subsection,
            "clause": self.clause,
            "dom_section_index": self.dom_section_index,
        }
