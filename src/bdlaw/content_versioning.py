"""Three-version content model and raw-anchored content hashing.

``content_raw`` is the exact captured text and is never modified. It is the
only input to the content hash and the only coordinate system for offsets.
``content_normalized`` is its NFC form (canonical composition only, no
wording changes). ``content_corrected`` starts as a copy of the normalized
text and receives non-semantic encoding repairs only (see
:mod:`bdlaw.transformations`).

Hashing goes through a :class:`HashProvider` capability so the core does not
depend on a particular digest backend; the default is hashlib SHA-256.
"""
from __future__ import annotations

import asyncio
import hashlib
import unicodedata
from dataclasses import dataclass
from typing import Protocol

from bdlaw.errors import (
    HASH_FAILED,
    HASH_UNAVAILABLE,
    INVALID_CONTENT_TYPE,
    MISSING_INPUT,
)
from bdlaw.parsing_types import ContentHash, Err, HashFailure, Ok, Result
from bdlaw.patterns import BENGALI_CHAR_RE

# ---------------------------------------------------------------------------
# Content model
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class VersionedContent:
    """Raw capture plus its derived normalized and corrected copies."""

    raw: str
    normalized: str
    corrected: str

    def to_dict(self) -> dict[str, str]:
        return {
            "content_raw": self.raw,
            "content_normalized": self.normalized,
            "content_corrected": self.corrected,
        }


def normalize_nfc(text: str) -> str:
    return unicodedata.normalize("NFC", text)


def freeze(text: str | None) -> VersionedContent:
    """Freeze a raw capture into the three-version content model.

    ``None`` yields three empty strings rather than an error; hashing the
    result then reports ``missing_input``.
    """
    if text is None:
        return VersionedContent(raw="", normalized="", corrected="")
    raw = str(text)
    normalized = normalize_nfc(raw)
    return VersionedContent(raw=raw, normalized=normalized, corrected=normalized)


@dataclass(frozen=True, slots=True)
class PreservedTitle:
    """Act title kept verbatim for display and NFC-normalized for matching."""

    title_raw: str
    title_normalized: str


def preserve_title(title: str | None) -> PreservedTitle:
    """Keep a title as extracted; never correct spelling, spacing or year digits."""
    if title is None:
        return PreservedTitle(title_raw="", title_normalized="")
    raw = str(title)
    return PreservedTitle(title_raw=raw, title_normalized=normalize_nfc(raw))


# ---------------------------------------------------------------------------
# Hash providers
# ---------------------------------------------------------------------------


class HashProvider(Protocol):
    """Digest capability: tag + hex digest over bytes."""

    @property
    def algorithm(self) -> str: ...

    def hexdigest(self, data: bytes) -> str: ...


@dataclass(frozen=True, slots=True)
class HashlibProvider:
    """hashlib-backed provider; ``name`` must be a hashlib algorithm name."""

    name: str = "sha256"

    @property
    def algorithm(self) -> str:
        return self.name

    def hexdigest(self, data: bytes) -> str:
        return hashlib.new(self.name, data).hexdigest()


DEFAULT_HASH_PROVIDER: HashProvider = HashlibProvider()


def _raw_of(content: VersionedContent | str | None) -> Result[str, HashFailure]:
    """Pick content_raw out of whatever the caller handed over."""
    if content is None:
        return Err(HashFailure(reason=MISSING_INPUT, message="No content provided"))
    if isinstance(content, VersionedContent):
        raw = content.raw
    elif isinstance(content, str):
        raw = content
    else:
        return Err(HashFailure(
            reason=INVALID_CONTENT_TYPE,
            message=f"Invalid content type: {type(content).__name__}",
        ))
    if not raw:
        return Err(HashFailure(reason=MISSING_INPUT, message="Empty content"))
    return Ok(raw)


def compute_content_hash(
    content: VersionedContent | str | None,
    provider: HashProvider | None = DEFAULT_HASH_PROVIDER,
) -> Result[ContentHash, HashFailure]:
    """Hash content_raw exclusively.

    A :class:`VersionedContent` contributes only its ``raw`` field; the
    normalized and corrected copies never influence the digest. Never raises:
    empty input, a missing provider or a failing provider all come back as
    :class:`HashFailure`.
    """
    picked = _raw_of(content)
    if isinstance(picked, Err):
        return picked
    if provider is None:
        return Err(HashFailure(
            reason=HASH_UNAVAILABLE, message="No digest backend available",
        ))
    try:
        digest = provider.hexdigest(picked.value.encode("utf-8"))
        return Ok(ContentHash(algorithm=provider.algorithm, hexdigest=digest.lower()))
    except Exception as exc:
        return Err(HashFailure(
            reason=HASH_FAILED, message=f"Hash computation failed: {exc}",
        ))


async def acompute_content_hash(
    content: VersionedContent | str | None,
    provider: HashProvider | None = DEFAULT_HASH_PROVIDER,
) -> Result[ContentHash, HashFailure]:
    """Suspending variant of :func:`compute_content_hash` (runs off the loop)."""
    return await asyncio.to_thread(compute_content_hash, content, provider)


def content_hash_or_none(
    content: VersionedContent | str | None,
    provider: HashProvider | None = DEFAULT_HASH_PROVIDER,
) -> str | None:
    """Tagged hash string, or None on any failure (manifest field shape)."""
    result = compute_content_hash(content, provider)
    if isinstance(result, Ok):
        return result.value.value
    return None


def hash_result_to_dict(result: Result[ContentHash, HashFailure]) -> dict[str, str | None]:
    """Export shape: ``{content_hash, hash_source[, error, reason]}``."""
    match result:
        case Ok(value=h):
            return {"content_hash": h.value, "hash_source": h.hash_source}
        case Err(error=e):
            return {
                "content_hash": None,
                "hash_source": e.hash_source,
                "error": e.message,
                "reason": e.reason,
            }
    raise TypeError(f"Not a hash result: {result!r}")


def detect_content_language(text: str | None) -> str:
    """``"bengali"`` if any Bengali-block character (U+0980..U+09FF) occurs."""
    if text and BENGALI_CHAR_RE.search(text):
        return "bengali"
    return "english"
