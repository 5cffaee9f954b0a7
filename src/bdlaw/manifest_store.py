"""Key/value persistence for the corpus manifest and the audit log.

A store holds JSON-compatible blobs under string keys (``get`` / ``set`` /
``remove``). Two backends:

    JsonFileStore: one ``<key>.json`` file per key in a directory
    DuckDBStore: a ``kv_store`` table in a DuckDB file

Neither backend locks. The caller runs load -> apply -> save cycles one at a
time per corpus.
"""
from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Protocol

from bdlaw.config import DEFAULT_CONFIG, PipelineConfig
from bdlaw.corpus_manifest import CorpusManifest, create_empty_manifest, manifest_from_dict
from bdlaw.io_utils import dumps_json, load_json, loads_json, save_json

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")

KV_TABLE = "kv_store"


class ManifestStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class JsonFileStore:
    """Directory of pretty-printed JSON files, one per key."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid store key: {key!r}")
        return self._root / f"{key}.json"

    def get(self, key: str) -> Any | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return load_json(path)

    def set(self, key: str, value: Any) -> None:
        save_json(value, self.path_for(key), pretty=True)

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


class DuckDBStore:
    """Key/value table inside a DuckDB database file."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Any = _duckdb_mod.connect(str(db_path))
        self._conn.execute(
            f"CREATE TABLE IF NOT EXISTS {KV_TABLE} ("
            "key VARCHAR PRIMARY KEY, value VARCHAR NOT NULL)"
        )

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> DuckDBStore:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    def get(self, key: str) -> Any | None:
        row = self._conn.execute(
            f"SELECT value FROM {KV_TABLE} WHERE key = ?", [key]
        ).fetchone()
        return loads_json(row[0]) if row else None

    def set(self, key: str, value: Any) -> None:
        payload = dumps_json(value, pretty=False).decode("utf-8")
        self._conn.execute(
            f"INSERT OR REPLACE INTO {KV_TABLE} (key, value) VALUES (?, ?)",
            [key, payload],
        )

    def remove(self, key: str) -> None:
        self._conn.execute(f"DELETE FROM {KV_TABLE} WHERE key = ?", [key])

    def keys(self) -> list[str]:
        rows = self._conn.execute(f"SELECT key FROM {KV_TABLE} ORDER BY key").fetchall()
        return [str(r[0]) for r in rows]


def open_store(location: Path) -> JsonFileStore | DuckDBStore:
    """``*.duckdb`` / ``*.db`` paths open a DuckDBStore, anything else a directory store."""
    if location.suffix in (".duckdb", ".db"):
        return DuckDBStore(location)
    return JsonFileStore(location)


def close_store(store: ManifestStore) -> None:
    """Release the backend if it holds a connection (directory stores do not)."""
    close = getattr(store, "close", None)
    if callable(close):
        close()


# ---------------------------------------------------------------------------
# Manifest helpers
# ---------------------------------------------------------------------------

def load_corpus_manifest(
    store: ManifestStore,
    config: PipelineConfig = DEFAULT_CONFIG,
    *,
    now: str | None = None,
) -> CorpusManifest:
    """Stored manifest, or a fresh empty one when nothing is stored.

    Raises ManifestSchemaError when the stored blob is not a manifest.
    """
    blob = store.get(config.manifest_key)
    if blob is None:
        return create_empty_manifest(now=now)
    return manifest_from_dict(blob)


def save_corpus_manifest(
    store: ManifestStore,
    manifest: CorpusManifest,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> None:
    store.set(config.manifest_key, manifest.to_dict())


def clear_corpus_manifest(
    store: ManifestStore,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> None:
    store.remove(config.manifest_key)
