"""Persistent storage for the pool index using SQLite.

Items are stored once per (type, uuid) with their full record as JSON;
dependencies reference items by (type, uuid) so that dangling references
survive a save/load round trip.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import networkx as nx
from pydantic import ValidationError

from poolreview.exceptions import PoolReviewError
from poolreview.graph.query import ItemStore
from poolreview.pool.models import ITEM_MODELS, ItemRef, ItemType


class IndexStore:
    """Persists and loads the item store using SQLite."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        return self._conn

    def _create_tables(self) -> None:
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS items (
                type TEXT NOT NULL,
                uuid TEXT NOT NULL,
                name TEXT NOT NULL DEFAULT '',
                filename TEXT NOT NULL DEFAULT '',
                data TEXT NOT NULL,              -- full record as JSON
                PRIMARY KEY (type, uuid)
            );

            CREATE TABLE IF NOT EXISTS dependencies (
                type TEXT NOT NULL,
                uuid TEXT NOT NULL,
                dep_type TEXT NOT NULL,
                dep_uuid TEXT NOT NULL,
                kind TEXT NOT NULL,              -- 'uses' or 'derives'
                PRIMARY KEY (type, uuid, dep_type, dep_uuid)
            );

            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_items_filename ON items(filename);
            CREATE INDEX IF NOT EXISTS idx_dependencies_dep ON dependencies(dep_type, dep_uuid);
        """)
        conn.commit()

    # ------------------------------------------------------------------
    # Save / Load
    # ------------------------------------------------------------------

    def save(self, store: ItemStore, metadata: dict | None = None) -> None:
        """Replace the stored index with the contents of `store`."""
        conn = self._get_conn()
        conn.execute("DELETE FROM items")
        conn.execute("DELETE FROM dependencies")

        conn.executemany(
            "INSERT INTO items (type, uuid, name, filename, data) VALUES (?, ?, ?, ?, ?)",
            [
                (item.type.value, item.uuid, item.name, item.filename, item.model_dump_json())
                for item in store.items()
            ],
        )
        conn.executemany(
            """INSERT OR REPLACE INTO dependencies
               (type, uuid, dep_type, dep_uuid, kind) VALUES (?, ?, ?, ?, ?)""",
            [
                (src.type.value, src.id, tgt.type.value, tgt.id, data.get("kind", ""))
                for src, tgt, data in store.graph.edges(data=True)
            ],
        )

        if metadata:
            for key, value in metadata.items():
                conn.execute(
                    "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                    (key, json.dumps(value)),
                )

        conn.commit()

    def load(self) -> ItemStore | None:
        """Reconstruct the item store, or None if nothing was indexed yet."""
        conn = self._get_conn()
        row = conn.execute("SELECT COUNT(*) AS cnt FROM items").fetchone()
        if row["cnt"] == 0 and self.get_metadata("stats") is None:
            return None

        graph = nx.DiGraph()
        for row in conn.execute("SELECT type, uuid, data FROM items ORDER BY rowid").fetchall():
            item_type = ItemType(row["type"])
            try:
                item = ITEM_MODELS[item_type].model_validate_json(row["data"])
            except ValidationError as e:
                raise PoolReviewError(
                    f"Corrupt index entry {item_type.value}:{row['uuid']}; "
                    "rebuild with 'poolreview index'"
                ) from e
            graph.add_node(item.ref, item=item)

        for row in conn.execute("SELECT * FROM dependencies ORDER BY rowid").fetchall():
            graph.add_edge(
                ItemRef.of(row["type"], row["uuid"]),
                ItemRef.of(row["dep_type"], row["dep_uuid"]),
                kind=row["kind"],
            )

        return ItemStore(graph)

    def get_metadata(self, key: str):
        """Get a metadata value."""
        conn = self._get_conn()
        row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
        if row:
            return json.loads(row["value"])
        return None

    def set_metadata(self, key: str, value) -> None:
        """Set a single metadata value without a full save."""
        conn = self._get_conn()
        conn.execute(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
            (key, json.dumps(value)),
        )
        conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
