"""
Vector Store Module

WHAT IS A VECTOR STORE:
Storage for embeddings together with the text they were computed from,
searched by meaning similarity instead of keywords.

THIS STORE:
- An ordered list of Chunks; insertion order is recency order
- Bounded to max_entries; the oldest chunks are evicted first
- Persisted as ONE JSON document, read in full and written in full on
  every mutation (no partial writes, no external database)

FILE FORMAT:
    {"version": 1, "revision": 7, "entries": [{"id": ..., "content": ...,
     "source": ..., "embedding": [...], "created_at": ...}, ...]}

A bare JSON list (written before the format carried a version) still loads.

CONCURRENCY:
Read-all/write-all persistence loses updates under concurrent writers, so
every load-mutate-save cycle runs under a lock shared by all handles on the
same file in this process. Across processes, the revision counter is
compared before writing; a mismatch raises StoreConflictError rather than
overwriting someone else's write.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from config.settings import get_settings
from context_agent.chunking import Chunk, utc_now
from context_agent.errors import StoreAccessError, StoreConflictError, StoreFormatError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_path_locks: Dict[str, threading.RLock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _path_locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = _path_locks[key] = threading.RLock()
        return lock


def enforce_capacity(entries: List[Chunk], max_entries: int) -> int:
    """
    Evict the oldest entries in place so at most max_entries remain.

    Removal is one slice deletion from the front, so survivors keep their
    relative order. Returns the number of evicted entries.
    """
    overflow = len(entries) - max_entries
    if overflow <= 0:
        return 0
    del entries[:overflow]
    return overflow


class VectorStore:
    """
    Persisted, capacity-bounded store of embedded chunks.

    USAGE:
        store = VectorStore("data/vector_store.json", max_entries=500)
        store.append([chunk_a, chunk_b])
        entries = store.load()

    Handles are cheap; create one per logical store and pass it to the
    pipeline explicitly.
    """

    def __init__(self, path: Optional[str] = None, max_entries: Optional[int] = None):
        settings = get_settings().store if (path is None or max_entries is None) else None

        self.path = Path(path if path is not None else settings.path)
        self.max_entries = max_entries if max_entries is not None else settings.max_entries
        if self.max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {self.max_entries}")

        self._lock = _lock_for(self.path)
        self._revision: Optional[int] = None

    # Persistence

    def load(self) -> List[Chunk]:
        """
        Read every stored chunk, oldest first.

        A missing file is an empty store. Entries persisted without a
        creation timestamp get one now (in memory; it is written back by
        the next save).
        """
        with self._lock:
            entries, revision = self._read()
            self._revision = revision
        return entries

    def save(self, entries: Iterable[Chunk]):
        """Write the whole store, replacing what is on disk."""
        with self._lock:
            self._revision = self._write(list(entries), self._revision)

    @contextmanager
    def transaction(self) -> Iterator[List[Chunk]]:
        """
        Load, let the caller mutate the list, then save it as one unit.

        Nothing is written when the block raises.
        """
        with self._lock:
            entries, revision = self._read()
            yield entries
            self._revision = self._write(entries, revision)

    # Mutations

    def append(self, chunks: Iterable[Chunk]) -> List[Chunk]:
        """
        Append chunks, evict down to capacity, and persist.

        Returns the entries that are stored afterwards.
        """
        new_chunks = list(chunks)
        with self.transaction() as entries:
            entries.extend(new_chunks)
            evicted = enforce_capacity(entries, self.max_entries)

        if evicted:
            logger.info("Evicted %d oldest entries (capacity %d)", evicted, self.max_entries)
        logger.debug("Appended %d entries, store now holds %d", len(new_chunks), len(entries))
        return entries

    def clear(self):
        """Remove all entries."""
        with self.transaction() as entries:
            entries.clear()
        logger.info("Cleared vector store at %s", self.path)

    def __len__(self):
        """Number of chunks in the store."""
        return len(self.load())

    # File I/O

    def _read_document(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError
            raise StoreFormatError(f"Vector store {self.path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise StoreAccessError(f"Cannot read vector store {self.path}: {exc}") from exc

    def _read(self) -> Tuple[List[Chunk], int]:
        if not self.path.exists():
            return [], 0

        raw = self._read_document()

        if isinstance(raw, list):
            records, revision = raw, 0
        elif isinstance(raw, dict):
            version = raw.get("version", FORMAT_VERSION)
            if not isinstance(version, int) or version > FORMAT_VERSION:
                raise StoreFormatError(
                    f"Vector store {self.path} has unsupported format version {version!r}"
                )
            records = raw.get("entries", [])
            revision = raw.get("revision", 0)
            if not isinstance(records, list):
                raise StoreFormatError(f"Vector store {self.path} entries must be a list")
        else:
            raise StoreFormatError(f"Vector store {self.path} has unexpected top-level type")

        entries = []
        backfilled = 0
        for record in records:
            try:
                chunk = Chunk.from_dict(record)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise StoreFormatError(f"Malformed entry in {self.path}: {exc}") from exc
            if not chunk.created_at:
                chunk.created_at = utc_now()
                backfilled += 1
            entries.append(chunk)

        if backfilled:
            logger.info("Backfilled creation timestamps for %d legacy entries", backfilled)

        return entries, revision

    def _read_revision(self) -> int:
        if not self.path.exists():
            return 0
        raw = self._read_document()
        if isinstance(raw, dict):
            return raw.get("revision", 0)
        return 0

    def _write(self, entries: List[Chunk], expected_revision: Optional[int]) -> int:
        current = self._read_revision()
        if expected_revision is not None and current != expected_revision:
            raise StoreConflictError(
                f"Vector store {self.path} changed on disk "
                f"(revision {current}, expected {expected_revision})"
            )

        revision = current + 1
        document = {
            "version": FORMAT_VERSION,
            "revision": revision,
            "entries": [chunk.to_dict() for chunk in entries],
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        except OSError as exc:
            raise StoreAccessError(f"Cannot write vector store {self.path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            _discard(tmp_path)
            raise StoreAccessError(f"Cannot write vector store {self.path}: {exc}") from exc
        except BaseException:
            _discard(tmp_path)
            raise

        return revision


def _discard(tmp_path: str):
    if os.path.exists(tmp_path):
        os.unlink(tmp_path)
