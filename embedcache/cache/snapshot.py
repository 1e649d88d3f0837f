"""
Portable cache snapshots for backup and warm start.

Sandi Metz Principles:
- Single Responsibility: Snapshot format and file I/O
- Small methods: Conversion isolated from persistence
"""

from pathlib import Path
from typing import List

from pydantic import BaseModel, Field

from embedcache.cache.serialization import decode_vector_b64, encode_vector_b64
from embedcache.models.cache_entry import CacheEntry

SNAPSHOT_VERSION = 1


class SnapshotEntry(BaseModel):
    """Serialized cache entry."""

    key: str
    vector: str = Field(..., description="Base64 little-endian float32 bytes")
    model: str
    created_at: int
    last_accessed: int
    access_count: int

    @classmethod
    def from_entry(cls, entry: CacheEntry) -> "SnapshotEntry":
        """Build from a cache entry."""
        return cls(
            key=entry.key,
            vector=encode_vector_b64(entry.vector),
            model=entry.model,
            created_at=entry.created_at,
            last_accessed=entry.last_accessed,
            access_count=entry.access_count,
        )

    def to_entry(self) -> CacheEntry:
        """Convert back to a cache entry."""
        return CacheEntry(
            key=self.key,
            vector=decode_vector_b64(self.vector),
            model=self.model,
            created_at=self.created_at,
            last_accessed=self.last_accessed,
            access_count=self.access_count,
        )


class CacheSnapshot(BaseModel):
    """Point-in-time export of every cache entry."""

    version: int = Field(default=SNAPSHOT_VERSION, description="Format version")
    exported_at: int = Field(..., ge=0, description="Export time (epoch ms)")
    entries: List[SnapshotEntry] = Field(default_factory=list)

    @classmethod
    def from_entries(cls, entries: List[CacheEntry], exported_at: int) -> "CacheSnapshot":
        """Build a snapshot from cache entries."""
        return cls(
            exported_at=exported_at,
            entries=[SnapshotEntry.from_entry(e) for e in entries],
        )

    def to_entries(self) -> List[CacheEntry]:
        """Convert every snapshot row to a cache entry."""
        return [e.to_entry() for e in self.entries]

    def write(self, path: str | Path) -> None:
        """Write snapshot as JSON."""
        Path(path).write_text(self.model_dump_json(), encoding="utf-8")

    @classmethod
    def read(cls, path: str | Path) -> "CacheSnapshot":
        """
        Read snapshot JSON.

        Raises:
            ValueError: If the file is not a supported snapshot
        """
        snapshot = cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
        if snapshot.version != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {snapshot.version}")
        return snapshot
