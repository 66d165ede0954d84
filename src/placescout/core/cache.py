from __future__ import annotations

import logging
import time
from hashlib import sha256
from pathlib import Path

from pydantic import BaseModel, ValidationError

from placescout.domain.models import PlaceCandidate

"""
On-disk cache for place-search results.

One JSON file per search step, named by the SHA-256 of its key
(`signature:radius:relaxation`) under `<cache.dir>/place_search/`. Each entry carries its
own write time and TTL; expired, foreign or unreadable entries read as a miss. Writes go
through a temporary file + atomic rename.

The orchestrator treats any exception from here as a miss, so a broken cache directory
slows discovery down but never fails it.
"""

logger = logging.getLogger(__name__)


class CachedSearch(BaseModel):
    """Envelope stored on disk for one search step."""

    key: str
    stored_at: float
    ttl_seconds: float
    candidates: list[PlaceCandidate]

    def expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl_seconds


class FileResultCache:
    namespace = "place_search"

    def __init__(self, base_dir: Path, *, ttl_seconds: float = 3600):
        self._dir = Path(base_dir) / self.namespace
        self._ttl_seconds = float(ttl_seconds)

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, key: str) -> Path:
        return self._dir / f"{sha256(key.encode('utf-8')).hexdigest()}.json"

    def get(self, key: str) -> list[PlaceCandidate] | None:
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        try:
            entry = CachedSearch.model_validate_json(text)
        except ValidationError:
            logger.warning("Discarding unreadable cache entry %s", path.name)
            return None

        if entry.key != key or entry.expired(time.time()):
            return None
        return entry.candidates

    def put(self, key: str, candidates: list[PlaceCandidate]) -> None:
        entry = CachedSearch(
            key=key,
            stored_at=time.time(),
            ttl_seconds=self._ttl_seconds,
            candidates=list(candidates),
        )
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(entry.model_dump_json(), encoding="utf-8")
        tmp.replace(path)
