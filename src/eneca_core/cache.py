"""Read-through cache for display lookups.

Users, projects and stages are looked up by id over and over while rendering
search results. Entries live for a fixed TTL and are NOT invalidated when the
underlying row is written, so a reader may see a stale name or email for up
to ttl_seconds after an update. The cache is only used to decorate output;
resolution and validation always read the database.
"""
import logging
import threading
import time
from typing import Any, Callable, Hashable, Optional

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger("eneca-core.cache")

_MISSING = object()


class TTLCache:
    """
    Thread-safe key/value cache with a fixed time-to-live.

    Args:
        ttl_seconds: Lifetime of each entry
        clock: Time source, injectable for tests
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return a live entry or default; expired entries are dropped."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return default
            return value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def expire(self, key: Optional[Hashable] = None) -> None:
        """Drop one key, or every expired entry when no key is given."""
        with self._lock:
            if key is not None:
                self._entries.pop(key, None)
                return
            now = self._clock()
            stale = [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl_seconds]
            for k in stale:
                del self._entries[k]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value, calling loader on a miss.

        None results from the loader are not cached.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = loader()
        if value is not None:
            self.put(key, value)
        else:
            logger.debug(f"Cache loader returned nothing for {key!r}")
        return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class DisplayCache:
    """
    Id -> display-name lookups for users, projects and stages.

    Values are plain dicts detached from any session so they can outlive the
    request that loaded them.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.users = TTLCache(ttl_seconds, clock)
        self.projects = TTLCache(ttl_seconds, clock)
        self.stages = TTLCache(ttl_seconds, clock)

    def user(self, db: Session, user_id) -> Optional[dict]:
        if user_id is None:
            return None

        def load():
            user = db.get(models.User, user_id)
            if user is None:
                return None
            return {"id": user.id, "full_name": user.full_name, "email": user.email}

        return self.users.get_or_load(user_id, load)

    def project(self, db: Session, project_id) -> Optional[dict]:
        if project_id is None:
            return None

        def load():
            project = db.get(models.Project, project_id)
            return None if project is None else {"id": project.id, "name": project.name}

        return self.projects.get_or_load(project_id, load)

    def stage(self, db: Session, stage_id) -> Optional[dict]:
        if stage_id is None:
            return None

        def load():
            stage = db.get(models.Stage, stage_id)
            return None if stage is None else {"id": stage.id, "name": stage.name}

        return self.stages.get_or_load(stage_id, load)

    def clear(self) -> None:
        self.users.clear()
        self.projects.clear()
        self.stages.clear()
