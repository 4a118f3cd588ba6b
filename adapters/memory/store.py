"""
In-process access key storage.

Implements the AccessKeyStore protocol with a dict and a lock. Suitable for
tests, demos and single-process deployments; a database-backed store needs a
unique index on the display key and a conditional update for ``mark_used``.
"""

import threading
from datetime import datetime

import structlog

from core.domain.models import AccessGrant

logger = structlog.get_logger(__name__)


class InMemoryAccessKeyStore:
    """Thread-safe dict of grants keyed by display key."""

    def __init__(self) -> None:
        self._grants: dict[str, AccessGrant] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="in_memory_access_key_store")

    def __len__(self) -> int:
        return len(self._grants)

    def exists(self, display_key: str) -> bool:
        with self._lock:
            return display_key in self._grants

    def add(self, grant: AccessGrant) -> None:
        with self._lock:
            if grant.display_key in self._grants:
                raise ValueError(f"Access key {grant.display_key} already stored")
            self._grants[grant.display_key] = grant
        self.logger.debug("access_grant_stored", grant_id=str(grant.id))

    def get(self, display_key: str) -> AccessGrant | None:
        with self._lock:
            return self._grants.get(display_key)

    def mark_used(self, display_key: str, used_at: datetime) -> AccessGrant | None:
        with self._lock:
            grant = self._grants.get(display_key)
            if grant is None or grant.is_used:
                return None
            updated = grant.model_copy(update={"is_used": True, "used_at": used_at})
            self._grants[display_key] = updated
            return updated

    def list_for_patient(self, patient_id: str, limit: int) -> list[AccessGrant]:
        with self._lock:
            grants = [g for g in self._grants.values() if g.patient_id == patient_id]
        grants.sort(key=lambda g: g.created_at, reverse=True)
        return grants[:limit]
