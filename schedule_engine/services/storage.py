import copy
import json
import logging
import os
import tempfile
from typing import Any, Dict, Iterable, List, Optional

from schedule_engine.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Any]


class TenantStore:
    """
    Key-value store of whole tenant snapshots, keyed by the snapshot "id".

    Every write replaces complete snapshots, so a reader never observes a
    partially written tenant. Subclasses implement _load and _dump.
    """

    def _load(self) -> Dict[str, Snapshot]:
        raise NotImplementedError

    def _dump(self, tenants: Dict[str, Snapshot]):
        raise NotImplementedError

    def get(self, tenant_id: str) -> Optional[Snapshot]:
        snapshot = self._load().get(tenant_id)
        return copy.deepcopy(snapshot) if snapshot is not None else None

    def all(self) -> List[Snapshot]:
        return [copy.deepcopy(s) for s in self._load().values()]

    def put(self, snapshot: Snapshot):
        if not snapshot.get("id"):
            raise PersistenceError("Cannot store a tenant snapshot without an id")
        tenants = self._load()
        tenants[snapshot["id"]] = copy.deepcopy(snapshot)
        self._dump(tenants)

    def bulk_put(self, snapshots: Iterable[Snapshot]):
        tenants = self._load()
        for snapshot in snapshots:
            if not snapshot.get("id"):
                raise PersistenceError("Cannot store a tenant snapshot without an id")
            tenants[snapshot["id"]] = copy.deepcopy(snapshot)
        self._dump(tenants)

    def delete(self, tenant_id: str):
        tenants = self._load()
        tenants.pop(tenant_id, None)
        self._dump(tenants)

    def clear(self):
        self._dump({})

    def _replace_key(self, tenant_id: str, key: str, value: List[Dict[str, Any]]):
        tenants = self._load()
        if tenant_id not in tenants:
            raise NotFoundError(f"Tenant {tenant_id} not found")
        snapshot = dict(tenants[tenant_id])
        snapshot[key] = copy.deepcopy(value)
        tenants[tenant_id] = snapshot
        self._dump(tenants)

    def replace_sessions(self, tenant_id: str, sessions: List[Dict[str, Any]]):
        """Swaps the whole session list of a tenant in a single write"""
        self._replace_key(tenant_id, "scheduledSessions", sessions)

    def replace_attendance(self, tenant_id: str, records: List[Dict[str, Any]]):
        self._replace_key(tenant_id, "attendance", records)


class MemoryTenantStore(TenantStore):
    """Process-local store, used for tests and ephemeral deployments"""

    def __init__(self, snapshots: Iterable[Snapshot] = ()):
        self._tenants: Dict[str, Snapshot] = {}
        self.bulk_put(snapshots)

    def _load(self) -> Dict[str, Snapshot]:
        return dict(self._tenants)

    def _dump(self, tenants: Dict[str, Snapshot]):
        self._tenants = tenants


class JsonFileTenantStore(TenantStore):
    """
    Stores every tenant in one JSON document: {"schools": [snapshot, ...]}.

    Writes go to a temporary file in the same directory which then replaces
    the document, so a failed write leaves the previous content intact.
    """

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, Snapshot]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read tenant store {self.path}: {e}")
            raise PersistenceError(f"Could not read tenant store: {e}")
        return {school["id"]: school for school in data.get("schools", [])}

    def _dump(self, tenants: Dict[str, Snapshot]):
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"schools": list(tenants.values())}, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Could not write tenant store {self.path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise PersistenceError(f"Could not write tenant store: {e}")


def create_store(storage_config: Dict[str, Any]) -> TenantStore:
    backend = storage_config.get("backend", "memory")
    if backend == "json":
        return JsonFileTenantStore(storage_config["path"])
    if backend == "memory":
        return MemoryTenantStore()
    raise ValueError(f"Unknown storage backend: {backend}")
