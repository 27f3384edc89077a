"""
Persistent store

Dashboards and charts are stored as documents in two collections,
"dashboard" and "chart". Charts point at their dashboard through
``dashboardId``; dashboards never carry chart lists of their own.

Two backends share the same interface:
- JsonFileStore: a single JSON file, loaded on open and rewritten on every change
- MongoStore: MongoDB through pymongo, used when DATABASE_URL and DATABASE_NAME are set
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient

logger = logging.getLogger(__name__)

DASHBOARD = "dashboard"
CHART = "chart"

# collection -> key in the JSON file
_FILE_KEYS = {DASHBOARD: "dashboards", CHART: "charts"}


class StoreError(Exception):
    pass


class NotFoundError(StoreError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection.capitalize()} not found: {doc_id}")
        self.collection = collection
        self.doc_id = doc_id


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(doc: Dict[str, Any], filt: Optional[Dict[str, Any]]) -> bool:
    return all(doc.get(k) == v for k, v in (filt or {}).items())


class Store:
    """Document operations plus the dashboard/chart operations built on them."""

    backend = "base"

    def open(self) -> "Store":
        return self

    def close(self) -> None:
        pass

    def status(self) -> Dict[str, Any]:
        return {"backend": self.backend}

    # ---------- Document primitives ----------

    def create_document(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def get_documents(self, collection: str, filt: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get_document(self, collection: str, doc_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    def update_document(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def delete_documents(self, collection: str, filt: Dict[str, Any]) -> int:
        raise NotImplementedError

    # ---------- Dashboards ----------

    def list_dashboards(self) -> List[Dict[str, Any]]:
        return self.get_documents(DASHBOARD)

    def get_dashboard(self, dashboard_id: str) -> Dict[str, Any]:
        return self.get_document(DASHBOARD, dashboard_id)

    def create_dashboard(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.create_document(DASHBOARD, fields)

    def update_dashboard(self, dashboard_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        return self.update_document(DASHBOARD, dashboard_id, patch)

    def delete_dashboard(self, dashboard_id: str) -> int:
        """Delete a dashboard and every chart on it; returns the chart count."""
        self.get_dashboard(dashboard_id)
        removed = self.delete_documents(CHART, {"dashboardId": dashboard_id})
        self.delete_documents(DASHBOARD, {"id": dashboard_id})
        logger.info("Deleted dashboard %s with %d charts", dashboard_id, removed)
        return removed

    # ---------- Charts ----------

    def list_charts(self, dashboard_id: Optional[str] = None) -> List[Dict[str, Any]]:
        filt = {"dashboardId": dashboard_id} if dashboard_id is not None else None
        return self.get_documents(CHART, filt)

    def get_chart(self, chart_id: str) -> Dict[str, Any]:
        return self.get_document(CHART, chart_id)

    def create_chart(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.create_document(CHART, fields)

    def update_chart(self, chart_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        return self.update_document(CHART, chart_id, patch)

    def delete_chart(self, chart_id: str) -> None:
        if not self.delete_documents(CHART, {"id": chart_id}):
            raise NotFoundError(CHART, chart_id)


class JsonFileStore(Store):
    """Whole-file JSON store.

    Every mutation holds one lock and rewrites the file through a temporary
    file, so a single process never interleaves writes or leaves a partial file.
    """

    backend = "json"

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.RLock()
        self._data: Dict[str, List[Dict[str, Any]]] = {key: [] for key in _FILE_KEYS.values()}

    def open(self) -> "JsonFileStore":
        with self._lock:
            if os.path.exists(self.path):
                try:
                    with open(self.path, "r", encoding="utf-8") as f:
                        raw = json.load(f)
                except (OSError, ValueError) as e:
                    raise StoreError(f"Cannot load {self.path}: {e}") from e
                if not isinstance(raw, dict):
                    raise StoreError(f"Cannot load {self.path}: expected a JSON object")
                for key in _FILE_KEYS.values():
                    self._data[key] = list(raw.get(key, []))
            logger.info(
                "Opened JSON store %s (%d dashboards, %d charts)",
                self.path, len(self._data["dashboards"]), len(self._data["charts"]),
            )
        return self

    def close(self) -> None:
        with self._lock:
            self._flush()

    def status(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "path": self.path,
            "collections": {key: len(docs) for key, docs in self._data.items()},
        }

    def _flush(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".db-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise StoreError(f"Cannot write {self.path}: {e}") from e

    def _docs(self, collection: str) -> List[Dict[str, Any]]:
        return self._data[_FILE_KEYS[collection]]

    def create_document(self, collection, data):
        now = _now()
        doc = {**data, "id": str(ObjectId()), "createdAt": now, "updatedAt": now}
        with self._lock:
            self._docs(collection).append(doc)
            self._flush()
        return dict(doc)

    def get_documents(self, collection, filt=None):
        with self._lock:
            return [dict(d) for d in self._docs(collection) if _matches(d, filt)]

    def get_document(self, collection, doc_id):
        with self._lock:
            for doc in self._docs(collection):
                if doc.get("id") == doc_id:
                    return dict(doc)
        raise NotFoundError(collection, doc_id)

    def update_document(self, collection, doc_id, patch):
        with self._lock:
            for doc in self._docs(collection):
                if doc.get("id") == doc_id:
                    doc.update({k: v for k, v in patch.items() if k not in ("id", "createdAt")})
                    doc["updatedAt"] = _now()
                    self._flush()
                    return dict(doc)
        raise NotFoundError(collection, doc_id)

    def delete_documents(self, collection, filt):
        with self._lock:
            docs = self._docs(collection)
            kept = [d for d in docs if not _matches(d, filt)]
            removed = len(docs) - len(kept)
            if removed:
                self._data[_FILE_KEYS[collection]] = kept
                self._flush()
        return removed


def serialize_doc(doc: Dict[str, Any]):
    if not doc:
        return doc
    out = {**doc}
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    return out


class MongoStore(Store):
    backend = "mongodb"

    def __init__(self, url: str, name: str):
        self.url = url
        self.name = name
        self.client = None
        self.db = None

    def open(self) -> "MongoStore":
        self.client = MongoClient(self.url)
        self.db = self.client[self.name]
        logger.info("Opened MongoDB store %s", self.name)
        return self

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
            self.db = None

    def status(self) -> Dict[str, Any]:
        out = {"backend": self.backend, "database_name": self.name}
        try:
            out["collections"] = self.db.list_collection_names()[:10]
            out["connection_status"] = "Connected"
        except Exception as e:
            out["connection_status"] = f"Error: {str(e)[:50]}"
        return out

    @staticmethod
    def _query(filt: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        query = dict(filt or {})
        if "id" in query:
            try:
                query["_id"] = ObjectId(query.pop("id"))
            except InvalidId:
                # matches nothing
                query["_id"] = None
        return query

    def create_document(self, collection, data):
        now = _now()
        doc = {**data, "createdAt": now, "updatedAt": now}
        doc.pop("id", None)
        result = self.db[collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get_documents(self, collection, filt=None):
        return [serialize_doc(d) for d in self.db[collection].find(self._query(filt))]

    def get_document(self, collection, doc_id):
        doc = self.db[collection].find_one(self._query({"id": doc_id}))
        if not doc:
            raise NotFoundError(collection, doc_id)
        return serialize_doc(doc)

    def update_document(self, collection, doc_id, patch):
        changes = {k: v for k, v in patch.items() if k not in ("id", "_id", "createdAt")}
        changes["updatedAt"] = _now()
        result = self.db[collection].update_one(self._query({"id": doc_id}), {"$set": changes})
        if not result.matched_count:
            raise NotFoundError(collection, doc_id)
        return self.get_document(collection, doc_id)

    def delete_documents(self, collection, filt):
        return self.db[collection].delete_many(self._query(filt)).deleted_count


def open_store() -> Store:
    """Build the store selected by the environment and open it."""
    url = os.getenv("DATABASE_URL")
    name = os.getenv("DATABASE_NAME")
    if url and name:
        return MongoStore(url, name).open()
    return JsonFileStore(os.getenv("DATA_FILE", "db.json")).open()
