"""
Document Store Module
Minimal contract over the remote document database (list, get, merge-set,
delete, batched writes) with a Firestore backend and an in-memory backend.
"""

import copy
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from utils.errors import SIZE_LIMIT_MARKER

logger = logging.getLogger("DocumentStore")

# Firestore rejects batches with more than 500 writes
MAX_BATCH_OPERATIONS = 500
# Firestore's per-document limit
MAX_DOCUMENT_BYTES = 1_048_576


class WriteBatch:
    """Collects set/delete operations and commits them together"""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self.operations: List[Tuple] = []

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = True):
        self.operations.append(("set", collection, doc_id, data, merge))
        return self

    def delete(self, collection: str, doc_id: str):
        self.operations.append(("delete", collection, doc_id, None, False))
        return self

    def __len__(self):
        return len(self.operations)

    def commit(self):
        if not self.operations:
            return
        self._store.commit_batch(self.operations)
        self.operations = []


class DocumentStore(ABC):
    """Interface consumed by the remote sync service"""

    name = "document store"

    @abstractmethod
    def list_documents(self, collection: str) -> Dict[str, dict]:
        """Return every document of a collection keyed by document id"""

    @abstractmethod
    def get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        """Return the document or None if it does not exist"""

    @abstractmethod
    def set_document(self, collection: str, doc_id: str, data: dict, merge: bool = True):
        """Write a document; with merge=True only the given top-level fields change"""

    @abstractmethod
    def delete_document(self, collection: str, doc_id: str):
        """Delete a document (no error if it is absent)"""

    @abstractmethod
    def commit_batch(self, operations: List[Tuple]):
        """Apply a list of ("set"|"delete", collection, id, data, merge) operations"""

    def batch(self) -> WriteBatch:
        return WriteBatch(self)


# ============================================================================
# FIRESTORE
# ============================================================================

class FirestoreDocumentStore(DocumentStore):
    """google-cloud-firestore backend"""

    name = "Firestore"

    def __init__(self, project_id: str, client=None):
        if client is None:
            from google.cloud import firestore

            client = firestore.Client(project=project_id)
        self.client = client
        self.project_id = project_id
        logger.info(f"[FIRESTORE] Client initialized for project '{project_id}'")

    def list_documents(self, collection):
        return {snap.id: snap.to_dict() or {} for snap in self.client.collection(collection).stream()}

    def get_document(self, collection, doc_id):
        snap = self.client.collection(collection).document(doc_id).get()
        if not snap.exists:
            return None
        return snap.to_dict() or {}

    def set_document(self, collection, doc_id, data, merge=True):
        self.client.collection(collection).document(doc_id).set(data, merge=merge)

    def delete_document(self, collection, doc_id):
        self.client.collection(collection).document(doc_id).delete()

    def commit_batch(self, operations):
        for start in range(0, len(operations), MAX_BATCH_OPERATIONS):
            chunk = operations[start:start + MAX_BATCH_OPERATIONS]
            batch = self.client.batch()
            for op, collection, doc_id, data, merge in chunk:
                ref = self.client.collection(collection).document(doc_id)
                if op == "set":
                    batch.set(ref, data, merge=merge)
                else:
                    batch.delete(ref)
            batch.commit()
            logger.debug(f"[FIRESTORE] Committed batch of {len(chunk)} operations")


# ============================================================================
# IN-MEMORY
# ============================================================================

class InMemoryDocumentStore(DocumentStore):
    """
    Process-local store with the same merge semantics as Firestore.

    Used when DOCUMENT_STORE=memory and by the test suite. Enforces the 1MB
    document limit so oversized embedded images fail the same way.
    """

    name = "in-memory store"

    def __init__(self, max_document_bytes: Optional[int] = MAX_DOCUMENT_BYTES):
        self.max_document_bytes = max_document_bytes
        self._data: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.Lock()
        self.commits = 0

    def _check_size(self, collection, doc_id, data):
        if not self.max_document_bytes:
            return
        size = len(json.dumps(data, ensure_ascii=False).encode("utf-8"))
        if size > self.max_document_bytes:
            raise ValueError(
                f"Document '{collection}/{doc_id}' cannot be written because its size "
                f"({size} bytes) {SIZE_LIMIT_MARKER} ({self.max_document_bytes} bytes)."
            )

    def _apply_set(self, collection, doc_id, data, merge):
        docs = self._data.setdefault(collection, {})
        if merge and doc_id in docs:
            merged = dict(docs[doc_id])
            merged.update(copy.deepcopy(data))
        else:
            merged = copy.deepcopy(data)
        self._check_size(collection, doc_id, merged)
        docs[doc_id] = merged

    def list_documents(self, collection):
        with self._lock:
            return copy.deepcopy(self._data.get(collection, {}))

    def get_document(self, collection, doc_id):
        with self._lock:
            doc = self._data.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def set_document(self, collection, doc_id, data, merge=True):
        with self._lock:
            self._apply_set(collection, doc_id, data, merge)

    def delete_document(self, collection, doc_id):
        with self._lock:
            self._data.get(collection, {}).pop(doc_id, None)

    def commit_batch(self, operations):
        with self._lock:
            # all-or-nothing: stage on a copy
            staged = copy.deepcopy(self._data)
            original, self._data = self._data, staged
            try:
                for op, collection, doc_id, data, merge in operations:
                    if op == "set":
                        self._apply_set(collection, doc_id, data, merge)
                    else:
                        self._data.get(collection, {}).pop(doc_id, None)
            except Exception:
                self._data = original
                raise
            self.commits += 1


def build_document_store(backend: str, project_id: Optional[str] = None) -> Optional[DocumentStore]:
    """
    Create the configured store.

    Returns:
        A DocumentStore, or None when the Firestore backend has no credentials
        (the sync layer then runs in local mode)
    """
    if backend == "memory":
        logger.info("[STORE] Using in-memory document store")
        return InMemoryDocumentStore()
    if not project_id:
        logger.warning("[STORE] No Firebase project configured; remote sync disabled")
        return None
    return FirestoreDocumentStore(project_id)
