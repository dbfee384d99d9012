"""
Document Store - the only shared mutable resource of the service.

Two implementations behind one interface:
- MongoDocumentStore: pymongo against a real MongoDB (replica set for transactions)
- InMemoryDocumentStore: process-local dicts, used for tests and local demos

The backend is chosen once at startup from Settings.storage_backend.

Filters are MongoDB-style dicts (equality, $in, $ne, $gte, $lte) and changes
are MongoDB update documents ($set, $inc, $push, $addToSet), so services read
the same against either backend. Documents come back with their key under "id".
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextvars import ContextVar
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from placement.core.config import get_settings
from placement.core.errors import ConflictError, InternalError
from placement.db.mongodb import UNIQUE_KEYS, get_mongo_db, init_mongo_indexes

logger = logging.getLogger(__name__)

Sort = Iterable[Tuple[str, int]]


def new_id() -> str:
    return str(ObjectId())


class DocumentStore(ABC):
    """Collection/document operations the services rely on."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def insert(self, collection: str, doc: dict, doc_id: Optional[str] = None) -> str:
        """Insert a new document, generating an id when none is given."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, doc: dict, merge: bool = False) -> None:
        """Create or overwrite a document; merge=True keeps fields not in doc."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, changes: dict) -> bool:
        """Apply an update document. Returns False when doc_id does not exist."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        ...

    @abstractmethod
    def find(self, collection: str, filters: Optional[dict] = None, sort: Optional[Sort] = None) -> List[dict]:
        ...

    @abstractmethod
    def run_transaction(self, callback: Callable[[], Any]) -> Any:
        """
        Run callback atomically. Every store call made inside callback joins
        the transaction; an exception aborts all of its writes.
        """

    @abstractmethod
    def ping(self) -> bool:
        ...

    def exists(self, collection: str, filters: dict) -> bool:
        return len(self.find(collection, filters)) > 0

    def ensure_indexes(self) -> None:
        pass


# ============================================================
# MONGODB
# ============================================================

class MongoDocumentStore(DocumentStore):
    """
    pymongo-backed store.

    Transactions use ClientSession.with_transaction, which retries the whole
    callback on TransientTransactionError and retries the commit on
    UnknownTransactionCommitResult.
    """

    def __init__(self, db: Optional[Database] = None):
        self.db = db if db is not None else get_mongo_db()
        self.client = self.db.client
        self._session: ContextVar[Optional[ClientSession]] = ContextVar("mongo_session", default=None)

    @staticmethod
    def _out(doc: Optional[dict]) -> Optional[dict]:
        if doc is None:
            return None
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return doc

    @staticmethod
    def _in(doc: dict) -> dict:
        return {k: v for k, v in doc.items() if k not in ("id", "_id")}

    def get(self, collection, doc_id):
        doc = self.db[collection].find_one({"_id": doc_id}, session=self._session.get())
        return self._out(doc)

    def insert(self, collection, doc, doc_id=None):
        body = self._in(doc)
        body["_id"] = doc_id or new_id()
        try:
            self.db[collection].insert_one(body, session=self._session.get())
        except DuplicateKeyError as e:
            raise ConflictError(f"Duplicate document in {collection}") from e
        return body["_id"]

    def set(self, collection, doc_id, doc, merge=False):
        session = self._session.get()
        try:
            if merge:
                self.db[collection].update_one(
                    {"_id": doc_id}, {"$set": self._in(doc)}, upsert=True, session=session
                )
            else:
                self.db[collection].replace_one(
                    {"_id": doc_id}, self._in(doc), upsert=True, session=session
                )
        except DuplicateKeyError as e:
            raise ConflictError(f"Duplicate document in {collection}") from e

    def update(self, collection, doc_id, changes):
        result = self.db[collection].update_one({"_id": doc_id}, changes, session=self._session.get())
        return result.matched_count > 0

    def delete(self, collection, doc_id):
        result = self.db[collection].delete_one({"_id": doc_id}, session=self._session.get())
        return result.deleted_count > 0

    def find(self, collection, filters=None, sort=None):
        cursor = self.db[collection].find(filters or {}, session=self._session.get())
        if sort:
            cursor = cursor.sort(list(sort))
        return [self._out(doc) for doc in cursor]

    def exists(self, collection, filters):
        return self.db[collection].find_one(filters, {"_id": 1}, session=self._session.get()) is not None

    def run_transaction(self, callback):
        if self._session.get() is not None:
            return callback()

        def _body(session: ClientSession):
            token = self._session.set(session)
            try:
                return callback()
            finally:
                self._session.reset(token)

        with self.client.start_session() as session:
            return session.with_transaction(_body)

    def ping(self):
        try:
            self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False

    def ensure_indexes(self):
        init_mongo_indexes(self.db)


# ============================================================
# IN-MEMORY
# ============================================================

def _matches(doc: dict, filters: dict) -> bool:
    for field, expected in filters.items():
        value = doc.get(field)
        if isinstance(expected, dict):
            for op, operand in expected.items():
                if op == "$in":
                    if isinstance(value, list):
                        if not any(v in operand for v in value):
                            return False
                    elif value not in operand:
                        return False
                elif op == "$ne":
                    if value == operand:
                        return False
                elif op == "$gte":
                    if value is None or value < operand:
                        return False
                elif op == "$lte":
                    if value is None or value > operand:
                        return False
                else:
                    raise InternalError(f"Unsupported filter operator {op}")
        elif isinstance(value, list) and not isinstance(expected, list):
            if expected not in value:
                return False
        elif value != expected:
            return False
    return True


def _apply(doc: dict, changes: dict) -> None:
    for op, fields in changes.items():
        if op == "$set":
            doc.update(copy.deepcopy(fields))
        elif op == "$inc":
            for field, amount in fields.items():
                doc[field] = (doc.get(field) or 0) + amount
        elif op == "$push":
            for field, item in fields.items():
                doc.setdefault(field, []).append(copy.deepcopy(item))
        elif op == "$addToSet":
            for field, item in fields.items():
                items = doc.setdefault(field, [])
                if item not in items:
                    items.append(copy.deepcopy(item))
        else:
            raise InternalError(f"Unsupported update operator {op}")


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-of-dicts store.

    run_transaction serialises writers on a re-entrant lock and restores the
    pre-transaction snapshot when the callback raises.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()
        self._depth = 0

    def _collection(self, name: str) -> Dict[str, dict]:
        return self._data.setdefault(name, {})

    def _check_unique(self, collection: str, doc_id: str, doc: dict) -> None:
        keys = UNIQUE_KEYS.get(collection)
        if not keys:
            return
        probe = {k: doc.get(k) for k in keys}
        for other_id, other in self._collection(collection).items():
            if other_id != doc_id and _matches(other, probe):
                raise ConflictError(f"Duplicate document in {collection}")

    def get(self, collection, doc_id):
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            if doc is None:
                return None
            return {**copy.deepcopy(doc), "id": doc_id}

    def insert(self, collection, doc, doc_id=None):
        with self._lock:
            doc_id = doc_id or new_id()
            docs = self._collection(collection)
            if doc_id in docs:
                raise ConflictError(f"Duplicate document in {collection}")
            body = {k: copy.deepcopy(v) for k, v in doc.items() if k != "id"}
            self._check_unique(collection, doc_id, body)
            docs[doc_id] = body
            return doc_id

    def set(self, collection, doc_id, doc, merge=False):
        with self._lock:
            docs = self._collection(collection)
            body = {k: copy.deepcopy(v) for k, v in doc.items() if k != "id"}
            if merge and doc_id in docs:
                body = {**docs[doc_id], **body}
            self._check_unique(collection, doc_id, body)
            docs[doc_id] = body

    def update(self, collection, doc_id, changes):
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            if doc is None:
                return False
            _apply(doc, changes)
            return True

    def delete(self, collection, doc_id):
        with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    def find(self, collection, filters=None, sort=None):
        with self._lock:
            docs = [
                {**copy.deepcopy(doc), "id": doc_id}
                for doc_id, doc in self._collection(collection).items()
                if _matches(doc, filters or {})
            ]
        for field, direction in reversed(list(sort or [])):
            docs.sort(key=lambda d: (d.get(field) is not None, d.get(field)), reverse=direction < 0)
        return docs

    def run_transaction(self, callback):
        with self._lock:
            snapshot = copy.deepcopy(self._data) if self._depth == 0 else None
            self._depth += 1
            try:
                return callback()
            except BaseException:
                if snapshot is not None:
                    self._data = snapshot
                raise
            finally:
                self._depth -= 1

    def ping(self):
        return True

    def clear(self) -> None:
        with self._lock:
            self._data = {}


# ============================================================
# FACTORY
# ============================================================

_store: Optional[DocumentStore] = None


def create_store(backend: str) -> DocumentStore:
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "mongo":
        return MongoDocumentStore(get_mongo_db())
    raise InternalError(f"Unknown storage backend '{backend}'")


def get_store() -> DocumentStore:
    """
    Configured store singleton. Also used as a FastAPI dependency:
        def route(store: DocumentStore = Depends(get_store)): ...
    """
    global _store
    if _store is None:
        backend = get_settings().storage_backend
        _store = create_store(backend)
        logger.info("Document store initialised (%s)", backend)
    return _store
