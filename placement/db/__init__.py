"""
Database module - MongoDB connection and the document store abstraction.
"""
from placement.db.mongodb import COLLECTIONS, get_mongo_db
from placement.db.store import DocumentStore, InMemoryDocumentStore, MongoDocumentStore, get_store

__all__ = [
    "COLLECTIONS",
    "get_mongo_db",
    "DocumentStore",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
    "get_store",
]
