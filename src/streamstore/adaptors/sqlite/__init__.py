from .factory import sqlite_document_store, sqlite_event_store
from .handle import SQLiteDocumentStore

__all__ = ["SQLiteDocumentStore", "sqlite_document_store", "sqlite_event_store"]
