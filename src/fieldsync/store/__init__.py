from .memory_record_store import InMemoryRecordStore
from .record_store import RecordStore, join_path

__all__ = ["InMemoryRecordStore", "RecordStore", "join_path"]
