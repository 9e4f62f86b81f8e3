from fieldsync.store.memory_record_store import InMemoryRecordStore
from fieldsync.users.repository import StoreUserRepository


def test_directory_skips_incomplete_and_duplicate_entries():
    store = InMemoryRecordStore(
        {
            "users": {
                "u1": {"username": "alice", "name": "Alice", "role": "worker"},
                "u2": {"username": "bob", "name": ""},
                "u3": {"username": "alice", "name": "Alice Again"},
                "u4": {"username": "carol", "name": "Carol"},
                "u5": "corrupt",
            }
        }
    )
    repo = StoreUserRepository(store)

    assert repo.list_usernames() == ["alice", "carol"]
    assert repo.get_by_username("alice").uid == "u1"
    assert repo.get_by_username("bob") is None


def test_empty_directory():
    assert StoreUserRepository(InMemoryRecordStore()).list_usernames() == []
