from sqlalchemy import func, select

from roomchat.models.chat import Room
from roomchat.services.store import ChatStore


def _room_count(db):
    return db.scalar(select(func.count()).select_from(Room))


def test_create_room_with_existing_name_returns_existing_row(db):
    store = ChatStore(db)
    first = store.create_room("General")
    count = _room_count(db)

    again = store.create_room("General")

    assert again.id == first.id
    assert _room_count(db) == count


def test_room_names_are_case_sensitive(db):
    store = ChatStore(db)

    upper = store.create_room("General")
    lower = store.create_room("general")

    assert upper.id != lower.id
    assert store.find_room_by_name("general").id == lower.id


def test_find_room_by_id(db):
    store = ChatStore(db)
    room = store.create_room("General")

    assert store.find_room_by_id(room.id).name == "General"
    assert store.find_room_by_id("missing") is None


def test_list_rooms_oldest_first(db):
    store = ChatStore(db)
    names = ["General", "Random", "Dev"]
    for name in names:
        store.create_room(name)

    assert [room.name for room in store.list_rooms()] == names


def test_create_message_assigns_id_and_timestamp(db):
    store = ChatStore(db)
    room = store.create_room("General")

    message = store.create_message(text="hi", author="alice", room_id=room.id)

    assert message.id
    assert message.created_at is not None
    assert message.room_id == room.id


def test_list_messages_is_scoped_and_newest_first(db):
    store = ChatStore(db)
    general = store.create_room("General")
    other = store.create_room("Other")
    first = store.create_message(text="one", author="alice", room_id=general.id)
    second = store.create_message(text="two", author="bob", room_id=general.id)
    store.create_message(text="elsewhere", author="carol", room_id=other.id)
    legacy = store.create_message(text="legacy", author="dave", room_id=None)

    assert [m.id for m in store.list_messages(general.id)] == [second.id, first.id]
    assert [m.id for m in store.list_messages(None)] == [legacy.id]
    assert store.list_messages("missing") == []


def test_users_are_found_by_username(db):
    store = ChatStore(db)
    user = store.create_user("alice", "hash")

    assert store.find_user_by_username("alice").id == user.id
    assert store.find_user_by_username("bob") is None
