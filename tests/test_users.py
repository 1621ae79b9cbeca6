import pytest

from identity_service.errors import NotFound
from identity_service.services.users import UserStore, default_name_for_email


def test_default_name_is_first_eight_characters():
    assert default_name_for_email("alice1234567@x.com") == "alice123"
    assert default_name_for_email("a@b.com") == "a@b.com"


def test_ensure_user_creates_then_reuses(database):
    store = UserStore(database)

    created, existed = store.ensure_user_for_email("alice1234567@x.com")
    again, existed_again = store.ensure_user_for_email("alice1234567@x.com")

    assert not existed
    assert existed_again
    assert created.id == again.id
    assert created.name == "alice123"
    assert created.email == "alice1234567@x.com"


def test_find_by_email_and_get_user(database):
    store = UserStore(database)
    created, _ = store.ensure_user_for_email("bob@x.com")

    assert store.find_by_email("bob@x.com").id == created.id
    assert store.find_by_email("nobody@x.com") is None
    assert store.get_user(created.id).email == "bob@x.com"
    assert store.get_user(created.id + 100) is None


def test_list_users_orders_by_id(database):
    store = UserStore(database)
    first, _ = store.ensure_user_for_email("first@x.com")
    second, _ = store.ensure_user_for_email("second@x.com")

    assert [user.id for user in store.list_users()] == [first.id, second.id]


def test_update_name_persists(database):
    store = UserStore(database)
    created, _ = store.ensure_user_for_email("carol@x.com")

    updated = store.update_name(created.id, "Carol")

    assert updated.name == "Carol"
    assert store.get_user(created.id).name == "Carol"


def test_update_name_unknown_user(database):
    with pytest.raises(NotFound):
        UserStore(database).update_name(999, "Nobody")
