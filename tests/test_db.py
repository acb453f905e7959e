from __future__ import annotations

import datetime as dt

import pytest

from solo.db import (
    Database,
    DuplicateNameError,
    DuplicateUserError,
    PersistenceError,
    current_week_number,
    ensure_admin,
    seed_demo_data,
)


def test_schema_is_created_on_open(tmp_path):
    path = tmp_path / "nested" / "board.db"

    with Database(path) as database:
        assert database.count_users() == 0
    assert path.exists()


def test_in_memory_database():
    with Database() as database:
        database.create_user("alice", "pw-secret")
        assert database.count_users() == 1


def test_users_and_authentication(db):
    user_id = db.create_user("alice", "pw-secret")

    user = db.get_user_by_username("alice")
    assert user.id == user_id
    assert not user.is_admin
    assert user.last_login is None
    assert db.get_user_by_username("ALICE").id == user_id

    assert db.authenticate_user("alice", "wrong") is None
    assert db.authenticate_user("nobody", "pw-secret") is None

    logged_in = db.authenticate_user("alice", "pw-secret")
    assert logged_in.id == user_id
    assert logged_in.last_login is not None


def test_password_is_not_stored_in_clear(db):
    db.create_user("alice", "pw-secret")
    row = db._query_one("SELECT password_hash FROM users WHERE username = 'alice'")

    assert row["password_hash"].startswith("scrypt$")
    assert "pw-secret" not in row["password_hash"]


def test_duplicate_user(db):
    db.create_user("alice", "pw-secret")

    with pytest.raises(DuplicateUserError):
        db.create_user("Alice", "other")
    assert issubclass(DuplicateUserError, PersistenceError)


def test_admin_roles(db):
    alice = db.create_user("alice", "pw-secret", is_admin=True)
    bob = db.create_user("bob", "pw-secret")

    assert db.count_admins() == 1
    db.set_admin(bob, True)
    db.set_admin(alice, False)
    assert [u.username for u in db.list_users() if u.is_admin] == ["bob"]


def test_profile_updates_only_given_fields(db):
    user_id = db.create_user("alice", "pw-secret")

    db.update_profile(user_id, bio="Builder", contact="alice@example.com")
    db.update_status(user_id, "shipping")
    db.update_profile(user_id)

    user = db.get_user_by_id(user_id)
    assert (user.bio, user.contact, user.status) == ("Builder", "alice@example.com", "shipping")


def test_posts_by_type(db):
    user_id = db.create_user("alice", "pw-secret")
    first = db.create_post(user_id, "first", "body one")
    second = db.create_post(user_id, "second", "body two")
    db.create_post(user_id, "ANNOUNCEMENT", "hear ye", "announce")

    posts = db.list_posts("post")
    assert [p.id for p in posts] == [second, first]
    assert posts[0].username == "alice"
    assert [p.content for p in db.list_posts("announce")] == ["hear ye"]
    assert len(db.list_posts("post", limit=1)) == 1
    assert db.get_post(first).title == "first"
    assert db.get_post(999) is None

    with pytest.raises(ValueError):
        db.create_post(user_id, "t", "c", "novel")


def test_weekly_posts_are_unique_per_week(db):
    alice = db.create_user("alice", "pw-secret")
    bob = db.create_user("bob", "pw-secret")

    first = db.upsert_weekly_post(alice, 10, "shipped", "polish")
    again = db.upsert_weekly_post(alice, 10, "shipped more", "launch", "a win")
    db.upsert_weekly_post(alice, 11, "launched", "rest")
    db.upsert_weekly_post(bob, 10, "planned", "build")

    assert first == again
    post = db.get_weekly_post(alice, 10)
    assert (post.last_week, post.next_week, post.wins) == ("shipped more", "launch", "a win")
    assert post.username == "alice"
    assert db.get_weekly_post(alice, 12) is None

    latest = {p.username: p.week_number for p in db.latest_weekly_posts()}
    assert latest == {"alice": 11, "bob": 10}


def test_guestbook(db):
    db.add_guestbook_entry("Visitor", "nice board")
    db.add_guestbook_entry("Another", "hello")

    entries = db.list_guestbook_entries()
    assert [e.name for e in entries] == ["Another", "Visitor"]
    assert len(db.list_guestbook_entries(limit=1)) == 1
    assert db.guestbook_has_name("Visitor")
    assert not db.guestbook_has_name("Stranger")


def test_custom_command_storage(db):
    alice = db.create_user("alice", "pw-secret")

    db.insert_custom_command(alice, "zeta", "last", '"z"')
    db.insert_custom_command(alice, "custom_alpha", "first", '"a"')

    assert [r.name for r in db.list_custom_commands()] == ["custom_alpha", "custom_zeta"]
    assert [r.name for r in db.get_all_custom_commands()] == ["custom_zeta", "custom_alpha"]
    found = db.find_custom_command_by_name("alpha")
    assert found.creator == "alice"
    assert found.base_name == "alpha"
    assert db.find_custom_command_by_name("custom_alpha").id == found.id
    assert db.find_custom_command_by_name("missing") is None

    with pytest.raises(DuplicateNameError):
        db.insert_custom_command(alice, "zeta", "again", '"z2"')


def test_stats(db):
    alice = db.create_user("alice", "pw-secret")
    db.create_post(alice, "t", "c")
    db.add_guestbook_entry("V", "hi")

    stats = db.stats()
    assert stats["users"] == 1
    assert stats["posts"] == 1
    assert stats["guestbook"] == 1
    assert stats["commands"] == 0


@pytest.mark.parametrize(
    "day, week",
    [
        (dt.date(2023, 1, 1), 1),
        (dt.date(2023, 1, 7), 1),
        (dt.date(2023, 1, 8), 2),
        (dt.date(2022, 1, 1), 1),
        (dt.date(2022, 1, 2), 2),
    ],
)
def test_current_week_number(day, week):
    assert current_week_number(day) == week


def test_ensure_admin(db):
    assert ensure_admin(db, "root", "pw-secret")
    assert not ensure_admin(db, "root", "pw-secret")
    assert db.get_user_by_username("root").is_admin


def test_ensure_admin_promotes_existing_user(db):
    db.create_user("root", "already-here")

    assert ensure_admin(db, "root", "ignored")
    assert db.get_user_by_username("root").is_admin
    assert db.authenticate_user("root", "already-here") is not None


def test_seed_is_idempotent(db):
    assert seed_demo_data(db)
    assert not seed_demo_data(db)

    stats = db.stats()
    assert stats["users"] == 1
    assert stats["commands"] == 1
    assert stats["guestbook"] == 1
    assert db.find_custom_command_by_name("hello") is not None
