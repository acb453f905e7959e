from __future__ import annotations

import pytest

from solo.security import hash_password, needs_rehash, validate_username, verify_password


def test_hash_and_verify():
    encoded = hash_password("correct horse")

    assert encoded.startswith("scrypt$16384$8$1$")
    assert verify_password("correct horse", encoded)
    assert not verify_password("wrong horse", encoded)


def test_hashes_are_salted():
    assert hash_password("same") != hash_password("same")


def test_empty_password_is_rejected():
    with pytest.raises(ValueError):
        hash_password("")


@pytest.mark.parametrize(
    "encoded",
    ["", "plain-text", "bcrypt$1$2$3$00$00", "scrypt$x$8$1$00$00", "scrypt$16384$8$1$zz$00"],
)
def test_malformed_hashes_never_verify(encoded):
    assert not verify_password("anything", encoded)


def test_needs_rehash_for_weaker_parameters():
    weak = hash_password("pw", n=2 ** 10)

    assert verify_password("pw", weak)
    assert needs_rehash(weak)
    assert not needs_rehash(hash_password("pw"))
    assert needs_rehash("garbage")


@pytest.mark.parametrize("name", ["al", "alice", "bob.smith", "x_y-z", "A" * 32])
def test_valid_usernames(name):
    assert validate_username(name) == name


@pytest.mark.parametrize("name", ["", "a", "has space", "semi;colon", "A" * 33, "ünï"])
def test_invalid_usernames(name):
    with pytest.raises(ValueError):
        validate_username(name)
