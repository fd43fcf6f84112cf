"""
Tests for song key hashing.

Expected tokens were worked out from the browser helper's arithmetic
(int32 `h * 31 + c`, abs, base 36).
"""
import pytest

from radiocalico.errors import InvalidArgument
from radiocalico.services.hashing import hash_string, song_hash


@pytest.mark.parametrize("value, expected", [
    ("", "0"),
    ("a", "2p"),
    ("ab", "2e9"),
    ("a_t_", "1rz0p"),
    ("aaaaaaa", "kge7zz"),  # wraps past int32 into a negative value
    ("\U0001F600", "11zz7"),  # surrogate pair hashed as two UTF-16 units
])
def test_hash_string_vectors(value, expected):
    assert hash_string(value) == expected


def test_hash_string_is_deterministic_and_order_sensitive():
    assert hash_string("artist_title_") == hash_string("artist_title_")
    assert hash_string("ab") != hash_string("ba")


def test_hash_string_output_is_short_base36():
    token = hash_string("x" * 5000)
    assert token.isalnum()
    assert token == token.lower()
    assert len(token) <= 6


@pytest.mark.parametrize("value", [None, 42, b"bytes", ["a"]])
def test_hash_string_rejects_non_strings(value):
    with pytest.raises(InvalidArgument):
        hash_string(value)


def test_song_hash_lowercases_and_joins_fields():
    assert song_hash("A", "T") == "1rz0p"
    assert song_hash("Rick Astley", "Never Gonna Give You Up", "Whenever You Need Somebody") == hash_string(
        "rick astley_never gonna give you up_whenever you need somebody"
    )


def test_song_hash_missing_album_is_empty_string():
    assert song_hash("A", "T", None) == song_hash("A", "T", "") == song_hash("a", "t")


def test_song_hash_album_changes_key():
    assert song_hash("A", "T", "Album") != song_hash("A", "T")


@pytest.mark.parametrize("artist, title", [("", "T"), ("A", ""), (None, "T"), ("A", 3)])
def test_song_hash_requires_artist_and_title(artist, title):
    with pytest.raises(InvalidArgument):
        song_hash(artist, title)


def test_song_hash_rejects_non_string_album():
    with pytest.raises(InvalidArgument):
        song_hash("A", "T", 1999)
