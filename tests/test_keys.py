from collections import Counter

import pytest

from dsquery.keys import (
    DatastoreQuery,
    Key,
    extract_keys,
    merge_and,
    merge_not,
)


def key_list(*names):
    return [Key("asdf", name=name) for name in names]


def key_map(*names):
    return {key.encode(): key for key in key_list(*names)}


def test_encode_equal_keys_encode_equal():
    first = Key("asdf", name="1").encode()
    second = Key("asdf", name="1").encode()
    other = Key("asdf", name="2").encode()
    assert first == second
    assert first != other
    assert len(first) > 0


def test_encode_distinguishes_name_kind_and_id():
    encodings = {
        Key("asdf", name="1").encode(),
        Key("asdf", name="2").encode(),
        Key("other", name="1").encode(),
        Key("asdf", id=1).encode(),
    }
    assert len(encodings) == 4


def test_encode_includes_parent_and_namespace():
    parent = Key("Parent", name="p")
    child = Key("asdf", name="1", parent=parent)
    assert child.encode() != Key("asdf", name="1").encode()
    assert Key("asdf", name="1", namespace="ns").encode() != Key("asdf", name="1").encode()


def test_encode_is_url_safe():
    encoded = Key("asdf", name="?/+&=").encode()
    assert set(encoded) <= set(
        "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
    )


def test_key_rejects_name_and_id():
    with pytest.raises(ValueError):
        Key("asdf", name="1", id=1)


def test_filter_field_returns_new_query():
    base = DatastoreQuery("Fruit")
    filtered = base.filter_field("Color", "=", "Orange")
    assert base.filters == ()
    assert filtered.filters == (("Color", "=", "Orange"),)
    assert filtered.kind == "Fruit"


def test_filter_field_strips_operator():
    filtered = DatastoreQuery("Fruit").filter_field("Color", " = ", "Red")
    assert filtered.filters == (("Color", "=", "Red"),)


def test_filter_field_rejects_bad_operator():
    with pytest.raises(ValueError):
        DatastoreQuery("Fruit").filter_field("Color", "~", "Red")


def test_keys_only_copies():
    base = DatastoreQuery("Fruit").filter_field("Color", "=", "Red")
    ko = base.keys_only()
    assert ko.is_keys_only is True
    assert base.is_keys_only is False
    assert ko.filters == base.filters


def test_extract_keys_simple():
    result = extract_keys(key_map("1", "2", "3"))
    assert Counter(result) == Counter(key_list("1", "2", "3"))


def test_extract_keys_empty_removal():
    mapping = key_map("1", "2", "3")
    mapping["a"] = None
    result = list(extract_keys(mapping))
    assert len(result) == 3
    assert Counter(result) == Counter(key_list("1", "2", "3"))


def test_merge_and_map_bigger_than_list():
    got = merge_and(key_map("1", "2", "3"), key_list("2"))
    assert set(got) == set(key_map("2"))
    assert Counter(extract_keys(got)) == Counter(key_list("2"))


def test_merge_and_ignores_none():
    got = merge_and(key_map("1"), [None, Key("asdf", name="1"), None])
    assert set(got) == set(key_map("1"))
    assert Counter(extract_keys(got)) == Counter(key_list("1"))


def test_merge_and_no_intersection():
    assert merge_and(key_map("1"), key_list("2")) == {}


def test_merge_not_removes_and_leaves_input_untouched():
    original = key_map("1", "2", "3")
    got = merge_not(original, [None, *key_list("2", "9")])
    assert set(got) == set(key_map("1", "3"))
    assert Counter(extract_keys(got)) == Counter(key_list("1", "3"))
    assert set(original) == set(key_map("1", "2", "3"))