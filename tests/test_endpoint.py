from __future__ import annotations

import pytest

from surge.loadgen.endpoint import (
    DEFAULT_BODY,
    Endpoint,
    IdPicker,
    InvalidFormatError,
    InvalidMethodError,
    parse_endpoint,
    parse_endpoints,
)


def test_parse_get_has_no_body() -> None:
    ep = parse_endpoint("GET:/users/1")
    assert ep == Endpoint(method="GET", path="/users/1", body="")
    assert not ep.has_dynamic_id


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
def test_mutating_methods_carry_default_body(method: str) -> None:
    ep = parse_endpoint(f"{method}:/items")
    assert ep.body == DEFAULT_BODY


def test_delete_has_no_body() -> None:
    assert parse_endpoint("DELETE:/items/1").body == ""


def test_method_is_upper_cased_and_parts_trimmed() -> None:
    ep = parse_endpoint("  post :  /items  ")
    assert ep.method == "POST"
    assert ep.path == "/items"


def test_only_first_colon_splits() -> None:
    ep = parse_endpoint("GET:/search?q=a:b")
    assert ep.path == "/search?q=a:b"


@pytest.mark.parametrize("raw", ["BAD", "", "GET:", ":/x", "  :  "])
def test_invalid_format(raw: str) -> None:
    with pytest.raises(InvalidFormatError):
        parse_endpoint(raw)


@pytest.mark.parametrize("raw", ["FOO:/x", "HEAD:/", "OPTIONS:/items"])
def test_invalid_method(raw: str) -> None:
    with pytest.raises(InvalidMethodError):
        parse_endpoint(raw)


def test_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        parse_endpoint("BAD")


def test_parse_endpoints_fails_on_first_bad_entry() -> None:
    with pytest.raises(InvalidMethodError):
        parse_endpoints(["GET:/", "FOO:/x", "BAD"])
    assert [str(e) for e in parse_endpoints(["GET:/", "POST:/items"])] == ["GET:/", "POST:/items"]


def test_dynamic_id_detection() -> None:
    assert parse_endpoint("GET:/items/{id}").has_dynamic_id
    assert parse_endpoint("PUT:/items/{random_id}").has_dynamic_id
    assert parse_endpoint("DELETE:/items/{delete_id}").has_dynamic_id


def test_id_picker_ranges_for_large_dataset() -> None:
    picker = IdPicker(dataset_size=5000, seed=3)
    for _ in range(200):
        assert 1 <= picker.random_id() <= 4000
        assert 4001 <= picker.delete_id() <= 5000


def test_id_picker_small_and_empty_datasets() -> None:
    small = IdPicker(dataset_size=10, seed=1)
    assert all(1 <= small.random_id() <= 10 for _ in range(50))
    assert small.delete_id() == 10
    empty = IdPicker(dataset_size=0)
    assert empty.random_id() == 1
    assert empty.delete_id() == 1


def test_resolve_shares_one_id_between_id_placeholders() -> None:
    picker = IdPicker(dataset_size=5000, seed=9)
    path = picker.resolve("/a/{id}/b/{random_id}")
    _, _, first, _, second = path.split("/")
    assert first == second
    assert first.isdigit()


def test_resolve_delete_placeholder() -> None:
    picker = IdPicker(dataset_size=2000, seed=9)
    value = int(picker.resolve("/items/{delete_id}").rsplit("/", 1)[1])
    assert 1001 <= value <= 2000
    assert picker.resolve("/plain") == "/plain"
