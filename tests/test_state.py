import pytest

from praasrt.state import deserialize_state_keys, serialize_state_keys


def test_empty_list_encoding():
    assert serialize_state_keys([]) == b"\x00" * 8
    assert deserialize_state_keys(b"\x00" * 8) == []


def test_single_key_encoding():
    expected = (
        b"\x01\x00\x00\x00\x00\x00\x00\x00"
        b"\x01\x00\x00\x00\x00\x00\x00\x00"
        b"a"
        b"\x00\x00\x00\x00\x00\x00\xf0\x3f"
    )
    assert serialize_state_keys([("a", 1.0)]) == expected


def test_round_trip_preserves_order_and_values():
    keys = [("msg_key", 1700000000.5), ("other", 0.0), ("ключ", -2.25)]
    assert deserialize_state_keys(serialize_state_keys(keys)) == keys


def test_round_trip_accepts_generator():
    keys = [("k1", 1.5), ("k2", 2.5)]
    encoded = serialize_state_keys(pair for pair in keys)
    assert deserialize_state_keys(encoded) == keys


def test_integer_timestamps_become_floats():
    decoded = deserialize_state_keys(serialize_state_keys([("x", 3)]))
    assert decoded == [("x", 3.0)]
    assert isinstance(decoded[0][1], float)


@pytest.mark.parametrize("cut", [1, 4, 9])
def test_truncated_data_rejected(cut):
    encoded = serialize_state_keys([("msg_key", 1.0)])
    with pytest.raises(ValueError):
        deserialize_state_keys(encoded[: len(encoded) - cut])


def test_too_short_header_rejected():
    with pytest.raises(ValueError):
        deserialize_state_keys(b"\x01\x00")