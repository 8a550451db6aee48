import pytest

from dccp_options import Option, decode_one_option, decode_options, option_label
from dccp_utils import BinaryReader, CaptureTruncated, InvalidOption, Truncated


def decode(raw, budget=None):
    cursor = BinaryReader(bytes(raw))
    if budget is None:
        budget = len(raw)
    return decode_one_option(cursor, budget)


def decode_str(raw):
    option, _ = decode(raw)
    return str(option)


@pytest.mark.parametrize("otype,name", [(0, "nop"), (1, "mandatory"), (2, "slowreceiver")])
def test_single_byte_options(otype, name):
    option, consumed = decode([otype])
    assert option == Option(otype, 1, b"")
    assert consumed == 1
    assert str(option) == name


def test_timestamp():
    option, consumed = decode([41, 6, 0, 0, 3, 232])
    assert option.option_type == 41
    assert option.option_length == 6
    assert option.payload == b"\x00\x00\x03\xe8"
    assert consumed == 6
    assert str(option) == "timestamp 1000"


@pytest.mark.parametrize("optlen", [5, 7])
def test_timestamp_length_is_exact(optlen):
    raw = [41, optlen] + [0] * (optlen - 2)
    with pytest.raises(InvalidOption) as exc:
        decode(raw)
    assert exc.value.detail == f"optlen {optlen} != 6"


def test_option_longer_than_budget():
    with pytest.raises(Truncated) as exc:
        decode([41, 6, 0, 0, 0, 1], budget=4)
    assert type(exc.value) is Truncated
    assert exc.value.detail == "remaining length 4 < 6"


def test_empty_budget():
    with pytest.raises(Truncated):
        decode([0], budget=0)


def test_length_byte_below_two():
    with pytest.raises(InvalidOption) as exc:
        decode([36, 1, 0])
    assert exc.value.detail == "optlen 1 < 2"


def test_option_not_captured():
    with pytest.raises(CaptureTruncated):
        decode([41, 6, 0], budget=6)


@pytest.mark.parametrize("raw", [[3], [31], [45, 2], [127, 4, 0, 0]])
def test_reserved_types(raw):
    with pytest.raises(InvalidOption):
        decode(raw)


@pytest.mark.parametrize("raw,expected", [
    ([32, 5, 1, 2, 3], "change_l ccid 2 3"),
    ([34, 4, 5, 8], "change_r ack_ratio 8"),
    ([33, 3, 9], "confirm_l check_data_checksum"),
    ([35, 4, 77, 1], "confirm_r feature-number-77 (invalid) 1"),
])
def test_feature_negotiation(raw, expected):
    assert decode_str(raw) == expected


def test_change_needs_a_value():
    with pytest.raises(InvalidOption) as exc:
        decode([32, 3, 1])
    assert exc.value.detail == "optlen 3 < 4"


def test_confirm_needs_a_feature():
    with pytest.raises(InvalidOption):
        decode([33, 2])


@pytest.mark.parametrize("raw,expected", [
    ([36, 4, 0xAB, 0xCD], "initcookie 0xabcd"),
    ([38, 3, 0x05], "ack_vector0 0x05"),
    ([39, 5, 0xC0, 0x01, 0x02], "ack_vector1 0xc00102"),
    ([40, 3, 0x80], "data_dropped 0x80"),
    ([44, 6, 0xDE, 0xAD, 0xBE, 0xEF], "data_checksum 0xdeadbeef"),
])
def test_opaque_payloads(raw, expected):
    assert decode_str(raw) == expected


@pytest.mark.parametrize("otype", [36, 38, 39, 40])
def test_opaque_payload_needs_a_byte(otype):
    with pytest.raises(InvalidOption):
        decode([otype, 2])


@pytest.mark.parametrize("optlen", [5, 7])
def test_data_checksum_length_is_exact(optlen):
    with pytest.raises(InvalidOption):
        decode([44, optlen] + [0] * (optlen - 2))


def test_ndp_count():
    assert decode_str([37, 4, 1, 2]) == "ndp_count 1 2"
    assert decode_str([37, 8, 1, 2, 3, 4, 5, 6]) == "ndp_count 1 2 3 4 5 6"


@pytest.mark.parametrize("raw,detail", [
    ([37, 2], "optlen 2 < 3"),
    ([37, 9] + [0] * 7, "optlen 9 > 8"),
])
def test_ndp_count_bounds(raw, detail):
    with pytest.raises(InvalidOption) as exc:
        decode(raw)
    assert exc.value.detail == detail


@pytest.mark.parametrize("raw,expected", [
    ([42, 6, 0, 0, 0, 5], "timestamp_echo 5"),
    ([42, 8, 0, 0, 0, 5, 0, 9], "timestamp_echo 5 (elapsed time 9)"),
    ([42, 10, 0, 0, 0, 5, 0, 1, 0, 0], "timestamp_echo 5 (elapsed time 65536)"),
])
def test_timestamp_echo(raw, expected):
    assert decode_str(raw) == expected


@pytest.mark.parametrize("optlen", [2, 7, 9, 11])
def test_timestamp_echo_bad_length(optlen):
    with pytest.raises(InvalidOption) as exc:
        decode([42, optlen] + [0] * (optlen - 2))
    assert exc.value.detail == "optlen != 6 or 8 or 10"


def test_elapsed_time():
    assert decode_str([43, 4, 0, 16]) == "elapsed_time 16"
    assert decode_str([43, 6, 0, 1, 0, 0]) == "elapsed_time 65536"


@pytest.mark.parametrize("optlen", [3, 5, 8])
def test_elapsed_time_bad_length(optlen):
    with pytest.raises(InvalidOption) as exc:
        decode([43, optlen] + [0] * (optlen - 2))
    assert exc.value.detail == "optlen != 4 or 6"


@pytest.mark.parametrize("raw,expected", [
    ([128, 4, 1, 2], "CCID option 128 258"),
    ([192, 6, 0, 1, 0, 0], "CCID option 192 65536"),
    ([200, 5, 1, 2, 3], "CCID option 200 0x010203"),
    ([255, 2], "CCID option 255 0x"),
])
def test_ccid_options(raw, expected):
    option, consumed = decode(raw)
    assert option.is_ccid_specific
    assert consumed == len(raw)
    assert str(option) == expected


def test_option_label():
    assert option_label(41) == "timestamp"
    assert option_label(50) == "option-type-50"
    assert option_label(130) == "CCID option 130"


def test_cursor_left_after_option():
    cursor = BinaryReader(bytes([41, 6, 0, 0, 0, 1, 0, 2]))
    decode_one_option(cursor, 8)
    assert cursor.offset == 6


def test_decode_options_consumes_exactly_the_budget():
    raw = bytes([41, 6, 0, 0, 0, 1, 0, 2, 43, 4, 0, 7, 0, 0])
    options = decode_options(BinaryReader(raw), len(raw))
    assert [o.name for o in options] == [
        "timestamp", "nop", "slowreceiver", "elapsed_time", "nop", "nop",
    ]
    assert sum(o.option_length for o in options) == len(raw)


def test_decode_options_keeps_duplicates_in_wire_order():
    raw = bytes([41, 6, 0, 0, 0, 2, 41, 6, 0, 0, 0, 1])
    options = decode_options(BinaryReader(raw), len(raw))
    assert [str(o) for o in options] == ["timestamp 2", "timestamp 1"]


def test_lone_timestamp_fills_budget():
    raw = bytes([41, 6, 0, 0, 0, 9])
    reader = BinaryReader(raw + b"\xff\xff")
    cursor = reader.window(6)
    option, consumed = decode_one_option(cursor, cursor.remaining())
    assert consumed == 6
    assert cursor.remaining() == 0
    assert str(option) == "timestamp 9"


def test_decode_options_stops_at_overrun():
    raw = bytes([0, 41, 6, 0, 0])
    with pytest.raises(Truncated):
        decode_options(BinaryReader(raw + bytes(8)), len(raw))
