import pytest

from chainbind.abi import Codec, decode, encode, parse_type
from chainbind.abi.schema import FunctionDescriptor, Param
from chainbind.errors import ArityError, DecodingError, EncodingError


def _types(*names):
    return [parse_type(n) for n in names]


def _word(n: int) -> bytes:
    return n.to_bytes(32, "big")


def test_uint_and_string_head_tail_layout():
    """
    encode(uint256=1, string="hi"):
      head = [1, offset=64]
      tail = [len=2, "hi" + 30 zero bytes]
    """
    data = encode(_types("uint256", "string"), [1, "hi"])
    assert len(data) == 128
    assert data[0:32] == _word(1)
    assert data[32:64] == _word(64)
    assert data[64:96] == _word(2)
    assert data[96:128] == b"hi" + b"\x00" * 30


def test_static_only_encoding_has_no_offsets():
    data = encode(_types("uint8", "bool", "address", "bytes4"), [7, True, "0x" + "11" * 20, b"\xde\xad\xbe\xef"])
    assert len(data) == 4 * 32
    assert data[0:32] == _word(7)
    assert data[32:64] == _word(1)
    assert data[64:96] == b"\x00" * 12 + b"\x11" * 20
    assert data[96:128] == b"\xde\xad\xbe\xef" + b"\x00" * 28


def test_each_dynamic_param_gets_one_offset_word():
    data = encode(_types("string", "uint256", "bytes"), ["a", 5, b"\x01\x02"])
    # head: off(string), 5, off(bytes)
    assert data[0:32] == _word(96)
    assert data[32:64] == _word(5)
    # string tail occupies 2 words, bytes tail follows it
    assert data[64:96] == _word(160)
    assert data[96:128] == _word(1)
    assert data[160:192] == _word(2)
    assert data[192:194] == b"\x01\x02"


def test_signed_integers_are_sign_extended():
    data = encode(_types("int8", "int256"), [-1, -2])
    assert data[0:32] == b"\xff" * 32
    assert data[32:64] == b"\xff" * 31 + b"\xfe"
    assert decode(_types("int8", "int256"), data) == [-1, -2]


def test_dynamic_array_of_strings():
    t = _types("string[]")
    data = encode(t, [["ab", "c"]])
    # outer offset, count, two inner offsets relative to after the count word
    assert data[0:32] == _word(32)
    assert data[32:64] == _word(2)
    assert data[64:96] == _word(64)
    assert data[96:128] == _word(128)
    assert decode(t, data) == [["ab", "c"]]


def test_nested_dynamic_tuple_round_trip():
    t = _types("(uint256,string,bytes32)[]", "bool", "uint16[3]")
    values = [
        [(1, "one", b"\x01" * 32), (2, "", b"\x02" * 32)],
        False,
        [1, 2, 65535],
    ]
    assert decode(t, encode(t, values)) == values


def test_address_decodes_lowercase():
    t = _types("address")
    data = encode(t, ["0x" + "AbCdEf0123" * 4])
    assert decode(t, data) == ["0x" + "abcdef0123" * 4]


def test_fixed_bytes_accept_hex_and_pad_right():
    t = _types("bytes8")
    data = encode(t, ["0x0102"])
    assert data == b"\x01\x02" + b"\x00" * 30
    assert decode(t, data) == [b"\x01\x02" + b"\x00" * 6]


def test_empty_inputs_encode_to_nothing():
    assert encode([], []) == b""
    assert decode([], b"") == []


@pytest.mark.parametrize(
    "typ, value",
    [
        ("uint8", 256),
        ("uint256", -1),
        ("int8", 128),
        ("int8", -129),
        ("uint256", True),
        ("uint256", "1"),
        ("bool", 2),
        ("address", "0x1234"),
        ("address", 12),
        ("bytes2", b"\x00\x01\x02"),
        ("bytes", "not hex"),
        ("string", b"bytes"),
        ("string", "\ud800"),
        ("uint256[2]", [1]),
        ("uint256[]", 5),
        ("(uint256,bool)", (1,)),
    ],
)
def test_incompatible_values_raise_encoding_error(typ, value):
    with pytest.raises(EncodingError):
        encode(_types(typ), [value])


def test_argument_count_mismatch_is_arity_error():
    with pytest.raises(ArityError) as ei:
        encode(_types("uint256", "uint256"), [1])
    assert ei.value.expected == 2
    assert ei.value.got == 1
    assert isinstance(ei.value, EncodingError)


def test_truncated_head_raises_decoding_error():
    with pytest.raises(DecodingError):
        decode(_types("uint256", "uint256"), _word(1))


def test_offset_outside_data_raises_decoding_error():
    with pytest.raises(DecodingError):
        decode(_types("string"), _word(4096))


def test_length_past_end_raises_decoding_error():
    data = _word(32) + _word(100) + b"short"
    with pytest.raises(DecodingError):
        decode(_types("bytes"), data)


def test_huge_array_count_raises_decoding_error():
    data = _word(32) + _word(2**64)
    with pytest.raises(DecodingError):
        decode(_types("uint256[]"), data)


def test_decode_accepts_hex_strings():
    assert decode(_types("uint256"), "0x" + _word(42).hex()) == [42]
    with pytest.raises(DecodingError):
        decode(_types("uint256"), "0xzz")


def test_mismatched_type_decodes_garbage_without_error():
    data = encode(_types("int256"), [-1])
    assert decode(_types("uint256"), data) == [2**256 - 1]


def test_codec_call_and_deploy_payloads():
    codec = Codec()
    fn = FunctionDescriptor(
        name="transfer",
        inputs=(Param("to", parse_type("address")), Param("amount", parse_type("uint256"))),
    )
    call = codec.encode_call(fn, ["0x" + "22" * 20, 10])
    assert call[:4] == bytes.fromhex("a9059cbb")
    assert len(call) == 4 + 64

    payload = codec.encode_deploy("0x6001", None, [])
    assert payload == b"\x60\x01"
    assert codec.decode_quantity("0x5208") == 21000
