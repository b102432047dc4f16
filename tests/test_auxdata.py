"""
Tests for contract_verify.bytecode.auxdata: split_auxdata (soft) and decode (strict).
"""
from __future__ import annotations

import cbor2
import pytest

from contract_verify.bytecode import AuxdataSegment, decode, split_auxdata
from contract_verify.core.errors import (
    AuxdataError,
    AuxdataNotFound,
    EmptyBytecode,
    InvalidBytecode,
    MissingHexPrefix,
    UnrecognizedReferenceScheme,
)

EXECUTION = "6080604052348015600f57600080fd5b50"

# {"ipfs": <34-byte multihash>, "solc": 0.6.11}
IPFS_AUXDATA = (
    "a2646970667358221220dceca8706b29e917dacf25fceef95acac8d90d765ac926663ce4096195952b61"
    "64736f6c634300060b"
)
IPFS_LENGTH = "0033"
IPFS_CID = "QmdD3hpMj6mEFVy9DP4QqjHaoeYbhKsYvApX1YZNfjTVWp"

# {"bzzr1": <32 bytes>, "solc": 0.5.16}
BZZR1_DIGEST = "71e0c183217ae3e9a1406ae7b58c2f36e09f2b16b10e19d46ceb821f3ee6abad"
BZZR1_AUXDATA = "a265627a7a72315820" + BZZR1_DIGEST + "64736f6c6343000510"
BZZR1_LENGTH = "0032"


def _with_trailer(cbor_map: dict) -> str:
    encoded = cbor2.dumps(cbor_map)
    return "0x" + EXECUTION + encoded.hex() + len(encoded).to_bytes(2, "big").hex()


class TestSplitAuxdata:
    def test_reproduces_the_three_segments(self):
        segment = split_auxdata("0x" + EXECUTION + IPFS_AUXDATA + IPFS_LENGTH)
        assert segment.has_auxdata
        assert segment.to_hex() == ("0x" + EXECUTION, IPFS_AUXDATA, IPFS_LENGTH)

    def test_concatenation_invariant_holds_for_raw_bytes(self):
        raw = bytes.fromhex(EXECUTION + BZZR1_AUXDATA + BZZR1_LENGTH)
        segment = split_auxdata(raw)
        assert segment.execution + segment.auxdata + segment.length_prefix == raw

    def test_length_beyond_buffer_is_soft(self):
        code = "0x" + EXECUTION + "ffff"
        segment = split_auxdata(code)
        assert segment == AuxdataSegment(execution=bytes.fromhex(EXECUTION + "ffff"))
        assert segment.auxdata is None and segment.length_prefix is None

    def test_undecodable_trailer_is_soft(self):
        # length 3 points at bytes that are not a complete CBOR item
        segment = split_auxdata("0x" + EXECUTION + "5bff5b" + "0003")
        assert not segment.has_auxdata
        assert segment.execution == bytes.fromhex(EXECUTION + "5bff5b0003")

    def test_trailing_bytes_after_cbor_item_are_soft(self):
        # CBOR int 0 followed by two stray bytes
        code = "0x" + EXECUTION + "00ffff" + "0003"
        segment = split_auxdata(code)
        assert not segment.has_auxdata
        assert segment.execution == bytes.fromhex(EXECUTION + "00ffff0003")

    def test_two_cbor_items_are_soft(self):
        assert not split_auxdata("0x" + EXECUTION + "0101" + "0002").has_auxdata

    def test_trailer_without_execution_bytes(self):
        encoded = cbor2.dumps({"ipfs": b"\x12\x20" + bytes(32)})
        length = len(encoded).to_bytes(2, "big")
        segment = split_auxdata(encoded + length)
        assert segment.execution == b""
        assert segment.auxdata == encoded
        assert segment.length_prefix == length
        assert segment.execution + segment.auxdata + segment.length_prefix == encoded + length

    def test_tiny_input_has_no_auxdata(self):
        assert not split_auxdata("0x6080").has_auxdata

    @pytest.mark.parametrize("code", ["0x", "0X", "  0x  ", "", b""])
    def test_empty_input_raises(self, code):
        with pytest.raises(EmptyBytecode):
            split_auxdata(code)


class TestDecode:
    def test_ipfs_reference(self):
        ref = decode("0x" + EXECUTION + IPFS_AUXDATA + IPFS_LENGTH)
        assert ref.scheme == "ipfs"
        assert ref.ipfs == IPFS_CID
        assert len(ref.ipfs) == 46
        assert ref.solc_version == "0.6.11"
        assert ref.metadata_hash == IPFS_CID
        assert ref.cbor.length == 0x33
        assert ref.cbor.bytes == "0x" + IPFS_AUXDATA

    def test_bzzr1_reference(self):
        ref = decode("0x" + EXECUTION + BZZR1_AUXDATA + BZZR1_LENGTH)
        assert ref.scheme == "bzzr1"
        assert ref.bzzr1 == "0x" + BZZR1_DIGEST
        assert len(ref.bzzr1) == 66
        assert ref.bzzr0 is None and ref.ipfs is None
        assert ref.solc_version == "0.5.16"

    def test_bzzr0_reference(self):
        digest = bytes(range(32))
        ref = decode(_with_trailer({"bzzr0": digest}))
        assert ref.bzzr0 == "0x" + digest.hex()

    def test_experimental_flag(self):
        ref = decode(_with_trailer({"ipfs": b"\x12\x20" + bytes(32), "experimental": True}))
        assert ref.experimental is True

    def test_nightly_solc_string_passes_through(self):
        ref = decode(_with_trailer({"solc": "0.8.18-nightly.2022.11.23+commit.eb2f874e"}))
        assert ref.solc_version == "0.8.18-nightly.2022.11.23+commit.eb2f874e"

    def test_unknown_keys_fall_back_to_hex(self):
        ref = decode(_with_trailer({"ipfs": b"\x12\x20" + bytes(32), "custom": b"\xab\xcd"}))
        assert ref.extra == {"custom": "0xabcd"}
        assert ref.to_dict()["custom"] == "0xabcd"

    def test_without_0x_prefix_still_decodes(self):
        ref = decode(EXECUTION + IPFS_AUXDATA + IPFS_LENGTH)
        assert ref.ipfs == IPFS_CID

    def test_strict_prefix_rejects_bare_hex(self):
        with pytest.raises(MissingHexPrefix):
            decode(EXECUTION + IPFS_AUXDATA + IPFS_LENGTH, strict_prefix=True)

    def test_no_trailer_raises_not_found(self):
        code = "0x" + EXECUTION + "ffff"
        assert not split_auxdata(code).has_auxdata
        with pytest.raises(AuxdataNotFound, match="Auxdata is not in the execution bytecode"):
            decode(code)

    def test_non_map_cbor_raises_not_found(self):
        encoded = cbor2.dumps([1, 2, 3])
        code = "0x" + EXECUTION + encoded.hex() + len(encoded).to_bytes(2, "big").hex()
        with pytest.raises(AuxdataNotFound):
            decode(code)

    @pytest.mark.parametrize("code", ["", "0x"])
    def test_empty_raises(self, code):
        with pytest.raises(EmptyBytecode):
            decode(code)

    def test_trailer_without_execution_bytes_decodes(self):
        ref = decode("0x" + IPFS_AUXDATA + IPFS_LENGTH)
        assert ref.ipfs == IPFS_CID
        assert ref.solc_version == "0.6.11"

    def test_invalid_hex_raises(self):
        with pytest.raises(InvalidBytecode):
            decode("0xzz")

    def test_metadata_hash_requires_a_scheme(self):
        ref = decode(_with_trailer({"solc": b"\x00\x08\x11"}))
        assert ref.scheme is None
        with pytest.raises(UnrecognizedReferenceScheme):
            ref.metadata_hash

    def test_codec_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            decode("")
        assert issubclass(AuxdataNotFound, AuxdataError)
