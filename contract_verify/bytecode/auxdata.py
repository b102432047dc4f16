"""
Bytecode auxdata codec.

Compilers append a CBOR map to the deployed bytecode, followed by the map's
length as a 2-byte big-endian integer:

    <execution bytes><CBOR map><len(CBOR map) as uint16 BE>

split_auxdata() separates the three parts and treats an undecodable trailer as
"no auxdata" (soft outcome). decode() requires auxdata and turns the CBOR map
into a DecodedMetadataReference (raises AuxdataNotFound otherwise).
"""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

import base58
import cbor2

from ..core.errors import (
    AuxdataNotFound,
    EmptyBytecode,
    InvalidBytecode,
    MissingHexPrefix,
    UnrecognizedReferenceScheme,
)

LENGTH_PREFIX_BYTES = 2

# Precedence when a trailer carries more than one content hash.
REFERENCE_SCHEMES = ("ipfs", "bzzr1", "bzzr0")


@dataclass(frozen=True)
class AuxdataSegment:
    """
    Result of split_auxdata().

    When auxdata is present: execution + auxdata + length_prefix == original.
    When absent: execution == original, the other two are None.
    """

    execution: bytes
    auxdata: Optional[bytes] = None
    length_prefix: Optional[bytes] = None

    @property
    def has_auxdata(self) -> bool:
        return self.auxdata is not None

    def to_hex(self) -> Tuple[str, Optional[str], Optional[str]]:
        """(execution, auxdata, length) as hex; execution 0x-prefixed, the others bare."""
        return (
            "0x" + self.execution.hex(),
            self.auxdata.hex() if self.auxdata is not None else None,
            self.length_prefix.hex() if self.length_prefix is not None else None,
        )


@dataclass(frozen=True)
class CborAuxdata:
    """Raw auxdata kept for audit: hex bytes of the CBOR map and its length."""

    bytes: str
    length: int


@dataclass(frozen=True)
class DecodedMetadataReference:
    """Decoded auxdata: which content-hash scheme the build used plus compiler hints."""

    scheme: Optional[str]
    digest: Optional[str]
    solc_version: Optional[str] = None
    experimental: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    cbor: Optional[CborAuxdata] = None

    @property
    def ipfs(self) -> Optional[str]:
        return self.digest if self.scheme == "ipfs" else None

    @property
    def bzzr0(self) -> Optional[str]:
        return self.digest if self.scheme == "bzzr0" else None

    @property
    def bzzr1(self) -> Optional[str]:
        return self.digest if self.scheme == "bzzr1" else None

    @property
    def metadata_hash(self) -> str:
        """The content hash of the metadata document; raises if the trailer carries none."""
        if self.scheme is None or self.digest is None:
            raise UnrecognizedReferenceScheme(
                f"Auxdata has no metadata hash (keys: {sorted(self.extra)})"
            )
        return self.digest

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        if self.scheme is not None:
            out[self.scheme] = self.digest
        if self.solc_version is not None:
            out["solcVersion"] = self.solc_version
        if self.experimental is not None:
            out["experimental"] = self.experimental
        return out


def _to_bytes(bytecode: Union[str, bytes, bytearray], *, strict_prefix: bool = False) -> bytes:
    if isinstance(bytecode, (bytes, bytearray)):
        if len(bytecode) == 0:
            raise EmptyBytecode("Bytecode cannot be empty")
        return bytes(bytecode)
    text = bytecode.strip()
    if len(text) == 0:
        raise EmptyBytecode("Bytecode cannot be empty")
    if text[:2].lower() == "0x":
        text = text[2:]
    elif strict_prefix:
        raise MissingHexPrefix("Bytecode must start with 0x")
    if len(text) == 0:
        raise EmptyBytecode("Bytecode cannot be empty")
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise InvalidBytecode(f"Bytecode is not valid hex: {exc}") from exc


def split_auxdata(bytecode: Union[str, bytes, bytearray]) -> AuxdataSegment:
    """
    Split bytecode into execution bytes, CBOR auxdata, and the 2-byte length.

    Accepts raw bytes or a hex string (0x prefix optional). If the trailing
    length points outside the buffer or the candidate segment is not valid
    CBOR, the whole input comes back as execution bytes.
    """
    raw = _to_bytes(bytecode)
    if len(raw) <= LENGTH_PREFIX_BYTES:
        return AuxdataSegment(execution=raw)

    length_prefix = raw[-LENGTH_PREFIX_BYTES:]
    cbor_length = int.from_bytes(length_prefix, "big")
    start = len(raw) - LENGTH_PREFIX_BYTES - cbor_length
    # length points before the start of the buffer
    if start < 0:
        return AuxdataSegment(execution=raw)

    candidate = raw[start : len(raw) - LENGTH_PREFIX_BYTES]
    decoder = cbor2.CBORDecoder(io.BytesIO(candidate))
    try:
        decoder.decode()
    except (cbor2.CBORDecodeError, ValueError, TypeError, EOFError):
        return AuxdataSegment(execution=raw)
    # the segment must hold exactly one CBOR item
    try:
        decoder.decode()
    except cbor2.CBORDecodeEOF:
        return AuxdataSegment(execution=raw[:start], auxdata=candidate, length_prefix=length_prefix)
    except (cbor2.CBORDecodeError, ValueError, TypeError):
        return AuxdataSegment(execution=raw)
    return AuxdataSegment(execution=raw)


def _decode_value(key: str, value: Any) -> Any:
    if key == "ipfs":
        return base58.b58encode(bytes(value)).decode("ascii")
    if key == "solc":
        # nightly builds embed the full version string
        if isinstance(value, str):
            return value
        return ".".join(str(b) for b in bytes(value))
    if key == "experimental":
        return bool(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


def decode(bytecode: Union[str, bytes, bytearray], *, strict_prefix: bool = False) -> DecodedMetadataReference:
    """
    Decode the auxdata of a bytecode into a DecodedMetadataReference.

    A missing 0x prefix is tolerated unless strict_prefix is set, in which case
    MissingHexPrefix is raised.
    """
    raw = _to_bytes(bytecode, strict_prefix=strict_prefix)
    segment = split_auxdata(raw)
    if segment.auxdata is None:
        raise AuxdataNotFound("Auxdata is not in the execution bytecode")

    decoded = cbor2.loads(segment.auxdata)
    if not isinstance(decoded, dict):
        raise AuxdataNotFound("Auxdata is not a CBOR map")

    scheme: Optional[str] = None
    digest: Optional[str] = None
    solc_version: Optional[str] = None
    experimental: Optional[bool] = None
    extra: Dict[str, Any] = {}
    for key, value in decoded.items():
        key = str(key)
        transformed = _decode_value(key, value)
        if key == "solc":
            solc_version = transformed
        elif key == "experimental":
            experimental = transformed
        else:
            extra[key] = transformed

    for name in REFERENCE_SCHEMES:
        if name in extra:
            scheme = name
            digest = extra.pop(name)
            break

    return DecodedMetadataReference(
        scheme=scheme,
        digest=digest,
        solc_version=solc_version,
        experimental=experimental,
        extra=extra,
        cbor=CborAuxdata(bytes="0x" + segment.auxdata.hex(), length=len(segment.auxdata)),
    )
