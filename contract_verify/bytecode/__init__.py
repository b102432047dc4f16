"""Bytecode utilities: auxdata (CBOR metadata trailer) split and decode."""

from __future__ import annotations

from .auxdata import (
    AuxdataSegment,
    CborAuxdata,
    DecodedMetadataReference,
    decode,
    split_auxdata,
)

__all__ = [
    "AuxdataSegment",
    "CborAuxdata",
    "DecodedMetadataReference",
    "decode",
    "split_auxdata",
]
