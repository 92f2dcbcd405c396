"""Shared message and key-share types and their wire encodings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Union

from .curve import CURVE_ORDER, G1Point, scalar_from_bytes, scalar_to_bytes


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, (int, str)):
        raise ValueError("expected a sequence of byte values")
    try:
        return bytes(data)
    except (TypeError, ValueError) as exc:
        raise ValueError("expected a sequence of byte values") from exc


def encode_scalar(value: int) -> list[int]:
    """Encode a scalar as a list of its 32 little-endian byte values."""
    return list(scalar_to_bytes(value))


def decode_scalar(data: Iterable[int] | bytes) -> int:
    """Decode a scalar from 32 byte values."""
    return scalar_from_bytes(_as_bytes(data))


def encode_point(point: G1Point) -> list[int]:
    """Encode a G1 point as a list of its 48 compressed byte values."""
    return list(point.to_compressed())


def decode_point(data: Iterable[int] | bytes) -> G1Point:
    """Decode a G1 point from 48 compressed byte values."""
    return G1Point.from_compressed(_as_bytes(data))


@dataclass(frozen=True)
class KeyShare:
    """One participant's share: the polynomial evaluated at ``index``."""

    index: int
    value: int

    def __post_init__(self) -> None:
        if isinstance(self.index, bool) or not isinstance(self.index, int):
            raise ValueError("share index must be an integer")
        if self.index < 0:
            raise ValueError("share index must not be negative")
        object.__setattr__(self, "value", self.value % CURVE_ORDER)

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "value": encode_scalar(self.value)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KeyShare:
        try:
            index = data["index"]
            raw_value = data["value"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed key share: {exc}") from exc
        return cls(index=index, value=decode_scalar(raw_value))


@dataclass
class PeerInfo:
    """Known addresses of a peer and whether it is currently reachable."""

    addresses: list[str] = field(default_factory=list)
    connected: bool = True


@dataclass(frozen=True)
class Broadcast:
    """Outgoing data for every subscriber of a topic."""

    topic: str
    data: bytes


@dataclass(frozen=True)
class DirectMessage:
    """Outgoing data for a single peer."""

    peer_id: str
    data: bytes


NetworkMessage = Union[Broadcast, DirectMessage]