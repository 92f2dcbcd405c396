"""Nonce management and commitments for a threshold signer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from .curve import CURVE_ORDER, G1Point, generator, random_scalar
from .types import decode_point, encode_point


@dataclass(frozen=True)
class Commitment:
    """Public commitments ``d * G`` and ``e * G`` to a nonce pair."""

    d: G1Point
    e: G1Point

    def to_dict(self) -> dict[str, Any]:
        return {"D": encode_point(self.d), "E": encode_point(self.e)}

    @classmethod
    def from_dict(cls, data: Any) -> Commitment:
        if not isinstance(data, dict) or "D" not in data or "E" not in data:
            raise ValueError("commitment must be an object with 'D' and 'E'")
        return cls(d=decode_point(data["D"]), e=decode_point(data["E"]))


class FrostSigner:
    """A participant holding a secret share and a queue of signing nonces."""

    def __init__(self, signer_id: str, secret_share: int, public_key: G1Point) -> None:
        self.id = signer_id
        self.secret_share = secret_share % CURVE_ORDER
        self.public_key = public_key
        self.nonces: list[tuple[int, int]] = []
        self.commitments: dict[str, list[Commitment]] = {}

    def generate_nonces(self, count: int) -> None:
        """Append ``count`` fresh random nonce pairs."""
        self.nonces.extend((random_scalar(), random_scalar()) for _ in range(count))

    def get_commitments(self) -> list[Commitment]:
        """Return commitments to every pending nonce pair, oldest first."""
        g = generator()
        return [Commitment(d=g * d, e=g * e) for d, e in self.nonces]

    def sign(self, message: bytes, participants: Iterable[str]) -> int | None:
        """Consume the oldest nonce pair and return this signer's share.

        Returns None when no nonces are left.
        """
        if not self.nonces:
            return None
        self.nonces.pop(0)
        return self.secret_share