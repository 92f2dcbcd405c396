"""Feldman-style distributed key generation driven by an outgoing message queue."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from functools import reduce
from typing import Any, Iterable, Union

from .adkg import evaluate_polynomial, generate_commitments, generate_polynomial
from .curve import CURVE_ORDER, G1Point, generator, identity
from .types import Broadcast, KeyShare, decode_point, encode_point

DKG_TOPIC = "dkg"


@dataclass(frozen=True)
class ShareDistribution:
    """A dealer's shares for every participant with its coefficient commitments."""

    from_id: str
    shares: tuple[KeyShare, ...]
    commitments: tuple[G1Point, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "shares", tuple(self.shares))
        object.__setattr__(self, "commitments", tuple(self.commitments))


@dataclass(frozen=True)
class ShareValidation:
    """Statement by ``from_id`` on whether the shares dealt by ``to`` were valid."""

    from_id: str
    to: str
    is_valid: bool


DKGMessage = Union[ShareDistribution, ShareValidation]


def dkg_message_to_dict(msg: DKGMessage) -> dict[str, Any]:
    """Return the externally tagged JSON form of a DKG message."""
    if isinstance(msg, ShareDistribution):
        return {
            "ShareDistribution": {
                "from": msg.from_id,
                "shares": [s.to_dict() for s in msg.shares],
                "commitments": [encode_point(c) for c in msg.commitments],
            }
        }
    if isinstance(msg, ShareValidation):
        return {
            "ShareValidation": {
                "from": msg.from_id,
                "to": msg.to,
                "is_valid": msg.is_valid,
            }
        }
    raise TypeError(f"not a DKG message: {msg!r}")


def _require_str(fields: dict[str, Any], name: str) -> str:
    value = fields.get(name)
    if not isinstance(value, str):
        raise ValueError(f"field {name!r} must be a string")
    return value


def _require_list(fields: dict[str, Any], name: str) -> list[Any]:
    value = fields.get(name)
    if not isinstance(value, list):
        raise ValueError(f"field {name!r} must be a list")
    return value


def dkg_message_from_dict(data: Any) -> DKGMessage:
    """Parse the JSON form of a DKG message, raising ValueError if malformed."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError("expected an object with a single variant")
    (variant, fields), = data.items()
    if not isinstance(fields, dict):
        raise ValueError("variant body must be an object")
    if variant == "ShareDistribution":
        return ShareDistribution(
            from_id=_require_str(fields, "from"),
            shares=tuple(KeyShare.from_dict(s) for s in _require_list(fields, "shares")),
            commitments=tuple(
                decode_point(c) for c in _require_list(fields, "commitments")
            ),
        )
    if variant == "ShareValidation":
        is_valid = fields.get("is_valid")
        if not isinstance(is_valid, bool):
            raise ValueError("field 'is_valid' must be a boolean")
        return ShareValidation(
            from_id=_require_str(fields, "from"),
            to=_require_str(fields, "to"),
            is_valid=is_valid,
        )
    raise ValueError(f"unknown DKG message variant {variant!r}")


def _encode(msg: DKGMessage) -> bytes:
    return json.dumps(dkg_message_to_dict(msg)).encode("utf-8")


def _share_matches(share: KeyShare, commitments: tuple[G1Point, ...]) -> bool:
    x = share.index % CURVE_ORDER
    combined = reduce(
        lambda acc, jc: acc + jc[1] * pow(x, jc[0], CURVE_ORDER),
        enumerate(commitments),
        identity(),
    )
    return combined == generator() * share.value


class DKGNode:
    """One participant; outgoing broadcasts are put on ``message_queue``.

    The node's id, read as an integer, is the share index it accepts.
    """

    def __init__(
        self,
        node_id: str,
        threshold: int,
        total_nodes: int,
        message_queue: asyncio.Queue,
    ) -> None:
        self.node_id = node_id
        self.threshold = threshold
        self.total_nodes = total_nodes
        self.message_queue = message_queue
        self.shares: dict[str, KeyShare] = {}
        self.commitments: dict[str, list[G1Point]] = {}
        self.validations: dict[str, list[bool]] = {}
        self.group_key: G1Point | None = None

    async def broadcast(self, topic: str, data: bytes) -> None:
        await self.message_queue.put(Broadcast(topic=topic, data=bytes(data)))

    async def start_dkg(self) -> ShareDistribution:
        """Deal a polynomial of degree ``threshold`` and broadcast the shares."""
        coeffs, _secret = generate_polynomial(self.threshold)
        shares = tuple(
            KeyShare(index=i, value=evaluate_polynomial(coeffs, i))
            for i in range(1, self.total_nodes + 1)
        )
        msg = ShareDistribution(
            from_id=self.node_id,
            shares=shares,
            commitments=tuple(generate_commitments(coeffs)),
        )
        await self.broadcast(DKG_TOPIC, _encode(msg))
        return msg

    async def handle_message(self, msg: DKGMessage) -> None:
        if isinstance(msg, ShareDistribution):
            await self._handle_share_distribution(msg)
        elif isinstance(msg, ShareValidation):
            self._handle_share_validation(msg)
        else:
            raise TypeError(f"not a DKG message: {msg!r}")

    def _own_index(self) -> int | None:
        try:
            return int(self.node_id)
        except ValueError:
            return None

    @staticmethod
    def _verify_shares(shares: Iterable[KeyShare], commitments: tuple[G1Point, ...]) -> bool:
        return all(_share_matches(share, commitments) for share in shares)

    async def _handle_share_distribution(self, msg: ShareDistribution) -> None:
        if not self._verify_shares(msg.shares, msg.commitments):
            return
        own_index = self._own_index()
        mine = next((s for s in msg.shares if s.index == own_index), None)
        if mine is None:
            return
        self.shares[msg.from_id] = mine
        self.commitments[msg.from_id] = list(msg.commitments)
        validation = ShareValidation(from_id=self.node_id, to=msg.from_id, is_valid=True)
        await self.broadcast(DKG_TOPIC, _encode(validation))

    def _handle_share_validation(self, msg: ShareValidation) -> None:
        self.validations.setdefault(msg.to, []).append(msg.is_valid)
        self._check_completion()

    def _check_completion(self) -> None:
        enough_validations = all(
            len(v) >= self.threshold for v in self.validations.values()
        )
        if enough_validations and len(self.shares) >= self.threshold:
            self.group_key = self.generate_group_key()

    def generate_group_key(self) -> G1Point:
        """Sum ``share * G`` over every share received."""
        g = generator()
        return reduce(
            lambda acc, share: acc + g * share.value, self.shares.values(), identity()
        )