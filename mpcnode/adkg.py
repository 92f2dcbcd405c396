"""Asynchronous distributed key generation over a gossip topic.

Each node deals a random polynomial, broadcasts the evaluations for every
participant together with Feldman commitments to the coefficients, checks
the share meant for it against those commitments and acknowledges valid
proposals. Once enough acknowledgements have arrived the node combines
the received shares into its secret key share and the constant-term
commitments into the group public key.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Callable, Iterable, Union

from .curve import CURVE_ORDER, G1Point, generator, identity, random_scalar, scalar_inverse
from .types import decode_point, decode_scalar, encode_point, encode_scalar

logger = logging.getLogger(__name__)

ADKG_TOPIC = "/adkg/1.0.0"

Publisher = Callable[[str, bytes], Any]


@dataclass(frozen=True)
class ShareProposal:
    """A dealer's shares for every participant plus its coefficient commitments."""

    sender_id: str
    shares: tuple[int, ...]
    commitments: tuple[G1Point, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "shares", tuple(s % CURVE_ORDER for s in self.shares))
        object.__setattr__(self, "commitments", tuple(self.commitments))


@dataclass(frozen=True)
class ShareAck:
    """Acknowledgement from ``sender_id`` of the proposal dealt by ``receiver_id``."""

    sender_id: str
    receiver_id: str
    valid: bool


ADKGMessage = Union[ShareProposal, ShareAck]


def generate_polynomial(degree: int) -> tuple[list[int], int]:
    """Return random coefficients of a polynomial of ``degree`` and its constant term."""
    if degree < 0:
        raise ValueError("degree must not be negative")
    coeffs = [random_scalar() for _ in range(degree + 1)]
    return coeffs, coeffs[0]


def evaluate_polynomial(coeffs: Iterable[int], i: int) -> int:
    """Evaluate the polynomial with ``coeffs`` (lowest degree first) at ``i``."""
    x = i % CURVE_ORDER
    return sum(c * pow(x, j, CURVE_ORDER) for j, c in enumerate(coeffs)) % CURVE_ORDER


def generate_commitments(coeffs: Iterable[int]) -> list[G1Point]:
    """Commit to each coefficient as ``coeff * G``."""
    g = generator()
    return [g * c for c in coeffs]


def reconstruct_secret(shares: Iterable[tuple[int, int]]) -> int:
    """Interpolate the polynomial at zero from ``(index, share)`` pairs."""
    pairs = [(i, s % CURVE_ORDER) for i, s in shares]
    secret = 0
    for i, share in pairs:
        term = share
        for j, _ in pairs:
            if j == i:
                continue
            term = term * j * scalar_inverse(j - i) % CURVE_ORDER
        secret = (secret + term) % CURVE_ORDER
    return secret


def encode_message(msg: ADKGMessage) -> bytes:
    """Serialise an ADKG message to JSON bytes."""
    if isinstance(msg, ShareProposal):
        body: dict[str, Any] = {
            "ShareProposal": {
                "sender_id": msg.sender_id,
                "shares": [encode_scalar(s) for s in msg.shares],
                "commitments": [encode_point(c) for c in msg.commitments],
            }
        }
    elif isinstance(msg, ShareAck):
        body = {
            "ShareAck": {
                "sender_id": msg.sender_id,
                "receiver_id": msg.receiver_id,
                "valid": msg.valid,
            }
        }
    else:
        raise TypeError(f"not an ADKG message: {msg!r}")
    return json.dumps(body).encode("utf-8")


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


def decode_message(data: bytes | str) -> ADKGMessage:
    """Parse JSON bytes into an ADKG message, raising ValueError if malformed."""
    try:
        body = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
        raise ValueError(f"not a JSON document: {exc}") from exc
    if not isinstance(body, dict) or len(body) != 1:
        raise ValueError("expected an object with a single variant")
    (variant, fields), = body.items()
    if not isinstance(fields, dict):
        raise ValueError("variant body must be an object")
    if variant == "ShareProposal":
        return ShareProposal(
            sender_id=_require_str(fields, "sender_id"),
            shares=tuple(decode_scalar(s) for s in _require_list(fields, "shares")),
            commitments=tuple(
                decode_point(c) for c in _require_list(fields, "commitments")
            ),
        )
    if variant == "ShareAck":
        valid = fields.get("valid")
        if not isinstance(valid, bool):
            raise ValueError("field 'valid' must be a boolean")
        return ShareAck(
            sender_id=_require_str(fields, "sender_id"),
            receiver_id=_require_str(fields, "receiver_id"),
            valid=valid,
        )
    raise ValueError(f"unknown ADKG message variant {variant!r}")


@dataclass
class ADKGNode:
    """State of one participant in the key generation.

    ``publish`` is called with a topic and the encoded message whenever the
    node broadcasts; any exception it raises propagates to the caller.
    """

    node_id: str
    n: int
    t: int
    idx: int
    publish: Publisher
    secret_key_share: int | None = field(default=None, init=False)
    public_key: G1Point | None = field(default=None, init=False)
    commitments: dict[str, list[G1Point]] = field(default_factory=dict, init=False)
    shares: dict[str, int] = field(default_factory=dict, init=False)
    acks: dict[str, list[tuple[str, bool]]] = field(default_factory=dict, init=False)

    def _broadcast(self, msg: ADKGMessage) -> None:
        self.publish(ADKG_TOPIC, encode_message(msg))

    def start_adkg(self) -> ShareProposal:
        """Deal a fresh polynomial of degree ``t`` and broadcast the proposal."""
        coeffs, _secret = generate_polynomial(self.t)
        commitments = generate_commitments(coeffs)
        shares = [evaluate_polynomial(coeffs, i) for i in range(1, self.n + 1)]
        proposal = ShareProposal(
            sender_id=self.node_id,
            shares=tuple(shares),
            commitments=tuple(commitments),
        )
        self._broadcast(proposal)
        self.commitments[self.node_id] = commitments
        return proposal

    def handle_message(self, msg: ADKGMessage) -> None:
        """Process a proposal or an acknowledgement received from the network."""
        if isinstance(msg, ShareProposal):
            self._handle_proposal(msg)
        elif isinstance(msg, ShareAck):
            self._handle_ack(msg)
        else:
            raise TypeError(f"not an ADKG message: {msg!r}")

    def _handle_proposal(self, msg: ShareProposal) -> None:
        if not self.verify_commitments(msg.sender_id, msg.shares, msg.commitments):
            return
        if 0 < self.idx <= len(msg.shares):
            self.shares[msg.sender_id] = msg.shares[self.idx - 1]
            self.commitments[msg.sender_id] = list(msg.commitments)
        self._broadcast(
            ShareAck(sender_id=self.node_id, receiver_id=msg.sender_id, valid=True)
        )

    def _handle_ack(self, msg: ShareAck) -> None:
        if msg.receiver_id != self.node_id:
            return
        self.acks.setdefault(msg.sender_id, []).append((msg.sender_id, msg.valid))
        self._check_completion()

    def verify_commitments(
        self,
        sender_id: str,
        shares: Iterable[int],
        commitments: Iterable[G1Point],
    ) -> bool:
        """Check the share addressed to this node against the dealer's commitments."""
        shares = list(shares)
        if self.idx <= 0 or self.idx > len(shares):
            return False
        share = shares[self.idx - 1]
        x = self.idx % CURVE_ORDER
        combined = reduce(
            lambda acc, jc: acc + jc[1] * pow(x, jc[0], CURVE_ORDER),
            enumerate(commitments),
            identity(),
        )
        return combined == generator() * share

    def _check_completion(self) -> None:
        valid_count = sum(valid for entries in self.acks.values() for _, valid in entries)
        if valid_count < self.t:
            return
        self.secret_key_share = sum(self.shares.values()) % CURVE_ORDER
        self.public_key = reduce(
            lambda acc, comms: acc + comms[0],
            (comms for comms in self.commitments.values() if comms),
            identity(),
        )
        logger.info("ADKG completed for node %s. Secret share generated.", self.node_id)