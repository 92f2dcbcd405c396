"""VRF-style proposals and votes with a simple replicated key/value state."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any, Union

from .hashing import OUT_LEN, blake3_hash, blake3_keyed_hash

VRF_KEY_LEN = 32


def _byte_list(value: Any, name: str) -> bytes:
    if not isinstance(value, list) or not all(
        isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in value
    ):
        raise ValueError(f"field {name!r} must be a list of byte values")
    return bytes(value)


def _digest(value: Any, name: str) -> bytes:
    digest = _byte_list(value, name)
    if len(digest) != OUT_LEN:
        raise ValueError(f"field {name!r} must hold {OUT_LEN} bytes")
    return digest


def _uint(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"field {name!r} must be a non-negative integer")
    return value


@dataclass(frozen=True)
class VrfOutput:
    """A keyed proof over some input together with the plain hash of that input."""

    proof: bytes
    hash: bytes

    def to_dict(self) -> dict[str, Any]:
        return {"proof": list(self.proof), "hash": list(self.hash)}

    @classmethod
    def from_dict(cls, data: Any) -> VrfOutput:
        if not isinstance(data, dict):
            raise ValueError("VRF output must be an object")
        return cls(
            proof=_byte_list(data.get("proof"), "proof"),
            hash=_digest(data.get("hash"), "hash"),
        )


@dataclass(frozen=True)
class Proposal:
    """A value proposed for a round, with its VRF output."""

    round: int
    value: bytes
    vrf_proof: VrfOutput


@dataclass(frozen=True)
class Vote:
    """A voter's support for the proposal with the given hash in a round."""

    round: int
    proposal_hash: bytes
    voter: str


ConsensusMessage = Union[Proposal, Vote]


def consensus_message_to_dict(msg: ConsensusMessage) -> dict[str, Any]:
    """Return the externally tagged JSON form of a consensus message."""
    if isinstance(msg, Proposal):
        return {
            "Proposal": {
                "round": msg.round,
                "value": list(msg.value),
                "vrf_proof": msg.vrf_proof.to_dict(),
            }
        }
    if isinstance(msg, Vote):
        return {
            "Vote": {
                "round": msg.round,
                "proposal_hash": list(msg.proposal_hash),
                "voter": msg.voter,
            }
        }
    raise TypeError(f"not a consensus message: {msg!r}")


def consensus_message_from_dict(data: Any) -> ConsensusMessage:
    """Parse the JSON form of a consensus message, raising ValueError if malformed."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError("expected an object with a single variant")
    (variant, fields), = data.items()
    if not isinstance(fields, dict):
        raise ValueError("variant body must be an object")
    if variant == "Proposal":
        return Proposal(
            round=_uint(fields.get("round"), "round"),
            value=_byte_list(fields.get("value"), "value"),
            vrf_proof=VrfOutput.from_dict(fields.get("vrf_proof")),
        )
    if variant == "Vote":
        voter = fields.get("voter")
        if not isinstance(voter, str):
            raise ValueError("field 'voter' must be a string")
        return Vote(
            round=_uint(fields.get("round"), "round"),
            proposal_hash=_digest(fields.get("proposal_hash"), "proposal_hash"),
            voter=voter,
        )
    raise ValueError(f"unknown consensus message variant {variant!r}")


class ConsensusNode:
    """Holds a VRF key, replicated state and the proposals and votes seen per round."""

    def __init__(self, vrf_secret_key: bytes | None = None) -> None:
        key = secrets.token_bytes(VRF_KEY_LEN) if vrf_secret_key is None else bytes(vrf_secret_key)
        if len(key) != VRF_KEY_LEN:
            raise ValueError(f"VRF key must be {VRF_KEY_LEN} bytes")
        self._vrf_secret_key = key
        self.vrf_public_key = blake3_keyed_hash(key, b"vrf-public-key")
        self.state: dict[str, bytes] = {}
        self.current_round = 0
        self.proposals: dict[int, list[tuple[bytes, VrfOutput]]] = {}
        self.votes: dict[int, dict[bytes, list[str]]] = {}

    def generate_vrf_proof(self, input_data: bytes) -> VrfOutput:
        """Produce the keyed proof and plain hash of ``input_data``."""
        data = bytes(input_data)
        return VrfOutput(
            proof=blake3_keyed_hash(self._vrf_secret_key, data),
            hash=blake3_hash(data),
        )

    def verify_vrf_proof(self, input_data: bytes, output: VrfOutput) -> bool:
        """Check that the output's hash matches ``input_data``."""
        return output.hash == blake3_hash(bytes(input_data))

    def update_state(self, key: str, value: bytes) -> None:
        self.state[key] = bytes(value)

    def get_state(self, key: str) -> bytes | None:
        return self.state.get(key)

    async def handle_message(self, msg: ConsensusMessage) -> None:
        """Record a verified proposal or a vote."""
        if isinstance(msg, Proposal):
            if self.verify_vrf_proof(msg.value, msg.vrf_proof):
                self.proposals.setdefault(msg.round, []).append((msg.value, msg.vrf_proof))
                self.current_round = max(self.current_round, msg.round)
        elif isinstance(msg, Vote):
            self.votes.setdefault(msg.round, {}).setdefault(msg.proposal_hash, []).append(
                msg.voter
            )
        else:
            raise TypeError(f"not a consensus message: {msg!r}")