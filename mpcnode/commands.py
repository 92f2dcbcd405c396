"""Commands exchanged between nodes and a processor that dispatches them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union


@dataclass(frozen=True)
class ShareGeneration:
    threshold: int


@dataclass(frozen=True)
class SignMessage:
    message: bytes


@dataclass(frozen=True)
class UpdateState:
    key: str
    value: bytes


@dataclass(frozen=True)
class ConsensusProposal:
    round: int
    value: bytes


Command = Union[ShareGeneration, SignMessage, UpdateState, ConsensusProposal]
Handler = Callable[[Command], Any]

_HANDLER_NAMES: dict[type, str] = {
    ShareGeneration: "share_generation",
    SignMessage: "sign_message",
    UpdateState: "update_state",
    ConsensusProposal: "consensus_proposal",
}


def _byte_list(value: Any, name: str) -> bytes:
    if not isinstance(value, list) or not all(
        isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in value
    ):
        raise ValueError(f"field {name!r} must be a list of byte values")
    return bytes(value)


def _uint(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"field {name!r} must be a non-negative integer")
    return value


def command_to_dict(cmd: Command) -> dict[str, Any]:
    """Return the externally tagged JSON form of a command."""
    if isinstance(cmd, ShareGeneration):
        return {"ShareGeneration": {"threshold": cmd.threshold}}
    if isinstance(cmd, SignMessage):
        return {"SignMessage": {"message": list(cmd.message)}}
    if isinstance(cmd, UpdateState):
        return {"UpdateState": {"key": cmd.key, "value": list(cmd.value)}}
    if isinstance(cmd, ConsensusProposal):
        return {"ConsensusProposal": {"round": cmd.round, "value": list(cmd.value)}}
    raise TypeError(f"not a command: {cmd!r}")


def command_from_dict(data: Any) -> Command:
    """Parse the JSON form of a command, raising ValueError if malformed."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError("expected an object with a single variant")
    (variant, fields), = data.items()
    if not isinstance(fields, dict):
        raise ValueError("variant body must be an object")
    if variant == "ShareGeneration":
        return ShareGeneration(threshold=_uint(fields.get("threshold"), "threshold"))
    if variant == "SignMessage":
        return SignMessage(message=_byte_list(fields.get("message"), "message"))
    if variant == "UpdateState":
        key = fields.get("key")
        if not isinstance(key, str):
            raise ValueError("field 'key' must be a string")
        return UpdateState(key=key, value=_byte_list(fields.get("value"), "value"))
    if variant == "ConsensusProposal":
        return ConsensusProposal(
            round=_uint(fields.get("round"), "round"),
            value=_byte_list(fields.get("value"), "value"),
        )
    raise ValueError(f"unknown command variant {variant!r}")


class CommandProcessor:
    """Dispatches each command to the handler registered for its kind.

    Handler names are ``share_generation``, ``sign_message``,
    ``update_state`` and ``consensus_proposal``. Commands without a
    registered handler are ignored; errors raised by handlers propagate.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Handler] = {}

    def register_handler(self, command_type: str, handler: Handler) -> None:
        self.handlers[command_type] = handler

    async def handle_message(self, msg: Command) -> None:
        name = _HANDLER_NAMES.get(type(msg))
        if name is None:
            raise TypeError(f"not a command: {msg!r}")
        handler = self.handlers.get(name)
        if handler is not None:
            handler(msg)