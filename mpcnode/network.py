"""Topic-based message routing between nodes and the protocol handlers they host."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from typing import Any, Callable, Iterable, Union

from .commands import (
    CommandProcessor,
    ConsensusProposal,
    ShareGeneration,
    SignMessage,
    UpdateState,
    command_from_dict,
    command_to_dict,
)
from .consensus import (
    ConsensusNode,
    Proposal,
    Vote,
    consensus_message_from_dict,
    consensus_message_to_dict,
)
from .dkg import (
    DKGNode,
    ShareDistribution,
    ShareValidation,
    dkg_message_from_dict,
    dkg_message_to_dict,
)
from .signing import (
    CommitmentShare,
    SignatureShare,
    SigningNode,
    signing_message_from_dict,
    signing_message_to_dict,
)
from .types import Broadcast, DirectMessage, NetworkMessage, PeerInfo

logger = logging.getLogger(__name__)

DEFAULT_TOPICS = ("dkg", "signing", "consensus", "commands")

Delivery = Callable[[bytes], None]

GossipMessage = Union[
    ShareDistribution,
    ShareValidation,
    CommitmentShare,
    SignatureShare,
    ShareGeneration,
    SignMessage,
    UpdateState,
    ConsensusProposal,
    Proposal,
    Vote,
]


class PublishError(Exception):
    """A message could not be handed to any peer."""


def encode_gossip_message(msg: GossipMessage) -> bytes:
    """Serialise a protocol message, tagged with its kind, to compact JSON."""
    if isinstance(msg, (ShareDistribution, ShareValidation)):
        body: dict[str, Any] = {"DKG": dkg_message_to_dict(msg)}
    elif isinstance(msg, (CommitmentShare, SignatureShare)):
        body = {"Signing": signing_message_to_dict(msg)}
    elif isinstance(msg, (ShareGeneration, SignMessage, UpdateState, ConsensusProposal)):
        body = {"Command": command_to_dict(msg)}
    elif isinstance(msg, (Proposal, Vote)):
        body = {"Consensus": consensus_message_to_dict(msg)}
    else:
        raise TypeError(f"not a gossip message: {msg!r}")
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


_DECODERS: dict[str, Callable[[Any], GossipMessage]] = {
    "DKG": dkg_message_from_dict,
    "Signing": signing_message_from_dict,
    "Command": command_from_dict,
    "Consensus": consensus_message_from_dict,
}


def decode_gossip_message(data: bytes | str) -> GossipMessage:
    """Parse a tagged protocol message, raising ValueError if malformed."""
    try:
        body = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
        raise ValueError(f"not a JSON document: {exc}") from exc
    if not isinstance(body, dict) or len(body) != 1:
        raise ValueError("expected an object with a single variant")
    (kind, inner), = body.items()
    decoder = _DECODERS.get(kind)
    if decoder is None:
        raise ValueError(f"unknown gossip message kind {kind!r}")
    return decoder(inner)


class GossipHub:
    """In-process publish/subscribe fabric connecting the peers that join it."""

    def __init__(self) -> None:
        self._members: dict[str, Delivery] = {}
        self._subscriptions: dict[str, set[str]] = {}

    def join(self, peer_id: str, callback: Delivery) -> None:
        """Register a peer; ``callback`` receives every payload addressed to it."""
        self._members[peer_id] = callback

    def subscribe(self, peer_id: str, topic: str) -> None:
        if peer_id not in self._members:
            raise ValueError(f"unknown peer {peer_id!r}")
        self._subscriptions.setdefault(topic, set()).add(peer_id)

    def publish(self, sender: str, topic: str, data: bytes) -> int:
        """Deliver ``data`` to every other subscriber of ``topic``; return how many."""
        recipients = sorted(self._subscriptions.get(topic, set()) - {sender})
        if not recipients:
            raise PublishError(f"no peers subscribed to topic {topic!r}")
        payload = bytes(data)
        for peer_id in recipients:
            self._members[peer_id](payload)
        return len(recipients)

    def _send_direct(self, sender: str, peer_id: str, data: bytes) -> None:
        callback = self._members.get(peer_id)
        if callback is None or peer_id == sender:
            raise PublishError(f"peer {peer_id!r} is not reachable")
        callback(bytes(data))


class NetworkLayer:
    """A node's connection to the hub, routing traffic to its protocol handlers."""

    def __init__(self, hub: GossipHub) -> None:
        self._hub = hub
        self.local_peer_id = secrets.token_hex(16)
        self.peers: dict[str, PeerInfo] = {}
        self.message_queue: asyncio.Queue[NetworkMessage] = asyncio.Queue(maxsize=100)
        self._incoming: asyncio.Queue[bytes] = asyncio.Queue()
        self._stopping = asyncio.Event()
        self.topics: set[str] = set()
        self.dkg_node: DKGNode | None = None
        self.signing_node: SigningNode | None = None
        self.consensus_node: ConsensusNode | None = None
        self.command_processor: CommandProcessor | None = None

    def set_dkg_node(self, dkg_node: DKGNode) -> None:
        self.dkg_node = dkg_node

    def set_signing_node(self, signing_node: SigningNode) -> None:
        self.signing_node = signing_node

    def set_consensus_node(self, node: ConsensusNode) -> None:
        self.consensus_node = node

    def set_command_processor(self, processor: CommandProcessor) -> None:
        self.command_processor = processor

    def _deliver(self, data: bytes) -> None:
        self._incoming.put_nowait(data)

    async def start(self) -> None:
        """Join the hub and route traffic until :meth:`stop` is called.

        Errors from publishing or from handling a message end the loop and
        propagate to the caller.
        """
        self._hub.join(self.local_peer_id, self._deliver)
        print(f"Local Peer ID: {self.local_peer_id}")
        for topic in DEFAULT_TOPICS:
            self._hub.subscribe(self.local_peer_id, topic)
            self.topics.add(topic)

        stop_wait = asyncio.create_task(self._stopping.wait())
        outgoing: asyncio.Task | None = None
        incoming: asyncio.Task | None = None
        try:
            while True:
                if outgoing is None:
                    outgoing = asyncio.create_task(self.message_queue.get())
                if incoming is None:
                    incoming = asyncio.create_task(self._incoming.get())
                done, _ = await asyncio.wait(
                    {outgoing, incoming, stop_wait},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if incoming in done:
                    data = incoming.result()
                    incoming = None
                    await self.handle_gossip_message(data)
                if outgoing in done:
                    message = outgoing.result()
                    outgoing = None
                    self._handle_network_message(message)
                if stop_wait in done:
                    break
        finally:
            for task in (outgoing, incoming, stop_wait):
                if task is not None:
                    task.cancel()
            self._stopping.clear()

    def stop(self) -> None:
        """Ask a running :meth:`start` loop to return."""
        self._stopping.set()

    def _handle_network_message(self, message: NetworkMessage) -> None:
        if isinstance(message, Broadcast):
            self._hub.publish(self.local_peer_id, message.topic, message.data)
        elif isinstance(message, DirectMessage):
            self._hub._send_direct(self.local_peer_id, message.peer_id, message.data)
        else:
            raise TypeError(f"not a network message: {message!r}")

    async def broadcast(self, topic: str, data: bytes) -> None:
        await self.message_queue.put(Broadcast(topic=topic, data=bytes(data)))

    async def send_direct_message(self, peer_id: str, data: bytes) -> None:
        await self.message_queue.put(DirectMessage(peer_id=peer_id, data=bytes(data)))

    async def handle_gossip_message(self, data: bytes) -> None:
        """Decode a payload and pass it to the handler for its kind, if one is set."""
        msg = decode_gossip_message(data)
        if isinstance(msg, (ShareDistribution, ShareValidation)):
            if self.dkg_node is not None:
                await self.dkg_node.handle_message(msg)
        elif isinstance(msg, (CommitmentShare, SignatureShare)):
            if self.signing_node is not None:
                await self.signing_node.handle_message(msg)
        elif isinstance(msg, (Proposal, Vote)):
            if self.consensus_node is not None:
                await self.consensus_node.handle_message(msg)
        elif self.command_processor is not None:
            await self.command_processor.handle_message(msg)

    def discover_peers(self, peers: Iterable[tuple[str, str]]) -> None:
        """Record newly discovered ``(peer_id, address)`` pairs as connected."""
        for peer_id, address in peers:
            logger.info("Discovered peer: %s at %s", peer_id, address)
            self.peers[peer_id] = PeerInfo(addresses=[address], connected=True)
        print(f"[NEW] Peers: {self.connected_peer_count()}")

    def expire_peers(self, peers: Iterable[tuple[str, str]]) -> None:
        """Mark the given peers as no longer connected."""
        for peer_id, _address in peers:
            info = self.peers.get(peer_id)
            if info is not None:
                info.connected = False
        print(f"[EXP] Peers: {self.connected_peer_count()}")

    def connected_peer_count(self) -> int:
        return sum(1 for info in self.peers.values() if info.connected)