import asyncio

import pytest

from mpcnode.commands import CommandProcessor, UpdateState
from mpcnode.consensus import ConsensusNode, Vote
from mpcnode.dkg import DKGNode, ShareValidation
from mpcnode.network import (
    GossipHub,
    NetworkLayer,
    PublishError,
    decode_gossip_message,
    encode_gossip_message,
)
from mpcnode.signing import SignatureShare
from mpcnode.types import Broadcast, DirectMessage


async def _wait_for(predicate, timeout=2.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout)


@pytest.mark.parametrize(
    "msg",
    [
        UpdateState("k", b"v"),
        Vote(round=2, proposal_hash=bytes(32), voter="alice"),
        ShareValidation(from_id="1", to="2", is_valid=True),
        SignatureShare("x", 99),
    ],
)
def test_gossip_round_trip(msg):
    assert decode_gossip_message(encode_gossip_message(msg)) == msg


def test_command_wire_form():
    data = encode_gossip_message(UpdateState("k", b"\x01"))
    assert data == b'{"Command":{"UpdateState":{"key":"k","value":[1]}}}'


def test_decode_rejects_garbage():
    with pytest.raises(ValueError):
        decode_gossip_message(b"not json")


def test_decode_rejects_unknown_kind():
    with pytest.raises(ValueError):
        decode_gossip_message(b'{"Other":{}}')


def test_encode_rejects_unknown_type():
    with pytest.raises(TypeError):
        encode_gossip_message("plain")


def test_hub_delivers_to_other_subscribers():
    hub = GossipHub()
    got = {"a": [], "b": [], "c": []}
    for name in got:
        hub.join(name, got[name].append)
    hub.subscribe("a", "t")
    hub.subscribe("b", "t")
    assert hub.publish("a", "t", b"x") == 1
    assert got == {"a": [], "b": [b"x"], "c": []}


def test_hub_publish_without_peers_fails():
    hub = GossipHub()
    hub.join("a", lambda data: None)
    hub.subscribe("a", "t")
    with pytest.raises(PublishError):
        hub.publish("a", "t", b"x")


def test_hub_subscribe_unknown_peer_fails():
    with pytest.raises(ValueError):
        GossipHub().subscribe("ghost", "t")


@pytest.mark.asyncio
async def test_handle_gossip_dispatches_command():
    layer = NetworkLayer(GossipHub())
    received = []
    processor = CommandProcessor()
    processor.register_handler("update_state", received.append)
    layer.set_command_processor(processor)
    await layer.handle_gossip_message(encode_gossip_message(UpdateState("k", b"v")))
    assert received == [UpdateState("k", b"v")]


@pytest.mark.asyncio
async def test_handle_gossip_dispatches_consensus_vote():
    layer = NetworkLayer(GossipHub())
    node = ConsensusNode()
    layer.set_consensus_node(node)
    vote = Vote(round=1, proposal_hash=bytes(32), voter="bob")
    await layer.handle_gossip_message(encode_gossip_message(vote))
    assert node.votes == {1: {bytes(32): ["bob"]}}


@pytest.mark.asyncio
async def test_handle_gossip_dispatches_dkg():
    layer = NetworkLayer(GossipHub())
    dkg = DKGNode("1", 1, 3, layer.message_queue)
    layer.set_dkg_node(dkg)
    msg = ShareValidation(from_id="2", to="3", is_valid=True)
    await layer.handle_gossip_message(encode_gossip_message(msg))
    assert dkg.validations == {"3": [True]}


@pytest.mark.asyncio
async def test_handle_gossip_malformed_raises():
    layer = NetworkLayer(GossipHub())
    with pytest.raises(ValueError):
        await layer.handle_gossip_message(b"{}")


@pytest.mark.asyncio
async def test_broadcast_and_direct_enqueue():
    layer = NetworkLayer(GossipHub())
    await layer.broadcast("dkg", b"abc")
    await layer.send_direct_message("peer", b"xyz")
    assert layer.message_queue.get_nowait() == Broadcast(topic="dkg", data=b"abc")
    assert layer.message_queue.get_nowait() == DirectMessage(peer_id="peer", data=b"xyz")


def test_peer_discovery_and_expiry(capsys):
    layer = NetworkLayer(GossipHub())
    layer.discover_peers([("p1", "addr1"), ("p2", "addr2")])
    assert layer.connected_peer_count() == 2
    layer.expire_peers([("p1", "addr1")])
    assert layer.connected_peer_count() == 1
    assert layer.peers["p1"].connected is False
    out = capsys.readouterr().out
    assert "[NEW] Peers: 2" in out
    assert "[EXP] Peers: 1" in out


@pytest.mark.asyncio
async def test_running_layers_exchange_broadcasts():
    hub = GossipHub()
    a, b = NetworkLayer(hub), NetworkLayer(hub)
    received = []
    processor = CommandProcessor()
    processor.register_handler("update_state", received.append)
    b.set_command_processor(processor)
    ta = asyncio.create_task(a.start())
    tb = asyncio.create_task(b.start())
    await _wait_for(lambda: "commands" in a.topics and "commands" in b.topics)
    await a.broadcast("commands", encode_gossip_message(UpdateState("k", b"v")))
    await _wait_for(lambda: received)
    a.stop()
    b.stop()
    await asyncio.wait_for(asyncio.gather(ta, tb), 2)
    assert received == [UpdateState("k", b"v")]


@pytest.mark.asyncio
async def test_running_layers_exchange_direct_messages():
    hub = GossipHub()
    a, b = NetworkLayer(hub), NetworkLayer(hub)
    received = []
    processor = CommandProcessor()
    processor.register_handler("update_state", received.append)
    b.set_command_processor(processor)
    ta = asyncio.create_task(a.start())
    tb = asyncio.create_task(b.start())
    await _wait_for(lambda: a.topics and b.topics)
    await a.send_direct_message(b.local_peer_id, encode_gossip_message(UpdateState("d", b"")))
    await _wait_for(lambda: received)
    a.stop()
    b.stop()
    await asyncio.wait_for(asyncio.gather(ta, tb), 2)
    assert received == [UpdateState("d", b"")]


@pytest.mark.asyncio
async def test_start_propagates_publish_error():
    layer = NetworkLayer(GossipHub())
    await layer.broadcast("dkg", b"lonely")
    task = asyncio.create_task(layer.start())
    with pytest.raises(PublishError):
        await asyncio.wait_for(task, 2)
    assert task.done() is True
    assert "dkg" in layer.topics


@pytest.mark.asyncio
async def test_direct_message_to_unknown_peer_fails():
    layer = NetworkLayer(GossipHub())
    await layer.send_direct_message("ghost", b"x")
    task = asyncio.create_task(layer.start())
    with pytest.raises(PublishError):
        await asyncio.wait_for(task, 2)
    assert task.done() is True
    assert "commands" in layer.topics