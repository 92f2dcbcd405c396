import pytest

from mpcnode.commands import CommandProcessor
from mpcnode.consensus import ConsensusNode
from mpcnode.main import build_node, main
from mpcnode.network import GossipHub


def test_build_node_defaults():
    network = build_node(GossipHub())
    assert network.dkg_node.threshold == 3
    assert network.dkg_node.total_nodes == 5
    assert network.dkg_node.node_id == network.local_peer_id
    assert network.dkg_node.message_queue is network.message_queue


def test_build_node_wires_handlers():
    network = build_node(GossipHub(), 2, 4)
    assert network.dkg_node.threshold == 2
    assert network.dkg_node.total_nodes == 4
    assert isinstance(network.consensus_node, ConsensusNode)
    assert isinstance(network.command_processor, CommandProcessor)
    assert network.signing_node is None


def test_build_node_ids_are_distinct():
    hub = GossipHub()
    nodes = [build_node(hub) for _ in range(3)]
    assert len({node.local_peer_id for node in nodes}) == 3
    assert [node.dkg_node.node_id for node in nodes] == [node.local_peer_id for node in nodes]


def test_main_runs_for_duration(capsys):
    assert main(["--duration", "0.01"]) == 0
    assert "Local Peer ID:" in capsys.readouterr().out


def test_main_rejects_bad_threshold():
    with pytest.raises(SystemExit) as info:
        main(["--threshold", "x"])
    assert info.value.code == 2