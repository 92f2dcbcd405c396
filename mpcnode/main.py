"""Command-line entry point that assembles and runs a node."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os

from .commands import CommandProcessor
from .consensus import ConsensusNode
from .dkg import DKGNode
from .network import GossipHub, NetworkLayer

DEFAULT_THRESHOLD = 3
DEFAULT_TOTAL = 5
LOG_ENV = "MPC_NODE_LOG"


def build_node(
    hub: GossipHub, threshold: int = DEFAULT_THRESHOLD, total: int = DEFAULT_TOTAL
) -> NetworkLayer:
    """Create a network layer with key-generation, consensus and command handlers."""
    network = NetworkLayer(hub)
    network.set_dkg_node(
        DKGNode(network.local_peer_id, threshold, total, network.message_queue)
    )
    network.set_consensus_node(ConsensusNode())
    network.set_command_processor(CommandProcessor())
    return network


def _configure_logging() -> None:
    level = logging.getLevelName(os.environ.get(LOG_ENV, "WARNING").upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level)


async def _run(network: NetworkLayer, duration: float | None) -> None:
    task = asyncio.create_task(network.start())
    if duration is None:
        await task
        return
    await asyncio.sleep(duration)
    network.stop()
    await task


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mpc-node", description="Run an MPC node.")
    parser.add_argument("--threshold", type=int, default=DEFAULT_THRESHOLD)
    parser.add_argument("--total", type=int, default=DEFAULT_TOTAL)
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="stop after this many seconds instead of running until interrupted",
    )
    args = parser.parse_args(argv)
    _configure_logging()
    network = build_node(GossipHub(), args.threshold, args.total)
    try:
        asyncio.run(_run(network, args.duration))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())