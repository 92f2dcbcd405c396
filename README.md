# mpcnode

A node for multi-party computation experiments: distributed key generation
(DKG and an asynchronous variant, ADKG) with Feldman-style commitments, FROST
signing scaffolding, a simple VRF-based consensus component and a command
dispatcher, all exchanging JSON messages over topic-based gossip.

The BLS12-381 G1 group and its scalar field are implemented in pure Python,
so the package has no runtime dependencies beyond the standard library.

## Running a node

```
mpc-node
```

This starts a node with a threshold of 3 out of 5 participants, joins it to an
in-process gossip hub, subscribes it to the `dkg`, `signing`, `consensus` and
`commands` topics and prints its local peer id.

## Modules

| Module | Purpose |
| --- | --- |
| `mpcnode.curve` | G1 points (`G1Point`), `generator()`, `identity()`, scalar helpers, 48-byte compressed encoding |
| `mpcnode.types` | `KeyShare`, `PeerInfo`, the `Broadcast` / `DirectMessage` network messages, scalar and point encoders |
| `mpcnode.adkg` | `ADKGNode`: polynomial shares, commitment verification, acknowledgements, `reconstruct_secret` |
| `mpcnode.dkg` | `DKGNode`: share distribution, validation and group key derivation |
| `mpcnode.frost` | `FrostSigner`: nonce pairs and their commitments |
| `mpcnode.signing` | `SigningNode`: commitment and signature share exchange and aggregation |
| `mpcnode.consensus` | `ConsensusNode`: BLAKE3-based VRF proofs, proposals, votes and key/value state |
| `mpcnode.hashing` | `blake3_hash` and `blake3_keyed_hash` |
| `mpcnode.commands` | Command messages and `CommandProcessor` with per-type handlers |
| `mpcnode.network` | `GossipHub` for topic delivery and `NetworkLayer` that routes messages to the nodes |
| `mpcnode.main` | `build_node` and the `mpc-node` entry point |

## Working with the curve

```python
from mpcnode.curve import G1Point, generator, random_scalar

k = random_scalar()
point = generator() * k
encoded = point.to_compressed()          # 48 bytes
assert G1Point.from_compressed(encoded) == point
assert (point + (-point)).is_identity()
```

## Hashing and VRF proofs

```python
from mpcnode.consensus import ConsensusNode
from mpcnode.hashing import blake3_hash

node = ConsensusNode()
output = node.generate_vrf_proof(b"round-1")
assert node.verify_vrf_proof(b"round-1", output)
assert output.hash == blake3_hash(b"round-1")
```

## Tests

The test suite uses pytest and pytest-asyncio, listed in the `test` extra.