import json

import pytest

from mpcnode.curve import CURVE_ORDER, generator
from mpcnode.frost import Commitment, FrostSigner


def _signer(share=12345):
    return FrostSigner("signer-1", share, generator() * share)


def test_generate_nonces_accumulates():
    signer = _signer()
    signer.generate_nonces(2)
    signer.generate_nonces(3)
    assert len(signer.nonces) == 5
    assert len(signer.get_commitments()) == 5


def test_commitments_match_nonces():
    signer = _signer()
    signer.generate_nonces(2)
    commitments = signer.get_commitments()
    for (d, e), commitment in zip(signer.nonces, commitments):
        assert commitment.d == generator() * d
        assert commitment.e == generator() * e


def test_sign_without_nonces_returns_none():
    assert _signer().sign(b"message", ["a", "b"]) is None


def test_sign_consumes_oldest_nonce_and_returns_share():
    signer = _signer(share=777)
    signer.generate_nonces(2)
    second = signer.nonces[1]
    assert signer.sign(b"message", ["a"]) == 777
    assert signer.nonces == [second]


def test_secret_share_is_reduced():
    signer = FrostSigner("s", CURVE_ORDER + 5, generator())
    assert signer.secret_share == 5


def test_commitment_round_trip():
    signer = _signer()
    signer.generate_nonces(1)
    (commitment,) = signer.get_commitments()
    wire = json.dumps(commitment.to_dict())
    assert Commitment.from_dict(json.loads(wire)) == commitment


def test_commitment_wire_keys():
    commitment = Commitment(d=generator(), e=generator() * 2)
    data = commitment.to_dict()
    assert sorted(data) == ["D", "E"]
    assert len(data["D"]) == 48


def test_commitment_from_dict_rejects_missing_field():
    with pytest.raises(ValueError):
        Commitment.from_dict({"D": list(generator().to_compressed())})