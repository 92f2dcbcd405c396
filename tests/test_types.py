import json

import pytest

from mpcnode.curve import CURVE_ORDER, generator, identity, random_scalar
from mpcnode.types import (
    Broadcast,
    DirectMessage,
    KeyShare,
    PeerInfo,
    decode_point,
    decode_scalar,
    encode_point,
    encode_scalar,
)


def test_encode_scalar_shape():
    encoded = encode_scalar(random_scalar())
    assert len(encoded) == 32
    assert all(0 <= b <= 255 for b in encoded)


def test_scalar_round_trip():
    s = random_scalar()
    assert decode_scalar(encode_scalar(s)) == s
    assert decode_scalar(bytes(encode_scalar(s))) == s


def test_decode_scalar_rejects_bad_length():
    with pytest.raises(ValueError, match="invalid length for Scalar"):
        decode_scalar([0] * 31)


def test_decode_scalar_rejects_out_of_range_byte():
    with pytest.raises(ValueError):
        decode_scalar([256] + [0] * 31)


def test_decode_scalar_rejects_integer():
    with pytest.raises(ValueError):
        decode_scalar(32)


def test_decode_scalar_rejects_non_canonical():
    with pytest.raises(ValueError, match="invalid Scalar value"):
        decode_scalar(list(CURVE_ORDER.to_bytes(32, "little")))


def test_encode_point_matches_compressed():
    g = generator() * 9
    assert encode_point(g) == list(g.to_compressed())
    assert len(encode_point(g)) == 48


def test_point_round_trip():
    p = generator() * random_scalar()
    assert decode_point(encode_point(p)) == p
    assert decode_point(encode_point(identity())).is_identity()


def test_decode_point_rejects_bad_length():
    with pytest.raises(ValueError, match="invalid length for G1Affine"):
        decode_point([0] * 10)


def test_key_share_json_round_trip():
    share = KeyShare(index=3, value=random_scalar())
    restored = KeyShare.from_dict(json.loads(json.dumps(share.to_dict())))
    assert restored == share


def test_key_share_dict_layout():
    share = KeyShare(index=2, value=7)
    data = share.to_dict()
    assert data["index"] == 2
    assert decode_scalar(data["value"]) == 7


def test_key_share_value_is_reduced():
    assert KeyShare(index=1, value=CURVE_ORDER + 4).value == 4


def test_key_share_from_dict_missing_field():
    with pytest.raises(ValueError):
        KeyShare.from_dict({"index": 1})


def test_key_share_rejects_negative_index():
    with pytest.raises(ValueError):
        KeyShare(index=-1, value=1)


def test_peer_info_defaults_are_independent():
    a = PeerInfo()
    b = PeerInfo()
    a.addresses.append("/ip4/127.0.0.1/tcp/4001")
    assert b.addresses == []
    assert a.connected is True


def test_network_messages_compare_by_value():
    assert Broadcast("dkg", b"x") == Broadcast("dkg", b"x")
    assert Broadcast("dkg", b"x") != Broadcast("signing", b"x")
    msg = DirectMessage(peer_id="peer-a", data=b"hello")
    assert (msg.peer_id, msg.data) == ("peer-a", b"hello")