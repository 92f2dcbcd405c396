"""Arithmetic on the BLS12-381 G1 group and its scalar field.

Scalars are plain integers reduced modulo ``CURVE_ORDER``; points are
immutable :class:`G1Point` values in affine form.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

FIELD_MODULUS = int(
    "1a0111ea397fe69a4b1ba7b6434bacd764774b84f38512bf"
    "6730d2a0f6b0f6241eabfffeb153ffffb9feffffffffaaab",
    16,
)
CURVE_ORDER = int(
    "73eda753299d7d483339d80809a1d80553bda402fffe5bfeffffffff00000001", 16
)
COMPRESSED_SIZE = 48
SCALAR_SIZE = 32

_B = 4
_GX = int(
    "17f1d3a73197d7942695638c4fa9ac0fc3688c4f9774b905"
    "a14e3a3f171bac586c55e83ff97a1aeffb3af00adb22c6bb",
    16,
)
_GY = int(
    "08b3f481e3aaa0f1a09e30ed741d8ae4fcf5e095d5d00af6"
    "00db18cb2c04b3edd03cc744a2888ae40caa232946c5e7e1",
    16,
)

_FLAG_COMPRESSED = 0x80
_FLAG_INFINITY = 0x40
_FLAG_SORT = 0x20

_Jacobian = tuple[int, int, int]
_JAC_INFINITY: _Jacobian = (1, 1, 0)


def _jac_double(pt: _Jacobian) -> _Jacobian:
    x, y, z = pt
    if z == 0 or y == 0:
        return _JAC_INFINITY
    p = FIELD_MODULUS
    a = x * x % p
    b = y * y % p
    c = b * b % p
    d = 2 * ((x + b) * (x + b) - a - c) % p
    e = 3 * a % p
    f = e * e % p
    x3 = (f - 2 * d) % p
    y3 = (e * (d - x3) - 8 * c) % p
    z3 = 2 * y * z % p
    return x3, y3, z3


def _jac_add(p1: _Jacobian, p2: _Jacobian) -> _Jacobian:
    if p1[2] == 0:
        return p2
    if p2[2] == 0:
        return p1
    p = FIELD_MODULUS
    x1, y1, z1 = p1
    x2, y2, z2 = p2
    z1z1 = z1 * z1 % p
    z2z2 = z2 * z2 % p
    u1 = x1 * z2z2 % p
    u2 = x2 * z1z1 % p
    s1 = y1 * z2 * z2z2 % p
    s2 = y2 * z1 * z1z1 % p
    if u1 == u2:
        if s1 != s2:
            return _JAC_INFINITY
        return _jac_double(p1)
    h = (u2 - u1) % p
    r = (s2 - s1) % p
    hh = h * h % p
    hhh = h * hh % p
    v = u1 * hh % p
    x3 = (r * r - hhh - 2 * v) % p
    y3 = (r * (v - x3) - s1 * hhh) % p
    z3 = h * z1 * z2 % p
    return x3, y3, z3


def _jac_mul(pt: _Jacobian, k: int) -> _Jacobian:
    result = _JAC_INFINITY
    for bit in bin(k)[2:]:
        result = _jac_double(result)
        if bit == "1":
            result = _jac_add(result, pt)
    return result


@dataclass(frozen=True)
class G1Point:
    """A point of the BLS12-381 G1 curve ``y^2 = x^3 + 4`` in affine form."""

    x: int = 0
    y: int = 0
    infinity: bool = False

    def __post_init__(self) -> None:
        if self.infinity:
            if self.x or self.y:
                raise ValueError("the point at infinity has no coordinates")
            return
        p = FIELD_MODULUS
        if not (0 <= self.x < p and 0 <= self.y < p):
            raise ValueError("coordinate out of range")
        if (self.y * self.y - self.x**3 - _B) % p:
            raise ValueError("point is not on the curve")

    def _jacobian(self) -> _Jacobian:
        if self.infinity:
            return _JAC_INFINITY
        return self.x, self.y, 1

    @classmethod
    def _from_jacobian(cls, pt: _Jacobian) -> G1Point:
        x, y, z = pt
        if z == 0:
            return cls(infinity=True)
        p = FIELD_MODULUS
        zinv = pow(z, -1, p)
        zinv2 = zinv * zinv % p
        return cls(x * zinv2 % p, y * zinv2 * zinv % p)

    def __add__(self, other: object) -> G1Point:
        if not isinstance(other, G1Point):
            return NotImplemented
        return G1Point._from_jacobian(_jac_add(self._jacobian(), other._jacobian()))

    def __neg__(self) -> G1Point:
        if self.infinity:
            return self
        return G1Point(self.x, (-self.y) % FIELD_MODULUS)

    def __mul__(self, scalar: object) -> G1Point:
        if isinstance(scalar, bool) or not isinstance(scalar, int):
            return NotImplemented
        k = scalar % CURVE_ORDER
        return G1Point._from_jacobian(_jac_mul(self._jacobian(), k))

    def __rmul__(self, scalar: object) -> G1Point:
        return self.__mul__(scalar)

    def is_identity(self) -> bool:
        """Return True for the point at infinity."""
        return self.infinity

    def to_compressed(self) -> bytes:
        """Encode the point in the 48-byte compressed form."""
        if self.infinity:
            out = bytearray(COMPRESSED_SIZE)
            out[0] = _FLAG_COMPRESSED | _FLAG_INFINITY
            return bytes(out)
        out = bytearray(self.x.to_bytes(COMPRESSED_SIZE, "big"))
        out[0] |= _FLAG_COMPRESSED
        if self.y > FIELD_MODULUS - self.y:
            out[0] |= _FLAG_SORT
        return bytes(out)

    @classmethod
    def from_compressed(cls, data: bytes) -> G1Point:
        """Decode a compressed point, checking it lies in the prime-order subgroup."""
        data = bytes(data)
        if len(data) != COMPRESSED_SIZE:
            raise ValueError("invalid length for G1Affine")
        flags = data[0]
        if not flags & _FLAG_COMPRESSED:
            raise ValueError("invalid G1Affine point")
        sort = bool(flags & _FLAG_SORT)
        x = int.from_bytes(bytes([flags & 0x1F]) + data[1:], "big")
        if flags & _FLAG_INFINITY:
            if sort or x:
                raise ValueError("invalid G1Affine point")
            return cls(infinity=True)
        p = FIELD_MODULUS
        if x >= p:
            raise ValueError("invalid G1Affine point")
        rhs = (x**3 + _B) % p
        y = pow(rhs, (p + 1) // 4, p)
        if y * y % p != rhs:
            raise ValueError("invalid G1Affine point")
        if (y > p - y) != sort:
            y = (p - y) % p
        point = cls(x, y)
        if _jac_mul(point._jacobian(), CURVE_ORDER)[2] != 0:
            raise ValueError("invalid G1Affine point")
        return point


_GENERATOR = G1Point(_GX, _GY)
_IDENTITY = G1Point(infinity=True)


def generator() -> G1Point:
    """Return the standard generator of G1."""
    return _GENERATOR


def identity() -> G1Point:
    """Return the point at infinity."""
    return _IDENTITY


def random_scalar() -> int:
    """Return a uniformly random scalar."""
    return secrets.randbelow(CURVE_ORDER)


def scalar_to_bytes(value: int) -> bytes:
    """Encode a scalar as 32 little-endian bytes."""
    return (value % CURVE_ORDER).to_bytes(SCALAR_SIZE, "little")


def scalar_from_bytes(data: bytes) -> int:
    """Decode 32 little-endian bytes into a canonical scalar."""
    data = bytes(data)
    if len(data) != SCALAR_SIZE:
        raise ValueError("invalid length for Scalar")
    value = int.from_bytes(data, "little")
    if value >= CURVE_ORDER:
        raise ValueError("invalid Scalar value")
    return value


def scalar_inverse(value: int) -> int:
    """Return the multiplicative inverse of a scalar."""
    reduced = value % CURVE_ORDER
    if reduced == 0:
        raise ValueError("zero has no inverse")
    return pow(reduced, -1, CURVE_ORDER)