"""Threshold key generation, signing and consensus node over BLS12-381 G1."""

__version__ = "0.1.0"