"""
Animica zk.verifiers.pairing_bn254
==================================

Thin BN254 (altbn128) Ate pairing wrapper over `py_ecc.optimized_bn128`.

Public API
----------
- pair(P: G1Point, Q: G2Point) -> GTElement
- product_of_pairings(pairs) -> GTElement
- check_pairing_product(pairs) -> bool
- is_on_curve_g1(P), is_on_curve_g2(Q), in_subgroup_g2(Q)
- normalize_g1(P) / normalize_g2(Q)  (to affine integers)
- g1_from_affine(x, y) / g2_from_affine((x0, x1), (y0, y1))
- curve_order(), field_modulus()

Notes
-----
- Point ordering follows the common convention e(P, Q) with P in G1, Q in G2.
  The underlying `py_ecc` pairing call expects (Q, P); this wrapper handles it.
- Inputs are validated (on-curve or infinity) before pairing.
- Serialization of points to bytes lives with the proof codec
  (groth16_bn254), not here.

License: MIT (matches repository policy)
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple

from py_ecc.optimized_bn128 import FQ, FQ2, FQ12
from py_ecc.optimized_bn128 import Z1 as _Z1
from py_ecc.optimized_bn128 import Z2 as _Z2
from py_ecc.optimized_bn128 import b as _B
from py_ecc.optimized_bn128 import b2 as _B2
from py_ecc.optimized_bn128 import curve_order as _Q
from py_ecc.optimized_bn128 import field_modulus as _P
from py_ecc.optimized_bn128 import is_inf as _is_inf
from py_ecc.optimized_bn128 import is_on_curve as _is_on_curve
from py_ecc.optimized_bn128 import multiply as _multiply
from py_ecc.optimized_bn128 import normalize as _normalize
from py_ecc.optimized_bn128 import pairing as _pairing

# Point internals are backend tuples (projective coordinates); keep them opaque.
G1Point = Any
G2Point = Any
GTElement = FQ12

__all__ = [
    "pair",
    "product_of_pairings",
    "check_pairing_product",
    "is_on_curve_g1",
    "is_on_curve_g2",
    "in_subgroup_g2",
    "normalize_g1",
    "normalize_g2",
    "g1_from_affine",
    "g2_from_affine",
    "curve_order",
    "field_modulus",
]


def curve_order() -> int:
    """Return the BN254 subgroup order r."""
    return int(_Q)


def field_modulus() -> int:
    """Return the base field modulus p."""
    return int(_P)


def _limb(c: Any) -> int:
    # FQ2 coefficients are plain ints in the optimized backend, FQ elsewhere.
    return int(c.n) if hasattr(c, "n") else int(c)


def g1_from_affine(x: int, y: int) -> G1Point:
    """Build a G1 point from affine integers; (0, 0) encodes infinity."""
    if x == 0 and y == 0:
        return _Z1
    return (FQ(x), FQ(y), FQ(1))


def g2_from_affine(x: Tuple[int, int], y: Tuple[int, int]) -> G2Point:
    """Build a G2 point from ((x_c0, x_c1), (y_c0, y_c1)); all-zero encodes infinity."""
    if not any(x) and not any(y):
        return _Z2
    return (FQ2([x[0], x[1]]), FQ2([y[0], y[1]]), FQ2([1, 0]))


def is_on_curve_g1(P: G1Point) -> bool:
    """Return True if P is on G1 or is the point at infinity."""
    return _is_inf(P) or bool(_is_on_curve(P, _B))


def is_on_curve_g2(Q: G2Point) -> bool:
    """Return True if Q is on the twisted curve or is the point at infinity."""
    return _is_inf(Q) or bool(_is_on_curve(Q, _B2))


def in_subgroup_g2(Q: G2Point) -> bool:
    """r-torsion check; the twist has a large cofactor so on-curve is not enough."""
    return is_on_curve_g2(Q) and _is_inf(_multiply(Q, curve_order()))


def normalize_g1(P: G1Point) -> Optional[Tuple[int, int]]:
    """
    Normalize a G1 point to affine (x, y) integers.
    Returns None for the point at infinity.
    """
    if _is_inf(P):
        return None
    ax, ay = _normalize(P)
    return _limb(ax), _limb(ay)


def normalize_g2(Q: G2Point) -> Optional[Tuple[Tuple[int, int], Tuple[int, int]]]:
    """
    Normalize a G2 point to affine ((x_c0, x_c1), (y_c0, y_c1)) integer limbs.
    Returns None for the point at infinity.
    """
    if _is_inf(Q):
        return None
    ax, ay = _normalize(Q)
    return (_limb(ax.coeffs[0]), _limb(ax.coeffs[1])), (
        _limb(ay.coeffs[0]),
        _limb(ay.coeffs[1]),
    )


def pair(P: G1Point, Q: G2Point, *, validate: bool = True) -> GTElement:
    """
    Compute the Ate pairing e(P, Q) on BN254.

    Raises
    ------
    ValueError
        If inputs are not on the curve and validate=True.
    """
    if validate:
        if not is_on_curve_g1(P):
            raise ValueError("G1 point is not on curve")
        if not is_on_curve_g2(Q):
            raise ValueError("G2 point is not on curve")

    # Pairings involving infinity return the identity in GT.
    if _is_inf(P) or _is_inf(Q):
        return FQ12.one()

    return _pairing(Q, P)


def product_of_pairings(
    pairs: Iterable[Tuple[G1Point, G2Point]], *, validate: bool = True
) -> GTElement:
    """Compute ∏ e(P_i, Q_i) over an iterable of (P_i, Q_i)."""
    acc = FQ12.one()
    for P, Q in pairs:
        acc *= pair(P, Q, validate=validate)
    return acc


def check_pairing_product(
    pairs: Iterable[Tuple[G1Point, G2Point]], *, validate: bool = True
) -> bool:
    """Return True iff ∏ e(P_i, Q_i) == 1 in GT."""
    return product_of_pairings(pairs, validate=validate) == FQ12.one()
