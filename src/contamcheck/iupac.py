from __future__ import annotations

from typing import Dict, List

GAP = "-"

_A, _C, _G, _T = 1, 2, 4, 8

_CODES: Dict[str, int] = {
    "A": _A,
    "C": _C,
    "G": _G,
    "T": _T,
    "U": _T,
    "R": _A | _G,
    "Y": _C | _T,
    "S": _C | _G,
    "W": _A | _T,
    "K": _G | _T,
    "M": _A | _C,
    "B": _C | _G | _T,
    "D": _A | _G | _T,
    "H": _A | _C | _T,
    "V": _A | _C | _G,
    "N": _A | _C | _G | _T,
}

# Symbol -> bitmask, both cases. Anything else (gaps, stray characters) is 0.
BITMASK: Dict[str, int] = {**_CODES, **{k.lower(): v for k, v in _CODES.items()}}

# Deamination turns C into T (and G into A on the other strand), so on aDNA a
# reference C may read as C or T and a reference G as G or A.
_DEAMINATED = {"C": "Y", "G": "R", "c": "y", "g": "r"}


def to_bitmask(symbol: str) -> int:
    return BITMASK.get(symbol, 0)


def encode(seq: str) -> List[int]:
    """Encode a sequence as a list of bitmasks (unknown symbols -> 0)."""
    get = BITMASK.get
    return [get(c, 0) for c in seq]


def matches(a: str, b: str) -> bool:
    """True iff the two symbols share at least one nucleotide."""
    return (BITMASK.get(a, 0) & BITMASK.get(b, 0)) != 0


def deaminated(base: str) -> str:
    return _DEAMINATED.get(base, base)


def consistent(x: str, y: str, *, ancient: bool = False) -> bool:
    """Whether observed symbol ``y`` could have come from template ``x``.

    A gap on either side carries no base and is consistent with anything.
    With ``ancient`` the template is folded to its deamination-tolerant code.
    """
    if x == GAP or y == GAP:
        return True
    if ancient:
        x = deaminated(x)
    return matches(x, y)


def equalities() -> List[tuple[str, str]]:
    """All pairs of distinct uppercase symbols that match, for edlib."""
    symbols = sorted(_CODES)
    return [(a, b) for a in symbols for b in symbols if a != b and _CODES[a] & _CODES[b]]
