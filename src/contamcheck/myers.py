"""Myers' O(N·D) alignment over nucleotide ambiguity codes.

The forward pass follows Myers (1986): for increasing edit distance ``d`` it
records, per diagonal ``k = x - y``, the furthest position ``x`` into ``seq_b``
reachable with ``d`` edits, then slides along runs of matching symbols.
Unlike the classic diff formulation a substitution is a single edit, so the
distance is the unit-cost Levenshtein distance. "Match" means the two symbols
share a nucleotide (see :func:`contamcheck.iupac.matches`), so ``R`` matches
``A`` and ``N`` matches everything.

The traceback walks the stored rows backwards from the terminal ``(k, d)``
and writes the two gapped strings from the end of pre-sized buffers.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .iupac import GAP, encode

logger = logging.getLogger(__name__)


class AlignMode(enum.Enum):
    GLOBAL = "global"
    # seq_b may end before seq_a does
    IS_PREFIX = "is_prefix"
    # seq_a may end before seq_b does
    HAS_PREFIX = "has_prefix"


class AlignmentOverflow(RuntimeError):
    """Raised when two sequences cannot be aligned within the allowed distance."""

    def __init__(self, max_distance: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"no alignment within {max_distance} differences")
        self.max_distance = int(max_distance)


@dataclass(frozen=True)
class Alignment:
    """Two equal-length gapped strings.

    Removing gaps from ``seq_a`` yields the first ``consumed_a`` symbols of the
    first input (all of it in global mode); likewise for ``seq_b``.
    """

    seq_a: str
    seq_b: str
    distance: int

    def __post_init__(self) -> None:
        if len(self.seq_a) != len(self.seq_b):
            raise ValueError("aligned sequences must have equal length")

    def __len__(self) -> int:
        return len(self.seq_a)

    @property
    def consumed_a(self) -> int:
        return len(self.seq_a) - self.seq_a.count(GAP)

    @property
    def consumed_b(self) -> int:
        return len(self.seq_b) - self.seq_b.count(GAP)

    def ungapped(self) -> Tuple[str, str]:
        return self.seq_a.replace(GAP, ""), self.seq_b.replace(GAP, "")


# Moves into a (k, d) state from row d-1.
_SUB, _INS, _DEL = "sub", "ins", "del"

# One forward row: (lowest diagonal, furthest x per diagonal or -1).
_Row = Tuple[int, List[int]]


def _reach(row: _Row, k: int) -> int:
    lo, xs = row
    i = k - lo
    if 0 <= i < len(xs):
        return xs[i]
    return -1


def _entry(prev: _Row, k: int, len_a: int, len_b: int) -> Tuple[int, Optional[str]]:
    """Furthest x on diagonal k after one more edit, and the edit used.

    Candidates are tried diagonal first, so on ties the substitution wins,
    then the insertion. Forward pass and traceback both go through here.
    """
    best, move = -1, None

    x = _reach(prev, k)
    if 0 <= x < len_b and x - k < len_a:
        best, move = x + 1, _SUB

    x = _reach(prev, k - 1)
    if 0 <= x < len_b and x + 1 > best:
        best, move = x + 1, _INS

    x = _reach(prev, k + 1)
    if x >= 0 and x - k <= len_a and x > best:
        best, move = x, _DEL

    return best, move


def _traceback(
    rows: List[_Row], k: int, d: int, x: int, seq_a: str, seq_b: str
) -> Alignment:
    len_a, len_b = len(seq_a), len(seq_b)
    # Every column consumes at least one symbol, so this always suffices.
    cap = len_a + len_b + d + 1
    out_a: List[str] = [""] * cap
    out_b: List[str] = [""] * cap
    pos = cap

    dd = d
    while True:
        if dd == 0:
            x_start, move = 0, None
        else:
            x_start, move = _entry(rows[dd - 1], k, len_a, len_b)

        # the snake: matches along diagonal k
        while x > x_start:
            x -= 1
            pos -= 1
            out_a[pos] = seq_a[x - k]
            out_b[pos] = seq_b[x]

        if move is None:
            break

        pos -= 1
        if move == _SUB:
            x -= 1
            out_a[pos] = seq_a[x - k]
            out_b[pos] = seq_b[x]
        elif move == _INS:
            x -= 1
            out_a[pos] = GAP
            out_b[pos] = seq_b[x]
            k -= 1
        else:
            out_a[pos] = seq_a[x - k - 1]
            out_b[pos] = GAP
            k += 1
        dd -= 1

    return Alignment(seq_a="".join(out_a[pos:]), seq_b="".join(out_b[pos:]), distance=d)


def align(
    seq_a: str,
    seq_b: str,
    mode: AlignMode = AlignMode.GLOBAL,
    max_distance: int = 1000,
) -> Alignment:
    """Align ``seq_a`` and ``seq_b`` with the fewest edits.

    Parameters
    ----------
    mode:
        ``GLOBAL`` consumes both inputs; ``IS_PREFIX`` stops once ``seq_b`` is
        consumed; ``HAS_PREFIX`` stops once ``seq_a`` is consumed.
    max_distance:
        Inclusive ceiling on the edit distance. It is also capped at
        ``len(seq_a) + len(seq_b)``, which always suffices.

    Raises
    ------
    AlignmentOverflow
        If no alignment within ``max_distance`` edits exists.
    """
    len_a, len_b = len(seq_a), len(seq_b)
    if max_distance < 0:
        raise ValueError("max_distance must be non-negative")
    max_d = min(int(max_distance), len_a + len_b)

    ma = encode(seq_a)
    mb = encode(seq_b)
    need_a = mode is not AlignMode.IS_PREFIX
    need_b = mode is not AlignMode.HAS_PREFIX

    rows: List[_Row] = []
    for d in range(max_d + 1):
        lo = max(-d, -len_a)
        hi = min(d, len_b)
        xs = [-1] * (hi - lo + 1)
        row = (lo, xs)
        for k in range(lo, hi + 1):
            if d == 0:
                x = 0
            else:
                x, _ = _entry(rows[d - 1], k, len_a, len_b)
                if x < 0:
                    continue
            y = x - k
            while x < len_b and y < len_a and mb[x] & ma[y]:
                x += 1
                y += 1
            xs[k - lo] = x

            if (x == len_b or not need_b) and (y == len_a or not need_a):
                rows.append(row)
                logger.debug("aligned %d x %d symbols with %d differences", len_a, len_b, d)
                return _traceback(rows, k, d, x, seq_a, seq_b)
        rows.append(row)

    raise AlignmentOverflow(max_distance)
