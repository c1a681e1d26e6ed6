from __future__ import annotations

import numpy as np

from .iupac import GAP
from .myers import Alignment


class CoordinateLifter:
    """Map assembly coordinates onto columns of a reference-vs-assembly alignment.

    For every column we precompute how many assembly bases precede it. That
    count is non-decreasing, so the columns belonging to an assembly range
    ``[start, end)`` form one contiguous block found by binary search. Reference
    columns that sit in front of an assembly base (assembly gaps) travel with
    that base.
    """

    def __init__(self, alignment: Alignment) -> None:
        self.alignment = alignment
        asm = np.frombuffer(alignment.seq_b.encode("ascii"), dtype=np.uint8)
        nongap = (asm != ord(GAP)).astype(np.int64)
        self._before = np.cumsum(nongap) - nongap

    def columns(self, start: int, end: int) -> range:
        """Alignment columns for assembly coordinates ``[start, end)``."""
        lo = int(np.searchsorted(self._before, start, side="left"))
        hi = int(np.searchsorted(self._before, end, side="left"))
        return range(lo, hi)

    def lift(self, start: int, end: int) -> str:
        """Reference symbols aligned to assembly coordinates ``[start, end)``."""
        cols = self.columns(start, end)
        return self.alignment.seq_a[cols.start : cols.stop].replace(GAP, "")
