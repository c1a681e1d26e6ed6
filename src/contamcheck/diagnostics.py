from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from .iupac import GAP
from .models import DiagnosticPosition
from .myers import Alignment

logger = logging.getLogger(__name__)

# Purine <-> purine or pyrimidine <-> pyrimidine partners per base.
_TRANSITION_PARTNER = {"A": "G", "G": "A", "C": "T", "T": "C", "U": "C"}


def is_diagnostic(ref: str, asm: str) -> bool:
    """Columns where both sides carry a base and the bases differ.

    Ns are excluded: in practice they add noise and no usable evidence.
    """
    return ref != asm and ref != "N" and asm != "N" and ref != GAP and asm != GAP


def is_transversion(ref: str, asm: str) -> bool:
    partner = _TRANSITION_PARTNER.get(ref.upper())
    if partner is None:
        return False
    return asm.upper() != partner


@dataclass(frozen=True)
class DiagnosticPositionIndex:
    """Diagnostic positions sorted by assembly coordinate."""

    positions: List[int]
    entries: List[DiagnosticPosition]

    @classmethod
    def build(
        cls,
        alignment: Alignment,
        *,
        transversions_only: bool = False,
        span_start: int = 0,
        span_end: Optional[int] = None,
    ) -> "DiagnosticPositionIndex":
        """Collect diagnostic columns of a reference-vs-assembly alignment.

        ``seq_a`` is the reference, ``seq_b`` the assembly. Only columns whose
        assembly coordinate lies in ``[span_start, span_end)`` are kept.
        """
        entries: List[DiagnosticPosition] = []
        pos = 0
        for ref, asm in zip(alignment.seq_a, alignment.seq_b):
            if span_end is not None and pos >= span_end:
                break
            if (
                pos >= span_start
                and is_diagnostic(ref, asm)
                and (not transversions_only or is_transversion(ref, asm))
            ):
                entries.append(DiagnosticPosition(position=pos, ref=ref, asm=asm))
            if asm != GAP:
                pos += 1

        index = cls(positions=[e.position for e in entries], entries=entries)
        logger.info(
            "%d diagnostic positions, %d of which are transversions.",
            len(index),
            index.transversions(),
        )
        return index

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[DiagnosticPosition]:
        return iter(self.entries)

    def overlapping(self, start: int, end: int) -> List[DiagnosticPosition]:
        """Entries with ``start <= position <= end``."""
        left = bisect.bisect_left(self.positions, start)
        right = bisect.bisect_right(self.positions, end)
        return self.entries[left:right]

    def transversions(self) -> int:
        return sum(1 for e in self.entries if is_transversion(e.ref, e.asm))

    def describe(self, entries: Optional[List[DiagnosticPosition]] = None) -> str:
        items = self.entries if entries is None else entries
        return ", ".join(f"<{e.position}:{e.ref},{e.asm}>" for e in items)
