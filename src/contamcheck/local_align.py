"""Fragment-vs-reference realignment.

The classifier only relies on the :class:`LocalAligner` contract: given the
lifted reference window and the fragment, return the best sub-alignment with
free end gaps on the reference, plus the offset into the reference at which
it begins. :class:`EdlibLocalAligner` fulfils it with edlib's infix mode.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

import edlib

from .iupac import GAP, equalities
from .myers import AlignmentOverflow

logger = logging.getLogger(__name__)


class LocalAlignmentOverflow(AlignmentOverflow):
    """The fragment could not be realigned within the local distance ceiling."""


@dataclass(frozen=True)
class LocalAlignment:
    ref_aligned: str
    frag_aligned: str
    offset: int
    distance: int

    def fragment_by_reference(self, ref_len: int) -> List[str]:
        """Fragment symbol opposite each reference position (``'-'`` if none)."""
        out = [GAP] * ref_len
        r = self.offset
        for ref_sym, frag_sym in zip(self.ref_aligned, self.frag_aligned):
            if ref_sym == GAP:
                continue
            if r < ref_len:
                out[r] = frag_sym
            r += 1
        return out


class LocalAligner(Protocol):
    def align(self, ref: str, fragment: str, submat: Any = None) -> LocalAlignment:
        ...


class EdlibLocalAligner:
    """Semi-global aligner: the whole fragment against any window of the reference.

    Scoring is unit edit distance with IUPAC codes treated as equal to the
    bases they contain. ``submat`` is accepted for interface compatibility and
    not interpreted.

    End gaps are free on the reference only. Read bases hanging off either
    end of the reference window (e.g. an assembly-only insertion at the
    fragment edge) are charged as edits and count towards ``max_distance``.
    """

    def __init__(self, max_distance: Optional[int] = None) -> None:
        self.max_distance = max_distance
        self._equalities = equalities()

    def align(self, ref: str, fragment: str, submat: Any = None) -> LocalAlignment:
        k = -1 if self.max_distance is None else int(self.max_distance)
        result = edlib.align(
            fragment,
            ref,
            mode="HW",
            task="path",
            k=k,
            additionalEqualities=self._equalities,
        )
        if result["editDistance"] == -1:
            raise LocalAlignmentOverflow(
                k, f"fragment does not align within {k} differences of the reference window"
            )

        nice = edlib.getNiceAlignment(result, fragment, ref)
        offset = int(result["locations"][0][0])
        return LocalAlignment(
            ref_aligned=nice["target_aligned"],
            frag_aligned=nice["query_aligned"],
            offset=offset,
            distance=int(result["editDistance"]),
        )
