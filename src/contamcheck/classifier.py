from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .diagnostics import DiagnosticPositionIndex
from .iupac import GAP, consistent
from .liftover import CoordinateLifter
from .local_align import EdlibLocalAligner, LocalAligner, LocalAlignmentOverflow
from .models import BACK, FRONT, WHOLE, Fragment, FragmentCall, Klass
from .myers import Alignment
from .stats import SummaryStatistics

logger = logging.getLogger(__name__)


def vote(klass: Klass, maybe_clean: bool, maybe_dirt: bool) -> Klass:
    """Update a running verdict with the evidence of one diagnostic position."""
    if not maybe_clean and not maybe_dirt:
        return Klass.NONSENSE
    if maybe_clean and not maybe_dirt:
        if klass == Klass.UNKNOWN:
            return Klass.CLEAN
        if klass == Klass.DIRT:
            return Klass.CONFLICT
    if maybe_dirt and not maybe_clean:
        if klass == Klass.UNKNOWN:
            return Klass.DIRT
        if klass == Klass.CLEAN:
            return Klass.CONFLICT
    return klass


def merge(a: Klass, b: Klass) -> Klass:
    """Combine the verdicts of two halves of a pair."""
    if a == b:
        return a
    if a == Klass.UNKNOWN:
        return b
    if b == Klass.UNKNOWN:
        return a
    if a == Klass.NONSENSE or b == Klass.NONSENSE:
        return Klass.NONSENSE
    return Klass.CONFLICT


class FragmentClassifier:
    """Decide per fragment whether it looks endogenous or like the reference.

    Holds only state that is fixed for the run (the reference-vs-assembly
    alignment and its diagnostic positions), so :meth:`classify` may be called
    from several threads.
    """

    def __init__(
        self,
        alignment: Alignment,
        index: DiagnosticPositionIndex,
        *,
        aligner: Optional[LocalAligner] = None,
        ancient: bool = False,
        submat: Any = None,
    ) -> None:
        self.alignment = alignment
        self.index = index
        self.lifter = CoordinateLifter(alignment)
        self.aligner = aligner if aligner is not None else EdlibLocalAligner()
        self.ancient = ancient
        self.submat = submat

    def classify(self, fragment: Fragment) -> FragmentCall:
        klass = Klass.UNKNOWN
        votes = 0
        disagreements = 0

        hits = self.index.overlapping(fragment.start, fragment.end)
        if not hits:
            logger.debug("%s/%s: no diagnostic positions", fragment.id, fragment.segment)
            return self._call(fragment, klass, votes, 0, 0)

        logger.debug(
            "%s/%s: %d diagnostic positions: %s (range %d..%d)",
            fragment.id,
            fragment.segment,
            len(hits),
            self.index.describe(hits),
            fragment.start,
            fragment.end,
        )

        read = fragment.read_sequence()
        lifted = self.lifter.lift(fragment.start, fragment.end + 1)
        if not read or not lifted:
            return self._call(fragment, klass, votes, len(hits), 0)

        try:
            local = self.aligner.align(lifted, read, self.submat)
        except LocalAlignmentOverflow as e:
            logger.warning("%s/%s: %s; left unclassified", fragment.id, fragment.segment, e)
            return self._call(fragment, klass, votes, len(hits), 0, overflow=True)

        logger.debug(
            "%s/%s realigned at +%d:\n  read: %s\n  ref:  %s",
            fragment.id,
            fragment.segment,
            local.offset,
            local.frag_aligned,
            local.ref_aligned,
        )

        by_ref = local.fragment_by_reference(len(lifted))
        wanted = {h.position for h in hits}

        ref_aln = self.alignment.seq_a
        asm_aln = self.alignment.seq_b
        r = 0  # index into lifted
        a = fragment.start  # assembly coordinate
        for col in self.lifter.columns(fragment.start, fragment.end + 1):
            ref = ref_aln[col]
            asm = asm_aln[col]

            if a in wanted and ref != GAP and asm != GAP:
                frag_vs_ref = by_ref[r]
                frag_vs_asm = fragment.seq[a - fragment.start]
                if frag_vs_ref != frag_vs_asm:
                    disagreements += 1
                    logger.debug(
                        "diagnostic pos. %d %s/%s %s/%s in disagreement",
                        a, ref, frag_vs_ref, asm, frag_vs_asm,
                    )
                else:
                    maybe_clean = consistent(asm, frag_vs_asm, ancient=self.ancient)
                    maybe_dirt = consistent(ref, frag_vs_ref, ancient=self.ancient)
                    logger.debug(
                        "diagnostic pos. %d %s/%s %s/%s %sconsistent/%sconsistent",
                        a, ref, frag_vs_ref, asm, frag_vs_asm,
                        "" if maybe_dirt else "in",
                        "" if maybe_clean else "in",
                    )
                    klass = vote(klass, maybe_clean, maybe_dirt)
                    if maybe_clean != maybe_dirt:
                        votes += 1

            if ref != GAP:
                r += 1
            if asm != GAP:
                a += 1

        return self._call(fragment, klass, votes, len(hits), disagreements)

    @staticmethod
    def _call(
        fragment: Fragment,
        klass: Klass,
        votes: int,
        diagnostic_positions: int,
        disagreements: int,
        *,
        overflow: bool = False,
    ) -> FragmentCall:
        return FragmentCall(
            id=fragment.id,
            segment=fragment.segment,
            start=fragment.start,
            end=fragment.end,
            klass=klass,
            votes=votes,
            diagnostic_positions=diagnostic_positions,
            disagreements=disagreements,
            overflow=overflow,
        )


class PairTally:
    """Joins paired halves and accumulates finished calls.

    ``back`` halves wait here until their ``front`` arrives; the merged call
    and every ``whole`` fragment go into :attr:`stats`. Not thread safe: feed
    it from a single consumer.
    """

    def __init__(self) -> None:
        self.stats = SummaryStatistics()
        self.pending: Dict[str, FragmentCall] = {}
        self.anomalies: Dict[str, int] = {
            "front_without_back": 0,
            "unknown_segment": 0,
            "local_overflow": 0,
        }

    def add(self, call: FragmentCall) -> Optional[FragmentCall]:
        """Record a call; returns the finished call, if this one completes one."""
        if call.overflow:
            self.anomalies["local_overflow"] += 1

        if call.segment == BACK:
            self.pending[call.id] = call
            return None

        if call.segment == FRONT:
            back = self.pending.pop(call.id, None)
            if back is None:
                self.anomalies["front_without_back"] += 1
                logger.warning("%s/f is missing its back.", call.id)
            else:
                call = FragmentCall(
                    id=call.id,
                    segment=WHOLE,
                    start=min(call.start, back.start),
                    end=max(call.end, back.end),
                    klass=merge(call.klass, back.klass),
                    votes=call.votes + back.votes,
                    diagnostic_positions=call.diagnostic_positions + back.diagnostic_positions,
                    disagreements=call.disagreements + back.disagreements,
                    overflow=call.overflow or back.overflow,
                )
        elif call.segment != WHOLE:
            self.anomalies["unknown_segment"] += 1
            logger.warning("don't know how to handle fragment type %r (%s)", call.segment, call.id)
            return None

        self.stats.add(call.klass)
        return call

    def orphans(self) -> List[FragmentCall]:
        """``back`` halves whose ``front`` never arrived."""
        return list(self.pending.values())
