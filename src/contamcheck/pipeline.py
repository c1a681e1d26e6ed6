from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from tqdm import tqdm

from .classifier import FragmentClassifier, PairTally
from .diagnostics import DiagnosticPositionIndex
from .loaders import load_fragments, read_fasta_ref
from .local_align import EdlibLocalAligner
from .models import Fragment, FragmentCall, Klass, NamedSequence, render_estimate
from .myers import Alignment, AlignMode, align
from .utils import ensure_outdir, open_textmaybe_gzip, write_json
from .validation import check_alphabet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckOptions:
    """Knobs of a contamination check.

    span_start/span_end restrict diagnostic positions to assembly coordinates
    ``[span_start, span_end)`` (0-based).
    """

    ancient: bool = False
    transversions_only: bool = False
    span_start: int = 0
    span_end: Optional[int] = None
    max_distance: int = 1000
    local_max_distance: Optional[int] = None
    min_mapq: int = 0
    skip_duplicates: bool = True
    segment_tag: Optional[str] = None


@dataclass
class CheckResult:
    reference: NamedSequence
    assembly: NamedSequence
    alignment: Alignment
    index: DiagnosticPositionIndex
    calls: List[FragmentCall]
    tally: PairTally
    read_counts: Dict[str, int]
    runtime_seconds: float


def align_references(
    reference: NamedSequence, assembly: NamedSequence, options: CheckOptions
) -> tuple[Alignment, DiagnosticPositionIndex]:
    """Globally align reference and assembly and collect diagnostic positions.

    Raises :class:`~contamcheck.myers.AlignmentOverflow` if they differ in more
    than ``options.max_distance`` places.
    """
    aln = align(reference.symbols, assembly.symbols, AlignMode.GLOBAL, options.max_distance)
    logger.info("%d total differences between reference and assembly.", aln.distance)

    index = DiagnosticPositionIndex.build(
        aln,
        transversions_only=options.transversions_only,
        span_start=options.span_start,
        span_end=options.span_end,
    )
    logger.debug("diagnostic positions: %s", index.describe())
    return aln, index


def classify_fragments(
    classifier: FragmentClassifier,
    fragments: Iterable[Fragment],
    *,
    progress: bool = True,
) -> tuple[List[FragmentCall], PairTally]:
    tally = PairTally()
    calls: List[FragmentCall] = []

    it = fragments
    if progress:
        it = tqdm(it, unit="fragment", desc="Classifying fragments")

    for frag in it:
        final = tally.add(classifier.classify(frag))
        if final is not None:
            logger.debug("%s is %s (%d votes)", final.id, final.klass.label, final.votes)
            calls.append(final)

    orphans = tally.orphans()
    if orphans:
        logger.warning("%d back fragments never met their front and were not counted.", len(orphans))
    return calls, tally


def run_check(
    *,
    reference_path: str | Path,
    assembly_path: str | Path,
    bam_path: str | Path,
    options: CheckOptions,
    reference_name: Optional[str] = None,
    contig: Optional[str] = None,
    progress: bool = True,
) -> CheckResult:
    """Main workhorse: align references, classify all fragments, tally."""
    t0 = time.time()

    reference = read_fasta_ref(reference_path, reference_name)
    assembly = read_fasta_ref(assembly_path, contig)
    check_alphabet(reference)
    check_alphabet(assembly)
    logger.info(
        "reference %s (%d bp), assembly %s (%d bp)",
        reference.id,
        len(reference),
        assembly.id,
        len(assembly),
    )

    aln, index = align_references(reference, assembly, options)

    fragments, read_counts = load_fragments(
        bam_path,
        assembly.id,
        min_mapq=options.min_mapq,
        skip_duplicates=options.skip_duplicates,
        segment_tag=options.segment_tag,
    )

    classifier = FragmentClassifier(
        aln,
        index,
        aligner=EdlibLocalAligner(options.local_max_distance),
        ancient=options.ancient,
    )
    calls, tally = classify_fragments(classifier, fragments, progress=progress)

    return CheckResult(
        reference=reference,
        assembly=assembly,
        alignment=aln,
        index=index,
        calls=calls,
        tally=tally,
        read_counts=read_counts,
        runtime_seconds=time.time() - t0,
    )


def summary_lines(tally: PairTally) -> List[str]:
    """The human-readable summary block."""
    lines = ["", "Summary:"]
    for klass in Klass:
        line = f"{klass.label:<12s} fragments: {tally.stats[klass]}"
        if klass == Klass.DIRT:
            line += " " + render_estimate(tally.stats.estimate())
        lines.append(line)
    return lines


def summarize(result: CheckResult, options: CheckOptions) -> Dict[str, Any]:
    est = result.tally.stats.estimate()
    return {
        "reference": result.reference.id,
        "assembly": result.assembly.id,
        "differences": result.alignment.distance,
        "diagnostic_positions": len(result.index),
        "transversions": result.index.transversions(),
        "options": asdict(options),
        "read_counts": result.read_counts,
        "class_counts": result.tally.stats.as_dict(),
        "anomalies": {**result.tally.anomalies, "orphan_backs": len(result.tally.orphans())},
        "estimate": asdict(est) if est is not None else None,
        "votes_hist": _votes_hist(result.calls),
        "runtime_seconds": float(result.runtime_seconds),
    }


def _votes_hist(calls: Iterable[FragmentCall]) -> Dict[int, int]:
    hist: Dict[int, int] = {}
    for c in calls:
        hist[c.votes] = hist.get(c.votes, 0) + 1
    return hist


def write_outputs(result: CheckResult, options: CheckOptions, outdir: str | Path) -> Dict[str, Any]:
    """Write fragments.tsv.gz and summary.json; returns the summary."""
    outdir_path = ensure_outdir(outdir)

    with open_textmaybe_gzip(outdir_path / "fragments.tsv.gz", "wt") as fh:
        fh.write(
            "\t".join(
                [
                    "id",
                    "segment",
                    "start0",
                    "end0",
                    "diagnostic_positions",
                    "disagreements",
                    "votes",
                    "class",
                ]
            )
            + "\n"
        )
        for c in result.calls:
            fh.write(
                f"{c.id}\t{c.segment}\t{c.start}\t{c.end}\t{c.diagnostic_positions}\t"
                f"{c.disagreements}\t{c.votes}\t{c.klass.label}\n"
            )

    summary = summarize(result, options)
    write_json(outdir_path / "summary.json", summary)
    return summary
