from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pysam

from .models import BACK, FRONT, WHOLE, Fragment, NamedSequence, parse_segment

logger = logging.getLogger(__name__)


def read_fasta_ref(path: str | Path, name: Optional[str] = None) -> NamedSequence:
    """Read one record from a (optionally gzipped) FASTA file.

    Returns the record called ``name``, or the first record if ``name`` is None.
    Symbols are upper-cased.
    """
    p = Path(path)
    if not p.exists():
        raise ValueError(f"FASTA file does not exist: {p}")

    with pysam.FastxFile(str(p)) as fh:
        for entry in fh:
            if name is None or entry.name == name:
                seq = (entry.sequence or "").upper()
                if not seq:
                    raise ValueError(f"FASTA record '{entry.name}' in {p} is empty.")
                return NamedSequence(id=str(entry.name), symbols=seq)

    if name is None:
        raise ValueError(f"No FASTA records found in {p}.")
    raise ValueError(f"FASTA record '{name}' not found in {p}.")


def fragment_from_read(read: pysam.AlignedSegment, segment: str) -> Optional[Fragment]:
    """Turn an aligned read into a :class:`Fragment` on assembly coordinates.

    The CIGAR is walked once: aligned bases fill one slot per assembly
    position, deletions leave a gap, and insertions are attached to the
    slot of the preceding aligned position. Clips and insertions in front of
    the first aligned position do not belong to any slot and are dropped.
    """
    seq = read.query_sequence
    if read.cigartuples is None or seq is None or read.reference_end is None:
        return None
    seq = seq.upper()

    bases: List[str] = []
    ins: List[str] = []
    query_pos = 0

    for op, length in read.cigartuples:
        if op in (0, 7, 8):  # M, =, X: consumes query and ref
            bases.extend(seq[query_pos : query_pos + length])
            ins.extend([""] * length)
            query_pos += length
        elif op == 1:  # I: consumes query only
            if ins:
                ins[-1] += seq[query_pos : query_pos + length]
            query_pos += length
        elif op in (2, 3):  # D, N: consumes ref only
            bases.extend("-" * length)
            ins.extend([""] * length)
        elif op == 4:  # S: consumes query only
            query_pos += length
        else:  # H, P and anything rarer consume nothing we keep
            continue

    if not bases:
        return None

    start0 = int(read.reference_start)
    return Fragment(
        id=str(read.query_name),
        segment=segment,
        start=start0,
        end=start0 + len(bases) - 1,
        seq="".join(bases),
        insertions=tuple(ins),
    )


def _segment_of(read: pysam.AlignedSegment, segment_tag: Optional[str]) -> str:
    if segment_tag is not None and read.has_tag(segment_tag):
        return parse_segment(str(read.get_tag(segment_tag)))
    if read.is_paired:
        return FRONT if read.is_read1 else BACK
    return WHOLE


def load_fragments(
    bam_path: str | Path,
    contig: str,
    *,
    min_mapq: int = 0,
    skip_duplicates: bool = True,
    segment_tag: Optional[str] = None,
) -> Tuple[List[Fragment], Dict[str, int]]:
    """Read fragments mapped to ``contig`` from a BAM/SAM file.

    Returns the fragments, every ``back`` half first (otherwise in file order),
    and counters about skipped records.
    """
    counts: Dict[str, int] = {
        "reads_total": 0,
        "reads_other_contig": 0,
        "reads_unmapped": 0,
        "reads_skipped_secondary": 0,
        "reads_skipped_supplementary": 0,
        "reads_skipped_duplicates": 0,
        "reads_skipped_qcfail": 0,
        "reads_skipped_mapq": 0,
        "fragments": 0,
    }

    fragments: List[Fragment] = []
    with pysam.AlignmentFile(str(bam_path), "rb" if str(bam_path).endswith(".bam") else "r") as bam:
        if contig not in bam.references:
            raise ValueError(
                f"Assembly contig '{contig}' is not in the BAM header "
                f"(found: {', '.join(bam.references[:5])}{'...' if len(bam.references) > 5 else ''})."
            )

        for read in bam.fetch(until_eof=True):
            counts["reads_total"] += 1

            if read.is_unmapped:
                counts["reads_unmapped"] += 1
                continue
            if read.reference_name != contig:
                counts["reads_other_contig"] += 1
                continue
            if read.is_secondary:
                counts["reads_skipped_secondary"] += 1
                continue
            if read.is_supplementary:
                counts["reads_skipped_supplementary"] += 1
                continue
            if read.is_qcfail:
                counts["reads_skipped_qcfail"] += 1
                continue
            if skip_duplicates and read.is_duplicate:
                counts["reads_skipped_duplicates"] += 1
                continue
            if read.mapping_quality < min_mapq:
                counts["reads_skipped_mapq"] += 1
                continue

            frag = fragment_from_read(read, _segment_of(read, segment_tag))
            if frag is not None:
                fragments.append(frag)

    # backs first, so that every front finds its mate already cached
    fragments.sort(key=lambda f: f.segment != BACK)
    counts["fragments"] = len(fragments)
    logger.info("Loaded %d fragments on %s from %s", len(fragments), contig, bam_path)
    return fragments, counts
