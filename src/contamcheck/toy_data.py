from __future__ import annotations

import random
from pathlib import Path
from typing import Any, Dict, List

import pysam

from .utils import ensure_outdir, write_json

_TRANSITION = {"A": "G", "G": "A", "C": "T", "T": "C"}
_TRANSVERSION = {"A": "C", "C": "A", "G": "T", "T": "G"}

READ_LEN = 50


def _write_fasta(path: Path, contig: str, seq: str) -> None:
    lines = [f">{contig}"]
    for i in range(0, len(seq), 60):
        lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _make_read(
    name: str,
    start0: int,
    seq: str,
    *,
    flag: int = 0,
    mapq: int = 60,
) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = flag
    a.reference_id = 0
    a.reference_start = start0
    a.mapping_quality = mapq
    a.cigartuples = [(0, len(seq))]
    a.query_qualities = pysam.qualitystring_to_array("I" * len(seq))
    return a


def make_toy_data(*, outdir: str | Path) -> Dict[str, Any]:
    """Create a tiny reference, assembly and fragment BAM for demos/tests.

    The assembly differs from the reference by one transition and two
    transversions. Fragments are copied either from the assembly (clean) or
    from the reference (polluting); one pair has a clean and a polluting half.

    Returns
    -------
    dict
        Paths to the generated files and the expected class counts.
    """
    outdir_p = ensure_outdir(outdir)
    rng = random.Random(7)

    ref_seq = "".join(rng.choice("ACGT") for _ in range(300))
    asm = list(ref_seq)
    asm[60] = _TRANSITION[ref_seq[60]]
    asm[150] = _TRANSVERSION[ref_seq[150]]
    asm[240] = _TRANSVERSION[ref_seq[240]]
    asm_seq = "".join(asm)

    ref_fa = outdir_p / "reference.fa"
    asm_fa = outdir_p / "assembly.fa"
    _write_fasta(ref_fa, "ref", ref_seq)
    _write_fasta(asm_fa, "asm", asm_seq)

    reads: List[pysam.AlignedSegment] = []

    # 6 clean and 2 polluting single reads over each diagnostic position
    for site in (60, 150, 240):
        for i in range(8):
            start0 = site - 10 - i
            source = asm_seq if i < 6 else ref_seq
            reads.append(_make_read(f"s{site}_{i}", start0, source[start0 : start0 + READ_LEN]))

    # a read between diagnostic positions
    reads.append(_make_read("blank", 80, asm_seq[80 : 80 + READ_LEN]))

    # clean pair, and a pair with one polluting half
    paired, read1, read2 = 0x1, 0x40, 0x80
    reads.append(_make_read("p_clean", 40, asm_seq[40:90], flag=paired | read1))
    reads.append(_make_read("p_clean", 130, asm_seq[130:180], flag=paired | read2))
    reads.append(_make_read("p_mixed", 45, asm_seq[45:95], flag=paired | read1))
    reads.append(_make_read("p_mixed", 220, ref_seq[220:270], flag=paired | read2))

    reads.sort(key=lambda r: r.reference_start)

    bam_path = outdir_p / "fragments.bam"
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": "asm", "LN": len(asm_seq)}],
    }
    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in reads:
            bam.write(r)
    pysam.index(str(bam_path))

    summary = {
        "reference_fa": str(ref_fa),
        "assembly_fa": str(asm_fa),
        "fragments_bam": str(bam_path),
        "outdir": str(outdir_p),
        "expected": {"unclassified": 1, "clean": 19, "polluting": 6, "conflicting": 1},
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
