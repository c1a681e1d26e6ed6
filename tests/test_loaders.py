from pathlib import Path

import pysam
import pytest

from contamcheck.loaders import load_fragments, read_fasta_ref
from contamcheck.models import BACK, FRONT, WHOLE


def _read(name: str, start: int, *, flag: int = 0, mapq: int = 60, tags=None) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = "ACGTACGTAC"
    a.flag = flag
    a.reference_id = 0
    a.reference_start = start
    a.mapping_quality = mapq
    a.cigartuples = [(0, 10)]
    a.query_qualities = pysam.qualitystring_to_array("I" * 10)
    if tags:
        a.set_tags(tags)
    return a


def _write_bam(path: Path, reads) -> Path:
    header = {"HD": {"VN": "1.6", "SO": "coordinate"}, "SQ": [{"SN": "asm", "LN": 200}]}
    with pysam.AlignmentFile(str(path), "wb", header=header) as bam:
        for r in sorted(reads, key=lambda r: r.reference_start):
            bam.write(r)
    return path


def test_read_fasta_ref(tmp_path: Path):
    fa = tmp_path / "refs.fa"
    fa.write_text(">one\nacgt\nNNAC\n>two desc\nGGGG\n", encoding="utf-8")

    first = read_fasta_ref(fa)
    assert first.id == "one"
    assert first.symbols == "ACGTNNAC"
    assert read_fasta_ref(fa, "two").symbols == "GGGG"

    with pytest.raises(ValueError):
        read_fasta_ref(fa, "three")
    with pytest.raises(ValueError):
        read_fasta_ref(tmp_path / "missing.fa")


def test_load_fragments_roles_and_filters(tmp_path: Path):
    paired, read1, read2 = 0x1, 0x40, 0x80
    bam = _write_bam(
        tmp_path / "f.bam",
        [
            _read("pair", 10, flag=paired | read1),
            _read("single", 20),
            _read("dup", 30, flag=0x400),
            _read("secondary", 40, flag=0x100),
            _read("pair", 50, flag=paired | read2),
            _read("lowq", 60, mapq=5),
        ],
    )

    fragments, counts = load_fragments(bam, "asm", min_mapq=10)
    assert [(f.id, f.segment) for f in fragments] == [
        ("pair", BACK),
        ("pair", FRONT),
        ("single", WHOLE),
    ]
    assert fragments[0].start == 50
    assert fragments[0].end == 59
    assert counts["reads_total"] == 6
    assert counts["reads_skipped_duplicates"] == 1
    assert counts["reads_skipped_secondary"] == 1
    assert counts["reads_skipped_mapq"] == 1
    assert counts["fragments"] == 3

    fragments, counts = load_fragments(bam, "asm", skip_duplicates=False)
    assert "dup" in {f.id for f in fragments}


def test_segment_tag_overrides_flags(tmp_path: Path):
    bam = _write_bam(
        tmp_path / "t.bam",
        [
            _read("x", 10, tags=[("FS", "b")]),
            _read("x", 30, tags=[("FS", "f")]),
            _read("y", 40, tags=[("FS", "?")]),
        ],
    )
    fragments, _ = load_fragments(bam, "asm", segment_tag="FS")
    assert [(f.id, f.segment) for f in fragments] == [("x", BACK), ("x", FRONT), ("y", "?")]


def test_unknown_contig(tmp_path: Path):
    bam = _write_bam(tmp_path / "u.bam", [_read("single", 20)])
    with pytest.raises(ValueError, match="not in the BAM header"):
        load_fragments(bam, "chrM")
