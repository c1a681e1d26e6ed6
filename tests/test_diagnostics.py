from contamcheck.diagnostics import DiagnosticPositionIndex, is_diagnostic, is_transversion
from contamcheck.liftover import CoordinateLifter
from contamcheck.myers import Alignment, align


def test_only_real_differences_are_diagnostic():
    # columns: A/G, N/T, C/-, T/C
    aln = Alignment(seq_a="ANCT", seq_b="GT-C", distance=3)
    index = DiagnosticPositionIndex.build(aln)
    assert [(e.position, e.ref, e.asm) for e in index] == [(0, "A", "G"), (2, "T", "C")]
    assert index.positions == [0, 2]
    assert index.describe() == "<0:A,G>, <2:T,C>"


def test_predicates():
    assert is_diagnostic("A", "G")
    assert not is_diagnostic("A", "A")
    assert not is_diagnostic("N", "A")
    assert not is_diagnostic("A", "-")
    assert is_transversion("A", "C")
    assert is_transversion("G", "T")
    assert not is_transversion("A", "G")
    assert not is_transversion("C", "T")


def test_transversions_only():
    aln = Alignment(seq_a="AACT", seq_b="GCCC", distance=3)
    assert len(DiagnosticPositionIndex.build(aln)) == 3
    index = DiagnosticPositionIndex.build(aln, transversions_only=True)
    assert [(e.position, e.ref, e.asm) for e in index] == [(1, "A", "C")]
    assert index.transversions() == 1


def test_span_restricts_positions():
    aln = Alignment(seq_a="ANCT", seq_b="GT-C", distance=3)
    assert DiagnosticPositionIndex.build(aln, span_start=1).positions == [2]
    assert DiagnosticPositionIndex.build(aln, span_end=2).positions == [0]


def test_overlapping_is_inclusive():
    aln = Alignment(seq_a="ANCT", seq_b="GT-C", distance=3)
    index = DiagnosticPositionIndex.build(aln)
    assert [e.position for e in index.overlapping(0, 1)] == [0]
    assert index.overlapping(1, 1) == []
    assert [e.position for e in index.overlapping(0, 2)] == [0, 2]
    assert [e.position for e in index.overlapping(2, 100)] == [2]


def test_index_from_real_alignment():
    aln = align("ACGTACGTACGT", "ACGTACCTACGT")
    index = DiagnosticPositionIndex.build(aln)
    assert [(e.position, e.ref, e.asm) for e in index] == [(6, "G", "C")]


def test_lift_across_assembly_gap():
    lifter = CoordinateLifter(Alignment(seq_a="ACGTTAC", seq_b="ACG-TAC", distance=1))
    assert lifter.lift(0, 3) == "ACG"
    # the reference-only T travels with the assembly base after it
    assert lifter.columns(3, 5) == range(3, 6)
    assert lifter.lift(3, 5) == "TTA"
    assert lifter.lift(0, 6) == "ACGTTAC"


def test_lift_across_reference_gap():
    lifter = CoordinateLifter(Alignment(seq_a="AC-GT", seq_b="ACAGT", distance=1))
    assert lifter.columns(1, 4) == range(1, 4)
    assert lifter.lift(1, 4) == "CG"
    assert lifter.lift(2, 3) == ""
