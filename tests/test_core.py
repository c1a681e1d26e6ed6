import pysam
import pytest

from contamcheck.classifier import merge, vote
from contamcheck.iupac import consistent, equalities, matches
from contamcheck.loaders import fragment_from_read
from contamcheck.models import WHOLE, Fragment, Klass, parse_segment


def make_read(seq: str, start: int = 100, cigar=None) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = "r1"
    a.query_sequence = seq
    a.flag = 0
    a.reference_start = start
    a.mapping_quality = 60
    a.cigartuples = cigar if cigar is not None else [(0, len(seq))]  # M
    a.query_qualities = pysam.qualitystring_to_array("I" * len(seq))
    return a


def test_fragment_from_simple_match():
    frag = fragment_from_read(make_read("ACGTACGTAA", start=100), WHOLE)
    assert frag.start == 100
    assert frag.end == 109
    assert frag.seq == "ACGTACGTAA"
    assert frag.read_sequence() == "ACGTACGTAA"


def test_fragment_with_insertion_and_deletion():
    # 3M 2I 3M 1D 2M
    read = make_read("ACGTTACGTA", start=100, cigar=[(0, 3), (1, 2), (0, 3), (2, 1), (0, 2)])
    frag = fragment_from_read(read, WHOLE)
    assert frag.start == 100
    assert frag.end == 108
    assert frag.seq == "ACGACG-TA"
    assert frag.insertions[2] == "TT"
    assert frag.read_sequence() == "ACGTTACGTA"


def test_fragment_drops_clips_and_leading_insertions():
    frag = fragment_from_read(make_read("TTACGT", start=5, cigar=[(4, 2), (0, 4)]), WHOLE)
    assert (frag.start, frag.end, frag.seq) == (5, 8, "ACGT")

    frag = fragment_from_read(make_read("GGACG", start=5, cigar=[(1, 2), (0, 3)]), WHOLE)
    assert frag.seq == "ACG"
    assert frag.read_sequence() == "ACG"


def test_fragment_length_must_match_span():
    with pytest.raises(ValueError):
        Fragment(id="x", segment=WHOLE, start=0, end=3, seq="ACG")


def test_ambiguity_matching():
    assert matches("R", "A")
    assert matches("R", "G")
    assert not matches("R", "C")
    assert matches("N", "T")
    assert matches("a", "A")
    # unknown symbols and gaps match nothing
    assert not matches("X", "A")
    assert not matches("-", "N")
    assert ("R", "A") in equalities()
    assert ("A", "G") not in equalities()


def test_consistent_gaps_and_deamination():
    assert consistent("-", "A")
    assert consistent("C", "-")
    assert not consistent("C", "T")
    assert consistent("C", "T", ancient=True)
    assert consistent("G", "A", ancient=True)
    assert not consistent("G", "T", ancient=True)
    # the observed base is never folded
    assert not consistent("T", "C", ancient=True)


def test_vote_rules():
    assert vote(Klass.UNKNOWN, True, False) == Klass.CLEAN
    assert vote(Klass.UNKNOWN, False, True) == Klass.DIRT
    assert vote(Klass.DIRT, True, False) == Klass.CONFLICT
    assert vote(Klass.CLEAN, False, True) == Klass.CONFLICT
    assert vote(Klass.CLEAN, True, False) == Klass.CLEAN
    assert vote(Klass.CLEAN, True, True) == Klass.CLEAN
    assert vote(Klass.UNKNOWN, True, True) == Klass.UNKNOWN
    assert vote(Klass.CONFLICT, True, False) == Klass.CONFLICT
    for k in Klass:
        assert vote(k, False, False) == Klass.NONSENSE


def test_merge_rules():
    assert merge(Klass.UNKNOWN, Klass.DIRT) == Klass.DIRT
    assert merge(Klass.CLEAN, Klass.UNKNOWN) == Klass.CLEAN
    assert merge(Klass.CLEAN, Klass.DIRT) == Klass.CONFLICT
    assert merge(Klass.NONSENSE, Klass.DIRT) == Klass.NONSENSE
    assert merge(Klass.CONFLICT, Klass.NONSENSE) == Klass.NONSENSE
    assert merge(Klass.CONFLICT, Klass.CLEAN) == Klass.CONFLICT
    for k in Klass:
        assert merge(k, k) == k
        assert merge(Klass.UNKNOWN, k) == k
        for other in Klass:
            assert merge(k, other) == merge(other, k)


def test_segment_codes():
    assert parse_segment("b") == "back"
    assert parse_segment("F") == "front"
    assert parse_segment("a") == "whole"
    assert parse_segment("whole") == "whole"
    assert parse_segment("x") == "x"
