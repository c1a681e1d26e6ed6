from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple

BACK = "back"
FRONT = "front"
WHOLE = "whole"

SEGMENT_ROLES = (BACK, FRONT, WHOLE)

# single-letter codes used by older fragment sources
_SEGMENT_CODES = {"b": BACK, "f": FRONT, "a": WHOLE}


def parse_segment(value: str) -> str:
    """Normalise a segment role; unknown values are returned unchanged."""
    v = value.strip().lower()
    return _SEGMENT_CODES.get(v, v)


@dataclass(frozen=True)
class NamedSequence:
    """An identified sequence over nucleotide (ambiguity) symbols."""

    id: str
    symbols: str

    def __len__(self) -> int:
        return len(self.symbols)


@dataclass(frozen=True)
class DiagnosticPosition:
    """An assembly coordinate where reference and assembly disagree.

    Attributes
    ----------
    position:
        0-based coordinate on the (ungapped) assembly.
    ref:
        Reference base in that alignment column.
    asm:
        Assembly base in that alignment column.
    """

    position: int
    ref: str
    asm: str


@dataclass(frozen=True)
class Fragment:
    """One read (or half of a pair) placed against the assembly.

    Coordinates are 0-based and inclusive on both ends. ``seq`` holds one
    symbol per assembly position in ``[start, end]`` (``'-'`` where the read
    has a deletion); ``insertions[i]`` holds read bases inserted after
    ``seq[i]``.
    """

    id: str
    segment: str
    start: int
    end: int
    seq: str
    insertions: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"fragment {self.id}: end {self.end} < start {self.start}")
        if len(self.seq) != self.end - self.start + 1:
            raise ValueError(
                f"fragment {self.id}: sequence length {len(self.seq)} does not span "
                f"{self.start}..{self.end}"
            )
        if self.insertions and len(self.insertions) != len(self.seq):
            raise ValueError(f"fragment {self.id}: one insertion slot per position expected")

    def read_sequence(self) -> str:
        """The read as sequenced: aligned bases plus insertions, gaps dropped."""
        parts = []
        ins = self.insertions or ("",) * len(self.seq)
        for base, extra in zip(self.seq, ins):
            if base != "-":
                parts.append(base)
            if extra:
                parts.append(extra)
        return "".join(parts)


class Klass(enum.IntEnum):
    """Per-fragment verdict."""

    UNKNOWN = 0
    CLEAN = 1
    DIRT = 2
    CONFLICT = 3
    NONSENSE = 4

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Klass.UNKNOWN: "unclassified",
    Klass.CLEAN: "clean",
    Klass.DIRT: "polluting",
    Klass.CONFLICT: "conflicting",
    Klass.NONSENSE: "nonsensical",
}


@dataclass(frozen=True)
class FragmentCall:
    """Classification of one fragment (or of a merged pair)."""

    id: str
    segment: str
    start: int
    end: int
    klass: Klass
    votes: int
    diagnostic_positions: int = 0
    disagreements: int = 0
    overflow: bool = False


@dataclass(frozen=True)
class ContaminationEstimate:
    """Point estimate and 95% Wilson interval, all in percent."""

    lower: float
    estimate: float
    upper: float
    dirt: int
    n: int

    def render(self) -> str:
        return f"({self.lower:.1f} .. {self.estimate:.1f} .. {self.upper:.1f}%)"


def render_estimate(est: Optional[ContaminationEstimate]) -> str:
    return est.render() if est is not None else "(n/a)"
