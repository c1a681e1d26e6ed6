from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Optional, Tuple

from .iupac import BITMASK
from .models import NamedSequence

logger = logging.getLogger(__name__)


_SPAN_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


def parse_span(text: str) -> Tuple[int, int]:
    """Parse a 1-based inclusive ``M-N`` span into 0-based half-open ``(M-1, N)``."""
    m = _SPAN_RE.match(text)
    if m is None:
        raise ValueError(f"Span must look like M-N (e.g. 100-2000), got: {text!r}")
    first, last = int(m.group(1)), int(m.group(2))
    if first < 1 or last < first:
        raise ValueError(f"Span needs 1 <= M <= N, got: {text!r}")
    return first - 1, last


def check_alphabet(seq: NamedSequence, *, max_report: int = 5) -> Optional[Counter]:
    """Warn about symbols that are neither bases nor ambiguity codes.

    Such symbols never match anything, so they turn into differences.
    Returns the offending symbol counts, or None if there are none.
    """
    bad = Counter(c for c in seq.symbols if c not in BITMASK)
    if not bad:
        return None
    shown = ", ".join(f"{sym!r} x{n}" for sym, n in bad.most_common(max_report))
    logger.warning(
        "Sequence %s contains %d unrecognized symbols (%s); they match nothing.",
        seq.id,
        sum(bad.values()),
        shown,
    )
    return bad
