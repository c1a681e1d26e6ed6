"""contamcheck: classify assembled fragments as endogenous or contaminant.

Public API is intentionally small; most users should use the CLI:

    contamcheck check --reference ref.fa --assembly consensus.fa --bam fragments.bam

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
