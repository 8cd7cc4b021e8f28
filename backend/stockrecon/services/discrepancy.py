# Overview: Discrepancy rule shared by every snapshot read path.

from __future__ import annotations

from dataclasses import dataclass

# Relative tolerance before a cell is highlighted
HIGHLIGHT_THRESHOLD = 0.10


@dataclass(frozen=True)
class Discrepancy:
    difference: float
    highlight: bool


def compute_discrepancy(theoretical: float, actual: float) -> Discrepancy:
    """
    difference = actual - theoretical.

    A cell is highlighted when its theoretical stock is negative, or when the
    absolute difference exceeds 10% of the larger absolute value. Two zeros
    give difference 0 and no highlight.
    """
    difference = actual - theoretical
    highlight = theoretical < 0 or abs(difference) > HIGHLIGHT_THRESHOLD * max(
        abs(theoretical), abs(actual)
    )
    return Discrepancy(difference=difference, highlight=highlight)
