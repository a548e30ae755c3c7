"""Square highlighting for the current selection.

compute_highlights() is pure and renderer-agnostic; resolve_styles() turns the kinds into
the style dicts a board renderer applies per square.
"""
from __future__ import annotations

from typing import Dict, Optional

from . import rules
from .models import HighlightKind

# filled circle for captures, small dot for quiet moves, tinted origin square
HIGHLIGHT_STYLES: Dict[HighlightKind, Dict[str, str]] = {
    HighlightKind.CAPTURE: {
        "background": "radial-gradient(circle, rgba(0,0,0,.1) 85%, transparent 85%)",
        "borderRadius": "50%",
    },
    HighlightKind.QUIET: {
        "background": "radial-gradient(circle, rgba(0,0,0,.1) 25%, transparent 25%)",
        "borderRadius": "50%",
    },
    HighlightKind.ORIGIN: {
        "background": "rgba(255, 255, 0, 0.4)",
    },
}


def compute_highlights(fen: str, origin: Optional[str]) -> Dict[str, HighlightKind]:
    """Map each legal destination of origin to QUIET or CAPTURE, plus origin itself.

    Returns an empty mapping when nothing is selected or the piece has no legal moves.
    """
    if not origin:
        return {}
    destinations = rules.legal_destinations(fen, origin)
    if not destinations:
        return {}
    mover = rules.piece_at(fen, origin)
    marks: Dict[str, HighlightKind] = {}
    for dest in sorted(destinations):
        target = rules.piece_at(fen, dest)
        capture = target is not None and mover is not None and target[0] is not mover[0]
        marks[dest] = HighlightKind.CAPTURE if capture else HighlightKind.QUIET
    marks[origin] = HighlightKind.ORIGIN
    return marks


def resolve_styles(marks: Dict[str, HighlightKind]) -> Dict[str, Dict[str, str]]:
    return {sq: dict(HIGHLIGHT_STYLES[kind]) for sq, kind in marks.items()}
