"""
Small explainability formatting helpers.

Used by the selection controller's debug logs and by hosts that want a compact text view
of a ranking.
"""

from __future__ import annotations

from cakecompiler.domain.happiness import CakeRanking, RankedCake


def one_line_summary(ranked: RankedCake) -> str:
    """Render a compact single-line summary for a ranked cake."""
    score = ranked.score
    weights = score.weights_used.normalized()
    return (
        f"#{ranked.rank} {ranked.cake_id} total={score.total_score:.3f} | "
        f"self={score.self_alignment:.3f} (w={weights.self_weight:.2f}) | "
        f"partner={score.partner_alignment:.3f} (w={weights.partner_weight:.2f})"
    )


def ranking_summary(ranking: CakeRanking) -> str:
    if ranking.is_empty:
        return "(no candidates)"
    return "\n".join(one_line_summary(r) for r in ranking.rankings)
