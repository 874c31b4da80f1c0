"""Consistency Scoring — bounded score from contradiction history, blended with the oracle.

Invariants:
    - All functions are PURE: no IO, no async
    - heuristic_score is always within [0, 100]
    - Unresolved contradictions cost 10, resolved ones restore 5 — net tension dominates
    - blend_scores rounds half up and stays within [0, 100]

Design Decisions:
    - Resolved contradictions partially restore the score: resolving one shows reflection
    - Oracle scores outside [0, 100] are rejected (not clamped): out-of-range output is a
      parse failure, and parse failures fall back to the heuristic
"""

import math

UNRESOLVED_PENALTY = 10
RESOLVED_CREDIT = 5
MAX_SCORE = 100
MIN_SCORE = 0


def heuristic_score(unresolved: int, resolved: int) -> int:
    """clamp(100 - 10·U + 5·R, 0, 100)."""
    raw = MAX_SCORE - UNRESOLVED_PENALTY * unresolved + RESOLVED_CREDIT * resolved
    return max(MIN_SCORE, min(MAX_SCORE, raw))


def is_valid_oracle_score(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value) and MIN_SCORE <= value <= MAX_SCORE


def blend_scores(heuristic: int, oracle: float) -> int:
    """round((heuristic + oracle) / 2), half up."""
    blended = math.floor((heuristic + oracle) / 2 + 0.5)
    return max(MIN_SCORE, min(MAX_SCORE, blended))
