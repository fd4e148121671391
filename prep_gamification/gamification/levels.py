"""
Level Table

Fixed progression curve mapping cumulative XP to a level and title.
Every user starts at level 1 (0 XP); level 12 is the cap.
"""

import math
from typing import Dict, Any

from prep_gamification.models.stats import LevelDefinition

LEVELS: tuple[LevelDefinition, ...] = (
    LevelDefinition(level=1, title="Applicant", xp_required=0),
    LevelDefinition(level=2, title="Candidate", xp_required=100),
    LevelDefinition(level=3, title="Intern", xp_required=300),
    LevelDefinition(level=4, title="Junior Dev", xp_required=600),
    LevelDefinition(level=5, title="Developer", xp_required=1000),
    LevelDefinition(level=6, title="Mid-Level", xp_required=1500),
    LevelDefinition(level=7, title="Senior Dev", xp_required=2200),
    LevelDefinition(level=8, title="Lead", xp_required=3000),
    LevelDefinition(level=9, title="Staff Engineer", xp_required=4000),
    LevelDefinition(level=10, title="Principal", xp_required=5500),
    LevelDefinition(level=11, title="Distinguished", xp_required=7500),
    LevelDefinition(level=12, title="Fellow", xp_required=10000),
)

MAX_LEVEL = LEVELS[-1].level


def level_for_xp(total_xp: int) -> Dict[str, Any]:
    """
    Calculate level and progress from total XP

    The table is scanned in ascending order and the last level whose
    xp_required does not exceed total_xp wins, so a total exactly equal to a
    threshold is already at that level.

    Returns:
        {
            'level': int,
            'title': str,
            'xp_for_current_level': int,
            'xp_for_next_level': int,       # threshold of the next level (own threshold at max)
            'xp_into_current_level': int,
            'xp_needed_for_next_level': int, # 0 at max level
            'progress_percent': int          # 0-100
        }
    """
    total_xp = max(0, total_xp)

    current_index = 0
    for index, definition in enumerate(LEVELS):
        if total_xp >= definition.xp_required:
            current_index = index
        else:
            break

    current = LEVELS[current_index]
    next_level = LEVELS[current_index + 1] if current_index + 1 < len(LEVELS) else None

    xp_into_level = total_xp - current.xp_required
    xp_needed = next_level.xp_required - current.xp_required if next_level else 0

    if xp_needed > 0:
        # half-up rounding
        progress_percent = min(100, max(0, math.floor(100 * xp_into_level / xp_needed + 0.5)))
    else:
        progress_percent = 100

    return {
        "level": current.level,
        "title": current.title,
        "xp_for_current_level": current.xp_required,
        "xp_for_next_level": next_level.xp_required if next_level else current.xp_required,
        "xp_into_current_level": xp_into_level,
        "xp_needed_for_next_level": xp_needed,
        "progress_percent": progress_percent,
    }


def is_level_up(previous_total_xp: int, new_total_xp: int) -> bool:
    """True if moving from previous_total_xp to new_total_xp crosses a level"""
    return level_for_xp(new_total_xp)["level"] > level_for_xp(previous_total_xp)["level"]
