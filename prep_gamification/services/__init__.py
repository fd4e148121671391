"""
Service Layer Package

Business logic that sits between callers (web handlers, workers) and the
data access layer (database queries).

Core Services:
- GamificationService: practice attempts, sessions, XP, streaks,
  achievements, stats and history
"""

from prep_gamification.services.gamification_service import GamificationService, CORRECT_SCORE_THRESHOLD

__all__ = [
    "GamificationService",
    "CORRECT_SCORE_THRESHOLD",
]
