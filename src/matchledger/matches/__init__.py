"""Match cascades, statistics updaters and the league data cache."""

from .cache import WATCHED_TABLES, MatchDataCache
from .cascade import CascadeError, CascadeJournal, KeyedLocks
from .service import (
    BanDecrementer,
    MatchService,
    MatchSubmission,
    MatchValidationError,
    skip_ban_decrement,
    validate_match,
)
from .stats import GoalTallyUpdater, PlayerOfMatchCounter

__all__ = [
    "BanDecrementer",
    "CascadeError",
    "CascadeJournal",
    "GoalTallyUpdater",
    "KeyedLocks",
    "MatchDataCache",
    "MatchService",
    "MatchSubmission",
    "MatchValidationError",
    "PlayerOfMatchCounter",
    "WATCHED_TABLES",
    "skip_ban_decrement",
    "validate_match",
]
