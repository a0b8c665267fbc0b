"""
Decision gate: classifies a daily check-in as pass or fail.
"""

from enum import Enum

QUIZ_SCORE_THRESHOLD = 7
FOCUS_MINUTES_THRESHOLD = 60


class Outcome(str, Enum):
    """Check-in outcome."""
    PASS = "pass"
    FAIL = "fail"

    @property
    def label(self) -> str:
        """Status label recorded on the daily log."""
        return "On Track" if self is Outcome.PASS else "Needs Intervention"


def evaluate(quiz_score: int, focus_minutes: int) -> Outcome:
    """
    Pass iff both metrics are strictly above their thresholds.

    Out-of-range inputs are compared as-is; range checks belong to the caller.
    """
    if quiz_score > QUIZ_SCORE_THRESHOLD and focus_minutes > FOCUS_MINUTES_THRESHOLD:
        return Outcome.PASS
    return Outcome.FAIL
