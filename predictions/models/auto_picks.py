"""Result models for the auto-assignment and reminder sweeps."""

from pydantic import BaseModel


class AutoPickResult(BaseModel):
    picks_assigned: int = 0
    picks_failed: int = 0
    gameweeks_processed: int = 0

    def merge(self, other: "AutoPickResult") -> "AutoPickResult":
        return AutoPickResult(
            picks_assigned=self.picks_assigned + other.picks_assigned,
            picks_failed=self.picks_failed + other.picks_failed,
            gameweeks_processed=self.gameweeks_processed + other.gameweeks_processed,
        )


class ReminderResult(BaseModel):
    reminders_sent: int = 0
    reminders_failed: int = 0
