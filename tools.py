import calendar
import datetime
from typing import Iterable


class MathTools:
    """Pure helpers used by the statistics service."""

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @staticmethod
    def volume(sets: Iterable[tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * weight
        return vol

    @staticmethod
    def distinct_days(moments: Iterable[datetime.datetime]) -> list[datetime.date]:
        """Return the sorted calendar days touched by ``moments``."""
        return sorted({m.date() for m in moments})

    @staticmethod
    def longest_run(days: list[datetime.date]) -> int:
        """Length of the longest run of consecutive days in sorted ``days``."""
        if not days:
            return 0
        longest = current = 1
        for prev, nxt in zip(days, days[1:]):
            gap = (nxt - prev).days
            if gap == 1:
                current += 1
                longest = max(longest, current)
            elif gap > 1:
                current = 1
        return longest

    @staticmethod
    def run_ending_at(days: list[datetime.date], today: datetime.date) -> int:
        """Run of consecutive days ending at the last of ``days``.

        The run only counts while alive: the last day must be ``today`` or the
        day before, otherwise 0.
        """
        if not days or (today - days[-1]).days not in (0, 1):
            return 0
        current = 1
        for prev, nxt in zip(reversed(days[:-1]), reversed(days[1:])):
            if (nxt - prev).days != 1:
                break
            current += 1
        return current

    @staticmethod
    def week_start(day: datetime.date, first_weekday: int | None = None) -> datetime.date:
        """First day of the calendar week containing ``day``.

        ``first_weekday`` follows :mod:`calendar` numbering (0 = Monday) and
        defaults to :func:`calendar.firstweekday`.
        """
        if first_weekday is None:
            first_weekday = calendar.firstweekday()
        offset = (day.weekday() - first_weekday) % 7
        return day - datetime.timedelta(days=offset)
