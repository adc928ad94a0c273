"""
Interval Resolver

Selects which dated commission range applies to a sale.
"""

from datetime import date

from ..dates import parse_date
from ..models import DateRange


class IntervalResolver:
    """Picks the applicable DateRange for a reference date."""

    def resolve(self, ranges: list[DateRange], reference_date) -> DateRange | None:
        """
        Return the range covering `reference_date`, or None.

        A range matches when start <= reference_date and (end is open or
        reference_date <= end); both bounds are inclusive.

        When several ranges overlap the date, the one with the latest start
        wins. On an exact start tie the first one seen is kept.

        A missing or unparseable reference date matches nothing, so callers
        fall back to the base rate.
        """
        ref = parse_date(reference_date)
        if ref is None:
            return None

        matched = None
        for candidate in ranges:
            if not self._covers(candidate, ref):
                continue
            if matched is None or candidate.start_date > matched.start_date:
                matched = candidate
        return matched

    @staticmethod
    def _covers(candidate: DateRange, ref: date) -> bool:
        if candidate.start_date is None:
            return False
        if ref < candidate.start_date:
            return False
        return candidate.end_date is None or ref <= candidate.end_date
