"""
Extract Matcher

Correlates extract rows into the list of sales a run will pay out.
"""

import logging

from ..channels import ChannelProfile
from ..extracts import ENTRY_MAPPERS, ORDER_ID, ORDER_NUMBER, cell
from ..models import MatchedSale

logger = logging.getLogger(__name__)


class ExtractMatcher:
    """Joins extract rows on their business key."""

    def match(self, channel: ChannelProfile, extracts: dict) -> list[MatchedSale]:
        if channel.has_upgrade_flag:
            return self._match_normal(channel, extracts)
        return self._match_fidium(channel, extracts["rows"])

    def _match_normal(self, channel: ChannelProfile, extracts: dict) -> list[MatchedSale]:
        """
        Inner-join new installs and migrations against the detail extract.

        Rows with no detail match are dropped, and detail rows that nothing
        matched are never used. Migrations are upgrades; new installs are not.
        """
        to_entry = ENTRY_MAPPERS[channel.name]

        detail_by_order = {}
        for row in extracts["detail"]:
            key = cell(row, ORDER_NUMBER)
            if key:
                detail_by_order[key] = row

        matched = []
        for source, is_upgrade in ((extracts["new_installs"], False), (extracts["migrations"], True)):
            for row in source:
                detail = detail_by_order.get(cell(row, ORDER_ID))
                if detail is None:
                    continue
                matched.append(MatchedSale(entry=to_entry(detail), is_upgrade=is_upgrade, source_row=row))

        total = len(extracts["new_installs"]) + len(extracts["migrations"])
        logger.info(f"Matched {len(matched)} of {total} {channel.name} rows against the detail extract")
        return matched

    def _match_fidium(self, channel: ChannelProfile, rows: list[dict]) -> list[MatchedSale]:
        """
        Every Fidium row is used directly; there is no join and no upgrade flag.

        A blank order number is still a sale: its entry is keyed by ("", plan).
        """
        to_entry = ENTRY_MAPPERS[channel.name]
        matched = [MatchedSale(entry=to_entry(row)) for row in rows]
        logger.info(f"Using all {len(matched)} {channel.name} rows")
        return matched
