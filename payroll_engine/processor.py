"""
Reconciliation Processor - Main Orchestrator

Turns a bundle of extract files into a draft payroll batch through discrete,
testable steps.
"""

import logging

from . import store as tables
from .calculators import ExtractMatcher, PayrollAccumulator, SplitCalculator
from .catalog import ResolutionContext
from .channels import ChannelProfile, get_channel
from .entries import EntryRepository
from .extracts import PAYOUT, PLAN_NAME, REQUESTED_SERVICES, SALES_REP, cell, parse_payout, seller_display_name
from .models import MatchedSale, PayrollBatch
from .store import RecordStore
from .validators import ExtractValidator

logger = logging.getLogger(__name__)


class ReconciliationProcessor:
    """
    Main orchestrator for reconciliation runs.

    Implements a clear pipeline pattern:
    1. Validate Input
    2. Match Extract Rows
    3. Upsert Canonical Sale Entries
    4. Discover Plans and Sellers
    5. Load Resolution Context
    6. Resolve and Accumulate Commissions
    7. Build Payroll Lines

    The only persisted side effects are the upserts of steps 3 and 4, which
    are idempotent. The returned batch is a draft until BatchService saves it.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.validator = ExtractValidator()
        self.matcher = ExtractMatcher()
        self.entries = EntryRepository(store)
        self.splitter = SplitCalculator()

    def reconcile(self, channel_name: str, extracts: dict, batch_name: str = "") -> PayrollBatch:
        """
        Run one reconciliation over `extracts`.

        Args:
            channel_name: 'normal' or 'fidium'
            extracts: normal needs 'new_installs', 'detail' and 'migrations';
                fidium needs 'rows'. Each is a list of header-keyed rows.
            batch_name: label carried on the draft

        Returns:
            Draft PayrollBatch with one line per agent/manager that earned something
        """
        channel = get_channel(channel_name)

        # Step 1: Validate
        self.validator.validate(channel, extracts)

        # Step 2: Match rows
        sales = self.matcher.match(channel, extracts)

        # Step 3: Upsert canonical entries
        entry_refs = self.entries.upsert(channel.name, [s.entry for s in sales])

        # Step 4: Discover plans and sellers
        self._discover_plans(channel, extracts, sales)
        self._discover_sellers(channel, extracts, sales)

        # Step 5: Load catalogs once for the whole run
        context = ResolutionContext.load(self.store, channel)

        # Step 6: Resolve and accumulate, strictly in row order
        accumulator = PayrollAccumulator(context)
        for sale in sales:
            accumulator.add(sale, entry_refs.get(channel.entry_key(sale.entry)))

        # Step 7: Build lines
        lines = [self.splitter.build_line(t, channel.name) for t in accumulator.results()]

        logger.info(
            f"Reconciled {channel.name}: {len(sales)} matched rows, "
            f"{accumulator.skipped} skipped, {len(lines)} payroll lines"
        )
        return PayrollBatch(
            name=batch_name,
            channel=channel.name,
            lines=lines,
            matched_rows=len(sales),
            skipped_rows=accumulator.skipped,
        )

    def _discover_plans(self, channel: ChannelProfile, extracts: dict, sales: list[MatchedSale]) -> None:
        """
        Upsert plan names seen in the extracts so they can be resolved.

        Price-list columns set the plan's payout; names only seen on entries
        are inserted with a zero payout and never overwrite an existing one.
        """
        payouts = {}
        if channel.has_upgrade_flag:
            for row in extracts["new_installs"] + extracts["migrations"]:
                name = cell(row, PLAN_NAME)
                payout = parse_payout(cell(row, PAYOUT))
                if name and payout is not None:
                    payouts[name] = payout
            names = {s.plan_name for s in sales if s.plan_name}
        else:
            names = {cell(row, REQUESTED_SERVICES) for row in extracts["rows"]} - {""}

        # Existing plans are matched by name, including rows stored without a channel
        existing = {r.get("name"): r["id"] for r in self.store.select(tables.PLANS, channel.catalog_filter())}
        for name, payout in payouts.items():
            if name in existing:
                self.store.update(tables.PLANS, {"payout": payout}, {"id": existing[name]})

        key = ("channel", "name")
        new_payouts = {n: p for n, p in payouts.items() if n not in existing}
        if new_payouts:
            self.store.upsert(
                tables.PLANS,
                [{"channel": channel.name, "name": n, "payout": p} for n, p in new_payouts.items()],
                on_conflict=key,
            )
        others = sorted(names - set(payouts) - set(existing))
        if others:
            self.store.upsert(
                tables.PLANS,
                [{"channel": channel.name, "name": n} for n in others],
                on_conflict=key,
                insert_defaults={"payout": 0},
            )

    def _discover_sellers(self, channel: ChannelProfile, extracts: dict, sales: list[MatchedSale]) -> None:
        """
        Record newly seen seller identifiers.

        Normal sellers become Agent records keyed by identifier. Fidium reps
        go to the sales-rep registry; agents are linked to them by their
        fidium_identifier.
        """
        if channel.has_upgrade_flag:
            sellers = {s.seller for s in sales if s.seller}
        else:
            sellers = {cell(row, SALES_REP) for row in extracts["rows"]} - {""}
        if not sellers:
            return

        for seller in sorted(sellers):
            defaults = None
            if channel.seller_table == tables.AGENTS:
                defaults = {"name": seller_display_name(seller), "is_manager": False}
            self.store.upsert(
                channel.seller_table,
                [{channel.seller_key_field: seller}],
                on_conflict=(channel.seller_key_field,),
                insert_defaults=defaults,
            )
