"""
Payscale and Override Catalogs

ResolutionContext loads every catalog record one channel needs for a
reconciliation run and indexes it in memory. It is built once before the row
loop and handed to the resolvers, so the store is not re-queried per row.
Catalogs are not mutated mid-run.
"""

import logging
from collections import defaultdict

from . import store as tables
from .channels import ChannelProfile
from .models import (
    Agent,
    CommissionRate,
    DateRange,
    ManagerAgentOverride,
    ManagerRelation,
    Payscale,
    Plan,
)
from .store import RecordStore
from .validators import CatalogValidator

logger = logging.getLogger(__name__)

PAYSCALE_OWNER = "payscale"
OVERRIDE_OWNER = "override"


def load_date_ranges(store: RecordStore, owner_kind: str, owner_ids: list[str]) -> dict[str, list[DateRange]]:
    """Load date ranges (with their per-plan rates) grouped by owner id."""
    if not owner_ids:
        return {}
    range_rows = store.select(tables.DATE_RANGES, {"owner_kind": owner_kind, "owner_id": owner_ids})
    if not range_rows:
        return {}

    rate_rows = store.select(tables.DATE_RANGE_RATES, {"date_range_id": [r["id"] for r in range_rows]})
    rates_by_range = defaultdict(list)
    for row in rate_rows:
        rates_by_range[row["date_range_id"]].append(row)

    grouped = defaultdict(list)
    for row in range_rows:
        date_range = DateRange.from_dict(row, rates_by_range.get(row["id"], []))
        if date_range.start_date is None:
            logger.warning(f"Date range {row['id']} has an unreadable start date; it will never match")
        grouped[date_range.owner_id].append(date_range)
    return dict(grouped)


class ResolutionContext:
    """In-memory catalog snapshot for one channel."""

    def __init__(
        self,
        channel: ChannelProfile,
        agents: list[Agent],
        relations: list[ManagerRelation],
        plans: list[Plan],
        payscales: list[Payscale],
        base_rates: dict[tuple[str, str], CommissionRate],
        payscale_ranges: dict[str, list[DateRange]],
        overrides: list[ManagerAgentOverride],
    ):
        self.channel = channel
        self._agents = {a.id: a for a in agents}
        self._agents_by_external_id = {}
        for agent in agents:
            external_id = agent.external_id(channel.name)
            if external_id and external_id.strip():
                self._agents_by_external_id[external_id.strip()] = agent
        self._manager_ids = {r.agent_id: r.manager_id for r in relations}
        self._plans_by_name = {p.name: p for p in plans if p.name}
        self._payscales = {p.id: p for p in payscales}
        self._base_rates = base_rates
        self._payscale_ranges = payscale_ranges
        self._overrides = {}
        for override in overrides:
            key = (override.manager_id, override.agent_id, override.plan_id)
            if key in self._overrides:
                logger.warning(f"Duplicate manager override for {key}; keeping override {self._overrides[key].id}")
                continue
            self._overrides[key] = override

    @classmethod
    def load(cls, store: RecordStore, channel: ChannelProfile) -> "ResolutionContext":
        """Read all catalog records for `channel` from the store."""
        agents = [Agent.from_dict(r) for r in store.select(tables.AGENTS)]
        relations = [ManagerRelation.from_dict(r) for r in store.select(tables.AGENT_MANAGERS)]
        plans = [Plan.from_dict(r) for r in store.select(tables.PLANS, channel.catalog_filter())]
        payscales = [Payscale.from_dict(r) for r in store.select(tables.PAYSCALES, channel.catalog_filter())]

        payscale_ids = [p.id for p in payscales]
        rate_rows = store.select(tables.PAYSCALE_RATES, {"payscale_id": payscale_ids}) if payscale_ids else []
        CatalogValidator().validate_base_rates(rate_rows)
        base_rates = {(r["payscale_id"], r["plan_id"]): CommissionRate.from_dict(r) for r in rate_rows}

        override_rows = store.select(tables.OVERRIDES, channel.catalog_filter())
        override_ranges = load_date_ranges(store, OVERRIDE_OWNER, [r["id"] for r in override_rows])
        overrides = [
            ManagerAgentOverride.from_dict(r, override_ranges.get(r["id"], [])) for r in override_rows
        ]

        return cls(
            channel=channel,
            agents=agents,
            relations=relations,
            plans=plans,
            payscales=payscales,
            base_rates=base_rates,
            payscale_ranges=load_date_ranges(store, PAYSCALE_OWNER, payscale_ids),
            overrides=overrides,
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def agent(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def agent_by_external_id(self, external_id: str) -> Agent | None:
        return self._agents_by_external_id.get(external_id.strip())

    def plan_by_name(self, name: str) -> Plan | None:
        return self._plans_by_name.get(name.strip())

    def manager_id_for(self, agent_id: str) -> str | None:
        return self._manager_ids.get(agent_id)

    def payscale(self, payscale_id: str | None) -> Payscale | None:
        if not payscale_id:
            return None
        return self._payscales.get(payscale_id)

    def base_rate(self, payscale_id: str, plan_id: str) -> CommissionRate | None:
        return self._base_rates.get((payscale_id, plan_id))

    def payscale_date_ranges(self, payscale_id: str) -> list[DateRange]:
        return self._payscale_ranges.get(payscale_id, [])

    def override_for(self, manager_id: str, agent_id: str, plan_id: str) -> ManagerAgentOverride | None:
        return self._overrides.get((manager_id, agent_id, plan_id))
