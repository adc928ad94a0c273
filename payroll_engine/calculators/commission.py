"""
Commission Resolver

Turns one sale into the selling agent's personal commission and their
manager's commission.
"""

from decimal import Decimal

from ..catalog import ResolutionContext
from ..channels import MANAGER, PERSONAL
from ..models import Agent, CommissionRate, ManagerAgentOverride, Plan
from .interval import IntervalResolver


class CommissionResolver:
    """Resolves commissions against a per-run ResolutionContext."""

    def __init__(self, context: ResolutionContext, interval_resolver: IntervalResolver | None = None):
        self.context = context
        self.intervals = interval_resolver or IntervalResolver()

    def resolve_personal(self, agent: Agent, plan: Plan, sale_date, is_upgrade: bool) -> Decimal:
        """
        Personal commission for the selling agent.

        Agents without a personal payscale for the channel earn 0.
        """
        payscale_id = agent.payscale_id(self.context.channel.name, PERSONAL)
        return self._resolve_from_payscale(payscale_id, plan, sale_date, is_upgrade)

    def resolve_manager(self, manager: Agent, agent: Agent, plan: Plan, sale_date, is_upgrade: bool) -> Decimal:
        """
        Manager commission earned by `manager` on a sale made by `agent`.

        Priority order:
        1. Manager/agent/plan override (its date ranges, else its base value)
        2. The manager's manager payscale (date ranges, else base row)
        3. Zero

        Once an override exists for the triple it is the only source, even
        when none of its ranges match and its base value is 0.
        """
        override = self.context.override_for(manager.id, agent.id, plan.id)
        if override is not None:
            return self._resolve_from_override(override, plan, sale_date, is_upgrade)

        payscale_id = manager.payscale_id(self.context.channel.name, MANAGER)
        return self._resolve_from_payscale(payscale_id, plan, sale_date, is_upgrade)

    def _upgrade(self, is_upgrade: bool) -> bool:
        return is_upgrade and self.context.channel.has_upgrade_flag

    def _resolve_from_payscale(self, payscale_id: str | None, plan: Plan, sale_date, is_upgrade: bool) -> Decimal:
        if not payscale_id or self.context.payscale(payscale_id) is None:
            return Decimal("0")

        matched = self.intervals.resolve(self.context.payscale_date_ranges(payscale_id), sale_date)
        if matched is not None:
            # A matching range without a row for this plan pays nothing
            return self._amount(matched.rate_for(plan.id), is_upgrade)

        return self._amount(self.context.base_rate(payscale_id, plan.id), is_upgrade)

    def _resolve_from_override(
        self, override: ManagerAgentOverride, plan: Plan, sale_date, is_upgrade: bool
    ) -> Decimal:
        candidates = [r for r in override.date_ranges if r.rate_for(plan.id) is not None]
        matched = self.intervals.resolve(candidates, sale_date)
        if matched is not None:
            return self._amount(matched.rate_for(plan.id), is_upgrade)
        return self._amount(override.base_rate, is_upgrade)

    def _amount(self, rate: CommissionRate | None, is_upgrade: bool) -> Decimal:
        if rate is None:
            return Decimal("0")
        return rate.amount(self._upgrade(is_upgrade))
