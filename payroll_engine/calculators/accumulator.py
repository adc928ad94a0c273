"""
Payroll Accumulator

Feeds matched sales through the CommissionResolver and keeps running totals
per agent and per manager. Rows are processed strictly in order.
"""

import logging

from ..catalog import ResolutionContext
from ..channels import PERSONAL
from ..models import Agent, AgentTotals, EntryRef, LineDetail, MatchedSale
from .commission import CommissionResolver

logger = logging.getLogger(__name__)


class PayrollAccumulator:
    """Accumulates personal and manager totals over one run."""

    def __init__(self, context: ResolutionContext, resolver: CommissionResolver | None = None):
        self.context = context
        self.resolver = resolver or CommissionResolver(context)
        self.totals: dict[str, AgentTotals] = {}
        self.skipped = 0

    def add(self, sale: MatchedSale, entry_ref: EntryRef | None) -> bool:
        """
        Resolve one sale and add it to the running totals.

        Returns False when the row is skipped: blank seller or plan, a seller
        or plan missing from the catalog, or a sale with no canonical entry.
        Skipped rows are counted, never raised.
        """
        reason = self._skip_reason(sale, entry_ref)
        if reason:
            self.skipped += 1
            logger.debug(f"Skipping order {sale.order_number or '<blank>'}: {reason}")
            return False

        channel = self.context.channel
        agent = self.context.agent_by_external_id(sale.seller)
        plan = self.context.plan_by_name(sale.plan_name)
        is_upgrade = sale.is_upgrade and channel.has_upgrade_flag

        if self.context.payscale(agent.payscale_id(channel.name, PERSONAL)) is not None:
            amount = self.resolver.resolve_personal(agent, plan, sale.sale_date, is_upgrade)
            totals = self._totals_for(agent)
            totals.accounts += 1
            totals.personal_total += amount
            totals.details.append(
                LineDetail(entry=entry_ref, personal_commission=amount, is_upgrade=is_upgrade)
            )

        manager = self.context.agent(self.context.manager_id_for(agent.id) or "")
        if manager is not None:
            amount = self.resolver.resolve_manager(manager, agent, plan, sale.sale_date, is_upgrade)
            self._totals_for(manager).manager_total += amount

        return True

    def results(self) -> list[AgentTotals]:
        """Totals for every agent or manager that earned something."""
        return [t for t in self.totals.values() if t.has_earnings]

    def _skip_reason(self, sale: MatchedSale, entry_ref: EntryRef | None) -> str | None:
        if not sale.seller:
            return "blank seller"
        if not sale.plan_name:
            return "blank plan"
        if self.context.agent_by_external_id(sale.seller) is None:
            return f"unknown seller {sale.seller!r}"
        if self.context.plan_by_name(sale.plan_name) is None:
            return f"unknown plan {sale.plan_name!r}"
        if entry_ref is None:
            return "no canonical entry"
        return None

    def _totals_for(self, agent: Agent) -> AgentTotals:
        if agent.id not in self.totals:
            payscale = self.context.payscale(agent.payscale_id(self.context.channel.name, PERSONAL))
            self.totals[agent.id] = AgentTotals(
                agent_id=agent.id,
                name=agent.display_name,
                upfront_percentage=payscale.upfront_percentage if payscale else None,
                backend_percentage=payscale.backend_percentage if payscale else None,
            )
        return self.totals[agent.id]
