"""
Upfront / Backend Split

Builds payroll lines from accumulated totals.
"""

from decimal import Decimal

from ..models import AgentTotals, PayrollLine


class SplitCalculator:
    """Derives upfront and backend values from the personal total."""

    def build_line(self, totals: AgentTotals, channel: str) -> PayrollLine:
        """
        Upfront = personal_total * upfront% / 100, likewise for backend.

        Only the personal total is split. A manager's manager_total is paid
        as-is. Without a personal payscale the derived values stay None.
        """
        return PayrollLine(
            agent_id=totals.agent_id,
            name=totals.name,
            channel=channel,
            accounts=totals.accounts,
            personal_total=totals.personal_total,
            manager_total=totals.manager_total,
            upfront_percentage=totals.upfront_percentage,
            backend_percentage=totals.backend_percentage,
            upfront_value=self._portion(totals.personal_total, totals.upfront_percentage),
            backend_value=self._portion(totals.personal_total, totals.backend_percentage),
            details=list(totals.details),
        )

    @staticmethod
    def _portion(total: Decimal, percentage: Decimal | None) -> Decimal | None:
        if percentage is None:
            return None
        return total * percentage / Decimal("100")
