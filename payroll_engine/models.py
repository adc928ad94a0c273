"""
Domain Models for the Commission Payroll Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values use Decimal for precision. Records move in and out of the
record store as plain dicts through from_dict / to_dict.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .channels import FIDIUM, NORMAL, PERSONAL, get_channel
from .dates import parse_date

FRONTEND = "frontend"
BACKEND = "backend"
DIMENSIONS = (FRONTEND, BACKEND)

DEDUCTION = "deduction"
REIMBURSEMENT = "reimbursement"


def to_decimal(value, default: Decimal | None = Decimal("0")) -> Decimal | None:
    """Convert a stored number (or numeric string) to Decimal."""
    if value is None or value == "":
        return default
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid number: {value!r}") from None
    if not number.is_finite():
        raise ValueError(f"Invalid number: {value!r}")
    return number


def parse_timestamp(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


# =============================================================================
# CATALOG MODELS
# =============================================================================


@dataclass
class Agent:
    """A sales agent. Managers are agents with is_manager set."""

    id: str
    name: str
    identifier: str | None = None
    fidium_identifier: str | None = None
    is_manager: bool = False
    personal_payscale_id: str | None = None
    manager_payscale_id: str | None = None
    fidium_personal_payscale_id: str | None = None
    fidium_manager_payscale_id: str | None = None

    def payscale_id(self, channel: str, role: str) -> str | None:
        """Return the agent's payscale reference for a channel and role."""
        return getattr(self, get_channel(channel).payscale_field(role))

    def external_id(self, channel: str) -> str | None:
        return getattr(self, get_channel(channel).agent_key_field)

    @property
    def display_name(self) -> str:
        return self.name or self.identifier or self.fidium_identifier or self.id

    @classmethod
    def from_dict(cls, data: dict) -> "Agent":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            identifier=data.get("identifier"),
            fidium_identifier=data.get("fidium_identifier"),
            is_manager=bool(data.get("is_manager", False)),
            personal_payscale_id=data.get("personal_payscale_id"),
            manager_payscale_id=data.get("manager_payscale_id"),
            fidium_personal_payscale_id=data.get("fidium_personal_payscale_id"),
            fidium_manager_payscale_id=data.get("fidium_manager_payscale_id"),
        )


@dataclass
class ManagerRelation:
    """Flat agent -> manager edge."""

    agent_id: str
    manager_id: str

    @classmethod
    def from_dict(cls, data: dict) -> "ManagerRelation":
        return cls(agent_id=data["agent_id"], manager_id=data["manager_id"])


@dataclass
class Plan:
    """A plan name as it appears in the upstream extracts."""

    id: str
    name: str
    channel: str = NORMAL
    payout: Decimal = Decimal("0")

    @classmethod
    def from_dict(cls, data: dict) -> "Plan":
        return cls(
            id=data["id"],
            name=(data.get("name") or "").strip(),
            channel=data.get("channel") or NORMAL,
            payout=to_decimal(data.get("payout")),
        )


@dataclass
class Payscale:
    """A per-channel, per-role rate table header."""

    id: str
    name: str
    role: str = PERSONAL
    channel: str = NORMAL
    upfront_percentage: Decimal | None = None  # personal payscales only
    backend_percentage: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Payscale":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            role=data.get("role", PERSONAL),
            channel=data.get("channel") or NORMAL,
            upfront_percentage=to_decimal(data.get("upfront_percentage"), default=None),
            backend_percentage=to_decimal(data.get("backend_percentage"), default=None),
        )


@dataclass
class CommissionRate:
    """Commission value for one plan; upgrade_value applies to migrations."""

    plan_id: str
    value: Decimal
    upgrade_value: Decimal | None = None

    def amount(self, is_upgrade: bool) -> Decimal:
        if is_upgrade:
            return self.upgrade_value if self.upgrade_value is not None else Decimal("0")
        return self.value

    @classmethod
    def from_dict(cls, data: dict) -> "CommissionRate":
        return cls(
            plan_id=data["plan_id"],
            value=to_decimal(data.get("value")),
            upgrade_value=to_decimal(data.get("upgrade_value"), default=None),
        )


@dataclass
class DateRange:
    """A dated refinement of a payscale's or override's commission values."""

    id: str
    owner_id: str
    start_date: date | None
    end_date: date | None = None  # None = open-ended
    rates: dict[str, CommissionRate] = field(default_factory=dict)

    def rate_for(self, plan_id: str) -> CommissionRate | None:
        return self.rates.get(plan_id)

    @classmethod
    def from_dict(cls, data: dict, rate_rows: list[dict] | None = None) -> "DateRange":
        rates = [CommissionRate.from_dict(r) for r in (rate_rows or data.get("rates", []))]
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            start_date=parse_date(data.get("start_date")),
            end_date=parse_date(data.get("end_date")),
            rates={r.plan_id: r for r in rates},
        )


@dataclass
class ManagerAgentOverride:
    """Manager commission rule for one (manager, agent, plan) triple."""

    id: str
    manager_id: str
    agent_id: str
    plan_id: str
    channel: str = NORMAL
    value: Decimal = Decimal("0")
    upgrade_value: Decimal | None = None
    date_ranges: list[DateRange] = field(default_factory=list)

    @property
    def base_rate(self) -> CommissionRate:
        return CommissionRate(plan_id=self.plan_id, value=self.value, upgrade_value=self.upgrade_value)

    @classmethod
    def from_dict(cls, data: dict, date_ranges: list[DateRange] | None = None) -> "ManagerAgentOverride":
        return cls(
            id=data["id"],
            manager_id=data["manager_id"],
            agent_id=data["agent_id"],
            plan_id=data["plan_id"],
            channel=data.get("channel") or NORMAL,
            value=to_decimal(data.get("value")),
            upgrade_value=to_decimal(data.get("upgrade_value"), default=None),
            date_ranges=date_ranges or [],
        )


# =============================================================================
# SALE ENTRIES
# =============================================================================


@dataclass(frozen=True)
class EntryRef:
    """Reference to a canonical sale entry in one channel's entry table."""

    channel: str
    entry_id: str

    @classmethod
    def normal(cls, entry_id: str) -> "EntryRef":
        return cls(NORMAL, entry_id)

    @classmethod
    def fidium(cls, entry_id: str) -> "EntryRef":
        return cls(FIDIUM, entry_id)

    def to_dict(self) -> dict:
        return {"kind": self.channel, "id": self.entry_id}

    @classmethod
    def from_dict(cls, data: dict) -> "EntryRef":
        get_channel(data["kind"])
        return cls(channel=data["kind"], entry_id=data["id"])


@dataclass
class SaleEntry:
    """Canonical record of one customer order (one service, for Fidium)."""

    id: str
    channel: str
    order_number: str
    plan_name: str | None = None
    seller: str | None = None
    customer_name: str | None = None
    submission_date: date | None = None
    install_date: date | None = None
    frontend_paid: bool = False
    backend_paid: bool = False
    attributes: dict = field(default_factory=dict)

    @property
    def ref(self) -> EntryRef:
        return EntryRef(self.channel, self.id)

    def is_paid(self, dimension: str) -> bool:
        return getattr(self, f"{dimension}_paid")

    @classmethod
    def from_dict(cls, data: dict, channel: str) -> "SaleEntry":
        return cls(
            id=data["id"],
            channel=channel,
            order_number=data.get("order_number") or "",
            plan_name=data.get("plan_name"),
            seller=data.get("seller"),
            customer_name=data.get("customer_name"),
            submission_date=parse_date(data.get("submission_date")),
            install_date=parse_date(data.get("install_date")),
            frontend_paid=bool(data.get("frontend_paid", False)),
            backend_paid=bool(data.get("backend_paid", False)),
            attributes=dict(data.get("attributes") or {}),
        )


# =============================================================================
# PAYROLL MODELS
# =============================================================================


@dataclass
class LineDetail:
    """One sale contributing to a payroll line."""

    entry: EntryRef
    personal_commission: Decimal
    is_upgrade: bool = False

    def to_dict(self) -> dict:
        return {
            "entry": self.entry.to_dict(),
            "personal_commission": self.personal_commission,
            "is_upgrade": self.is_upgrade,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineDetail":
        return cls(
            entry=EntryRef.from_dict(data["entry"]),
            personal_commission=to_decimal(data.get("personal_commission")),
            is_upgrade=bool(data.get("is_upgrade", False)),
        )


@dataclass
class PayrollLine:
    """Aggregated payroll line for one agent (or manager) in a batch."""

    agent_id: str
    name: str
    channel: str
    accounts: int = 0
    personal_total: Decimal = Decimal("0")
    manager_total: Decimal = Decimal("0")
    upfront_percentage: Decimal | None = None
    backend_percentage: Decimal | None = None
    upfront_value: Decimal | None = None
    backend_value: Decimal | None = None
    frontend_is_paid: bool = False
    backend_is_paid: bool = False
    details: list[LineDetail] = field(default_factory=list)
    id: str | None = None
    batch_id: str | None = None

    @property
    def grand_total(self) -> Decimal:
        return self.personal_total + self.manager_total

    def is_paid(self, dimension: str) -> bool:
        return getattr(self, f"{dimension}_is_paid")

    def entry_refs(self) -> list[EntryRef]:
        return [d.entry for d in self.details]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "agent_id": self.agent_id,
            "name": self.name,
            "channel": self.channel,
            "accounts": self.accounts,
            "personal_total": self.personal_total,
            "manager_total": self.manager_total,
            "grand_total": self.grand_total,
            "upfront_percentage": self.upfront_percentage,
            "backend_percentage": self.backend_percentage,
            "upfront_value": self.upfront_value,
            "backend_value": self.backend_value,
            "frontend_is_paid": self.frontend_is_paid,
            "backend_is_paid": self.backend_is_paid,
            "details": [d.to_dict() for d in self.details],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PayrollLine":
        return cls(
            id=data.get("id"),
            batch_id=data.get("batch_id"),
            agent_id=data["agent_id"],
            name=data.get("name") or "",
            channel=data.get("channel") or NORMAL,
            accounts=int(data.get("accounts", 0)),
            personal_total=to_decimal(data.get("personal_total")),
            manager_total=to_decimal(data.get("manager_total")),
            upfront_percentage=to_decimal(data.get("upfront_percentage"), default=None),
            backend_percentage=to_decimal(data.get("backend_percentage"), default=None),
            upfront_value=to_decimal(data.get("upfront_value"), default=None),
            backend_value=to_decimal(data.get("backend_value"), default=None),
            frontend_is_paid=bool(data.get("frontend_is_paid", False)),
            backend_is_paid=bool(data.get("backend_is_paid", False)),
            details=[LineDetail.from_dict(d) for d in data.get("details") or []],
        )


@dataclass
class PayrollBatch:
    """A generated payroll report. Drafts have no id until saved."""

    name: str
    channel: str
    lines: list[PayrollLine] = field(default_factory=list)
    id: str | None = None
    created_at: datetime | None = None
    matched_rows: int = 0
    skipped_rows: int = 0

    @property
    def is_draft(self) -> bool:
        return self.id is None

    @classmethod
    def from_dict(cls, data: dict, lines: list[PayrollLine] | None = None) -> "PayrollBatch":
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            channel=data.get("channel") or NORMAL,
            created_at=parse_timestamp(data.get("created_at")),
            lines=lines or [],
        )


@dataclass
class AdjustmentRecord:
    """A deduction or reimbursement owed to or by an agent."""

    id: str
    agent_id: str
    kind: str
    amount: Decimal
    reason: str = ""
    payroll_line_id: str | None = None
    is_completed: bool = False
    completed_at: datetime | None = None

    @property
    def signed_amount(self) -> Decimal:
        """Deductions subtract from pay; reimbursements add to it."""
        return -self.amount if self.kind == DEDUCTION else self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "kind": self.kind,
            "amount": self.amount,
            "reason": self.reason,
            "payroll_line_id": self.payroll_line_id,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AdjustmentRecord":
        return cls(
            id=data["id"],
            agent_id=data["agent_id"],
            kind=data.get("kind", DEDUCTION),
            amount=to_decimal(data.get("amount")),
            reason=data.get("reason") or "",
            payroll_line_id=data.get("payroll_line_id"),
            is_completed=bool(data.get("is_completed", False)),
            completed_at=parse_timestamp(data.get("completed_at")),
        )


# =============================================================================
# PROCESSING MODELS
# =============================================================================


@dataclass
class MatchedSale:
    """An extract row that survived matching, mapped to its entry record."""

    entry: dict
    is_upgrade: bool = False
    source_row: dict | None = None  # new-installs / migrations row (normal only)

    @property
    def order_number(self) -> str:
        return self.entry.get("order_number") or ""

    @property
    def seller(self) -> str:
        return self.entry.get("seller") or ""

    @property
    def plan_name(self) -> str:
        return self.entry.get("plan_name") or ""

    @property
    def sale_date(self) -> str | None:
        return self.entry.get("submission_date")


@dataclass
class AgentTotals:
    """Running totals for one agent (or manager) during a run."""

    agent_id: str
    name: str
    accounts: int = 0
    personal_total: Decimal = Decimal("0")
    manager_total: Decimal = Decimal("0")
    upfront_percentage: Decimal | None = None
    backend_percentage: Decimal | None = None
    details: list[LineDetail] = field(default_factory=list)

    @property
    def has_earnings(self) -> bool:
        return self.accounts > 0 or self.manager_total > 0
