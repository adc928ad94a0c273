"""
Tests for CommissionResolver

Run with: python -m pytest tests/ -v
"""

from decimal import Decimal

import pytest

from payroll_engine import store as tables
from payroll_engine.calculators import CommissionResolver
from payroll_engine.catalog import ResolutionContext
from payroll_engine.channels import FIDIUM_CHANNEL, NORMAL_CHANNEL


def add_date_range(store, range_id, owner_kind, owner_id, start, end, rates):
    store.insert(tables.DATE_RANGES, [{
        "id": range_id, "owner_kind": owner_kind, "owner_id": owner_id,
        "start_date": start, "end_date": end,
    }])
    store.insert(tables.DATE_RANGE_RATES, [
        {"date_range_id": range_id, "plan_id": plan_id, "value": value, "upgrade_value": upgrade}
        for plan_id, value, upgrade in rates
    ])


def resolver_for(store, channel=NORMAL_CHANNEL):
    context = ResolutionContext.load(store, channel)
    return CommissionResolver(context), context


class TestPersonalCommission:
    """Test the selling agent's commission."""

    def test_base_rate(self, catalog_store):
        """Without date ranges the base row applies."""
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_personal(ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G"), "2025-03-15", False)
        assert amount == Decimal("100")

    def test_upgrade_value(self, catalog_store):
        """Migrations pay the upgrade value."""
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_personal(ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G"), "2025-03-15", True)
        assert amount == Decimal("50")

    def test_missing_upgrade_value_pays_zero(self, catalog_store):
        """A plan without an upgrade value pays nothing on migrations."""
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_personal(ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 500"), "2025-03-15", True)
        assert amount == Decimal("0")

    def test_date_range_overrides_base(self, catalog_store):
        """A matching date range replaces the base value."""
        add_date_range(catalog_store, "dr-q1", "payscale", "ps-personal", "2025-01-01", "2025-03-31",
                       [("plan-1g", 120, 60)])
        resolver, ctx = resolver_for(catalog_store)
        agent, plan = ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G")

        assert resolver.resolve_personal(agent, plan, "03/15/25", False) == Decimal("120")
        assert resolver.resolve_personal(agent, plan, "03/15/25", True) == Decimal("60")
        assert resolver.resolve_personal(agent, plan, "04/15/25", False) == Decimal("100")

    def test_matched_range_without_plan_row_pays_zero(self, catalog_store):
        """A range that matches the date but has no row for the plan pays 0."""
        add_date_range(catalog_store, "dr-q1", "payscale", "ps-personal", "2025-01-01", None,
                       [("plan-1g", 120, 60)])
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_personal(ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 500"), "2025-03-15", False)
        assert amount == Decimal("0")

    def test_unreadable_sale_date_uses_base(self, catalog_store):
        """An unparseable sale date falls back to the base value."""
        add_date_range(catalog_store, "dr-q1", "payscale", "ps-personal", "2025-01-01", None,
                       [("plan-1g", 120, 60)])
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_personal(ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G"), "someday", False)
        assert amount == Decimal("100")

    def test_agent_without_payscale(self, catalog_store):
        """Agents without a personal payscale earn 0."""
        catalog_store.insert(tables.AGENTS, [{"id": "agent-new", "name": "New", "identifier": "N1: New"}])
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_personal(ctx.agent("agent-new"), ctx.plan_by_name("Fiber 1G"), "2025-03-15", False)
        assert amount == Decimal("0")

    def test_fidium_ignores_upgrade_flag(self, catalog_store):
        """Fidium has no upgrade capability, so the base value always applies."""
        resolver, ctx = resolver_for(catalog_store, FIDIUM_CHANNEL)
        amount = resolver.resolve_personal(ctx.agent("agent-ann"), ctx.plan_by_name("Fidium 1 Gig"), "2025-04-01", True)
        assert amount == Decimal("70")


class TestManagerCommission:
    """Test the manager's commission on an agent's sale."""

    def test_manager_payscale(self, catalog_store):
        """Without an override the manager payscale applies."""
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_manager(
            ctx.agent("manager-mo"), ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G"), "2025-03-15", False
        )
        assert amount == Decimal("20")

    def test_override_base_value(self, catalog_store):
        """An override replaces the manager payscale."""
        catalog_store.insert(tables.OVERRIDES, [{
            "id": "ov-1", "manager_id": "manager-mo", "agent_id": "agent-ann", "plan_id": "plan-1g",
            "channel": "normal", "value": 35, "upgrade_value": 5,
        }])
        resolver, ctx = resolver_for(catalog_store)
        mo, ann, plan = ctx.agent("manager-mo"), ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G")

        assert resolver.resolve_manager(mo, ann, plan, "2025-03-15", False) == Decimal("35")
        assert resolver.resolve_manager(mo, ann, plan, "2025-03-15", True) == Decimal("5")

    def test_override_date_range(self, catalog_store):
        """Override date ranges carrying the plan take precedence over its base value."""
        catalog_store.insert(tables.OVERRIDES, [{
            "id": "ov-1", "manager_id": "manager-mo", "agent_id": "agent-ann", "plan_id": "plan-1g",
            "channel": "normal", "value": 35,
        }])
        add_date_range(catalog_store, "odr-1", "override", "ov-1", "2025-03-01", "2025-03-31",
                       [("plan-1g", 45, None)])
        add_date_range(catalog_store, "odr-2", "override", "ov-1", "2025-03-10", None,
                       [("plan-500", 99, None)])
        resolver, ctx = resolver_for(catalog_store)
        mo, ann, plan = ctx.agent("manager-mo"), ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G")

        # odr-2 starts later but has no row for the plan, so it is not a candidate
        assert resolver.resolve_manager(mo, ann, plan, "2025-03-15", False) == Decimal("45")
        assert resolver.resolve_manager(mo, ann, plan, "2025-05-01", False) == Decimal("35")

    def test_zero_override_short_circuits_payscale(self, catalog_store):
        """An override with a 0 value still wins over the manager payscale."""
        catalog_store.insert(tables.OVERRIDES, [{
            "id": "ov-1", "manager_id": "manager-mo", "agent_id": "agent-ann", "plan_id": "plan-1g",
            "channel": "normal", "value": 0,
        }])
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_manager(
            ctx.agent("manager-mo"), ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G"), "2025-03-15", False
        )
        assert amount == Decimal("0")

    def test_override_is_per_plan(self, catalog_store):
        """An override for one plan leaves other plans on the manager payscale."""
        catalog_store.insert(tables.OVERRIDES, [{
            "id": "ov-1", "manager_id": "manager-mo", "agent_id": "agent-ann", "plan_id": "plan-1g",
            "channel": "normal", "value": 0,
        }])
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_manager(
            ctx.agent("manager-mo"), ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 500"), "2025-03-15", False
        )
        assert amount == Decimal("15")

    def test_manager_without_manager_payscale(self, catalog_store):
        """A manager with no manager payscale and no override earns 0."""
        catalog_store.update(tables.AGENTS, {"manager_payscale_id": None}, {"id": "manager-mo"})
        resolver, ctx = resolver_for(catalog_store)
        amount = resolver.resolve_manager(
            ctx.agent("manager-mo"), ctx.agent("agent-ann"), ctx.plan_by_name("Fiber 1G"), "2025-03-15", False
        )
        assert amount == Decimal("0")


class TestResolutionContext:
    """Test catalog loading."""

    def test_duplicate_base_rate_rejected(self, catalog_store):
        """Two base rows for the same payscale and plan are a catalog error."""
        catalog_store.insert(tables.PAYSCALE_RATES, [
            {"payscale_id": "ps-personal", "plan_id": "plan-1g", "value": 1},
        ])
        with pytest.raises(ValueError, match="Duplicate base commission rate"):
            ResolutionContext.load(catalog_store, NORMAL_CHANNEL)

    def test_duplicate_override_keeps_first(self, catalog_store):
        """Only the first override for a triple is used."""
        catalog_store.insert(tables.OVERRIDES, [
            {"id": "ov-a", "manager_id": "manager-mo", "agent_id": "agent-ann", "plan_id": "plan-1g",
             "channel": "normal", "value": 1},
            {"id": "ov-b", "manager_id": "manager-mo", "agent_id": "agent-ann", "plan_id": "plan-1g",
             "channel": "normal", "value": 2},
        ])
        ctx = ResolutionContext.load(catalog_store, NORMAL_CHANNEL)
        assert ctx.override_for("manager-mo", "agent-ann", "plan-1g").id == "ov-a"

    def test_seller_lookup_is_per_channel(self, catalog_store):
        """Each channel resolves sellers by its own identifier."""
        normal = ResolutionContext.load(catalog_store, NORMAL_CHANNEL)
        fidium = ResolutionContext.load(catalog_store, FIDIUM_CHANNEL)

        assert normal.agent_by_external_id(" A100: Ann Smith ").id == "agent-ann"
        assert normal.agent_by_external_id("Ann Smith") is None
        assert fidium.agent_by_external_id("Ann Smith").id == "agent-ann"


class TestCatalogChannels:
    """Test which catalog rows each channel sees."""

    @pytest.fixture
    def legacy_store(self, catalog_store):
        """Plan and payscale rows written before the channel column existed."""
        catalog_store.delete(tables.PLANS, {"id": "plan-1g"})
        catalog_store.delete(tables.PAYSCALES, {"id": "ps-personal"})
        catalog_store.insert(tables.PLANS, [{"id": "plan-1g", "name": "Fiber 1G", "payout": 0}])
        catalog_store.insert(tables.PAYSCALES, [{
            "id": "ps-personal", "name": "Standard", "role": "personal",
            "upfront_percentage": 60, "backend_percentage": 40,
        }])
        return catalog_store

    def test_rows_without_channel_are_normal(self, legacy_store):
        resolver, ctx = resolver_for(legacy_store)
        plan = ctx.plan_by_name("Fiber 1G")

        assert plan.channel == "normal"
        assert ctx.payscale("ps-personal").channel == "normal"
        assert resolver.resolve_personal(ctx.agent("agent-ann"), plan, "2025-03-15", False) == Decimal("100")

    def test_rows_without_channel_hidden_from_fidium(self, legacy_store):
        _, ctx = resolver_for(legacy_store, FIDIUM_CHANNEL)

        assert ctx.plan_by_name("Fiber 1G") is None
        assert ctx.plan_by_name("Fidium 1 Gig") is not None
