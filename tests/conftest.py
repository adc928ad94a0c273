"""Shared fixtures: a seeded catalog and sample extract bundles."""

import pytest

from payroll_engine import store as tables
from payroll_engine.store import InMemoryRecordStore


def seed_catalog(store):
    """Ann sells for manager Mo on both channels."""
    store.insert(tables.PLANS, [
        {"id": "plan-1g", "channel": "normal", "name": "Fiber 1G", "payout": 0},
        {"id": "plan-500", "channel": "normal", "name": "Fiber 500", "payout": 0},
        {"id": "fplan-1g", "channel": "fidium", "name": "Fidium 1 Gig", "payout": 0},
    ])
    store.insert(tables.PAYSCALES, [
        {"id": "ps-personal", "name": "Standard", "role": "personal", "channel": "normal",
         "upfront_percentage": 60, "backend_percentage": 40},
        {"id": "ps-manager", "name": "Manager", "role": "manager", "channel": "normal"},
        {"id": "fps-personal", "name": "Fidium Standard", "role": "personal", "channel": "fidium",
         "upfront_percentage": 50, "backend_percentage": 50},
        {"id": "fps-manager", "name": "Fidium Manager", "role": "manager", "channel": "fidium"},
    ])
    store.insert(tables.PAYSCALE_RATES, [
        {"payscale_id": "ps-personal", "plan_id": "plan-1g", "value": 100, "upgrade_value": 50},
        {"payscale_id": "ps-personal", "plan_id": "plan-500", "value": 80, "upgrade_value": None},
        {"payscale_id": "ps-manager", "plan_id": "plan-1g", "value": 20, "upgrade_value": 10},
        {"payscale_id": "ps-manager", "plan_id": "plan-500", "value": 15, "upgrade_value": None},
        {"payscale_id": "fps-personal", "plan_id": "fplan-1g", "value": 70, "upgrade_value": 35},
        {"payscale_id": "fps-manager", "plan_id": "fplan-1g", "value": 12, "upgrade_value": None},
    ])
    store.insert(tables.AGENTS, [
        {"id": "agent-ann", "name": "Ann Smith", "identifier": "A100: Ann Smith",
         "fidium_identifier": "Ann Smith", "is_manager": False,
         "personal_payscale_id": "ps-personal", "fidium_personal_payscale_id": "fps-personal"},
        {"id": "manager-mo", "name": "Mo Lee", "identifier": "M200: Mo Lee",
         "fidium_identifier": "Mo Lee", "is_manager": True,
         "personal_payscale_id": "ps-personal", "manager_payscale_id": "ps-manager",
         "fidium_manager_payscale_id": "fps-manager"},
    ])
    store.insert(tables.AGENT_MANAGERS, [{"agent_id": "agent-ann", "manager_id": "manager-mo"}])
    return store


def detail_row(order_number, plan="Fiber 1G", seller="A100: Ann Smith", submitted="03/15/25", installed="03/20/25"):
    return {
        "Order Number": order_number,
        "Internet Speed": plan,
        "Agent Seller Information": seller,
        "Order Submission Date": submitted,
        "Install Date": installed,
        "Customer Name": f"Customer {order_number}",
        "Order Status": "Complete",
    }


@pytest.fixture
def make_detail_row():
    return detail_row


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def catalog_store(store):
    return seed_catalog(store)


@pytest.fixture
def normal_extracts():
    """One new install, one migration and one new install with no detail row."""
    return {
        "new_installs": [
            {"Order Id": "1001", "Plan Name": "Fiber 1G", "Payout": "$300.00"},
            {"Order Id": "9999", "Plan Name": "Fiber 1G", "Payout": "$300.00"},
        ],
        "migrations": [
            {"Order Id": "1002", "Plan Name": "Fiber 1G", "Payout": "$150.00"},
        ],
        "detail": [
            detail_row("1001"),
            detail_row("1002"),
            detail_row("5555"),
        ],
    }


@pytest.fixture
def fidium_extracts():
    """One Fidium order with two services."""
    return {
        "rows": [
            {"ORDER_NUMBER": "F-1", "REQUESTED_SERVICES": "Fidium 1 Gig", "SALES_REP": "Ann Smith",
             "SUBMISSION_DATE": "04/01/2025", "INSTALL_DATE": "04/05/2025", "CUSTOMER_NAME": "Pat Doe"},
            {"ORDER_NUMBER": "F-1", "REQUESTED_SERVICES": "Fidium Voice", "SALES_REP": "Ann Smith",
             "SUBMISSION_DATE": "04/01/2025", "INSTALL_DATE": "04/05/2025", "CUSTOMER_NAME": "Pat Doe"},
        ]
    }
