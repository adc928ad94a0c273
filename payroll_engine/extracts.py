"""
Extract Vocabulary

Header names used by the upstream extract files and the mapping from an
extract row to a canonical sale-entry record.
"""

from decimal import Decimal, InvalidOperation

from .channels import FIDIUM, NORMAL
from .dates import parse_date, to_iso

# Normal channel: new-installs and migrations extracts
ORDER_ID = "Order Id"
PLAN_NAME = "Plan Name"
PAYOUT = "Payout"

# Normal channel: detail extract
ORDER_NUMBER = "Order Number"
INTERNET_SPEED = "Internet Speed"
AGENT_SELLER = "Agent Seller Information"
ORDER_SUBMISSION_DATE = "Order Submission Date"
INSTALL_DATE = "Install Date"
ORDER_COMPLETED = "Order Completed/Cancelled"

# Fidium channel
SALES_REP = "SALES_REP"
REQUESTED_SERVICES = "REQUESTED_SERVICES"
FIDIUM_ORDER_NUMBER = "ORDER_NUMBER"
SUBMISSION_DATE = "SUBMISSION_DATE"
FIDIUM_INSTALL_DATE = "INSTALL_DATE"

NORMAL_ATTRIBUTES = {
    "BAN": "ban",
    "Order Status": "order_status",
    "Customer Street Address": "customer_street_address",
    "Customer City (Zipcode as of 7/26/2024)": "customer_city",
    "Customer State": "customer_state",
    "Partner Name": "partner_name",
    "Partner Sales Code": "partner_sales_code",
    "Item Type": "item_type",
    "Path": "path",
    "Legacy or BRSPD Fiber?": "legacy_or_brspd_fiber",
    "Voice_Qty": "voice_qty",
    "HSI_Qty": "hsi_qty",
    "Cancellation Reason": "cancellation_reason",
}

FIDIUM_ATTRIBUTES = {
    "SALES_PARTNER": "sales_partner",
    "DSI_DEALER_TYPE": "dsi_dealer_type",
    "SALE_FORMAT": "sale_format",
    "SERVICE_ADDRESS": "service_address",
    "CITY": "city",
    "STATE": "state",
    "ZIP": "zip",
    "ORDER_TYPE": "order_type",
    "SALES_STATUS": "sales_status",
    "INSTALL_STATUS": "install_status",
    "STATUS_CHANGE_DATE": "status_change_date",
    "Amount": "amount",
}


def cell(row: dict, column: str) -> str:
    """Return a trimmed cell value, or "" when the column is blank or absent."""
    value = row.get(column)
    if value is None:
        return ""
    return str(value).strip()


def parse_payout(raw: str) -> Decimal | None:
    """Parse a price-list cell such as "$1,234.50"."""
    text = raw.replace("$", "").replace(",", "").strip()
    if not text:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def seller_display_name(seller: str) -> str:
    """Seller cells look like "CODE: Name"; the display name follows the colon."""
    _, sep, name = seller.partition(":")
    return name.strip() if sep else seller.strip()


def _attributes(row: dict, mapping: dict[str, str]) -> dict:
    return {field: cell(row, column) for column, field in mapping.items() if cell(row, column)}


def normal_entry_record(row: dict) -> dict:
    """Map a matched detail-extract row to a normal sale-entry record."""
    install_date = parse_date(cell(row, INSTALL_DATE)) or parse_date(cell(row, ORDER_COMPLETED))
    return {
        "order_number": cell(row, ORDER_NUMBER),
        "plan_name": cell(row, INTERNET_SPEED) or None,
        "seller": cell(row, AGENT_SELLER) or None,
        "customer_name": cell(row, "Customer Name") or None,
        "submission_date": to_iso(parse_date(cell(row, ORDER_SUBMISSION_DATE))),
        "install_date": to_iso(install_date),
        "attributes": _attributes(row, NORMAL_ATTRIBUTES),
    }


def fidium_entry_record(row: dict) -> dict:
    """Map a Fidium extract row to a Fidium sale-entry record."""
    return {
        "order_number": cell(row, FIDIUM_ORDER_NUMBER),
        "plan_name": cell(row, REQUESTED_SERVICES),
        "seller": cell(row, SALES_REP) or None,
        "customer_name": cell(row, "CUSTOMER_NAME") or None,
        "submission_date": to_iso(parse_date(cell(row, SUBMISSION_DATE))),
        "install_date": to_iso(parse_date(cell(row, FIDIUM_INSTALL_DATE))),
        "attributes": _attributes(row, FIDIUM_ATTRIBUTES),
    }


ENTRY_MAPPERS = {
    NORMAL: normal_entry_record,
    FIDIUM: fidium_entry_record,
}
