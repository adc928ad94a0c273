"""
Input Validation for the Commission Payroll Engine

Validates request-level input before processing begins.
Raises ValueError with clear messages for any constraint violations.

Row-level problems inside extracts (blank seller, unknown plan, ...) are NOT
validation errors: those rows are skipped during reconciliation.
"""

from decimal import Decimal

from .channels import ChannelProfile
from .models import DEDUCTION, DIMENSIONS, REIMBURSEMENT

NORMAL_EXTRACTS = ("new_installs", "detail", "migrations")
FIDIUM_EXTRACTS = ("rows",)


class ExtractValidator:
    """Validates the extract bundle handed to a reconciliation run."""

    def validate(self, channel: ChannelProfile, extracts: dict) -> None:
        """
        Run all validations. Raises ValueError if any check fails.
        """
        if not isinstance(extracts, dict):
            raise ValueError(f"extracts must be an object keyed by extract name, got: {type(extracts).__name__}")

        required = NORMAL_EXTRACTS if channel.has_upgrade_flag else FIDIUM_EXTRACTS
        missing = [name for name in required if extracts.get(name) is None]
        if missing:
            raise ValueError(f"Missing {channel.name} extract(s): {', '.join(missing)}")

        for name in required:
            self._validate_rows(name, extracts[name])

    def _validate_rows(self, name: str, rows) -> None:
        if not isinstance(rows, list):
            raise ValueError(f"Extract '{name}' must be a list of rows, got: {type(rows).__name__}")
        for i, row in enumerate(rows):
            if not isinstance(row, dict):
                raise ValueError(f"Extract '{name}' row {i} must be a header-keyed object")


class CatalogValidator:
    """Validates catalog records loaded for a run."""

    def validate_base_rates(self, rate_rows: list[dict]) -> None:
        """Exactly one base commission row may exist per (payscale, plan)."""
        seen = set()
        for row in rate_rows:
            key = (row["payscale_id"], row["plan_id"])
            if key in seen:
                raise ValueError(f"Duplicate base commission rate for payscale {key[0]} and plan {key[1]}")
            seen.add(key)


class RequestValidator:
    """Validates settlement, batch and adjustment requests."""

    def validate_dimension(self, dimension: str) -> None:
        if dimension not in DIMENSIONS:
            raise ValueError(f"Invalid dimension: {dimension}. Must be 'frontend' or 'backend'")

    def validate_batch_name(self, name) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("batch_name is required and cannot be blank")

    def validate_adjustment(self, kind: str, amount: Decimal) -> None:
        if kind not in (DEDUCTION, REIMBURSEMENT):
            raise ValueError(f"Invalid adjustment kind: {kind}. Must be 'deduction' or 'reimbursement'")
        if amount < 0:
            raise ValueError(f"amount cannot be negative, got: {amount}")
