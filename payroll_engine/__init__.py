"""
COMMISSION PAYROLL ENGINE
Commission resolution, extract reconciliation and settlement tracking
"""

from .models import PayrollBatch, PayrollLine
from .processor import ReconciliationProcessor
from .service import PayrollService
from .settlement import SettlementReconciler

__all__ = ['ReconciliationProcessor', 'SettlementReconciler', 'PayrollService', 'PayrollBatch', 'PayrollLine']
