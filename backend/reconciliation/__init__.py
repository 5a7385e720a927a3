"""
Member Record Reconciliation

Keeps member records in step between the database and the spreadsheet:
- Database-first precedence policy on reads
- Database-then-spreadsheet writes with partial-sync reporting
- POST /api/google-sheets entrypoint
"""

from reconciliation.precedence import DatabaseFirstPolicy, database_first
from reconciliation.services.reconciliation_service import MemberReconciler, SaveResult
from reconciliation.endpoints.sheets_api import router as sheets_router

__all__ = [
    # Policy
    'DatabaseFirstPolicy',
    'database_first',
    # Service
    'MemberReconciler',
    'SaveResult',
    # Router
    'sheets_router'
]
