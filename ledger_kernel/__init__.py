"""
Ledger Kernel

Journal entry lifecycle and policy-based authorization for a multi-tenant,
multi-currency general ledger:
- Double-entry balance validation in the functional currency
- Fiscal period gating for entry creation and posting
- Draft -> PendingApproval -> Approved -> Posted -> Reversed lifecycle
- Atomic reversal generation
- Declarative allow/deny policy evaluation with priority resolution
"""

__version__ = "0.1.0"
