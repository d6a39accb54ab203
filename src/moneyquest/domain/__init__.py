"""Domain layer for moneyquest application."""

import importlib

# Services import the database interface, which imports the entities of this
# package; resolve them on first access so either layer can be imported first.
_SERVICES = {
    "AlertService": "moneyquest.domain.alerts",
    "CSVImportService": "moneyquest.domain.csv_import",
    "LoanService": "moneyquest.domain.loan",
    "ProgressService": "moneyquest.domain.progress",
    "ReconciliationService": "moneyquest.domain.reconciliation",
    "TransactionService": "moneyquest.domain.transaction",
    "WalletService": "moneyquest.domain.wallet",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
