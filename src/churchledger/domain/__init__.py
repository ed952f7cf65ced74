"""Domain layer for churchledger application."""

from importlib import import_module

_SERVICES = {
    "StatementImportService": "churchledger.domain.statement_import",
    "MatchSuggestionService": "churchledger.domain.matching",
    "LedgerTransactionService": "churchledger.domain.ledger",
    "ReconciliationService": "churchledger.domain.reconciliation",
    "MemberService": "churchledger.domain.member",
    "IncomeCategoryService": "churchledger.domain.income_category",
}

__all__ = list(_SERVICES)


# Services import the database layer, which imports domain.entities; load
# them on first access so importing an entity never pulls them in.
def __getattr__(name):
    if name in _SERVICES:
        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
