"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class AlreadyProcessedError(ConflictError):
    """Reconciliation attempted on a bank transaction that is no longer pending."""

    def __init__(self, bank_transaction_id: int, status: Optional[str] = None):
        self.bank_transaction_id = bank_transaction_id
        self.status = status
        super().__init__(bank_transaction_already_processed(bank_transaction_id, status))


class DuplicateExternalIdError(ConflictError):
    """A ledger transaction with the same external ID already exists."""

    def __init__(self, external_id: str, existing_id: Optional[int]):
        self.external_id = external_id
        self.existing_id = existing_id
        super().__init__(duplicate_external_id(external_id, existing_id))


def member_not_found(member_id: int) -> str:
    """Return message for missing member."""
    return f"Member {member_id} not found"


def bank_transaction_not_found(bank_transaction_id: int) -> str:
    """Return message for missing bank transaction."""
    return f"Bank transaction {bank_transaction_id} not found"


def ledger_transaction_not_found(transaction_id: int) -> str:
    """Return message for missing ledger transaction."""
    return f"Ledger transaction {transaction_id} not found"


def bank_transaction_already_processed(bank_transaction_id: int, status: Optional[str]) -> str:
    """Return message for a bank transaction that was already reconciled."""
    if status:
        return f"Bank transaction {bank_transaction_id} already processed ({status})"
    return f"Bank transaction {bank_transaction_id} already processed"


def duplicate_external_id(external_id: str, existing_id: Optional[int]) -> str:
    """Return message for duplicate ledger transaction external ID."""
    if existing_id is None:
        return f"Ledger transaction with external_id '{external_id}' already exists"
    return (
        f"Ledger transaction with external_id '{external_id}' already exists "
        f"(transaction {existing_id})"
    )


def duplicate_gl_code(gl_code: str) -> str:
    """Return message for duplicate income category GL code."""
    return f"Income category with GL code '{gl_code}' already exists"
