"""Bank statement parsing.

Turns a bank CSV export (Chase layout: Details, Posting Date, Description,
Amount, Type, Balance, Check or Slip #) into candidate bank transactions.
Parsing is pure: nothing here touches the database.
"""

import csv
import hashlib
import io
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from churchledger.domain.entities import BankTransactionType
from churchledger.domain.errors import ValidationError
from churchledger.utils.amount_parser import parse_amount, parse_optional_amount, to_money
from churchledger.utils.date_parser import parse_date

ZELLE_PATTERN = re.compile(r"^Zelle payment from (?P<name>.*?) (?P<id>\w+)$", re.IGNORECASE)
ACH_IND_NAME_PATTERN = re.compile(r"IND NAME:(?P<name>[^ ]+)", re.IGNORECASE)
CHECK_PATTERN = re.compile(r"^CHECK (?P<number>\d+)", re.IGNORECASE)

# Logical field -> accepted header spellings (compared case-insensitively)
COLUMN_ALIASES = {
    "details": ("details",),
    "posting_date": ("posting date", "date"),
    "description": ("description",),
    "amount": ("amount",),
    "type": ("type",),
    "balance": ("balance",),
    "check_number": ("check or slip #", "check number", "check #"),
}
REQUIRED_COLUMNS = ("posting_date", "description", "amount")

DEBIT_DETAILS = {"DEBIT", "CHKS P"}
DEBIT_TYPE_LABELS = {"CHECK_PAID", "DEBIT_CARD", "ACH_DEBIT", "MISC_DEBIT", "BILLPAY", "QUICKPAY_DEBIT"}

TYPE_LABELS = {
    "ACH_CREDIT": BankTransactionType.ACH,
    "ACH_DEBIT": BankTransactionType.ACH,
    "CHECK_DEPOSIT": BankTransactionType.CHECK,
    "CHECK_PAID": BankTransactionType.CHECK,
    "CHECK": BankTransactionType.CHECK,
    "DEBIT_CARD": BankTransactionType.DEBIT,
    "MISC_DEBIT": BankTransactionType.DEBIT,
    "QUICKPAY_CREDIT": BankTransactionType.ZELLE,
    "QUICKPAY_DEBIT": BankTransactionType.ZELLE,
    "ZELLE": BankTransactionType.ZELLE,
}


@dataclass(frozen=True)
class Identity:
    """Payer identity signals pulled out of a bank description."""

    payer_name: Optional[str] = None
    external_ref_id: Optional[str] = None
    check_number: Optional[str] = None
    type: Optional[BankTransactionType] = None


@dataclass(frozen=True)
class ParsedBankTransaction:
    """A statement row ready for deduplicated insertion."""

    row_num: int
    transaction_hash: str
    date: date
    amount: Decimal
    description: str
    type: BankTransactionType
    balance: Optional[Decimal] = None
    payer_name: Optional[str] = None
    external_ref_id: Optional[str] = None
    check_number: Optional[str] = None
    raw_data: dict[str, str] = field(default_factory=dict)


@dataclass
class StatementParseResult:
    """Parsed candidates plus per-row errors for rows that were skipped."""

    transactions: list[ParsedBankTransaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def compute_content_hash(posting_date: str, description: str, amount: str) -> str:
    """Hash the fields that identify a statement line.

    Balance is left out on purpose: a pending line has no balance and the
    posted copy of the same line does.
    """
    data = f"{posting_date}|{description}|{amount}"
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def extract_identity(description: Optional[str]) -> Identity:
    """Pull payer name, reference ID and check number out of a description.

    Rules are tried in order: Zelle sender, ACH "IND NAME:" remitter, then a
    leading "CHECK <number>".
    """
    if not description:
        return Identity()
    description = description.strip()

    zelle = ZELLE_PATTERN.match(description)
    if zelle:
        return Identity(
            payer_name=zelle.group("name").strip(),
            external_ref_id=zelle.group("id"),
            type=BankTransactionType.ZELLE,
        )

    payer_name = None
    ach = ACH_IND_NAME_PATTERN.search(description)
    if ach:
        payer_name = ach.group("name").replace(",", ", ", 1).strip()

    check_number = None
    identity_type = None
    check = CHECK_PATTERN.match(description)
    if check:
        check_number = check.group("number")
        identity_type = BankTransactionType.CHECK

    return Identity(payer_name=payer_name, check_number=check_number, type=identity_type)


def resolve_signed_amount(
    amount_str: str, details: Optional[str] = None, type_label: Optional[str] = None
) -> Decimal:
    """Parse an amount and apply the statement's debit/credit sign.

    Raises:
        ValueError: If amount string cannot be parsed
    """
    amount = parse_amount(amount_str)
    details = (details or "").strip().upper()
    type_label = (type_label or "").strip().upper()

    is_debit = (
        details in DEBIT_DETAILS
        or type_label in DEBIT_TYPE_LABELS
        or amount_str.strip().startswith("-")
        or amount < 0
    )
    if is_debit:
        amount = -abs(amount)
    else:
        amount = abs(amount)
    return to_money(amount)


def type_from_label(type_label: Optional[str]) -> BankTransactionType:
    """Map the bank's type column to a coarse transaction type."""
    if not type_label:
        return BankTransactionType.UNKNOWN
    return TYPE_LABELS.get(type_label.strip().upper(), BankTransactionType.UNKNOWN)


def _resolve_columns(fieldnames: list[str]) -> dict[str, str]:
    """Map logical fields to the actual header names in the file."""
    normalized = {}
    for name in fieldnames:
        if name is not None:
            normalized.setdefault(name.strip().lower(), name)
    columns = {}
    for logical, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in normalized:
                columns[logical] = normalized[alias]
                break
    return columns


def _cell(row: dict, columns: dict[str, str], logical: str) -> str:
    header = columns.get(logical)
    if header is None:
        return ""
    value = row.get(header)
    return value.strip() if value else ""


def parse_statement(content: Union[str, bytes]) -> StatementParseResult:
    """Parse a bank CSV export into candidate bank transactions.

    Malformed rows are skipped and reported in the result's errors; they never
    abort the file.

    Args:
        content: Raw file content

    Returns:
        StatementParseResult with candidates in file order

    Raises:
        ValidationError: If the header lacks a date, description or amount column
    """
    if isinstance(content, bytes):
        # Undecodable bytes become U+FFFD so one bad row cannot sink the file
        content = content.decode("utf-8-sig", errors="replace")
    elif content.startswith("\ufeff"):
        content = content[1:]

    result = StatementParseResult()
    if not content.strip():
        return result

    reader = csv.DictReader(io.StringIO(content))
    try:
        fieldnames = reader.fieldnames
    except csv.Error as e:
        raise ValidationError(f"Could not read statement header: {e}")
    if fieldnames is None:
        return result

    columns = _resolve_columns(list(fieldnames))
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise ValidationError(
            f"Statement is missing required columns: {', '.join(sorted(missing))}"
        )

    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            result.errors.append(f"Row {reader.reader.line_num}: {e}")
            continue

        row_num = reader.line_num  # Header is line 1
        # Ragged rows: DictReader puts surplus cells under None
        raw_data = {k: (v or "") for k, v in row.items() if k is not None}
        if not any(v.strip() for v in raw_data.values() if isinstance(v, str)):
            continue

        posting_date = _cell(row, columns, "posting_date")
        description = _cell(row, columns, "description")
        amount_str = _cell(row, columns, "amount")

        if not posting_date:
            result.errors.append(f"Row {row_num}: Missing posting date")
            continue
        if not amount_str:
            result.errors.append(f"Row {row_num}: Missing amount")
            continue

        try:
            txn_date = parse_date(posting_date)
        except ValueError as e:
            result.errors.append(f"Row {row_num}: {e}")
            continue

        type_label = _cell(row, columns, "type")
        try:
            amount = resolve_signed_amount(
                amount_str, details=_cell(row, columns, "details"), type_label=type_label
            )
        except ValueError as e:
            result.errors.append(f"Row {row_num}: {e}")
            continue

        identity = extract_identity(description)
        txn_type = type_from_label(type_label)
        check_number = _cell(row, columns, "check_number") or None

        if identity.type == BankTransactionType.ZELLE:
            txn_type = BankTransactionType.ZELLE
        if check_number is None and identity.check_number is not None:
            check_number = identity.check_number
            txn_type = BankTransactionType.CHECK

        result.transactions.append(
            ParsedBankTransaction(
                row_num=row_num,
                transaction_hash=compute_content_hash(posting_date, description, amount_str),
                date=txn_date,
                amount=amount,
                description=description,
                type=txn_type,
                balance=parse_optional_amount(_cell(row, columns, "balance")),
                payer_name=identity.payer_name,
                external_ref_id=identity.external_ref_id,
                check_number=check_number,
                raw_data=raw_data,
            )
        )

    return result
