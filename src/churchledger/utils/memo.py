"""Memo normalization shared by match suggestion and reconciliation."""

import re
from typing import Optional

ZELLE_PREFIX = re.compile(r"^Zelle payment from\s+", re.IGNORECASE)
TRAILING_NUMBER = re.compile(r"\s+\d+$")
CHECK_PREFIX = re.compile(r"^CHECK\s+\d+\s+", re.IGNORECASE)
ORIG_CO_LABEL = re.compile(r"ORIG CO NAME:", re.IGNORECASE)
IND_NAME_LABEL = re.compile(r"IND NAME:", re.IGNORECASE)
EMBEDDED_DATE = re.compile(r"\d{1,2}/\d{1,2}/\d{2,4}")
TRAILING_REFERENCE = re.compile(r"\s+\d{6,}$")
NON_LETTERS = re.compile(r"[^a-z\s]")


def is_zelle_description(description: str, type: Optional[str] = None) -> bool:
    """Return True when the description should take the Zelle cleanup path."""
    if type is not None and str(getattr(type, "value", type)).upper() == "ZELLE":
        return True
    return description.strip().lower().startswith("zelle payment from")


def clean_memo(description: Optional[str], type: Optional[str] = None) -> str:
    """Strip boilerplate from a bank description.

    Zelle: "Zelle payment from ALMAZ G TESFAY 27250625041" -> "ALMAZ G TESFAY".
    Others: leading "CHECK 1234", ACH labels, embedded dates and trailing
    reference numbers of 6+ digits are removed.
    """
    if not description:
        return ""
    clean = description.strip()

    if is_zelle_description(clean, type):
        clean = ZELLE_PREFIX.sub("", clean)
        clean = TRAILING_NUMBER.sub("", clean)
    else:
        clean = CHECK_PREFIX.sub("", clean)
        clean = ORIG_CO_LABEL.sub("", clean)
        clean = IND_NAME_LABEL.sub("", clean)
        clean = EMBEDDED_DATE.sub("", clean)
        clean = TRAILING_REFERENCE.sub("", clean)

    return clean.strip()


def name_tokens(text: Optional[str]) -> list[str]:
    """Split text into lowercase alphabetic tokens longer than two letters.

    Order is preserved and repeated tokens are dropped.
    """
    if not text:
        return []
    letters_only = NON_LETTERS.sub(" ", str(text).lower())
    tokens: list[str] = []
    for token in letters_only.split():
        if len(token) > 2 and token not in tokens:
            tokens.append(token)
    return tokens
