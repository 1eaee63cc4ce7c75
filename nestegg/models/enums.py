"""Enumerations for Nestegg."""

from enum import StrEnum


class FilingStatus(StrEnum):
    SINGLE = "SINGLE"
    MFJ = "MARRIED_FILING_JOINTLY"
    MFS = "MARRIED_FILING_SEPARATELY"
    HOH = "HEAD_OF_HOUSEHOLD"


class TransactionType(StrEnum):
    BUY = "BUY"
    SELL = "SELL"


class HoldingPeriod(StrEnum):
    SHORT_TERM = "SHORT_TERM"
    LONG_TERM = "LONG_TERM"


class TaxTreatment(StrEnum):
    TAXABLE = "TAXABLE"
    TAX_DEFERRED = "TAX_DEFERRED"
    TAX_FREE = "TAX_FREE"


class LotMethod(StrEnum):
    FIFO = "FIFO"
    LIFO = "LIFO"
    HIFO = "HIFO"
    LOFO = "LOFO"
    AVERAGE = "AVERAGE"
    SPECIFIC_ID = "SPECIFIC_ID"


class ContributionAccount(StrEnum):
    TRADITIONAL_401K = "TRADITIONAL_401K"
    TRADITIONAL_IRA = "TRADITIONAL_IRA"
    ROTH_IRA = "ROTH_IRA"
    HSA_SINGLE = "HSA_SINGLE"
    HSA_FAMILY = "HSA_FAMILY"
    SIMPLE_IRA = "SIMPLE_IRA"


class WithdrawalStrategy(StrEnum):
    FIXED_PERCENT_INITIAL = "FIXED_PERCENT_INITIAL"
    DYNAMIC_PERCENT_OF_BALANCE = "DYNAMIC_PERCENT_OF_BALANCE"
    FIXED_REAL_INCOME = "FIXED_REAL_INCOME"
