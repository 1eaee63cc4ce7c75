"""Data models for Nestegg."""

from nestegg.models.enums import (
    ContributionAccount,
    FilingStatus,
    HoldingPeriod,
    LotMethod,
    TaxTreatment,
    TransactionType,
    WithdrawalStrategy,
)
from nestegg.models.lots import (
    BuyTransaction,
    HarvestCandidate,
    ImportRow,
    Lot,
    LotConsumption,
    Position,
    SelectionResult,
    SellOrder,
    SellTransaction,
    Transaction,
)
from nestegg.models.rates import (
    Bracket,
    ContributionLimits,
    IraDeductionPhaseouts,
    IrmaaBracket,
    IrmaaCharge,
    IrmaaSchedule,
    Phaseout,
    RateTable,
    SocialSecurity,
    StandardDeduction,
)
from nestegg.models.reports import RealizedGainLine, RealizedGainSection, RealizedGainsSummary
from nestegg.models.simulation import (
    AssetClassAssumption,
    PercentileRow,
    ScenarioComparison,
    SimulationBatch,
    SimulationParameters,
    TrialResult,
    WithdrawalTaxProfile,
)

__all__ = [
    "AssetClassAssumption",
    "Bracket",
    "BuyTransaction",
    "ContributionAccount",
    "ContributionLimits",
    "FilingStatus",
    "HarvestCandidate",
    "HoldingPeriod",
    "ImportRow",
    "IraDeductionPhaseouts",
    "IrmaaBracket",
    "IrmaaCharge",
    "IrmaaSchedule",
    "Lot",
    "LotConsumption",
    "LotMethod",
    "PercentileRow",
    "Position",
    "Phaseout",
    "RateTable",
    "RealizedGainLine",
    "RealizedGainSection",
    "RealizedGainsSummary",
    "ScenarioComparison",
    "SelectionResult",
    "SellOrder",
    "SellTransaction",
    "SimulationBatch",
    "SimulationParameters",
    "SocialSecurity",
    "StandardDeduction",
    "TaxTreatment",
    "Transaction",
    "TransactionType",
    "TrialResult",
    "WithdrawalStrategy",
    "WithdrawalTaxProfile",
]
