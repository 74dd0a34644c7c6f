"""ORM models for the procurement kernel."""

from procurement_kernel.models.contract import (
    ContractDocumentModel,
    ContractHistoryModel,
    ContractModel,
    ContractPhaseOccurrenceModel,
)
from procurement_kernel.models.contract_type import AmountRangeModel, ContractTypeModel
from procurement_kernel.models.phase import ContractPhaseModel, PhaseTypeOverrideModel

__all__ = [
    "AmountRangeModel",
    "ContractDocumentModel",
    "ContractHistoryModel",
    "ContractModel",
    "ContractPhaseModel",
    "ContractPhaseOccurrenceModel",
    "ContractTypeModel",
    "PhaseTypeOverrideModel",
]
