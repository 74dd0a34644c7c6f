"""Services for the procurement kernel (write side)."""

from procurement_kernel.services.amount_range_service import AmountRangeService
from procurement_kernel.services.contract_service import ContractService
from procurement_kernel.services.contract_type_service import ContractTypeService
from procurement_kernel.services.document_registry_service import DocumentRegistryService
from procurement_kernel.services.history_service import ContractHistoryService, HistoryEntry
from procurement_kernel.services.phase_catalog_service import PhaseCatalogService

__all__ = [
    "AmountRangeService",
    "ContractHistoryService",
    "ContractService",
    "ContractTypeService",
    "DocumentRegistryService",
    "HistoryEntry",
    "PhaseCatalogService",
]
