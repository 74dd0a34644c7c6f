"""
procurement_services -- Package init and public API.

Responsibility:
    Orchestration over the kernel services and the configuration package:
    the ProcurementEngine facade used by the surrounding application and
    the catalog bootstrap that persists a YAML catalog set.

Architecture position:
    Services -- top layer.

    Dependency direction:
        procurement_services/ -> procurement_config/, procurement_engines/,
                                 procurement_kernel/  (allowed)
        procurement_kernel/   -> procurement_services/ (FORBIDDEN)
        procurement_engines/  -> procurement_services/ (FORBIDDEN)
"""

from procurement_services.catalog_bootstrap import (
    BootstrapResult,
    load_catalog_into_session,
)
from procurement_services.procurement_engine import ContractProgress, ProcurementEngine

__all__ = [
    "BootstrapResult",
    "ContractProgress",
    "ProcurementEngine",
    "load_catalog_into_session",
]
