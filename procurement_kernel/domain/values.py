"""
Module: procurement_kernel.domain.values
Responsibility: Enumerations shared by the catalogs, the pure engines and the
    persistence layer.
Architecture position: Kernel > Domain.  ZERO I/O.  No imports from db/,
    models/, services/, or outer layers.

Invariants enforced:
    - PhaseCategory declaration order is the tie-break order used when two
      phases share the same ``order`` value in different categories.
    - Enum values are the stored/serialized representation; renaming a
      member's value is a data migration.
"""

from enum import Enum, unique


@unique
class Regime(str, Enum):
    """Procurement track a contract type belongs to."""

    COMMON = "COMMON"
    SPECIAL = "SPECIAL"


@unique
class ProcedureCategory(str, Enum):
    """Procurement procedure family of a contract type."""

    COMPETITION = "COMPETITION"
    TENDER = "TENDER"
    QUOTATION = "QUOTATION"
    DIRECT_CONTRACTING = "DIRECT_CONTRACTING"
    TRUST_ASSIGNMENT = "TRUST_ASSIGNMENT"
    MINOR_PURCHASE = "MINOR_PURCHASE"


@unique
class ObjectCategory(str, Enum):
    """What is being procured."""

    GOODS = "goods"
    SERVICES = "services"
    WORKS = "works"
    CONSULTING = "consulting"


@unique
class PhaseCategory(str, Enum):
    """Procurement lifecycle stage of a phase template.

    Contract: declaration order is significant (see ``sort_index``).
    """

    PLANNING = "PLANNING"
    PREPARATION = "PREPARATION"
    CALL = "CALL"
    EVALUATION = "EVALUATION"
    AWARD = "AWARD"
    EXECUTION = "EXECUTION"
    CLOSEOUT = "CLOSEOUT"
    ARCHIVE = "ARCHIVE"

    @property
    def sort_index(self) -> int:
        """Position of this member in declaration order."""
        return _PHASE_CATEGORY_ORDER[self]


_PHASE_CATEGORY_ORDER: dict[PhaseCategory, int] = {
    category: index for index, category in enumerate(PhaseCategory)
}


@unique
class PhaseStatus(str, Enum):
    """Status of one phase occurrence on a contract.

    Contract: PENDING -> IN_PROGRESS -> COMPLETED, with CANCELLED reachable
    from PENDING or IN_PROGRESS.  COMPLETED and CANCELLED are terminal.
    """

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@unique
class RequiredStatus(str, Enum):
    """Status a required phase must have reached before a dependent phase starts."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

    def is_satisfied_by(self, status: PhaseStatus) -> bool:
        if self is RequiredStatus.COMPLETED:
            return status == PhaseStatus.COMPLETED
        return status in (PhaseStatus.IN_PROGRESS, PhaseStatus.COMPLETED)


@unique
class GeneralStatus(str, Enum):
    """Overall status of a contract case file."""

    DRAFT = "DRAFT"
    PREPARATION = "PREPARATION"
    CALL = "CALL"
    EVALUATION = "EVALUATION"
    AWARD = "AWARD"
    CONTRACTING = "CONTRACTING"
    EXECUTION = "EXECUTION"
    FINISHED = "FINISHED"
    LIQUIDATED = "LIQUIDATED"
    CANCELLED = "CANCELLED"
    SUSPENDED = "SUSPENDED"


@unique
class HistoryEventType(str, Enum):
    """Kind of change recorded in the contract history."""

    CREATION = "CREATION"
    PHASE_CHANGE = "PHASE_CHANGE"
    STATUS_CHANGE = "STATUS_CHANGE"
    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
    DATA_MODIFICATION = "DATA_MODIFICATION"
