"""
Typed Exception Hierarchy for the Procurement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure in the contract-type and phase engine is either bad
configuration or a business-rule violation.  Callers (the surrounding HTTP
service, administrative tooling, tests) must be able to tell them apart
without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (blocking phase codes, missing
     document codes, cycle paths) as attributes

Example:
    try:
        engine.complete_phase(contract_id, "PREP", actor_id)
    except MissingMandatoryDocumentsError as e:
        api_response(code=e.code, missing=e.missing_document_codes)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ProcurementKernelError:

    ProcurementKernelError (base)
    |
    +-- ConfigurationError
    |   +-- AmountRangeOverlapError
    |   +-- DuplicateOrderError
    |   +-- DuplicateDocumentCodeError
    |   +-- DuplicateTypeOverrideError
    |   +-- CyclicDependencyError
    |   +-- SequenceConfigurationError
    |   +-- DuplicateCodeError
    |   +-- ContractTypeReferencedError
    |   +-- CatalogIntegrityError
    |   +-- ExternalDocumentStorageError
    |
    +-- PhaseStateError
    |   +-- PhaseBlockedError
    |   +-- PhaseDependencyUnmetError
    |   +-- PhaseNotCompleteError
    |   +-- NoNextPhaseError
    |   +-- MissingMandatoryDocumentsError
    |   +-- InvalidPhaseTransitionError
    |   +-- InvalidContractStatusTransitionError
    |
    +-- NotFoundError
    |   +-- UnknownContractTypeError
    |   +-- UnknownPhaseError
    |   +-- AmountRangeNotFoundError
    |   +-- ContractNotFoundError
    |   +-- PhaseNotInContractError
    |   +-- DocumentRecordNotFoundError
    |
    +-- InputValidationError
    |
    +-- ConcurrencyError
    |   +-- StaleContractError
    |
    +-- AuthorizationError
        +-- PermissionDeniedError
        +-- ApprovalLimitExceededError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Configuration   | AMOUNT_RANGE_OVERLAP          | Ranges of different types overlap
                | DUPLICATE_ORDER               | (order, category) collision
                | DUPLICATE_DOCUMENT_CODE       | Document code repeated in a phase
                | DUPLICATE_TYPE_OVERRIDE       | Two overrides for one contract type
                | CYCLIC_DEPENDENCY             | Phase dependency graph has a cycle
                | SEQUENCE_CONFIGURATION        | Built sequence violates dependencies
                | DUPLICATE_CODE                | Catalog code already in use
                | CONTRACT_TYPE_REFERENCED      | Hard delete of a type in use
                | CATALOG_INTEGRITY             | Integrity check found issues
                | EXTERNAL_DOCUMENT_STORAGE     | Upload while an external storage is set
----------------|-------------------------------|---------------------------------------
Phase state     | PHASE_BLOCKED                 | A blocked_by phase is not COMPLETED
                | PHASE_DEPENDENCY_UNMET        | A required phase status is not met
                | PHASE_NOT_COMPLETE            | Advance from a non-COMPLETED phase
                | NO_NEXT_PHASE                 | Advance from the last phase
                | MISSING_MANDATORY_DOCUMENTS   | Complete without mandatory documents
                | INVALID_PHASE_TRANSITION      | Transition from an illegal status
                | INVALID_STATUS_TRANSITION     | Illegal contract general status change
----------------|-------------------------------|---------------------------------------
Not found       | UNKNOWN_CONTRACT_TYPE         | Contract type code/id does not resolve
                | UNKNOWN_PHASE                 | Phase code/id does not resolve
                | AMOUNT_RANGE_NOT_FOUND        | Amount range id does not resolve
                | CONTRACT_NOT_FOUND            | Contract id does not resolve
                | PHASE_NOT_IN_CONTRACT         | Phase is not part of the contract
                | DOCUMENT_RECORD_NOT_FOUND     | Document record id does not resolve
----------------|-------------------------------|---------------------------------------
Input           | INPUT_VALIDATION              | Malformed code, out-of-range value
----------------|-------------------------------|---------------------------------------
Concurrency     | STALE_CONTRACT                | Contract changed since it was read
----------------|-------------------------------|---------------------------------------
Authorization   | PERMISSION_DENIED             | Actor lacks the department permission
                | APPROVAL_LIMIT_EXCEEDED       | Amount above the department limit

===============================================================================
HANDLING PATTERNS
===============================================================================

Nothing in the kernel retries.  Configuration errors must be fixed by an
administrator; phase-state errors are legitimate business-rule outcomes;
not-found errors map to 404-equivalents in the surrounding service.
"""


class ProcurementKernelError(Exception):
    """
    Base exception for all procurement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROCUREMENT_KERNEL_ERROR"


# Configuration exceptions


class ConfigurationError(ProcurementKernelError):
    """Base exception for catalog configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class AmountRangeOverlapError(ConfigurationError):
    """An amount range overlaps active ranges of a different contract type."""

    code: str = "AMOUNT_RANGE_OVERLAP"

    def __init__(
        self,
        object_category: str,
        contract_type_code: str,
        conflicting_type_codes: list[str],
    ):
        self.object_category = object_category
        self.contract_type_code = contract_type_code
        self.conflicting_type_codes = conflicting_type_codes
        super().__init__(
            f"Amount range for {contract_type_code} ({object_category}) overlaps "
            f"ranges of {', '.join(conflicting_type_codes)}"
        )


class DuplicateOrderError(ConfigurationError):
    """Another active phase already uses this (order, category) pair."""

    code: str = "DUPLICATE_ORDER"

    def __init__(self, order: int, category: str, existing_phase_code: str):
        self.order = order
        self.category = category
        self.existing_phase_code = existing_phase_code
        super().__init__(
            f"Order {order} is already used in category {category} "
            f"by phase {existing_phase_code}"
        )


class DuplicateDocumentCodeError(ConfigurationError):
    """A document code appears more than once within one phase."""

    code: str = "DUPLICATE_DOCUMENT_CODE"

    def __init__(self, phase_code: str, document_code: str):
        self.phase_code = phase_code
        self.document_code = document_code
        super().__init__(
            f"Document code {document_code} is repeated in phase {phase_code}"
        )


class DuplicateTypeOverrideError(ConfigurationError):
    """A phase declares more than one override for the same contract type."""

    code: str = "DUPLICATE_TYPE_OVERRIDE"

    def __init__(self, phase_code: str, contract_type_code: str):
        self.phase_code = phase_code
        self.contract_type_code = contract_type_code
        super().__init__(
            f"Phase {phase_code} has more than one override for "
            f"contract type {contract_type_code}"
        )


class CyclicDependencyError(ConfigurationError):
    """The phase dependency graph contains a cycle."""

    code: str = "CYCLIC_DEPENDENCY"

    def __init__(self, cycle_path: list[str]):
        self.cycle_path = cycle_path
        super().__init__(
            f"Cyclic phase dependency: {' -> '.join(cycle_path)}"
        )


class SequenceConfigurationError(ConfigurationError):
    """The phase sequence built for a contract type violates its dependencies."""

    code: str = "SEQUENCE_CONFIGURATION"

    def __init__(self, contract_type_code: str, issues: list[str]):
        self.contract_type_code = contract_type_code
        self.issues = issues
        super().__init__(
            f"Invalid phase sequence for {contract_type_code}: "
            + "; ".join(issues)
        )


class DuplicateCodeError(ConfigurationError):
    """A catalog entity with this code already exists."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, entity: str, entity_code: str):
        self.entity = entity
        self.entity_code = entity_code
        super().__init__(f"{entity} with code {entity_code} already exists")


class ContractTypeReferencedError(ConfigurationError):
    """A contract type referenced by contracts cannot be hard-deleted."""

    code: str = "CONTRACT_TYPE_REFERENCED"

    def __init__(self, contract_type_code: str, contract_count: int):
        self.contract_type_code = contract_type_code
        self.contract_count = contract_count
        super().__init__(
            f"Contract type {contract_type_code} is referenced by "
            f"{contract_count} contract(s) and can only be deactivated"
        )


class CatalogIntegrityError(ConfigurationError):
    """The catalog failed its integrity check."""

    code: str = "CATALOG_INTEGRITY"

    def __init__(self, issue_codes: list[str]):
        self.issue_codes = issue_codes
        super().__init__(
            f"Catalog integrity check failed with {len(issue_codes)} issue(s): "
            f"{', '.join(sorted(set(issue_codes)))}"
        )


class ExternalDocumentStorageError(ConfigurationError):
    """Uploads must go through the externally configured DocumentStorage."""

    code: str = "EXTERNAL_DOCUMENT_STORAGE"

    def __init__(self, storage_name: str):
        self.storage_name = storage_name
        super().__init__(
            f"Documents are read from {storage_name}; register uploads there"
        )


# Phase state exceptions


class PhaseStateError(ProcurementKernelError):
    """Base exception for phase progression rule violations."""

    code: str = "PHASE_STATE_ERROR"


class PhaseBlockedError(PhaseStateError):
    """A phase listed in blocked_by has not reached COMPLETED."""

    code: str = "PHASE_BLOCKED"

    def __init__(self, phase_code: str, blocking_phase_codes: list[str]):
        self.phase_code = phase_code
        self.blocking_phase_codes = blocking_phase_codes
        super().__init__(
            f"Phase {phase_code} is blocked by "
            f"{', '.join(blocking_phase_codes)}"
        )


class PhaseDependencyUnmetError(PhaseStateError):
    """A required phase does not satisfy its required status."""

    code: str = "PHASE_DEPENDENCY_UNMET"

    def __init__(self, phase_code: str, unmet: list[tuple[str, str]]):
        self.phase_code = phase_code
        self.unmet = unmet
        super().__init__(
            f"Phase {phase_code} has unmet dependencies: "
            + ", ".join(f"{code} must be {status}" for code, status in unmet)
        )


class PhaseNotCompleteError(PhaseStateError):
    """The current phase must be COMPLETED before advancing."""

    code: str = "PHASE_NOT_COMPLETE"

    def __init__(self, phase_code: str, status: str):
        self.phase_code = phase_code
        self.status = status
        super().__init__(
            f"Current phase {phase_code} is {status}, not COMPLETED"
        )


class NoNextPhaseError(PhaseStateError):
    """The current phase is the last phase of the sequence."""

    code: str = "NO_NEXT_PHASE"

    def __init__(self, phase_code: str):
        self.phase_code = phase_code
        super().__init__(f"Phase {phase_code} is the last phase in the sequence")


class MissingMandatoryDocumentsError(PhaseStateError):
    """Mandatory documents of a phase have no active document record."""

    code: str = "MISSING_MANDATORY_DOCUMENTS"

    def __init__(self, phase_code: str, missing_document_codes: list[str]):
        self.phase_code = phase_code
        self.missing_document_codes = missing_document_codes
        super().__init__(
            f"Phase {phase_code} is missing mandatory documents: "
            f"{', '.join(missing_document_codes)}"
        )


class InvalidPhaseTransitionError(PhaseStateError):
    """The requested transition is not allowed from the current status."""

    code: str = "INVALID_PHASE_TRANSITION"

    def __init__(self, phase_code: str, from_status: str, action: str):
        self.phase_code = phase_code
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} phase {phase_code} from status {from_status}"
        )


class InvalidContractStatusTransitionError(PhaseStateError):
    """The contract's general status cannot move to the requested status."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Contract status cannot change from {from_status} to {to_status}"
        )


# Not-found exceptions


class NotFoundError(ProcurementKernelError):
    """Base exception for references that do not resolve."""

    code: str = "NOT_FOUND"


class UnknownContractTypeError(NotFoundError):
    """Contract type with given code or id was not found."""

    code: str = "UNKNOWN_CONTRACT_TYPE"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Unknown contract type: {reference}")


class UnknownPhaseError(NotFoundError):
    """Phase with given code or id was not found."""

    code: str = "UNKNOWN_PHASE"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Unknown phase: {reference}")


class AmountRangeNotFoundError(NotFoundError):
    """Amount range with given id was not found."""

    code: str = "AMOUNT_RANGE_NOT_FOUND"

    def __init__(self, range_id: str):
        self.range_id = range_id
        super().__init__(f"Amount range not found: {range_id}")


class ContractNotFoundError(NotFoundError):
    """Contract with given id was not found."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract not found: {contract_id}")


class PhaseNotInContractError(NotFoundError):
    """The phase is not part of the contract's phase sequence."""

    code: str = "PHASE_NOT_IN_CONTRACT"

    def __init__(self, contract_id: str, phase_code: str):
        self.contract_id = contract_id
        self.phase_code = phase_code
        super().__init__(
            f"Phase {phase_code} is not part of contract {contract_id}"
        )


class DocumentRecordNotFoundError(NotFoundError):
    """Document record with given id was not found."""

    code: str = "DOCUMENT_RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Document record not found: {record_id}")


# Input validation


class InputValidationError(ProcurementKernelError):
    """A field failed validation before any persistence attempt."""

    code: str = "INPUT_VALIDATION"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Concurrency exceptions


class ConcurrencyError(ProcurementKernelError):
    """Base exception for concurrent modification errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleContractError(ConcurrencyError):
    """The contract was modified by another writer since it was read."""

    code: str = "STALE_CONTRACT"

    def __init__(self, contract_id: str, expected_version: int):
        self.contract_id = contract_id
        self.expected_version = expected_version
        super().__init__(
            f"Contract {contract_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


# Authorization exceptions


class AuthorizationError(ProcurementKernelError):
    """Base exception for permission checks made before a mutation."""

    code: str = "AUTHORIZATION_ERROR"


class PermissionDeniedError(AuthorizationError):
    """The actor lacks the permission for the requested action."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, actor_id: str, action: str, department_id: str | None = None):
        self.actor_id = actor_id
        self.action = action
        self.department_id = department_id
        scope = f" in department {department_id}" if department_id else ""
        super().__init__(f"Actor {actor_id} may not {action}{scope}")


class ApprovalLimitExceededError(AuthorizationError):
    """The contract amount exceeds the department's approval limit."""

    code: str = "APPROVAL_LIMIT_EXCEEDED"

    def __init__(self, department_id: str | None, amount: str, limit: str):
        self.department_id = department_id
        self.amount = amount
        self.limit = limit
        super().__init__(
            f"Amount {amount} exceeds the approval limit {limit} "
            f"of department {department_id}"
        )
