"""Collaborator protocols -- what the kernel consumes from the outside world.

DocumentStorage answers which documents were uploaded against a contract
phase; the completion gate only needs each record's code and active flag.
PermissionProvider answers department-scoped permission questions; it is
consulted by the service facade before invoking a mutator, never by the
pure engines.

Implementations: DocumentRegistryService (database),
InMemoryDocumentStorage (tests, tooling), AllowAllPermissions.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol, Sequence, runtime_checkable
from uuid import UUID

from procurement_kernel.domain.contract import DocumentRecord


@runtime_checkable
class DocumentStorage(Protocol):
    """Protocol for listing the documents uploaded to one contract phase."""

    def list_documents(self, contract_id: UUID, phase_code: str) -> Sequence[DocumentRecord]:
        """Every record of the phase, active or not."""
        ...


@runtime_checkable
class PermissionProvider(Protocol):
    """Protocol for department-scoped permission checks."""

    def is_permitted(
        self,
        actor_id: UUID,
        department_id: UUID | None,
        category: str,
        action: str,
    ) -> bool:
        ...

    def department_approval_limit(self, department_id: UUID | None) -> Decimal | None:
        """Highest amount the department may approve, None for no limit."""
        ...


class InMemoryDocumentStorage:
    """DocumentStorage kept in a dict keyed by (contract_id, phase_code)."""

    def __init__(self) -> None:
        self._records: dict[tuple[UUID, str], list[DocumentRecord]] = {}

    def add(
        self,
        contract_id: UUID,
        phase_code: str,
        document_code: str,
        is_active: bool = True,
        uploaded_at: datetime | None = None,
    ) -> DocumentRecord:
        record = DocumentRecord(
            document_code=document_code,
            is_active=is_active,
            uploaded_at=uploaded_at,
        )
        self._records.setdefault((contract_id, phase_code), []).append(record)
        return record

    def deactivate(self, contract_id: UUID, phase_code: str, document_code: str) -> None:
        """Mark every record of ``document_code`` in the phase as deleted."""
        key = (contract_id, phase_code)
        self._records[key] = [
            DocumentRecord(
                document_code=r.document_code,
                is_active=False,
                file_name=r.file_name,
                file_type=r.file_type,
                file_size=r.file_size,
                uploaded_at=r.uploaded_at,
                record_id=r.record_id,
            )
            if r.document_code == document_code
            else r
            for r in self._records.get(key, [])
        ]

    def list_documents(self, contract_id: UUID, phase_code: str) -> list[DocumentRecord]:
        return list(self._records.get((contract_id, phase_code), []))


class AllowAllPermissions:
    """PermissionProvider that permits everything and has no approval limit."""

    def is_permitted(
        self,
        actor_id: UUID,
        department_id: UUID | None,
        category: str,
        action: str,
    ) -> bool:
        return True

    def department_approval_limit(self, department_id: UUID | None) -> Decimal | None:
        return None
