"""Legal case domain service."""

import logging
from typing import Optional

from lexbill.database.base import Database
from lexbill.domain.entities import LegalCase
from lexbill.domain.errors import NotFoundError, ValidationError, case_not_found, require_tenant

logger = logging.getLogger(__name__)


class CaseService:
    """Service for the minimal legal case registry."""

    def __init__(self, db: Database):
        """Initialize case service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_case(
        self,
        tenant_id: int,
        title: str,
        case_number: Optional[str] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
    ) -> int:
        """Register a legal case.

        Args:
            tenant_id: Owning tenant
            title: Case title
            case_number: Optional docket or internal number
            client_id: Optional client the case belongs to
            matter_type_id: Optional matter type (practice area)

        Returns:
            Case ID

        Raises:
            ValidationError: If the title is empty
        """
        require_tenant(tenant_id)
        if not title or not title.strip():
            raise ValidationError("Case title is required")

        case_id = self.db.create_legal_case(
            tenant_id=tenant_id,
            title=title.strip(),
            case_number=case_number,
            client_id=client_id,
            matter_type_id=matter_type_id,
        )
        logger.info("Created case %s for tenant %s", case_id, tenant_id)
        return case_id

    def get_case(self, tenant_id: int, case_id: int) -> Optional[LegalCase]:
        """Get case by ID, or None if the tenant has no such case."""
        return self.db.get_legal_case(require_tenant(tenant_id), case_id)

    def require_case(self, tenant_id: int, case_id: int) -> LegalCase:
        """Get case by ID.

        Raises:
            NotFoundError: If the case does not exist in the tenant
        """
        legal_case = self.get_case(tenant_id, case_id)
        if legal_case is None:
            raise NotFoundError(case_not_found(case_id))
        return legal_case

    def list_cases(self, tenant_id: int) -> list[LegalCase]:
        """List the tenant's cases."""
        return self.db.list_legal_cases(require_tenant(tenant_id))
