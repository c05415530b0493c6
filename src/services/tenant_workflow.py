"""SQLAlchemy-backed unit of work and settings for the stage engine."""

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from src.core.database.database_session import get_db_session, get_tenant_session
from src.core.database.models import Organization
from src.services.billing_schedule_service import SqlBillingScheduleService
from src.services.campaign_repository import SqlCampaignRepository
from src.services.contract_service import SqlContractService
from src.services.exclusivity_conflict_checker import SqlConflictChecker
from src.services.inventory_reservation_service import SqlInventoryReservationService
from src.services.order_service import SqlOrderService
from src.services.talent_approval_service import SqlTalentApprovalService
from src.services.workflow.interfaces import TenantWorkflow, WorkflowSettingsProvider
from src.services.workflow.settings import WorkflowAutomationSettings

logger = logging.getLogger(__name__)


class SqlTenantWorkflow(TenantWorkflow):
    """All repositories and services share one session, so they commit or roll back together."""

    def __init__(self, session: Session):
        self.session = session
        self.campaigns = SqlCampaignRepository(session)
        self.orders = SqlOrderService(session)
        self.inventory = SqlInventoryReservationService(session)
        self.talent_approvals = SqlTalentApprovalService(session)
        self.conflicts = SqlConflictChecker(session)
        self.contracts = SqlContractService(session)
        self.billing = SqlBillingScheduleService(session)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


@contextmanager
def open_tenant_workflow(schema_name: str) -> Generator[SqlTenantWorkflow, None, None]:
    """Unit of work over ``schema_name``. Uncommitted work is discarded on exit."""
    with get_tenant_session(schema_name) as session:
        yield SqlTenantWorkflow(session)


class SqlWorkflowSettingsProvider(WorkflowSettingsProvider):
    """Reads ``workflowAutomation`` from the shared organizations table."""

    def get_settings(self, organization_id: str) -> WorkflowAutomationSettings:
        with get_db_session() as session:
            organization = session.get(Organization, organization_id)
            raw_settings = dict(organization.settings or {}) if organization else None

        if organization is None:
            logger.warning(f"Organization {organization_id} not found, using default workflow settings")
        return WorkflowAutomationSettings.from_organization_settings(raw_settings)
