"""Contract generation from templates at the 100% stage.

Templates are HTML with ``{{variable}}`` placeholders. Available variables:
orderId, contractNumber, contractDate, advertiserName, agencyName,
campaignName, startDate, endDate, dateRange, totalSpots, totalCost,
totalAmount, paymentTerms and scheduleTable.
"""

import html
import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from babel import numbers as babel_numbers
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.config import get_workflow_config
from src.core.database.models import (
    Advertiser,
    Agency,
    Campaign,
    Contract,
    ContractTemplate,
    Order,
    ScheduledSpot,
    Show,
)
from src.core.utils.naming import apply_template, format_date_range
from src.services.workflow.errors import ContractGenerationError
from src.services.workflow.interfaces import ContractService

logger = logging.getLogger(__name__)

DEFAULT_CONTRACT_TEMPLATE = """<div class="contract">
  <h1>Insertion Order</h1>
  <div>Contract #: {{contractNumber}}</div>
  <div>Date: {{contractDate}}</div>
  <div><span class="field-label">Advertiser:</span> {{advertiserName}}</div>
  <div><span class="field-label">Agency:</span> {{agencyName}}</div>
  <div><span class="field-label">Campaign:</span> {{campaignName}}</div>
  <div><span class="field-label">Flight Dates:</span> {{startDate}} - {{endDate}}</div>
  <div><span class="field-label">Total Spots:</span> {{totalSpots}}</div>
  <div><span class="field-label">Total Amount:</span> {{totalCost}}</div>
  {{scheduleTable}}
  <div><span class="field-label">Payment Terms:</span> {{paymentTerms}}</div>
</div>"""

CURRENCY = "USD"
LOCALE = "en_US"


def format_money(amount: Decimal | float | None) -> str:
    if amount is None:
        return ""
    return babel_numbers.format_currency(amount, CURRENCY, locale=LOCALE)


class SqlContractService(ContractService):
    def __init__(self, session: Session):
        self.session = session

    def generate_contract(self, order_id: str, template_id: str, user_id: str) -> str:
        """Render and persist a draft contract for the order, linking it back to the order.

        An order that already links a contract keeps it; that contract id is returned.

        Raises:
            ContractGenerationError: If the order or its campaign does not exist
        """
        order = self.session.get(Order, order_id)
        if order is None:
            raise ContractGenerationError(f"Order {order_id} not found")
        if order.contract_id:
            existing = self.session.get(Contract, order.contract_id)
            if existing is not None:
                logger.info(f"Order {order_id} already has contract {existing.id}")
                return existing.id

        campaign = self.session.get(Campaign, order.campaign_id)
        if campaign is None:
            raise ContractGenerationError(f"Campaign {order.campaign_id} for order {order_id} not found")

        resolved_template_id, template_html = self._resolve_template(template_id)
        variables = self.build_variables(order, campaign)
        content = apply_template(template_html, variables)

        contract = Contract(
            id=f"ctr_{uuid.uuid4().hex[:16]}",
            order_id=order.id,
            template_id=resolved_template_id,
            status="draft",
            content=content,
            variables={key: value for key, value in variables.items() if key != "scheduleTable"},
            created_by=user_id,
        )
        self.session.add(contract)
        order.contract_id = contract.id
        self.session.flush()

        logger.info(f"Generated draft contract {contract.id} for order {order_id} (template {resolved_template_id})")
        return contract.id

    def _resolve_template(self, template_id: str) -> tuple[str | None, str]:
        """Requested template, else the organization's default, else the built-in one."""
        template = self.session.get(ContractTemplate, template_id)
        if template is not None and template.is_active:
            return template.id, template.html_template

        default_template = self.session.scalars(
            select(ContractTemplate)
            .where(ContractTemplate.is_default.is_(True), ContractTemplate.is_active.is_(True))
            .order_by(ContractTemplate.created_at.desc())
        ).first()
        if default_template is not None:
            if template_id != get_workflow_config().default_contract_template_id:
                logger.warning(f"Contract template {template_id} not found, using default {default_template.id}")
            return default_template.id, default_template.html_template

        return None, DEFAULT_CONTRACT_TEMPLATE

    def build_variables(self, order: Order, campaign: Campaign) -> dict[str, Any]:
        advertiser = self.session.get(Advertiser, order.advertiser_id)
        agency = self.session.get(Agency, order.agency_id) if order.agency_id else None

        rows = self.session.execute(
            select(ScheduledSpot, Show.name)
            .join(Show, Show.id == ScheduledSpot.show_id)
            .where(ScheduledSpot.campaign_id == campaign.id)
            .order_by(ScheduledSpot.air_date, Show.name)
        ).all()

        start_date = campaign.start_date or (rows[0][0].air_date if rows else None)
        end_date = campaign.end_date or (rows[-1][0].air_date if rows else None)
        credit_terms = advertiser.credit_terms if advertiser else 0

        return {
            "orderId": order.id,
            "contractNumber": f"IO-{order.id[-8:].upper()}",
            "contractDate": datetime.now(UTC).date().isoformat(),
            "advertiserName": html.escape(advertiser.name) if advertiser else "",
            "agencyName": html.escape(agency.name) if agency else "",
            "campaignName": html.escape(campaign.name),
            "startDate": start_date.isoformat() if start_date else "",
            "endDate": end_date.isoformat() if end_date else "",
            "dateRange": format_date_range(start_date, end_date) if start_date and end_date else "",
            "totalSpots": len(rows),
            "totalCost": format_money(order.total_amount),
            "totalAmount": str(order.total_amount) if order.total_amount is not None else "",
            "paymentTerms": f"Net {credit_terms}" if credit_terms else "Due on receipt",
            "scheduleTable": render_schedule_table([(spot, show_name) for spot, show_name in rows]),
        }


def render_schedule_table(rows: list[tuple[ScheduledSpot, str]]) -> str:
    """HTML table of scheduled placements, one row per spot."""
    if not rows:
        return "<p>No scheduled placements.</p>"

    body = "".join(
        "<tr>"
        f"<td>{html.escape(show_name)}</td>"
        f"<td>{spot.air_date.isoformat()}</td>"
        f"<td>{html.escape(spot.placement_type)}</td>"
        f"<td>{html.escape(spot.spot_type)}</td>"
        f"<td>{format_money(spot.rate)}</td>"
        "</tr>"
        for spot, show_name in rows
    )
    return (
        '<table class="schedule">'
        "<thead><tr><th>Show</th><th>Air Date</th><th>Placement</th><th>Spot Type</th><th>Rate</th></tr></thead>"
        f"<tbody>{body}</tbody></table>"
    )
