"""
Module: ledger_kernel.selectors.company_selector
Responsibility: Read-only lookups of organizations and companies.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import CompanyInfo, OrganizationInfo
from ledger_kernel.models.organization import Company, Organization
from ledger_kernel.selectors.base import BaseSelector


def company_to_info(company: Company) -> CompanyInfo:
    return CompanyInfo(
        id=company.id,
        organization_id=company.organization_id,
        name=company.name,
        functional_currency=company.functional_currency,
        fiscal_year_end_month=company.fiscal_year_end_month,
        fiscal_year_end_day=company.fiscal_year_end_day,
        is_active=company.is_active,
    )


class CompanySelector(BaseSelector[Company]):
    """Organization and company lookups."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_organization(self, organization_id: UUID) -> OrganizationInfo | None:
        organization = self.session.get(Organization, organization_id)
        if organization is None:
            return None
        return OrganizationInfo(id=organization.id, name=organization.name)

    def find_by_id(
        self, company_id: UUID, organization_id: UUID | None = None
    ) -> CompanyInfo | None:
        """Company by id, optionally restricted to one organization."""
        company = self.session.get(Company, company_id)
        if company is None:
            return None
        if organization_id is not None and company.organization_id != organization_id:
            return None
        return company_to_info(company)

    def find_by_organization(self, organization_id: UUID) -> list[CompanyInfo]:
        companies = self.session.execute(
            select(Company)
            .where(Company.organization_id == organization_id)
            .order_by(Company.name)
        ).scalars().all()
        return [company_to_info(company) for company in companies]
