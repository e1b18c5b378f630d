"""
LedgerBook - Advance Tax Projection

Annualises profit before tax earned so far in the fiscal year and applies the
entity's slab table plus health & education cess.

Slabs (annual taxable income):

Individual, new regime:
- 0 - 3,00,000: 0%
- 3,00,001 - 6,00,000: 5%
- 6,00,001 - 9,00,000: 10%
- 9,00,001 - 12,00,000: 15%
- 12,00,001 - 15,00,000: 20%
- Above 15,00,000: 30%

Individual, old regime:
- 0 - 2,50,000: 0%
- 2,50,001 - 5,00,000: 5%
- 5,00,001 - 10,00,000: 20%
- Above 10,00,000: 30%

Company: 25% flat. Firm: 30% flat.

Instalments are cumulative: 15% by 15 Jun, 45% by 15 Sep, 75% by 15 Dec,
100% by 15 Mar.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ledgerbook.config import settings
from ledgerbook.schemas.reports import AdvanceTaxInstalment, AdvanceTaxProjection, SlabTax
from ledgerbook.services.period_filter import fiscal_year_start


class TaxEntityType(str, Enum):
    INDIVIDUAL_NEW = "individual_new"
    INDIVIDUAL_OLD = "individual_old"
    COMPANY = "company"
    FIRM = "firm"

    @property
    def is_individual(self) -> bool:
        return self in (TaxEntityType.INDIVIDUAL_NEW, TaxEntityType.INDIVIDUAL_OLD)


@dataclass
class TaxSlab:
    """Tax slab definition."""
    lower: Decimal
    upper: Optional[Decimal]
    rate: Decimal

    def calculate_tax(self, taxable_income: Decimal) -> Decimal:
        """Tax on the part of income inside this slab."""
        if taxable_income <= self.lower:
            return Decimal("0")

        if self.upper is None:
            taxable_in_slab = taxable_income - self.lower
        else:
            taxable_in_slab = min(taxable_income, self.upper) - self.lower

        if taxable_in_slab <= 0:
            return Decimal("0")

        return taxable_in_slab * (self.rate / 100)

    def taxable_portion(self, taxable_income: Decimal) -> Decimal:
        upper = taxable_income if self.upper is None else min(taxable_income, self.upper)
        return max(upper - self.lower, Decimal("0"))


TAX_SLABS: Dict[TaxEntityType, List[TaxSlab]] = {
    TaxEntityType.INDIVIDUAL_NEW: [
        TaxSlab(Decimal("0"), Decimal("300000"), Decimal("0")),
        TaxSlab(Decimal("300000"), Decimal("600000"), Decimal("5")),
        TaxSlab(Decimal("600000"), Decimal("900000"), Decimal("10")),
        TaxSlab(Decimal("900000"), Decimal("1200000"), Decimal("15")),
        TaxSlab(Decimal("1200000"), Decimal("1500000"), Decimal("20")),
        TaxSlab(Decimal("1500000"), None, Decimal("30")),
    ],
    TaxEntityType.INDIVIDUAL_OLD: [
        TaxSlab(Decimal("0"), Decimal("250000"), Decimal("0")),
        TaxSlab(Decimal("250000"), Decimal("500000"), Decimal("5")),
        TaxSlab(Decimal("500000"), Decimal("1000000"), Decimal("20")),
        TaxSlab(Decimal("1000000"), None, Decimal("30")),
    ],
    TaxEntityType.COMPANY: [
        TaxSlab(Decimal("0"), None, Decimal("25")),
    ],
    TaxEntityType.FIRM: [
        TaxSlab(Decimal("0"), None, Decimal("30")),
    ],
}

# (month, day, cumulative percent)
INSTALMENT_SCHEDULE: List[Tuple[int, int, Decimal]] = [
    (6, 15, Decimal("15")),
    (9, 15, Decimal("45")),
    (12, 15, Decimal("75")),
    (3, 15, Decimal("100")),
]


def months_elapsed(as_of: date, start_month: Optional[int] = None) -> int:
    """Months of the fiscal year up to and including the month of `as_of`."""
    start_month = start_month or settings.fiscal_year_start_month
    if as_of.month >= start_month:
        return as_of.month - start_month + 1
    return as_of.month + (12 - start_month + 1)


class AdvanceTaxCalculator:
    """
    Advance-tax projection.

    TDS/TCS already credited comes from the external tax engine and is taken
    as an opaque amount.
    """

    def __init__(
        self,
        entity_type: TaxEntityType = TaxEntityType.INDIVIDUAL_NEW,
        cess_rate: Optional[Decimal] = None,
        start_month: Optional[int] = None,
    ):
        self.entity_type = TaxEntityType(entity_type)
        self.cess_rate = settings.health_education_cess_rate if cess_rate is None else cess_rate
        self.start_month = start_month or settings.fiscal_year_start_month
        self.slabs = sorted(
            TAX_SLABS[self.entity_type],
            key=lambda s: (s.upper is None, s.upper or Decimal("0")),
        )

    def annualise(self, profit_to_date: Decimal, as_of: date) -> Decimal:
        months = months_elapsed(as_of, self.start_month)
        return round(profit_to_date * 12 / months, 2)

    def calculate_tax(self, taxable_income: Decimal) -> Tuple[Decimal, List[SlabTax]]:
        """
        Apply slabs in ascending order.

        Returns:
            Tuple of (tax, slab_breakdown)
        """
        total_tax = Decimal("0")
        breakdown = []
        if taxable_income <= 0:
            return total_tax, breakdown

        for slab in self.slabs:
            tax_in_slab = slab.calculate_tax(taxable_income)
            if taxable_income > slab.lower:
                breakdown.append(SlabTax(
                    lower_limit=slab.lower,
                    upper_limit=slab.upper,
                    rate=slab.rate,
                    taxable_amount=slab.taxable_portion(taxable_income),
                    tax=round(tax_in_slab, 2),
                ))
            total_tax += tax_in_slab

        return round(total_tax, 2), breakdown

    def instalments(self, net_tax: Decimal, as_of: date) -> List[AdvanceTaxInstalment]:
        fy_start = fiscal_year_start(as_of, self.start_month)
        schedule = []
        previous = Decimal("0")
        for month, day, percent in INSTALMENT_SCHEDULE:
            year = fy_start.year if month >= fy_start.month else fy_start.year + 1
            cumulative = round(net_tax * percent / 100, 2)
            schedule.append(AdvanceTaxInstalment(
                due_date=date(year, month, day),
                cumulative_percent=percent,
                cumulative_amount=cumulative,
                instalment_amount=cumulative - previous,
            ))
            previous = cumulative
        return schedule

    def project(
        self,
        profit_to_date: Decimal,
        as_of: date,
        tenant_id: str,
        deductions: Decimal = Decimal("0"),
        tds_credit: Decimal = Decimal("0"),
        warnings: Optional[List[str]] = None,
    ) -> AdvanceTaxProjection:
        projected = self.annualise(profit_to_date, as_of)
        applied_deductions = deductions if self.entity_type.is_individual else Decimal("0")
        taxable_income = max(projected - applied_deductions, Decimal("0"))

        tax, breakdown = self.calculate_tax(taxable_income)
        cess = round(tax * self.cess_rate / 100, 2)
        total_tax = tax + cess
        net_tax = max(total_tax - tds_credit, Decimal("0"))

        fy_start = fiscal_year_start(as_of, self.start_month)
        return AdvanceTaxProjection(
            tenant_id=tenant_id,
            start_date=fy_start,
            end_date=as_of,
            entity_type=self.entity_type.value,
            as_of=as_of,
            fiscal_year_start=fy_start,
            months_elapsed=months_elapsed(as_of, self.start_month),
            profit_to_date=profit_to_date,
            projected_annual_income=projected,
            deductions=applied_deductions,
            taxable_income=taxable_income,
            tax_before_cess=tax,
            cess=cess,
            total_tax=total_tax,
            tds_credit=tds_credit,
            net_tax_payable=net_tax,
            slab_breakdown=breakdown,
            instalments=self.instalments(net_tax, as_of),
            warnings=warnings or [],
        )


def calculate_advance_tax(
    profit_to_date: Decimal,
    as_of: date,
    entity_type: str = "individual_new",
    deductions: Decimal = Decimal("0"),
    tds_credit: Decimal = Decimal("0"),
    tenant_id: str = "",
) -> AdvanceTaxProjection:
    """Convenience wrapper around AdvanceTaxCalculator.project."""
    calculator = AdvanceTaxCalculator(TaxEntityType(entity_type))
    return calculator.project(
        Decimal(str(profit_to_date)),
        as_of,
        tenant_id=tenant_id,
        deductions=Decimal(str(deductions)),
        tds_credit=Decimal(str(tds_credit)),
    )
