from __future__ import annotations

from decimal import Decimal

from ...common.validators import quantize_money
from ...core.constants import ESI_RATE, ESI_WAGE_CEILING, PF_RATE
from ..model import Compliance
from .base import StatutoryCalculator


class StandardStatutoryCalculator(StatutoryCalculator):
    """Flat PF on base salary; ESI only at or below the wage ceiling (not prorated).

    TDS is entered by hand and is never computed here.
    """

    def __init__(
        self,
        *,
        pf_rate: Decimal = PF_RATE,
        esi_rate: Decimal = ESI_RATE,
        esi_ceiling: Decimal = ESI_WAGE_CEILING,
    ):
        self._pf_rate = Decimal(pf_rate)
        self._esi_rate = Decimal(esi_rate)
        self._esi_ceiling = Decimal(esi_ceiling)

    def compute(self, base_salary: Decimal) -> Compliance:
        pf = quantize_money(base_salary * self._pf_rate)
        esi = quantize_money(base_salary * self._esi_rate) if base_salary <= self._esi_ceiling else Decimal("0.00")
        return Compliance(pf=pf, esi=esi)
