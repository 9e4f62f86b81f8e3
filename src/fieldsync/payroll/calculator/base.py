from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from ..model import Compliance


class StatutoryCalculator(ABC):
    """Calculator interface (Strategy Pattern for statutory deductions)."""

    @abstractmethod
    def compute(self, base_salary: Decimal) -> Compliance:
        raise NotImplementedError
