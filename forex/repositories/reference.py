"""
Reference Data Repositories
One repository per lookup collection
"""
from typing import Optional

from forex.models.reference import (
    Branch, Country, Currency, CustomerType, Department, District,
    Process, Subprocess, TravelPurpose,
)
from forex.repositories.base import BaseRepository


class NamedRepository(BaseRepository):
    """Lookup collections are keyed for humans by a case-insensitive name"""

    async def find_by_name(self, name: str) -> Optional[object]:
        wanted = name.strip().lower()
        for item in await self.find_all():
            if item.name.lower() == wanted:
                return item
        return None


class CurrencyRepository(NamedRepository):
    collection = "currencies"
    model = Currency


class CountryRepository(NamedRepository):
    collection = "countries"
    model = Country


class DistrictRepository(NamedRepository):
    collection = "districts"
    model = District


class BranchRepository(NamedRepository):
    collection = "branches"
    model = Branch


class ProcessRepository(NamedRepository):
    collection = "processes"
    model = Process


class SubprocessRepository(NamedRepository):
    collection = "subprocesses"
    model = Subprocess


class DepartmentRepository(NamedRepository):
    collection = "departments"
    model = Department


class TravelPurposeRepository(NamedRepository):
    collection = "travel_purposes"
    model = TravelPurpose


class CustomerTypeRepository(NamedRepository):
    collection = "customer_types"
    model = CustomerType
