"""
Reference Data Service
Reads and simple creates for the lookup collections
"""
import logging
from typing import List

from beanie import PydanticObjectId

from forex.config import Settings
from forex.exceptions import ConflictError, NotFoundError
from forex.models.common import parse_object_id
from forex.models.reference import (
    Branch, BranchCreate, Country, CountryCreate, Currency, CurrencyCreate,
    CustomerType, Department, DepartmentCreate, District, DistrictCreate,
    NamedCreate, Process, ProcessCreate, Subprocess, SubprocessCreate, TravelPurpose,
)
from forex.models.user import CurrentUser
from forex.repositories.reference import NamedRepository
from forex.repositories.registry import Repositories
from forex.services.deadline import bounded

logger = logging.getLogger(__name__)


class ReferenceService:
    def __init__(self, settings: Settings, repos: Repositories):
        self.settings = settings
        self.repos = repos

    async def _create(self, repository: NamedRepository, entity, current: CurrentUser):
        if await repository.find_by_name(entity.name) is not None:
            raise ConflictError(f"{entity.name} already exists")
        entity.created_by = current.user_id
        created = await repository.create(entity)
        logger.info("Created %s %s", repository.collection, created.name)
        return created

    async def _parent(self, repository: NamedRepository, value: str, label: str) -> PydanticObjectId:
        parent_id = parse_object_id(value, f"{label} ID")
        if not await repository.exists(parent_id):
            raise NotFoundError(f"{label} not found")
        return parent_id

    # Reads

    @bounded
    async def list_currencies(self) -> List[Currency]:
        return await self.repos.currencies.find_all()

    @bounded
    async def list_countries(self) -> List[Country]:
        return await self.repos.countries.find_all()

    @bounded
    async def list_districts(self) -> List[District]:
        return await self.repos.districts.find_all()

    @bounded
    async def list_branches(self) -> List[Branch]:
        return await self.repos.branches.find_all()

    @bounded
    async def list_branches_by_district(self, district_id: PydanticObjectId) -> List[Branch]:
        return await self.repos.branches.find({"district_id": district_id})

    @bounded
    async def list_processes(self) -> List[Process]:
        return await self.repos.processes.find_all()

    @bounded
    async def list_subprocesses(self) -> List[Subprocess]:
        return await self.repos.subprocesses.find_all()

    @bounded
    async def list_subprocesses_by_process(self, process_id: PydanticObjectId) -> List[Subprocess]:
        return await self.repos.subprocesses.find({"process_id": process_id})

    @bounded
    async def list_departments(self) -> List[Department]:
        return await self.repos.departments.find_all()

    @bounded
    async def list_departments_by_subprocess(self, subprocess_id: PydanticObjectId) -> List[Department]:
        return await self.repos.departments.find({"subprocess_id": subprocess_id})

    @bounded
    async def list_travel_purposes(self) -> List[TravelPurpose]:
        return await self.repos.travel_purposes.find_all()

    @bounded
    async def list_customer_types(self) -> List[CustomerType]:
        return await self.repos.customer_types.find_all()

    # Creates

    @bounded
    async def create_currency(self, payload: CurrencyCreate, current: CurrentUser) -> Currency:
        return await self._create(self.repos.currencies, Currency(
            name=payload.name.strip(), short_code=payload.short_code.upper(),
        ), current)

    @bounded
    async def create_country(self, payload: CountryCreate, current: CurrentUser) -> Country:
        return await self._create(self.repos.countries, Country(
            name=payload.name.strip(), short_code=payload.short_code.upper(),
            visa_required=payload.visa_required,
        ), current)

    @bounded
    async def create_district(self, payload: DistrictCreate, current: CurrentUser) -> District:
        return await self._create(self.repos.districts, District(name=payload.name.strip()), current)

    @bounded
    async def create_branch(self, payload: BranchCreate, current: CurrentUser) -> Branch:
        district_id = await self._parent(self.repos.districts, payload.district_id, "district")
        return await self._create(self.repos.branches, Branch(
            name=payload.name.strip(),
            branch_code=payload.branch_code.strip(),
            email=payload.email,
            address=payload.address,
            district_id=district_id,
        ), current)

    @bounded
    async def create_process(self, payload: ProcessCreate, current: CurrentUser) -> Process:
        return await self._create(self.repos.processes, Process(name=payload.name.strip()), current)

    @bounded
    async def create_subprocess(self, payload: SubprocessCreate, current: CurrentUser) -> Subprocess:
        process_id = await self._parent(self.repos.processes, payload.process_id, "process")
        return await self._create(self.repos.subprocesses, Subprocess(
            name=payload.name.strip(), process_id=process_id,
        ), current)

    @bounded
    async def create_department(self, payload: DepartmentCreate, current: CurrentUser) -> Department:
        subprocess_id = await self._parent(self.repos.subprocesses, payload.subprocess_id, "subprocess")
        return await self._create(self.repos.departments, Department(
            name=payload.name.strip(), email=payload.email, subprocess_id=subprocess_id,
        ), current)

    @bounded
    async def create_travel_purpose(self, payload: NamedCreate, current: CurrentUser) -> TravelPurpose:
        return await self._create(self.repos.travel_purposes, TravelPurpose(name=payload.name.strip()), current)

    @bounded
    async def create_customer_type(self, payload: NamedCreate, current: CurrentUser) -> CustomerType:
        return await self._create(self.repos.customer_types, CustomerType(name=payload.name.strip()), current)
