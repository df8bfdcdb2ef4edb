"""
Reference Data Routes
Lookup lists used by the request form, plus simple creates
"""
from fastapi import APIRouter, Depends

from forex.api.deps import get_container, get_current_user, object_id, require_permissions
from forex.api.responses import envelope
from forex.container import Container
from forex.models.reference import (
    BranchCreate, CountryCreate, CurrencyCreate, DepartmentCreate, DistrictCreate,
    NamedCreate, ProcessCreate, SubprocessCreate,
)
from forex.models.user import CurrentUser

router = APIRouter()

can_add = require_permissions("reference:add")


# Public lookups

@router.get("/countries")
async def list_countries(container: Container = Depends(get_container)):
    return envelope("Countries fetched successfully", await container.reference_service.list_countries())


@router.get("/travelpurpose")
async def list_travel_purposes(container: Container = Depends(get_container)):
    return envelope("Travel purposes fetched successfully", await container.reference_service.list_travel_purposes())


# Authenticated lookups

@router.get("/currencies")
async def list_currencies(
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope("Currencies fetched successfully", await container.reference_service.list_currencies())


@router.get("/districts")
async def list_districts(
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope("Districts fetched successfully", await container.reference_service.list_districts())


@router.get("/branches")
async def list_branches(
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope("Branches fetched successfully", await container.reference_service.list_branches())


@router.get("/branches/{district_id}")
async def list_branches_by_district(
    district_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    branches = await container.reference_service.list_branches_by_district(object_id(district_id))
    return envelope("Branches fetched successfully", branches)


@router.get("/processes")
async def list_processes(
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope("Processes fetched successfully", await container.reference_service.list_processes())


@router.get("/subprocesses")
async def list_subprocesses(
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope("Subprocesses fetched successfully", await container.reference_service.list_subprocesses())


@router.get("/subprocesses/{process_id}")
async def list_subprocesses_by_process(
    process_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    subprocesses = await container.reference_service.list_subprocesses_by_process(object_id(process_id))
    return envelope("Subprocesses fetched successfully", subprocesses)


@router.get("/departments")
async def list_departments(
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope("Departments fetched successfully", await container.reference_service.list_departments())


@router.get("/departments/{subprocess_id}")
async def list_departments_by_subprocess(
    subprocess_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    departments = await container.reference_service.list_departments_by_subprocess(object_id(subprocess_id))
    return envelope("Departments fetched successfully", departments)


@router.get("/customertypes")
async def list_customer_types(
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    return envelope("Customer types fetched successfully", await container.reference_service.list_customer_types())


# Creates

@router.post("/currency", status_code=201)
async def create_currency(
    payload: CurrencyCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("Currency created successfully",
                    await container.reference_service.create_currency(payload, current_user))


@router.post("/country", status_code=201)
async def create_country(
    payload: CountryCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("Country created successfully",
                    await container.reference_service.create_country(payload, current_user))


@router.post("/district", status_code=201)
async def create_district(
    payload: DistrictCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("District created successfully",
                    await container.reference_service.create_district(payload, current_user))


@router.post("/branch", status_code=201)
async def create_branch(
    payload: BranchCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("Branch created successfully",
                    await container.reference_service.create_branch(payload, current_user))


@router.post("/process", status_code=201)
async def create_process(
    payload: ProcessCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("Process created successfully",
                    await container.reference_service.create_process(payload, current_user))


@router.post("/subprocess", status_code=201)
async def create_subprocess(
    payload: SubprocessCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("Subprocess created successfully",
                    await container.reference_service.create_subprocess(payload, current_user))


@router.post("/department", status_code=201)
async def create_department(
    payload: DepartmentCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("Department created successfully",
                    await container.reference_service.create_department(payload, current_user))


@router.post("/travelpurpose", status_code=201)
async def create_travel_purpose(
    payload: NamedCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("Travel purpose created successfully",
                    await container.reference_service.create_travel_purpose(payload, current_user))


@router.post("/customertype", status_code=201)
async def create_customer_type(
    payload: NamedCreate,
    current_user: CurrentUser = Depends(can_add),
    container: Container = Depends(get_container),
):
    return envelope("Customer type created successfully",
                    await container.reference_service.create_customer_type(payload, current_user))
