"""
Reference Data Models
Lookup collections resolved by requests: currencies, places, org units
"""
from typing import Optional
from pydantic import BaseModel, Field
from beanie import PydanticObjectId

from forex.models.common import Entity


class Currency(Entity):
    name: str
    short_code: str


class Country(Entity):
    name: str
    short_code: str
    visa_required: bool = False


class District(Entity):
    name: str


class Branch(Entity):
    name: str
    branch_code: str
    email: Optional[str] = None
    address: Optional[str] = None
    district_id: PydanticObjectId


class Process(Entity):
    name: str


class Subprocess(Entity):
    name: str
    process_id: PydanticObjectId


class Department(Entity):
    name: str
    email: Optional[str] = None
    subprocess_id: PydanticObjectId


class TravelPurpose(Entity):
    name: str


class CustomerType(Entity):
    name: str


# Create payloads

class CurrencyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    short_code: str = Field(..., min_length=3, max_length=3)


class CountryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    short_code: str = Field(..., min_length=2, max_length=3)
    visa_required: bool = False


class DistrictCreate(BaseModel):
    name: str = Field(..., min_length=1)


class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1)
    branch_code: str = Field(..., min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None
    district_id: str


class ProcessCreate(BaseModel):
    name: str = Field(..., min_length=1)


class SubprocessCreate(BaseModel):
    name: str = Field(..., min_length=1)
    process_id: str


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    subprocess_id: str


class NamedCreate(BaseModel):
    """Payload for lookups that only carry a name (travel purposes, customer types)"""
    name: str = Field(..., min_length=1)
