"""
Repository Registry
Builds every repository over one document store
"""
from forex.repositories.file import FileRepository
from forex.repositories.reference import (
    BranchRepository, CountryRepository, CurrencyRepository, CustomerTypeRepository,
    DepartmentRepository, DistrictRepository, ProcessRepository, SubprocessRepository,
    TravelPurposeRepository,
)
from forex.repositories.request import RequestRepository
from forex.repositories.user import (
    ProfileRepository, RoleRepository, TokenBlacklistRepository, UserRepository,
)


class Repositories:
    def __init__(self, store):
        self.store = store

        self.requests = RequestRepository(store)
        self.files = FileRepository(store)

        self.users = UserRepository(store)
        self.profiles = ProfileRepository(store)
        self.roles = RoleRepository(store)
        self.token_blacklist = TokenBlacklistRepository(store)

        self.currencies = CurrencyRepository(store)
        self.countries = CountryRepository(store)
        self.districts = DistrictRepository(store)
        self.branches = BranchRepository(store)
        self.processes = ProcessRepository(store)
        self.subprocesses = SubprocessRepository(store)
        self.departments = DepartmentRepository(store)
        self.travel_purposes = TravelPurposeRepository(store)
        self.customer_types = CustomerTypeRepository(store)
