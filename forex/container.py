"""
Service Container
Wires settings, store, repositories and services once per application
"""
from forex.config import Settings
from forex.repositories.registry import Repositories
from forex.services.auth import AuthService
from forex.services.email import EmailService
from forex.services.files import FileService
from forex.services.ldap import LdapDirectory
from forex.services.reference import ReferenceService
from forex.services.requests import RequestService
from forex.services.security import TokenService
from forex.services.users import RoleService, UserService


class Container:
    def __init__(self, settings: Settings, store):
        self.settings = settings
        self.store = store
        self.repos = Repositories(store)

        self.tokens = TokenService(settings)
        self.directory = LdapDirectory(settings) if settings.ldap_enabled else None
        self.email_service = EmailService(settings)
        self.file_service = FileService(settings, self.repos.files)

        self.auth_service = AuthService(settings, self.repos, self.tokens, self.directory)
        self.user_service = UserService(settings, self.repos)
        self.role_service = RoleService(settings, self.repos)
        self.reference_service = ReferenceService(settings, self.repos)
        self.request_service = RequestService(settings, self.repos, self.file_service, self.email_service)
