"""
LDAP directory lookups and bind-based authentication
"""
import logging
from typing import Any, Dict, Optional

from ldap3 import NONE, SUBTREE, SYNC, Connection, Server
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from forex.config import Settings
from forex.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

ATTRIBUTES = ["givenName", "middleName", "sn", "mail"]


class LdapDirectory:
    """Blocking ldap3 client; callers run it in a worker thread"""

    def __init__(self, settings: Settings, client_strategy=SYNC):
        self.settings = settings
        self.client_strategy = client_strategy
        self.server = Server(settings.LDAP_HOST, port=settings.LDAP_PORT,
                             use_ssl=settings.LDAP_USE_SSL, get_info=NONE)

    def find_user(self, username: str) -> Optional[Dict[str, Any]]:
        """Look a user up with the service account; None when absent"""
        search_filter = f"({self.settings.LDAP_USER_ATTRIBUTE}={escape_filter_chars(username)})"
        try:
            with Connection(self.server, user=self.settings.LDAP_BIND_DN,
                            password=self.settings.LDAP_BIND_PASSWORD, auto_bind=True,
                            client_strategy=self.client_strategy) as conn:
                conn.search(self.settings.LDAP_BASE_DN, search_filter,
                            search_scope=SUBTREE, attributes=ATTRIBUTES)
                if not conn.entries:
                    return None
                entry = conn.entries[0]
                return {
                    "dn": entry.entry_dn,
                    "first_name": _value(entry, "givenName") or username,
                    "middle_name": _value(entry, "middleName") or "",
                    "last_name": _value(entry, "sn") or "",
                    "email": _value(entry, "mail") or "",
                }
        except LDAPException as e:
            logger.error("LDAP lookup for %s failed: %s", username, e)
            raise AuthenticationError("directory service unavailable")

    def authenticate(self, username: str, password: str) -> bool:
        if not password:
            return False
        entry = self.find_user(username)
        if entry is None:
            return False
        conn = Connection(self.server, user=entry["dn"], password=password,
                          client_strategy=self.client_strategy)
        try:
            return conn.bind()
        except LDAPException as e:
            logger.warning("LDAP bind for %s failed: %s", username, e)
            return False
        finally:
            conn.unbind()


def _value(entry, attribute: str) -> Optional[str]:
    if attribute not in entry.entry_attributes:
        return None
    value = entry[attribute].value
    if isinstance(value, list):
        return value[0] if value else None
    return value
