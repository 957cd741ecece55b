import getpass
import logging
from typing import Any, Dict, List, Optional

import keyring
from ldap3 import ALL, BASE, KERBEROS, LEVEL, SASL, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from ..exceptions import CredentialError

logger = logging.getLogger(__name__)

# LDAP result codes that still carry usable entries
RESULT_SUCCESS = 0
RESULT_SIZE_LIMIT_EXCEEDED = 4


class LDAPAdapter:
    """
    LDAP connection adapter for Active Directory queries.

    This class handles server connections, authentication and the small set of
    query operations the computer report needs: subtree searches, counts and
    discovery of the default naming context. Authentication uses an explicit
    user with a keyring or prompted password, or the caller's ambient Kerberos
    identity when no user is configured.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize LDAP adapter with configuration settings.

        Args:
            config: Dictionary containing LDAP connection settings.
                   At least one of 'server' or 'search_base' is required.

                   Optional keys with defaults:
                   - 'server': LDAP server hostname (default: DNS domain of search_base)
                   - 'search_base': Base DN for searches (default: defaultNamingContext)
                   - 'user': Bind identity; None binds with the ambient Kerberos ticket
                   - 'password': Password for 'user' (skips keyring and prompt)
                   - 'keyring_service': Keyring service name for password lookup
                   - 'use_ssl': Enable SSL/TLS (default: True)
                   - 'port': LDAP port (default: 636 for SSL, 389 for non-SSL)
                   - 'timeout': Connection timeout in seconds (default: 600)
                   - 'default_page_size': Page size for paged searches (default: 1000)

        Raises:
            ValueError: If neither server nor search_base is configured
            TypeError: If configuration is not a dictionary
        """
        if not isinstance(config, dict):
            raise TypeError("Configuration must be a dictionary")

        self.search_base = config.get("search_base") or None
        self.server_hostname = config.get("server") or self._domain_from_dn(
            self.search_base
        )
        if not self.server_hostname:
            raise ValueError(
                "Either 'server' or a 'search_base' with DC= components is required"
            )

        self.user = config.get("user") or None
        self.keyring_service = config.get("keyring_service") or None

        self.use_ssl = config.get("use_ssl", True)
        self.port = config.get("port") or (636 if self.use_ssl else 389)
        self.timeout = config.get("timeout", 600)  # AD is very slow, needs long timeout
        self.default_page_size = config.get("default_page_size", 1000)

        self._server = None
        self._password = config.get("password") or None

        logger.debug(f"LDAP adapter initialized for server: {self.server_hostname}")

    @staticmethod
    def _domain_from_dn(dn: Optional[str]) -> Optional[str]:
        """
        Derive a DNS domain from the DC= components of a DN.

        'OU=Sites,DC=example,DC=com' -> 'example.com'. An AD domain name
        resolves to its domain controllers, so it works as a server address.
        """
        if not dn:
            return None
        labels = []
        for rdn in dn.split(","):
            attr, _, value = rdn.strip().partition("=")
            if attr.strip().lower() == "dc" and value.strip():
                labels.append(value.strip())
        return ".".join(labels) or None

    @property
    def uses_ambient_identity(self) -> bool:
        return self.user is None

    def _get_password(self) -> str:
        """
        Retrieve password from keyring or prompt user.

        The password is cached for the remainder of the run so that every
        fresh search connection reuses it without prompting again.

        Returns:
            str: The password for LDAP authentication

        Raises:
            CredentialError: If the prompt is cancelled or cannot be shown
        """
        if self._password:
            return self._password

        if self.keyring_service:
            try:
                password = keyring.get_password(self.keyring_service, self.user)
                if password:
                    logger.debug("Using password from keyring")
                    self._password = password
                    return password
            except Exception as e:
                logger.warning(f"Could not retrieve password from keyring: {e}")

        try:
            password = getpass.getpass(f"Enter LDAP password for {self.user}: ")
        except (KeyboardInterrupt, EOFError) as e:
            logger.info("Password prompt cancelled by user")
            raise CredentialError(f"Password prompt for {self.user} cancelled") from e
        except Exception as e:
            raise CredentialError(f"Could not prompt for password: {e}") from e

        if not password:
            raise CredentialError(f"Empty password entered for {self.user}")

        self._password = password
        return password

    def acquire_credentials(self) -> None:
        """Resolve the bind password up front; a no-op for the ambient identity."""
        if not self.uses_ambient_identity:
            self._get_password()

    def _create_server(self) -> Server:
        """
        Create LDAP server object with current configuration.

        Returns:
            Server: Configured ldap3 Server object

        Raises:
            LDAPException: If server creation fails
        """
        if not self._server:
            try:
                self._server = Server(
                    self.server_hostname,
                    use_ssl=self.use_ssl,
                    port=self.port,
                    get_info=ALL,
                    connect_timeout=self.timeout,
                )
                logger.debug(
                    f"LDAP server object created: {self.server_hostname}:{self.port}"
                )
            except Exception as e:
                logger.error(f"Failed to create LDAP server object: {e}")
                raise LDAPException(f"Server creation failed: {e}")

        return self._server

    def _create_connection(self) -> Connection:
        """
        Create and bind LDAP connection.

        Returns:
            Connection: Authenticated ldap3 Connection object

        Raises:
            CredentialError: If the password cannot be acquired
            LDAPException: If connection or authentication fails
        """
        server = self._create_server()

        if self.uses_ambient_identity:
            connection_kwargs = {"authentication": SASL, "sasl_mechanism": KERBEROS}
        else:
            connection_kwargs = {"user": self.user, "password": self._get_password()}

        try:
            connection = Connection(server, auto_bind=True, **connection_kwargs)
        except Exception as e:
            logger.error(f"LDAP connection failed: {e}")
            raise LDAPException(f"Connection failed: {e}")

        if not connection.bound:
            raise LDAPException("Failed to bind to LDAP server")

        identity = "ambient Kerberos identity" if self.uses_ambient_identity else self.user
        logger.debug(f"Bound to {self.server_hostname} as {identity}")
        return connection

    def test_connection(self) -> bool:
        """
        Test LDAP connection and verify the search base is readable.

        Performs a BASE-scope read of the search base, which succeeds on any
        directory where the bind identity can see the root of the search.

        Returns:
            bool: True if connection test succeeds, False otherwise

        Raises:
            CredentialError: Credential problems are not a connectivity failure
                and are propagated to the caller
        """
        conn = None
        try:
            conn = self._create_connection()

            if not self.search_base:
                logger.info(f"Connection test successful: bound to {self.server_hostname}")
                return True

            success = conn.search(
                search_base=self.search_base,
                search_filter="(objectClass=*)",
                search_scope=BASE,
                attributes=["1.1"],
            )

            if success:
                logger.info(
                    f"Connection test successful: {self.search_base} is readable"
                )
                return True
            else:
                logger.warning(f"Search base check failed: {conn.result}")
                return False

        except CredentialError:
            raise
        except LDAPException as e:
            logger.error(f"LDAP connection test failed: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error during connection test: {e}")
            return False
        finally:
            self._close(conn)

    def get_default_naming_context(self) -> Optional[str]:
        """
        Read the domain's defaultNamingContext from the RootDSE.

        Returns:
            Optional[str]: The naming context DN, or None if the server does not publish one
        """
        conn = self._create_connection()
        try:
            info = conn.server.info
            if info is None or not info.other:
                return None
            values = info.other.get("defaultNamingContext") or []
            naming_context = values[0] if values else None
            logger.debug(f"Default naming context: {naming_context}")
            return naming_context
        finally:
            self._close(conn)

    def resolve_search_base(self) -> str:
        """
        Ensure a search base is set, discovering it from the RootDSE if needed.

        Raises:
            LDAPException: If no search base is configured and none can be discovered
        """
        if not self.search_base:
            self.search_base = self.get_default_naming_context()
            if not self.search_base:
                raise LDAPException(
                    f"No search base configured and {self.server_hostname} "
                    f"publishes no defaultNamingContext"
                )
            logger.info(f"Using discovered search base: {self.search_base}")
        return self.search_base

    def get_connection_info(self) -> Dict[str, Any]:
        """
        Get information about the current LDAP configuration.

        Returns:
            Dict[str, Any]: Configuration information (passwords excluded)
        """
        return {
            "server": self.server_hostname,
            "port": self.port,
            "use_ssl": self.use_ssl,
            "search_base": self.search_base,
            "user": self.user or "(ambient identity)",
            "keyring_service": self.keyring_service,
            "timeout": self.timeout,
            "default_page_size": self.default_page_size,
        }

    def __str__(self) -> str:
        """String representation of the LDAP adapter."""
        ssl_status = "SSL" if self.use_ssl else "non-SSL"
        identity = self.user or "ambient"
        return f"LDAPAdapter({self.server_hostname}:{self.port}, {ssl_status}, user={identity})"

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"LDAPAdapter(server='{self.server_hostname}', port={self.port}, "
            f"use_ssl={self.use_ssl}, search_base='{self.search_base}', "
            f"user='{self.user}', keyring_service='{self.keyring_service}')"
        )

    @staticmethod
    def _close(conn: Optional[Connection]) -> None:
        if conn is None:
            return
        try:
            conn.unbind()
            logger.debug("LDAP connection closed")
        except Exception as e:
            logger.debug(f"Ignoring error while closing connection: {e}")

    @staticmethod
    def _check_result(conn: Connection) -> None:
        """Raise LDAPException for any result code other than success or size limit."""
        result = conn.result or {}
        code = result.get("result", RESULT_SUCCESS)
        if code not in (RESULT_SUCCESS, RESULT_SIZE_LIMIT_EXCEEDED):
            description = result.get("description", "unknown error")
            message = result.get("message", "")
            raise LDAPException(f"Search failed ({code} {description}): {message}".rstrip(": "))

    # Core Search Infrastructure

    def search(
        self,
        search_filter: str,
        search_base: Optional[str] = None,
        scope: str = "subtree",
        attributes: Optional[List[str]] = None,
        use_pagination: bool = True,
        page_size: Optional[int] = None,
    ) -> List:
        """
        Core search method with automatic pagination for complete results.

        Args:
            search_filter: LDAP filter string (e.g., '(objectClass=organizationalUnit)')
            search_base: Base DN for search (defaults to adapter's search_base)
            scope: Search scope - 'base', 'level', or 'subtree' (default: 'subtree')
            attributes: List of attributes to retrieve (None for all available)
            use_pagination: Switch to a paged search when a size limit is hit (default: True)
            page_size: Page size for pagination (defaults to adapter's configured size)

        Returns:
            List: List of ldap3 Entry objects

        Raises:
            LDAPException: If search operation fails
            ValueError: If parameters are invalid
        """
        if not search_filter or not isinstance(search_filter, str):
            raise ValueError("search_filter must be a non-empty string")

        base_dn = search_base if search_base is not None else self.resolve_search_base()

        scope_mapping = {"base": BASE, "level": LEVEL, "subtree": SUBTREE}
        if scope.lower() not in scope_mapping:
            raise ValueError(f"scope must be one of: {list(scope_mapping.keys())}")

        search_kwargs = {
            "search_base": base_dn,
            "search_filter": search_filter,
            "search_scope": scope_mapping[scope.lower()],
            "attributes": attributes if attributes is not None else ["*"],
        }

        conn = None
        try:
            conn = self._create_connection()

            logger.debug(
                f"Executing search: filter='{search_filter}', base='{base_dn}', scope='{scope}', pagination={use_pagination}"
            )

            results = self._execute_simple_search(conn, **search_kwargs)

            if use_pagination and self._looks_truncated(conn, results):
                logger.info(
                    f"Detected size limit ({len(results)} results). Switching to paged search for completeness."
                )
                results = self._execute_paged_search(
                    conn, page_size or self.default_page_size, **search_kwargs
                )

            logger.debug(f"Search completed: {len(results)} results returned")
            return results

        except (LDAPException, CredentialError):
            raise
        except Exception as e:
            logger.error(f"Unexpected error during search: {e}")
            raise LDAPException(f"Search operation failed: {e}")
        finally:
            self._close(conn)

    def _execute_simple_search(self, conn: Connection, **search_kwargs) -> List:
        """
        Execute a simple search that accepts server-side size limits.

        Returns:
            List: Search results from server

        Raises:
            LDAPException: If the server reports an error result
        """
        conn.search(**search_kwargs)
        self._check_result(conn)
        return list(conn.entries)

    @staticmethod
    def _looks_truncated(conn: Connection, results: List) -> bool:
        result = conn.result or {}
        if result.get("result") == RESULT_SIZE_LIMIT_EXCEEDED:
            return True
        # Common server page limits (MaxPageSize on AD is 1000)
        return len(results) in (500, 1000, 2000, 5000)

    def _execute_paged_search(
        self, conn: Connection, page_size: int, **search_kwargs
    ) -> List:
        """
        Execute a paged search to handle large result sets.

        Uses ldap3's paged_search with generator=False so the search completes
        before the connection is closed, then keeps only actual entries
        (type='searchResEntry'), dropping referrals.

        Returns:
            List: Combined Entry objects from all pages
        """
        logger.debug(f"Starting paged search with page size: {page_size}")

        try:
            response_list = conn.extend.standard.paged_search(
                paged_size=page_size, generator=False, **search_kwargs
            )
        except LDAPException:
            raise
        except Exception as e:
            logger.error(f"Error during paged search: {e}")
            raise LDAPException(f"Paged search failed: {e}")

        self._check_result(conn)

        entry_count = sum(
            1
            for response in response_list or []
            if isinstance(response, dict) and response.get("type") == "searchResEntry"
        )
        logger.debug(f"Paged search completed: {entry_count} entries retrieved")

        return list(conn.entries) if conn.entries else []

    def count_search_results(
        self,
        search_filter: str,
        search_base: Optional[str] = None,
        scope: str = "subtree",
        use_pagination: bool = True,
    ) -> int:
        """
        Count the number of results a search would return.

        Requests no attributes ('1.1', RFC 4511) so only entry structure
        crosses the wire.

        Args:
            search_filter: LDAP filter to count results for
            search_base: Base DN for search (defaults to adapter's search_base)
            scope: Search scope ('base', 'level', or 'subtree')
            use_pagination: Use pagination for accurate counts (default: True)

        Returns:
            int: Number of objects that match the search criteria
        """
        results = self.search(
            search_filter=search_filter,
            search_base=search_base,
            scope=scope,
            attributes=["1.1"],
            use_pagination=use_pagination,
        )

        count = int(len(results))
        logger.debug(
            f"Count search completed: {count} results for filter '{search_filter}' under '{search_base}'"
        )
        return count
