"""
Directory Facade for the AD computer report

This facade exposes the two directory operations the report pipeline needs,
node discovery by name and descendant counting, on top of a single
LDAPAdapter connection, and converts raw ldap3 entries into Node records.
"""

from typing import Any, Dict, List
import logging

from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from ..adapters.ldap_adapter import LDAPAdapter
from ..exceptions import DirectoryEnvironmentError
from ..models import Node

logger = logging.getLogger(__name__)

# Primary container type searched by name, and its naming attribute
PRIMARY_OBJECT_CLASS = "organizationalUnit"
PRIMARY_NAMING_ATTRIBUTE = "ou"

# Alternate container type, searched only when enabled
ALTERNATE_OBJECT_CLASS = "container"
ALTERNATE_NAMING_ATTRIBUTE = "cn"

COMPUTER_OBJECT_CLASS = "computer"


class DirectoryFacade:
    """
    Directory client used by the computer count pipeline.

    Construction binds to the directory and verifies the search root is
    readable, so setup problems surface before any query runs. Query methods
    never leak ldap3 Entry objects: discovery returns Node records and
    counting returns a plain int.
    """

    def __init__(self, ldap_config: Dict[str, Any]) -> None:
        """
        Initialize the facade and activate its LDAP connection.

        Args:
            ldap_config (Dict[str, Any]): Configuration dictionary for LDAPAdapter

        Raises:
            CredentialError: If the bind password cannot be acquired
            DirectoryEnvironmentError: If the directory cannot be reached or bound
        """
        logger.info("Initializing directory facade")

        try:
            self.adapter = LDAPAdapter(ldap_config)
        except (TypeError, ValueError) as e:
            raise DirectoryEnvironmentError(f"Invalid directory configuration: {e}") from e

        self.adapter.acquire_credentials()
        self._activate_connection()

        logger.info(f"✅ Directory facade ready: {self.adapter}")

    def _activate_connection(self) -> None:
        """
        Test the LDAP connection and resolve the search root.

        Raises:
            DirectoryEnvironmentError: If the connection test or search base lookup fails
        """
        try:
            self.adapter.resolve_search_base()
        except LDAPException as e:
            raise DirectoryEnvironmentError(
                f"Could not determine search base on {self.adapter.server_hostname}: {e}"
            ) from e

        if not self.adapter.test_connection():
            raise DirectoryEnvironmentError(
                f"Failed to establish directory connection to "
                f"{self.adapter.server_hostname}:{self.adapter.port}"
            )

    @property
    def search_base(self) -> str:
        return self.adapter.search_base

    def _search_nodes(self, object_class: str, naming_attribute: str, name: str) -> List[Node]:
        search_filter = (
            f"(&(objectClass={object_class})({naming_attribute}={escape_filter_chars(name)}))"
        )
        entries = self.adapter.search(
            search_filter=search_filter,
            scope="subtree",
            attributes=[naming_attribute, "name"],
        )
        return [Node.from_entry(entry) for entry in entries]

    def find_nodes_by_name(self, name: str, include_alternate_type: bool = False) -> List[Node]:
        """
        Find containers whose name exactly matches `name` anywhere under the search root.

        Organizational units are always searched; plain containers are added
        when include_alternate_type is set. A failing search is logged and
        skipped so the other search still contributes. Results are merged,
        primary first, without deduplication.

        Args:
            name (str): Exact container name, e.g. 'ADM'
            include_alternate_type (bool): Also search CN=<name> containers

        Returns:
            List[Node]: Matching nodes, possibly empty
        """
        searches = [(PRIMARY_OBJECT_CLASS, PRIMARY_NAMING_ATTRIBUTE)]
        if include_alternate_type:
            searches.append((ALTERNATE_OBJECT_CLASS, ALTERNATE_NAMING_ATTRIBUTE))

        nodes = []
        for object_class, naming_attribute in searches:
            try:
                found = self._search_nodes(object_class, naming_attribute, name)
            except LDAPException as e:
                logger.warning(f"⚠️  Search for {object_class} '{name}' failed: {e}")
                continue

            logger.info(f"Found {len(found)} {object_class} node(s) named '{name}'")
            nodes.extend(found)

        return nodes

    def count_descendants_of_type(
        self, base_dn: str, object_class: str = COMPUTER_OBJECT_CLASS
    ) -> int:
        """
        Count entries of `object_class` in the subtree rooted at `base_dn`.

        Raises:
            LDAPException: If the count query fails
        """
        return self.adapter.count_search_results(
            search_filter=f"(objectClass={escape_filter_chars(object_class)})",
            search_base=base_dn,
            scope="subtree",
        )

    def get_connection_info(self) -> Dict[str, Any]:
        return self.adapter.get_connection_info()
