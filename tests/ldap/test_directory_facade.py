"""
Unit tests for DirectoryFacade.

The underlying LDAPAdapter is patched so the tests check the facade's own
behavior: filters it builds, Node conversion and error isolation.
"""

from unittest.mock import patch

import pytest
from ldap3.core.exceptions import LDAPException

from ldap.exceptions import CredentialError, DirectoryEnvironmentError
from ldap.facade.directory_facade import DirectoryFacade
from ldap.models import Node

SEARCH_BASE = "DC=example,DC=com"


class TestDirectoryFacade:
    """Tests for DirectoryFacade."""

    def setup_method(self):
        self.patcher = patch("ldap.facade.directory_facade.LDAPAdapter")
        self.mock_adapter_class = self.patcher.start()
        self.adapter = self.mock_adapter_class.return_value
        self.adapter.search_base = SEARCH_BASE
        self.adapter.server_hostname = "example.com"
        self.adapter.port = 636
        self.adapter.test_connection.return_value = True

    def teardown_method(self):
        self.patcher.stop()

    def test_init_activates_connection(self):
        """Test construction acquires credentials and resolves the search base."""
        config = {"search_base": SEARCH_BASE}

        facade = DirectoryFacade(config)

        self.mock_adapter_class.assert_called_once_with(config)
        self.adapter.acquire_credentials.assert_called_once_with()
        self.adapter.resolve_search_base.assert_called_once_with()
        self.adapter.test_connection.assert_called_once_with()
        assert facade.search_base == SEARCH_BASE

    def test_init_fails_when_connection_test_fails(self):
        """Test a failed connection test raises DirectoryEnvironmentError."""
        self.adapter.test_connection.return_value = False

        with pytest.raises(DirectoryEnvironmentError):
            DirectoryFacade({"search_base": SEARCH_BASE})

    def test_init_fails_when_search_base_unresolvable(self):
        """Test an unresolvable search base raises DirectoryEnvironmentError."""
        self.adapter.resolve_search_base.side_effect = LDAPException("no naming context")

        with pytest.raises(DirectoryEnvironmentError, match="search base"):
            DirectoryFacade({"server": "dc01.example.com"})

    def test_init_rejects_invalid_config(self):
        """Test an invalid adapter config is reported as an environment error."""
        self.mock_adapter_class.side_effect = ValueError("server required")

        with pytest.raises(DirectoryEnvironmentError, match="server required"):
            DirectoryFacade({})

    def test_credential_error_propagates(self):
        """Test a cancelled password prompt is not wrapped."""
        self.adapter.acquire_credentials.side_effect = CredentialError("cancelled")

        with pytest.raises(CredentialError):
            DirectoryFacade({"search_base": SEARCH_BASE, "user": "EXAMPLE\\admin"})

        self.adapter.test_connection.assert_not_called()

    def test_find_nodes_primary_only(self, mock_entry):
        """Test only organizational units are searched by default."""
        self.adapter.search.return_value = [
            mock_entry("OU=ADM,OU=Office1,DC=example,DC=com", ou="ADM", name="ADM"),
        ]
        facade = DirectoryFacade({"search_base": SEARCH_BASE})

        nodes = facade.find_nodes_by_name("ADM")

        assert nodes == [Node("OU=ADM,OU=Office1,DC=example,DC=com", "ADM")]
        self.adapter.search.assert_called_once_with(
            search_filter="(&(objectClass=organizationalUnit)(ou=ADM))",
            scope="subtree",
            attributes=["ou", "name"],
        )

    def test_find_nodes_merges_alternate_results(self, mock_entry):
        """Test container results follow organizational unit results."""
        self.adapter.search.side_effect = [
            [mock_entry("OU=Kiosks,OU=Branch1,DC=x,DC=y", ou="Kiosks", name="Kiosks")],
            [mock_entry("CN=Kiosks,OU=Branch9,DC=x,DC=y", cn="Kiosks", name="Kiosks")],
        ]
        facade = DirectoryFacade({"search_base": SEARCH_BASE})

        nodes = facade.find_nodes_by_name("Kiosks", include_alternate_type=True)

        assert [n.distinguished_name for n in nodes] == [
            "OU=Kiosks,OU=Branch1,DC=x,DC=y",
            "CN=Kiosks,OU=Branch9,DC=x,DC=y",
        ]
        second_filter = self.adapter.search.call_args_list[1].kwargs["search_filter"]
        assert second_filter == "(&(objectClass=container)(cn=Kiosks))"

    def test_find_nodes_escapes_filter_characters(self):
        """Test filter metacharacters in the name are escaped."""
        self.adapter.search.return_value = []
        facade = DirectoryFacade({"search_base": SEARCH_BASE})

        facade.find_nodes_by_name("Lab (North)*")

        search_filter = self.adapter.search.call_args.kwargs["search_filter"]
        assert search_filter == "(&(objectClass=organizationalUnit)(ou=Lab \\28North\\29\\2a))"

    def test_failed_primary_search_keeps_alternate(self, mock_entry, caplog):
        """Test a failed OU search still returns container matches."""
        self.adapter.search.side_effect = [
            LDAPException("busy"),
            [mock_entry("CN=Kiosks,OU=Branch9,DC=x,DC=y", cn="Kiosks", name="Kiosks")],
        ]
        facade = DirectoryFacade({"search_base": SEARCH_BASE})

        nodes = facade.find_nodes_by_name("Kiosks", include_alternate_type=True)

        assert [n.distinguished_name for n in nodes] == ["CN=Kiosks,OU=Branch9,DC=x,DC=y"]
        assert "busy" in caplog.text

    def test_all_searches_failing_returns_empty(self):
        """Test failing searches yield an empty list, not an exception."""
        self.adapter.search.side_effect = LDAPException("down")
        facade = DirectoryFacade({"search_base": SEARCH_BASE})

        assert facade.find_nodes_by_name("ADM", include_alternate_type=True) == []
        assert self.adapter.search.call_count == 2

    def test_count_descendants_of_type(self):
        """Test counting runs a subtree search under the node."""
        self.adapter.count_search_results.return_value = 12
        facade = DirectoryFacade({"search_base": SEARCH_BASE})

        count = facade.count_descendants_of_type("OU=ADM,OU=Office1,DC=example,DC=com")

        assert count == 12
        self.adapter.count_search_results.assert_called_once_with(
            search_filter="(objectClass=computer)",
            search_base="OU=ADM,OU=Office1,DC=example,DC=com",
            scope="subtree",
        )

    def test_count_errors_propagate(self):
        """Test count failures reach the caller."""
        self.adapter.count_search_results.side_effect = LDAPException("noSuchObject")
        facade = DirectoryFacade({"search_base": SEARCH_BASE})

        with pytest.raises(LDAPException):
            facade.count_descendants_of_type("OU=Gone,DC=example,DC=com")


class TestNodeFromEntry:
    """Tests for Node.from_entry."""

    def test_uses_name_attribute(self, mock_entry):
        """Test the node name comes from the name attribute."""
        entry = mock_entry("OU=ADM,OU=Office1,DC=example,DC=com", name="ADM")
        assert Node.from_entry(entry) == Node("OU=ADM,OU=Office1,DC=example,DC=com", "ADM")

    def test_falls_back_to_leading_rdn(self, mock_entry):
        """Test the leading RDN label is used when name is missing."""
        entry = mock_entry("CN=Kiosks,OU=Branch9,DC=x,DC=y")
        assert Node.from_entry(entry).name == "Kiosks"

    def test_multi_valued_name(self, mock_entry):
        """Test the first value of a multi-valued name is used."""
        entry = mock_entry("OU=ADM,DC=x", name=["ADM", "Other"])
        assert Node.from_entry(entry).name == "ADM"
