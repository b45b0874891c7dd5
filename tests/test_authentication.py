"""
Unit Tests - Authentication

Tests for authenticator lookup, username encoding, server type detection,
echo and setup, with the SOAP client mocked out.
"""

import logging
from unittest.mock import MagicMock

import pytest

from authentication import (
    classify_server_type,
    echo,
    get_authenticator,
    get_encoded_username,
    get_server_type,
    setup,
)
from bws_models import (
    Authenticator,
    AuthenticationContext,
    BWSResult,
    CredentialType,
    RequestMetadata,
    ResponseMetadata,
    ReturnStatus,
    ServerType,
    SystemProperty,
)
from bws_soap_client import BWSTransportError
from config import Settings


def ok(value=None):
    return BWSResult(ReturnStatus("SUCCESS"), ResponseMetadata(1000000, "req-1"), value)


def failed(message="Something went wrong", value=None):
    return BWSResult(ReturnStatus("FAILURE", message), None, value)


@pytest.fixture(autouse=True)
def _info_level(caplog):
    caplog.set_level(logging.INFO)


@pytest.fixture
def metadata():
    return RequestMetadata("12.6.0", "en_US", "0")


class TestGetAuthenticator:
    """Tests for get_authenticator."""

    def test_case_insensitive_match(self, metadata):
        """Test names match regardless of case."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([
            Authenticator("BlackBerry Administration Service", uid="1"),
            Authenticator("Active Directory", uid="2"),
        ])

        found = get_authenticator(client, "active directory", metadata)

        assert found.uid == "2"
        client.get_authenticators.assert_called_once_with(metadata)

    def test_first_match_wins(self, metadata):
        """Test the first match in server order is used."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([
            Authenticator("ldap", uid="1"),
            Authenticator("LDAP", uid="2"),
        ])

        assert get_authenticator(client, "LDAP", metadata).uid == "1"

    def test_not_found(self, metadata, caplog):
        """Test an authenticator missing from the list."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([Authenticator("Active Directory")])

        assert get_authenticator(client, "LDAP", metadata) is None
        assert 'Could not find "LDAP" in GetAuthenticatorsResponse' in caplog.messages

    def test_prefix_is_not_a_match(self, metadata):
        """Test a name prefix does not match."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([Authenticator("LDAP Directory")])

        assert get_authenticator(client, "LDAP", metadata) is None

    def test_empty_list(self, metadata, caplog):
        """Test an empty authenticator list."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([])

        assert get_authenticator(client, "LDAP", metadata) is None
        assert "No authenticators in GetAuthenticatorsResponse" in caplog.messages

    def test_failure_status(self, metadata, caplog):
        """Test non-SUCCESS return status."""
        client = MagicMock()
        client.get_authenticators.return_value = failed("Invalid locale")

        assert get_authenticator(client, "LDAP", metadata) is None
        assert 'Error Message: "Invalid locale"' in caplog.messages

    def test_transport_error_propagates(self, metadata):
        """Test transport errors propagate."""
        client = MagicMock()
        client.get_authenticators.side_effect = BWSTransportError("Connection refused")

        with pytest.raises(BWSTransportError):
            get_authenticator(client, "LDAP", metadata)


class TestGetEncodedUsername:
    """Tests for get_encoded_username."""

    def test_base64_value_logged_decoded(self, metadata, caplog):
        """Test a base64 value is logged decoded and returned as sent."""
        client = MagicMock()
        client.get_encoded_username.return_value = ok("YWRtaW4=")
        authenticator = Authenticator("BlackBerry Administration Service")
        credential_type = CredentialType()

        result = get_encoded_username(client, "admin", authenticator, credential_type, None, metadata)

        assert result == "YWRtaW4="
        assert 'Decoded value of encoded username "admin"' in caplog.messages
        client.get_encoded_username.assert_called_once_with(
            metadata, "admin", authenticator, credential_type, None
        )

    def test_plain_value_returned_unchanged(self, metadata, caplog):
        """BES10 returns the raw username, which is not base64."""
        client = MagicMock()
        client.get_encoded_username.return_value = ok("admin")

        result = get_encoded_username(client, "admin", Authenticator("LDAP"), CredentialType(), None, metadata)

        assert result == "admin"
        assert 'Value of encoded username "admin"' in caplog.messages

    def test_non_utf8_base64_returned_unchanged(self, metadata, caplog):
        """Test base64 that is not UTF-8 is logged raw."""
        client = MagicMock()
        client.get_encoded_username.return_value = ok("test")

        result = get_encoded_username(client, "test", Authenticator("LDAP"), CredentialType(), None, metadata)

        assert result == "test"
        assert 'Value of encoded username "test"' in caplog.messages

    def test_domain_passed_through(self, metadata):
        """Test the domain reaches the client call."""
        client = MagicMock()
        client.get_encoded_username.return_value = ok("ZW5j")

        get_encoded_username(client, "aduser", Authenticator("Active Directory"), CredentialType(),
                             "example.net", metadata)

        assert client.get_encoded_username.call_args.args[4] == "example.net"

    def test_failure_status(self, metadata, caplog):
        """Test non-SUCCESS return status."""
        client = MagicMock()
        client.get_encoded_username.return_value = failed("Unknown user")

        result = get_encoded_username(client, "nobody", Authenticator("LDAP"), CredentialType(), None, metadata)

        assert result is None
        assert 'Error Message: "Unknown user"' in caplog.messages

    def test_transport_error_propagates(self, metadata):
        """Test transport errors propagate."""
        client = MagicMock()
        client.get_encoded_username.side_effect = BWSTransportError("timed out")

        with pytest.raises(BWSTransportError):
            get_encoded_username(client, "admin", Authenticator("LDAP"), CredentialType(), None, metadata)


class TestClassifyServerType:
    """Tests for classify_server_type."""

    def test_bas_version_12_is_bes12(self):
        """Test BAS VERSION 12.x is BES12/UEM."""
        assert classify_server_type([SystemProperty("BAS VERSION", "12.0.0")]) is ServerType.BES12

    def test_other_bas_version_is_bds(self):
        """Test other BAS versions are BDS."""
        assert classify_server_type([SystemProperty("BAS VERSION", "10.2.0")]) is ServerType.BDS

    def test_major_version_compared_exactly(self):
        """Test the major version is compared as a whole."""
        assert classify_server_type([SystemProperty("BAS VERSION", "120.1")]) is ServerType.BDS

    def test_buds_version_is_uds(self):
        """Test BUDS VERSION is UDS."""
        assert classify_server_type([SystemProperty("BUDS VERSION", "anything")]) is ServerType.UDS

    def test_key_case_insensitive(self):
        """Test property names match regardless of case."""
        assert classify_server_type([SystemProperty("bas Version", "12.6.0")]) is ServerType.BES12

    def test_first_matching_property_wins(self):
        """Test the first version property decides."""
        properties = [
            SystemProperty("OS", "Windows"),
            SystemProperty("BUDS VERSION", "5.0"),
            SystemProperty("BAS VERSION", "12.0.0"),
        ]

        assert classify_server_type(properties) is ServerType.UDS

    def test_no_match(self):
        """Test no version property."""
        assert classify_server_type([SystemProperty("OS", "Windows")]) is ServerType.UNKNOWN
        assert classify_server_type([]) is ServerType.UNKNOWN


class TestGetServerType:
    """Tests for get_server_type."""

    def test_detects_bes12(self, metadata, caplog):
        """Test BES12/UEM detection."""
        client = MagicMock()
        client.get_system_info.return_value = ok([SystemProperty("BAS VERSION", "12.0.0")])

        assert get_server_type(client, metadata) is ServerType.BES12
        assert "ServerType found: BES12/UEM" in caplog.messages

    def test_no_properties(self, metadata, caplog):
        """Test an empty property list."""
        client = MagicMock()
        client.get_system_info.return_value = ok([])

        assert get_server_type(client, metadata) is ServerType.UNKNOWN
        assert "No properties in response" in caplog.messages

    def test_failure_status(self, metadata, caplog):
        """Test non-SUCCESS return status."""
        client = MagicMock()
        client.get_system_info.return_value = failed("Not allowed")

        assert get_server_type(client, metadata) is ServerType.UNKNOWN
        assert 'Error Message: "Not allowed"' in caplog.messages

    def test_unauthorized_logged_then_raised(self, metadata, caplog):
        """Test 401 is logged and re-raised."""
        client = MagicMock()
        client.get_system_info.side_effect = BWSTransportError("Unauthorized", status_code=401)

        with pytest.raises(BWSTransportError):
            get_server_type(client, metadata)

        assert "Failed to authenticate with the BWS web service" in caplog.messages


class TestEcho:
    """Tests for echo."""

    def test_success(self, metadata):
        """Test successful echo."""
        client = MagicMock()
        client.echo.return_value = ok("Hello World!")

        assert echo(client, metadata) is True
        client.echo.assert_called_once_with(metadata, "Hello World!")

    def test_failure_status(self, metadata):
        """Test non-SUCCESS return status."""
        client = MagicMock()
        client.echo.return_value = failed("Denied")

        assert echo(client, metadata) is False

    def test_unauthorized_returns_false(self, metadata, caplog):
        """Test 401 returns False."""
        client = MagicMock()
        client.echo.side_effect = BWSTransportError("Unauthorized", status_code=401)

        assert echo(client, metadata) is False
        assert "Failed to authenticate with the BWS web service" in caplog.messages

    def test_trace_lines_at_info(self, metadata, caplog):
        """Test entering and exiting lines are logged at INFO."""
        client = MagicMock()
        client.echo.return_value = ok("Hello World!")

        echo(client, metadata)

        levels = {r.getMessage(): r.levelno for r in caplog.records}
        assert levels["Entering echo()"] == logging.INFO
        assert levels['Exiting echo() with value "True"'] == logging.INFO

    def test_other_transport_error_raises(self, metadata):
        """Test other transport errors are raised."""
        client = MagicMock()
        client.echo.side_effect = BWSTransportError("Internal Server Error", status_code=500)

        with pytest.raises(BWSTransportError):
            echo(client, metadata)


class TestSetup:
    """Tests for setup."""

    def make_settings(self):
        return Settings(
            hostname="server01.example.net",
            port="18084",
            client_version="12.6.0",
            locale="en_US",
            org_uid="0",
            timeout=60
        )

    def make_factory(self, client):
        factory = MagicMock(return_value=client)
        client.connect.return_value = True
        return factory

    def test_success_attaches_credentials(self):
        """Test credentials are attached to the client."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([Authenticator("LDAP")])
        client.get_encoded_username.return_value = ok("bGRhcHVzZXI=")
        factory = self.make_factory(client)
        context = AuthenticationContext()

        result = setup(context, self.make_settings(), "ldapuser", "secret", "LDAP", client_factory=factory)

        assert result is client
        client.set_credentials.assert_called_once_with("bGRhcHVzZXI=", "secret")
        factory.assert_called_once_with(
            hostname="server01.example.net",
            port="18084",
            timeout=60,
            wsdl_url=None,
            util_wsdl_url=None,
            ca_bundle=None
        )

    def test_populates_metadata(self):
        """Test request metadata is filled from settings."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([Authenticator("LDAP")])
        client.get_encoded_username.return_value = ok("ZW5j")
        context = AuthenticationContext()

        setup(context, self.make_settings(), "u", "p", "LDAP", client_factory=self.make_factory(client))

        assert context.metadata.to_request() == {
            "clientVersion": "12.6.0",
            "locale": "en_US",
            "organizationUid": "0",
        }

    def test_missing_authenticator(self, caplog):
        """Test setup fails when the authenticator is missing."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([Authenticator("Active Directory")])

        result = setup(AuthenticationContext(), self.make_settings(), "u", "p", "LDAP",
                       client_factory=self.make_factory(client))

        assert result is None
        client.get_encoded_username.assert_not_called()
        client.set_credentials.assert_not_called()
        assert "'authenticator' is null" in caplog.messages

    def test_empty_encoded_username(self, caplog):
        """Test setup fails on an empty encoded username."""
        client = MagicMock()
        client.get_authenticators.return_value = ok([Authenticator("LDAP")])
        client.get_encoded_username.return_value = ok("")

        result = setup(AuthenticationContext(), self.make_settings(), "u", "p", "LDAP",
                       client_factory=self.make_factory(client))

        assert result is None
        client.set_credentials.assert_not_called()
        assert "'encodedUsername' is null or empty" in caplog.messages

    def test_stub_initialization_failure(self):
        """Test setup fails when stubs cannot load."""
        client = MagicMock()
        factory = MagicMock(return_value=client)
        client.connect.return_value = False

        result = setup(AuthenticationContext(), self.make_settings(), "u", "p", "LDAP", client_factory=factory)

        assert result is None
        client.get_authenticators.assert_not_called()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
