"""
BWS SOAP Web Service Client

Provides the two BlackBerry Web Services handles used by the sample:
BWS (authenticated administration calls) and BWSUtil (unauthenticated
utility calls such as authenticator lookup and username encoding).
"""

import logging
from typing import Any, List, Optional

from requests import Session
from requests.auth import HTTPBasicAuth
from requests.exceptions import RequestException
from zeep import Client
from zeep.exceptions import Error as ZeepError, TransportError
from zeep.transports import Transport

from bws_logger import log_request, log_response
from bws_models import (
    Authenticator,
    BWSResult,
    CredentialType,
    RequestMetadata,
    ResponseMetadata,
    ReturnStatus,
    SystemProperty,
)

logger = logging.getLogger(__name__)

BWS_PATH = "/enterprise/admin/ws"
BWS_UTIL_PATH = "/enterprise/admin/util/ws"
DEFAULT_TIMEOUT = 60

HTTP_UNAUTHORIZED = 401


class BWSTransportError(Exception):
    """
    A BWS call failed before a response with a return status came back.

    Wraps zeep transport errors, SOAP faults and requests exceptions so
    callers only need to check the HTTP status code.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == HTTP_UNAUTHORIZED


def build_endpoint_url(hostname: str, port: Optional[str], path: str) -> str:
    """
    Build a BWS endpoint URL.

    e.g. https://server01.example.net/enterprise/admin/ws
         https://server01.example.net:18084/enterprise/admin/ws
    """
    port_part = f":{port}" if port else ""
    return f"https://{hostname}{port_part}{path}"


def _status_code_of(exc: Exception, last_status: Optional[int] = None) -> Optional[int]:
    """
    HTTP status code behind a zeep or requests exception.

    zeep raises a Fault without any status when an error response body
    parses as XML, so the status recorded from the last response is used
    when the exception itself carries none.
    """
    if isinstance(exc, TransportError) and exc.status_code:
        return exc.status_code
    response = getattr(exc, 'response', None)
    if response is not None and getattr(response, 'status_code', None):
        return response.status_code
    return last_status


def _as_list(value: Any) -> List[Any]:
    """Normalise a zeep repeated element (None, single item or list) to a list."""
    if value is None:
        return []
    if not isinstance(value, list):
        return [value]
    return value


class BWSSoapClient:
    """
    Client for the BWS and BWSUtil SOAP web services.

    Only the BWS handle carries HTTP basic credentials; BWSUtil does not
    require authentication.
    """

    def __init__(
        self,
        hostname: str = None,
        port: str = None,
        timeout: int = None,
        wsdl_url: str = None,
        util_wsdl_url: str = None,
        ca_bundle: str = None
    ):
        """
        Initialize BWS SOAP client.

        Args:
            hostname: Fully qualified BWS host name
            port: Optional port, e.g. "18084"
            timeout: Per-call timeout in seconds
            wsdl_url: BWS WSDL location (defaults to <endpoint>?wsdl)
            util_wsdl_url: BWSUtil WSDL location (defaults to <endpoint>?wsdl)
            ca_bundle: CA bundle used to verify the server certificate
        """
        self.hostname = hostname
        self.port = port or None
        self.timeout = timeout or DEFAULT_TIMEOUT
        self.ca_bundle = ca_bundle or None

        self.bws_url = build_endpoint_url(self.hostname, self.port, BWS_PATH)
        self.util_url = build_endpoint_url(self.hostname, self.port, BWS_UTIL_PATH)
        self.wsdl_url = wsdl_url or f"{self.bws_url}?wsdl"
        self.util_wsdl_url = util_wsdl_url or f"{self.util_url}?wsdl"

        self.bws_session = None
        self.util_session = None
        self.bws = None
        self.util = None
        self._connected = False
        self.last_status_code = None

    @classmethod
    def from_settings(cls, settings) -> "BWSSoapClient":
        """Build a client from validated Settings."""
        return cls(
            hostname=settings.hostname,
            port=settings.port,
            timeout=settings.timeout,
            wsdl_url=settings.wsdl_url,
            util_wsdl_url=settings.util_wsdl_url,
            ca_bundle=settings.ca_bundle
        )

    def _record_status(self, response, *args, **kwargs):
        """requests response hook: remember the HTTP status of the last reply."""
        self.last_status_code = response.status_code

    def _new_session(self) -> Session:
        session = Session()
        # The BWS host certificate must be trusted by the client
        session.verify = self.ca_bundle or True
        session.hooks['response'].append(self._record_status)
        return session

    def _new_client(self, wsdl_url: str, endpoint: str, session: Session) -> Client:
        transport = Transport(session=session, timeout=self.timeout, operation_timeout=self.timeout)
        client = Client(wsdl_url, transport=transport)

        # WSDL may name an internal host, always call the computed endpoint
        for service in client.wsdl.services.values():
            for port in service.ports.values():
                port.binding_options['address'] = endpoint
        logger.debug(f"Endpoint set to: {endpoint}")
        return client

    def connect(self) -> bool:
        """
        Build the BWS and BWSUtil handles.

        Returns:
            True if both WSDLs loaded, False otherwise.
        """
        try:
            if not self.hostname:
                raise ValueError("BWS_HOSTNAME not configured")

            self.util_session = self._new_session()
            self.util = self._new_client(self.util_wsdl_url, self.util_url, self.util_session)
            logger.info("BWSUtil web service stub initialized")

            self.bws_session = self._new_session()
            self.bws = self._new_client(self.wsdl_url, self.bws_url, self.bws_session)
            logger.info("BWS web service stub initialized")

            self._connected = True
            return True

        except (ValueError, OSError, RequestException, ZeepError) as e:
            logger.error(f"Failed to initialize BWS web service stubs: {e}")
            return False

    @property
    def is_connected(self) -> bool:
        """Check if both handles are built."""
        return self._connected and self.bws is not None and self.util is not None

    def _ensure_connection(self):
        """Ensure handles are built before making calls."""
        if not self.is_connected:
            if not self.connect():
                raise BWSTransportError("Unable to initialize BWS web service stubs")

    def set_credentials(self, encoded_username: str, password: str) -> None:
        """
        Attach HTTP basic authentication to the BWS handle.

        requests sends the Authorization header with every request once
        auth is set, so no challenge round-trip is needed.
        """
        self._ensure_connection()
        self.bws_session.auth = HTTPBasicAuth(encoded_username, password)

    # =========================================================
    # Call Plumbing
    # =========================================================

    @staticmethod
    def _unwrap(response: Any) -> Any:
        """Step into a single-field response wrapper if zeep left one."""
        if response is None or hasattr(response, 'returnStatus'):
            return response
        for key in ('returnValue', 'return', 'response'):
            inner = getattr(response, key, None)
            if inner is not None:
                return inner
        return response

    def _call(self, service: Any, operation: str, api_name: str, request: dict):
        """
        Invoke one SOAP operation with request/response trace lines.

        Returns:
            (response, ReturnStatus, ResponseMetadata) tuple.

        Raises:
            BWSTransportError: transport failure, HTTP error or SOAP fault.
        """
        log_request(api_name)
        self.last_status_code = None
        try:
            response = getattr(service.service, operation)(request=request)
        except (ZeepError, RequestException) as e:
            status_code = _status_code_of(e, self.last_status_code)
            message = getattr(e, 'message', None) or str(e)
            raise BWSTransportError(message, status_code=status_code) from e

        response = self._unwrap(response)
        status = ReturnStatus.from_soap(getattr(response, 'returnStatus', None))
        metadata = ResponseMetadata.from_soap(getattr(response, 'metadata', None))
        log_response(api_name, status.code, metadata)
        return response, status, metadata

    # =========================================================
    # BWSUtil Methods
    # =========================================================

    def get_authenticators(self, metadata: RequestMetadata) -> BWSResult:
        """
        List the authenticators the server recognises.

        Returns:
            BWSResult whose value is a list of Authenticator.
        """
        self._ensure_connection()

        response, status, response_metadata = self._call(
            self.util,
            "getAuthenticators",
            "bwsUtilService.getAuthenticators()",
            {"metadata": metadata.to_request()}
        )

        authenticators = []
        if status.is_success:
            source = getattr(response, 'authenticators', None)
            # Handle nested list wrapper if present
            if source is not None and not isinstance(source, list) and hasattr(source, 'authenticator'):
                source = source.authenticator
            authenticators = [Authenticator.from_soap(a) for a in _as_list(source)]

        return BWSResult(status, response_metadata, authenticators)

    def get_encoded_username(
        self,
        metadata: RequestMetadata,
        username: str,
        authenticator: Authenticator,
        credential_type: CredentialType,
        domain: str = None
    ) -> BWSResult:
        """
        Ask the server to encode a username for HTTP basic authentication.

        Returns:
            BWSResult whose value is the encoded username string.
        """
        self._ensure_connection()

        request = {
            "metadata": metadata.to_request(),
            "username": username,
            "orgUid": metadata.organization_uid,
            "authenticator": authenticator.to_request(),
            "credentialType": credential_type.to_request(),
            "domain": domain,
        }
        response, status, response_metadata = self._call(
            self.util,
            "getEncodedUsername",
            "bwsUtilService.getEncodedUsername()",
            request
        )

        encoded = getattr(response, 'encodedUsername', None) if status.is_success else None
        return BWSResult(status, response_metadata, encoded)

    # =========================================================
    # BWS Methods
    # =========================================================

    def get_system_info(self, metadata: RequestMetadata) -> BWSResult:
        """
        Fetch server system properties.

        Returns:
            BWSResult whose value is a list of SystemProperty.
        """
        self._ensure_connection()

        response, status, response_metadata = self._call(
            self.bws,
            "getSystemInfo",
            "bwsService.getSystemInfo()",
            {"metadata": metadata.to_request()}
        )

        properties = []
        if status.is_success:
            source = getattr(response, 'properties', None)
            if source is not None and not isinstance(source, list) and hasattr(source, 'property'):
                source = source.property
            properties = [SystemProperty.from_soap(p) for p in _as_list(source)]

        return BWSResult(status, response_metadata, properties)

    def echo(self, metadata: RequestMetadata, text: str) -> BWSResult:
        """
        Echo text back from the server.

        Returns:
            BWSResult whose value is the echoed text.
        """
        self._ensure_connection()

        response, status, response_metadata = self._call(
            self.bws,
            "echo",
            "bwsService.echo()",
            {"metadata": metadata.to_request(), "text": text}
        )

        return BWSResult(status, response_metadata, getattr(response, 'text', None))


# =========================================================
# Connection Check Script
# =========================================================

def check_connection() -> bool:
    """Build the BWS handles, list authenticators and print the results."""
    from config import Settings

    print("=" * 60)
    print("BWS SOAP Web Service - Connection Check")
    print("=" * 60)

    settings = Settings.from_env()
    client = BWSSoapClient.from_settings(settings)

    print(f"\n[*] Hostname: {client.hostname or 'NOT SET'}")
    print(f"[*] BWS URL: {client.bws_url}")
    print(f"[*] BWSUtil URL: {client.util_url}")

    if not client.hostname:
        print("\n[ERROR] Missing configuration. Check .env file.")
        return False

    print("\n[>] Initializing web service stubs...")

    if not client.connect():
        print("[ERROR] Initialization failed!")
        return False

    print("[OK] Stubs initialized")
    metadata = RequestMetadata(
        client_version=settings.client_version,
        locale=settings.locale,
        organization_uid=settings.org_uid
    )
    try:
        result = client.get_authenticators(metadata)
    except BWSTransportError as e:
        print(f"[WARN] getAuthenticators failed: {e}")
        return False

    if not result.is_success:
        print(f"[WARN] getAuthenticators returned {result.code}: {result.message}")
        return False

    print(f"[OK] getAuthenticators returned {len(result.value)} authenticators")
    for authenticator in result.value:
        print(f"    - {authenticator.name}")
    return True


if __name__ == "__main__":
    check_connection()
