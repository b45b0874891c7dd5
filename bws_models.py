"""
BWS Data Model

Request/response shapes exchanged with the BWS and BWSUtil web services,
plus the server generation and per-run authentication state.
"""

from enum import Enum
from typing import Any, Dict, Optional

SUCCESS = "SUCCESS"


# =====================================================
# Request / Response Metadata
# =====================================================

class RequestMetadata:
    """
    Metadata attached to every outbound request.

    client_version is the version of the WSDL the client was built
    against, not the version of the server.
    """

    def __init__(self, client_version: str = None, locale: str = None, organization_uid: str = None):
        self.client_version = client_version
        self.locale = locale
        self.organization_uid = organization_uid

    def populate(self, client_version: str, locale: str, organization_uid: str) -> None:
        self.client_version = client_version
        self.locale = locale
        self.organization_uid = organization_uid

    def to_request(self) -> Dict[str, Any]:
        return {
            "clientVersion": self.client_version,
            "locale": self.locale,
            "organizationUid": self.organization_uid,
        }


class ResponseMetadata:
    """Execution time (nanoseconds) and request uid of a response."""

    def __init__(self, execution_time: int = None, request_uid: str = None):
        self.execution_time = execution_time
        self.request_uid = request_uid

    @classmethod
    def from_soap(cls, obj: Any) -> Optional["ResponseMetadata"]:
        if obj is None:
            return None
        return cls(
            execution_time=getattr(obj, 'executionTime', None),
            request_uid=getattr(obj, 'requestUid', None)
        )


class ReturnStatus:
    """Status code/message pair carried by every response."""

    def __init__(self, code: str, message: str = None):
        self.code = code
        self.message = message

    @property
    def is_success(self) -> bool:
        return self.code == SUCCESS

    @classmethod
    def from_soap(cls, obj: Any) -> "ReturnStatus":
        if obj is None:
            return cls(code=None, message="Response carried no return status")
        return cls(
            code=getattr(obj, 'code', None),
            message=getattr(obj, 'message', None)
        )


class BWSResult:
    """
    Outcome of a single BWS call that reached the server.

    A non-SUCCESS status is a logical failure, not an error: the caller
    inspects is_success and decides how to proceed.
    """

    def __init__(self, return_status: ReturnStatus, metadata: Optional[ResponseMetadata], value: Any = None):
        self.return_status = return_status
        self.metadata = metadata
        self.value = value

    @property
    def is_success(self) -> bool:
        return self.return_status.is_success

    @property
    def code(self) -> Optional[str]:
        return self.return_status.code

    @property
    def message(self) -> Optional[str]:
        return self.return_status.message


# =====================================================
# Authentication Types
# =====================================================

class Authenticator:
    """
    Identity-provider descriptor returned by getAuthenticators().

    The SOAP object the server returned is kept in `raw` and sent back
    unchanged when encoding a username.
    """

    def __init__(
        self,
        name: str,
        uid: str = None,
        external: bool = None,
        authenticator_type: str = None,
        raw: Any = None
    ):
        self.name = name
        self.uid = uid
        self.external = external
        self.authenticator_type = authenticator_type
        self.raw = raw

    def matches(self, name: str) -> bool:
        """Case-insensitive exact name comparison."""
        if self.name is None or name is None:
            return False
        return self.name.casefold() == name.casefold()

    def to_request(self) -> Any:
        return self.raw

    @classmethod
    def from_soap(cls, obj: Any) -> "Authenticator":
        auth_type = getattr(obj, 'authenticatorType', None)
        return cls(
            name=getattr(obj, 'name', None),
            uid=getattr(obj, 'uid', None),
            external=getattr(obj, 'externalAuthenticator', None),
            authenticator_type=getattr(auth_type, 'value', auth_type),
            raw=obj
        )

    def __repr__(self):
        return f"Authenticator(name={self.name!r}, uid={self.uid!r})"


class CredentialType:
    """Tagged flag telling the server how to interpret the credentials."""

    PASSWORD = "PASSWORD"

    def __init__(self, value: str = PASSWORD):
        self.value = value

    def to_request(self) -> Dict[str, Any]:
        return {self.value: True, "value": self.value}

    def __repr__(self):
        return f"CredentialType({self.value!r})"


class ServerType(Enum):
    """Server generation, inferred from getSystemInfo() properties."""
    UNKNOWN = "Unknown"
    BDS = "BDS"
    UDS = "UDS"
    BES12 = "BES12/UEM"

    @property
    def requires_domain(self) -> bool:
        """Only BDS and BES12/UEM take a domain for Active Directory logins."""
        return self in (ServerType.BDS, ServerType.BES12)


class SystemProperty:
    """Name/value pair from getSystemInfo()."""

    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value

    @classmethod
    def from_soap(cls, obj: Any) -> "SystemProperty":
        return cls(name=getattr(obj, 'name', None), value=getattr(obj, 'value', None))

    def __repr__(self):
        return f"SystemProperty({self.name!r}, {self.value!r})"


# =====================================================
# Run State
# =====================================================

class AuthenticationContext:
    """
    State shared by every scenario of a run.

    The server type starts UNKNOWN and is fixed by the first successful
    getSystemInfo() call.
    """

    def __init__(
        self,
        metadata: RequestMetadata = None,
        credential_type: CredentialType = None,
        server_type: ServerType = ServerType.UNKNOWN
    ):
        self.metadata = metadata or RequestMetadata()
        self.credential_type = credential_type or CredentialType()
        self.server_type = server_type
