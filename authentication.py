"""
BWS Authentication

Authenticator lookup, username encoding, server type detection and the
authenticated echo call, plus setup() which chains them into an
authenticated BWS client.
"""

import base64
import logging
from typing import Iterable, Optional

from bws_models import (
    Authenticator,
    AuthenticationContext,
    CredentialType,
    RequestMetadata,
    ServerType,
    SystemProperty,
)
from bws_soap_client import BWSSoapClient, BWSTransportError
from config import Settings

logger = logging.getLogger(__name__)

ECHO_TEXT = "Hello World!"


# =========================================================
# BWSUtil Lookups
# =========================================================

def get_authenticator(
    client: BWSSoapClient,
    authenticator_name: str,
    metadata: RequestMetadata
) -> Optional[Authenticator]:
    """
    Find the authenticator with the given name.

    Names are compared case-insensitively; the first match in the order
    the server returned wins.

    Returns:
        The Authenticator, or None if it is not found or the call did not
        return SUCCESS.

    Raises:
        BWSTransportError: the call itself failed.
    """
    logger.info("Entering get_authenticator()")
    try:
        result = client.get_authenticators(metadata)
    except BWSTransportError as e:
        logger.error(f'Exiting get_authenticator() with exception "{e.message}"')
        raise

    found = None
    if result.is_success:
        if result.value:
            found = next((a for a in result.value if a.matches(authenticator_name)), None)
            if found is None:
                logger.info(f'Could not find "{authenticator_name}" in GetAuthenticatorsResponse')
        else:
            logger.info("No authenticators in GetAuthenticatorsResponse")
    else:
        logger.warning(f'Error Message: "{result.message}"')

    if found is None:
        logger.info('Exiting get_authenticator() with "None"')
    else:
        logger.info(f'Exiting get_authenticator() with Authenticator object (Name "{found.name}")')
    return found


def _describe_encoded_username(encoded_username: Optional[str]) -> str:
    """
    Diagnostic text for an encoded username.

    BES12/UEM returns base64 while BES10 returns the plain value, so a
    failed decode just means the raw value is shown.
    """
    try:
        decoded = base64.b64decode(encoded_username, validate=True).decode("utf-8")
        return f'Decoded value of encoded username "{decoded}"'
    except (TypeError, ValueError):
        return f'Value of encoded username "{encoded_username if encoded_username is not None else ""}"'


def get_encoded_username(
    client: BWSSoapClient,
    username: str,
    authenticator: Authenticator,
    credential_type: CredentialType,
    domain: Optional[str],
    metadata: RequestMetadata
) -> Optional[str]:
    """
    Get the encoded username used as the HTTP basic-auth user.

    Returns:
        The encoded username exactly as returned by the server, or None
        if the call did not return SUCCESS.

    Raises:
        BWSTransportError: the call itself failed.
    """
    logger.info("Entering get_encoded_username()")
    try:
        result = client.get_encoded_username(metadata, username, authenticator, credential_type, domain)
    except BWSTransportError as e:
        logger.error(f'Exiting get_encoded_username() with exception "{e.message}"')
        raise

    encoded_username = None
    if result.is_success:
        encoded_username = result.value
    else:
        logger.warning(f'Error Message: "{result.message}"')

    logger.info(_describe_encoded_username(encoded_username))
    logger.info("Exiting get_encoded_username()")
    return encoded_username


# =========================================================
# BWS Calls
# =========================================================

def classify_server_type(properties: Iterable[SystemProperty]) -> ServerType:
    """
    Infer the server generation from system properties.

    The first BAS VERSION or BUDS VERSION property decides: BAS VERSION
    12.x is BES12/UEM, any other BAS VERSION is BDS, BUDS VERSION is UDS.
    """
    for prop in properties:
        name = (prop.name or "").upper()
        if name == "BAS VERSION":
            major = (prop.value or "").split('.')[0]
            return ServerType.BES12 if major == "12" else ServerType.BDS
        if name == "BUDS VERSION":
            return ServerType.UDS
    return ServerType.UNKNOWN


def get_server_type(client: BWSSoapClient, metadata: RequestMetadata) -> ServerType:
    """
    Call getSystemInfo() and classify the server.

    Returns:
        The detected ServerType, UNKNOWN if it could not be determined.

    Raises:
        BWSTransportError: the call itself failed (401 is logged first).
    """
    logger.info("Entering get_server_type()")
    try:
        result = client.get_system_info(metadata)
    except BWSTransportError as e:
        if e.is_unauthorized:
            logger.error("Failed to authenticate with the BWS web service")
        logger.error(f'Exiting get_server_type() with exception "{e.message}"')
        raise

    server_type = ServerType.UNKNOWN
    if result.is_success:
        if result.value:
            server_type = classify_server_type(result.value)
            if server_type is ServerType.UNKNOWN:
                logger.info("No server version properties in response")
            else:
                logger.info(f"ServerType found: {server_type.value}")
        else:
            logger.info("No properties in response")
    else:
        logger.warning(f'Error Message: "{result.message}"')

    logger.info("Exiting get_server_type()")
    return server_type


def echo(client: BWSSoapClient, metadata: RequestMetadata) -> bool:
    """
    Make an authenticated call to echo().

    Returns:
        True if echo returned SUCCESS, False if it did not or the
        credentials were rejected (HTTP 401).

    Raises:
        BWSTransportError: any transport failure other than 401.
    """
    logger.info("Entering echo()")
    try:
        result = client.echo(metadata, ECHO_TEXT)
    except BWSTransportError as e:
        if e.is_unauthorized:
            logger.error("Failed to authenticate with the BWS web service")
            logger.info('Exiting echo() with value "False"')
            return False
        logger.error(f'Exiting echo() with exception "{e.message}"')
        raise

    if not result.is_success:
        logger.warning(f'Error Message: "{result.message}"')

    logger.info(f'Exiting echo() with value "{result.is_success}"')
    return result.is_success


# =========================================================
# Setup
# =========================================================

def setup(
    context: AuthenticationContext,
    settings: Settings,
    username: str,
    password: str,
    authenticator_name: str,
    domain: Optional[str] = None,
    client_factory=BWSSoapClient
) -> Optional[BWSSoapClient]:
    """
    Initialize the BWS and BWSUtil services and authenticate the BWS one.

    Args:
        context: Run state holding request metadata and credential type
        settings: Host, port and client options
        username: Raw username
        password: Password sent with the encoded username
        authenticator_name: Name of the authenticator to log in with
        domain: Active Directory domain, if the server needs one
        client_factory: Callable building the SOAP client

    Returns:
        A BWSSoapClient with credentials attached, or None on failure.
    """
    logger.info("Entering setup()")
    context.metadata.populate(settings.client_version, settings.locale, settings.org_uid)

    logger.info("Initializing web service stubs")
    client = client_factory(
        hostname=settings.hostname,
        port=settings.port,
        timeout=settings.timeout,
        wsdl_url=settings.wsdl_url,
        util_wsdl_url=settings.util_wsdl_url,
        ca_bundle=settings.ca_bundle
    )
    if not client.connect():
        logger.info('Exiting setup() with value "False"')
        return None

    authenticated = None
    authenticator = get_authenticator(client, authenticator_name, context.metadata)
    if authenticator is not None:
        encoded_username = get_encoded_username(
            client, username, authenticator, context.credential_type, domain, context.metadata
        )
        if encoded_username:
            # BWSUtil is a utility service that does not require authentication
            client.set_credentials(encoded_username, password)
            authenticated = client
        else:
            logger.info("'encodedUsername' is null or empty")
    else:
        logger.info("'authenticator' is null")

    logger.info(f'Exiting setup() with value "{authenticated is not None}"')
    return authenticated
