"""
Authentication Scenarios

Runs the BlackBerry Administration Service, Active Directory and LDAP
authentication demonstrations in order and turns the outcome into a
process exit code.
"""

import logging
from typing import List, Optional

from authentication import echo, get_server_type, setup
from bws_logger import log_message
from bws_models import AuthenticationContext, CredentialType, RequestMetadata, ServerType
from bws_soap_client import BWSSoapClient
from config import Settings

logger = logging.getLogger(__name__)

# Return codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1

BAS_AUTHENTICATOR = "BlackBerry Administration Service"
AD_AUTHENTICATOR = "Active Directory"
LDAP_AUTHENTICATOR = "LDAP"


class Scenario:
    """
    One authentication demonstration.

    When domain_required_only is set the domain is only sent to servers
    whose type asks for one (BDS and BES12/UEM).
    """

    def __init__(
        self,
        title: str,
        authenticator_name: str,
        username: str,
        password: str,
        domain: str = None,
        domain_required_only: bool = False,
        enabled: bool = True
    ):
        self.title = title
        self.authenticator_name = authenticator_name
        self.username = username
        self.password = password
        self.domain = domain
        self.domain_required_only = domain_required_only
        self.enabled = enabled

    def domain_for(self, server_type: ServerType) -> Optional[str]:
        if self.domain_required_only and not server_type.requires_domain:
            return None
        return self.domain

    def __repr__(self):
        return f"Scenario({self.title!r}, enabled={self.enabled})"


def build_scenarios(settings: Settings) -> List[Scenario]:
    """Scenarios in run order. The local scenario is always enabled."""
    return [
        Scenario(
            title="BlackBerry Administration Service",
            authenticator_name=BAS_AUTHENTICATOR,
            username=settings.username,
            password=settings.password
        ),
        Scenario(
            title="Active Directory",
            authenticator_name=AD_AUTHENTICATOR,
            username=settings.ad_username,
            password=settings.ad_password,
            domain=settings.ad_domain,
            domain_required_only=True,
            enabled=settings.use_ad
        ),
        Scenario(
            title="LDAP",
            authenticator_name=LDAP_AUTHENTICATOR,
            username=settings.ldap_username,
            password=settings.ldap_password,
            enabled=settings.use_ldap
        ),
    ]


def new_context(settings: Settings) -> AuthenticationContext:
    """Create the run state shared by every scenario."""
    return AuthenticationContext(
        metadata=RequestMetadata(settings.client_version, settings.locale, settings.org_uid),
        credential_type=CredentialType(settings.credential_type)
    )


def run_scenario(
    scenario: Scenario,
    context: AuthenticationContext,
    settings: Settings,
    client_factory=BWSSoapClient
) -> bool:
    """
    Set up, detect the server type if still unknown, then echo.

    Returns:
        True if the authenticated echo call succeeded.
    """
    logger.info(f"Attempting {scenario.title} authentication")
    domain = scenario.domain_for(context.server_type)
    if scenario.domain_required_only and context.server_type.requires_domain and not domain:
        logger.warning(f"{context.server_type.value} expects a domain but none is configured")

    logger.info("Initializing web services...")
    client = setup(
        context,
        settings,
        scenario.username,
        scenario.password,
        scenario.authenticator_name,
        domain,
        client_factory=client_factory
    )
    if client is None:
        logger.error("Error: setup() failed")
        return False

    # Detected once, later scenarios reuse it
    if context.server_type is ServerType.UNKNOWN:
        context.server_type = get_server_type(client, context.metadata)

    logger.info("Attempting authenticated BWS call to echo()...")
    if echo(client, context.metadata):
        logger.info("Authenticated call succeeded!")
        return True

    logger.error("Authenticated call failed!")
    return False


def run_scenarios(
    scenarios: List[Scenario],
    context: AuthenticationContext,
    settings: Settings,
    client_factory=BWSSoapClient
) -> int:
    """
    Run enabled scenarios in order, stopping at the first failure.

    Exceptions propagate to the caller.

    Returns:
        EXIT_SUCCESS if every enabled scenario succeeded, EXIT_FAILURE otherwise.
    """
    for scenario in scenarios:
        if not scenario.enabled:
            logger.debug(f"Skipping {scenario.title} authentication")
            continue
        succeeded = run_scenario(scenario, context, settings, client_factory=client_factory)
        log_message("")
        if not succeeded:
            return EXIT_FAILURE
    return EXIT_SUCCESS


def main(settings: Settings = None, client_factory=BWSSoapClient) -> int:
    """
    Validate settings and run every enabled scenario.

    Any exception, configuration or transport, ends the run with EXIT_FAILURE.
    """
    try:
        settings = (settings or Settings.from_env()).validate()
        context = new_context(settings)
        return_code = run_scenarios(build_scenarios(settings), context, settings, client_factory)
    except Exception as e:
        log_message(f'Exception: "{e}"\n')
        return_code = EXIT_FAILURE

    log_message("Exiting sample.")
    return return_code
