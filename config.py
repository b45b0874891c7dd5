"""
Sample Configuration

Targets, credentials and scenario switches for the BWS authentication
sample, read from the environment (or a .env file).
"""

import os
import logging
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Defaults
DEFAULT_CLIENT_VERSION = "12.6.0"
DEFAULT_LOCALE = "en_US"
DEFAULT_ORG_UID = "0"
DEFAULT_TIMEOUT_SECONDS = 60


class ConfigurationError(ValueError):
    """Raised when settings are unusable, before any network activity."""


def _env_flag(name: str, default: str = "true") -> bool:
    value = (os.getenv(name) or "").strip() or default
    return value.lower() in ("1", "true", "yes", "on")


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


class Settings:
    """
    Settings for one run of the sample.

    The local (BlackBerry Administration Service) scenario always runs;
    Active Directory and LDAP are switched on separately.
    """

    def __init__(
        self,
        hostname: str = None,
        port: str = None,
        username: str = None,
        password: str = None,
        use_ad: bool = True,
        ad_username: str = None,
        ad_password: str = None,
        ad_domain: str = None,
        use_ldap: bool = True,
        ldap_username: str = None,
        ldap_password: str = None,
        credential_type: str = "PASSWORD",
        client_version: str = DEFAULT_CLIENT_VERSION,
        locale: str = DEFAULT_LOCALE,
        org_uid: str = DEFAULT_ORG_UID,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        wsdl_url: str = None,
        util_wsdl_url: str = None,
        ca_bundle: str = None
    ):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.use_ad = use_ad
        self.ad_username = ad_username
        self.ad_password = ad_password
        self.ad_domain = ad_domain
        self.use_ldap = use_ldap
        self.ldap_username = ldap_username
        self.ldap_password = ldap_password
        self.credential_type = credential_type
        self.client_version = client_version
        self.locale = locale
        self.org_uid = org_uid
        self.timeout = timeout
        self.wsdl_url = wsdl_url
        self.util_wsdl_url = util_wsdl_url
        self.ca_bundle = ca_bundle

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        timeout = os.getenv("BWS_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
        try:
            timeout = int(timeout)
        except ValueError:
            raise ConfigurationError(f"Invalid BWS_TIMEOUT_SECONDS \"{timeout}\". Expecting a positive integer")

        return cls(
            hostname=_env_optional("BWS_HOSTNAME"),
            port=_env_optional("BWS_PORT"),
            username=os.getenv("BWS_USERNAME"),
            password=os.getenv("BWS_PASSWORD"),
            use_ad=_env_flag("BWS_USE_AD"),
            ad_username=os.getenv("AD_USERNAME"),
            ad_password=os.getenv("AD_PASSWORD"),
            ad_domain=_env_optional("AD_DOMAIN"),
            use_ldap=_env_flag("BWS_USE_LDAP"),
            ldap_username=os.getenv("LDAP_USERNAME"),
            ldap_password=os.getenv("LDAP_PASSWORD"),
            credential_type=os.getenv("BWS_CREDENTIAL_TYPE", "PASSWORD"),
            client_version=os.getenv("BWS_CLIENT_VERSION", DEFAULT_CLIENT_VERSION),
            locale=os.getenv("BWS_LOCALE", DEFAULT_LOCALE),
            org_uid=os.getenv("BWS_ORG_UID", DEFAULT_ORG_UID),
            timeout=timeout,
            wsdl_url=_env_optional("BWS_WSDL_URL"),
            util_wsdl_url=_env_optional("BWS_UTIL_WSDL_URL"),
            ca_bundle=_env_optional("BWS_CA_BUNDLE")
        )

    def validate(self) -> "Settings":
        """
        Check host, port and credentials.

        Raises:
            ConfigurationError: on the first invalid setting.
        """
        # Must be a fully qualified domain name, e.g. server01.example.net
        if not self.hostname or self.hostname.find('.') < 1:
            raise ConfigurationError(
                'Invalid bwsHostname format. Expected format is "server01.example.net"'
            )

        # Port, if set, must be a positive integer
        if self.port is not None:
            try:
                port = int(self.port)
            except (TypeError, ValueError):
                port = 0
            if port < 1:
                raise ConfigurationError("Invalid bwsPort. Expecting a positive integer string or null")

        if self.timeout is None or self.timeout < 1:
            raise ConfigurationError("Invalid timeout. Expecting a positive number of seconds")

        required = [("BWS_USERNAME", self.username), ("BWS_PASSWORD", self.password)]
        if self.use_ad:
            required += [("AD_USERNAME", self.ad_username), ("AD_PASSWORD", self.ad_password)]
        if self.use_ldap:
            required += [("LDAP_USERNAME", self.ldap_username), ("LDAP_PASSWORD", self.ldap_password)]

        missing = [name for name, value in required if not value]
        if missing:
            raise ConfigurationError(f"Missing credentials: {', '.join(missing)}")

        return self
