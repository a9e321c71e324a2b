"""Azure credential acquisition from environment variables.

Public cloud uses the SDK's built-in endpoints. When an ARM endpoint is given
(Azure Stack or another sovereign cloud) the login endpoint and token audience
are discovered from the endpoint's metadata document.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests
from azure.identity import ClientSecretCredential

from ..exceptions import CredentialError

logger = logging.getLogger(__name__)

METADATA_PATH = "/metadata/endpoints?api-version=1.0"
DISCOVERY_TIMEOUT_SECONDS = 30

# Each setting is read from the plain name first, then the AZURE_/ARM_ form
ENV_NAMES: Dict[str, Tuple[str, ...]] = {
    "tenant_id": ("TENANT_ID", "AZURE_TENANT_ID"),
    "client_id": ("CLIENT_ID", "AZURE_CLIENT_ID"),
    "client_secret": ("CLIENT_SECRET", "AZURE_CLIENT_SECRET"),
    "subscription_id": ("SUBSCRIPTION_ID", "AZURE_SUBSCRIPTION_ID"),
    "endpoint": ("ENDPOINT", "ARM_ENDPOINT"),
}


@dataclass
class CloudEndpoints:
    """Endpoints discovered for a sovereign or hybrid cloud.

    Attributes:
        resource_manager: ARM endpoint (management client base URL)
        login_endpoint: Active Directory authority
        audiences: Token audiences accepted by the resource manager
    """

    resource_manager: str
    login_endpoint: str
    audiences: List[str] = field(default_factory=list)

    @property
    def credential_scopes(self) -> List[str]:
        return [f"{audience.rstrip('/')}/.default" for audience in self.audiences[:1]]


@dataclass
class AzureSession:
    """Authenticated session material for the management clients.

    Attributes:
        credential: Azure credential
        subscription_id: Subscription the clients operate on
        endpoints: Sovereign cloud endpoints, None for public cloud
    """

    credential: Any
    subscription_id: str
    endpoints: Optional[CloudEndpoints] = None

    @property
    def is_sovereign(self) -> bool:
        return self.endpoints is not None

    def client_kwargs(self) -> Dict[str, Any]:
        """Extra keyword arguments for management client constructors."""
        if self.endpoints is None:
            return {}
        kwargs: Dict[str, Any] = {"base_url": self.endpoints.resource_manager}
        if self.endpoints.credential_scopes:
            kwargs["credential_scopes"] = self.endpoints.credential_scopes
        return kwargs


def read_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Optional[str]]:
    """Read credential settings from the environment.

    Returns:
        Mapping of setting -> value (None when unset)
    """
    environ = os.environ if environ is None else environ
    settings: Dict[str, Optional[str]] = {}
    for setting, names in ENV_NAMES.items():
        settings[setting] = next((environ[name] for name in names if environ.get(name)), None)
    return settings


def discover_endpoints(endpoint: str, session: Optional[requests.Session] = None) -> CloudEndpoints:
    """Fetch login endpoint and audiences from an ARM metadata document.

    Args:
        endpoint: Resource manager endpoint, e.g. "https://management.local.azurestack.external"
        session: requests session to use (optional)

    Raises:
        CredentialError: If the metadata cannot be fetched or is incomplete
    """
    url = endpoint.rstrip("/") + METADATA_PATH
    http = session or requests.Session()
    logger.debug(f"Discovering cloud endpoints from {url}")

    try:
        response = http.get(url, timeout=DISCOVERY_TIMEOUT_SECONDS)
        response.raise_for_status()
        metadata = response.json()
    except (requests.RequestException, ValueError) as e:
        raise CredentialError(f"Endpoint discovery failed for {endpoint}: {e}") from e

    authentication = metadata.get("authentication") or {}
    login_endpoint = authentication.get("loginEndpoint")
    if not login_endpoint:
        raise CredentialError(f"Metadata from {endpoint} has no authentication.loginEndpoint")

    return CloudEndpoints(
        resource_manager=endpoint.rstrip("/"),
        login_endpoint=login_endpoint,
        audiences=list(authentication.get("audiences") or []),
    )


def create_session(
    environ: Optional[Mapping[str, str]] = None,
    http_session: Optional[requests.Session] = None,
) -> AzureSession:
    """Create an authenticated session from environment variables.

    Args:
        environ: Environment mapping (default: os.environ)
        http_session: requests session used for endpoint discovery (optional)

    Raises:
        CredentialError: If a required variable is missing or discovery fails
    """
    settings = read_environment(environ)
    missing = [
        ENV_NAMES[name][0]
        for name in ("tenant_id", "client_id", "client_secret", "subscription_id")
        if not settings[name]
    ]
    if missing:
        raise CredentialError(f"Missing required environment variables: {', '.join(missing)}")

    endpoints = None
    credential_kwargs: Dict[str, Any] = {}
    if settings["endpoint"]:
        endpoints = discover_endpoints(settings["endpoint"], session=http_session)
        credential_kwargs["authority"] = endpoints.login_endpoint
        logger.info(f"Using sovereign cloud endpoint {endpoints.resource_manager}")

    credential = ClientSecretCredential(
        tenant_id=settings["tenant_id"],
        client_id=settings["client_id"],
        client_secret=settings["client_secret"],
        **credential_kwargs,
    )
    logger.info(f"Using ClientSecretCredential (tenant={settings['tenant_id']}, client={settings['client_id']})")

    return AzureSession(
        credential=credential,
        subscription_id=settings["subscription_id"] or "",
        endpoints=endpoints,
    )
