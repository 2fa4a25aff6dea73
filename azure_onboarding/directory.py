"""Microsoft Graph lookups used while waiting for new principals to replicate."""

import asyncio
from typing import Optional

import structlog
from azure.core.credentials import TokenCredential
from kiota_authentication_azure.azure_identity_authentication_provider import (
    AzureIdentityAuthenticationProvider,
)
from msgraph import GraphRequestAdapter, GraphServiceClient
from msgraph.generated.models.o_data_errors.o_data_error import ODataError
from msgraph_core import GraphClientFactory

from azure_onboarding.deployment.replication import PrincipalLookup

logger = structlog.get_logger(__name__)

GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]


class GraphDirectory:
    """
    Read-only Microsoft Graph access used to confirm that a principal exists.

    The Graph SDK is async; each lookup runs on its own event loop so it can be
    called from the synchronous orchestrator. The HTTP client is bound to that
    loop, so it is created per lookup and closed before the loop ends.
    """

    def __init__(self, credential: TokenCredential):
        self.credential = credential
        self.auth_provider = AzureIdentityAuthenticationProvider(credential, scopes=GRAPH_SCOPES)

    def find_service_principal(self, object_id: str) -> PrincipalLookup:
        """Return whether the service principal with ``object_id`` is visible."""
        return asyncio.run(self._find_service_principal(object_id))

    async def _find_service_principal(self, object_id: str) -> PrincipalLookup:
        http_client = GraphClientFactory.create_with_default_middleware()
        try:
            client = GraphServiceClient(
                request_adapter=GraphRequestAdapter(self.auth_provider, http_client)
            )
            return await self._lookup(client, object_id)
        finally:
            await http_client.aclose()

    async def _lookup(self, client: GraphServiceClient, object_id: str) -> PrincipalLookup:
        try:
            sp = await client.service_principals.by_service_principal_id(object_id).get()
        except ODataError as e:
            status_code: Optional[int] = getattr(e, "response_status_code", None)
            if status_code == 404:
                return PrincipalLookup.absent(object_id, "not found")
            message = e.error.message if e.error and e.error.message else str(e)
            logger.debug(
                "Graph lookup error", object_id=object_id, status=status_code, error=message
            )
            return PrincipalLookup.absent(object_id, f"HTTP {status_code}: {message}")

        if sp is None:
            return PrincipalLookup.absent(object_id, "empty response")
        return PrincipalLookup.present(object_id, sp.display_name)
