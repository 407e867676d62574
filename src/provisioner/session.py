"""Provider session: the explicit context handed to every operation.

LIFECYCLE:
1. ProviderSession.open(config) builds one HTTP pipeline and the gateways
2. The session is read-only while operations run
3. close() (or leaving the ``with`` block) releases the pipeline

Nothing else holds client handles or region context: controllers receive
the session's gateways and config explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType

from azure.core import PipelineClient
from azure.core.credentials import AzureKeyCredential
from azure.core.pipeline.policies import (
    AzureKeyCredentialPolicy,
    HeadersPolicy,
    HTTPPolicy,
    SansIOHTTPPolicy,
    UserAgentPolicy,
)

from .config import ProviderConfig
from .gateway import PublicIpRestGateway, RepositoryRestGateway

logger = logging.getLogger(__name__)

USER_AGENT = "ncloud-provisioner/0.1.0"
API_KEY_HEADER = "x-ncp-apigw-api-key"


def build_pipeline_client(config: ProviderConfig) -> PipelineClient:
    """Build the HTTP pipeline shared by all gateways of a session.

    No retry policy is installed: the core never retries transport failures.
    """
    policies: list[HTTPPolicy | SansIOHTTPPolicy] = [
        HeadersPolicy({"Accept": "application/json"}),
        UserAgentPolicy(user_agent=USER_AGENT),
    ]
    if config.api_key:
        credential = AzureKeyCredential(config.api_key)
        policies.append(AzureKeyCredentialPolicy(credential, API_KEY_HEADER))

    return PipelineClient(base_url=config.api_url, policies=policies)


@dataclass(frozen=True)
class ProviderSession:
    """Config plus gateways, built once per provider session."""

    config: ProviderConfig
    client: PipelineClient
    repositories: RepositoryRestGateway
    public_ips: PublicIpRestGateway

    @classmethod
    def open(cls, config: ProviderConfig) -> ProviderSession:
        client = build_pipeline_client(config)
        logger.info(
            "Provider session opened",
            extra={
                "api_url": config.api_url,
                "region": config.region,
                "flavor": config.flavor.value,
            },
        )
        return cls(
            config=config,
            client=client,
            repositories=RepositoryRestGateway(client, config),
            public_ips=PublicIpRestGateway(client, config),
        )

    def close(self) -> None:
        self.client.close()
        logger.debug("Provider session closed", extra={"api_url": self.config.api_url})

    def __enter__(self) -> ProviderSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
