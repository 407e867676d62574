"""Remote gateways performing the calls against the cloud API.

Gateways are thin: they translate calls into HTTP requests sent through an
azure-core PipelineClient and return raw payloads (dicts). They never
normalize, filter or retry. Every transport failure is raised as
TransportError with the operation name and resource identity.

Two backend flavors expose public IPs under different paths and request
parameters; the flavor is fixed when the gateway is built and selects an
endpoint from a table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

from azure.core import PipelineClient
from azure.core.exceptions import AzureError, HttpResponseError
from azure.core.rest import HttpRequest

from .config import BackendFlavor, ProviderConfig
from .errors import TransportError
from .models import ListQuery, RepositoryChanges, RepositorySpec

logger = logging.getLogger(__name__)

RawRecord = dict[str, Any]

REPOSITORY_PATH = "/api/v1/repository"

# Response envelope used by both public IP list endpoints
PUBLIC_IP_LIST_RESPONSE_KEY = "getPublicIpInstanceListResponse"
PUBLIC_IP_LIST_KEY = "publicIpInstanceList"


class ListingGateway(Protocol):
    """Read-only gateway: listing and id lookup."""

    @property
    def flavor(self) -> BackendFlavor: ...

    def list(self, query: ListQuery | None = None) -> list[RawRecord]: ...

    def get_by_id(self, resource_id: str) -> RawRecord | None: ...


class ResourceGateway(ListingGateway, Protocol):
    """Full lifecycle gateway."""

    def create(self, spec: RepositorySpec) -> str | None: ...

    def get_by_name(self, name: str) -> RawRecord | None: ...

    def update(self, name: str, changes: RepositoryChanges) -> None: ...

    def delete(self, name: str) -> None: ...


class RestGateway:
    """Shared request handling over a PipelineClient."""

    def __init__(self, client: PipelineClient, config: ProviderConfig) -> None:
        self._client = client
        self._config = config

    @property
    def flavor(self) -> BackendFlavor:
        return self._config.flavor

    def _send(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        resource: str | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Send one request and decode the JSON body.

        Returns:
            The decoded body, or None for an empty body or an allowed 404.

        Raises:
            TransportError: On any transport failure or non-2xx response.
        """
        request = HttpRequest(method, self._client.format_url(path), params=params, json=json)
        logger.debug(
            "Sending request",
            extra={"operation": operation, "method": method, "path": path, "resource": resource},
        )

        try:
            response = self._client.send_request(
                request,
                connection_timeout=self._config.http_timeout_seconds,
                read_timeout=self._config.http_timeout_seconds,
            )
            if allow_not_found and response.status_code == 404:
                return None
            response.raise_for_status()
        except HttpResponseError as e:
            logger.error(
                "Request rejected by backend",
                extra={
                    "operation": operation,
                    "resource": resource,
                    "status_code": e.status_code,
                    "error": e.message,
                },
            )
            raise TransportError(
                f"{operation} failed for {resource or 'request'} "
                f"({e.status_code}): {e.message}",
                operation=operation,
                resource=resource,
                status_code=e.status_code,
            ) from e
        except AzureError as e:
            logger.error(
                "Request failed",
                extra={"operation": operation, "resource": resource, "error": str(e)},
            )
            raise TransportError(
                f"{operation} failed for {resource or 'request'}: {e}",
                operation=operation,
                resource=resource,
            ) from e

        if not response.content:
            return None
        return response.json()


class RepositoryRestGateway(RestGateway):
    """Source repository API. Repositories are not network scoped."""

    def create(self, spec: RepositorySpec) -> str | None:
        body = self._send(
            "POST",
            REPOSITORY_PATH,
            operation="create_repository",
            resource=spec.name,
            json=spec.to_create_payload(),
        )
        result = (body or {}).get("result") or {}
        repository_id = result.get("id")
        return str(repository_id) if repository_id is not None else None

    def get_by_name(self, name: str) -> RawRecord | None:
        body = self._send(
            "GET",
            f"{REPOSITORY_PATH}/{quote(name, safe='')}",
            operation="get_repository",
            resource=name,
            allow_not_found=True,
        )
        if not body:
            return None
        return body.get("result")

    def list(self, query: ListQuery | None = None) -> list[RawRecord]:
        body = self._send("GET", REPOSITORY_PATH, operation="list_repositories")
        result = (body or {}).get("result") or {}
        return list(result.get("repository") or [])

    def get_by_id(self, resource_id: str) -> RawRecord | None:
        """Look up by id through the list, then fetch the detail by name.

        The backend has no id lookup, so the id is cross-referenced to a name.
        """
        for repository in self.list():
            if str(repository.get("id")) == resource_id:
                return self.get_by_name(repository["name"])

        logger.debug("No repository with id", extra={"resource": resource_id})
        return None

    def update(self, name: str, changes: RepositoryChanges) -> None:
        self._send(
            "PATCH",
            f"{REPOSITORY_PATH}/{quote(name, safe='')}",
            operation="update_repository",
            resource=name,
            json=changes.to_payload(),
        )

    def delete(self, name: str) -> None:
        self._send(
            "DELETE",
            f"{REPOSITORY_PATH}/{quote(name, safe='')}",
            operation="delete_repository",
            resource=name,
        )


@dataclass(frozen=True)
class PublicIpEndpoint:
    """Wire differences between the public IP list endpoints."""

    path: str
    region_param: str
    supports_zone: bool


PUBLIC_IP_ENDPOINTS: dict[BackendFlavor, PublicIpEndpoint] = {
    BackendFlavor.CLASSIC: PublicIpEndpoint(
        path="/server/v2/getPublicIpInstanceList",
        region_param="regionNo",
        supports_zone=True,
    ),
    BackendFlavor.VPC: PublicIpEndpoint(
        path="/vserver/v2/getPublicIpInstanceList",
        region_param="regionCode",
        supports_zone=False,
    ),
}


class PublicIpRestGateway(RestGateway):
    """Public IP listing for either backend flavor."""

    def __init__(self, client: PipelineClient, config: ProviderConfig) -> None:
        super().__init__(client, config)
        self._endpoint = PUBLIC_IP_ENDPOINTS[config.flavor]

    def build_params(self, query: ListQuery | None = None) -> dict[str, str]:
        """Translate a ListQuery into the flavor's request parameters."""
        query = query or ListQuery()
        region = (
            self._config.region_no
            if self._config.flavor == BackendFlavor.CLASSIC
            else self._config.region
        )
        params: dict[str, str] = {
            "responseFormatType": "json",
            self._endpoint.region_param: region,
        }

        if query.is_associated is not None:
            params["isAssociated"] = "true" if query.is_associated else "false"

        for index, instance_no in enumerate(query.ids, start=1):
            params[f"publicIpInstanceNoList.{index}"] = instance_no

        if query.zone and self._endpoint.supports_zone:
            params["zoneNo"] = query.zone

        return params

    def list(self, query: ListQuery | None = None) -> list[RawRecord]:
        body = self._send(
            "GET",
            self._endpoint.path,
            operation=f"list_public_ips_{self.flavor.value}",
            params=self.build_params(query),
        )
        response = (body or {}).get(PUBLIC_IP_LIST_RESPONSE_KEY) or {}

        return_code = response.get("returnCode")
        if return_code not in (None, "0", 0):
            raise TransportError(
                f"list_public_ips_{self.flavor.value} returned code {return_code}: "
                f"{response.get('returnMessage')}",
                operation=f"list_public_ips_{self.flavor.value}",
            )

        return list(response.get(PUBLIC_IP_LIST_KEY) or [])

    def get_by_id(self, resource_id: str) -> RawRecord | None:
        for record in self.list(ListQuery(ids=[resource_id])):
            if record.get("publicIpInstanceNo") == resource_id:
                return record
        return None
