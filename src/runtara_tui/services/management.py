from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Type, TypeVar

from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from ..config import SessionConfig
from ..errors import NotFoundError, RequestError, ServerConnectionError
from ..models.checkpoints import Checkpoint, CheckpointSummary
from ..models.common import Page, Paginated
from ..models.health import HealthStatus
from ..models.images import ImageSummary
from ..models.instances import InstanceInfo, InstanceStatus, InstanceSummary
from ..models.metrics import MetricsGranularity, TenantMetricsResult

log = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _segment(value: str) -> str:
    # ids are opaque; "/", "?" and "#" must stay inside the segment
    return quote(str(value), safe="")


class RemoteClient(Protocol):
    """What the orchestrator needs from a management server connection."""

    async def __aenter__(self) -> "RemoteClient": ...

    async def __aexit__(self, *exc_info: Any) -> None: ...

    async def connect(self) -> None: ...

    async def health_check(self) -> HealthStatus: ...

    async def list_instances(
        self, tenant_id: Optional[str], status: Optional[InstanceStatus], limit: int
    ) -> Page[InstanceSummary]: ...

    async def list_images(self, tenant_id: Optional[str], limit: int) -> Page[ImageSummary]: ...

    async def get_instance(self, instance_id: str) -> InstanceInfo: ...

    async def list_checkpoints(self, instance_id: str, limit: int) -> Page[CheckpointSummary]: ...

    async def get_checkpoint(self, instance_id: str, checkpoint_id: str) -> Optional[Checkpoint]: ...

    async def get_tenant_metrics(
        self, tenant_id: str, granularity: MetricsGranularity
    ) -> TenantMetricsResult: ...


class ManagementClient:
    def __init__(
        self,
        base_url: str,
        *,
        verify_ssl: bool = True,
        connect_timeout: float = 5.0,
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base + API_PREFIX,
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(request_timeout, connect=connect_timeout),
            verify=verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: SessionConfig) -> "ManagementClient":
        return cls(
            config.base_url,
            verify_ssl=not config.skip_cert_verification,
            connect_timeout=config.connect_timeout,
            request_timeout=config.request_timeout,
        )

    async def __aenter__(self) -> "ManagementClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, **params) -> Any:
        params = {k: v for k, v in params.items() if v is not None}
        try:
            r = await self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise RequestError(f"request to {path} timed out") from e
        except httpx.TransportError as e:
            raise RequestError(f"request to {path} failed: {e}") from e
        except httpx.HTTPError as e:
            raise RequestError(f"request to {path} failed: {type(e).__name__}: {e}") from e
        if r.status_code == 404:
            raise NotFoundError(f"{path} not found")
        try:
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RequestError(
                f"HTTP {r.status_code} on {path}: {r.reason_phrase}", status_code=r.status_code
            ) from e
        try:
            return r.json()
        except ValueError as e:
            raise RequestError(f"invalid JSON from {path}") from e

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise RequestError(f"unexpected response shape from {path}: {e.error_count()} error(s)") from e

    def _page(self, model: Type[ModelT], data: Any, path: str) -> Page[ModelT]:
        page = self._parse(Paginated, data, path)
        try:
            items = page.items_typed(model)
        except ValidationError as e:
            raise RequestError(f"unexpected item shape from {path}: {e.error_count()} error(s)") from e
        return Page(items=items, total_count=page.total_count)

    async def connect(self) -> None:
        try:
            r = await self._client.get("/ping")
            r.raise_for_status()
        except httpx.TimeoutException as e:
            raise ServerConnectionError(f"timed out connecting to {self.base}") from e
        except httpx.TransportError as e:
            raise ServerConnectionError(f"cannot reach {self.base}: {e}") from e
        except httpx.HTTPStatusError as e:
            raise ServerConnectionError(f"handshake with {self.base} rejected: HTTP {r.status_code}") from e
        except httpx.HTTPError as e:
            raise ServerConnectionError(f"handshake with {self.base} failed: {type(e).__name__}: {e}") from e
        log.debug(f"connected to {self.base}")

    async def health_check(self) -> HealthStatus:
        return self._parse(HealthStatus, await self._get("/health"), "/health")

    async def list_instances(
        self, tenant_id: Optional[str], status: Optional[InstanceStatus], limit: int
    ) -> Page[InstanceSummary]:
        data = await self._get(
            "/instances",
            tenant_id=tenant_id,
            status=status.value if status is not None else None,
            limit=limit,
        )
        return self._page(InstanceSummary, data, "/instances")

    async def list_images(self, tenant_id: Optional[str], limit: int) -> Page[ImageSummary]:
        data = await self._get("/images", tenant_id=tenant_id, limit=limit)
        return self._page(ImageSummary, data, "/images")

    async def get_instance(self, instance_id: str) -> InstanceInfo:
        path = f"/instances/{_segment(instance_id)}"
        return self._parse(InstanceInfo, await self._get(path), path)

    async def list_checkpoints(self, instance_id: str, limit: int) -> Page[CheckpointSummary]:
        path = f"/instances/{_segment(instance_id)}/checkpoints"
        return self._page(CheckpointSummary, await self._get(path, limit=limit), path)

    async def get_checkpoint(self, instance_id: str, checkpoint_id: str) -> Optional[Checkpoint]:
        path = f"/instances/{_segment(instance_id)}/checkpoints/{_segment(checkpoint_id)}"
        # a checkpoint can be pruned between listing and opening it
        try:
            data = await self._get(path)
        except NotFoundError:
            return None
        return self._parse(Checkpoint, data, path)

    async def get_tenant_metrics(
        self, tenant_id: str, granularity: MetricsGranularity
    ) -> TenantMetricsResult:
        path = f"/tenants/{_segment(tenant_id)}/metrics"
        data = await self._get(path, granularity=granularity.value)
        return self._parse(TenantMetricsResult, data, path)
