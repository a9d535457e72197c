from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from runtara_tui.config import SessionConfig, parse_server_addr
from runtara_tui.errors import RequestError, ServerConnectionError
from runtara_tui.models.checkpoints import Checkpoint, CheckpointSummary
from runtara_tui.models.common import Page
from runtara_tui.models.health import HealthStatus
from runtara_tui.models.images import ImageSummary
from runtara_tui.models.instances import InstanceInfo, InstanceStatus, InstanceSummary
from runtara_tui.models.metrics import MetricsBucket, MetricsGranularity, TenantMetricsResult
from runtara_tui.services.orchestrator import RefreshOrchestrator
from runtara_tui.state.dispatcher import InputDispatcher
from runtara_tui.state.viewmodel import ViewModel

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_instance(n: int, status: InstanceStatus = InstanceStatus.RUNNING) -> InstanceSummary:
    return InstanceSummary(
        instance_id=f"inst-{n}", tenant_id="acme", image_id="img-1", status=status, created_at=T0
    )


def make_image(n: int) -> ImageSummary:
    return ImageSummary(image_id=f"img-{n}", name=f"image {n}", tenant_id="acme", created_at=T0)


def make_info(instance_id: str) -> InstanceInfo:
    return InstanceInfo(
        instance_id=instance_id, tenant_id="acme", image_id="img-1", image_name="image 1",
        status=InstanceStatus.RUNNING, created_at=T0, input={"order": 42},
    )


def make_checkpoint_summary(instance_id: str, n: int) -> CheckpointSummary:
    return CheckpointSummary(checkpoint_id=f"cp-{n}", instance_id=instance_id, created_at=T0, data_size_bytes=2048)


def make_metrics(buckets: int, granularity: MetricsGranularity = MetricsGranularity.HOURLY) -> TenantMetricsResult:
    return TenantMetricsResult(
        tenant_id="acme",
        start_time=T0,
        end_time=T0,
        granularity=granularity,
        buckets=[MetricsBucket(bucket_time=T0, invocation_count=i, success_count=i) for i in range(buckets)],
    )


class FakeClient:
    """
    Scripted stand-in for the management server.

    ``failures`` maps a call name to the exception that call raises.
    Every call is recorded in ``calls`` (shared across clients of one factory).
    """

    def __init__(self, server: "FakeServer") -> None:
        self.server = server

    async def __aenter__(self) -> "FakeClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.server.closed += 1

    def _call(self, name: str, *args: Any) -> None:
        self.server.calls.append((name, *args))
        failure = self.server.failures.get(name)
        if failure is not None:
            raise failure

    async def connect(self) -> None:
        self._call("connect")

    async def health_check(self) -> HealthStatus:
        self._call("health_check")
        return self.server.health

    async def list_instances(self, tenant_id, status, limit) -> Page[InstanceSummary]:
        self._call("list_instances", tenant_id, status, limit)
        return Page(list(self.server.instances), self.server.instances_total or len(self.server.instances))

    async def list_images(self, tenant_id, limit) -> Page[ImageSummary]:
        self._call("list_images", tenant_id, limit)
        return Page(list(self.server.images), len(self.server.images))

    async def get_instance(self, instance_id: str) -> InstanceInfo:
        self._call("get_instance", instance_id)
        return make_info(instance_id)

    async def list_checkpoints(self, instance_id: str, limit: int) -> Page[CheckpointSummary]:
        self._call("list_checkpoints", instance_id, limit)
        items = [make_checkpoint_summary(instance_id, n) for n in range(self.server.checkpoint_count)]
        return Page(items, len(items))

    async def get_checkpoint(self, instance_id: str, checkpoint_id: str) -> Optional[Checkpoint]:
        self._call("get_checkpoint", instance_id, checkpoint_id)
        if checkpoint_id in self.server.missing_checkpoints:
            return None
        return Checkpoint(checkpoint_id=checkpoint_id, instance_id=instance_id, created_at=T0, data={"step": 3})

    async def get_tenant_metrics(self, tenant_id: str, granularity: MetricsGranularity) -> TenantMetricsResult:
        self._call("get_tenant_metrics", tenant_id, granularity)
        return make_metrics(self.server.bucket_count, granularity)


class FakeServer:
    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.closed = 0
        self.health = HealthStatus(healthy=True, version="1.4.2", uptime_ms=90_000, active_instances=3)
        self.instances: List[InstanceSummary] = [make_instance(n) for n in range(3)]
        self.instances_total = 0
        self.images: List[ImageSummary] = [make_image(n) for n in range(2)]
        self.checkpoint_count = 2
        self.missing_checkpoints: set = set()
        self.bucket_count = 4

    def factory(self, config: SessionConfig) -> FakeClient:
        return FakeClient(self)

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def fail(self, name: str, exc: Optional[Exception] = None) -> None:
        if exc is None:
            exc = ServerConnectionError("refused") if name == "connect" else RequestError("boom")
        self.failures[name] = exc


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config() -> SessionConfig:
    return SessionConfig(server_addr=parse_server_addr("127.0.0.1:8002"), tenant_id="acme", refresh_interval=5.0)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def vm(config: SessionConfig) -> ViewModel:
    return ViewModel(config)


@pytest.fixture
def orchestrator(vm: ViewModel, server: FakeServer, clock: FakeClock) -> RefreshOrchestrator:
    return RefreshOrchestrator(vm, server.factory, clock)


@pytest.fixture
def dispatcher(vm: ViewModel, orchestrator: RefreshOrchestrator) -> InputDispatcher:
    return InputDispatcher(vm, orchestrator)
