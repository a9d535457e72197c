"""
Everything the dashboard displays, and the only code allowed to change it.

The model is a plain object owned by the dashboard screen. The dispatcher and
the refresh orchestrator mutate it through the methods below; the renderer
only ever sees the frozen ``DashboardSnapshot`` returned by ``snapshot()``.

Navigation is an explicit stack of frames. The base is always a ``List``
frame and frames can only be pushed or popped one level at a time:

    List -> InstanceDetail -> CheckpointsList -> CheckpointDetail

Data that belongs to a drill-down level lives in its frame, so popping the
frame releases it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from ..config import SessionConfig
from ..models.checkpoints import Checkpoint, CheckpointSummary
from ..models.common import Page
from ..models.health import HealthStatus
from ..models.images import ImageSummary
from ..models.instances import InstanceInfo, InstanceStatus, InstanceSummary
from ..models.metrics import MetricsBucket, MetricsGranularity, TenantMetricsResult

T = TypeVar("T")


class NavigationError(RuntimeError):
    """Raised when a frame is pushed out of order."""


class Tab(Enum):
    INSTANCES = "Instances"
    IMAGES = "Images"
    METRICS = "Metrics"
    HEALTH = "Health"

    @property
    def label(self) -> str:
        return self.value


TABS: Tuple[Tab, ...] = (Tab.INSTANCES, Tab.IMAGES, Tab.METRICS, Tab.HEALTH)


class StatusFilter(Enum):
    ALL = "All"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    PENDING = "Pending"
    SUSPENDED = "Suspended"

    @property
    def label(self) -> str:
        return self.value

    @property
    def instance_status(self) -> Optional[InstanceStatus]:
        if self is StatusFilter.ALL:
            return None
        return InstanceStatus(self.value.lower())

    def next(self) -> "StatusFilter":
        order = list(StatusFilter)
        return order[(order.index(self) + 1) % len(order)]


class FrameKind(Enum):
    LIST = "list"
    INSTANCE_DETAIL = "instance_detail"
    CHECKPOINTS_LIST = "checkpoints_list"
    CHECKPOINT_DETAIL = "checkpoint_detail"


# the only legal push from each frame kind
NEXT_FRAME = {
    FrameKind.LIST: FrameKind.INSTANCE_DETAIL,
    FrameKind.INSTANCE_DETAIL: FrameKind.CHECKPOINTS_LIST,
    FrameKind.CHECKPOINTS_LIST: FrameKind.CHECKPOINT_DETAIL,
}

FRAME_PAYLOAD = {
    FrameKind.INSTANCE_DETAIL: InstanceInfo,
    FrameKind.CHECKPOINTS_LIST: Page,
    FrameKind.CHECKPOINT_DETAIL: Checkpoint,
}


@dataclass
class Listing(Generic[T]):
    """An ordered result set, the server's total, and a cursor into it."""

    items: List[T] = field(default_factory=list)
    total: int = 0
    selected: int = 0

    def __len__(self) -> int:
        return len(self.items)

    def replace(self, items: Sequence[T], total: int) -> None:
        self.items = list(items)
        self.total = total
        if self.selected >= len(self.items):
            self.selected = len(self.items) - 1 if self.items else 0

    def move(self, direction: int) -> None:
        if not self.items:
            return
        self.selected = (self.selected + direction) % len(self.items)

    @property
    def current(self) -> Optional[T]:
        if not self.items:
            return None
        return self.items[self.selected]


@dataclass
class Frame:
    kind: FrameKind
    payload: Union[None, InstanceInfo, Listing[CheckpointSummary], Checkpoint] = None


@dataclass(frozen=True)
class ListingSnapshot(Generic[T]):
    items: Tuple[T, ...]
    total: int
    selected: int


@dataclass(frozen=True)
class DashboardSnapshot:
    """
    Frozen view of the model handed to the renderer.

    Listings are copied into tuples; the records in them, and the detail
    payloads, are shared with the model. Records are frozen, but their opaque
    JSON fields (instance input/output, checkpoint data) are not, so the
    renderer must only read them.
    """

    config: SessionConfig
    tab: Tab
    frame: FrameKind
    depth: int
    status_filter: StatusFilter
    instances: ListingSnapshot[InstanceSummary]
    images: ListingSnapshot[ImageSummary]
    metrics: Optional[TenantMetricsResult]
    metrics_granularity: MetricsGranularity
    metrics_selected: int
    health: Optional[HealthStatus]
    instance_detail: Optional[InstanceInfo]
    checkpoints: Optional[ListingSnapshot[CheckpointSummary]]
    checkpoint_detail: Optional[Checkpoint]
    detail_scroll: int
    error: Optional[str]
    connected: bool
    seconds_since_refresh: Optional[float]
    seconds_until_refresh: Optional[float]


def _freeze(listing: Listing[T]) -> ListingSnapshot[T]:
    return ListingSnapshot(tuple(listing.items), listing.total, listing.selected)


class ViewModel:
    def __init__(self, config: SessionConfig) -> None:
        self.config = config
        self.tab = Tab.INSTANCES
        self.status_filter = StatusFilter.ALL
        self.stack: List[Frame] = [Frame(FrameKind.LIST)]

        self.health: Optional[HealthStatus] = None
        self.instances: Listing[InstanceSummary] = Listing()
        self.images: Listing[ImageSummary] = Listing()
        self.metrics: Optional[TenantMetricsResult] = None
        self.metric_buckets: Listing[MetricsBucket] = Listing()
        self.metrics_granularity = MetricsGranularity.HOURLY

        self.detail_scroll = 0
        self.error: Optional[str] = None
        self.connected = False
        self.last_refresh: Optional[float] = None

    # -- tabs -----------------------------------------------------------

    def advance_tab(self) -> None:
        self.tab = TABS[(TABS.index(self.tab) + 1) % len(TABS)]

    def retreat_tab(self) -> None:
        self.tab = TABS[(TABS.index(self.tab) - 1) % len(TABS)]

    def select_tab(self, index: int) -> None:
        self.tab = TABS[index] if 0 <= index < len(TABS) else Tab.INSTANCES

    def listing_for(self, tab: Tab) -> Optional[Listing[Any]]:
        if tab is Tab.INSTANCES:
            return self.instances
        if tab is Tab.IMAGES:
            return self.images
        if tab is Tab.METRICS:
            return self.metric_buckets
        return None

    def move_selection(self, direction: int) -> None:
        listing = self.listing_for(self.tab)
        if listing is not None:
            listing.move(direction)

    def cycle_status_filter(self) -> None:
        self.status_filter = self.status_filter.next()

    def toggle_metrics_granularity(self) -> None:
        self.metrics_granularity = self.metrics_granularity.toggled()
        # bucket positions do not line up across granularities
        self.metric_buckets.selected = 0

    # -- collections ----------------------------------------------------

    def set_instances(self, page: Page[InstanceSummary]) -> None:
        self.instances.replace(page.items, page.total_count)

    def set_images(self, page: Page[ImageSummary]) -> None:
        self.images.replace(page.items, page.total_count)

    def set_metrics(self, result: TenantMetricsResult) -> None:
        self.metrics = result
        self.metric_buckets.replace(result.buckets, len(result.buckets))

    def set_health(self, health: HealthStatus) -> None:
        self.health = health

    # -- navigation -----------------------------------------------------

    @property
    def frame(self) -> FrameKind:
        return self.stack[-1].kind

    @property
    def depth(self) -> int:
        return len(self.stack)

    def _payload(self, kind: FrameKind) -> Any:
        for frame in self.stack:
            if frame.kind is kind:
                return frame.payload
        return None

    @property
    def instance_detail(self) -> Optional[InstanceInfo]:
        return self._payload(FrameKind.INSTANCE_DETAIL)

    @property
    def checkpoints(self) -> Optional[Listing[CheckpointSummary]]:
        return self._payload(FrameKind.CHECKPOINTS_LIST)

    @property
    def checkpoint_detail(self) -> Optional[Checkpoint]:
        return self._payload(FrameKind.CHECKPOINT_DETAIL)

    def push_frame(self, kind: FrameKind, payload: Any) -> None:
        expected = NEXT_FRAME.get(self.frame)
        if kind is not expected:
            raise NavigationError(f"cannot open {kind.value} from {self.frame.value}")
        if not isinstance(payload, FRAME_PAYLOAD[kind]):
            raise NavigationError(f"{kind.value} needs a {FRAME_PAYLOAD[kind].__name__}, got {type(payload).__name__}")
        if kind is FrameKind.CHECKPOINTS_LIST:
            listing: Listing[CheckpointSummary] = Listing()
            listing.replace(payload.items, payload.total_count)
            payload = listing
        self.stack.append(Frame(kind, payload))
        self.detail_scroll = 0

    def pop_frame(self) -> None:
        if len(self.stack) == 1:
            return
        self.stack.pop()
        self.detail_scroll = 0

    def move_checkpoint_selection(self, direction: int) -> None:
        listing = self.checkpoints
        if listing is not None:
            listing.move(direction)

    def scroll(self, delta: int) -> None:
        self.detail_scroll = max(0, self.detail_scroll + delta)

    # -- transient ------------------------------------------------------

    def set_error(self, message: str) -> None:
        self.error = message

    def clear_error(self) -> None:
        self.error = None

    def snapshot(self, now: Optional[float] = None) -> DashboardSnapshot:
        since = until = None
        if self.last_refresh is not None and now is not None:
            since = max(0.0, now - self.last_refresh)
            until = max(0.0, self.config.refresh_interval - since)
        checkpoints = self.checkpoints
        return DashboardSnapshot(
            config=self.config,
            tab=self.tab,
            frame=self.frame,
            depth=self.depth,
            status_filter=self.status_filter,
            instances=_freeze(self.instances),
            images=_freeze(self.images),
            metrics=self.metrics,
            metrics_granularity=self.metrics_granularity,
            metrics_selected=self.metric_buckets.selected,
            health=self.health,
            instance_detail=self.instance_detail,
            checkpoints=_freeze(checkpoints) if checkpoints is not None else None,
            checkpoint_detail=self.checkpoint_detail,
            detail_scroll=self.detail_scroll,
            error=self.error,
            connected=self.connected,
            seconds_since_refresh=since,
            seconds_until_refresh=until,
        )
