"""
Pure rendering: DashboardSnapshot in, Rich renderables out.

Nothing here touches the view model; the dashboard screen calls ``render``
once per loop iteration and drops the results into its widgets.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, NamedTuple, Optional, Tuple

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.instances import InstanceStatus
from ..models.metrics import MetricsGranularity
from ..state.viewmodel import DashboardSnapshot, FrameKind, TABS, Tab

PREVIEW_LINES = 5
SELECTED_STYLE = "on grey30"

STATUS_COLORS = {
    InstanceStatus.PENDING: "yellow",
    InstanceStatus.RUNNING: "blue",
    InstanceStatus.SUSPENDED: "magenta",
    InstanceStatus.COMPLETED: "green",
    InstanceStatus.FAILED: "red",
    InstanceStatus.CANCELLED: "grey62",
    InstanceStatus.UNKNOWN: "grey42",
}

LIST_HELP = {
    Tab.INSTANCES: "q:Quit | Tab:Switch Tab | 1-4:Tab | j/k:Navigate | Enter:Details | f:Filter | r:Refresh",
    Tab.IMAGES: "q:Quit | Tab:Switch Tab | 1-4:Tab | j/k:Navigate | r:Refresh",
    Tab.METRICS: "q:Quit | Tab:Switch Tab | 1-4:Tab | j/k:Navigate | g:Granularity | r:Refresh",
    Tab.HEALTH: "q:Quit | Tab:Switch Tab | 1-4:Tab | r:Refresh",
}

FRAME_HELP = {
    FrameKind.INSTANCE_DETAIL: "Esc:Back | c:Checkpoints | j/k:Scroll",
    FrameKind.CHECKPOINTS_LIST: "Esc:Back | Enter:View Data | j/k:Navigate",
    FrameKind.CHECKPOINT_DETAIL: "Esc:Back | j/k:Scroll",
}


class RenderedFrame(NamedTuple):
    header: RenderableType
    body: RenderableType
    footer: RenderableType
    error: Optional[RenderableType]


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_datetime(dt: Optional[datetime]) -> str:
    if dt is None:
        return "-"
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def format_duration(ms: int) -> str:
    """
    Format milliseconds with the two most significant units:
    '2d 3h', '4h 5m', '6m 7s' or '8s'.
    """
    secs = max(0, int(ms)) // 1000
    mins = secs // 60
    hours = mins // 60
    days = hours // 24
    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {mins % 60}m"
    if mins > 0:
        return f"{mins}m {secs % 60}s"
    return f"{secs}s"


def format_bytes(size: float) -> str:
    size = int(size)
    for unit, factor in (("GB", 1024 ** 3), ("MB", 1024 ** 2), ("KB", 1024)):
        if size >= factor:
            return f"{size / factor:.1f} {unit}"
    return f"{size} B"


def truncate(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    return value[: max(0, max_len - 3)] + "..."


def status_style(status: InstanceStatus) -> Tuple[str, str]:
    return status.label, STATUS_COLORS.get(status, "grey42")


def success_rate_style(rate: Optional[float]) -> str:
    if rate is None:
        return "grey42"
    if rate >= 95.0:
        return "green"
    if rate >= 80.0:
        return "yellow"
    return "red"


def bucket_label(bucket_time: datetime, granularity: MetricsGranularity) -> str:
    if granularity is MetricsGranularity.DAILY:
        return bucket_time.strftime("%Y-%m-%d")
    return bucket_time.strftime("%m-%d %H:00")


def pretty_json(value: Any) -> List[str]:
    try:
        text = json.dumps(value, indent=2, sort_keys=False, default=str)
    except (TypeError, ValueError):
        text = repr(value)
    return text.splitlines()


def _scrolled(lines: List[Text], offset: int) -> List[Text]:
    # the offset has no ceiling in the model; clip it to the content here
    if not lines:
        return lines
    return lines[min(offset, len(lines) - 1):]


def _field(label: str, value: str, style: str = "white") -> Text:
    text = Text(f"  {label:<16}", style="grey50")
    text.append(value, style=style)
    return text


# ---------------------------------------------------------------------------
# Header / footer
# ---------------------------------------------------------------------------

def render_header(snap: DashboardSnapshot) -> RenderableType:
    line = Text(" Runtara Monitor  ", style="bold cyan")
    for tab in TABS:
        style = "bold yellow reverse" if tab is snap.tab else "white"
        line.append(f" {tab.label} ", style=style)
        line.append(" ")
    line.append("   Status: ")
    if snap.connected:
        line.append(" Connected ", style="green")
    else:
        line.append(" Disconnected ", style="red")
    return line


def render_footer(snap: DashboardSnapshot) -> RenderableType:
    help_text = LIST_HELP[snap.tab] if snap.frame is FrameKind.LIST else FRAME_HELP[snap.frame]
    line = Text(help_text, style="grey50")
    if snap.config.tenant_id:
        line.append(f" | Tenant: {snap.config.tenant_id}", style="cyan")
    if snap.frame is FrameKind.LIST and snap.seconds_until_refresh is not None:
        line.append(f" | Next refresh in {int(snap.seconds_until_refresh)}s", style="grey50")
    return line


# ---------------------------------------------------------------------------
# List frame tabs
# ---------------------------------------------------------------------------

def render_instances(snap: DashboardSnapshot) -> RenderableType:
    listing = snap.instances
    summary = Text(" Filter: ")
    summary.append(snap.status_filter.label, style="bold yellow")
    summary.append(f" | Total: {listing.total} | Press 'f' to cycle filter")

    table = Table(title=f"Instances ({len(listing.items)})", expand=True, header_style="bold yellow")
    for name in ("Instance ID", "Status", "Tenant", "Image", "Created", "Finished"):
        table.add_column(name, no_wrap=True)
    for i, inst in enumerate(listing.items):
        label, color = status_style(inst.status)
        table.add_row(
            truncate(inst.instance_id, 36),
            Text(label, style=color),
            truncate(inst.tenant_id, 20),
            truncate(inst.image_id, 20),
            format_datetime(inst.created_at),
            format_datetime(inst.finished_at),
            style=SELECTED_STYLE if i == listing.selected else None,
        )
    return Group(summary, table)


def render_images(snap: DashboardSnapshot) -> RenderableType:
    listing = snap.images
    table = Table(title=f"Images ({len(listing.items)})", expand=True, header_style="bold yellow")
    for name in ("Image ID", "Name", "Tenant", "Runner", "Created", "Description"):
        table.add_column(name, no_wrap=True)
    for i, img in enumerate(listing.items):
        table.add_row(
            truncate(img.image_id, 36),
            truncate(img.name, 30),
            truncate(img.tenant_id, 20),
            img.runner_type or "-",
            format_datetime(img.created_at),
            truncate(img.description or "-", 30),
            style=SELECTED_STYLE if i == listing.selected else None,
        )
    return table


def render_metrics(snap: DashboardSnapshot) -> RenderableType:
    tenant = snap.config.tenant_id
    summary = Text(" Granularity: ")
    summary.append(snap.metrics_granularity.label, style="bold yellow")
    summary.append(" | ")
    summary.append(f"Tenant: {tenant}" if tenant else "No tenant selected (use -t flag)", style="white")
    summary.append(" | Press 'g' to toggle granularity")

    metrics = snap.metrics
    if metrics is None:
        hint = Text()
        if tenant:
            hint.append("\n  No metrics data available\n\n", style="grey50")
            hint.append("  Press 'r' to refresh")
        else:
            hint.append("\n  Please specify a tenant ID to view metrics\n\n", style="grey50")
            hint.append("  Run with: runtara-tui -t <tenant_id>")
        return Group(summary, Panel(hint, title="Metrics"))

    title = (
        f"Metrics ({metrics.start_time.strftime('%m-%d %H:%M')} - "
        f"{metrics.end_time.strftime('%m-%d %H:%M')}) ({len(metrics.buckets)} buckets)"
    )
    table = Table(title=title, expand=True, header_style="bold yellow")
    for name in ("Time", "Invocations", "Success", "Failed", "Success %", "Avg Duration", "Avg Memory"):
        table.add_column(name, no_wrap=True)
    for i, bucket in enumerate(metrics.buckets):
        rate = bucket.success_rate_percent
        table.add_row(
            bucket_label(bucket.bucket_time, snap.metrics_granularity),
            str(bucket.invocation_count),
            Text(str(bucket.success_count), style="green"),
            Text(str(bucket.failure_count), style="red" if bucket.failure_count > 0 else "grey42"),
            Text(f"{rate:.1f}%" if rate is not None else "-", style=success_rate_style(rate)),
            f"{bucket.avg_duration_seconds:.2f}s" if bucket.avg_duration_seconds is not None else "-",
            format_bytes(bucket.avg_memory_bytes) if bucket.avg_memory_bytes is not None else "-",
            style=SELECTED_STYLE if i == snap.metrics_selected else None,
        )
    return Group(summary, table)


def render_health(snap: DashboardSnapshot) -> RenderableType:
    health = snap.health
    if health is None:
        text = Text("\n  No health data available\n\n", style="grey50")
        text.append("  Press 'r' to refresh", style="white")
        return Panel(text, title="Health Status")

    if snap.seconds_since_refresh is None:
        last = "Never"
    else:
        last = f"{int(snap.seconds_since_refresh)}s ago"
    lines = [
        Text(""),
        _field("Status:", "Healthy" if health.healthy else "Unhealthy", "bold green" if health.healthy else "bold red"),
        Text(""),
        _field("Version:", health.version, "cyan"),
        _field("Uptime:", format_duration(health.uptime_ms), "cyan"),
        _field("Active Instances:", str(health.active_instances), "cyan"),
        Text(""),
        _field("Server:", str(snap.config.server_addr), "white"),
        _field("Last Refresh:", last, "white"),
    ]
    return Panel(Group(*lines), title="Health Status")


# ---------------------------------------------------------------------------
# Drill-down frames
# ---------------------------------------------------------------------------

def _json_preview(label: str, value: Any, style: str) -> List[Text]:
    lines = [Text(""), Text(f"  {label}:", style="grey50")]
    body = pretty_json(value)
    lines.extend(Text(f"    {line}", style=style) for line in body[:PREVIEW_LINES])
    if len(body) > PREVIEW_LINES:
        lines.append(Text("    ...", style="grey50"))
    return lines


def render_instance_detail(snap: DashboardSnapshot) -> RenderableType:
    info = snap.instance_detail
    if info is None:
        return Text("")
    label, color = status_style(info.status)
    lines: List[Text] = [
        Text(""),
        _field("Instance ID:", info.instance_id),
        _field("Status:", label, f"bold {color}"),
        Text(""),
        _field("Tenant ID:", info.tenant_id, "cyan"),
        _field("Image ID:", info.image_id),
        _field("Image Name:", info.image_name or "-", "cyan"),
        Text(""),
        _field("Created At:", format_datetime(info.created_at)),
        _field("Started At:", format_datetime(info.started_at)),
        _field("Finished At:", format_datetime(info.finished_at)),
        _field("Heartbeat At:", format_datetime(info.heartbeat_at)),
        Text(""),
        _field("Checkpoint ID:", info.checkpoint_id or "-"),
        _field("Retry Count:", f"{info.retry_count} / {info.max_retries}"),
    ]
    if info.input is not None:
        lines.extend(_json_preview("Input", info.input, "white"))
    if info.output is not None:
        lines.extend(_json_preview("Output", info.output, "green"))
    if info.error:
        lines.append(Text(""))
        lines.append(Text("  Error:", style="bold red"))
        lines.extend(Text(f"    {line}", style="red") for line in info.error.splitlines()[:PREVIEW_LINES])
    return Panel(Group(*_scrolled(lines, snap.detail_scroll)), title="Instance Details", border_style="cyan")


def render_checkpoints(snap: DashboardSnapshot) -> RenderableType:
    listing = snap.checkpoints
    instance_id = snap.instance_detail.instance_id if snap.instance_detail else "Unknown"
    total = listing.total if listing is not None else 0
    table = Table(
        title=f"Checkpoints for {truncate(instance_id, 20)} ({total})",
        expand=True,
        header_style="bold yellow",
    )
    for name in ("Checkpoint ID", "Created At", "Size"):
        table.add_column(name, no_wrap=True)
    if listing is not None:
        for i, cp in enumerate(listing.items):
            table.add_row(
                truncate(cp.checkpoint_id, 40),
                format_datetime(cp.created_at),
                format_bytes(cp.data_size_bytes),
                style=SELECTED_STYLE if i == listing.selected else None,
            )
    return table


def render_checkpoint_detail(snap: DashboardSnapshot) -> RenderableType:
    checkpoint = snap.checkpoint_detail
    if checkpoint is None:
        return Text("")
    lines: List[Text] = [
        Text(""),
        _field("Checkpoint ID:", checkpoint.checkpoint_id),
        _field("Instance ID:", checkpoint.instance_id),
        _field("Created At:", format_datetime(checkpoint.created_at)),
        Text(""),
        Text("  Data:", style="bold grey50"),
        Text(""),
    ]
    lines.extend(Text(f"  {line}", style="cyan") for line in pretty_json(checkpoint.data))
    return Panel(
        Group(*_scrolled(lines, snap.detail_scroll)),
        title=f"Checkpoint: {truncate(checkpoint.checkpoint_id, 30)}",
        border_style="yellow",
    )


def render_error(message: str) -> RenderableType:
    text = Text("\nError\n\n", style="bold red")
    text.append(f"{message}\n\n", style="white")
    text.append("Press any key to dismiss", style="grey50")
    return Panel(text, title="Error", border_style="red")


TAB_RENDERERS = {
    Tab.INSTANCES: render_instances,
    Tab.IMAGES: render_images,
    Tab.METRICS: render_metrics,
    Tab.HEALTH: render_health,
}

FRAME_RENDERERS = {
    FrameKind.INSTANCE_DETAIL: render_instance_detail,
    FrameKind.CHECKPOINTS_LIST: render_checkpoints,
    FrameKind.CHECKPOINT_DETAIL: render_checkpoint_detail,
}


def render_body(snap: DashboardSnapshot) -> RenderableType:
    if snap.frame is FrameKind.LIST:
        return TAB_RENDERERS[snap.tab](snap)
    return FRAME_RENDERERS[snap.frame](snap)


def render(snap: DashboardSnapshot) -> RenderedFrame:
    return RenderedFrame(
        header=render_header(snap),
        body=render_body(snap),
        footer=render_footer(snap),
        error=render_error(snap.error) if snap.error is not None else None,
    )
