from __future__ import annotations
from .common import ApiModel

class HealthStatus(ApiModel):
    healthy: bool
    version: str = ""
    uptime_ms: int = 0
    active_instances: int = 0
