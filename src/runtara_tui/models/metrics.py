from __future__ import annotations
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import Field
from .common import ApiModel

class MetricsGranularity(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def toggled(self) -> "MetricsGranularity":
        return MetricsGranularity.DAILY if self is MetricsGranularity.HOURLY else MetricsGranularity.HOURLY

class MetricsBucket(ApiModel):
    bucket_time: datetime
    invocation_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate_percent: Optional[float] = None
    avg_duration_seconds: Optional[float] = None
    avg_memory_bytes: Optional[float] = None

class TenantMetricsResult(ApiModel):
    tenant_id: str
    start_time: datetime
    end_time: datetime
    granularity: MetricsGranularity = MetricsGranularity.HOURLY
    buckets: list[MetricsBucket] = Field(default_factory=list)
