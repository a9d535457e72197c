from __future__ import annotations
from enum import Enum
from typing import Any, Optional
from datetime import datetime
from .common import ApiModel

class InstanceStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "InstanceStatus":
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.UNKNOWN

    @property
    def label(self) -> str:
        return self.value.capitalize()

class InstanceSummary(ApiModel):
    instance_id: str
    tenant_id: str
    image_id: str
    status: InstanceStatus = InstanceStatus.UNKNOWN
    created_at: datetime
    finished_at: Optional[datetime] = None

class InstanceInfo(ApiModel):
    instance_id: str
    tenant_id: str
    image_id: str
    image_name: str = ""
    status: InstanceStatus = InstanceStatus.UNKNOWN
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    heartbeat_at: Optional[datetime] = None
    checkpoint_id: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 0
    input: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[str] = None
