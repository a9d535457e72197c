from __future__ import annotations
from typing import Any
from datetime import datetime
from .common import ApiModel

class CheckpointSummary(ApiModel):
    checkpoint_id: str
    instance_id: str
    created_at: datetime
    data_size_bytes: int = 0

class Checkpoint(ApiModel):
    checkpoint_id: str
    instance_id: str
    created_at: datetime
    data: Any = None
