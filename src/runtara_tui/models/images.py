from __future__ import annotations
from typing import Optional
from datetime import datetime
from .common import ApiModel

class ImageSummary(ApiModel):
    image_id: str
    name: str
    tenant_id: str
    runner_type: Optional[str] = None  # 'oci' | 'native' | 'wasm' | None
    created_at: datetime
    description: Optional[str] = None
