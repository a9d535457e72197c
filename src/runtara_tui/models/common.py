from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, TypeVar
from pydantic import BaseModel, ConfigDict, Field

class ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", from_attributes=True, frozen=True)

ModelT = TypeVar("ModelT", bound=BaseModel)

class Paginated(ApiModel):
    total_count: int = 0
    items: list[Dict[str, Any]] = Field(default_factory=list)

    def items_typed(self, model: type[ModelT]) -> List[ModelT]:
        return [model.model_validate(item) for item in self.items]

@dataclass
class Page(Generic[ModelT]):
    """One fetched page of typed records plus the server-side total."""
    items: List[ModelT] = field(default_factory=list)
    total_count: int = 0
