from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONTAINER_BLOCK_TYPES = frozenset({"loop", "parallel"})
CONTAINER_START_HANDLES = frozenset({"loop-start-source", "parallel-start-source"})

Alignment = Literal["start", "center", "end"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_state_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class BlockLayout(_CamelModel):
    measured_width: Optional[float] = Field(default=None, alias="measuredWidth")
    measured_height: Optional[float] = Field(default=None, alias="measuredHeight")


class BlockData(_CamelModel):
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    width: Optional[float] = None
    height: Optional[float] = None
    extent: Optional[str] = None

    @field_validator("parent_id", mode="before")
    @classmethod
    def normalize_parent_id(cls, value: object) -> str | None:
        if value is None:
            return None
        normalized = str(value).strip()
        return normalized or None


class Block(_CamelModel):
    id: str = Field(..., min_length=1)
    type: str
    name: str = ""
    position: Position = Field(default_factory=Position)
    is_wide: bool = Field(default=False, alias="isWide")
    height: float = 0.0
    layout: Optional[BlockLayout] = None
    data: BlockData = Field(default_factory=BlockData)

    @field_validator("data", mode="before")
    @classmethod
    def ensure_data(cls, value: object) -> object:
        return {} if value is None else value

    @property
    def parent_id(self) -> str | None:
        return self.data.parent_id

    @property
    def is_container(self) -> bool:
        return self.type in CONTAINER_BLOCK_TYPES


class Edge(_CamelModel):
    id: str = ""
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")

    def is_container_entry(self) -> bool:
        return self.source_handle in CONTAINER_START_HANDLES


class Loop(_CamelModel):
    id: str
    nodes: List[str] = Field(default_factory=list)
    iterations: int = 0
    loop_type: str = Field(default="for", alias="loopType")


class Parallel(_CamelModel):
    id: str
    nodes: List[str] = Field(default_factory=list)
    count: Optional[int] = None
    parallel_type: Optional[str] = Field(default=None, alias="parallelType")


class WorkflowState(_CamelModel):
    blocks: Dict[str, Block] = Field(default_factory=dict)
    edges: List[Edge] = Field(default_factory=list)
    loops: Dict[str, Loop] = Field(default_factory=dict)
    parallels: Dict[str, Parallel] = Field(default_factory=dict)

    @field_validator("blocks", mode="before")
    @classmethod
    def fill_block_ids(cls, blocks: object) -> object:
        if not isinstance(blocks, dict):
            return blocks
        filled: dict[str, object] = {}
        for block_id, block in blocks.items():
            if isinstance(block, dict) and "id" not in block:
                block = {**block, "id": block_id}
            filled[block_id] = block
        return filled

    @field_validator("blocks", mode="after")
    @classmethod
    def ensure_matching_keys(cls, blocks: Dict[str, Block]) -> Dict[str, Block]:
        for block_id, block in blocks.items():
            if block.id != block_id:
                msg = f"Block key {block_id!r} does not match block id {block.id!r}"
                raise ValueError(msg)
        return blocks

    def block_ids(self) -> Set[str]:
        return set(self.blocks.keys())


class Padding(BaseModel):
    x: float = Field(default=150.0, ge=0)
    y: float = Field(default=150.0, ge=0)


class LayoutOptions(_CamelModel):
    horizontal_spacing: float = Field(default=550.0, gt=0, alias="horizontalSpacing")
    vertical_spacing: float = Field(default=200.0, ge=0, alias="verticalSpacing")
    padding: Padding = Field(default_factory=Padding)
    alignment: Alignment = "center"

    def is_explicit(self, name: str) -> bool:
        return name in self.model_fields_set


class AdjustmentOptions(LayoutOptions):
    preserve_positions: bool = Field(default=False, alias="preservePositions")
    shift_downstream: bool = Field(default=False, alias="shiftDownstream")


class LayoutResult(BaseModel):
    blocks: Dict[str, Block]
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "blocks": {block_id: block.to_state_dict() for block_id, block in self.blocks.items()},
            "success": self.success,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class BlockMetrics:
    width: float
    height: float
    min_width: float
    min_height: float
    padding_top: float = 0.0
    padding_bottom: float = 0.0
    padding_left: float = 0.0
    padding_right: float = 0.0


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass
class GraphNode:
    id: str
    block: Block
    metrics: BlockMetrics
    incoming: Set[str] = field(default_factory=set)
    outgoing: Set[str] = field(default_factory=set)
    layer: int = 0
    position: Position = field(default_factory=Position)
