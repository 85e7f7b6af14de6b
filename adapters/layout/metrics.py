from __future__ import annotations

from collections.abc import Mapping

from domain.models import (
    CONTAINER_BLOCK_TYPES,
    Block,
    BlockMetrics,
    BoundingBox,
    Position,
)

DEFAULT_BLOCK_WIDTH = 350.0
DEFAULT_BLOCK_WIDTH_WIDE = 480.0
DEFAULT_BLOCK_HEIGHT = 100.0
DEFAULT_CONTAINER_WIDTH = 500.0
DEFAULT_CONTAINER_HEIGHT = 300.0

# Interior offset of the first child from the container's top-left corner.
CONTAINER_PADDING_X = 180.0
CONTAINER_PADDING_Y = 100.0


def is_container_type(block_type: str) -> bool:
    return block_type in CONTAINER_BLOCK_TYPES


def get_block_metrics(block: Block) -> BlockMetrics:
    if is_container_type(block.type):
        return BlockMetrics(
            width=max(block.data.width or 0.0, DEFAULT_CONTAINER_WIDTH),
            height=max(block.data.height or 0.0, DEFAULT_CONTAINER_HEIGHT),
            min_width=DEFAULT_CONTAINER_WIDTH,
            min_height=DEFAULT_CONTAINER_HEIGHT,
            padding_top=CONTAINER_PADDING_Y,
            padding_bottom=CONTAINER_PADDING_Y,
            padding_left=CONTAINER_PADDING_X,
            padding_right=CONTAINER_PADDING_X,
        )

    measured_height = block.layout.measured_height if block.layout else None
    width = DEFAULT_BLOCK_WIDTH_WIDE if block.is_wide else DEFAULT_BLOCK_WIDTH
    return BlockMetrics(
        width=width,
        height=max(measured_height or block.height or 0.0, DEFAULT_BLOCK_HEIGHT),
        min_width=width,
        min_height=DEFAULT_BLOCK_HEIGHT,
    )


def create_bounding_box(position: Position, metrics: BlockMetrics) -> BoundingBox:
    return BoundingBox(x=position.x, y=position.y, width=metrics.width, height=metrics.height)


def boxes_overlap(first: BoundingBox, second: BoundingBox, margin: float = 0.0) -> bool:
    """True when the boxes intersect once each is grown by ``margin`` on its far edges."""
    return not (
        first.right + margin <= second.x
        or second.right + margin <= first.x
        or first.bottom + margin <= second.y
        or second.bottom + margin <= first.y
    )


def get_blocks_by_parent(
    blocks: Mapping[str, Block],
) -> tuple[list[str], dict[str, list[str]]]:
    root: list[str] = []
    children: dict[str, list[str]] = {}
    for block_id, block in blocks.items():
        parent_id = block.parent_id
        if not parent_id:
            root.append(block_id)
        else:
            children.setdefault(parent_id, []).append(block_id)
    return root, children


def nesting_depth(block_id: str, blocks: Mapping[str, Block]) -> int:
    depth = 0
    seen = {block_id}
    parent_id = blocks[block_id].parent_id if block_id in blocks else None
    while parent_id and parent_id in blocks and parent_id not in seen:
        seen.add(parent_id)
        depth += 1
        parent_id = blocks[parent_id].parent_id
    return depth
