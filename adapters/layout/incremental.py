from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping, MutableMapping, Sequence

from adapters.layout.metrics import boxes_overlap, create_bounding_box, get_block_metrics
from domain.models import AdjustmentOptions, Block, Edge, Position

logger = logging.getLogger(__name__)

DEFAULT_SHIFT_SPACING = 550.0
MIN_NEW_BLOCK_X = 150.0
NEW_BLOCK_MARGIN = 50.0
COMPACTION_SPACING = 500.0
COMPACTION_SLACK = 150.0


def adjust_for_new_block(
    blocks: MutableMapping[str, Block],
    edges: Sequence[Edge],
    new_block_id: str,
    options: AdjustmentOptions | None = None,
) -> None:
    new_block = blocks.get(new_block_id)
    if new_block is None:
        logger.warning("New block %s not found in blocks", new_block_id)
        return

    options = options or AdjustmentOptions()
    spacing = (
        options.horizontal_spacing
        if options.is_explicit("horizontal_spacing")
        else DEFAULT_SHIFT_SPACING
    )

    incoming = [edge for edge in edges if edge.target == new_block_id]
    outgoing = [edge for edge in edges if edge.source == new_block_id]
    if not incoming and not outgoing:
        logger.debug("New block %s has no connections, no adjustment needed", new_block_id)
        return

    sources = _neighbor_blocks(blocks, [edge.source for edge in incoming], new_block_id)
    targets = _neighbor_blocks(blocks, [edge.target for edge in outgoing], new_block_id)

    if sources:
        new_block.position = Position(
            x=max(block.position.x for block in sources) + spacing,
            y=sum(block.position.y for block in sources) / len(sources),
        )
        logger.debug(
            "Positioned new block %s after %d source blocks", new_block_id, len(sources)
        )
    elif targets:
        new_block.position = Position(
            x=max(MIN_NEW_BLOCK_X, min(block.position.x for block in targets) - spacing),
            y=sum(block.position.y for block in targets) / len(targets),
        )
        logger.debug(
            "Positioned new block %s before %d target blocks", new_block_id, len(targets)
        )

    new_metrics = get_block_metrics(new_block)
    new_box = create_bounding_box(new_block.position, new_metrics)
    siblings = {
        block_id: block
        for block_id, block in blocks.items()
        if block_id != new_block_id and block.parent_id == new_block.parent_id
    }

    shifts: dict[str, float] = {}
    for block_id, block in siblings.items():
        if block.position.x < new_block.position.x:
            continue
        box = create_bounding_box(block.position, get_block_metrics(block))
        if not boxes_overlap(new_box, box, NEW_BLOCK_MARGIN):
            continue
        required_shift = new_box.right + NEW_BLOCK_MARGIN - block.position.x
        if required_shift > 0:
            shifts[block_id] = required_shift

    if shifts and options.shift_downstream:
        shifts = _propagate_downstream(shifts, siblings, edges)

    if shifts:
        logger.debug(
            "Shifting %d blocks to accommodate new block %s", len(shifts), new_block_id
        )
    for block_id, amount in shifts.items():
        block = blocks[block_id]
        block.position = Position(x=block.position.x + amount, y=block.position.y)


def _neighbor_blocks(
    blocks: Mapping[str, Block], block_ids: Sequence[str], new_block_id: str
) -> list[Block]:
    neighbors: list[Block] = []
    seen: set[str] = set()
    for block_id in block_ids:
        if block_id == new_block_id or block_id in seen or block_id not in blocks:
            continue
        seen.add(block_id)
        neighbors.append(blocks[block_id])
    return neighbors


def _propagate_downstream(
    shifts: Mapping[str, float],
    siblings: Mapping[str, Block],
    edges: Sequence[Edge],
) -> dict[str, float]:
    adjacency: dict[str, list[str]] = {}
    for edge in edges:
        if edge.source in siblings and edge.target in siblings:
            adjacency.setdefault(edge.source, []).append(edge.target)

    propagated = dict(shifts)
    queue = deque(shifts)
    while queue:
        block_id = queue.popleft()
        amount = propagated[block_id]
        for target_id in adjacency.get(block_id, []):
            if propagated.get(target_id, 0.0) >= amount:
                continue
            propagated[target_id] = amount
            queue.append(target_id)
    return propagated


def compact_horizontally(blocks: MutableMapping[str, Block]) -> None:
    """Pull root blocks left where the gap to everything before them is excessive.

    Blocks are visited left to right and only ever moved to a spot that stays
    right of every block already visited, so the ordering is kept.
    """
    root_blocks = sorted(
        (block for block in blocks.values() if not block.parent_id),
        key=lambda block: (block.position.x, block.id),
    )
    if not root_blocks:
        return

    first = root_blocks[0]
    right_edge = first.position.x + get_block_metrics(first).width
    for block in root_blocks[1:]:
        expected_x = right_edge + COMPACTION_SPACING
        if block.position.x > expected_x + COMPACTION_SLACK:
            shift = block.position.x - expected_x
            block.position = Position(x=expected_x, y=block.position.y)
            logger.debug("Compacted block %s horizontally by %.0f", block.id, shift)
        right_edge = max(right_edge, block.position.x + get_block_metrics(block).width)
