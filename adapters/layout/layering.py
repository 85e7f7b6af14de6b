from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping, Sequence

from adapters.layout.metrics import get_block_metrics
from domain.models import Block, Edge, GraphNode

logger = logging.getLogger(__name__)


def assign_layers(
    blocks: Mapping[str, Block],
    edges: Sequence[Edge],
    preferred_starters: Iterable[str] = (),
) -> dict[str, GraphNode]:
    """Assign each block a longest-path layer.

    A block is finalized only after every predecessor has been, so a block
    reached through branches of different lengths lands one layer after the
    deepest of them. Blocks that cannot be reached from a starter (they sit
    behind a cycle) fall back to layer 0.
    """
    nodes: dict[str, GraphNode] = {
        block_id: GraphNode(
            id=block_id,
            block=block,
            metrics=get_block_metrics(block),
            position=block.position.model_copy(),
        )
        for block_id, block in blocks.items()
    }

    for edge in edges:
        source = nodes.get(edge.source)
        target = nodes.get(edge.target)
        if source is None or target is None:
            continue
        if source.id == target.id:
            logger.debug("Ignoring self-loop edge %s on block %s", edge.id, source.id)
            continue
        source.outgoing.add(target.id)
        target.incoming.add(source.id)

    starters = [node for node in nodes.values() if not node.incoming]
    if not starters and nodes:
        fallback = next(
            (nodes[block_id] for block_id in preferred_starters if block_id in nodes),
            next(iter(nodes.values())),
        )
        starters.append(fallback)
        logger.warning("No starter blocks found, using %s as starter", fallback.id)

    remaining = {node.id: len(node.incoming) for node in nodes.values()}
    starter_ids = {node.id for node in starters}
    queue = deque(node.id for node in starters)
    processed: set[str] = set()

    while queue:
        node = nodes[queue.popleft()]
        processed.add(node.id)

        if node.id in starter_ids:
            node.layer = 0
        else:
            node.layer = 1 + max(
                (nodes[source_id].layer for source_id in node.incoming if source_id in processed),
                default=-1,
            )

        for target_id in sorted(node.outgoing):
            remaining[target_id] -= 1
            if remaining[target_id] == 0 and target_id not in processed:
                queue.append(target_id)

    # Every block without incoming edges is a starter, so anything left here is blocked by a cycle.
    for node in nodes.values():
        if node.id not in processed:
            node.layer = 0
            logger.debug("Block %s is only reachable through a cycle, assigning layer 0", node.id)

    return nodes


def group_by_layer(nodes: Mapping[str, GraphNode]) -> dict[int, list[GraphNode]]:
    layers: dict[int, list[GraphNode]] = {}
    for node in nodes.values():
        layers.setdefault(node.layer, []).append(node)
    return layers
