from __future__ import annotations

import logging
from collections.abc import MutableMapping, Sequence

from adapters.layout.layering import assign_layers, group_by_layer
from adapters.layout.metrics import (
    CONTAINER_PADDING_X,
    CONTAINER_PADDING_Y,
    DEFAULT_CONTAINER_HEIGHT,
    DEFAULT_CONTAINER_WIDTH,
    get_blocks_by_parent,
    is_container_type,
    nesting_depth,
)
from adapters.layout.positioning import MAX_OVERLAP_PASSES, calculate_positions
from domain.models import Block, Edge, LayoutOptions, Padding, Position

logger = logging.getLogger(__name__)

CONTAINER_SPACING_RATIO = 0.85
CONTAINER_HORIZONTAL_SPACING = 400.0
CONTAINER_VERTICAL_SPACING = 200.0


def container_layout_options(options: LayoutOptions | None = None) -> LayoutOptions:
    options = options or LayoutOptions()
    horizontal = (
        options.horizontal_spacing * CONTAINER_SPACING_RATIO
        if options.is_explicit("horizontal_spacing")
        else CONTAINER_HORIZONTAL_SPACING
    )
    vertical = (
        options.vertical_spacing
        if options.is_explicit("vertical_spacing")
        else CONTAINER_VERTICAL_SPACING
    )
    return LayoutOptions(
        horizontal_spacing=horizontal,
        vertical_spacing=vertical,
        padding=Padding(x=CONTAINER_PADDING_X, y=CONTAINER_PADDING_Y),
        alignment=options.alignment,
    )


def layout_containers(
    blocks: MutableMapping[str, Block],
    edges: Sequence[Edge],
    options: LayoutOptions | None = None,
    max_passes: int = MAX_OVERLAP_PASSES,
) -> None:
    """Lay out every container's children and size the container around them.

    Containers are processed deepest first so a nested container already has
    its final size when the container holding it is laid out.
    """
    _, children_by_parent = get_blocks_by_parent(blocks)
    child_options = container_layout_options(options)

    for parent_id in list(children_by_parent):
        parent = blocks.get(parent_id)
        if parent is None or not is_container_type(parent.type):
            logger.warning(
                "Blocks reference %s as parent but it is not a container block, skipping",
                parent_id,
            )
            children_by_parent.pop(parent_id)

    ordered_parents = sorted(
        children_by_parent,
        key=lambda parent_id: -nesting_depth(parent_id, blocks),
    )
    for parent_id in ordered_parents:
        _layout_container(
            blocks[parent_id],
            {child_id: blocks[child_id] for child_id in children_by_parent[parent_id]},
            edges,
            child_options,
            max_passes,
        )


def _layout_container(
    container: Block,
    children: MutableMapping[str, Block],
    edges: Sequence[Edge],
    options: LayoutOptions,
    max_passes: int,
) -> None:
    if not children:
        return
    logger.debug("Processing container %s with %d children", container.id, len(children))

    child_edges = [
        edge for edge in edges if edge.source in children and edge.target in children
    ]
    entry_children = [
        edge.target
        for edge in edges
        if edge.source == container.id and edge.target in children and edge.is_container_entry()
    ]

    nodes = assign_layers(children, child_edges, preferred_starters=entry_children)
    calculate_positions(group_by_layer(nodes), options, max_passes=max_passes)

    min_x = min(node.position.x for node in nodes.values())
    min_y = min(node.position.y for node in nodes.values())
    max_x = max(node.position.x + node.metrics.width for node in nodes.values())
    max_y = max(node.position.y + node.metrics.height for node in nodes.values())

    offset_x = CONTAINER_PADDING_X - min_x
    offset_y = CONTAINER_PADDING_Y - min_y
    for node in nodes.values():
        children[node.id].position = Position(
            x=node.position.x + offset_x,
            y=node.position.y + offset_y,
        )

    container.data.width = max(max_x - min_x + CONTAINER_PADDING_X * 2, DEFAULT_CONTAINER_WIDTH)
    container.data.height = max(
        max_y - min_y + CONTAINER_PADDING_Y * 2, DEFAULT_CONTAINER_HEIGHT
    )
    logger.debug(
        "Container %s sized to %.0fx%.0f",
        container.id,
        container.data.width,
        container.data.height,
    )
