from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from adapters.layout.metrics import boxes_overlap, create_bounding_box
from domain.models import GraphNode, LayoutOptions, Position

logger = logging.getLogger(__name__)

CANVAS_CENTER_Y = 300.0
CANVAS_HEIGHT = 600.0
OVERLAP_MARGIN = 30.0
MAX_OVERLAP_PASSES = 20


def calculate_positions(
    layers: Mapping[int, Sequence[GraphNode]],
    options: LayoutOptions | None = None,
    max_passes: int = MAX_OVERLAP_PASSES,
) -> None:
    options = options or LayoutOptions()
    padding = options.padding

    for layer in sorted(layers):
        nodes_in_layer = layers[layer]
        x = padding.x + layer * options.horizontal_spacing
        total_height = sum(node.metrics.height for node in nodes_in_layer) + (
            options.vertical_spacing * max(len(nodes_in_layer) - 1, 0)
        )

        if options.alignment == "center":
            y = max(padding.y, CANVAS_CENTER_Y - total_height / 2)
        elif options.alignment == "end":
            y = CANVAS_HEIGHT - total_height - padding.y
        else:
            y = padding.y

        for node in nodes_in_layer:
            node.position = Position(x=x, y=y)
            y += node.metrics.height + options.vertical_spacing

    resolve_overlaps(
        [node for layer in sorted(layers) for node in layers[layer]],
        options.vertical_spacing,
        max_passes=max_passes,
    )


def resolve_overlaps(
    nodes: Sequence[GraphNode],
    vertical_spacing: float,
    max_passes: int = MAX_OVERLAP_PASSES,
) -> int:
    """Nudge overlapping nodes apart vertically and return the number of passes used.

    Nodes in the same layer are split symmetrically around their shared centre;
    otherwise the node further right is pushed below the other. The loop stops
    after a pass without changes or once ``max_passes`` is reached.
    """
    gap = max(vertical_spacing, OVERLAP_MARGIN)
    passes = 0
    changed = True

    while changed and passes < max_passes:
        changed = False
        passes += 1
        ordered = sorted(nodes, key=lambda node: (node.layer, node.position.y, node.id))

        for idx, first in enumerate(ordered):
            for second in ordered[idx + 1 :]:
                first_box = create_bounding_box(first.position, first.metrics)
                second_box = create_bounding_box(second.position, second.metrics)
                if not boxes_overlap(first_box, second_box, OVERLAP_MARGIN):
                    continue

                changed = True
                if first.layer == second.layer:
                    _split_vertically(first, second, gap)
                else:
                    upper, lower = _upper_and_lower(first, second)
                    required_y = upper.position.y + upper.metrics.height + gap
                    if lower.position.y < required_y:
                        lower.position.y = required_y

                logger.debug(
                    "Resolved overlap between %s and %s (same_layer=%s, pass=%d)",
                    first.id,
                    second.id,
                    first.layer == second.layer,
                    passes,
                )

    if changed:
        logger.warning("Could not fully resolve all overlaps after %d passes", max_passes)
    return passes


def _split_vertically(first: GraphNode, second: GraphNode, gap: float) -> None:
    first_center = first.position.y + first.metrics.height / 2
    second_center = second.position.y + second.metrics.height / 2
    midpoint = (first_center + second_center) / 2
    half_distance = (first.metrics.height / 2 + second.metrics.height / 2 + gap) / 2
    if first_center <= second_center:
        top, bottom = first, second
    else:
        top, bottom = second, first
    top.position.y = midpoint - half_distance - top.metrics.height / 2
    bottom.position.y = midpoint + half_distance - bottom.metrics.height / 2


def _upper_and_lower(first: GraphNode, second: GraphNode) -> tuple[GraphNode, GraphNode]:
    if second.position.x > first.position.x:
        return first, second
    if first.position.x > second.position.x:
        return second, first
    return (first, second) if first.layer <= second.layer else (second, first)
