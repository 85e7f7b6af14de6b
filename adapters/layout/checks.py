from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from itertools import combinations

from adapters.layout.layering import assign_layers
from adapters.layout.metrics import (
    CONTAINER_PADDING_X,
    CONTAINER_PADDING_Y,
    boxes_overlap,
    create_bounding_box,
    get_block_metrics,
    get_blocks_by_parent,
)
from adapters.layout.positioning import OVERLAP_MARGIN
from domain.models import Block, Edge


@dataclass(frozen=True)
class ContainerFit:
    container_id: str
    width: float
    height: float
    required_width: float
    required_height: float

    @property
    def fits(self) -> bool:
        return (
            self.width + 1e-6 >= self.required_width
            and self.height + 1e-6 >= self.required_height
        )


@dataclass(frozen=True)
class LayoutReport:
    overlaps: list[tuple[str, str]] = field(default_factory=list)
    layer_violations: list[tuple[str, str]] = field(default_factory=list)
    undersized_containers: list[ContainerFit] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.overlaps or self.layer_violations or self.undersized_containers)


def find_sibling_overlaps(
    blocks: Mapping[str, Block], margin: float = OVERLAP_MARGIN
) -> list[tuple[str, str]]:
    root, children = get_blocks_by_parent(blocks)
    groups = [root, *children.values()]
    overlaps: list[tuple[str, str]] = []
    for group in groups:
        boxes = {
            block_id: create_bounding_box(
                blocks[block_id].position, get_block_metrics(blocks[block_id])
            )
            for block_id in group
        }
        for first, second in combinations(sorted(boxes), 2):
            # Touching the margin exactly is not an overlap here.
            if boxes_overlap(boxes[first], boxes[second], margin - 1e-6):
                overlaps.append((first, second))
    return overlaps


def find_layer_violations(
    blocks: Mapping[str, Block], edges: Sequence[Edge]
) -> list[tuple[str, str]]:
    """Root edges placed right to left although layering ranks the target later.

    Edges closing a cycle rank their target no later than their source and are
    not reported.
    """
    root, _ = get_blocks_by_parent(blocks)
    root_set = set(root)
    layers = layer_assignments(blocks, edges)
    violations: list[tuple[str, str]] = []
    for edge in edges:
        if edge.source not in root_set or edge.target not in root_set:
            continue
        if layers[edge.target] <= layers[edge.source]:
            continue
        if blocks[edge.target].position.x <= blocks[edge.source].position.x:
            violations.append((edge.source, edge.target))
    return violations


def container_fits(blocks: Mapping[str, Block]) -> list[ContainerFit]:
    _, children = get_blocks_by_parent(blocks)
    fits: list[ContainerFit] = []
    for parent_id, child_ids in children.items():
        container = blocks.get(parent_id)
        if container is None or not container.is_container:
            continue
        boxes = [
            create_bounding_box(blocks[child_id].position, get_block_metrics(blocks[child_id]))
            for child_id in child_ids
        ]
        metrics = get_block_metrics(container)
        span_x = max(box.right for box in boxes) - min(box.x for box in boxes)
        span_y = max(box.bottom for box in boxes) - min(box.y for box in boxes)
        fits.append(
            ContainerFit(
                container_id=parent_id,
                width=metrics.width,
                height=metrics.height,
                required_width=max(span_x + CONTAINER_PADDING_X * 2, metrics.min_width),
                required_height=max(span_y + CONTAINER_PADDING_Y * 2, metrics.min_height),
            )
        )
    return fits


def layer_assignments(blocks: Mapping[str, Block], edges: Sequence[Edge]) -> dict[str, int]:
    root, _ = get_blocks_by_parent(blocks)
    root_blocks = {block_id: blocks[block_id] for block_id in root}
    return {node_id: node.layer for node_id, node in assign_layers(root_blocks, edges).items()}


def check_layout(blocks: Mapping[str, Block], edges: Sequence[Edge]) -> LayoutReport:
    return LayoutReport(
        overlaps=find_sibling_overlaps(blocks),
        layer_violations=find_layer_violations(blocks, edges),
        undersized_containers=[fit for fit in container_fits(blocks) if not fit.fits],
    )
