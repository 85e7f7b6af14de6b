from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from adapters.layout.containers import layout_containers
from adapters.layout.incremental import adjust_for_new_block as adjust_blocks_for_new_block
from adapters.layout.incremental import compact_horizontally
from adapters.layout.layering import assign_layers, group_by_layer
from adapters.layout.metrics import get_blocks_by_parent
from adapters.layout.positioning import MAX_OVERLAP_PASSES, calculate_positions
from domain.models import (
    AdjustmentOptions,
    Block,
    Edge,
    LayoutOptions,
    LayoutResult,
    Loop,
    Parallel,
)
from domain.ports.layout import LayoutEngine

logger = logging.getLogger(__name__)

BlocksInput = Mapping[str, Block | Mapping[str, Any]]
EdgesInput = Sequence[Edge | Mapping[str, Any]]


class WorkflowLayoutEngine(LayoutEngine):
    """Full and incremental layout of a workflow canvas.

    Both entry points work on a deep copy of the given blocks. Failures are
    reported through ``LayoutResult.success`` with the caller's blocks
    returned untouched.
    """

    def __init__(
        self,
        options: LayoutOptions | None = None,
        max_overlap_passes: int = MAX_OVERLAP_PASSES,
    ) -> None:
        self.options = options or LayoutOptions()
        self.max_overlap_passes = max_overlap_passes

    def apply_auto_layout(
        self,
        blocks: BlocksInput,
        edges: EdgesInput,
        loops: Mapping[str, Loop] | None = None,
        parallels: Mapping[str, Parallel] | None = None,
        options: LayoutOptions | None = None,
    ) -> LayoutResult:
        options = options or self.options
        try:
            working = _copy_blocks(blocks)
            edge_list = _coerce_edges(edges)
            logger.info(
                "Starting auto layout: %d blocks, %d edges, %d loops, %d parallels",
                len(working),
                len(edge_list),
                len(loops or {}),
                len(parallels or {}),
            )
            _log_container_mismatches(working, loops or {}, parallels or {})

            # Root overlap resolution needs final container sizes.
            layout_containers(working, edge_list, options, max_passes=self.max_overlap_passes)

            root_ids, _ = get_blocks_by_parent(working)
            root_set = set(root_ids)
            root_blocks = {block_id: working[block_id] for block_id in root_ids}
            root_edges = [
                edge for edge in edge_list if edge.source in root_set and edge.target in root_set
            ]
            if root_blocks:
                nodes = assign_layers(root_blocks, root_edges)
                calculate_positions(
                    group_by_layer(nodes), options, max_passes=self.max_overlap_passes
                )
                for node in nodes.values():
                    working[node.id].position = node.position

            logger.info("Auto layout completed successfully for %d blocks", len(working))
            return LayoutResult(blocks=working, success=True)
        except Exception as exc:
            logger.exception("Auto layout failed")
            return LayoutResult(blocks=_original_blocks(blocks), success=False, error=str(exc))

    def adjust_for_new_block(
        self,
        blocks: BlocksInput,
        edges: EdgesInput,
        new_block_id: str,
        options: AdjustmentOptions | None = None,
    ) -> LayoutResult:
        options = options or AdjustmentOptions.model_validate(
            self.options.model_dump(exclude_unset=True)
        )
        try:
            logger.info("Adjusting layout for new block %s", new_block_id)
            working = _copy_blocks(blocks)
            edge_list = _coerce_edges(edges)

            adjust_blocks_for_new_block(working, edge_list, new_block_id, options)
            if not options.preserve_positions:
                compact_horizontally(working)

            return LayoutResult(blocks=working, success=True)
        except Exception as exc:
            logger.exception("Failed to adjust layout for new block %s", new_block_id)
            return LayoutResult(blocks=_original_blocks(blocks), success=False, error=str(exc))


_default_engine = WorkflowLayoutEngine()


def apply_auto_layout(
    blocks: BlocksInput,
    edges: EdgesInput,
    loops: Mapping[str, Loop] | None = None,
    parallels: Mapping[str, Parallel] | None = None,
    options: LayoutOptions | None = None,
) -> LayoutResult:
    return _default_engine.apply_auto_layout(blocks, edges, loops, parallels, options)


def adjust_for_new_block(
    blocks: BlocksInput,
    edges: EdgesInput,
    new_block_id: str,
    options: AdjustmentOptions | None = None,
) -> LayoutResult:
    return _default_engine.adjust_for_new_block(blocks, edges, new_block_id, options)


def _coerce_block(block_id: str, block: Block | Mapping[str, Any]) -> Block:
    if isinstance(block, Block):
        return block.model_copy(deep=True)
    payload = dict(block)
    payload.setdefault("id", block_id)
    return Block.model_validate(payload)


def _copy_blocks(blocks: BlocksInput) -> dict[str, Block]:
    return {block_id: _coerce_block(block_id, block) for block_id, block in blocks.items()}


def _coerce_edges(edges: EdgesInput) -> list[Edge]:
    return [edge if isinstance(edge, Edge) else Edge.model_validate(edge) for edge in edges]


def _original_blocks(blocks: BlocksInput) -> dict[str, Block]:
    original: dict[str, Block] = {}
    for block_id, block in blocks.items():
        if isinstance(block, Block):
            original[block_id] = block
            continue
        if not isinstance(block, Mapping):
            logger.warning("Dropping non-mapping block %s from failed layout result", block_id)
            continue
        try:
            original[block_id] = _coerce_block(block_id, block)
        except ValueError:
            logger.warning("Dropping invalid block %s from failed layout result", block_id)
    return original


def _log_container_mismatches(
    blocks: Mapping[str, Block],
    loops: Mapping[str, Loop | Mapping[str, Any]],
    parallels: Mapping[str, Parallel | Mapping[str, Any]],
) -> None:
    for kind, containers in (("loop", loops), ("parallel", parallels)):
        for container_id, container in containers.items():
            nodes = container.get("nodes", []) if isinstance(container, Mapping) else container.nodes
            for child_id in nodes:
                child = blocks.get(child_id)
                if child is not None and child.parent_id != container_id:
                    logger.debug(
                        "Block %s is listed by %s %s but declares parent %s",
                        child_id,
                        kind,
                        container_id,
                        child.parent_id,
                    )
