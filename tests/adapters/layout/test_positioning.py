from __future__ import annotations

import logging
from collections.abc import Callable

import pytest

from adapters.layout.layering import assign_layers, group_by_layer
from adapters.layout.metrics import get_block_metrics
from adapters.layout.positioning import calculate_positions, resolve_overlaps
from domain.models import Block, Edge, GraphNode, LayoutOptions, Position


def _node(block: Block, layer: int, x: float, y: float) -> GraphNode:
    return GraphNode(
        id=block.id,
        block=block,
        metrics=get_block_metrics(block),
        layer=layer,
        position=Position(x=x, y=y),
    )


def test_chain_is_spaced_by_layer_and_centered(
    make_block: Callable[..., Block], make_edges: Callable[..., list[Edge]]
) -> None:
    blocks = {block_id: make_block(block_id) for block_id in ("a", "b", "c")}
    nodes = assign_layers(blocks, make_edges(("a", "b"), ("b", "c")))

    calculate_positions(group_by_layer(nodes))

    assert [nodes[block_id].position.x for block_id in ("a", "b", "c")] == [150, 700, 1250]
    assert {nodes[block_id].position.y for block_id in ("a", "b", "c")} == {250}


@pytest.mark.parametrize(
    ("alignment", "expected_y"),
    [("start", 150.0), ("center", 250.0), ("end", 350.0)],
)
def test_alignment_policies(
    make_block: Callable[..., Block], alignment: str, expected_y: float
) -> None:
    nodes = assign_layers({"a": make_block("a")}, [])

    calculate_positions(group_by_layer(nodes), LayoutOptions(alignment=alignment))

    assert nodes["a"].position == Position(x=150, y=expected_y)


def test_center_alignment_is_clamped_to_padding(
    make_block: Callable[..., Block], make_edges: Callable[..., list[Edge]]
) -> None:
    blocks = {block_id: make_block(block_id) for block_id in ("root", "a", "b", "c")}
    nodes = assign_layers(blocks, make_edges(("root", "a"), ("root", "b"), ("root", "c")))

    calculate_positions(group_by_layer(nodes))

    assert [nodes[block_id].position.y for block_id in ("a", "b", "c")] == [150, 450, 750]


def test_custom_spacing_and_padding(
    make_block: Callable[..., Block], make_edges: Callable[..., list[Edge]]
) -> None:
    blocks = {block_id: make_block(block_id) for block_id in ("a", "b")}
    nodes = assign_layers(blocks, make_edges(("a", "b")))
    options = LayoutOptions(
        horizontal_spacing=600, padding={"x": 40, "y": 60}, alignment="start"
    )

    calculate_positions(group_by_layer(nodes), options)

    assert nodes["a"].position == Position(x=40, y=60)
    assert nodes["b"].position == Position(x=640, y=60)


def test_same_layer_overlap_is_split_symmetrically(make_block: Callable[..., Block]) -> None:
    first = _node(make_block("a"), layer=0, x=0, y=0)
    second = _node(make_block("b"), layer=0, x=0, y=0)

    passes = resolve_overlaps([first, second], vertical_spacing=200)

    assert passes == 2
    assert first.position.y == -150
    assert second.position.y == 150
    assert second.position.y - (first.position.y + first.metrics.height) == 200


def test_cross_layer_overlap_pushes_right_node_down(make_block: Callable[..., Block]) -> None:
    container = _node(make_block("loop", "loop"), layer=0, x=0, y=0)
    follower = _node(make_block("b"), layer=1, x=100, y=50)

    resolve_overlaps([container, follower], vertical_spacing=200)

    assert container.position == Position(x=0, y=0)
    assert follower.position.y == container.metrics.height + 200


def test_non_overlapping_nodes_need_one_pass(make_block: Callable[..., Block]) -> None:
    nodes = [
        _node(make_block("a"), layer=0, x=0, y=0),
        _node(make_block("b"), layer=1, x=550, y=0),
    ]

    assert resolve_overlaps(nodes, vertical_spacing=200) == 1
    assert nodes[1].position == Position(x=550, y=0)


def test_pass_cap_logs_warning(
    make_block: Callable[..., Block], caplog: pytest.LogCaptureFixture
) -> None:
    nodes = [
        _node(make_block("a"), layer=0, x=0, y=0),
        _node(make_block("b"), layer=0, x=0, y=0),
    ]

    with caplog.at_level(logging.WARNING, logger="adapters.layout.positioning"):
        passes = resolve_overlaps(nodes, vertical_spacing=200, max_passes=1)

    assert passes == 1
    assert "Could not fully resolve all overlaps" in caplog.text
