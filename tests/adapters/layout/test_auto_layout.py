from __future__ import annotations

from collections.abc import Callable

import pytest

from adapters.layout import auto_layout
from adapters.layout.auto_layout import (
    WorkflowLayoutEngine,
    adjust_for_new_block,
    apply_auto_layout,
)
from adapters.layout.checks import check_layout, find_sibling_overlaps, layer_assignments
from domain.models import AdjustmentOptions, Block, Edge, LayoutOptions, Position
from tests.helpers.workflow_fixtures import load_workflow_fixture


def test_linear_chain_scenario(
    make_block: Callable[..., Block], make_edges: Callable[..., list[Edge]]
) -> None:
    blocks = {block_id: make_block(block_id) for block_id in ("a", "b", "c")}
    result = apply_auto_layout(blocks, make_edges(("a", "b"), ("b", "c")))

    assert result.success is True
    assert result.error is None
    positions = [result.blocks[block_id].position for block_id in ("a", "b", "c")]
    assert [position.x for position in positions] == [150, 700, 1250]
    assert len({position.y for position in positions}) == 1


def test_diamond_scenario_puts_merge_in_third_column(
    make_block: Callable[..., Block], make_edges: Callable[..., list[Edge]]
) -> None:
    blocks = {block_id: make_block(block_id) for block_id in ("a", "b", "c", "d")}
    edges = make_edges(("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"))

    result = apply_auto_layout(blocks, edges)

    assert result.blocks["d"].position.x == 150 + 2 * 550
    assert find_sibling_overlaps(result.blocks) == []


def test_single_block_lands_at_origin_offset(
    make_block: Callable[..., Block], caplog: pytest.LogCaptureFixture
) -> None:
    result = apply_auto_layout({"solo": make_block("solo", x=999, y=999)}, [])

    assert result.blocks["solo"].position == Position(x=150, y=250)
    assert "overlap" not in caplog.text.lower()


def test_input_blocks_are_not_mutated(
    make_block: Callable[..., Block], make_edges: Callable[..., list[Edge]]
) -> None:
    blocks = {"a": make_block("a", x=1, y=2), "b": make_block("b", x=3, y=4)}

    result = apply_auto_layout(blocks, make_edges(("a", "b")))

    assert blocks["a"].position == Position(x=1, y=2)
    assert result.blocks["a"] is not blocks["a"]
    assert result.blocks["b"].position.x == 700


def test_plain_dict_input_is_accepted() -> None:
    blocks = {
        "a": {"type": "starter", "position": {"x": 0, "y": 0}},
        "b": {"type": "agent", "position": {"x": 0, "y": 0}, "isWide": True},
    }
    edges = [{"id": "e1", "source": "a", "target": "b"}]

    result = apply_auto_layout(blocks, edges)

    assert result.success is True
    assert result.blocks["b"].id == "b"
    assert result.blocks["b"].position.x == 700


def test_loop_workflow_layout_is_clean() -> None:
    state = load_workflow_fixture("loop_workflow.json")

    result = apply_auto_layout(state.blocks, state.edges, state.loops, state.parallels)

    assert result.success is True
    blocks = result.blocks
    assert blocks["loop-1"].data.width == 880 + 360
    assert blocks["loop-1"].data.height == 300
    assert blocks["fetch"].position == Position(x=180, y=100)
    assert blocks["summarize"].position == Position(x=580, y=100)
    # The wide loop reaches past the next column, so "notify" moves below it.
    assert blocks["notify"].position == Position(x=1250, y=650)
    assert check_layout(blocks, state.edges).ok


def test_every_block_gets_a_position(make_block: Callable[..., Block]) -> None:
    blocks = {
        "a": make_block("a"),
        "loop": make_block("loop", "loop"),
        "child": make_block("child", parent_id="loop"),
        "stray": make_block("stray", x=7, y=8, parent_id="missing"),
    }

    result = apply_auto_layout(blocks, [])

    assert set(result.blocks) == set(blocks)
    assert result.blocks["stray"].position == Position(x=7, y=8)


def test_layout_is_stable_when_reapplied() -> None:
    state = load_workflow_fixture("branching_workflow.json")
    options = LayoutOptions(alignment="start")

    first = apply_auto_layout(state.blocks, state.edges, options=options)
    second = apply_auto_layout(first.blocks, state.edges, options=options)

    assert layer_assignments(first.blocks, state.edges) == layer_assignments(
        second.blocks, state.edges
    )
    assert len(find_sibling_overlaps(second.blocks)) <= len(find_sibling_overlaps(first.blocks))
    assert {key: block.position for key, block in first.blocks.items()} == {
        key: block.position for key, block in second.blocks.items()
    }


def test_failure_returns_original_blocks(
    make_block: Callable[..., Block], monkeypatch: pytest.MonkeyPatch
) -> None:
    def _explode(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("container pass exploded")

    monkeypatch.setattr(auto_layout, "layout_containers", _explode)
    blocks = {"a": make_block("a", x=1, y=2)}

    result = apply_auto_layout(blocks, [])

    assert result.success is False
    assert result.error == "container pass exploded"
    assert result.blocks["a"] is blocks["a"]


def test_invalid_block_payload_is_reported() -> None:
    result = apply_auto_layout({"a": {"position": {"x": 0, "y": 0}}}, [])

    assert result.success is False
    assert result.error


def test_non_mapping_block_payload_fails_without_raising(
    make_block: Callable[..., Block],
) -> None:
    blocks = {"a": make_block("a", x=1, y=2), "b": None}

    laid_out = apply_auto_layout(blocks, [])
    adjusted = adjust_for_new_block(blocks, [], "a")

    for result in (laid_out, adjusted):
        assert result.success is False
        assert result.error
        assert set(result.blocks) == {"a"}
        assert result.blocks["a"] is blocks["a"]


def test_failure_keeps_valid_dict_blocks(monkeypatch: pytest.MonkeyPatch) -> None:
    def _explode(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("container pass exploded")

    monkeypatch.setattr(auto_layout, "layout_containers", _explode)

    result = apply_auto_layout(
        {"a": {"type": "agent", "position": {"x": 5, "y": 6}}, "b": {"position": 1}}, []
    )

    assert result.success is False
    assert set(result.blocks) == {"a"}
    assert result.blocks["a"].position == Position(x=5, y=6)


def test_engine_uses_configured_options(make_block: Callable[..., Block]) -> None:
    engine = WorkflowLayoutEngine(LayoutOptions(alignment="start", padding={"x": 10, "y": 20}))

    result = engine.apply_auto_layout({"a": make_block("a")}, [])

    assert result.blocks["a"].position == Position(x=10, y=20)


def test_adjust_entry_point_places_and_shifts(
    make_block: Callable[..., Block], make_edges: Callable[..., list[Edge]]
) -> None:
    blocks = {
        "a": make_block("a", x=150, y=250),
        "c": make_block("c", x=700, y=250),
        "n": make_block("n"),
    }
    edges = make_edges(("a", "c"), ("a", "n"), ("n", "c"))

    result = adjust_for_new_block(blocks, edges, "n")

    assert result.success is True
    assert result.blocks["a"].position == Position(x=150, y=250)
    assert result.blocks["n"].position == Position(x=700, y=250)
    assert result.blocks["c"].position.x == 1100
    assert blocks["c"].position.x == 700


def test_adjust_compacts_unless_positions_preserved(
    make_block: Callable[..., Block], make_edges: Callable[..., list[Edge]]
) -> None:
    blocks = {
        "a": make_block("a", x=150, y=250),
        "far": make_block("far", x=5000, y=250),
        "n": make_block("n"),
    }
    edges = make_edges(("a", "n"))

    compacted = adjust_for_new_block(blocks, edges, "n")
    preserved = adjust_for_new_block(
        blocks, edges, "n", AdjustmentOptions(preserve_positions=True)
    )

    assert compacted.blocks["far"].position.x == 700 + 350 + 500
    assert preserved.blocks["far"].position.x == 5000


def test_adjust_for_missing_block_is_not_an_error(make_block: Callable[..., Block]) -> None:
    blocks = {"a": make_block("a", x=150, y=250)}

    result = adjust_for_new_block(blocks, [], "ghost", AdjustmentOptions(preserve_positions=True))

    assert result.success is True
    assert result.blocks["a"].position == Position(x=150, y=250)


def test_adjust_without_edges_keeps_position(make_block: Callable[..., Block]) -> None:
    blocks = {"n": make_block("n", x=321, y=123)}

    result = adjust_for_new_block(blocks, [], "n")

    assert result.blocks["n"].position == Position(x=321, y=123)
