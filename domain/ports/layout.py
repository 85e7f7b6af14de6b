from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from domain.models import (
    AdjustmentOptions,
    Block,
    Edge,
    LayoutOptions,
    LayoutResult,
    Loop,
    Parallel,
)


class LayoutEngine(Protocol):
    def apply_auto_layout(
        self,
        blocks: Mapping[str, Block],
        edges: Sequence[Edge],
        loops: Mapping[str, Loop] | None = None,
        parallels: Mapping[str, Parallel] | None = None,
        options: LayoutOptions | None = None,
    ) -> LayoutResult:
        ...

    def adjust_for_new_block(
        self,
        blocks: Mapping[str, Block],
        edges: Sequence[Edge],
        new_block_id: str,
        options: AdjustmentOptions | None = None,
    ) -> LayoutResult:
        ...
