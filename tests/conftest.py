from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from domain.models import Block, Edge


def _clear_wfl_env() -> None:
    for key in list(os.environ):
        if key.startswith("WFL_"):
            os.environ.pop(key, None)


_clear_wfl_env()


@pytest.fixture(autouse=True)
def clear_wfl_env() -> Generator[None, None, None]:
    _clear_wfl_env()
    yield
    _clear_wfl_env()


@pytest.fixture
def make_block() -> Callable[..., Block]:
    def _factory(
        block_id: str,
        block_type: str = "agent",
        x: float = 0.0,
        y: float = 0.0,
        parent_id: str | None = None,
        **overrides: object,
    ) -> Block:
        payload: dict[str, object] = {
            "id": block_id,
            "type": block_type,
            "name": block_id,
            "position": {"x": x, "y": y},
            "data": {"parentId": parent_id} if parent_id else {},
        }
        payload.update(overrides)
        return Block.model_validate(payload)

    return _factory


@pytest.fixture
def make_edges() -> Callable[..., list[Edge]]:
    def _factory(*pairs: tuple[str, str]) -> list[Edge]:
        return [
            Edge(id=f"{source}->{target}", source=source, target=target)
            for source, target in pairs
        ]

    return _factory
