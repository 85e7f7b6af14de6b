from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from domain.models import WorkflowState


class WorkflowStateRepository(Protocol):
    def load(self, path: Path) -> WorkflowState: ...

    def load_all_with_paths(self, directory: Path) -> Sequence[tuple[Path, WorkflowState]]: ...

    def save(self, state: WorkflowState, path: Path) -> None: ...
