from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from adapters.filesystem.json_utils import load_workflow_payload, write_state_atomic
from domain.models import WorkflowState
from domain.ports.repositories import WorkflowStateRepository


class FileSystemWorkflowStateRepository(WorkflowStateRepository):
    def load(self, path: Path) -> WorkflowState:
        return WorkflowState.model_validate(load_workflow_payload(path))

    def load_all_with_paths(self, directory: Path) -> List[tuple[Path, WorkflowState]]:
        return [(path, self.load(path)) for path in sorted(self._iter_paths(directory))]

    def save(self, state: WorkflowState, path: Path) -> None:
        write_state_atomic(path, state.to_state_dict())

    def _iter_paths(self, directory: Path) -> Iterable[Path]:
        yield from directory.glob("*.json")
