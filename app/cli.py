from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from adapters.filesystem.workflow_repository import FileSystemWorkflowStateRepository
from adapters.layout.auto_layout import WorkflowLayoutEngine
from adapters.layout.checks import check_layout
from app.config import AppSettings, LayoutSettings, load_settings
from domain.models import AdjustmentOptions, LayoutOptions, WorkflowState

app = typer.Typer(no_args_is_help=True)
console = Console()


def _configure(config_path: Path | None) -> AppSettings:
    try:
        settings = load_settings(config_path)
    except (FileNotFoundError, ValidationError) as exc:
        console.print(f"[red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc
    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    return settings


def _load_state(repository: FileSystemWorkflowStateRepository, path: Path) -> WorkflowState:
    if not path.exists():
        console.print(f"[red]File not found:[/] {path}")
        raise typer.Exit(code=1)
    try:
        return repository.load(path)
    except (ValidationError, ValueError) as exc:
        console.print(f"[red]Invalid workflow state:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _layout_options(
    settings: AppSettings,
    alignment: Optional[str],
    horizontal_spacing: Optional[float],
    vertical_spacing: Optional[float],
) -> LayoutOptions:
    overrides: dict[str, object] = {}
    if alignment is not None:
        overrides["alignment"] = alignment
    if horizontal_spacing is not None:
        overrides["horizontal_spacing"] = horizontal_spacing
    if vertical_spacing is not None:
        overrides["vertical_spacing"] = vertical_spacing
    try:
        merged = LayoutSettings.model_validate({**settings.layout.model_dump(), **overrides})
        return merged.to_layout_options()
    except ValidationError as exc:
        console.print(f"[red]Invalid layout options:[/] {exc}")
        raise typer.Exit(code=1) from exc


@app.command("layout")
def layout(
    input_path: Path = typer.Argument(..., help="Workflow state JSON file."),
    output_path: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Where to write the result (defaults to the input file).",
    ),
    alignment: Optional[str] = typer.Option(None, help="Vertical alignment: start, center or end."),
    horizontal_spacing: Optional[float] = typer.Option(None, help="Distance between layers."),
    vertical_spacing: Optional[float] = typer.Option(None, help="Gap between stacked blocks."),
    config: Optional[Path] = typer.Option(None, help="YAML settings file."),
) -> None:
    settings = _configure(config)
    repository = FileSystemWorkflowStateRepository()
    state = _load_state(repository, input_path)
    options = _layout_options(settings, alignment, horizontal_spacing, vertical_spacing)

    engine = WorkflowLayoutEngine(options, max_overlap_passes=settings.layout.max_overlap_passes)
    result = engine.apply_auto_layout(state.blocks, state.edges, state.loops, state.parallels)
    if not result.success:
        console.print(f"[red]Auto layout failed:[/] {result.error}")
        raise typer.Exit(code=1)

    target_path = output_path or input_path
    repository.save(state.model_copy(update={"blocks": result.blocks}), target_path)
    console.print(f"[green]Laid out {len(result.blocks)} blocks:[/] {target_path}")


@app.command("adjust")
def adjust(
    input_path: Path = typer.Argument(..., help="Workflow state JSON file."),
    block_id: str = typer.Argument(..., help="Id of the newly added block."),
    output_path: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Where to write the result (defaults to the input file).",
    ),
    preserve_positions: bool = typer.Option(
        False, "--preserve-positions", help="Skip horizontal compaction."
    ),
    shift_downstream: bool = typer.Option(
        False, "--shift-downstream", help="Also move blocks downstream of shifted ones."
    ),
    config: Optional[Path] = typer.Option(None, help="YAML settings file."),
) -> None:
    settings = _configure(config)
    repository = FileSystemWorkflowStateRepository()
    state = _load_state(repository, input_path)
    if block_id not in state.blocks:
        console.print(f"[red]Block not found:[/] {block_id}")
        raise typer.Exit(code=1)

    options = AdjustmentOptions.model_validate(
        {
            **settings.layout.to_layout_options().model_dump(exclude_unset=True),
            "preserve_positions": preserve_positions,
            "shift_downstream": shift_downstream,
        }
    )
    result = WorkflowLayoutEngine().adjust_for_new_block(
        state.blocks, state.edges, block_id, options
    )
    if not result.success:
        console.print(f"[red]Adjustment failed:[/] {result.error}")
        raise typer.Exit(code=1)

    target_path = output_path or input_path
    repository.save(state.model_copy(update={"blocks": result.blocks}), target_path)
    console.print(f"[green]Adjusted layout for[/] {block_id}: {target_path}")


@app.command("check")
def check(
    input_path: Path = typer.Argument(..., help="Workflow state JSON file."),
) -> None:
    repository = FileSystemWorkflowStateRepository()
    state = _load_state(repository, input_path)
    report = check_layout(state.blocks, state.edges)
    if report.ok:
        console.print(f"[green]Layout OK:[/] {input_path}")
        return

    table = Table(title=f"Layout problems in {input_path.name}")
    table.add_column("Kind")
    table.add_column("Blocks")
    for first, second in report.overlaps:
        table.add_row("overlap", f"{first}, {second}")
    for source, target in report.layer_violations:
        table.add_row("edge points left", f"{source} -> {target}")
    for fit in report.undersized_containers:
        table.add_row(
            "undersized container",
            f"{fit.container_id} ({fit.width:.0f}x{fit.height:.0f} < "
            f"{fit.required_width:.0f}x{fit.required_height:.0f})",
        )
    console.print(table)
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
