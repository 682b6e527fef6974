"""Command-line interface for placement3d.

Usage:
    placement3d decompose matrix.json [--safe]
    placement3d compose parent.json child.json
    placement3d invert transform.json
    placement3d matrix transform.json [--inverse]
    placement3d init-config [-o settings.json]

Transforms are JSON objects with ``position``, ``rotation`` (x, y, z, w)
and ``scale`` lists. Matrices are 4x4 nested JSON lists.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
import numpy as np
from numpy.typing import NDArray
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .core.config import TransformSettings, get_settings, set_settings
from .transform import InvalidTransformError, NonUniformTransform

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False)],
    )


def _load_transform(path: str) -> NonUniformTransform:
    return NonUniformTransform.model_validate_json(Path(path).read_text())


def _load_matrix(path: str) -> NDArray[np.float64]:
    with open(path) as f:
        return np.asarray(json.load(f), dtype=np.float64)


def _print_transform(transform: NonUniformTransform, title: str) -> None:
    precision = get_settings().display_precision

    def fmt(values: tuple[float, ...]) -> str:
        return ", ".join(f"{v:.{precision}f}" for v in values)

    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Position", fmt(transform.position))
    table.add_row("Rotation (x, y, z, w)", fmt(transform.rotation))
    table.add_row("Scale", fmt(transform.scale))
    console.print(table)


def _print_matrix(matrix: NDArray[np.float64], title: str) -> None:
    precision = get_settings().display_precision
    table = Table(title=title, show_header=False)
    for _ in range(4):
        table.add_column(justify="right")
    for row in matrix:
        table.add_row(*(f"{v:.{precision}f}" for v in row))
    console.print(table)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    default=None,
    help="Settings JSON file",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """placement3d - Non-uniform affine transform toolkit."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)
    if config:
        set_settings(TransformSettings.from_file(config))
        logger.debug(f"Loaded settings from {config}")


@main.command()
@click.argument("matrix_path", type=click.Path(exists=True))
@click.option(
    "--safe",
    is_flag=True,
    help="Reject matrices with non-uniform scale or shear",
)
def decompose(matrix_path: str, safe: bool) -> None:
    """Decompose a 4x4 matrix into position, rotation and scale.

    MATRIX_PATH: JSON file holding a 4x4 nested list
    """
    try:
        matrix = _load_matrix(matrix_path)
        if safe:
            transform = NonUniformTransform.from_matrix_safe(matrix)
        else:
            transform = NonUniformTransform.from_matrix(matrix)
    except InvalidTransformError as e:
        console.print(f"[red]Invalid transform ({e.reason}): {escape(str(e))}[/red]")
        raise click.Abort()
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise click.Abort()

    _print_transform(transform, "Decomposed Transform")
    console.print(transform.model_dump_json(), soft_wrap=True)


@main.command()
@click.argument("parent_path", type=click.Path(exists=True))
@click.argument("child_path", type=click.Path(exists=True))
def compose(parent_path: str, child_path: str) -> None:
    """Express CHILD_PATH's transform in PARENT_PATH's parent space."""
    try:
        parent = _load_transform(parent_path)
        child = _load_transform(child_path)
        result = parent @ child
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise click.Abort()

    _print_transform(result, "Composed Transform")
    console.print(result.model_dump_json(), soft_wrap=True)


@main.command()
@click.argument("transform_path", type=click.Path(exists=True))
def invert(transform_path: str) -> None:
    """Print the inverse of a transform and its matrix."""
    try:
        inverse = _load_transform(transform_path).inverse()
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise click.Abort()

    _print_transform(inverse, "Inverse Transform")
    _print_matrix(inverse.to_matrix(), "Inverse Matrix")
    console.print(inverse.model_dump_json(), soft_wrap=True)


@main.command()
@click.argument("transform_path", type=click.Path(exists=True))
@click.option("--inverse", is_flag=True, help="Print the inverse matrix instead")
def matrix(transform_path: str, inverse: bool) -> None:
    """Print the 4x4 matrix of a transform."""
    try:
        transform = _load_transform(transform_path)
        result = transform.to_inverse_matrix() if inverse else transform.to_matrix()
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise click.Abort()

    _print_matrix(result, "Inverse Matrix" if inverse else "Matrix")


@main.command("init-config")
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="placement3d_settings.json",
    help="Output path for settings file",
)
def init_config(output: str) -> None:
    """Generate a default settings file."""
    try:
        TransformSettings.default().to_file(output)
        console.print(f"[green]Created settings file: {output}[/green]")
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise click.Abort()


if __name__ == "__main__":
    main()
