"""Command-line entry points for spim-merge."""

import logging
from pathlib import Path

import typer

from spim_merge.errors import MergeError
from spim_merge.merge import read_merge_config, run_merge
from spim_merge.types.dataset import AttributeKind

app = typer.Typer(help="Merge multi-view dataset descriptors into one.")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _execute(
    inputs: list[Path],
    output: Path,
    merge_kinds: set[AttributeKind],
    verbose: bool,
) -> None:
    _configure_logging(verbose)
    typer.echo(f"Merging {len(inputs)} dataset(s) -> {output}")
    try:
        merged = run_merge(inputs, output, merge_kinds, progress=True)
    except (MergeError, ValueError) as exc:
        typer.secho(f"Merge failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.secho(
        f"Wrote {len(merged.view_setups)} view-setup(s) over "
        f"{len(merged.time_points)} time point(s) "
        f"({len(merged.missing_views)} missing view(s)) to {output}",
        fg=typer.colors.GREEN,
    )


@app.callback()
def main() -> None:
    """spim-merge utility commands."""
    return None


@app.command()
def merge(
    inputs: list[Path] = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Dataset descriptors to merge, in order.",
    ),
    output: Path = typer.Option(
        ...,
        "-o",
        "--output",
        dir_okay=False,
        help="Path of the merged dataset descriptor.",
    ),
    merge_channels: bool = typer.Option(
        False, "--merge-channels", help="Treat equal channel ids as the same channel."
    ),
    merge_tiles: bool = typer.Option(
        False, "--merge-tiles", help="Treat equal tile ids as the same tile."
    ),
    merge_angles: bool = typer.Option(
        False, "--merge-angles", help="Treat equal angle ids as the same angle."
    ),
    merge_illuminations: bool = typer.Option(
        False,
        "--merge-illuminations",
        help="Treat equal illumination ids as the same illumination.",
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Log attribute id ranges and per-view details."
    ),
) -> None:
    """Merge dataset descriptors given on the command line."""
    flags = {
        AttributeKind.CHANNEL: merge_channels,
        AttributeKind.TILE: merge_tiles,
        AttributeKind.ANGLE: merge_angles,
        AttributeKind.ILLUMINATION: merge_illuminations,
    }
    merge_kinds = {kind for kind, enabled in flags.items() if enabled}
    _execute(list(inputs), output, merge_kinds, verbose)


@app.command()
def run(
    config_path: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Merge configuration YAML.",
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
) -> None:
    """Merge the datasets listed in a configuration YAML."""
    try:
        config = read_merge_config(config_path)
    except ValueError as exc:
        typer.secho(f"Invalid merge config: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _execute(config.inputs, config.output, set(config.merge_kinds), verbose or config.verbose)


if __name__ == "__main__":
    app()
