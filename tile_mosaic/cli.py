"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from tile_mosaic.config import MosaicConfig, Size, StrategyKind
from tile_mosaic.errors import ValidationFailure
from tile_mosaic.image_io import (
    compute_target_size,
    decode,
    encode,
    make_comparison_grid,
    resize_image,
)
from tile_mosaic.mosaic import MosaicResult
from tile_mosaic.service import MosaicService

app = typer.Typer(
    name="tile-mosaic",
    help="Rebuild an image as a photo-mosaic of smaller tile images.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _collect_images(folder: Path, extensions: frozenset[str]) -> list[Path]:
    if not folder.exists():
        return []
    return sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in extensions
    )


def _quality_metric(target: np.ndarray, mosaic: np.ndarray) -> float:
    t = target[..., :3].reshape(-1, 3).astype(np.float64)
    m = mosaic[..., :3].reshape(-1, 3).astype(np.float64)
    return float(np.mean(np.sqrt(np.sum((t - m) ** 2, axis=1))))


def _parse_strategy(value: str) -> StrategyKind:
    try:
        return StrategyKind(value.lower().replace("-", "_"))
    except ValueError:
        available = ", ".join(k.value for k in StrategyKind)
        raise typer.BadParameter(f"'{value}' (choose from {available})") from None


def _register_tiles(service: MosaicService, tiles_dir: Path) -> int:
    for path in _collect_images(tiles_dir, _DEFAULTS.SUPPORTED_EXTENSIONS):
        service.add_tile_image(str(path), path.read_bytes)
    return len(service.tiles)


def _output_size(
    master_size: Size, width: int | None, height: int | None, max_side: int,
) -> Size:
    if width and height:
        return Size(width, height)
    return compute_target_size(master_size.width, master_size.height, max_side)


def _generate(
    service: MosaicService,
    output_size: Size,
    tile_size: Size,
    strategy: StrategyKind,
    seed: int | None,
    hue_blend: float,
    workers: int | None,
) -> MosaicResult | ValidationFailure:
    with Progress(
        TextColumn("[cyan]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task("Generating", total=100)
        return service.generate_mosaic(
            output_size, tile_size, strategy,
            lambda pct: bar.update(task, completed=pct),
            seed=seed, hue_blend=hue_blend, max_workers=workers,
        )


def _report_skipped(result: MosaicResult | ValidationFailure) -> None:
    for failure in result.skipped:
        console.print(f"  [yellow]skipped[/yellow] {failure.identity}  [dim]{failure.reason}[/dim]")


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()


# -- batch command -----------------------------------------------------

@app.command()
def batch(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input", "-i", help="Folder with master images",
    ),
    tiles_dir: Path = typer.Option(
        _DEFAULTS.tiles_dir, "--tiles", "-t", help="Folder with tile images",
    ),
    output_dir: Path = typer.Option(
        _DEFAULTS.output_dir, "--output", "-o", help="Results folder",
    ),
    max_side: int = typer.Option(
        _DEFAULTS.max_side, "--max-side", "-m",
        help="Longest side of the mosaic (aspect ratio preserved)",
    ),
    tile_width: int = typer.Option(_DEFAULTS.tile_size.width, "--tile-width"),
    tile_height: int = typer.Option(_DEFAULTS.tile_size.height, "--tile-height"),
    strategy: str = typer.Option(
        _DEFAULTS.strategy.value, "--strategy", "-s",
        help="'classic', 'random', 'adjust_hue' or 'plain_color'",
    ),
    seed: int | None = typer.Option(
        _DEFAULTS.seed, "--seed", help="Random seed for the random strategy",
    ),
    hue_blend: float = typer.Option(
        _DEFAULTS.hue_blend, "--blend", help="AdjustHue strength (0-1)",
    ),
    workers: int | None = typer.Option(
        _DEFAULTS.max_workers, "--workers", "-w", help="Thread-pool size",
    ),
    comparison: bool = typer.Option(
        _DEFAULTS.save_comparison, "--comparison/--no-comparison",
        help="Save a master | mosaic comparison",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Turn every image in INPUT_DIR into a mosaic built from TILES_DIR."""
    _setup_logging(verbose)
    logger = logging.getLogger("tile_mosaic")

    kind = _parse_strategy(strategy)
    cfg = MosaicConfig(
        tile_size=Size(tile_width, tile_height),
        strategy=kind,
        seed=seed,
        hue_blend=hue_blend,
        max_workers=workers,
        max_side=max_side,
        save_comparison=comparison,
        input_dir=input_dir,
        tiles_dir=tiles_dir,
        output_dir=output_dir,
    )

    input_dir.mkdir(exist_ok=True)
    output_dir.mkdir(exist_ok=True)

    images = _collect_images(input_dir, cfg.SUPPORTED_EXTENSIONS)
    if not images:
        console.print(f"\n[yellow]No images found in {input_dir}/[/yellow]")
        console.print("Place .jpg / .png / ... files there and re-run.\n")
        raise typer.Exit(0)

    service = MosaicService()
    n_tiles = _register_tiles(service, tiles_dir) if kind.needs_tiles else 0

    console.print(Panel.fit(
        f"[bold]TILE MOSAIC GENERATOR[/bold]\n"
        f"Max side: {cfg.max_side}  |  Tile: {tile_width}x{tile_height}\n"
        f"Strategy: {kind.value}  |  Tiles: {n_tiles}\n"
        f"Images: {len(images)}",
        border_style="cyan",
    ))

    failed = 0
    for idx, img_path in enumerate(images, 1):
        stem = img_path.stem
        console.rule(f"[bold cyan][{idx}/{len(images)}] {img_path.name}[/bold cyan]")
        t_total = time.perf_counter()

        data = img_path.read_bytes()
        master_size = service.add_master_image(data)
        out_size = _output_size(master_size, None, None, cfg.max_side)
        logger.info("Master: %dx%d -> %dx%d", *master_size, *out_size)

        result = _generate(
            service, out_size, cfg.tile_size, kind, seed, hue_blend, workers,
        )
        _report_skipped(result)
        if isinstance(result, ValidationFailure):
            console.print(f"  [red]✗[/red] {result.reason}")
            failed += 1
            continue

        mosaic_path = output_dir / f"{stem}_mosaic.{cfg.output_format}"
        mosaic_path.write_bytes(encode(result.image, cfg.output_format))

        master = decode(data)
        if cfg.save_comparison:
            comp_path = output_dir / f"{stem}_comparison.{cfg.output_format}"
            make_comparison_grid(master, result.image, comp_path)

        err = _quality_metric(resize_image(master, out_size), result.image)
        elapsed = time.perf_counter() - t_total

        console.print(
            f"  [green]✓[/green] {mosaic_path.name}  "
            f"[dim]{out_size.width}x{out_size.height}  error={err:.1f}"
            f"  time={elapsed:.1f}s[/dim]"
        )

    console.print(Panel.fit(
        f"[bold green]ALL DONE[/bold green] - results in [bold]{output_dir}/[/bold]",
        border_style="green",
    ))
    if failed:
        raise typer.Exit(1)


# -- single-image command ----------------------------------------------

@app.command()
def single(
    master: Path = typer.Argument(..., help="Path to the master image"),
    tiles_dir: Path = typer.Option(_DEFAULTS.tiles_dir, "--tiles", "-t"),
    output: Path = typer.Option(Path("output/mosaic.png"), "--output", "-o"),
    width: int | None = typer.Option(None, "--width", help="Output width"),
    height: int | None = typer.Option(None, "--height", help="Output height"),
    max_side: int = typer.Option(_DEFAULTS.max_side, "--max-side", "-m"),
    tile_width: int = typer.Option(_DEFAULTS.tile_size.width, "--tile-width"),
    tile_height: int = typer.Option(_DEFAULTS.tile_size.height, "--tile-height"),
    strategy: str = typer.Option(_DEFAULTS.strategy.value, "--strategy", "-s"),
    seed: int | None = typer.Option(_DEFAULTS.seed, "--seed"),
    hue_blend: float = typer.Option(_DEFAULTS.hue_blend, "--blend"),
    workers: int | None = typer.Option(_DEFAULTS.max_workers, "--workers", "-w"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Process a single master image."""
    _setup_logging(verbose)

    kind = _parse_strategy(strategy)
    output.parent.mkdir(parents=True, exist_ok=True)

    service = MosaicService()
    master_size = service.add_master_image(master.read_bytes())
    if kind.needs_tiles:
        _register_tiles(service, tiles_dir)

    out_size = _output_size(master_size, width, height, max_side)
    result = _generate(
        service, out_size, Size(tile_width, tile_height), kind,
        seed, hue_blend, workers,
    )
    _report_skipped(result)
    if isinstance(result, ValidationFailure):
        console.print(f"[red]✗[/red] {result.reason}")
        raise typer.Exit(1)

    output.write_bytes(encode(result.image, output.suffix or ".png"))
    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{out_size.width}x{out_size.height}  "
        f"skipped={len(result.skipped)}[/dim]"
    )


if __name__ == "__main__":
    app()
