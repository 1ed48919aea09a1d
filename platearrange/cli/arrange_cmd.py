"""CLI commands for arranging scenes."""

import json
import math
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

console = Console()


def _bed_outline(bed_size: Optional[Tuple[float, float]], bed_circle: Optional[float], bed: Optional[str]):
    from platearrange.nesting.bed_shape import circle_outline, rectangle_outline
    from platearrange.utils import parse_points

    if bed:
        return parse_points(bed)
    if bed_circle:
        return circle_outline(bed_circle, center=(bed_circle, bed_circle))
    width, depth = bed_size or (256.0, 256.0)
    return rectangle_outline(width, depth)


@click.command()
@click.argument("scene", type=click.Path(exists=True))
@click.option("--bed-size", type=(float, float), default=None, help="Rectangular bed width and depth (mm)")
@click.option("--bed-circle", type=float, default=None, help="Round bed radius (mm)")
@click.option("--bed", default=None, help="Bed outline as 'x,y;x,y;...' (mm)")
@click.option("--distance", "-d", type=float, default=None, help="Minimum distance between objects (mm)")
@click.option("--first-bin-only", is_flag=True, help="Only move objects that fit on the bed")
@click.option("--output", "-o", type=click.Path(), default=None, help="Write the arranged scene here")
@click.option("--svg-dir", type=click.Path(), default=None, help="Write per-step SVG snapshots here")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def arrange(
    scene: str,
    bed_size: Optional[Tuple[float, float]],
    bed_circle: Optional[float],
    bed: Optional[str],
    distance: Optional[float],
    first_bin_only: bool,
    output: Optional[str],
    svg_dir: Optional[str],
    as_json: bool,
) -> None:
    """Arrange the objects of a scene file on the bed.

    Examples:
        platearrange arrange scene.json
        platearrange arrange scene.json --bed-size 250 210 -d 6
        platearrange arrange scene.json --bed-circle 100 -o arranged.json
    """
    from platearrange.config import get_settings
    from platearrange.model import Model
    from platearrange.nesting.job import ArrangeJob
    from platearrange.utils import format_duration

    try:
        outline = _bed_outline(bed_size, bed_circle, bed)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    model = Model.load(scene)

    update = {}
    if distance is not None:
        update["min_object_distance"] = distance
    if first_bin_only:
        update["first_bin_only"] = True
    if svg_dir:
        update["debug_svg_dir"] = Path(svg_dir)
    settings = get_settings().model_copy(update=update)

    total = model.instance_count

    if as_json:
        result = ArrangeJob(model, outline, settings=settings).run()
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            task = progress.add_task("Arranging", total=total)

            def on_status(count: int, message: str) -> None:
                progress.update(task, completed=count, description=message)

            result = ArrangeJob(model, outline, settings=settings, on_status=on_status).run()

    if output and result.error_message is None:
        model.save(output)

    if as_json:
        click.echo(json.dumps({
            "result": result.to_dict(),
            "scene": model.to_dict() if result.error_message is None else None,
        }, indent=2))
        return

    if result.error_message:
        console.print(f"[red]{result.error_message}[/red]")
        return

    table = Table(title=f"Arrangement - {Path(scene).name}")
    table.add_column("Object", style="cyan")
    table.add_column("#", justify="right")
    table.add_column("X (mm)", justify="right")
    table.add_column("Y (mm)", justify="right")
    table.add_column("Rotation", justify="right")

    for obj in model.objects:
        for i, inst in enumerate(obj.instances):
            table.add_row(
                obj.name,
                str(i + 1),
                f"{inst.offset[0]:.2f}",
                f"{inst.offset[1]:.2f}",
                f"{math.degrees(inst.rotation[2]):.1f}°",
            )

    console.print(table)

    if result.success:
        console.print(f"[green]All {result.num_items} objects fit on the bed[/green]")
    elif result.cancelled:
        console.print("[yellow]Arrangement canceled[/yellow]")
    else:
        console.print(f"[yellow]Objects did not fit on one bed ({result.num_bins} beds used)[/yellow]")

    console.print(f"Time: {format_duration(result.processing_time)}")
    if output:
        console.print(f"[green]Saved to: {output}[/green]")


@click.command("classify-bed")
@click.argument("points")
def classify_bed(points: str) -> None:
    """Classify a bed outline given as 'x,y;x,y;...' in mm.

    Examples:
        platearrange classify-bed "0,0;250,0;250,210;0,210"
    """
    from platearrange.nesting.bed_shape import BedShapeType, classify_bed_shape
    from platearrange.nesting.geometry import scale_, unscale
    from platearrange.utils import parse_points

    try:
        outline = parse_points(points)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    if not outline:
        console.print("[red]Error: No points given[/red]")
        return

    hint = classify_bed_shape([(scale_(x), scale_(y)) for x, y in outline])

    console.print(f"Bed shape: [bold]{hint.type.value}[/bold]")
    if hint.type == BedShapeType.BOX:
        b = hint.box
        console.print(f"  Box: ({unscale(b.minx):.2f}, {unscale(b.miny):.2f}) - "
                      f"({unscale(b.maxx):.2f}, {unscale(b.maxy):.2f})")
    elif hint.type == BedShapeType.CIRCLE:
        c = hint.circle
        console.print(f"  Center: ({unscale(c.center[0]):.2f}, {unscale(c.center[1]):.2f})")
        console.print(f"  Radius: {unscale(c.radius):.2f}")
    else:
        console.print(f"  Vertices: {len(hint.polygon)}")
