"""Main CLI entry point for platearrange."""

import click
from rich.console import Console

from platearrange import __version__
from platearrange.utils import setup_logging

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="platearrange")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """platearrange - automatic build plate arrangement.

    Packs the footprints of 3D objects onto the print bed without overlap.
    """
    from platearrange.config import get_settings

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging("DEBUG" if verbose else get_settings().log_level)


# Import and register commands
from platearrange.cli.arrange_cmd import arrange, classify_bed

cli.add_command(arrange)
cli.add_command(classify_bed)


@cli.command()
def status() -> None:
    """Show configuration."""
    from platearrange.config import get_settings

    settings = get_settings()

    console.print("[bold]platearrange Status[/bold]")
    console.print(f"Version: {__version__}")
    console.print()
    console.print("[bold]Configuration:[/bold]")
    console.print(f"  Min Object Distance: {settings.min_object_distance}mm")
    console.print(f"  Big Item Threshold: {settings.big_item_threshold:.0%}")
    console.print(f"  Accuracy: {settings.accuracy}")
    console.print(f"  Parallel: {settings.parallel}")
    console.print(f"  Rotations: {settings.rotations}")
    console.print(f"  SVG Snapshots: {settings.debug_svg_dir or 'off'}")


if __name__ == "__main__":
    cli()
