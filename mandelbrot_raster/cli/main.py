"""
Command-line interface for Mandelbrot rendering.

This module provides the CLI that loads configuration, drives a render and
hands the finished raster to the image exporter.
"""

import click
import sys
from dataclasses import replace
from pathlib import Path
import logging
import time

from .. import __version__
from ..api import FractalRenderer, RenderConfig
from ..io.config import ConfigManager
from ..rendering.coloring import CHANNEL_DEPTHS, list_palettes as available_palettes
from ..acceleration.parallel import BACKENDS

logger = logging.getLogger(__name__)


def _fail(ctx, error: Exception):
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


def _parse_bounds(value: str):
    try:
        bounds = tuple(float(x.strip()) for x in value.split(','))
    except ValueError:
        raise click.BadParameter("Invalid bounds format. Use 'xmin,xmax,ymin,ymax'")
    if len(bounds) != 4:
        raise click.BadParameter("Invalid bounds format. Use 'xmin,xmax,ymin,ymax'")
    return bounds


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--config', type=click.Path(exists=True), help='Configuration file path (JSON or YAML)')
@click.option('--preset', help='Configuration preset to use')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, config, preset, verbose, quiet):
    """
    Mandelbrot Raster - escape-time Mandelbrot set renderer.

    Renders a region of the complex plane in parallel with discrete or
    smoothed iteration counts and linear or cyclic hue palettes.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Mandelbrot Raster v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['preset'] = preset
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
@click.argument('output', type=click.Path(), required=False)
@click.option('--width', '-w', type=int, help='Image width (height follows the aspect ratio)')
@click.option('--height', type=int, help='Explicit image height')
@click.option('--bounds', type=str, help='Complex plane bounds: "xmin,xmax,ymin,ymax"')
@click.option('--max-iter', 'max_iterations', type=int, help='Maximum iterations')
@click.option('--smooth/--discrete', default=None, help='Continuous or discrete iteration values')
@click.option('--palette', type=click.Choice(available_palettes()), help='Color palette')
@click.option('--base-color', help='Gradient start color ("#rrggbb" or "r,g,b")')
@click.option('--target-color', help='Gradient end color ("#rrggbb" or "r,g,b")')
@click.option('--inside-color', help='Color for points inside the set')
@click.option('--cycles', 'hue_cycles', type=float, help='Hue palette repetitions')
@click.option('--exponent', 'color_exponent', type=float, help='Exponent applied to the color ratio')
@click.option('--depth', 'channel_depth', type=click.Choice(list(CHANNEL_DEPTHS)), help='Channel depth')
@click.option('--periodicity-interval', type=int, help='Iterations between orbit checks (0 disables)')
@click.option('--periodicity-epsilon', type=float, help='Orbit repeat tolerance (squared distance)')
@click.option('--workers', 'num_workers', type=int, help='Number of parallel workers')
@click.option('--backend', type=click.Choice(BACKENDS), help='Worker pool type')
@click.option('--no-table', is_flag=True, help='Color every pixel directly instead of via a palette table')
@click.option('--no-progress', is_flag=True, help='Disable progress output')
@click.pass_context
def render(ctx, output, bounds, no_table, no_progress, **kwargs):
    """
    Render the Mandelbrot set to an image.

    OUTPUT: Output image file path (.png, .tif, .jpg or .npy)
    """
    try:
        overrides = dict(kwargs)
        overrides['output'] = output
        if bounds:
            overrides['bounds'] = _parse_bounds(bounds)
        if no_table:
            overrides['use_palette_table'] = False

        config_file = ctx.obj.get('config_file')
        preset = ctx.obj.get('preset')
        if config_file:
            config = RenderConfig.from_file(config_file, preset, **overrides)
        elif preset:
            config = RenderConfig.from_dict(ConfigManager().get_preset(preset)).with_overrides(**overrides)
        else:
            config = RenderConfig().with_overrides(**overrides)

        if no_progress or ctx.obj.get('quiet'):
            config = replace(config, progress_interval=None)

        renderer = FractalRenderer(config)

        click.echo(f"Rendering {renderer.width}x{renderer.height}, "
                   f"max_iter={config.max_iterations}...")
        start_time = time.time()

        renderer.render(Path(config.output))

        render_time = time.time() - start_time
        click.echo(f"Render complete: {render_time:.2f}s")
        click.echo(f"Saved: {config.output}")

    except click.BadParameter:
        raise
    except Exception as e:
        _fail(ctx, e)


@main.command()
def list_palettes():
    """List available color palettes and channel depths."""
    click.echo("Available color palettes:")
    for palette in available_palettes():
        click.echo(f"  {palette}")

    click.echo("\nAvailable channel depths:")
    for depth in CHANNEL_DEPTHS:
        click.echo(f"  {depth}")


@main.command()
@click.pass_context
def list_presets(ctx):
    """List available configuration presets."""
    manager = ConfigManager()
    click.echo("Available presets:")
    for name, settings in manager.presets.items():
        click.echo(f"  {name}")
        if ctx.obj.get('verbose'):
            for key, value in settings.items():
                click.echo(f"    {key}: {value}")


@main.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.pass_context
def validate_config(ctx, config_file):
    """
    Validate a configuration file.

    CONFIG_FILE: Configuration file to validate
    """
    try:
        config = RenderConfig.from_file(config_file, ctx.obj.get('preset'))
        config.validate()
        click.echo(f"Configuration valid: {config_file}")
        click.echo(f"  Resolution: {config.width}x{config.resolved_height}")
        click.echo(f"  Bounds: {config.bounds}")
        click.echo(f"  Max iterations: {config.max_iterations}")
    except Exception as e:
        _fail(ctx, e)


if __name__ == '__main__':
    main()
