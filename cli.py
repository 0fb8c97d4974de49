#!/usr/bin/env python3
"""
Lightsift Command Line Interface

Triage and edit folders of photos from the terminal: scan, analyze,
auto-enhance, render previews, generate thumbnails and export.
"""

import json
import sys
import click
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from tqdm import tqdm

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from lightsift.config import get_config_value, load_config
from lightsift.core.session import PhotoSession
from lightsift.errors import LightsiftError
from lightsift.io.export import ExportOptions
from lightsift.io.filesystem import ImageFile, scan_directory
from lightsift.io.raw import is_supported_extension
from lightsift.models import AdjustmentParameters
from lightsift.utils.logging import ProcessingStats, setup_console_logging

logger = logging.getLogger(__name__)


def _collect_files(paths: Tuple[str, ...]) -> List[ImageFile]:
    """Expand directories (non-recursive) and keep supported files"""
    files = []
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_dir():
            files.extend(scan_directory(path))
        elif is_supported_extension(path.suffix):
            files.append(ImageFile.from_path(path))
        else:
            logger.warning(f"Skipping unsupported file: {path}")
    return files


def _open_session(ctx, paths: Tuple[str, ...]) -> Tuple[PhotoSession, List[ImageFile]]:
    session = PhotoSession(config=ctx.obj['config'])
    files = _collect_files(paths)
    session.register_files(files)
    return session, files


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    Lightsift - photo triage and non-destructive editing

    Edits are stored in XMP sidecars next to each image, so other photo
    applications see ratings and basic adjustments too.
    """
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)

    level = get_config_value(ctx.obj['config'], 'logging.level', 'INFO')
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    setup_console_logging(level, fmt=get_config_value(ctx.obj['config'], 'logging.format'))

    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
@click.argument('directory', type=click.Path(exists=True, file_okay=False, dir_okay=True))
@click.option('--json', 'as_json', is_flag=True, help='Print descriptors and sidecar edits as JSON')
@click.pass_context
def scan(ctx, directory: str, as_json: bool = False):
    """
    List the supported images in a directory.

    DIRECTORY: Folder to scan (not recursive)
    """
    session = PhotoSession(config=ctx.obj['config'])
    contents = session.open_folder(directory)

    if as_json:
        click.echo(json.dumps(contents.to_dict(), indent=2))
        return

    for image_file in contents.files:
        params = contents.edit_states.get(image_file.id)
        rating = f"{'*' * params.rating:<5}" if params else '     '
        flag = params.flag.value if params else 'none'
        kind = 'RAW' if image_file.is_raw else image_file.extension.upper()
        click.echo(f"{rating}  {flag:<6}  {kind:<5}  {image_file.filename}")

    if not ctx.obj['quiet']:
        click.echo(f"\n{len(contents.files)} images, {len(contents.edit_states)} with sidecars")


@main.command()
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--workers', '-w', type=int, default=1, help='Images analyzed in parallel')
@click.option('--output', '-o', type=click.Path(dir_okay=False),
              help='Write suggestions as JSON to this file')
@click.pass_context
def analyze(ctx, paths: Tuple[str, ...], workers: int = 1, output: Optional[str] = None):
    """
    Suggest adjustments for images without changing anything.

    PATHS: Image files and/or directories
    """
    session, files = _open_session(ctx, paths)
    if not files:
        click.echo("No images found", err=True)
        sys.exit(1)

    stats = ProcessingStats('analysis')
    stats.set_total(len(files))

    with tqdm(total=len(files), desc="Analyzing", unit="img", disable=ctx.obj['quiet']) as pbar:
        def on_result(result):
            scene = result.suggestion.scene_type if result.suggestion else None
            stats.add_result(result.success, scene, result.processing_time)
            if not result.success:
                stats.add_error(session.files.get(result.file_id).path, result.error)
            pbar.update(1)

        results = session.analyze_batch([f.id for f in files], workers=workers, progress=on_result)

    report = []
    for image_file, result in zip(files, results):
        entry = result.to_dict()
        entry['path'] = image_file.path
        report.append(entry)
        if result.success and not ctx.obj['quiet']:
            s = result.suggestion
            click.echo(f"{image_file.filename}: {s.scene_type} "
                       f"(confidence {s.confidence:.2f}) exposure {s.exposure:+.2f} "
                       f"contrast {s.contrast:+.1f} temp {s.white_balance_temp:.0f}")

    if output:
        Path(output).write_text(json.dumps(report, indent=2))
        if not ctx.obj['quiet']:
            click.echo(f"Suggestions saved to: {output}")

    if not ctx.obj['quiet']:
        stats.print_summary()
    if stats.failed_files:
        sys.exit(1)


@main.command()
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--strength', '-s', type=click.FloatRange(0.0, 1.0), default=1.0,
              help='How far to move current edits toward the suggestion (0-1)')
@click.option('--workers', '-w', type=int, default=1, help='Images enhanced in parallel')
@click.pass_context
def enhance(ctx, paths: Tuple[str, ...], strength: float = 1.0, workers: int = 1):
    """
    Auto-enhance images and save the result to their XMP sidecars.

    PATHS: Image files and/or directories
    """
    session, files = _open_session(ctx, paths)
    if not files:
        click.echo("No images found", err=True)
        sys.exit(1)

    stats = ProcessingStats('enhance')
    stats.set_total(len(files))

    with tqdm(total=len(files), desc="Enhancing", unit="img", disable=ctx.obj['quiet']) as pbar:
        def on_result(result):
            stats.add_result(result.success, processing_time=result.processing_time)
            if not result.success:
                stats.add_error(session.files.get(result.file_id).path, result.error)
            pbar.update(1)

        session.auto_enhance_batch([f.id for f in files], strength,
                                   workers=workers, progress=on_result)

    if not ctx.obj['quiet']:
        stats.print_summary()
    if stats.failed_files:
        sys.exit(1)


@main.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', type=click.Path(dir_okay=False), required=True,
              help='Where to write the JPEG preview')
@click.option('--max-size', '-m', type=int, help='Longest preview side in pixels')
@click.option('--edits', type=click.Path(exists=True, dir_okay=False),
              help='JSON adjustments to apply instead of the sidecar')
@click.pass_context
def preview(ctx, image: str, output: str, max_size: Optional[int] = None,
            edits: Optional[str] = None):
    """
    Render an edited preview of one image.

    IMAGE: Source image
    """
    session, files = _open_session(ctx, (image,))
    if not files:
        click.echo(f"Unsupported image: {image}", err=True)
        sys.exit(1)

    params = None
    if edits:
        params = AdjustmentParameters.from_json(Path(edits).read_text())

    try:
        data = session.get_preview(files[0].id, params, max_size)
    except LightsiftError as e:
        click.echo(f"Preview failed: {e}", err=True)
        sys.exit(1)

    Path(output).write_bytes(data)
    if not ctx.obj['quiet']:
        click.echo(f"Preview written to: {output} ({len(data)} bytes)")


@main.command()
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--destination', '-d', type=click.Path(file_okay=False), required=True,
              help='Output directory')
@click.option('--format', '-f', 'fmt', type=click.Choice(['jpeg', 'png']),
              help='Output format (default from config)')
@click.option('--quality', type=click.IntRange(1, 100), help='JPEG quality')
@click.option('--resize', type=int, help='Fit the longest side to this many pixels')
@click.pass_context
def export(ctx, paths: Tuple[str, ...], destination: str, fmt: Optional[str] = None,
           quality: Optional[int] = None, resize: Optional[int] = None):
    """
    Export images with their sidecar edits applied.

    PATHS: Image files and/or directories
    """
    session, files = _open_session(ctx, paths)
    options = ExportOptions.from_config(ctx.obj['config'])
    if fmt:
        options.format = fmt
    if quality:
        options.quality = quality
    if resize:
        options.resize_value = resize

    stats = ProcessingStats('export')
    stats.set_total(len(files))

    for image_file in tqdm(files, desc="Exporting", unit="img", disable=ctx.obj['quiet']):
        result = session.export_images([image_file.id], destination, options)[0]
        stats.add_result(result.success)
        if not result.success:
            stats.add_error(image_file.path, result.error)

    if not ctx.obj['quiet']:
        stats.print_summary()
    if stats.failed_files:
        sys.exit(1)


@main.command()
@click.argument('directory', type=click.Path(exists=True, file_okay=False, dir_okay=True))
@click.option('--thumb-dir', type=click.Path(file_okay=False),
              help='Thumbnail directory (default from config)')
@click.pass_context
def thumbnails(ctx, directory: str, thumb_dir: Optional[str] = None):
    """
    Generate cached thumbnails for every image in a directory.

    DIRECTORY: Folder to scan (not recursive)
    """
    config = ctx.obj['config']
    if thumb_dir:
        config = {**config, 'thumbnails': {**config.get('thumbnails', {}), 'directory': thumb_dir}}

    session = PhotoSession(config=config)
    contents = session.open_folder(directory)

    with click.progressbar(contents.files, label="Generating thumbnails") as bar:
        for image_file in bar:
            session.get_thumbnail(image_file.id)

    if not ctx.obj['quiet']:
        click.echo(f"{len(contents.files)} thumbnails in {contents.thumbnail_dir}")


if __name__ == '__main__':
    main()
