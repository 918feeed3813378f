"""
Command-line interface for morphpdf.
"""

import functools
import logging
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from morphpdf import __version__
from morphpdf.config import PipelineConfig
from morphpdf.document import SourceDocument
from morphpdf.exceptions import MorphPDFError
from morphpdf.operations import (
    CompressOperation,
    ImagesToPdfOperation,
    MergeOperation,
    OrganizeOperation,
    PageNumberOperation,
    PageOrder,
    PdfToImagesOperation,
    SignatureElement,
    SignOperation,
    SplitOperation,
    WatermarkOperation,
    IMAGE_PAGE_SIZES,
    NUMBER_FORMATS,
    ORIENTATIONS,
    WATERMARK_POSITIONS,
)
from morphpdf.types import InputFile, ProgressEvent
from morphpdf.utils import ensure_parent_dir, format_file_size, get_logger, size_reduction_percent
from morphpdf.worker import TransformWorker

console = Console()
LOGGER = logging.getLogger("morphpdf.cli")

output_dir_option = click.option(
    '--output-dir', '-o',
    default='./output',
    help='Output directory',
    type=click.Path(file_okay=False)
)


def _read_input(path):
    return InputFile(name=os.path.basename(path), data=Path(path).read_bytes())


def _fail(message):
    console.print(f"\n[bold red]✗ Error:[/bold red] {message}")
    sys.exit(1)


def _run(operation, inputs, output_dir, description):
    """Submit *operation*, show its progress and write the result to *output_dir*."""
    with TransformWorker(max_workers=1, config=PipelineConfig.from_env()) as worker:
        handle = worker.submit(operation, inputs)

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console
        ) as progress:
            task = progress.add_task(description, total=100)
            for event in handle.events():
                if isinstance(event, ProgressEvent):
                    progress.update(task, completed=event.percent, description=f"{description} ({event.stage.value})")

        result = handle.result()

    destination = Path(output_dir) / result.primary_name
    ensure_parent_dir(destination)
    destination.write_bytes(result.primary_bytes)

    console.print(f"\n[bold green]✓ Created {result.primary_name}[/bold green]")
    if result.is_bundle:
        console.print(f"[dim]{len(result.files)} files packaged[/dim]")
    console.print(f"[dim]Output: {destination.resolve()} ({format_file_size(result.output_size)})[/dim]")
    return result


def reports_errors(func):
    """Turn library errors raised by a command into a red error line and exit code 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except MorphPDFError as e:
            LOGGER.debug("Request failed: %s", e)
            _fail(e.public_message)
        except (ValueError, OSError) as e:
            _fail(e)
        except (click.ClickException, click.Abort):
            raise
        except Exception as e:
            LOGGER.debug("Unexpected error", exc_info=True)
            _fail(f"Unexpected error: {type(e).__name__}. Run with --verbose for details")
    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Log pipeline steps to stderr')
def cli(verbose):
    """
    morphpdf - compress, split, merge, decorate and convert PDF files.
    """
    if verbose:
        get_logger("morphpdf", logging.DEBUG)


@cli.command(name="info")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@reports_errors
def show_info(input_pdf):
    """
    Display information about a PDF file.

    Example:

        morphpdf info input.pdf
    """
    with SourceDocument(_read_input(input_pdf)) as document:
        metadata = document.metadata or {}
        first = document.page_size(1)

        table = Table(title=f"PDF Information: {document.name}")
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")

        table.add_row("File Path", os.path.abspath(input_pdf))
        table.add_row("File Size", format_file_size(document.byte_length))
        table.add_row("Number of Pages", str(document.page_count))
        table.add_row("Page Size", f"{first.width:.0f} x {first.height:.0f} pt")
        for label, key in (("Title", "/Title"), ("Author", "/Author"), ("Producer", "/Producer")):
            if metadata.get(key):
                table.add_row(label, str(metadata.get(key)))

    console.print()
    console.print(table)
    console.print()


@cli.command(name="compress")
@click.argument('input_pdfs', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--level', '-l',
    default='medium',
    type=click.Choice(['light', 'medium', 'strong']),
    help='Compression preset'
)
@output_dir_option
@reports_errors
def compress_pdf(input_pdfs, level, output_dir):
    """
    Re-render every page as a compressed image.

    Several files are compressed one after another and packaged as a ZIP.

    Example:

        morphpdf compress input.pdf --level strong
    """
    items = [_read_input(p) for p in input_pdfs]
    result = _run(CompressOperation(level), items, output_dir, "Compressing")
    original = sum(item.size for item in items)
    saved = size_reduction_percent(original, result.output_size)
    console.print(f"[dim]{format_file_size(original)} → {format_file_size(result.output_size)} ({saved}% smaller)[/dim]\n")


@cli.command(name="merge")
@click.argument('input_pdfs', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@output_dir_option
@reports_errors
def merge_pdfs(input_pdfs, output_dir):
    """
    Merge PDF files in the order given.

    Example:

        morphpdf merge a.pdf b.pdf c.pdf
    """
    _run(MergeOperation(), [_read_input(p) for p in input_pdfs], output_dir, "Merging")


@cli.command(name="split")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option('--ranges', '-r', default=None, help='Pages to extract, e.g. "1-3,5"; one PDF per page')
@click.option('--every', type=click.IntRange(min=1), default=None, help='Split into chunks of N pages')
@click.option('--half', is_flag=True, help='Split into two halves')
@output_dir_option
@reports_errors
def split_pdf(input_pdf, ranges, every, half, output_dir):
    """
    Split a PDF by page ranges, into chunks of N pages or in half.

    Examples:

        morphpdf split input.pdf --ranges "1-3,8"

        morphpdf split input.pdf --every 10
    """
    chosen = [flag for flag, value in (('--ranges', ranges), ('--every', every), ('--half', half)) if value]
    if len(chosen) != 1:
        raise click.UsageError("Provide exactly one of --ranges, --every or --half")
    if every:
        operation = SplitOperation(mode="every", pages_per_split=every)
    elif half:
        operation = SplitOperation(mode="half")
    else:
        operation = SplitOperation(ranges)
    _run(operation, [_read_input(input_pdf)], output_dir, "Splitting")


def _parse_order(order, rotations):
    try:
        pages = [int(token) for token in order.split(',') if token.strip()]
        turns = {}
        for spec in rotations:
            page, _, degrees = spec.partition(':')
            turns[int(page)] = int(degrees)
        return OrganizeOperation(tuple(PageOrder(page, turns.get(page, 0)) for page in pages))
    except ValueError as e:
        raise click.BadParameter(str(e))


@cli.command(name="organize")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option('--order', required=True, help='New page order, e.g. "3,1,2"; omitted pages are dropped')
@click.option('--rotate', multiple=True, help='Rotate a page clockwise, e.g. "2:90" (repeatable)')
@output_dir_option
@reports_errors
def organize_pdf(input_pdf, order, rotate, output_dir):
    """
    Reorder, drop and rotate pages.

    Example:

        morphpdf organize input.pdf --order "3,1,2" --rotate 1:90
    """
    operation = _parse_order(order, rotate)
    _run(operation, [_read_input(input_pdf)], output_dir, "Organizing")


@cli.command(name="watermark")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option('--text', '-t', required=True, help='Watermark text')
@click.option('--position', default='center', type=click.Choice(WATERMARK_POSITIONS))
@click.option('--opacity', default=0.3, type=click.FloatRange(0, 1))
@click.option('--font-size', default=48, type=float)
@click.option('--color', default='#666666', help='Text colour as #RRGGBB')
@click.option('--rotation', default=45, type=float, help='Counter-clockwise rotation in degrees')
@output_dir_option
@reports_errors
def watermark_pdf(input_pdf, text, position, opacity, font_size, color, rotation, output_dir):
    """
    Stamp text on every page.

    Example:

        morphpdf watermark input.pdf --text CONFIDENTIAL
    """
    operation = WatermarkOperation(text, position, opacity, font_size, color, rotation)
    _run(operation, [_read_input(input_pdf)], output_dir, "Watermarking")


@cli.command(name="page-numbers")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option('--position', default='footer', type=click.Choice(['header', 'footer']))
@click.option('--alignment', default='center', type=click.Choice(['left', 'center', 'right']))
@click.option('--format', 'number_format', default='arabic', type=click.Choice(NUMBER_FORMATS))
@click.option('--start', 'start_number', default=1, type=click.IntRange(min=1))
@click.option('--prefix', default='')
@click.option('--suffix', default='')
@click.option('--font-size', default=12, type=float)
@click.option('--margin', default=30, type=float)
@output_dir_option
@reports_errors
def page_numbers_pdf(input_pdf, position, alignment, number_format, start_number, prefix, suffix, font_size, margin, output_dir):
    """
    Add page numbers to every page.

    Example:

        morphpdf page-numbers input.pdf --format roman-lower --prefix "Page "
    """
    operation = PageNumberOperation(position, alignment, number_format, start_number, prefix, suffix, font_size, margin)
    _run(operation, [_read_input(input_pdf)], output_dir, "Numbering")


@cli.command(name="sign")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option('--signature', 'signature_image', type=click.Path(exists=True, dir_okay=False), help='Signature image (PNG/JPEG)')
@click.option('--text', default=None, help='Text to place instead of an image')
@click.option('--page', default=1, type=click.IntRange(min=1))
@click.option('--x', default=50.0, type=float, help='Left edge in points')
@click.option('--y', default=50.0, type=float, help='Top edge in points, from the top of the page')
@click.option('--width', default=150.0, type=float)
@click.option('--height', default=50.0, type=float)
@click.option('--font-size', default=16.0, type=float)
@output_dir_option
@reports_errors
def sign_pdf(input_pdf, signature_image, text, page, x, y, width, height, font_size, output_dir):
    """
    Place a signature image or text on a page.

    Example:

        morphpdf sign contract.pdf --signature sig.png --page 2 --x 300 --y 650
    """
    if not signature_image and not text:
        raise click.UsageError("Provide --signature or --text")
    if signature_image:
        element = SignatureElement("signature", page, x, y, width, height, image=Path(signature_image).read_bytes())
    else:
        element = SignatureElement("text", page, x, y, text=text, font_size=font_size)
    _run(SignOperation((element,)), [_read_input(input_pdf)], output_dir, "Signing")


@cli.command(name="images-to-pdf")
@click.argument('images', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--separate', is_flag=True, help='One PDF per image, packaged as a ZIP')
@click.option('--page-size', default='auto', type=click.Choice(IMAGE_PAGE_SIZES))
@click.option('--orientation', default='auto', type=click.Choice(ORIENTATIONS))
@output_dir_option
@reports_errors
def images_to_pdf(images, separate, page_size, orientation, output_dir):
    """
    Convert images into PDF pages.

    Example:

        morphpdf images-to-pdf scan1.jpg scan2.png --page-size A4
    """
    operation = ImagesToPdfOperation(bundle=not separate, page_size=page_size, orientation=orientation)
    _run(operation, [_read_input(p) for p in images], output_dir, "Converting")


@cli.command(name="pdf-to-images")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option('--format', 'image_format', default='png', type=click.Choice(['png', 'jpg']))
@click.option('--dpi', default=150, type=click.IntRange(1, 1200))
@click.option('--quality', default=0.9, type=click.FloatRange(0, 1, min_open=True))
@click.option('--ranges', '-r', default=None, help='Pages to render; all pages when omitted')
@output_dir_option
@reports_errors
def pdf_to_images(input_pdf, image_format, dpi, quality, ranges, output_dir):
    """
    Render pages as PNG or JPEG images.

    Example:

        morphpdf pdf-to-images input.pdf --format jpg --dpi 200 -r 1-3
    """
    operation = PdfToImagesOperation(image_format, dpi, quality, ranges)
    _run(operation, [_read_input(input_pdf)], output_dir, "Rendering")


if __name__ == '__main__':
    cli()
