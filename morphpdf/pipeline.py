"""
Request orchestration.

:func:`run_request` performs one transformation from start to finish:
it opens the inputs, dispatches on the operation type, reports staged
progress, honours cancellation between pages and always releases the
documents it opened. :func:`execute` wraps it so that every outcome ends
up as exactly one terminal event.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Type, Union

from . import names
from .assembler import PageRef, assemble_images, assemble_recompressed, assemble_selection
from .backends import RenderBackend
from .compressor import EXPORT_FORMATS, compress, export_image
from .config import DEFAULT_CONFIG, PipelineConfig
from .decorations import (
    Decorator,
    page_number_decorator,
    signature_decorator,
    watermark_decorator,
)
from .document import SourceDocument
from .exceptions import DocumentOpenError, MorphPDFError, OutOfRange, RequestCancelled
from .operations import (
    CompressOperation,
    ImagesToPdfOperation,
    MergeOperation,
    Operation,
    OrganizeOperation,
    PageNumberOperation,
    PdfToImagesOperation,
    SignOperation,
    SplitOperation,
    WatermarkOperation,
)
from .packager import pack
from .progress import ProgressChannel, ProgressReporter
from .ranges import resolve, resolve_or_all
from .rasterizer import iter_rasterized, rasterize
from .types import (
    Artifact,
    ErrorEvent,
    InputFile,
    ResultEvent,
    Stage,
    TransformResult,
)

LOGGER = logging.getLogger("morphpdf.pipeline")

# Percent milestones; per-page work is spread over PAGE_START..PAGE_END.
LOADED_PERCENT = 10
PAGE_START = 20
PAGE_END = 90
FINALIZING_PERCENT = 95

Inputs = Union[InputFile, Sequence[InputFile]]


class RequestContext:
    """Per-request state shared by the operation handlers."""

    def __init__(
        self,
        reporter: ProgressReporter,
        cancel: Optional[threading.Event],
        config: PipelineConfig,
        backend: Optional[RenderBackend] = None,
        enforce_limits: bool = False,
    ) -> None:
        self.reporter = reporter
        self.cancel = cancel
        self.config = config
        self.backend = backend
        self.enforce_limits = enforce_limits
        self.resources = contextlib.ExitStack()

    def check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise RequestCancelled()

    def report(self, stage: Stage, percent: float, message: str = "") -> None:
        self.reporter.progress(stage, percent, message)

    def report_page(self, stage: Stage, done: int, total: int, message: str = "") -> None:
        percent = PAGE_START + (done / total) * (PAGE_END - PAGE_START) if total else PAGE_END
        self.report(stage, percent, message or f"Processed {done} of {total}")

    def open(self, item: InputFile) -> SourceDocument:
        """Open ``item`` for the lifetime of the request."""

        self.check_cancelled()
        if self.enforce_limits:
            self.config.check_limits([item])
        document = SourceDocument(item, backend=self.backend)
        self.resources.callback(document.close)
        if self.enforce_limits:
            self.config.check_limits([], page_count=document.page_count)
        LOGGER.debug("Opened %s (%d pages)", document.name, document.page_count)
        return document

    def open_single(self, inputs: Sequence[InputFile]) -> SourceDocument:
        if len(inputs) != 1:
            raise DocumentOpenError(f"Expected exactly one input document, got {len(inputs)}")
        document = self.open(inputs[0])
        self.report(Stage.LOADING, LOADED_PERCENT, f"Loaded {document.page_count} pages")
        return document

    def close(self) -> None:
        self.resources.close()


def _single(artifact: Artifact, inputs: Sequence[InputFile]) -> TransformResult:
    return TransformResult.single(artifact, original_size=sum(item.size for item in inputs))


def _bundle(files: List[Artifact], archive_name: str, inputs: Sequence[InputFile]) -> TransformResult:
    return TransformResult.bundle(
        tuple(files),
        archive_name,
        pack(files),
        original_size=sum(item.size for item in inputs),
    )


def _single_or_bundle(
    ctx: RequestContext,
    files: List[Artifact],
    archive_name: str,
    inputs: Sequence[InputFile],
) -> TransformResult:
    if len(files) == 1:
        return _single(files[0], inputs)
    ctx.report(Stage.PACKAGING, PAGE_END, f"Packaging {len(files)} files")
    return _bundle(files, archive_name, inputs)


# ----------------------------------------------------------------------
# Operation handlers
# ----------------------------------------------------------------------
def _compress(ctx: RequestContext, operation: CompressOperation, inputs: Sequence[InputFile]) -> TransformResult:
    if not inputs:
        raise DocumentOpenError("No input documents provided")
    preset = operation.preset
    documents = [ctx.open(item) for item in inputs]
    total = sum(document.page_count for document in documents)
    ctx.report(Stage.LOADING, LOADED_PERCENT, f"Loaded {total} pages from {len(documents)} documents")

    # Documents are compressed one after another; progress spans all pages.
    done = 0
    files: List[Artifact] = []
    for document in documents:
        pages = []
        for page_number in range(1, document.page_count + 1):
            ctx.check_cancelled()
            ctx.report_page(Stage.RENDERING, done, total, f"Rendering page {page_number} of {document.name}")
            surface = rasterize(document, page_number, ctx.config.render_scale)
            try:
                compressed = compress(surface, preset)
            finally:
                surface.release()
            pages.append((document.page_size(page_number), compressed))
            done += 1
            ctx.report_page(Stage.COMPRESSING, done, total, f"Compressed page {page_number} of {document.name}")

        ctx.check_cancelled()
        ctx.report_page(Stage.ASSEMBLING, done, total, f"Assembling {document.name}")
        data = assemble_recompressed(pages)
        files.append(Artifact(names.compress(document.name, preset.name), data))

    result = _single_or_bundle(ctx, files, names.COMPRESSED_PDFS_ARCHIVE, inputs)
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return result


def _merge(ctx: RequestContext, operation: MergeOperation, inputs: Sequence[InputFile]) -> TransformResult:
    if not inputs:
        raise DocumentOpenError("No input documents provided")
    refs: List[PageRef] = []
    for position, item in enumerate(inputs, start=1):
        document = ctx.open(item)
        refs.extend(PageRef(document, n) for n in range(1, document.page_count + 1))
        ctx.report_page(Stage.LOADING, position, len(inputs), f"Loaded {item.name}")

    ctx.check_cancelled()
    ctx.report(Stage.ASSEMBLING, PAGE_END, f"Merging {len(refs)} pages")
    data = assemble_selection(refs)
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return _single(Artifact(names.merge(), data), inputs)


def split_groups(page_count: int, mode: str, pages_per_split: int = 5) -> List[List[int]]:
    """Page numbers of each part for the ``every`` and ``half`` split modes.

    Halving puts the odd page into the second part. A one-page document
    yields a single part.
    """

    pages = list(range(1, page_count + 1))
    if mode == "half":
        middle = page_count // 2
        return [group for group in (pages[:middle], pages[middle:]) if group]
    return [pages[start:start + pages_per_split] for start in range(0, page_count, pages_per_split)]


def _split(ctx: RequestContext, operation: SplitOperation, inputs: Sequence[InputFile]) -> TransformResult:
    document = ctx.open_single(inputs)
    if operation.mode != "ranges":
        return _split_parts(ctx, operation, document, inputs)

    selection = resolve(operation.ranges, document.page_count)
    ctx.report(Stage.VALIDATING, PAGE_START, f"Selected {len(selection)} pages")

    files: List[Artifact] = []
    for done, page_number in enumerate(selection, start=1):
        ctx.check_cancelled()
        data = assemble_selection([PageRef(document, page_number)])
        files.append(Artifact(names.split_page(document.name, page_number), data))
        ctx.report_page(Stage.ASSEMBLING, done, len(selection), f"Extracted page {page_number}")

    result = _single_or_bundle(ctx, files, names.split_archive(document.name, selection.label), inputs)
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return result


def _split_parts(
    ctx: RequestContext,
    operation: SplitOperation,
    document: SourceDocument,
    inputs: Sequence[InputFile],
) -> TransformResult:
    groups = split_groups(document.page_count, operation.mode, operation.pages_per_split)
    ctx.report(Stage.VALIDATING, PAGE_START, f"Splitting into {len(groups)} parts")

    files: List[Artifact] = []
    for index, group in enumerate(groups, start=1):
        ctx.check_cancelled()
        data = assemble_selection([PageRef(document, page_number) for page_number in group])
        files.append(Artifact(names.split_part(document.name, index), data))
        ctx.report_page(Stage.ASSEMBLING, index, len(groups), f"Wrote part {index} (pages {group[0]}-{group[-1]})")

    result = _single_or_bundle(ctx, files, names.split_parts_archive(document.name), inputs)
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return result


def _organize(ctx: RequestContext, operation: OrganizeOperation, inputs: Sequence[InputFile]) -> TransformResult:
    document = ctx.open_single(inputs)
    for order in operation.pages:
        if order.page > document.page_count:
            raise OutOfRange(str(order.page))

    refs = [PageRef(document, order.page, order.rotation) for order in operation.pages]
    ctx.report(Stage.ASSEMBLING, PAGE_START, f"Arranging {len(refs)} pages")
    data = assemble_selection(refs, decorate=_tracked(ctx, None, len(refs), Stage.ASSEMBLING))
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return _single(Artifact(names.organize(document.name), data), inputs)


def _tracked(ctx: RequestContext, decorator: Optional[Decorator], total: int, stage: Stage) -> Decorator:
    """Wrap ``decorator`` with cancellation checks and per-page progress."""

    def decorate(page: object, index: int) -> None:
        ctx.check_cancelled()
        if decorator is not None:
            decorator(page, index)
        ctx.report_page(stage, index + 1, total)

    return decorate


def _decorate_all(
    ctx: RequestContext,
    inputs: Sequence[InputFile],
    decorator: Decorator,
    output_name: Callable[[str], str],
) -> TransformResult:
    document = ctx.open_single(inputs)
    refs = [PageRef(document, n) for n in range(1, document.page_count + 1)]
    data = assemble_selection(refs, decorate=_tracked(ctx, decorator, len(refs), Stage.DECORATING))
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return _single(Artifact(output_name(document.name), data), inputs)


def _watermark(ctx: RequestContext, operation: WatermarkOperation, inputs: Sequence[InputFile]) -> TransformResult:
    return _decorate_all(ctx, inputs, watermark_decorator(operation), names.watermark)


def _page_numbers(ctx: RequestContext, operation: PageNumberOperation, inputs: Sequence[InputFile]) -> TransformResult:
    return _decorate_all(ctx, inputs, page_number_decorator(operation), names.pagenum)


def _sign(ctx: RequestContext, operation: SignOperation, inputs: Sequence[InputFile]) -> TransformResult:
    document = ctx.open_single(inputs)
    for element in operation.elements:
        if element.page > document.page_count:
            raise OutOfRange(str(element.page))
    refs = [PageRef(document, n) for n in range(1, document.page_count + 1)]
    decorate = _tracked(ctx, signature_decorator(operation), len(refs), Stage.DECORATING)
    data = assemble_selection(refs, decorate=decorate)
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return _single(Artifact(names.sign(document.name), data), inputs)


def _images_to_pdf(ctx: RequestContext, operation: ImagesToPdfOperation, inputs: Sequence[InputFile]) -> TransformResult:
    if not inputs:
        raise DocumentOpenError("No images provided")
    if ctx.enforce_limits:
        ctx.config.check_limits(inputs, page_count=len(inputs))
    now = datetime.now(timezone.utc)
    ctx.report(Stage.LOADING, LOADED_PERCENT, f"Converting {len(inputs)} images")

    if operation.bundle or len(inputs) == 1:
        ctx.check_cancelled()
        data = assemble_images(inputs, operation.page_size, operation.orientation)
        ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
        return _single(Artifact(names.images_to_pdf(operation.bundle, len(inputs), now), data), inputs)

    files: List[Artifact] = []
    for index, item in enumerate(inputs, start=1):
        ctx.check_cancelled()
        data = assemble_images([item], operation.page_size, operation.orientation)
        files.append(Artifact(names.image_to_pdf_entry(index, now), data))
        ctx.report_page(Stage.ASSEMBLING, index, len(inputs), f"Converted {item.name}")

    result = _single_or_bundle(ctx, files, names.CONVERTED_PDFS_ARCHIVE, inputs)
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return result


def _pdf_to_images(ctx: RequestContext, operation: PdfToImagesOperation, inputs: Sequence[InputFile]) -> TransformResult:
    document = ctx.open_single(inputs)
    selection = resolve_or_all(operation.ranges, document.page_count)
    _, mime_type = EXPORT_FORMATS[operation.image_format]

    files: List[Artifact] = []
    for done, surface in enumerate(iter_rasterized(document, operation.scale, selection), start=1):
        ctx.check_cancelled()
        data = export_image(surface, operation.image_format, operation.quality)
        name = names.pdf_to_image(document.name, surface.page_number, operation.image_format)
        files.append(Artifact(name, data, mime_type))
        ctx.report_page(Stage.RENDERING, done, len(selection), f"Rendered page {surface.page_number}")

    result = _single_or_bundle(ctx, files, names.pdf_to_images_archive(document.name), inputs)
    ctx.report(Stage.FINALIZING, FINALIZING_PERCENT)
    return result


HANDLERS: Dict[Type, Callable[..., TransformResult]] = {
    CompressOperation: _compress,
    MergeOperation: _merge,
    SplitOperation: _split,
    OrganizeOperation: _organize,
    WatermarkOperation: _watermark,
    PageNumberOperation: _page_numbers,
    SignOperation: _sign,
    ImagesToPdfOperation: _images_to_pdf,
    PdfToImagesOperation: _pdf_to_images,
}


# ----------------------------------------------------------------------
# Entry points
# ----------------------------------------------------------------------
def run_request(
    operation: Operation,
    inputs: Inputs,
    *,
    reporter: Optional[ProgressReporter] = None,
    cancel: Optional[threading.Event] = None,
    config: Optional[PipelineConfig] = None,
    backend: Optional[RenderBackend] = None,
    enforce_limits: bool = False,
) -> TransformResult:
    """Run ``operation`` over ``inputs`` and return its result.

    Args:
        operation: One of the :mod:`morphpdf.operations` dataclasses.
        inputs: A single :class:`InputFile` or a sequence of them.
        reporter: Receives progress updates; terminal events are left to
            the caller (see :func:`execute`).
        cancel: Checked between pages; once set the request stops with
            :class:`RequestCancelled` and its partial output is discarded.
        config: Limits and render scale, defaults to :data:`DEFAULT_CONFIG`.
        backend: Render backend for rasterizing operations.
        enforce_limits: Apply ``config``'s size and page ceilings.

    Raises:
        MorphPDFError: Any selection, input or processing failure.
    """

    handler = HANDLERS.get(type(operation))
    if handler is None:
        raise TypeError(f"Unsupported operation: {type(operation).__name__}")

    if isinstance(inputs, InputFile):
        inputs = [inputs]
    inputs = list(inputs)

    ctx = RequestContext(
        reporter or ProgressReporter(),
        cancel,
        config or DEFAULT_CONFIG,
        backend=backend,
        enforce_limits=enforce_limits,
    )
    started = time.perf_counter()
    try:
        ctx.report(Stage.LOADING, 0, f"Starting {type(operation).__name__}")
        result = handler(ctx, operation, inputs)
    finally:
        ctx.close()

    LOGGER.info(
        "%s finished in %.2fs: %s",
        type(operation).__name__,
        time.perf_counter() - started,
        result,
    )
    return result


def execute(
    operation: Operation,
    inputs: Inputs,
    channel: Optional[ProgressChannel] = None,
    *,
    cancel: Optional[threading.Event] = None,
    config: Optional[PipelineConfig] = None,
    backend: Optional[RenderBackend] = None,
    enforce_limits: bool = False,
) -> Union[ResultEvent, ErrorEvent]:
    """Run a request and publish exactly one terminal event to ``channel``.

    Never raises for request failures; the returned terminal event is the
    same one published on the channel.
    """

    reporter = ProgressReporter(channel)
    try:
        result = run_request(
            operation,
            inputs,
            reporter=reporter,
            cancel=cancel,
            config=config,
            backend=backend,
            enforce_limits=enforce_limits,
        )
    except MorphPDFError as exc:
        LOGGER.error("%s failed (%s): %s", type(operation).__name__, exc.kind, exc)
        return reporter.fail(exc)
    except Exception as exc:
        LOGGER.exception("Unexpected error while running %s", type(operation).__name__)
        return reporter.fail(exc)

    reporter.progress(Stage.COMPLETE, 100, "Done")
    reporter.succeed(result)
    return ResultEvent(result=result)


__all__ = ["run_request", "execute", "RequestContext", "HANDLERS"]
