"""Runtime configuration for the transformation pipeline."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Tuple

from .exceptions import LimitExceededError
from .types import InputFile

LOGGER = logging.getLogger("morphpdf.config")

ENV_PREFIX = "MORPHPDF_"


def _env_number(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-numeric %s%s=%r", ENV_PREFIX, key, raw)
        return default
    if not math.isfinite(value):
        return default
    return value


@dataclass(frozen=True)
class PipelineConfig:
    """
    Limits and tuning knobs for transformation requests.

    Attributes:
        max_file_size_mb: Largest accepted input file
        max_pages: Largest accepted page count per document
        job_timeout: Seconds a caller waits before cancelling a request
        render_scale: Magnification used when rasterizing pages for compression
        progress_buffer: Number of progress events buffered per request
        allowed_mime_types: MIME types the surrounding application accepts
    """
    max_file_size_mb: float = 100
    max_pages: int = 200
    job_timeout: float = 90.0
    render_scale: float = 2.0
    progress_buffer: int = 64
    allowed_mime_types: Tuple[str, ...] = field(
        default=("application/pdf", "image/jpeg", "image/png")
    )

    def __post_init__(self) -> None:
        if self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        if self.render_scale <= 0:
            raise ValueError("render_scale must be positive")
        if self.progress_buffer < 1:
            raise ValueError("progress_buffer must be >= 1")

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """Build a config from ``MORPHPDF_*`` environment variables."""

        env = os.environ if env is None else env
        defaults = cls()
        mimes = env.get(ENV_PREFIX + "ALLOWED_MIMES")
        return cls(
            max_file_size_mb=_env_number(env, "MAX_FILE_SIZE_MB", defaults.max_file_size_mb),
            max_pages=int(_env_number(env, "MAX_PAGES", defaults.max_pages)),
            job_timeout=_env_number(env, "JOB_TIMEOUT_MS", defaults.job_timeout * 1000) / 1000,
            render_scale=_env_number(env, "RENDER_SCALE", defaults.render_scale),
            allowed_mime_types=(
                tuple(m.strip() for m in mimes.split(",") if m.strip())
                if mimes
                else defaults.allowed_mime_types
            ),
        )

    def check_limits(self, inputs: Iterable[InputFile], page_count: Optional[int] = None) -> None:
        """Raise :class:`LimitExceededError` if any input is over a ceiling."""

        for item in inputs:
            if item.size > self.max_file_size_bytes:
                raise LimitExceededError(
                    f"File '{item.name}' is {item.size} bytes; the limit is "
                    f"{self.max_file_size_mb:g} MB."
                )
        if page_count is not None and page_count > self.max_pages:
            raise LimitExceededError(
                f"Document has {page_count} pages; the limit is {self.max_pages}."
            )


DEFAULT_CONFIG = PipelineConfig()

__all__ = ["PipelineConfig", "DEFAULT_CONFIG"]
