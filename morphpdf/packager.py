"""Bundle several artifacts into a single in-memory ZIP archive."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Union
from zipfile import ZIP_DEFLATED, ZipFile

from .exceptions import PackagingError
from .types import Artifact

LOGGER = logging.getLogger("morphpdf.packager")

# Entry bytes may be supplied lazily as a zero-argument reader.
ArtifactData = Union[bytes, Callable[[], bytes], None]


@dataclass(frozen=True)
class PackEntry:
    """An archive entry whose bytes may not have been produced yet."""
    name: str
    data: ArtifactData = field(repr=False)


Entry = Union[Artifact, PackEntry]


def _read(name: str, data: ArtifactData) -> bytes:
    if data is None:
        raise PackagingError(f"Failed to create ZIP file: no data for {name}")
    if callable(data):
        try:
            data = data()
        except Exception as exc:
            raise PackagingError(f"Failed to create ZIP file: cannot read {name}: {exc}") from exc
        if data is None:
            raise PackagingError(f"Failed to create ZIP file: no data for {name}")
    return bytes(data)


def pack(files: Iterable[Entry]) -> bytes:
    """Return a deflated ZIP holding one entry per file, named after it.

    Entries keep the order of ``files``. Names are never rewritten, so two
    artifacts with the same name are rejected.

    Raises:
        PackagingError: If there are no files, a file cannot be read or a
            name repeats.
    """

    files = list(files)
    if not files:
        raise PackagingError("Failed to create ZIP file: nothing to package")

    seen = set()
    buffer = io.BytesIO()
    with ZipFile(buffer, "w", compression=ZIP_DEFLATED) as archive:
        for artifact in files:
            if artifact.name in seen:
                raise PackagingError(f"Failed to create ZIP file: duplicate entry {artifact.name}")
            seen.add(artifact.name)
            archive.writestr(artifact.name, _read(artifact.name, artifact.data))

    data = buffer.getvalue()
    LOGGER.debug("Packaged %d file(s) into %d byte archive", len(files), len(data))
    return data


def entry_names(archive: bytes) -> List[str]:
    """Names of the entries in ``archive``, in stored order."""

    with ZipFile(io.BytesIO(archive)) as bundle:
        return bundle.namelist()


__all__ = ["PackEntry", "pack", "entry_names"]
