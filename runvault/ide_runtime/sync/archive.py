"""ZIP bundles for workspace export and local file import."""

from __future__ import annotations

import io
import zipfile
import zlib
from collections.abc import Iterable
from zipfile import ZIP_DEFLATED, ZipFile

from loguru import logger

from runvault.ide_runtime.errors import ArchiveError
from runvault.ide_runtime.languages import language_for
from runvault.ide_runtime.models.workspace import FileRecord, now_ms


def bundle_name() -> str:
    return f"workspace_bundle_{now_ms()}.zip"


def pack(files: Iterable[FileRecord]) -> bytes:
    """Write every record into a deflated ZIP, one entry per file name."""
    buffer = io.BytesIO()
    count = 0
    with ZipFile(buffer, "w", ZIP_DEFLATED) as z:
        for record in files:
            z.writestr(record.name, record.content)
            count += 1
    logger.debug("Packed {} files into workspace bundle", count)
    return buffer.getvalue()


def unpack(data: bytes) -> list[FileRecord]:
    """Read every non-directory entry as a UTF-8 text file.

    Raises ``ArchiveError`` if *data* is not a ZIP container or a member
    cannot be read (corrupt, truncated or encrypted).
    """
    try:
        z = ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as exc:
        msg = f"Not a ZIP archive: {exc}"
        raise ArchiveError(msg) from exc

    records: list[FileRecord] = []
    with z:
        for info in z.infolist():
            if info.is_dir():
                continue
            try:
                raw = z.read(info)
            except (zipfile.BadZipFile, RuntimeError, zlib.error, EOFError) as exc:
                msg = f"Cannot read {info.filename} from archive: {exc}"
                raise ArchiveError(msg) from exc
            content = raw.decode("utf-8", errors="replace")
            records.append(FileRecord(name=info.filename, language=language_for(info.filename), content=content))
    return records


def import_uploads(uploads: Iterable[tuple[str, bytes]]) -> list[FileRecord]:
    """Turn uploaded (name, bytes) pairs into records.  ``.zip`` uploads are expanded."""
    records: list[FileRecord] = []
    for name, data in uploads:
        if name.lower().endswith(".zip"):
            records.extend(unpack(data))
        else:
            text = data.decode("utf-8", errors="replace")
            records.append(FileRecord(name=name, language=language_for(name), content=text))
    return records
