"""Helpers for reading multipart uploads into plain file payloads."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import UploadFile


MULTIPART_OVERHEAD_BYTES = 64 * 1024


@dataclass(frozen=True)
class UploadedFile:
    """A received file, detached from the HTTP layer."""

    filename: str
    content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def request_exceeds_limit(
    content_length_header: str | None,
    *,
    max_files: int,
    max_size_bytes: int,
    overhead_bytes: int = MULTIPART_OVERHEAD_BYTES,
) -> bool:
    """Return True when Content-Length clearly exceeds what max_files uploads could need."""
    if not content_length_header:
        return False
    try:
        content_length = int(content_length_header)
    except (TypeError, ValueError):
        return False
    return content_length > max_files * (max_size_bytes + overhead_bytes)


async def read_uploads(files: list[UploadFile]) -> list[UploadedFile]:
    """Read every upload body; size and type checks happen in the service layer."""
    uploaded = []
    for file in files:
        await file.seek(0)
        data = await file.read()
        uploaded.append(
            UploadedFile(
                filename=file.filename or "upload",
                content_type=file.content_type,
                data=data,
            )
        )
    return uploaded
