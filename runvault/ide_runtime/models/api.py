"""Wire schemas shared by the execution service and its client.

These thin schemas describe the same-origin HTTP API::

    GET  /api/files       -> list[FileEntry]
    POST /api/files/save  SaveFileRequest -> SaveFileResponse
    POST /api/run         RunRequest -> RunResponse

They are separate from ``FileRecord`` because the service has no notion of
open tabs and uses the file name as the identifier.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FileEntry(BaseModel):
    """A file in the execution service's shared folder."""

    id: str
    name: str
    language: str
    content: str


class SaveFileRequest(BaseModel):
    name: str
    content: str


class SaveFileResponse(BaseModel):
    success: bool


class RunRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    language: str = ""
    file_name: str = Field(alias="fileName")


class RunResponse(BaseModel):
    """Captured output of a native run.  Either field may be absent."""

    output: str | None = None
    error: str | None = None
