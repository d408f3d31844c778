"""
Translation Server API Models

Pydantic models for the payloads exchanged with the translation server.
The server speaks camelCase; Python code uses snake_case attributes.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class FileMetadata(BaseModel):
    """One uploaded file as listed by GET /files/metadata"""
    file_name: str = Field(..., alias="fileName", description="Unique file key")
    translated: bool = False
    uploaded_at: Optional[datetime] = Field(default=None, alias="uploadedAt")
    translated_at: Optional[datetime] = Field(default=None, alias="translatedAt")
    # True when the SVG text was converted to paths (not extractable)
    outlined: bool = False
    # Number of translated versions (None = never translated)
    version: Optional[int] = None
    original_version: Optional[int] = Field(default=None, alias="originalVersion")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "fileName": "sequence.svg",
                "translated": True,
                "uploadedAt": "2025-01-15T10:30:00",
                "translatedAt": "2025-01-15T10:31:12",
                "outlined": False,
                "version": 2,
                "originalVersion": 1,
            }
        }


class UploadResult(BaseModel):
    """Response of POST /files/target"""
    file_name: str = Field(..., alias="fileName")
    outlined: bool = False
    message: str = ""

    class Config:
        populate_by_name = True


class TranslationAck(BaseModel):
    """Response of POST /translate-file"""
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    message: str = ""

    class Config:
        populate_by_name = True


def parse_metadata_list(payload: list) -> List[FileMetadata]:
    """Validate a raw JSON listing into FileMetadata models."""
    return [FileMetadata.model_validate(item) for item in payload]
