"""
Response models of the backend upload API.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SignedUrlResponse(BaseModel):
    """Presigned PUT target."""
    url: str = Field(..., min_length=1, description="Presigned PUT URL")


class StartMultipartResponse(BaseModel):
    """New multipart session."""
    upload_id: str = Field(..., min_length=1, description="Multipart upload identifier")


class UploadStatusResponse(BaseModel):
    """Backend ledger of a multipart upload."""
    model_config = ConfigDict(extra="ignore")

    file_name: Optional[str] = Field(None, description="File name recorded at start")
    file_size: Optional[int] = Field(None, description="File size recorded at start")
    parts: Dict[int, str] = Field(
        default_factory=dict, description="Confirmed part number to completion token")

    @field_validator('parts', mode='before')
    @classmethod
    def none_as_empty(cls, v):
        return v or {}


class CompleteMultipartResponse(BaseModel):
    """Completion acknowledgement."""
    model_config = ConfigDict(extra="allow")

    message: Optional[str] = Field(None, description="Backend message")
