"""
Esquemas Pydantic para `recording` (metadatos de grabaciones del usuario).
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class _CamelIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RecordingCreate(_CamelIn):
    recording_id: str = Field(alias="recordingId", min_length=1)
    file_name: str = Field(alias="fileName", min_length=1)
    file_path: str = Field(alias="filePath", min_length=1)
    file_size: int = Field(alias="fileSize", ge=0)
    duration: Optional[float] = None
    transcription: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def _transcript_alias(cls, data: Any) -> Any:
        # El front end usa indistintamente `transcript` y `transcription`
        if isinstance(data, dict) and "transcript" in data and "transcription" not in data:
            data = {**data, "transcription": data["transcript"]}
        return data


class RecordingUpdate(_CamelIn):
    duration: Optional[float] = None
    transcription: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def _transcript_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and "transcript" in data and "transcription" not in data:
            data = {**data, "transcription": data["transcript"]}
        return data


class RecordingOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(serialization_alias="_id")
    recording_id: str = Field(serialization_alias="recordingId")
    file_name: str = Field(serialization_alias="fileName")
    file_path: str = Field(serialization_alias="filePath")
    file_size: int = Field(serialization_alias="fileSize")
    duration: Optional[float] = None
    transcription: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class RecordingListOut(BaseModel):
    recordings: List[RecordingOut]
    pagination: Pagination


class RecordingEnvelope(BaseModel):
    message: str
    recording: RecordingOut
