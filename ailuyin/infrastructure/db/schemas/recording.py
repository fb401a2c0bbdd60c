"""
Modelo Pydantic para documentos de la colección `recording`.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class RecordingRecord(BaseModel):
    id: str
    user_id: str
    recording_id: str
    file_name: str
    file_path: str
    file_size: int
    duration: Optional[float] = None
    transcription: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime
