"""
Esquemas para transcripción, análisis y catálogo de modelos.
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class AnalyzePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = Field(min_length=1)
    scenario: Optional[Literal["customer_meeting", "phone_sales", "team_meeting", "general"]] = None
    # Compatibilidad con clientes antiguos
    analysis_type: Optional[str] = Field(default=None, alias="analysisType")
    model: Optional[str] = None
    prompt: Optional[str] = None


class TranscribeOut(BaseModel):
    success: bool = True
    text: str


class AnalyzeOut(BaseModel):
    success: bool = True
    data: Dict[str, Any]
    scenario: str


class ModelInfo(BaseModel):
    id: str
    name: str
    description: str
    cost: str
    recommended: bool = False


class ModelsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    models: List[ModelInfo]
    current_model: str = Field(serialization_alias="currentModel")
