"""
Request/response models for the affine transformation HTTP API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime


class HealthResponse(BaseModel):
    status: str
    version: str
    config_issues: List[str] = []


class SimulateRequest(BaseModel):
    processor: Dict[str, Any]
    docs: List[Dict[str, Any]]
    processor_type: str = "affine_transformation"

    @field_validator('docs')
    @classmethod
    def docs_must_not_be_empty(cls, v):
        if not v:
            raise ValueError('docs cannot be empty')
        return v


class DocumentError(BaseModel):
    type: str
    reason: str
    chain_index: Optional[int] = None


class SimulatedDocument(BaseModel):
    doc: Optional[Dict[str, Any]] = None
    error: Optional[DocumentError] = None


class SimulateResponse(BaseModel):
    docs: List[SimulatedDocument]


class QueryVectorResponse(BaseModel):
    query_vector: List[float]


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    timestamp: datetime = None
    details: Optional[Dict[str, Any]] = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)
