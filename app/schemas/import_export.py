# app/schemas/import_export.py

from typing import List, Dict, Any, Optional, Literal
from pydantic import BaseModel, Field


class ImportRequest(BaseModel):
    """Body of a JSON import request."""
    entityType: str = Field(..., min_length=1, description="Target table, e.g. 'clienti'")
    data: List[Dict[str, Any]] = Field(..., description="Rows keyed by spreadsheet header")
    mode: Literal["import", "preview"] = Field("import", description="'preview' classifies rows without writing")


class ImportRowResultRead(BaseModel):
    """Outcome of a single imported row."""
    row_index: int = Field(..., description="0-based position of the row in the batch")
    entity_type: str
    outcome: str = Field(..., description="imported, updated, skipped_duplicate, validated or failed")
    verdict: Optional[str] = Field(None, description="NEW, UPDATE or DUPLICATE")
    id: Optional[str] = Field(None, description="Identifier of the written or matched record")
    updated_fields: List[str] = Field(default_factory=list)
    error_type: Optional[str] = None
    error: Optional[str] = None
    field: Optional[str] = None


class ImportSummary(BaseModel):
    total_rows: int = 0
    processed_rows: int = 0
    imported: int = 0
    updated: int = 0
    skipped_duplicates: int = 0
    validated: int = 0
    failed: int = 0
    new: int = 0
    to_update: int = 0
    duplicates: int = 0


class ImportReportRead(BaseModel):
    entity_type: str
    mode: str
    aborted: bool = False
    abort_reason: Optional[str] = None
    summary: ImportSummary
    results: List[ImportRowResultRead] = Field(default_factory=list)
    errors: List[ImportRowResultRead] = Field(default_factory=list)


class ImportResponse(BaseModel):
    """Response of the import endpoints."""
    message: str
    summary: ImportSummary
    report: ImportReportRead


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Dict[str, Any]] = None
