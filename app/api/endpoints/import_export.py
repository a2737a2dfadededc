# app/api/endpoints/import_export.py

import io
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from app.api.deps import get_import_export_service
from app.core.exceptions import BatchAbort, StorageError, ValidationException
from app.schemas.import_export import ErrorResponse, ImportRequest, ImportResponse, MessageResponse
from app.services.import_export_service import ImportExportService, ImportReport
from app.services.spreadsheet_codec import XLSX_MEDIA_TYPE

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed input or entity type not allowed"},
    500: {"model": ErrorResponse, "description": "Storage failure or aborted batch"},
}


def _error(status_code: int, message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    content: Dict[str, Any] = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _import_response(report: ImportReport) -> Dict[str, Any]:
    data = report.to_dict()
    return {"message": report.message, "summary": data["summary"], "report": data}


def _file_format(filename: Optional[str], requested: Optional[str]) -> str:
    if requested:
        return requested.lower()
    if filename and filename.lower().endswith(".csv"):
        return "csv"
    return "excel"


def _run_import(run) -> Any:
    """Execute an import callable and translate failures into the endpoint error contract."""
    try:
        return _import_response(run())
    except ValidationException as e:
        logger.warning(f"Rejected import request: {e.message}")
        return _error(status.HTTP_400_BAD_REQUEST, e.message, e.details)
    except BatchAbort as e:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message, e.details)
    except StorageError as e:
        logger.error(f"Storage failure during import: {e.message}", exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)


@router.post("/import-data", response_model=ImportResponse, responses=ERROR_RESPONSES)
def import_data(
        *,
        body: Any = Body(...),
        service: ImportExportService = Depends(get_import_export_service),
):
    """
    Import rows into a table.

    Every row is reconciled against existing records: new rows are inserted,
    changed rows updated and identical rows skipped. The report lists the
    outcome of each row.
    """
    try:
        request = ImportRequest.model_validate(body)
    except ValidationError as e:
        errors = {".".join(str(p) for p in err["loc"]): [err["msg"]] for err in e.errors()}
        logger.warning(f"Malformed import body: {errors}")
        return _error(status.HTTP_400_BAD_REQUEST, "Richiesta non valida", {"validation_errors": errors})

    logger.info(f"Import request: {len(request.data)} rows into {request.entityType} ({request.mode})")
    return _run_import(lambda: service.import_rows(request.entityType, request.data, mode=request.mode))


@router.post("/import-data/upload", response_model=ImportResponse, responses=ERROR_RESPONSES)
async def import_data_upload(
        *,
        entityType: str = Form(...),
        file: UploadFile = File(...),
        mode: str = Form("import"),
        fileFormat: Optional[str] = Form(None),
        service: ImportExportService = Depends(get_import_export_service),
):
    """
    Import a spreadsheet (xlsx or csv); the first sheet's header row names the columns.
    """
    content = await file.read()
    file_format = _file_format(file.filename, fileFormat)
    logger.info(f"Upload import: {file.filename} ({file_format}) into {entityType} ({mode})")
    return _run_import(lambda: service.import_file(entityType, content, file_format=file_format, mode=mode))


@router.get("/export-data", responses={200: {"model": MessageResponse}, **ERROR_RESPONSES})
def export_data(
        *,
        entity_type: str = Query(..., alias="type", description="Table to export"),
        service: ImportExportService = Depends(get_import_export_service),
):
    """
    Export a table as an xlsx workbook.

    An empty table returns a JSON message instead of a file.
    """
    try:
        result = service.export_table(entity_type)
    except ValidationException as e:
        return _error(status.HTTP_400_BAD_REQUEST, e.message, e.details)
    except StorageError as e:
        logger.error(f"Storage failure during export of {entity_type}: {e.message}", exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    if not result.has_data:
        return {"message": result.message}

    return StreamingResponse(
        io.BytesIO(result.content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={result.filename}"},
    )


@router.get("/import-template", responses=ERROR_RESPONSES)
def import_template(
        *,
        entity_type: str = Query(..., alias="type", description="Table the template is for"),
        service: ImportExportService = Depends(get_import_export_service),
):
    """
    Download an empty import workbook with the accepted headers and instructions.
    """
    try:
        resolved = service.resolve_entity_type(entity_type)
        content = service.generate_import_template(resolved)
    except ValidationException as e:
        return _error(status.HTTP_400_BAD_REQUEST, e.message, e.details)

    filename = f"{resolved.value}_template.xlsx"
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
