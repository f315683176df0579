"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from app.schemas import (
    DatabaseStatus,
    ImportRequest,
    ImportResult,
    LatestRecords,
    ProductionStat,
    UploadPreview,
)
from models.records import RecordKind
from services.aggregator import DEFAULT_LIMIT_DAYS
from services.ingestion import IngestionService, build_default_service

router = APIRouter()


def get_service() -> IngestionService:
    return build_default_service()


@router.post(
    "/uploads/{kind}",
    response_model=UploadPreview,
    summary="Validate and stage a spreadsheet export for import.",
)
def upload_file(
    kind: RecordKind,
    file: UploadFile = File(..., description="Excel workbook exported by the inverter or utility."),
    service: IngestionService = Depends(get_service),
) -> UploadPreview:
    contents = file.file.read()
    try:
        return service.stage_upload(kind, file.filename, contents)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File validation error: {exc}",
        ) from exc
    finally:
        file.file.close()


@router.post(
    "/imports/{kind}",
    response_model=ImportResult,
    summary="Import a staged upload or a list of rows into the store.",
)
def import_records(
    kind: RecordKind,
    request: ImportRequest,
    service: IngestionService = Depends(get_service),
) -> ImportResult:
    try:
        if request.file_id is not None:
            return service.import_upload(kind, request.file_id)
        if request.data is not None:
            return service.import_rows(kind, request.data)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0] if exc.args else str(exc),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Request must contain either 'file_id' or 'data'.",
    )


@router.get(
    "/imports/error-logs",
    response_model=List[str],
    summary="Recent import errors, oldest first.",
)
def get_error_logs(service: IngestionService = Depends(get_service)) -> List[str]:
    return service.error_logs()


@router.delete(
    "/imports/error-logs",
    summary="Clear the import error history.",
)
def clear_error_logs(service: IngestionService = Depends(get_service)) -> dict[str, str]:
    service.clear_error_logs()
    return {"status": "cleared"}


@router.get(
    "/database/status",
    response_model=DatabaseStatus,
    summary="Check whether the time-series store is reachable.",
)
def database_status(service: IngestionService = Depends(get_service)) -> DatabaseStatus:
    return service.database_status()


@router.get(
    "/database/latest-records",
    response_model=LatestRecords,
    summary="Timestamps of the newest stored power sample and meter reading.",
)
def latest_records(service: IngestionService = Depends(get_service)) -> LatestRecords:
    return service.latest_records()


@router.get(
    "/database/production-stats",
    response_model=List[ProductionStat],
    summary="Daily production energy for the most recent days, newest first.",
)
def production_stats(
    days: int = Query(DEFAULT_LIMIT_DAYS, ge=1, le=366),
    service: IngestionService = Depends(get_service),
) -> List[ProductionStat]:
    return service.production_stats(days)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
