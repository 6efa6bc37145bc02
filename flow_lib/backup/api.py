from typing import Any
import logging

from fastapi import APIRouter, Body, HTTPException, Request

from flow_lib.services.resolver import resolve_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get('/v1/backup')
async def api_export_backup(request: Request):
    backup_svc = resolve_service(request, 'backup_service')
    return await backup_svc.export_backup()


@router.post('/v1/backup')
async def api_import_backup(request: Request, backup: Any = Body(...), overwrite: bool = False, skip_invalid: bool = True):
    backup_svc = resolve_service(request, 'backup_service')
    try:
        return await backup_svc.import_backup(
            backup,
            overwrite_existing=overwrite,
            skip_invalid_records=skip_invalid,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail={'error': 'invalid_backup', 'message': str(e)})


@router.get('/v1/backup/stats')
async def api_backup_stats(request: Request):
    backup_svc = resolve_service(request, 'backup_service')
    return await backup_svc.backup_stats()
