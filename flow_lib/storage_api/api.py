from typing import Any, Optional
import logging

from fastapi import APIRouter, Body, HTTPException, Request, Response
from pydantic import BaseModel

from flow_lib.config.settings import parse_backend
from flow_lib.services.resolver import resolve_service
from flow_lib.storage.errors import StorageNotConfiguredError, BACKEND_UNKNOWN
from flow_lib.storage.provider import use_storage

router = APIRouter()
logger = logging.getLogger(__name__)


class BackendSelection(BaseModel):
    backend: str


@router.get('/v1/storage/backend')
async def api_get_backend(request: Request):
    provider = resolve_service(request, 'storage_provider')
    return {
        'backend': provider.backend.value,
        'namespace': provider.adapter.namespace,
        'generation': provider.generation,
    }


@router.put('/v1/storage/backend')
async def api_select_backend(request: Request, payload: BackendSelection):
    provider = resolve_service(request, 'storage_provider')
    try:
        kind = parse_backend(payload.backend)
    except StorageNotConfiguredError as e:
        raise HTTPException(status_code=400, detail={'error': BACKEND_UNKNOWN, 'message': e.message})
    # StorageNotConfiguredError from adapter construction is mapped to 503
    # by the application's exception handler.
    adapter = provider.select(kind)
    return {
        'backend': kind.value,
        'namespace': adapter.namespace,
        'generation': provider.generation,
    }


@router.get('/v1/storage/entries')
async def api_list_entries(prefix: Optional[str] = None):
    return await use_storage().list(prefix)


@router.delete('/v1/storage/entries')
async def api_clear_entries():
    await use_storage().clear()
    return {'ok': True}


@router.get('/v1/storage/entries/{key:path}')
async def api_get_entry(key: str):
    value = await use_storage().get(key)
    if value is None:
        raise HTTPException(status_code=404, detail={'error': 'not_found', 'message': f"No entry for key '{key}'"})
    return value


@router.put('/v1/storage/entries/{key:path}')
async def api_set_entry(key: str, value: Any = Body(None)):
    """Store the JSON body under `key`.

    A null body is refused: GET answers 404 for a missing key, so a stored
    null could not be told apart from an absent entry.
    """
    if value is None:
        raise HTTPException(status_code=400, detail={'error': 'null_value', 'message': 'Entry values must not be null'})
    await use_storage().set(key, value)
    return {'ok': True}


@router.delete('/v1/storage/entries/{key:path}', status_code=204)
async def api_delete_entry(key: str):
    await use_storage().delete(key)
    return Response(status_code=204)
