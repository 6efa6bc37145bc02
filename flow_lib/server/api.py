from fastapi import APIRouter, Request

from flow_lib.config.health import get_health

router = APIRouter()


@router.get('/health')
async def api_health(request: Request):
    container = getattr(request.app.state, 'container', None)
    backend = None
    if container is not None and container.has('storage_provider'):
        backend = container.get('storage_provider').backend.value
    return get_health(storage_backend=backend)
