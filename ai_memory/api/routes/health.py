from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...services.memory_management import MemoryManagementService
from ...utils.health_check import get_system_info
from ..dependencies import get_memory_service

router = APIRouter(tags=['health'])


@router.get('/health')
def health(service: MemoryManagementService = Depends(get_memory_service)) -> JSONResponse:
    """Probe the embedding provider and both stores. Responds 503 when any is down."""
    info = get_system_info(service.gateway, service.vector_store, service.graph_store, service.config)
    healthy = all(component['healthy'] for component in info['health_status'].values())
    return JSONResponse(status_code=200 if healthy else 503,
                        content={'status': 'ok' if healthy else 'degraded', 'data': info})
