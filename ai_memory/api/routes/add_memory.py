from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...services.memory_management import MemoryManagementService
from ..dependencies import get_memory_service
from ..params import body_or_empty

router = APIRouter(prefix='/add-memory', tags=['memories'])


@router.get('')
def add_memory_status() -> Dict[str, str]:
    return {'status': 'ok', 'message': 'Memory API endpoint is running. Use POST to add memories.'}


@router.post('', status_code=201)
def add_memory(body: Optional[Dict[str, Any]] = Body(default=None),
               service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    """Embed and store a new memory."""
    body = body_or_empty(body)
    data = service.add_memory(body.get('content'), body.get('category'), body.get('metadata'),
                              body.get('graphFilter'))
    return {'status': 'created', 'data': data}
