from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...services.memory_management import MemoryManagementService
from ..dependencies import get_memory_service
from ..params import body_or_empty

router = APIRouter(prefix='/get-response', tags=['responses'])


@router.get('')
def get_response_status() -> Dict[str, str]:
    return {'status': 'ok', 'message': 'Response API endpoint is running. Use POST to get a response.'}


@router.post('')
def get_response(body: Optional[Dict[str, Any]] = Body(default=None),
                 service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    """Answer an input using the memories of one conversation as context."""
    body = body_or_empty(body)
    data = service.get_response(body.get('user_id'), body.get('conversation_id'), body.get('input'))
    return {'status': 'success', 'data': data}
