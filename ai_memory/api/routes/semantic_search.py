from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...services.memory_management import MemoryManagementService
from ..dependencies import get_memory_service
from ..params import as_bool, as_int, as_optional_str, body_or_empty

router = APIRouter(prefix='/semantic-search', tags=['search'])


@router.get('')
def semantic_search_status() -> Dict[str, str]:
    return {'status': 'ok', 'message': 'Semantic search endpoint is running. Use POST to search.'}


@router.post('')
def semantic_search(body: Optional[Dict[str, Any]] = Body(default=None),
                    service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    """Vector search for seed memories plus their connected subgraph."""
    body = body_or_empty(body)
    data = service.semantic_search(body.get('query'),
                                   top_k=as_int(body.get('topK'), 10),
                                   depth=as_int(body.get('depth'), 2),
                                   include_subgraph=as_bool(body.get('includeSubgraph'), True),
                                   namespace=as_optional_str(body.get('namespace')))
    return {'status': 'success', 'data': data}
