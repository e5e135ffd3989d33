from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...services.memory_management import MemoryManagementService
from ..dependencies import get_memory_service
from ..params import as_bool, as_float, as_int, as_optional_str, body_or_empty

router = APIRouter(prefix='/get-graph', tags=['graph'])


def _graph_response(params: Dict[str, Any], service: MemoryManagementService) -> Dict[str, Any]:
    data = service.get_graph(namespace=as_optional_str(params.get('namespace')),
                             max_nodes=as_int(params.get('maxNodes'), 50),
                             similarity_threshold=as_float(params.get('similarityThreshold'), 0.75),
                             sync=as_bool(params.get('sync')))
    return {'status': 'success', 'data': data}


@router.get('')
def get_graph(namespace: Optional[str] = None,
              maxNodes: Optional[str] = None,
              similarityThreshold: Optional[str] = None,
              sync: Optional[str] = None,
              service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    return _graph_response({
        'namespace': namespace,
        'maxNodes': maxNodes,
        'similarityThreshold': similarityThreshold,
        'sync': sync
    }, service)


@router.post('')
def post_graph(body: Optional[Dict[str, Any]] = Body(default=None),
               service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    return _graph_response(body_or_empty(body), service)


@router.get('/namespaces')
def get_graph_namespaces(service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    return {'status': 'success', 'data': {'namespaces': service.list_graph_namespaces()}}


@router.post('/sync')
def sync_graph(body: Optional[Dict[str, Any]] = Body(default=None),
               service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    """Mirror the vector store into the graph and recompute heuristic edges."""
    body = body_or_empty(body)
    data = service.sync_graph(namespace=as_optional_str(body.get('namespace')),
                              similarity_threshold=as_float(body.get('similarityThreshold'), 0.7))
    return {'status': 'success', 'data': data}
