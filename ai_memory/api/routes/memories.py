from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...services.memory_management import MemoryManagementService
from ..dependencies import get_memory_service
from ..params import body_or_empty

router = APIRouter(prefix='/memories', tags=['lineage'])


@router.get('/{memory_id}')
def get_memory(memory_id: str, service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    return {'status': 'success', 'data': service.get_memory(memory_id)}


@router.get('/{memory_id}/relationships')
def get_relationships(memory_id: str,
                      service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    return {'status': 'success', 'data': service.get_memory_relationships(memory_id)}


@router.post('/{memory_id}/relationships', status_code=201)
def create_relationship(memory_id: str,
                        body: Optional[Dict[str, Any]] = Body(default=None),
                        service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    """Record that this memory updates, extends or derives from `targetId`."""
    body = body_or_empty(body)
    data = service.create_relationship(memory_id, body.get('targetId'), body.get('relationshipType'),
                                       body.get('metadata'))
    return {'status': 'created', 'data': data}


@router.get('/{memory_id}/version-chain')
def get_version_chain(memory_id: str,
                      service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    return {'status': 'success', 'data': service.get_version_chain(memory_id)}


@router.post('/{memory_id}/outdated')
def mark_outdated(memory_id: str,
                  body: Optional[Dict[str, Any]] = Body(default=None),
                  service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    body = body_or_empty(body)
    return {'status': 'success', 'data': service.mark_outdated(memory_id, body.get('supersededBy'))}
