from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ...services.memory_management import MemoryManagementService
from ..dependencies import get_memory_service
from ..params import as_bool, as_int, as_optional_str

router = APIRouter(prefix='/visualize', tags=['visualization'])


@router.get('')
def visualize(namespace: Optional[str] = None,
              limit: Optional[str] = None,
              includeRelationships: Optional[str] = None,
              service: MemoryManagementService = Depends(get_memory_service)) -> Dict[str, Any]:
    """Memories of every known namespace, with lineage attached on request."""
    data = service.visualize(namespace=as_optional_str(namespace),
                             limit=as_int(limit, 1000),
                             include_relationships=as_bool(includeRelationships))
    return {'status': 'success', 'data': data}
