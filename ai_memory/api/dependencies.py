"""FastAPI dependency providers.

Clients are created lazily, once per process, and can be swapped in tests through
``app.dependency_overrides`` or reset with ``get_memory_service.cache_clear()``.
"""

from functools import lru_cache

from ..services.memory_management import MemoryManagementService


@lru_cache(maxsize=1)
def get_memory_service() -> MemoryManagementService:
    """Provide the shared MemoryManagementService."""
    return MemoryManagementService()
