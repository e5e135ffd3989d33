"""
HTTP API for adding, querying and visualizing memories.
"""

from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.routes import add_memory, get_graph, get_response, health, memories, semantic_search, visualize
from .utils.config import AppConfig
from .utils.errors import MemoryServiceError
from .utils.logging_config import get_logger

logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'status': 'error', 'message': message})


async def memory_error_handler(request: Request, exc: MemoryServiceError) -> JSONResponse:
    if exc.status >= 500:
        logger.error(f'{request.method} {request.url.path} failed: {exc}')
    else:
        logger.info(f'{request.method} {request.url.path} rejected: {exc}')
    return _error(exc.status, str(exc) or 'Internal Server Error')


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = '; '.join(str(error.get('msg')) for error in exc.errors()) or 'Invalid request'
    return _error(400, message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f'Unhandled error on {request.method} {request.url.path}: {exc}')
    return _error(500, 'Internal Server Error')


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(title='AI Memory API', version='1.0.0')

    app.add_exception_handler(MemoryServiceError, memory_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_methods=['*'],
        allow_headers=['*'],
    )

    for module in (add_memory, get_response, visualize, get_graph, semantic_search, memories, health):
        app.include_router(module.router)

    @app.get('/')
    def root():
        return {'status': 'ok', 'message': 'AI Memory API is running'}

    return app


app = create_app()


def main(app_config: Optional[AppConfig] = None):
    if app_config is None:
        from .utils.config import config as default_config
        app_config = default_config

    logger.info(f'Server is running on port {app_config.server.port}')
    uvicorn.run(app, host=app_config.server.host, port=app_config.server.port)


if __name__ == '__main__':
    main()
