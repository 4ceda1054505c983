"""
Dependency Injection для pack_curator.

Предоставляет Depends функции для получения сервиса вместо прямого обращения к app.state.
"""
import logging

from fastapi import HTTPException, Request

from .curator import PackCurator

logger = logging.getLogger(__name__)


def get_curator(request: Request) -> PackCurator:
    """
    Dependency для получения PackCurator.

    Использование:
        @router.get("/packages")
        async def list_packages(curator: PackCurator = Depends(get_curator)):
            return curator.list_nodes()
    """
    curator = getattr(request.app.state, 'curator', None)
    if curator is None or curator.graph is None:
        logger.error("Pack curator not available in app.state")
        raise HTTPException(
            status_code=503,
            detail="Pack curator not initialized. Please wait for application startup."
        )
    return curator
