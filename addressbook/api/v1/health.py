"""Health check endpoint: database and contact cache reachability."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from addressbook.api.v1.deps import get_contact_cache
from addressbook.core.config import settings
from addressbook.core.database import check_db_connected, get_db
from addressbook.schemas.health import HealthResponse
from addressbook.services.cache import ContactCache

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[ContactCache, Depends(get_contact_cache)],
) -> HealthResponse:
    """
    Used by load balancers and monitoring. A down database reports "degraded";
    an unreachable cache does not, since contact reads still work without it.
    """
    db_ok = check_db_connected(db)
    return HealthResponse(
        status="ok" if db_ok else "degraded",
        environment=settings.APP_ENV,
        database="connected" if db_ok else "disconnected",
        cache_backend=settings.CACHE_BACKEND,
        cache="reachable" if cache.ping() else "unreachable",
    )
