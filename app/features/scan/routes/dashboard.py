from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.routes.auth import get_current_user
from app.features.scan.services.orchestration.dashboard import get_dashboard_stats
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=dict)
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    stats = await get_dashboard_stats(current_user.id, db)
    return api_response(data=stats, message="Dashboard stats retrieved")
