from fastapi import APIRouter, Depends

from auth import get_current_user
from config import settings
from database_models import User
from utils.responses import success_response

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/zaplink")
async def get_zap_link(user: User = Depends(get_current_user)):
    """The user's public zap link, used to receive forms from other freelancers."""
    return success_response({
        "zap_link": user.zap_link,
        "full_url": f"{settings.zap_link_base}/{user.zap_link}",
    })
