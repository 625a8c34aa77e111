import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from journalflow.core.config import get_jwt_secret
from journalflow.models.user import Actor

logger = logging.getLogger("journalflow.auth")

# === Auth 核心配置 ===
# 中文注释:
# 1. 密钥来源于 Supabase Project Settings 中的 JWT Secret。
# 2. 我们使用 HTTPBearer 作为验证头。
ALGORITHM = "HS256"

security = HTTPBearer()


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    """
    解码并验证 Supabase JWT Token
    返回解析后的 User Payload
    """
    token = credentials.credentials
    try:
        payload = jwt.decode(token, get_jwt_secret(), algorithms=[ALGORITHM], audience="authenticated")
    except JWTError as e:
        logger.info("JWT 验证失败: %s", e)
        raise HTTPException(status_code=401, detail="Token 验证失败或已过期")

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(status_code=401, detail="无效的身份载荷")
    return {"id": user_id, "email": payload.get("email")}


async def get_current_profile(current_user: dict = Depends(get_current_user)) -> dict:
    """
    获取当前用户的 profile（含 roles）。

    中文注释:
    - 首次访问时自动创建 profiles 记录，默认 roles=['author']（自助注册默认角色）。
    """
    from journalflow.services.profile_service import ProfileService

    return ProfileService().ensure_profile(user_id=current_user["id"], email=current_user.get("email"))


async def get_current_actor(profile: dict = Depends(get_current_profile)) -> Actor:
    return Actor.of(profile["id"], profile.get("roles") or [])
