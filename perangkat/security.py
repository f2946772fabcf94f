from fastapi import Depends, HTTPException, Request
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from perangkat.database import get_db
from perangkat.schemas.auth_schema import CurrentUser

pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt_sha256", "bcrypt"], deprecated="auto")

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    return pwd_context.hash(password)

async def get_current_user_id(request: Request):
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized. Please login.")
    return user_id

async def get_current_user(user_id: int = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)) -> CurrentUser:
    from perangkat.models.user import User

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return CurrentUser.model_validate(user)

async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Hanya admin yang dapat melakukan aksi ini.")
    return user

def ensure_class_access(user: CurrentUser, kelas: str):
    # Guru kelas hanya boleh mengakses kelasnya sendiri
    if user.is_class_locked and str(kelas) != str(user.kelas):
        raise HTTPException(status_code=403, detail=f"Anda hanya dapat mengakses Kelas {user.kelas}.")
