from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from perangkat.database import get_db
from perangkat.models.user import User
from perangkat.schemas.auth_schema import CurrentUser, UserCreate, UserLogin
from perangkat.security import get_current_user, get_password_hash, require_admin, verify_password

router = APIRouter()

@router.post("/login")
async def login(request: Request, user_in: UserLogin, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.username == user_in.username))
    user = result.scalar_one_or_none()

    if not user or not user.is_active or not verify_password(user_in.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Username atau password salah")

    # Set Session Cookie
    request.session["user_id"] = user.id
    return {"message": "Login successful", "user": CurrentUser.model_validate(user).model_dump()}

@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"message": "Logged out"}

@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(get_current_user)):
    return user

@router.post("/users", response_model=CurrentUser)
async def create_user(user_in: UserCreate, db: AsyncSession = Depends(get_db), _: CurrentUser = Depends(require_admin)):
    result = await db.execute(select(User).where(User.username == user_in.username))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Username sudah dipakai")

    new_user = User(
        **user_in.model_dump(exclude={"password"}),
        hashed_password=get_password_hash(user_in.password),
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)
    return CurrentUser.model_validate(new_user)
