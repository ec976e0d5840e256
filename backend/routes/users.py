# backend/routes/users.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.deps import get_store
from schemas.user import UserCreate, UserOut, UserUpdate
from services.entities import EntityStore
from utils.audit import write_log
from utils.tokenJWT import admin_only

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserOut])
def list_users(store: EntityStore = Depends(get_store), current_user: User = Depends(admin_only)):
    return store.list_users()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, store: EntityStore = Depends(get_store), current_user: User = Depends(admin_only)):
    user = store.get_user(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_only),
):
    user = store.create_user(payload)
    write_log(db, user_id=current_user.id, action="USER_CREATE", resource="users",
              request=request, meta={"id": user.id, "username": user.username, "role": user.role})
    return user


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_only),
):
    user = store.update_user(user_id, payload)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    # Never put the new password into the audit trail
    changed = sorted(payload.model_dump(exclude_unset=True).keys())
    write_log(db, user_id=current_user.id, action="USER_UPDATE", resource="users",
              request=request, meta={"id": user.id, "fields": changed})
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_only),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    if not store.delete_user(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    write_log(db, user_id=current_user.id, action="USER_DELETE", resource="users",
              request=request, meta={"id": user_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
