# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.deps import get_store
from schemas import user as schemas
from services.entities import EntityStore
from utils.audit import write_log
from utils.tokenJWT import create_access_token, get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.LoginResponse)
def login(
    payload: schemas.UserLogin,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
):
    user = store.authenticate_user(payload.username, payload.password)

    # Validate credentials and log failure on error
    if user is None or not user.active:
        write_log(db, user_id=(user.id if user else None), action="LOGIN", resource="auth",
                  status="FAIL", request=request, meta={"username": payload.username})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    token = create_access_token(user)
    write_log(db, user_id=user.id, action="LOGIN", resource="auth",
              status="SUCCESS", request=request, meta={"username": user.username})

    return {"token": token, "token_type": "bearer", "user": user}


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
