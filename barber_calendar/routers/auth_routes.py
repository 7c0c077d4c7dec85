# barber_calendar/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from barber_calendar.db import get_session
from barber_calendar.schemas import Token
from barber_calendar.auth import authenticate_user, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    user = authenticate_user(session, form_data.username, form_data.password)
    if user is None:
        logger.warning(f"Failed login for {form_data.username.strip().lower()}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {"access_token": create_access_token({"sub": user.email}), "token_type": "bearer"}
