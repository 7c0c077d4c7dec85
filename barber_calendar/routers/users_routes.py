# barber_calendar/routers/users_routes.py

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from barber_calendar.db import get_session
from barber_calendar.models import StaffMember, User
from barber_calendar.schemas import UserCreate, UserPublic
from barber_calendar.auth import get_current_user, hash_password
from barber_calendar.deps import require_role

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    email = user.email.strip().lower()

    existing = session.exec(select(User).where(User.email == email)).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    if user.staff_id is not None and session.get(StaffMember, user.staff_id) is None:
        raise HTTPException(status_code=404, detail="Staff member not found")

    db_user = User(
        email=email,
        password_hash=hash_password(user.password),
        role=user.role.value,
        staff_id=user.staff_id,
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user
