from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import create_access_token, get_current_user
from ..database import get_db
from ..models import User
from ..storage.factory import get_storage
from .. import crud, google_auth, schemas

router = APIRouter(prefix="/api/users", tags=["users"])


def _envelope(user: User) -> schemas.UserEnvelope:
    return schemas.UserEnvelope(user=schemas.UserOut.model_validate(user))

def _login_response(user: User) -> schemas.LoginResponse:
    return schemas.LoginResponse(
        user=schemas.UserOut.model_validate(user),
        token=create_access_token(user.id),
    )


@router.post("/register", response_model=schemas.MessageOut, status_code=201)
def register(data: schemas.RegisterRequest, db: Session = Depends(get_db)):
    crud.create_user(db, data.email, data.password, data.name)
    return schemas.MessageOut(message="User registered successfully")

@router.post("/login", response_model=schemas.LoginResponse)
def login(data: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = crud.authenticate_user(db, data.email, data.password)
    return _login_response(user)

@router.post("/google-login", response_model=schemas.LoginResponse)
def google_login(data: schemas.GoogleLoginRequest, db: Session = Depends(get_db), storage = Depends(get_storage)):
    identity = google_auth.verify_google_credential(data.credential)
    user = crud.upsert_external_user(db, identity.email, identity.name, identity.picture, storage)
    return _login_response(user)

@router.get("/me", response_model=schemas.UserEnvelope)
def me(current_user: User = Depends(get_current_user)):
    return _envelope(current_user)

@router.post("/update-profile-picture", response_model=schemas.UserEnvelope)
def update_profile_picture(data: schemas.PictureUpdate, db: Session = Depends(get_db),
                           current_user: User = Depends(get_current_user), storage = Depends(get_storage)):
    return _envelope(crud.update_profile_picture(db, current_user, data.picture_url, storage))

@router.post("/reset-profile-picture", response_model=schemas.UserEnvelope)
def reset_profile_picture(db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
                          storage = Depends(get_storage)):
    return _envelope(crud.reset_profile_picture(db, current_user, storage))

@router.post("/update-name", response_model=schemas.UserEnvelope)
def update_name(data: schemas.NameUpdate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _envelope(crud.update_name(db, current_user, data.name))

@router.get("", response_model=list[schemas.UserSummary])
def list_all(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [schemas.UserSummary.from_user(u) for u in crud.list_users(db)]
