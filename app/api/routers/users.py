from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.responses import envelope
from app.data.database import get_db
from app.services.user_service import UserService
from app.domain.schemas import UserCreate

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    service = UserService(db)
    return envelope(data=service.create_user(payload).model_dump(), status_code=201)

@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    service = UserService(db)
    return envelope(data=service.get_user(user_id).model_dump())
