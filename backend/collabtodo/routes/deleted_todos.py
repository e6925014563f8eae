from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from .. import crud, schemas

router = APIRouter(prefix="/api/deleted-todos", tags=["deleted-todos"])

@router.get("", response_model=list[schemas.DeletedTodoOut])
def list_all(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [schemas.DeletedTodoOut.model_validate(d) for d in crud.list_deleted_todos(db, current_user)]

@router.post("", response_model=schemas.DeletedTodoOut, status_code=201)
def archive(data: schemas.DeletedTodoCreate, db: Session = Depends(get_db),
            current_user: User = Depends(get_current_user)):
    return schemas.DeletedTodoOut.model_validate(crud.archive_todo(db, current_user, data))

@router.delete("/{deleted_id}", status_code=204)
def purge(deleted_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    crud.purge_deleted_todo(db, current_user, deleted_id)
    return Response(status_code=204)

@router.post("/{deleted_id}/restore", response_model=schemas.TodoView, status_code=201)
def restore(deleted_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    todo = crud.restore_deleted_todo(db, current_user, deleted_id)
    return schemas.TodoView.for_viewer(todo, current_user)
