from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..errors import NotFound
from ..models import User
from .. import crud, schemas

router = APIRouter(prefix="/api/todos", tags=["todos"])

@router.get("", response_model=list[schemas.TodoView])
def list_all(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [schemas.TodoView.for_viewer(t, current_user) for t in crud.list_todos(db, current_user)]

@router.get("/{todo_id}", response_model=schemas.TodoView)
def get_one(todo_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    obj = crud.get_visible_todo(db, todo_id, current_user)
    if not obj:
        raise NotFound("Todo not found")
    return schemas.TodoView.for_viewer(obj, current_user)

@router.post("", response_model=schemas.TodoView, status_code=201)
def create(data: schemas.TodoCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    obj = crud.create_todo(db, current_user, data.title)
    return schemas.TodoView.for_viewer(obj, current_user)

@router.put("/{todo_id}", response_model=schemas.TodoView)
def update(todo_id: int, data: schemas.TodoUpdate, db: Session = Depends(get_db),
           current_user: User = Depends(get_current_user)):
    obj = crud.update_todo(db, current_user, todo_id, data)
    return schemas.TodoView.for_viewer(obj, current_user)

@router.delete("/{todo_id}", status_code=204)
def soft_delete(todo_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    crud.delete_todo(db, current_user, todo_id)
    return Response(status_code=204)
