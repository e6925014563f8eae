from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from .. import crud, schemas

router = APIRouter(prefix="/api/todos/{todo_id}", tags=["collaboration"])


def _summaries(users):
    return [schemas.UserSummary.from_user(u) for u in users]


@router.get("/assign", response_model=list[schemas.UserSummary])
def list_assignees(todo_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _summaries(crud.list_assignees(db, current_user, todo_id))

@router.post("/assign", response_model=list[schemas.UserSummary])
def assign(todo_id: int, data: schemas.AssignRequest, db: Session = Depends(get_db),
           current_user: User = Depends(get_current_user)):
    return _summaries(crud.assign_user(db, current_user, todo_id, data.user_id))

@router.delete("/assign/{user_id}", response_model=list[schemas.UserSummary])
def unassign(todo_id: int, user_id: int, db: Session = Depends(get_db),
             current_user: User = Depends(get_current_user)):
    return _summaries(crud.unassign_user(db, current_user, todo_id, user_id))


@router.get("/comments", response_model=list[schemas.CommentView])
def list_comments(todo_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [schemas.CommentView.from_comment(c) for c in crud.list_comments(db, current_user, todo_id)]

@router.post("/comments", response_model=schemas.CommentView, status_code=201)
def add_comment(todo_id: int, data: schemas.CommentCreate, db: Session = Depends(get_db),
                current_user: User = Depends(get_current_user)):
    return schemas.CommentView.from_comment(crud.add_comment(db, current_user, todo_id, data.content))

@router.delete("/comments/{comment_id}", status_code=204)
def delete_comment(todo_id: int, comment_id: int, db: Session = Depends(get_db),
                   current_user: User = Depends(get_current_user)):
    crud.delete_comment(db, current_user, todo_id, comment_id)
    return Response(status_code=204)
