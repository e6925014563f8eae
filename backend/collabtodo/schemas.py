from datetime import datetime
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import List, Optional

from .avatars import default_avatar


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# --- users ---

class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None

class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None

class GoogleLoginRequest(CamelModel):
    credential: Optional[str] = None

class PictureUpdate(CamelModel):
    picture_url: Optional[str] = None

class NameUpdate(CamelModel):
    name: Optional[str] = None

class UserOut(CamelModel):
    id: int
    name: str
    email: str
    picture: Optional[str]
    picture_source: str
    is_google_picture: bool
    created_at: Optional[datetime]
    last_login_at: Optional[datetime]

class UserEnvelope(CamelModel):
    user: UserOut

class LoginResponse(CamelModel):
    user: UserOut
    token: str

class MessageOut(CamelModel):
    message: str

class UserSummary(CamelModel):
    id: int
    name: str
    avatar: str

    @classmethod
    def from_user(cls, user) -> "UserSummary":
        return cls(id=user.id, name=user.name, avatar=user.picture or default_avatar(user.name))


# --- todos ---

class TodoCreate(CamelModel):
    title: Optional[str] = None

class TodoUpdate(CamelModel):
    """Only these keys can be changed by a client, anything else is dropped."""
    title: Optional[str] = None
    completed: Optional[bool] = None

class TodoView(CamelModel):
    id: int
    title: str
    completed: bool
    created_at: datetime
    updated_at: Optional[datetime]
    completed_at: Optional[datetime]
    owner: UserSummary
    assigned_users: List[UserSummary]
    is_creator: bool
    is_assigned: bool

    @classmethod
    def for_viewer(cls, todo, viewer) -> "TodoView":
        assignee_ids = {u.id for u in todo.assignees}
        return cls(
            id=todo.id,
            title=todo.title,
            completed=todo.completed,
            created_at=todo.created_at,
            updated_at=todo.updated_at,
            completed_at=todo.completed_at,
            owner=UserSummary.from_user(todo.owner),
            assigned_users=[UserSummary.from_user(u) for u in todo.assignees],
            is_creator=todo.owner_id == viewer.id,
            is_assigned=viewer.id in assignee_ids,
        )


# --- archive ---

class DeletedTodoCreate(CamelModel):
    title: Optional[str] = None
    completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    original_id: Optional[int] = None

class DeletedTodoOut(CamelModel):
    id: int
    title: str
    completed: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    completed_at: Optional[datetime]
    deleted_at: datetime
    original_id: Optional[int]


# --- collaboration ---

class AssignRequest(CamelModel):
    user_id: int

class CommentCreate(CamelModel):
    content: Optional[str] = None

class CommentView(CamelModel):
    id: int
    todo_id: int
    content: str
    created_at: datetime
    author: UserSummary

    @classmethod
    def from_comment(cls, comment) -> "CommentView":
        return cls(
            id=comment.id,
            todo_id=comment.todo_id,
            content=comment.content,
            created_at=comment.created_at,
            author=UserSummary.from_user(comment.author),
        )
