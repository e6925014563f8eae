import re
import uuid
import logging
from io import BytesIO
from typing import List, Optional

from sqlalchemy import delete, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from . import avatars, passwords
from .errors import (
    DuplicateEmail, EmptyContent, EmptyName, Forbidden, InvalidCredentials,
    InvalidEmail, MissingField, MissingTitle, NotFound, WeakPassword,
)
from .models import Comment, DeletedTodo, Todo, User, todo_assignees, utcnow
from .schemas import DeletedTodoCreate, TodoUpdate
from .storage.base import StorageBackend

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
FILES_URL_PREFIX = "/api/files/"


# ---------------------------------------------------------------------------
# users
# ---------------------------------------------------------------------------

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()

def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.name, User.id).all()


def create_user(db: Session, email: Optional[str], password: Optional[str], name: Optional[str]) -> User:
    """Register a password account. Every violated password rule is reported at once."""
    if not email or not password or not name or not name.strip():
        raise MissingField()

    email = email.strip().lower()
    if not EMAIL_RE.match(email):
        raise InvalidEmail()

    problems = passwords.password_problems(password)
    if problems:
        raise WeakPassword(problems)

    if get_user_by_email(db, email):
        raise DuplicateEmail()

    name = name.strip()
    user = User(
        email=email,
        password_hash=passwords.hash_password(password),
        name=name,
        picture=avatars.default_avatar(name),
        picture_source="default",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration of the same email
        db.rollback()
        raise DuplicateEmail()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")
    return user


def authenticate_user(db: Session, email: Optional[str], password: Optional[str]) -> User:
    user = get_user_by_email(db, email) if email else None
    # unknown email, google-only account and wrong password all look the same
    if not user or not user.password_hash or not password:
        raise InvalidCredentials()
    if not passwords.verify_password(password, user.password_hash):
        raise InvalidCredentials()

    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def _replace_picture(db: Session, user: User, storage: StorageBackend,
                     picture: str, source: str, key: Optional[str] = None) -> User:
    """
    Point the user at a new picture and commit.
    The previously uploaded file is removed only once the commit succeeded;
    a failed commit removes the freshly uploaded one instead.
    """
    old_key = user.picture_key
    user.picture = picture
    user.picture_source = source
    user.picture_key = key
    try:
        db.commit()
    except Exception:
        db.rollback()
        if key:
            storage.delete(key)
        raise

    if old_key and old_key != key:
        storage.delete(old_key)
    db.refresh(user)
    return user


def upsert_external_user(db: Session, email: str, name: str, picture: Optional[str],
                         storage: StorageBackend) -> User:
    """Find-or-create by verified email; the external picture always wins."""
    email = email.strip().lower()
    user = get_user_by_email(db, email)
    if user is None:
        user = User(email=email, name=name)
        db.add(user)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            user = get_user_by_email(db, email)

    user.last_login_at = utcnow()
    _replace_picture(
        db, user, storage,
        picture=picture or avatars.default_avatar(user.name),
        source="google" if picture else "default",
    )
    logger.info(f"Google login for user {user.id}")
    return user


def update_profile_picture(db: Session, user: User, data_uri: Optional[str],
                           storage: StorageBackend) -> User:
    if not data_uri:
        raise MissingField("Picture data is required")
    data, ext = avatars.decode_data_uri(data_uri)

    key = storage.save(BytesIO(data), f"avatar_{user.id}_{uuid.uuid4().hex}{ext}")
    return _replace_picture(db, user, storage, picture=f"{FILES_URL_PREFIX}{key}", source="upload", key=key)


def reset_profile_picture(db: Session, user: User, storage: StorageBackend) -> User:
    return _replace_picture(db, user, storage, picture=avatars.default_avatar(user.name), source="default")


def update_name(db: Session, user: User, name: Optional[str]) -> User:
    if not name or not name.strip():
        raise EmptyName()
    user.name = name.strip()
    db.commit()
    db.refresh(user)
    return user


# ---------------------------------------------------------------------------
# todos
# ---------------------------------------------------------------------------

def _visible_to(user: User):
    assigned = select(todo_assignees.c.todo_id).where(todo_assignees.c.user_id == user.id)
    return or_(Todo.owner_id == user.id, Todo.id.in_(assigned))

def _with_people(query):
    return query.options(selectinload(Todo.owner), selectinload(Todo.assignees))


def list_todos(db: Session, user: User) -> List[Todo]:
    return _with_people(db.query(Todo)).filter(_visible_to(user)).order_by(Todo.id.desc()).all()

def get_visible_todo(db: Session, todo_id: int, user: User) -> Optional[Todo]:
    return _with_people(db.query(Todo)).filter(Todo.id == todo_id, _visible_to(user)).first()

def get_owned_todo(db: Session, todo_id: int, user: User) -> Optional[Todo]:
    return db.query(Todo).filter(Todo.id == todo_id, Todo.owner_id == user.id).first()


def create_todo(db: Session, user: User, title: Optional[str]) -> Todo:
    if not title or not title.strip():
        raise MissingTitle()
    obj = Todo(
        title=title.strip(),
        completed=False,
        owner_id=user.id,
        updated_at=None,
        completed_at=None,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_todo(db: Session, user: User, todo_id: int, data: TodoUpdate) -> Todo:
    """
    Owner-only partial update.

    A title change stamps updated_at; a completion toggle on its own does not.
    completed_at follows the completed flag on transitions only.
    """
    obj = get_owned_todo(db, todo_id, user)
    if not obj:
        raise NotFound("Todo not found")

    fields = data.model_fields_set
    now = utcnow()

    if "title" in fields:
        if not data.title or not data.title.strip():
            raise MissingTitle()
        obj.title = data.title.strip()
        obj.updated_at = now

    if "completed" in fields and data.completed is not None and data.completed != obj.completed:
        obj.completed = data.completed
        obj.completed_at = now if data.completed else None

    db.commit()
    db.refresh(obj)
    return obj


def delete_todo(db: Session, user: User, todo_id: int):
    obj = get_owned_todo(db, todo_id, user)
    if not obj:
        raise NotFound("Todo not found")
    db.delete(obj)
    db.commit()
    logger.info(f"User {user.id} deleted todo {todo_id}")


# ---------------------------------------------------------------------------
# archive
# ---------------------------------------------------------------------------

def archive_todo(db: Session, user: User, data: DeletedTodoCreate) -> DeletedTodo:
    if not data.title or not data.title.strip():
        raise MissingTitle()
    obj = DeletedTodo(
        owner_id=user.id,
        title=data.title.strip(),
        completed=data.completed,
        created_at=data.created_at,
        updated_at=data.updated_at,
        completed_at=data.completed_at,
        deleted_at=data.deleted_at or utcnow(),
        original_id=data.original_id,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info(f"User {user.id} archived todo {data.original_id} as {obj.id}")
    return obj


def list_deleted_todos(db: Session, user: User) -> List[DeletedTodo]:
    return (
        db.query(DeletedTodo)
        .filter(DeletedTodo.owner_id == user.id)
        .order_by(DeletedTodo.deleted_at.desc(), DeletedTodo.id.desc())
        .all()
    )

def _get_owned_deleted(db: Session, user: User, deleted_id: int) -> DeletedTodo:
    obj = (
        db.query(DeletedTodo)
        .filter(DeletedTodo.id == deleted_id, DeletedTodo.owner_id == user.id)
        .first()
    )
    if not obj:
        raise NotFound("Deleted todo not found")
    return obj


def purge_deleted_todo(db: Session, user: User, deleted_id: int):
    obj = _get_owned_deleted(db, user, deleted_id)
    db.delete(obj)
    db.commit()
    logger.info(f"User {user.id} purged archived todo {deleted_id}")


def restore_deleted_todo(db: Session, user: User, deleted_id: int) -> Todo:
    archived = _get_owned_deleted(db, user, deleted_id)
    todo = Todo(
        title=archived.title,
        completed=archived.completed,
        owner_id=user.id,
        created_at=archived.created_at or utcnow(),
        updated_at=archived.updated_at,
        completed_at=archived.completed_at if archived.completed else None,
    )
    db.add(todo)
    db.delete(archived)
    db.commit()
    db.refresh(todo)
    logger.info(f"User {user.id} restored archived todo {deleted_id} as {todo.id}")
    return todo


# ---------------------------------------------------------------------------
# collaboration
# ---------------------------------------------------------------------------

def _require_visible(db: Session, todo_id: int, user: User) -> Todo:
    todo = get_visible_todo(db, todo_id, user)
    if not todo:
        raise NotFound("Todo not found")
    return todo


def list_assignees(db: Session, user: User, todo_id: int) -> List[User]:
    return list(_require_visible(db, todo_id, user).assignees)


def assign_user(db: Session, user: User, todo_id: int, assignee_id: int) -> List[User]:
    _require_visible(db, todo_id, user)
    if not get_user(db, assignee_id):
        raise NotFound("User not found")

    exists = db.execute(
        select(todo_assignees.c.todo_id).where(
            todo_assignees.c.todo_id == todo_id,
            todo_assignees.c.user_id == assignee_id,
        )
    ).first()
    if not exists:
        try:
            db.execute(insert(todo_assignees).values(todo_id=todo_id, user_id=assignee_id))
            db.commit()
            logger.info(f"User {user.id} assigned user {assignee_id} to todo {todo_id}")
        except IntegrityError:
            # a concurrent request inserted the same pair first
            db.rollback()

    db.expire_all()
    return list_assignees(db, user, todo_id)


def unassign_user(db: Session, user: User, todo_id: int, assignee_id: int) -> List[User]:
    _require_visible(db, todo_id, user)
    result = db.execute(
        delete(todo_assignees).where(
            todo_assignees.c.todo_id == todo_id,
            todo_assignees.c.user_id == assignee_id,
        )
    )
    db.commit()
    if result.rowcount:
        logger.info(f"User {user.id} unassigned user {assignee_id} from todo {todo_id}")

    db.expire_all()
    # the caller may just have removed their own access
    todo = get_visible_todo(db, todo_id, user)
    return list(todo.assignees) if todo else []


def list_comments(db: Session, user: User, todo_id: int) -> List[Comment]:
    _require_visible(db, todo_id, user)
    return (
        db.query(Comment)
        .options(selectinload(Comment.author))
        .filter(Comment.todo_id == todo_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )


def add_comment(db: Session, user: User, todo_id: int, content: Optional[str]) -> Comment:
    _require_visible(db, todo_id, user)
    if not content or not content.strip():
        raise EmptyContent()
    obj = Comment(todo_id=todo_id, author_id=user.id, content=content.strip())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def delete_comment(db: Session, user: User, todo_id: int, comment_id: int):
    """Author or todo owner only; an assignee cannot remove someone else's comment."""
    comment = db.get(Comment, comment_id)
    if not comment or comment.todo_id != todo_id:
        raise NotFound("Comment not found")
    if comment.author_id != user.id and comment.todo.owner_id != user.id:
        raise Forbidden("Not authorized to delete this comment")
    db.delete(comment)
    db.commit()
