"""
Database abstraction for SQLAlchemy (SQLite/Postgres) and an in-memory implementation.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    and_,
    create_engine,
    event,
    or_,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from status_backend.errors import StorageError

logger = logging.getLogger(__name__)

# Assignee name used when a task belongs to nobody in particular.
UNASSIGNED = "team"
DEFAULT_ORG = "PHG"
# Fixed row id for the project and whiteboard-state singletons.
SINGLETON_ID = 1

TASK_FIELDS = (
    "phase",
    "goal",
    "need",
    "comments",
    "execute",
    "stage",
    "comment_area",
    "assigned_to",
)


class DbClient(Protocol):
    """Interface for database access."""

    def create_task(self, fields: dict) -> "TaskRecord":
        ...

    def list_tasks(self) -> list["TaskRecord"]:
        ...

    def get_task(self, task_id: int) -> Optional["TaskRecord"]:
        ...

    def update_task(self, task_id: int, fields: dict) -> int:
        ...

    def delete_task(self, task_id: int) -> int:
        ...

    def count_tasks(self) -> int:
        ...

    def count_tasks_assigned_to(self, member_id: int) -> int:
        ...

    def create_member(
        self, username: str, email: str, org: str = DEFAULT_ORG
    ) -> "TeamMemberRecord":
        ...

    def list_members(self) -> list["TeamMemberRecord"]:
        ...

    def get_member(self, member_id: int) -> Optional["TeamMemberRecord"]:
        ...

    def count_members(self) -> int:
        ...

    def offboard_member(self, member_id: int, reassign_to: str) -> Optional[int]:
        ...

    def delete_member_if_unassigned(self, member_id: int) -> Optional[int]:
        ...

    def get_project_name(self) -> Optional[str]:
        ...

    def save_project_name(self, name: str) -> None:
        ...

    def get_whiteboard_state(self) -> Optional[Any]:
        ...

    def save_whiteboard_state(self, state: Any) -> None:
        ...

    def create_snapshot(
        self, canvas_image: str, sticky_notes: Any
    ) -> "SnapshotRecord":
        ...

    def get_latest_snapshot(self) -> Optional["SnapshotRecord"]:
        ...

    def count_snapshots(self) -> int:
        ...


@dataclass
class TaskRecord:
    id: int
    phase: str = ""
    goal: str = ""
    need: str = ""
    comments: str = ""
    execute: str = ""
    stage: str = ""
    comment_area: str = ""
    assigned_to: str = UNASSIGNED
    assignee_id: Optional[int] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "phase": self.phase,
            "goal": self.goal,
            "need": self.need,
            "comments": self.comments,
            "execute": self.execute,
            "stage": self.stage,
            "commentArea": self.comment_area,
            "assigned_to": self.assigned_to,
            "assignee_id": self.assignee_id,
        }


@dataclass
class TeamMemberRecord:
    id: int
    username: str
    email: str
    org: str = DEFAULT_ORG
    not_working: bool = False

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "org": self.org,
            "not_working": self.not_working,
        }


@dataclass
class SnapshotRecord:
    id: int
    canvas_image: str
    sticky_notes: Any
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "canvasImage": self.canvas_image,
            "stickyNotes": self.sticky_notes,
            "updatedAt": self.updated_at,
        }


def _task_values(fields: dict) -> dict:
    values = {key: fields[key] for key in TASK_FIELDS if key in fields}
    values["assigned_to"] = values.get("assigned_to") or UNASSIGNED
    return values


def _begin_immediate(engine) -> None:
    """
    Take SQLite's write lock when a transaction starts, so a read followed by
    a write in one session cannot interleave with another writer.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class InMemoryDbClient:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.tasks: Dict[int, TaskRecord] = {}
        self.members: Dict[int, TeamMemberRecord] = {}
        self.snapshots: Dict[int, SnapshotRecord] = {}
        self.project_name: Optional[str] = None
        self.whiteboard_state: Optional[Any] = None
        self._counters = self._new_counters()
        # Guards the multi-step member operations.
        self._lock = threading.RLock()

    @staticmethod
    def _new_counters() -> dict:
        return {
            "tasks": itertools.count(1),
            "members": itertools.count(1),
            "snapshots": itertools.count(1),
        }

    def _resolve_assignee(self, name: str) -> Optional[int]:
        for member in self.members.values():
            if member.username == name:
                return member.id
        return None

    @staticmethod
    def _references(task: TaskRecord, member: TeamMemberRecord) -> bool:
        if task.assignee_id is not None:
            return task.assignee_id == member.id
        return task.assigned_to == member.username

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.tasks.clear()
            self.members.clear()
            self.snapshots.clear()
            self.project_name = None
            self.whiteboard_state = None
            self._counters = self._new_counters()

    def create_task(self, fields: dict) -> TaskRecord:
        with self._lock:
            values = _task_values(fields)
            record = TaskRecord(
                id=next(self._counters["tasks"]),
                assignee_id=self._resolve_assignee(values["assigned_to"]),
                **values,
            )
            self.tasks[record.id] = record
            return record

    def list_tasks(self) -> list[TaskRecord]:
        return list(self.tasks.values())

    def get_task(self, task_id: int) -> Optional[TaskRecord]:
        return self.tasks.get(task_id)

    def update_task(self, task_id: int, fields: dict) -> int:
        with self._lock:
            task = self.tasks.get(task_id)
            if not task:
                return 0
            values = {key: fields[key] for key in TASK_FIELDS if key in fields}
            if "assigned_to" in values:
                values["assigned_to"] = values["assigned_to"] or UNASSIGNED
                task.assignee_id = self._resolve_assignee(values["assigned_to"])
            for key, value in values.items():
                setattr(task, key, value)
            return 1

    def delete_task(self, task_id: int) -> int:
        with self._lock:
            return 1 if self.tasks.pop(task_id, None) else 0

    def count_tasks(self) -> int:
        return len(self.tasks)

    def count_tasks_assigned_to(self, member_id: int) -> int:
        member = self.members.get(member_id)
        if not member:
            return 0
        return sum(1 for task in self.tasks.values() if self._references(task, member))

    def create_member(
        self, username: str, email: str, org: str = DEFAULT_ORG
    ) -> TeamMemberRecord:
        with self._lock:
            record = TeamMemberRecord(
                id=next(self._counters["members"]),
                username=username,
                email=email,
                org=org,
            )
            self.members[record.id] = record
            return record

    def list_members(self) -> list[TeamMemberRecord]:
        return list(self.members.values())

    def get_member(self, member_id: int) -> Optional[TeamMemberRecord]:
        return self.members.get(member_id)

    def count_members(self) -> int:
        return len(self.members)

    def offboard_member(self, member_id: int, reassign_to: str) -> Optional[int]:
        """
        Move every task referencing the member to ``reassign_to`` and mark the
        member not-working. Returns the number of reassigned tasks, or None if
        the member does not exist.
        """
        with self._lock:
            member = self.members.get(member_id)
            if not member:
                return None
            target_id = self._resolve_assignee(reassign_to)
            reassigned = 0
            for task in self.tasks.values():
                if self._references(task, member):
                    task.assigned_to = reassign_to
                    task.assignee_id = target_id
                    reassigned += 1
            member.not_working = True
            return reassigned

    def delete_member_if_unassigned(self, member_id: int) -> Optional[int]:
        """
        Delete the member unless tasks still reference it. Returns the number
        of referencing tasks (0 means deleted), or None if the member does not
        exist.
        """
        with self._lock:
            member = self.members.get(member_id)
            if not member:
                return None
            assigned = self.count_tasks_assigned_to(member_id)
            if assigned:
                return assigned
            del self.members[member_id]
            return 0

    def get_project_name(self) -> Optional[str]:
        return self.project_name

    def save_project_name(self, name: str) -> None:
        self.project_name = name

    def get_whiteboard_state(self) -> Optional[Any]:
        return self.whiteboard_state

    def save_whiteboard_state(self, state: Any) -> None:
        self.whiteboard_state = state

    def create_snapshot(self, canvas_image: str, sticky_notes: Any) -> SnapshotRecord:
        with self._lock:
            record = SnapshotRecord(
                id=next(self._counters["snapshots"]),
                canvas_image=canvas_image,
                sticky_notes=sticky_notes,
            )
            self.snapshots[record.id] = record
            return record

    def get_latest_snapshot(self) -> Optional[SnapshotRecord]:
        if not self.snapshots:
            return None
        return max(self.snapshots.values(), key=lambda s: (s.updated_at, s.id))

    def count_snapshots(self) -> int:
        return len(self.snapshots)


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., an
    embedded SQLite file or Postgres).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        connect_args = {}
        if database_url.startswith("sqlite"):
            # FastAPI runs sync handlers on a threadpool.
            connect_args["check_same_thread"] = False
        self.engine = create_engine(
            database_url,
            connect_args=connect_args,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        if self.engine.dialect.name == "sqlite":
            _begin_immediate(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            self.engine.dispose()
            logger.exception("Could not prepare database schema")
            raise StorageError(str(exc)) from exc

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.Session()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Database operation failed")
            raise StorageError(str(exc)) from exc
        finally:
            session.close()

    @staticmethod
    def _to_task_record(row: "TaskRow") -> TaskRecord:
        return TaskRecord(
            id=row.id,
            phase=row.phase,
            goal=row.goal,
            need=row.need,
            comments=row.comments,
            execute=row.execute,
            stage=row.stage,
            comment_area=row.comment_area,
            assigned_to=row.assigned_to,
            assignee_id=row.assignee_id,
        )

    @staticmethod
    def _to_member_record(row: "TeamMemberRow") -> TeamMemberRecord:
        return TeamMemberRecord(
            id=row.id,
            username=row.username,
            email=row.email,
            org=row.org,
            not_working=row.not_working,
        )

    @staticmethod
    def _to_snapshot_record(row: "SnapshotRow") -> SnapshotRecord:
        return SnapshotRecord(
            id=row.id,
            canvas_image=row.canvas_image,
            sticky_notes=row.sticky_notes,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _resolve_assignee(session: Session, name: str) -> Optional[int]:
        # Shared lock so a concurrent removal of that member waits for us.
        stmt = (
            select(TeamMemberRow.id)
            .where(TeamMemberRow.username == name)
            .order_by(TeamMemberRow.id.asc())
            .limit(1)
            .with_for_update(read=True)
        )
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _references(member: "TeamMemberRow"):
        return or_(
            TaskRow.assignee_id == member.id,
            and_(
                TaskRow.assignee_id.is_(None),
                TaskRow.assigned_to == member.username,
            ),
        )

    @staticmethod
    def _lock_member(session: Session, member_id: int) -> Optional["TeamMemberRow"]:
        stmt = (
            select(TeamMemberRow)
            .where(TeamMemberRow.id == member_id)
            .with_for_update()
        )
        return session.execute(stmt).scalar_one_or_none()

    def create_task(self, fields: dict) -> TaskRecord:
        values = _task_values(fields)
        with self._session() as session:
            row = TaskRow(
                assignee_id=self._resolve_assignee(session, values["assigned_to"]),
                **values,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_task_record(row)

    def list_tasks(self) -> list[TaskRecord]:
        with self._session() as session:
            rows = session.execute(select(TaskRow).order_by(TaskRow.id.asc())).scalars()
            return [self._to_task_record(row) for row in rows]

    def get_task(self, task_id: int) -> Optional[TaskRecord]:
        with self._session() as session:
            row = session.get(TaskRow, task_id)
            return self._to_task_record(row) if row else None

    def update_task(self, task_id: int, fields: dict) -> int:
        with self._session() as session:
            row = session.get(TaskRow, task_id)
            if not row:
                return 0
            values = {key: fields[key] for key in TASK_FIELDS if key in fields}
            if "assigned_to" in values:
                values["assigned_to"] = values["assigned_to"] or UNASSIGNED
                row.assignee_id = self._resolve_assignee(
                    session, values["assigned_to"]
                )
            for key, value in values.items():
                setattr(row, key, value)
            session.commit()
            return 1

    def delete_task(self, task_id: int) -> int:
        with self._session() as session:
            deleted = (
                session.query(TaskRow)
                .filter(TaskRow.id == task_id)
                .delete(synchronize_session=False)
            )
            session.commit()
            return deleted or 0

    def count_tasks(self) -> int:
        with self._session() as session:
            return session.query(TaskRow).count()

    def count_tasks_assigned_to(self, member_id: int) -> int:
        with self._session() as session:
            member = session.get(TeamMemberRow, member_id)
            if not member:
                return 0
            return session.query(TaskRow).filter(self._references(member)).count()

    def create_member(
        self, username: str, email: str, org: str = DEFAULT_ORG
    ) -> TeamMemberRecord:
        with self._session() as session:
            row = TeamMemberRow(username=username, email=email, org=org)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_member_record(row)

    def list_members(self) -> list[TeamMemberRecord]:
        with self._session() as session:
            rows = session.execute(
                select(TeamMemberRow).order_by(TeamMemberRow.id.asc())
            ).scalars()
            return [self._to_member_record(row) for row in rows]

    def get_member(self, member_id: int) -> Optional[TeamMemberRecord]:
        with self._session() as session:
            row = session.get(TeamMemberRow, member_id)
            return self._to_member_record(row) if row else None

    def count_members(self) -> int:
        with self._session() as session:
            return session.query(TeamMemberRow).count()

    def offboard_member(self, member_id: int, reassign_to: str) -> Optional[int]:
        with self._session() as session:
            member = self._lock_member(session, member_id)
            if not member:
                return None
            target_id = self._resolve_assignee(session, reassign_to)
            reassigned = (
                session.query(TaskRow)
                .filter(self._references(member))
                .update(
                    {
                        TaskRow.assigned_to: reassign_to,
                        TaskRow.assignee_id: target_id,
                    },
                    synchronize_session=False,
                )
            )
            member.not_working = True
            session.commit()
            return reassigned or 0

    def delete_member_if_unassigned(self, member_id: int) -> Optional[int]:
        with self._session() as session:
            member = self._lock_member(session, member_id)
            if not member:
                return None
            assigned = session.query(TaskRow).filter(self._references(member)).count()
            if assigned:
                session.rollback()
                return assigned
            session.delete(member)
            session.commit()
            return 0

    def get_project_name(self) -> Optional[str]:
        with self._session() as session:
            row = session.get(ProjectRow, SINGLETON_ID)
            return row.name if row else None

    def save_project_name(self, name: str) -> None:
        with self._session() as session:
            existing = session.get(ProjectRow, SINGLETON_ID)
            if existing:
                existing.name = name
            else:
                session.add(ProjectRow(id=SINGLETON_ID, name=name))
            session.commit()

    def get_whiteboard_state(self) -> Optional[Any]:
        with self._session() as session:
            row = session.get(WhiteboardStateRow, SINGLETON_ID)
            return row.state if row else None

    def save_whiteboard_state(self, state: Any) -> None:
        with self._session() as session:
            existing = session.get(WhiteboardStateRow, SINGLETON_ID)
            if existing:
                existing.state = state
            else:
                session.add(WhiteboardStateRow(id=SINGLETON_ID, state=state))
            session.commit()

    def create_snapshot(self, canvas_image: str, sticky_notes: Any) -> SnapshotRecord:
        with self._session() as session:
            row = SnapshotRow(
                canvas_image=canvas_image,
                sticky_notes=sticky_notes,
                updated_at=time.time(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_snapshot_record(row)

    def get_latest_snapshot(self) -> Optional[SnapshotRecord]:
        with self._session() as session:
            stmt = (
                select(SnapshotRow)
                .order_by(SnapshotRow.updated_at.desc(), SnapshotRow.id.desc())
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_snapshot_record(row) if row else None

    def count_snapshots(self) -> int:
        with self._session() as session:
            return session.query(SnapshotRow).count()


Base = declarative_base()


class TeamMemberRow(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True)
    username = Column(String, nullable=False, index=True)
    email = Column(String, nullable=False)
    org = Column(String, nullable=False, default=DEFAULT_ORG)
    not_working = Column(Boolean, nullable=False, default=False)


class TaskRow(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True)
    phase = Column(String, nullable=False, default="")
    goal = Column(String, nullable=False, default="")
    need = Column(String, nullable=False, default="")
    comments = Column(Text, nullable=False, default="")
    execute = Column(String, nullable=False, default="")
    stage = Column(String, nullable=False, default="")
    comment_area = Column(Text, nullable=False, default="")
    assigned_to = Column(String, nullable=False, default=UNASSIGNED, index=True)
    assignee_id = Column(
        Integer, ForeignKey("team_members.id"), nullable=True, index=True
    )


class ProjectRow(Base):
    __tablename__ = "project_meta"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False, default="")


class WhiteboardStateRow(Base):
    __tablename__ = "whiteboard_state"

    id = Column(Integer, primary_key=True, autoincrement=False)
    state = Column("state_json", JSON, nullable=False)


class SnapshotRow(Base):
    __tablename__ = "whiteboard_snapshots"

    id = Column(Integer, primary_key=True)
    canvas_image = Column(Text, nullable=False)
    sticky_notes = Column(JSON, nullable=False)
    updated_at = Column(Float, nullable=False, index=True)
