import logging
import uuid

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.exceptions import (
    InvalidIdentifier,
    NotFound,
    StorageError,
    ValidationFailed,
)
from app.database import STORAGE_ERRORS
from app.models import Task, TaskCategoryPayload, TaskPayload

logger = logging.getLogger(__name__)


def parse_task_id(task_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(task_id)
    except (TypeError, ValueError):
        return None


def _require_task_id(task_id: str) -> uuid.UUID:
    """Reject malformed identifiers before touching the database."""
    key = parse_task_id(task_id)
    if key is None:
        raise InvalidIdentifier("Invalid task ID")
    return key


def _require_title_and_category(task_data: TaskPayload | None) -> TaskPayload:
    task_data = task_data or TaskPayload()
    if not task_data.title or not task_data.category:
        raise ValidationFailed("Title and category are required.")
    return task_data


class TaskService:
    @staticmethod
    async def create_task(task_data: TaskPayload | None, db: AsyncSession) -> Task:
        task_data = _require_title_and_category(task_data)
        task = Task(
            title=task_data.title,
            description=task_data.description or "",
            category=task_data.category,
        )
        try:
            db.add(task)
            await db.commit()
            await db.refresh(task)
        except STORAGE_ERRORS:
            logger.exception("Error adding task")
            raise StorageError("Error adding task")
        return task

    @staticmethod
    async def get_all_tasks(db: AsyncSession) -> list[Task]:
        try:
            result = await db.exec(select(Task))
            return list(result.all())
        except STORAGE_ERRORS:
            logger.exception("Error fetching tasks")
            raise StorageError("Error fetching tasks")

    @staticmethod
    async def update_task(
        task_id: str, task_data: TaskPayload | None, db: AsyncSession
    ):
        """Replace title, description and category.

        A task whose stored values already equal the submitted ones counts as
        not found, same as a missing task: nothing was modified. A malformed
        id cannot match any task either.
        """
        task_data = _require_title_and_category(task_data)
        key = parse_task_id(task_id)
        if key is None:
            raise NotFound("Task not found or no changes made.")
        values = {
            "title": task_data.title,
            "description": task_data.description or "",
            "category": task_data.category,
        }
        try:
            task = await db.get(Task, key)
            if task is None or all(
                getattr(task, field) == value for field, value in values.items()
            ):
                raise NotFound("Task not found or no changes made.")
            task.sqlmodel_update(values)
            await db.commit()
        except STORAGE_ERRORS:
            logger.exception("Error updating task %s", task_id)
            raise StorageError("Error updating task")

    @staticmethod
    async def update_category(
        task_id: str, task_data: TaskCategoryPayload | None, db: AsyncSession
    ):
        key = _require_task_id(task_id)
        if task_data is None or not task_data.category:
            raise ValidationFailed("Category is required.")
        try:
            task = await db.get(Task, key)
            if task is None:
                raise NotFound("Task not found")
            task.category = task_data.category
            await db.commit()
        except STORAGE_ERRORS:
            logger.exception("Error updating task %s", task_id)
            raise StorageError("Error updating task")

    @staticmethod
    async def delete_task(task_id: str, db: AsyncSession):
        key = parse_task_id(task_id)
        if key is None:
            raise NotFound("Task not found")
        try:
            task = await db.get(Task, key)
            if task is None:
                raise NotFound("Task not found")
            await db.delete(task)
            await db.commit()
        except STORAGE_ERRORS:
            logger.exception("Error deleting task %s", task_id)
            raise StorageError("Error deleting task")
