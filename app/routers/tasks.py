from fastapi import APIRouter, Body, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.database import get_db
from app.models import MessageResponse, TaskCategoryPayload, TaskPayload, TaskResponse
from app.services.task_service import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskPayload | None = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Create a new task"""
    return await TaskService.create_task(task_data, db)


@router.get("", response_model=list[TaskResponse])
async def get_tasks(db: AsyncSession = Depends(get_db)):
    return await TaskService.get_all_tasks(db)


@router.put("/{task_id}", response_model=MessageResponse)
async def update_task(
    task_id: str,
    task_data: TaskPayload | None = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Replace a task's title, description and category"""
    await TaskService.update_task(task_id, task_data, db)
    return {"message": "Task updated successfully"}


@router.patch("/{task_id}", response_model=MessageResponse)
async def update_task_category(
    task_id: str,
    task_data: TaskCategoryPayload | None = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Move a task to another category"""
    await TaskService.update_category(task_id, task_data, db)
    return {"message": "Task updated successfully"}


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(task_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a task"""
    await TaskService.delete_task(task_id, db)
    return {"message": "Task deleted successfully"}
