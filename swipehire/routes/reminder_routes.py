from fastapi import APIRouter, Depends, HTTPException, Request, status

from swipehire.core.context import AppContext, get_context
from swipehire.schemas import OwnedUpdate, ReminderCreate

router = APIRouter()


@router.get("/users/{user_id}/reminders")
async def list_reminders(user_id: str, request: Request, ctx: AppContext = Depends(get_context)):
    result = await ctx.reminders.get_reminders(user_id, dict(request.query_params))
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.post("/users/{user_id}/reminders", status_code=status.HTTP_201_CREATED)
async def create_reminder(user_id: str, reminder: ReminderCreate, ctx: AppContext = Depends(get_context)):
    result = await ctx.reminders.create_reminder(user_id, reminder.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.api_route("/reminders/{reminder_id}", methods=["PUT", "PATCH"])
async def update_reminder(reminder_id: str, updates: OwnedUpdate, ctx: AppContext = Depends(get_context)):
    result = await ctx.reminders.update_reminder(reminder_id, updates.userId, updates.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return result


@router.delete("/reminders/{reminder_id}")
async def delete_reminder(reminder_id: str, userId: str, ctx: AppContext = Depends(get_context)):
    result = await ctx.reminders.delete_reminder(reminder_id, userId)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return result
