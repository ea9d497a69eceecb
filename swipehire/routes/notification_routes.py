from fastapi import APIRouter, Depends, HTTPException, Request, status

from swipehire.core.context import AppContext, get_context
from swipehire.schemas import NotificationCreate

router = APIRouter()


@router.get("/users/{user_id}/notifications")
async def list_notifications(user_id: str, request: Request, ctx: AppContext = Depends(get_context)):
    """Paginated notifications plus total/unread/read counts. Filters: type, isRead."""
    result = await ctx.notifications.get_notifications(user_id, dict(request.query_params))
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.post("/users/{user_id}/notifications", status_code=status.HTTP_201_CREATED)
async def create_notification(user_id: str, notification: NotificationCreate, ctx: AppContext = Depends(get_context)):
    result = await ctx.notifications.create_notification(user_id, notification.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.post("/users/{user_id}/notifications/mark-all-read")
async def mark_all_notifications_read(user_id: str, ctx: AppContext = Depends(get_context)):
    result = await ctx.notifications.mark_all_as_read(user_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: str, ctx: AppContext = Depends(get_context)):
    result = await ctx.notifications.mark_as_read(notification_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return result
