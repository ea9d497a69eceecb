from fastapi import APIRouter, Depends, HTTPException, Request, status

from swipehire.core.context import AppContext, get_context
from swipehire.schemas import Document, EventCreate

router = APIRouter()


@router.get("/events")
async def list_events(request: Request, ctx: AppContext = Depends(get_context)):
    """Active industry events, soonest first. Filters: location, industry, type."""
    return await ctx.events.get_industry_events(dict(request.query_params))


@router.post("/events", status_code=status.HTTP_201_CREATED)
async def create_event(event: EventCreate, ctx: AppContext = Depends(get_context)):
    return await ctx.events.create_event(event.to_document())


@router.get("/events/{event_id}")
async def get_event(event_id: str, ctx: AppContext = Depends(get_context)):
    result = await ctx.events.get_event(event_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return result


@router.api_route("/events/{event_id}", methods=["PUT", "PATCH"])
async def update_event(event_id: str, updates: Document, ctx: AppContext = Depends(get_context)):
    result = await ctx.events.update_event(event_id, updates.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return result
