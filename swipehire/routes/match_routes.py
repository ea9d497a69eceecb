from fastapi import APIRouter, Depends, HTTPException, Request, status

from swipehire.core.context import AppContext, get_context
from swipehire.schemas import ChatMessageCreate, MatchCreate, MatchStatusUpdate

router = APIRouter()


@router.get("/users/{user_id}/matches")
async def list_user_matches(user_id: str, ctx: AppContext = Depends(get_context)):
    result = await ctx.matches.get_user_matches(user_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.post("/matches", status_code=status.HTTP_201_CREATED)
async def create_match(match: MatchCreate, ctx: AppContext = Depends(get_context)):
    result = await ctx.matches.create_match(match.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.api_route("/matches/{match_id}/status", methods=["PUT", "PATCH"])
async def update_match_status(match_id: str, update: MatchStatusUpdate, ctx: AppContext = Depends(get_context)):
    result = await ctx.matches.update_match_status(match_id, update.status, update.userId)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
    return result


@router.get("/matches/{match_id}/messages")
async def list_chat_messages(match_id: str, request: Request, ctx: AppContext = Depends(get_context)):
    result = await ctx.chat.get_chat_messages(match_id, dict(request.query_params))
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid match ID")
    return result


@router.post("/matches/{match_id}/messages", status_code=status.HTTP_201_CREATED)
async def create_chat_message(match_id: str, body: ChatMessageCreate, ctx: AppContext = Depends(get_context)):
    result = await ctx.chat.create_chat_message(match_id, body.senderId, body.message)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid match ID or sender ID")
    return result
