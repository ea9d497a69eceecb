from fastapi import APIRouter, Depends, HTTPException, Request, status

from swipehire.core.context import AppContext, get_context
from swipehire.schemas import DiaryPostCreate, OwnedUpdate

router = APIRouter()


@router.get("/users/{user_id}/diary-posts")
async def list_diary_posts(user_id: str, request: Request, ctx: AppContext = Depends(get_context)):
    result = await ctx.diary.get_diary_posts(user_id, dict(request.query_params))
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.post("/users/{user_id}/diary-posts", status_code=status.HTTP_201_CREATED)
async def create_diary_post(user_id: str, post: DiaryPostCreate, ctx: AppContext = Depends(get_context)):
    result = await ctx.diary.create_diary_post(user_id, post.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.get("/diary-posts/{post_id}")
async def get_diary_post(post_id: str, ctx: AppContext = Depends(get_context)):
    result = await ctx.diary.get_diary_post(post_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Diary post not found")
    return result


@router.api_route("/diary-posts/{post_id}", methods=["PUT", "PATCH"])
async def update_diary_post(post_id: str, updates: OwnedUpdate, ctx: AppContext = Depends(get_context)):
    result = await ctx.diary.update_diary_post(post_id, updates.userId, updates.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Diary post not found")
    return result


@router.delete("/diary-posts/{post_id}")
async def delete_diary_post(post_id: str, userId: str, ctx: AppContext = Depends(get_context)):
    result = await ctx.diary.delete_diary_post(post_id, userId)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Diary post not found")
    return result
