# swipehire/routes/user_routes.py
from fastapi import APIRouter, Depends, HTTPException, status

from swipehire.core.context import AppContext, get_context
from swipehire.schemas import UserCreate, UserUpdate

router = APIRouter()


@router.get("/users")
async def list_users(ctx: AppContext = Depends(get_context)):
    """Latest 50 users, public fields only."""
    return await ctx.users.get_users()


@router.get("/users/profiles/jobseekers")
async def list_jobseeker_profiles(ctx: AppContext = Depends(get_context)):
    return await ctx.users.get_jobseeker_profiles()


@router.get("/users/{identifier}")
async def get_user(identifier: str, ctx: AppContext = Depends(get_context)):
    """
    Fetches a single user.
    The identifier may be the Mongo id, the email address or the Firebase uid.
    """
    result = await ctx.users.get_user(identifier)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return result


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(user: UserCreate, ctx: AppContext = Depends(get_context)):
    return await ctx.users.create_user(user.to_document())


@router.api_route("/users/{identifier}", methods=["PUT", "PATCH"])
async def update_user(identifier: str, updates: UserUpdate, ctx: AppContext = Depends(get_context)):
    result = await ctx.users.update_user(identifier, updates.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return result
