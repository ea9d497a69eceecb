from fastapi import APIRouter, Depends, HTTPException, Request, status

from swipehire.core.context import AppContext, get_context
from swipehire.schemas import JobCreate, JobUpdate

router = APIRouter()


@router.get("/jobs/public")
async def list_public_jobs(request: Request, ctx: AppContext = Depends(get_context)):
    """Public job board. Supports page, limit, location, jobType and search."""
    return await ctx.jobs.get_public_jobs(dict(request.query_params))


@router.get("/users/{user_id}/jobs")
async def list_user_jobs(user_id: str, request: Request, ctx: AppContext = Depends(get_context)):
    result = await ctx.jobs.get_user_jobs(user_id, dict(request.query_params))
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.post("/users/{user_id}/jobs", status_code=status.HTTP_201_CREATED)
async def create_job(user_id: str, job: JobCreate, ctx: AppContext = Depends(get_context)):
    result = await ctx.jobs.create_job(user_id, job.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user ID")
    return result


@router.api_route("/jobs/{job_id}", methods=["PUT", "PATCH"])
async def update_job(job_id: str, updates: JobUpdate, ctx: AppContext = Depends(get_context)):
    result = await ctx.jobs.update_job(job_id, updates.userId, updates.to_document())
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return result


@router.delete("/jobs/{job_id}")
async def delete_job(job_id: str, userId: str, ctx: AppContext = Depends(get_context)):
    result = await ctx.jobs.delete_job(job_id, userId)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return result
