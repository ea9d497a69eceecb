from fastapi import APIRouter, Depends, HTTPException, Request, status

from swipehire.core.context import AppContext, get_context
from swipehire.database.db import DocumentStoreConflict
from swipehire.schemas import ReviewCreate

router = APIRouter()


@router.get("/companies/{company_id}/reviews")
async def list_company_reviews(company_id: str, request: Request, ctx: AppContext = Depends(get_context)):
    result = await ctx.reviews.get_company_reviews(company_id, dict(request.query_params))
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid company ID")
    return result


@router.get("/companies/{company_id}/reviews/summary")
async def company_review_summary(company_id: str, ctx: AppContext = Depends(get_context)):
    """Review count, average rating and the 1-5 star distribution."""
    result = await ctx.reviews.get_company_review_summary(company_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid company ID")
    return result


@router.post("/companies/{company_id}/reviews", status_code=status.HTTP_201_CREATED)
async def create_company_review(company_id: str, review: ReviewCreate, ctx: AppContext = Depends(get_context)):
    try:
        result = await ctx.reviews.create_review(company_id, review.to_document())
    except DocumentStoreConflict:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already reviewed this company")
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid company ID or reviewer ID")
    return result
