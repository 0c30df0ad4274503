from fastapi import APIRouter, Depends, Query, HTTPException, status
from typing import Optional, List
import logging
from app.schemas.recommender import RecommenderResponse
from app.schemas.recommendation import CompleteRecommendationResponse
from app.routers.params import RecommenderId
from app.services.storage import CatalogStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommenders", tags=["recommenders"])


@router.get("", response_model=List[RecommenderResponse])
def get_recommenders(
    limit: Optional[int] = Query(None, ge=1, le=5000),
    offset: int = Query(0, ge=0),
    storage: CatalogStorage = Depends(get_storage),
):
    recommenders = storage.get_all_recommenders()
    end = offset + limit if limit is not None else None
    return recommenders[offset:end]


@router.get("/search", response_model=List[RecommenderResponse])
def search_recommenders(
    q: Optional[str] = Query(None, description="Search in name or organization"),
    storage: CatalogStorage = Depends(get_storage),
):
    if not q or not q.strip():
        return storage.get_all_recommenders()
    return storage.search_recommenders(q.strip())


@router.get("/{recommender_id}", response_model=RecommenderResponse)
def get_recommender(recommender_id: RecommenderId, storage: CatalogStorage = Depends(get_storage)):
    recommender = storage.get_recommender_by_id(recommender_id)
    if not recommender:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recommender not found",
        )
    return recommender


@router.get("/{recommender_id}/books", response_model=List[CompleteRecommendationResponse])
def get_recommender_books(recommender_id: RecommenderId, storage: CatalogStorage = Depends(get_storage)):
    """Books this person recommended, one entry per book."""
    if not storage.get_recommender_by_id(recommender_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recommender not found",
        )
    return storage.get_complete_recommendations_by_recommender_id(recommender_id)
