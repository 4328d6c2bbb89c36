from fastapi import APIRouter
from app.api.endpoints import survey_responses, analytics

api_router = APIRouter()
api_router.include_router(survey_responses.router, tags=["survey-responses"])
api_router.include_router(analytics.router, tags=["analytics"])
