"""API router for v1 endpoints."""

from fastapi import APIRouter

from pitchperfect.api import suggestions, wizard

router = APIRouter()

# Pitch wizard sessions
router.include_router(wizard.router, prefix="/wizard", tags=["wizard"])

# AI suggestion regeneration
router.include_router(suggestions.router, prefix="/suggestions", tags=["suggestions"])
