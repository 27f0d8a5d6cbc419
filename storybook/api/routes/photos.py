"""Photo analysis endpoints, one pair per vision provider."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from ...config.vision import get_provider_config
from ...core.ai_cache import ai_cache
from ...core.modules.photo_analyzer import PhotoTooLarge, analyze_photo
from ...core.types import PhotoAnalysis
from ..dependencies import CurrentUser
from ..errors import ExternalServiceError, ValidationError
from ..logging import generation_logger
from ..models.requests import AnalyzePhotoRequest
from ..models.responses import PhotoAnalysisMetadata, PhotoAnalysisResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["Photo analysis"])

SERVICE_NAMES = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "gemini": "Google Gemini",
    "replicate": "Replicate",
}


async def analyze_cached(provider: str, photo_url: str, child_name: str) -> tuple[PhotoAnalysis, bool]:
    """
    Describe the child with one provider, memoized per photo and name.

    Raises:
        ExternalServiceError: missing API key or vendor failure
    """
    inputs = {"photoUrl": photo_url, "childName": child_name, "provider": provider}

    async def compute() -> dict:
        try:
            analysis = await analyze_photo(provider, photo_url, child_name)
        except PhotoTooLarge as e:
            raise ValidationError(str(e), {"field": "photoUrl"}) from e
        except Exception as e:
            generation_logger.generation_failed("photo_analysis", e)
            raise ExternalServiceError(
                SERVICE_NAMES[provider], f"Failed to analyze photo: {e}"
            ) from e
        return analysis.to_dict()

    data, cached = await ai_cache.get_or_compute("character", inputs, compute)
    return PhotoAnalysis.from_dict(data), cached


async def _analyze(provider: str, request: AnalyzePhotoRequest) -> PhotoAnalysisResponse:
    analysis, cached = await analyze_cached(provider, request.photo_url, request.child_name)
    logger.info(
        f"Photo analyzed for {request.child_name}",
        extra={"provider": analysis.provider, "cost": analysis.estimated_cost, "stage": "photo_analysis"},
    )
    return PhotoAnalysisResponse(
        description=analysis.description,
        metadata=PhotoAnalysisMetadata(
            child_name=request.child_name,
            model=analysis.model,
            tokens_used=analysis.tokens_used,
            estimated_cost=0.0 if cached else analysis.estimated_cost,
            analyzed_at=datetime.now(timezone.utc).isoformat(),
            provider=analysis.provider,
            cached=cached,
        ),
    )


def _config(provider: str) -> dict:
    return {"success": True, "config": get_provider_config(provider)}


@router.post("/analyze-photo", response_model=PhotoAnalysisResponse, summary="Describe a child with GPT-4o")
async def analyze_photo_openai(request: AnalyzePhotoRequest, user: CurrentUser):
    return await _analyze("openai", request)


@router.get("/analyze-photo", summary="OpenAI vision configuration")
async def openai_config():
    return _config("openai")


@router.post("/analyze-photo-claude", response_model=PhotoAnalysisResponse, summary="Describe a child with Claude")
async def analyze_photo_claude(request: AnalyzePhotoRequest, user: CurrentUser):
    return await _analyze("anthropic", request)


@router.get("/analyze-photo-claude", summary="Anthropic vision configuration")
async def claude_config():
    return _config("anthropic")


@router.post("/analyze-photo-gemini", response_model=PhotoAnalysisResponse, summary="Describe a child with Gemini")
async def analyze_photo_gemini(request: AnalyzePhotoRequest, user: CurrentUser):
    return await _analyze("gemini", request)


@router.get("/analyze-photo-gemini", summary="Gemini vision configuration")
async def gemini_config():
    return _config("gemini")


@router.post(
    "/analyze-photo-replicate", response_model=PhotoAnalysisResponse, summary="Describe a child with LLaVA"
)
async def analyze_photo_replicate(request: AnalyzePhotoRequest, user: CurrentUser):
    return await _analyze("replicate", request)


@router.get("/analyze-photo-replicate", summary="Replicate vision configuration")
async def replicate_config():
    return _config("replicate")
