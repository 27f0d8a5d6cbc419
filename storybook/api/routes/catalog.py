"""Theme and template catalogue, custom templates and the animal storybook."""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, status

from ...config.llm import get_story_lm
from ...core.ai_cache import ai_cache
from ...core.catalog import (
    AGE_GROUPS,
    STORY_THEMES,
    SUBSCRIPTION_TIERS,
    THEME_CATEGORIES,
    build_animal_book_pages,
    filter_templates,
    get_template_by_id,
    get_theme_by_id,
    get_therapeutic_templates,
    get_themes_by_category,
    get_themes_for_age,
)
from ...core.modules.pdf_builder import DEFAULT_TITLE
from ...core.modules.template_designer import ChildProfile, TemplateDesigner
from ..dependencies import CurrentUser, Stories
from ..errors import ExternalServiceError, NotFoundError
from ..models.requests import StorybookRequest, TemplateProfileRequest
from ..models.responses import StorybookResponse, StoryPageResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Catalogue"])


@router.get("/api/themes", summary="List story themes")
async def list_themes(
    category: Optional[str] = Query(default=None, description=f"One of {', '.join(THEME_CATEGORIES)}"),
    age: Optional[int] = Query(default=None, ge=0, le=18, description="Only themes suitable for this age"),
):
    themes = get_themes_by_category(category) if category else list(STORY_THEMES)
    if age is not None:
        themes = [t for t in themes if t in get_themes_for_age(age)]
    return {"success": True, "themes": [t.to_dict() for t in themes], "totalCount": len(themes)}


@router.get("/api/themes/{theme_id}", summary="Get a story theme")
async def get_theme(theme_id: str):
    theme = get_theme_by_id(theme_id)
    if theme is None:
        raise NotFoundError("Theme")
    return {"success": True, "theme": theme.to_dict()}


@router.get("/api/ai/templates", summary="List story templates")
async def list_templates(
    category: Optional[str] = Query(default=None),
    age_group: Optional[str] = Query(default=None, alias="ageGroup"),
    subscription_tier: Optional[str] = Query(default=None, alias="subscriptionTier"),
    therapeutic: bool = Query(default=False, description="Only templates with therapeutic value"),
):
    templates = filter_templates(category, age_group, subscription_tier)
    if therapeutic:
        templates = [t for t in templates if t in get_therapeutic_templates()]
    return {
        "success": True,
        "templates": [t.to_dict() for t in templates],
        "totalCount": len(templates),
        "filters": {
            "category": category,
            "ageGroup": age_group,
            "subscriptionTier": subscription_tier,
            "therapeutic": therapeutic,
        },
        "availableFilters": {"ageGroups": AGE_GROUPS, "subscriptionTiers": SUBSCRIPTION_TIERS},
    }


@router.get("/api/ai/templates/{template_id}", summary="Get one story template")
async def get_template(template_id: str):
    template = get_template_by_id(template_id)
    if template is None:
        raise NotFoundError("Template")
    return {"success": True, "template": template.to_dict()}


@router.post("/api/ai/templates", summary="Design a custom template for a child")
async def create_custom_template(request: TemplateProfileRequest, user: CurrentUser):
    """Ask the story LM for a premium template personalized to the profile."""
    profile = ChildProfile(
        child_name=request.child_name,
        child_age=request.child_age,
        interests=list(request.interests),
        learning_goals=list(request.learning_goals),
        parent_concerns=list(request.parent_concerns),
        cultural_background=request.cultural_background,
    )

    cached = ai_cache.get_template_suggestions(profile.cache_inputs(), {})
    if cached is not None:
        return {"success": True, "template": cached[0], "cached": True}

    try:
        designer = TemplateDesigner(lm=get_story_lm())
        template = await asyncio.to_thread(designer, profile)
    except Exception as e:
        logger.error(f"Template design failed: {e}", extra={"user_id": user.id, "error_type": type(e).__name__})
        raise ExternalServiceError("Template generation", f"Failed to generate custom template: {e}") from e

    ai_cache.set_template_suggestions(profile.cache_inputs(), {}, [template])
    return {"success": True, "template": template, "cached": False}


@router.post(
    "/api/storybook",
    response_model=StorybookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assemble the animal storybook",
    description="Build the 'If I Were an Animal' page list and save it as a draft story for illustration and export.",
)
async def create_storybook(request: StorybookRequest, user: CurrentUser, repo: Stories):
    pages = build_animal_book_pages(request.selected_animals, request.child_name, request.child_description)
    story = await repo.create_story(
        user_id=user.id,
        title=DEFAULT_TITLE,
        child_name=request.child_name,
        pages=pages,
        metadata={"childPhotoUrl": request.child_photo_url, "selectedAnimals": request.selected_animals},
        status="draft",
    )
    return StorybookResponse(
        id=story.id,
        child_name=story.child_name,
        child_photo_url=request.child_photo_url,
        title=story.title,
        pages=[StoryPageResponse.model_validate(page) for page in pages],
        created_at=story.created_at,
    )
