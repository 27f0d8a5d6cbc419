"""Prompt template registry, A/B tests and prompt quality scoring."""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body
from pydantic import ValidationError as SchemaError

from ...config.llm import get_story_lm
from ...core.modules.prompt_optimizer import prompt_optimizer
from ...core.modules.prompt_validator import (
    generate_fix_suggestions,
    quick_validate_prompt,
    validate_specific_story_type,
)
from ...core.modules.quality_scorer import QualityScorer
from ...core.modules.scene_extractor import (
    extract_scene_elements,
    scene_elements_to_description,
    validate_scene_elements,
)
from ..dependencies import CurrentUser
from ..errors import ExternalServiceError, NotFoundError, ValidationError
from ..models.enums import PromptCategory
from ..models.requests import (
    ABTestRequest,
    ABTestResultRequest,
    ApplyTemplateRequest,
    ScorePromptRequest,
    TemplateResultRequest,
    ValidatePromptRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prompts", tags=["Prompt optimizer"])


@router.get("/templates", summary="List prompt templates")
async def list_templates(user: CurrentUser, category: Optional[PromptCategory] = None):
    templates = prompt_optimizer.list_templates(category.value if category else None)
    return {"success": True, "templates": [t.model_dump(mode="json") for t in templates]}


@router.get("/best/{category}", summary="Best performing template of a category")
async def best_template(category: PromptCategory, user: CurrentUser):
    template = prompt_optimizer.get_best_template(category.value)
    return {"success": True, "template": template.model_dump(mode="json") if template else None}


@router.post("/templates/{template_id}/results", summary="Record a template outcome")
async def record_result(template_id: str, request: TemplateResultRequest, user: CurrentUser):
    recorded = prompt_optimizer.record_test_result(
        template_id, request.success, request.quality_score, request.consistency_score
    )
    if not recorded:
        raise NotFoundError("Template")
    return {"success": True, "template": prompt_optimizer.get_template(template_id).model_dump(mode="json")}


@router.post("/templates/{template_id}/apply", summary="Fill a template's placeholders")
async def apply_template(template_id: str, request: ApplyTemplateRequest, user: CurrentUser):
    try:
        prompt = prompt_optimizer.apply_template(template_id, request.variables)
    except KeyError as e:
        raise NotFoundError("Template") from e
    return {"success": True, "prompt": prompt}


@router.post("/ab-tests", summary="Start an A/B test")
async def start_ab_test(request: ABTestRequest, user: CurrentUser):
    for template_id in (request.template_a, request.template_b):
        if prompt_optimizer.get_template(template_id) is None:
            raise ValidationError(f"Unknown template: {template_id}", {"field": "templateA/templateB"})
    test_id = prompt_optimizer.start_ab_test(request.name, request.template_a, request.template_b)
    return {"success": True, "testId": test_id}


@router.get("/ab-tests/{test_id}/template", summary="Pick a template for one request")
async def ab_test_template(test_id: str, user: CurrentUser):
    return {"success": True, "templateId": prompt_optimizer.get_ab_test_template(test_id)}


@router.post("/ab-tests/{test_id}/results", summary="Record an A/B test outcome")
async def record_ab_test_result(test_id: str, request: ABTestResultRequest, user: CurrentUser):
    recorded = prompt_optimizer.record_ab_test_result(
        test_id, request.template_id, request.success, request.quality_score, request.consistency_score
    )
    if not recorded:
        raise NotFoundError("A/B test arm")
    return {"success": True}


@router.post("/ab-tests/{test_id}/end", summary="End an A/B test and pick the winner")
async def end_ab_test(test_id: str, user: CurrentUser):
    test = prompt_optimizer.end_ab_test(test_id)
    if test is None:
        raise NotFoundError("A/B test")
    return {"success": True, "test": test.model_dump(mode="json")}


@router.get("/report", summary="Template performance report")
async def performance_report(user: CurrentUser):
    return {"success": True, "report": prompt_optimizer.get_performance_report()}


@router.get("/export", summary="Export all templates")
async def export_templates(user: CurrentUser):
    return {"success": True, "templates": prompt_optimizer.export_templates()}


@router.post("/import", summary="Import exported templates")
async def import_templates(user: CurrentUser, templates: list[dict] = Body(...)):
    try:
        imported = prompt_optimizer.import_templates(templates)
    except SchemaError as e:
        raise ValidationError("Invalid template data", {"errors": e.errors(include_url=False, include_context=False)}) from e
    return {"success": True, "imported": imported}


@router.post("/score", summary="Score an image prompt against its page")
async def score_prompt(request: ScorePromptRequest, user: CurrentUser):
    """
    Judge the prompt with the story LM.

    When `templateId` is given the score is recorded as a sample for that
    template: overall score as quality, character consistency as consistency.
    """
    if request.template_id and prompt_optimizer.get_template(request.template_id) is None:
        raise NotFoundError("Template")

    try:
        scorer = QualityScorer(lm=get_story_lm())
        score = await asyncio.to_thread(
            scorer, request.page_text, request.image_prompt, request.character_reference or ""
        )
    except Exception as e:
        logger.error(f"Prompt scoring failed: {e}", extra={"error_type": type(e).__name__})
        raise ExternalServiceError("Prompt scoring", f"Failed to score prompt: {e}") from e

    if request.template_id:
        prompt_optimizer.record_test_result(
            request.template_id, score.success, score.overall, score.character_consistency
        )

    return {"success": True, "score": score.to_dict(), "recorded": bool(request.template_id)}


@router.post("/validate", summary="Check an image prompt against its page text")
async def validate_prompt(request: ValidatePromptRequest, user: CurrentUser):
    """
    Rule-based check, no LLM call.

    `storyType` adds the underwater or forest checks. `required` lists
    elements that must appear verbatim in the prompt.
    """
    elements = extract_scene_elements(request.story_text)
    result = validate_specific_story_type(request.story_text, request.image_prompt, request.story_type or "")
    _, scene_issues = validate_scene_elements(elements)

    missing: list[str] = []
    if request.required:
        _, missing = quick_validate_prompt(
            request.image_prompt,
            setting=request.required.setting,
            characters=request.required.characters,
            action=request.required.action,
            objects=request.required.objects,
        )

    return {
        "success": True,
        "validation": result.to_dict(),
        "sceneElements": elements.to_dict(),
        "sceneDescription": scene_elements_to_description(elements),
        "sceneIssues": scene_issues,
        "fixSuggestions": generate_fix_suggestions(result.errors, elements),
        "missingElements": missing,
    }
