"""Tests for the theme/template catalogue and animal storybook endpoints."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from storybook.core.ai_cache import ai_cache
from storybook.core.modules.template_designer import TemplateDesigner

from tests.unit.conftest import make_story

PROFILE = {"childName": "Maya", "childAge": 6, "interests": ["space"], "learningGoals": ["patience"]}


class TestThemes:
    """Tests for GET /api/themes."""

    def test_list_all(self, anonymous_client):
        client, _ = anonymous_client

        data = client.get("/api/themes").json()

        assert data["success"] is True
        assert data["totalCount"] == len(data["themes"]) > 0

    def test_filter_by_category(self, anonymous_client):
        client, _ = anonymous_client

        themes = client.get("/api/themes", params={"category": "stem"}).json()["themes"]

        assert themes
        assert {theme["category"] for theme in themes} == {"stem"}

    def test_filter_by_age(self, anonymous_client):
        """Every returned theme has an age group covering the age."""
        client, _ = anonymous_client

        themes = client.get("/api/themes", params={"age": 4}).json()["themes"]

        for theme in themes:
            assert any(
                int(group.split("-")[0]) <= 4 <= int(group.split("-")[1]) for group in theme["age_groups"]
            )

    def test_get_theme(self, anonymous_client):
        client, _ = anonymous_client

        response = client.get("/api/themes/emotional-intelligence")

        assert response.status_code == 200
        assert response.json()["theme"]["name"] == "Emotional Intelligence"

    def test_unknown_theme(self, anonymous_client):
        client, _ = anonymous_client

        response = client.get("/api/themes/nope")

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "NOT_FOUND"


class TestTemplates:
    """Tests for GET and POST /api/ai/templates."""

    def test_basic_tier_only_sees_basic(self, anonymous_client):
        client, _ = anonymous_client

        data = client.get("/api/ai/templates", params={"subscriptionTier": "basic"}).json()

        assert data["filters"]["subscriptionTier"] == "basic"
        assert {t["subscription_tier"] for t in data["templates"]} <= {"basic"}

    def test_age_group_filter(self, anonymous_client):
        client, _ = anonymous_client

        data = client.get("/api/ai/templates", params={"ageGroup": "3-5"}).json()

        assert all("3-5" in t["age_groups"] for t in data["templates"])
        assert data["totalCount"] == len(data["templates"])

    def test_therapeutic_filter(self, anonymous_client):
        client, _ = anonymous_client

        data = client.get("/api/ai/templates", params={"therapeutic": "true"}).json()

        assert {t["id"] for t in data["templates"]} == {
            "when_i_feel_big_emotions",
            "my_worry_monster",
            "first_day_adventure",
        }
        assert data["availableFilters"]["ageGroups"] == ["3-5", "6-8", "9-12", "13+"]

    def test_get_template(self, anonymous_client):
        client, _ = anonymous_client

        data = client.get("/api/ai/templates/my_worry_monster").json()

        assert data["template"]["id"] == "my_worry_monster"
        assert "anxiety_reduction" in data["template"]["therapeutic_value"]

    def test_get_unknown_template(self, anonymous_client):
        client, _ = anonymous_client

        response = client.get("/api/ai/templates/nope")

        assert response.status_code == 404

    def test_custom_template_is_cached(self, client_with_mocks):
        """The designer runs once per profile; the repeat is served from cache."""
        client, _ = client_with_mocks
        designer = MagicMock(spec=TemplateDesigner, return_value={"id": "custom_maya", "title": "Maya's Stars"})

        with patch("storybook.api.routes.catalog.TemplateDesigner", return_value=designer), patch(
            "storybook.api.routes.catalog.get_story_lm"
        ):
            first = client.post("/api/ai/templates", json=PROFILE).json()
            second = client.post("/api/ai/templates", json=PROFILE).json()

        assert first == {"success": True, "template": {"id": "custom_maya", "title": "Maya's Stars"}, "cached": False}
        assert second["cached"] is True
        assert designer.call_count == 1
        assert ai_cache.stats()["entries"] == 1

    def test_custom_template_failure(self, client_with_mocks):
        client, _ = client_with_mocks
        designer = MagicMock(spec=TemplateDesigner, side_effect=RuntimeError("LM down"))

        with patch("storybook.api.routes.catalog.TemplateDesigner", return_value=designer), patch(
            "storybook.api.routes.catalog.get_story_lm"
        ):
            response = client.post("/api/ai/templates", json=PROFILE)

        assert response.status_code == 503

    def test_custom_template_requires_auth(self, anonymous_client):
        client, _ = anonymous_client

        assert client.post("/api/ai/templates", json=PROFILE).status_code == 401


class TestStorybook:
    """Tests for POST /api/storybook."""

    def test_assembles_and_saves_draft(self, client_with_mocks):
        client, mocks = client_with_mocks
        mocks.stories.create_story.return_value = make_story(
            id="book-1",
            title="If I Were an Animal",
            status="draft",
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

        response = client.post(
            "/api/storybook",
            json={
                "childName": "Maya",
                "childPhotoUrl": "https://example.com/maya.jpg",
                "selectedAnimals": ["lion", "bird"],
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == "book-1"
        assert [page["id"] for page in data["pages"]] == ["intro", "animal-bird", "animal-lion", "outro"]
        assert data["pages"][2]["lesson"] == "Courage"

        kwargs = mocks.stories.create_story.call_args.kwargs
        assert kwargs["status"] == "draft"
        assert kwargs["metadata"]["selectedAnimals"] == ["lion", "bird"]
        assert len(kwargs["pages"]) == 4

    def test_requires_child_name(self, client_with_mocks):
        client, mocks = client_with_mocks

        response = client.post("/api/storybook", json={"childName": "", "childPhotoUrl": "https://x/y.jpg"})

        assert response.status_code == 400
        mocks.stories.create_story.assert_not_called()

    def test_child_description_uses_magical_prompts(self, client_with_mocks):
        client, mocks = client_with_mocks
        mocks.stories.create_story.return_value = make_story(id="book-2", status="draft")

        data = client.post(
            "/api/storybook",
            json={
                "childName": "Maya",
                "childPhotoUrl": "https://example.com/maya.jpg",
                "childDescription": "curly black hair, brown eyes",
                "selectedAnimals": ["turtle"],
            },
        ).json()

        intro, turtle, outro = data["pages"]
        assert intro["imagePrompt"].startswith("STUDIO GHIBLI ANIME MASTERPIECE")
        assert "Maya (curly black hair, brown eyes)" in turtle["imagePrompt"]
        assert 'the lesson "Patience"' in turtle["imagePrompt"]
        assert outro["imagePrompt"].startswith("STUDIO GHIBLI ANIME FINALE")
