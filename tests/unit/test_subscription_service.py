"""Tests for plans, usage limits and the subscription lifecycle."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from storybook.api import config
from storybook.api.database.repository import PaymentRepository, UserRepository
from storybook.api.errors import ExternalServiceError, PaymentError, StoryLimitReached, ValidationError
from storybook.api.models.responses import PaymentRecord
from storybook.api.services.subscription_service import SubscriptionService, next_reset_date
from storybook.config.plans import (
    UNLIMITED_STORY_LIMIT,
    apply_promotion,
    get_plan,
    get_promotion,
    get_story_limit,
    plan_rank,
)

from tests.unit.conftest import make_user


@pytest.fixture
def razorpay_client():
    client = MagicMock()
    client.subscription.create.return_value = {"id": "sub_123", "short_url": "https://rzp.io/i/abc"}
    client.order.create.return_value = {"id": "order_456"}
    return client


@pytest.fixture
def service(razorpay_client):
    return SubscriptionService(
        AsyncMock(spec=UserRepository), AsyncMock(spec=PaymentRepository), client=razorpay_client
    )


class TestPlans:
    """Tests for the static plan catalogue."""

    def test_story_limits(self):
        """Limits come from the plan, unlimited maps to the sentinel, unknown is free."""
        assert get_story_limit("starter") == 3
        assert get_story_limit("family") == 10
        assert get_story_limit("premium") == UNLIMITED_STORY_LIMIT
        assert get_story_limit("nope") == 1

    def test_ranks(self):
        assert plan_rank("free") < plan_rank("starter") < plan_rank("family") < plan_rank("premium")

    def test_prices(self):
        """Yearly billing is ten monthly payments."""
        plan = get_plan("family")
        assert plan.price.for_cycle("monthly") == 999
        assert plan.price.for_cycle("yearly") == 9990

    def test_promotions(self):
        """Codes are case-insensitive and YEARLY20 only discounts yearly billing."""
        assert get_promotion("welcome30")["discount"] == 30
        assert apply_promotion(1000, "STUDENT50") == 500
        assert apply_promotion(1000, "YEARLY20", "monthly") == 1000
        assert apply_promotion(1000, "YEARLY20", "yearly") == 800
        assert apply_promotion(1000, "BOGUS") == 1000


class TestStoryLimit:
    """Tests for check_story_limit and ensure_can_generate."""

    def test_under_limit(self, service):
        check = service.check_story_limit(make_user(monthly_stories_used=0, monthly_stories_limit=1))
        assert check.allowed
        assert check.reason is None

    def test_at_limit(self, service):
        """Reaching the limit blocks with a reason."""
        check = service.check_story_limit(make_user(monthly_stories_used=1, monthly_stories_limit=1))
        assert not check.allowed
        assert check.reason == "You've reached your monthly limit of 1 stories"

    def test_unlimited_plan(self, service):
        """Premium always passes, whatever the counter says."""
        user = make_user(subscription_plan="premium", monthly_stories_used=5000, monthly_stories_limit=3)
        check = service.check_story_limit(user)
        assert check.allowed
        assert check.limit == UNLIMITED_STORY_LIMIT

    def test_test_mode_bypasses(self, service, monkeypatch):
        monkeypatch.setattr(config, "TEST_MODE", True)
        check = service.check_story_limit(make_user(monthly_stories_used=9, monthly_stories_limit=1))
        assert check.allowed
        assert check.test_mode

    async def test_ensure_raises(self, service):
        with pytest.raises(StoryLimitReached) as exc_info:
            await service.ensure_can_generate(make_user(monthly_stories_used=3, monthly_stories_limit=3))
        assert exc_info.value.to_dict()["usage"] == {"used": 3, "limit": 3}

    async def test_record_story_created(self, service):
        service.users.increment_story_usage.return_value = True

        await service.record_story_created(make_user())

        service.users.increment_story_usage.assert_called_once_with("user-1", within_limit=True)

    async def test_record_unlimited_plan_skips_guard(self, service):
        service.users.increment_story_usage.return_value = True

        await service.record_story_created(make_user(subscription_plan="premium"))

        service.users.increment_story_usage.assert_called_once_with("user-1", within_limit=False)

    async def test_record_over_limit_raises(self, service):
        """A concurrent generation already used the last story of the month."""
        service.users.increment_story_usage.return_value = False

        with pytest.raises(StoryLimitReached) as exc_info:
            await service.record_story_created(make_user(monthly_stories_used=0, monthly_stories_limit=1))

        assert exc_info.value.to_dict()["usage"] == {"used": 1, "limit": 1}

    async def test_record_skipped_in_test_mode(self, service, monkeypatch):
        monkeypatch.setattr(config, "TEST_MODE", True)
        await service.record_story_created(make_user())
        service.users.increment_story_usage.assert_not_called()


class TestMonthlyReset:
    """Tests for refresh_usage across month boundaries."""

    async def test_new_month_unblocks(self, service):
        """A user blocked in January can generate again in February without a restart."""
        user = make_user(
            monthly_stories_used=1,
            monthly_stories_limit=1,
            usage_reset_date=datetime(2026, 1, 3, tzinfo=timezone.utc),
        )
        february = datetime(2026, 2, 1, 0, 5, tzinfo=timezone.utc)

        check = await service.ensure_can_generate(user, now=february)

        assert check.allowed
        assert check.used == 0
        service.users.reset_monthly_usage.assert_called_once_with("user-1", february)

    async def test_same_month_keeps_counter(self, service):
        user = make_user(
            monthly_stories_used=1,
            monthly_stories_limit=1,
            usage_reset_date=datetime(2026, 1, 3, tzinfo=timezone.utc),
        )

        with pytest.raises(StoryLimitReached):
            await service.ensure_can_generate(user, now=datetime(2026, 1, 31, 23, 59, tzinfo=timezone.utc))

        service.users.reset_monthly_usage.assert_not_called()

    async def test_never_reset(self, service):
        now = datetime(2026, 5, 10, tzinfo=timezone.utc)

        refreshed = await service.refresh_usage(make_user(monthly_stories_used=4, usage_reset_date=None), now)

        assert refreshed.monthly_stories_used == 0
        assert refreshed.usage_reset_date == now

    async def test_naive_reset_date_is_utc(self, service):
        """SQLite returns naive datetimes."""
        user = make_user(monthly_stories_used=1, usage_reset_date=datetime(2026, 5, 1))

        refreshed = await service.refresh_usage(user, datetime(2026, 5, 10, tzinfo=timezone.utc))

        assert refreshed.monthly_stories_used == 1


class TestCreateSubscription:
    """Tests for SubscriptionService.create."""

    async def test_creates_pending_subscription(self, service, razorpay_client):
        """The Razorpay plan id combines plan and cycle; the user goes pending."""
        result = await service.create(make_user(), "family", "yearly")

        payload = razorpay_client.subscription.create.call_args.args[0]
        assert payload["plan_id"] == "family_yearly"
        assert payload["customer_notify"] == 1
        assert payload["total_count"] == 1
        assert payload["notes"] == {"userId": "user-1", "planId": "family", "billingCycle": "yearly"}

        fields = service.users.update_subscription.call_args.kwargs
        assert fields["subscription_status"] == "pending"
        assert fields["subscription_plan"] == "family"
        assert fields["monthly_stories_limit"] == 10
        assert (fields["subscription_end_date"] - fields["subscription_start_date"]).days == 365

        assert result.subscription_id == "sub_123"
        assert result.payment_link == "https://rzp.io/i/abc"
        assert result.amount == 9990

    async def test_vendor_failure(self, service, razorpay_client):
        """Razorpay errors become PaymentError and the user is untouched."""
        razorpay_client.subscription.create.side_effect = RuntimeError("boom")

        with pytest.raises(PaymentError):
            await service.create(make_user(), "starter", "monthly")
        service.users.update_subscription.assert_not_called()

    async def test_gateway_not_configured(self, monkeypatch):
        """Without keys or an injected client the gateway is a 503."""
        monkeypatch.setattr(config, "RAZORPAY_KEY_ID", "")
        service = SubscriptionService(AsyncMock(spec=UserRepository), AsyncMock(spec=PaymentRepository))

        with pytest.raises(ExternalServiceError):
            await service.create(make_user(), "starter", "monthly")


class TestUpgrade:
    """Tests for SubscriptionService.upgrade."""

    async def test_upgrade_creates_order_in_paise(self, service, razorpay_client, monkeypatch):
        monkeypatch.setattr(config, "RAZORPAY_KEY_ID", "rzp_test_key")
        user = make_user(subscription_plan="starter")

        result = await service.upgrade(user, "family", "monthly")

        payload = razorpay_client.order.create.call_args.args[0]
        assert payload["amount"] == 99900
        assert payload["notes"]["upgradeFrom"] == "starter"
        assert payload["notes"]["upgradeTo"] == "family"
        service.payments.create_payment.assert_called_once()
        assert service.payments.create_payment.call_args.kwargs["plan_id"] == "family"
        assert result.order_id == "order_456"
        assert result.amount == 99900
        assert result.key == "rzp_test_key"

    async def test_promo_code_discounts(self, service, razorpay_client):
        await service.upgrade(make_user(), "starter", "monthly", "STUDENT50")
        assert razorpay_client.order.create.call_args.args[0]["amount"] == 25000

    async def test_unknown_promo_code(self, service):
        with pytest.raises(ValidationError):
            await service.upgrade(make_user(), "starter", "monthly", "FREESTUFF")

    async def test_cannot_downgrade(self, service, razorpay_client):
        """Same or lower tier is a validation error."""
        with pytest.raises(ValidationError, match="higher tier"):
            await service.upgrade(make_user(subscription_plan="family"), "starter", "monthly")
        razorpay_client.order.create.assert_not_called()


class TestCancelAndStatus:
    """Tests for cancel and get_status."""

    async def test_cancel_free_plan(self, service):
        with pytest.raises(ValidationError, match="No active subscription"):
            await service.cancel(make_user())

    async def test_cancel_paid_plan(self, service):
        end = datetime(2026, 3, 1, tzinfo=timezone.utc)
        result = await service.cancel(make_user(subscription_plan="starter", subscription_end_date=end))

        service.users.update_subscription.assert_called_once_with("user-1", subscription_status="cancelled")
        assert result.active_until == end

    def test_status_for_paid_plan(self, service):
        """Days remaining round up and the reset date is next month's first day."""
        now = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
        user = make_user(
            subscription_plan="starter",
            monthly_stories_used=1,
            monthly_stories_limit=3,
            subscription_end_date=datetime(2026, 1, 20, 13, 0, tzinfo=timezone.utc),
        )

        status = service.get_status(user, now=now)

        assert status.subscription.plan_name == "Story Explorer"
        assert status.subscription.days_remaining == 6
        assert status.subscription.auto_renew
        assert status.usage.stories_remaining == 2
        assert status.usage.can_generate_story
        assert status.usage.reset_date == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_status_for_free_plan(self, service):
        status = service.get_status(make_user(monthly_stories_used=1))

        assert status.subscription.plan_name == "Free"
        assert not status.subscription.auto_renew
        assert status.usage.stories_remaining == 0
        assert not status.usage.can_generate_story
        assert "1 story per month" in status.features

    def test_next_reset_date_wraps_year(self):
        assert next_reset_date(datetime(2026, 12, 31, tzinfo=timezone.utc)) == datetime(
            2027, 1, 1, tzinfo=timezone.utc
        )


def _subscription_event(event: str, **entity) -> dict:
    entity.setdefault("notes", {"userId": "user-1", "planId": "family"})
    return {"event": event, "payload": {"subscription": {"entity": entity}}}


class TestWebhookEvents:
    """Tests for handle_webhook_event."""

    async def test_activated(self, service):
        """Activation sets plan, dates from epoch seconds, and the plan limit."""
        service.users.get_user = AsyncMock(return_value=make_user())

        await service.handle_webhook_event(
            _subscription_event("subscription.activated", start_at=1767225600, end_at=1769904000)
        )

        fields = service.users.update_subscription.call_args.kwargs
        assert fields["subscription_status"] == "active"
        assert fields["subscription_plan"] == "family"
        assert fields["monthly_stories_limit"] == 10
        assert fields["subscription_start_date"] == datetime(2026, 1, 1, tzinfo=timezone.utc)

    async def test_pending(self, service):
        service.users.get_user = AsyncMock(return_value=make_user())

        await service.handle_webhook_event(_subscription_event("subscription.pending"))

        service.users.update_subscription.assert_called_once_with(
            "user-1", subscription_status="pending", monthly_stories_limit=1
        )

    async def test_completed_returns_to_free(self, service):
        service.users.get_user = AsyncMock(return_value=make_user(subscription_plan="family"))

        await service.handle_webhook_event(_subscription_event("subscription.completed"))

        fields = service.users.update_subscription.call_args.kwargs
        assert fields["subscription_plan"] == "free"
        assert fields["subscription_status"] == "inactive"
        assert fields["monthly_stories_limit"] == 1

    async def test_unknown_user_is_ignored(self, service):
        service.users.get_user = AsyncMock(return_value=None)

        await service.handle_webhook_event(_subscription_event("subscription.activated"))

        service.users.update_subscription.assert_not_called()

    async def test_unknown_event_is_ignored(self, service):
        await service.handle_webhook_event({"event": "refund.created", "payload": {}})

        service.users.get_user.assert_not_called()

    @pytest.mark.parametrize(
        "event",
        [
            {"event": "payment.captured", "payload": {"payment": None}},
            {"event": "payment.captured", "payload": []},
            {"event": "subscription.activated", "payload": {"subscription": {"entity": "sub_1"}}},
            {"event": "subscription.activated", "payload": {"subscription": {"entity": {"notes": None}}}},
            {"event": 7, "payload": None},
        ],
    )
    async def test_malformed_payloads_are_ignored(self, service, event):
        """Null or non-object levels in a signed event are skipped, not crashed on."""
        await service.handle_webhook_event(event)

        service.payments.mark_captured.assert_not_called()
        service.users.update_subscription.assert_not_called()

    async def test_payment_captured_applies_upgrade(self, service):
        """A captured upgrade payment moves its user to the paid plan."""
        service.payments.mark_captured = AsyncMock(
            return_value=PaymentRecord(
                id=1,
                razorpay_order_id="order_456",
                amount=99900,
                status="completed",
                plan_id="family",
                billing_cycle="monthly",
                user_id="user-1",
            )
        )

        await service.handle_webhook_event(
            {"event": "payment.captured", "payload": {"payment": {"entity": {"id": "pay_1", "order_id": "order_456"}}}}
        )

        service.payments.mark_captured.assert_called_once_with("order_456", "pay_1")
        fields = service.users.update_subscription.call_args.kwargs
        assert fields["subscription_plan"] == "family"
        assert fields["subscription_status"] == "active"
