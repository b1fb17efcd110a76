"""
Tests for paywall Celery tasks.

Tasks are called directly (synchronously); collaborators are patched at
their import location.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from paywall.exceptions import ProcessorUnavailableError
from paywall.models import Refund, WebhookEvent
from paywall.models.webhook_event import MAX_WEBHOOK_RETRIES
from paywall.state_machines import WebhookEventStatus
from paywall.tasks import (
    cleanup_stuck_webhooks,
    replay_failed_webhooks,
    retry_unprocessed_refunds,
)
from paywall.tests.factories import RefundFactory, WebhookEventFactory


class TestReplayFailedWebhooks:
    @patch("paywall.webhooks.processor.WebhookProcessor.replay")
    def test_replays_retryable_events(self, mock_replay, db):
        retryable = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=1)
        WebhookEventFactory(
            status=WebhookEventStatus.FAILED, retry_count=MAX_WEBHOOK_RETRIES
        )
        WebhookEventFactory(status=WebhookEventStatus.PROCESSED)

        result = replay_failed_webhooks()

        assert result == {"processed_count": 1, "failed_count": 0}
        mock_replay.assert_called_once_with(retryable)

    @patch("paywall.webhooks.processor.WebhookProcessor.replay")
    def test_failure_does_not_stop_batch(self, mock_replay, db):
        WebhookEventFactory(status=WebhookEventStatus.FAILED)
        WebhookEventFactory(status=WebhookEventStatus.FAILED)
        mock_replay.side_effect = [RuntimeError("still broken"), None]

        result = replay_failed_webhooks()

        assert result == {"processed_count": 1, "failed_count": 1}


class TestCleanupStuckWebhooks:
    def test_resets_old_processing_events(self, db):
        stuck = WebhookEventFactory(status=WebhookEventStatus.PROCESSING)
        WebhookEvent.objects.filter(id=stuck.id).update(
            updated_at=timezone.now() - timedelta(hours=1)
        )
        recent = WebhookEventFactory(status=WebhookEventStatus.PROCESSING)

        result = cleanup_stuck_webhooks()

        assert result == {"reset_count": 1}
        stuck = WebhookEvent.objects.get(id=stuck.id)
        assert stuck.status == WebhookEventStatus.FAILED
        assert stuck.can_retry is True
        assert WebhookEvent.objects.get(id=recent.id).status == WebhookEventStatus.PROCESSING


class TestRetryUnprocessedRefunds:
    @pytest.fixture
    def patched_issuer(self, refund_issuer):
        with patch("paywall.services.RefundIssuer", return_value=refund_issuer):
            yield refund_issuer

    def test_resubmits_unprocessed(self, db, patched_issuer, mock_processor):
        refund = RefundFactory()

        result = retry_unprocessed_refunds()

        assert result == {"submitted_count": 1, "failed_count": 0}
        assert Refund.objects.get(id=refund.id).is_processed is True
        mock_processor.create_refund.assert_called_once()

    def test_skips_processed_recent_and_exhausted(self, db, patched_issuer, mock_processor):
        processed = RefundFactory()
        processed.mark_processed("sq_refund_done")
        processed.save()
        RefundFactory(last_submitted_at=timezone.now())
        RefundFactory(submission_attempts=5)

        result = retry_unprocessed_refunds()

        assert result == {"submitted_count": 0, "failed_count": 0}
        mock_processor.create_refund.assert_not_called()

    def test_counts_failures(self, db, patched_issuer, mock_processor):
        refund = RefundFactory()
        mock_processor.create_refund.side_effect = ProcessorUnavailableError("down")

        result = retry_unprocessed_refunds()

        assert result == {"submitted_count": 0, "failed_count": 1}
        refund = Refund.objects.get(id=refund.id)
        assert refund.submission_attempts == 1
        assert refund.last_error == "[PROCESSOR_UNAVAILABLE] down"

    def test_unexpected_error_does_not_stop_batch(self, db, patched_issuer, mock_processor):
        broken = RefundFactory()
        healthy = RefundFactory()
        accepted = mock_processor.create_refund.return_value

        def create_refund(params, trace_id=None):
            if trace_id == str(broken.id):
                raise ValueError("Expecting value: line 1 column 1 (char 0)")
            return accepted

        mock_processor.create_refund.side_effect = create_refund

        result = retry_unprocessed_refunds()

        assert result == {"submitted_count": 1, "failed_count": 1}
        broken = Refund.objects.get(id=broken.id)
        assert broken.is_processed is False
        assert broken.submission_attempts == 1
        assert broken.last_submitted_at is not None
        assert Refund.objects.get(id=healthy.id).is_processed is True
