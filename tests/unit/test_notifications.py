from unittest.mock import AsyncMock

import pytest

from liftor.notifications.contracts import NotificationError, NotificationProviderError
from liftor.notifications.service import PLAN_ERROR_BODY, PLAN_READY_TITLE, LoggingNotificationSender, PlanNotificationService


@pytest.mark.anyio
async def test_plan_ready_carries_plan_id():
  sender = LoggingNotificationSender()

  await PlanNotificationService(sender).send_plan_ready("user-1", plan_id="base-1")

  assert len(sender.sent) == 1
  assert sender.sent[0].title == PLAN_READY_TITLE
  assert sender.sent[0].data == {"type": "base_plan_ready", "planId": "base-1"}


@pytest.mark.anyio
async def test_plan_error_keeps_raw_message_server_side():
  sender = LoggingNotificationSender()

  await PlanNotificationService(sender).send_plan_error("user-1", "AI service returned HTTP 500 for /v1/plans/base")

  assert sender.sent[0].body == PLAN_ERROR_BODY
  assert "HTTP 500" not in sender.sent[0].body


@pytest.mark.anyio
@pytest.mark.parametrize("error", [NotificationProviderError("HTTP Error 403: Forbidden"), NotificationError("queue full")])
async def test_delivery_errors_are_swallowed(error):
  sender = AsyncMock()
  sender.send.side_effect = error

  await PlanNotificationService(sender).send_plan_ready("user-1")

  sender.send.assert_awaited_once()
