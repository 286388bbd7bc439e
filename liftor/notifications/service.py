"""Notification orchestration for plan generation events."""

from __future__ import annotations

import logging

from liftor.notifications.contracts import NotificationError, NotificationProviderError, NotificationSender, PlanNotification

logger = logging.getLogger(__name__)

PLAN_READY_TITLE = "🎉 Your plan is ready!"
PLAN_READY_BODY = "Your personalized fitness plan has been generated. Tap to review and start your journey."
PLAN_ERROR_TITLE = "⚠️ Plan generation issue"
PLAN_ERROR_BODY = "We had trouble generating your plan. Tap to try again."


class LoggingNotificationSender:
  """Default sender that records notifications in the application log."""

  def __init__(self) -> None:
    self.sent: list[PlanNotification] = []

  async def send(self, notification: PlanNotification) -> None:
    self.sent.append(notification)
    logger.info("Notification user_id=%s title=%s data=%s", notification.user_id, notification.title, notification.data)


class PlanNotificationService:
  """Sends plan-ready and plan-failed notifications on a best-effort basis."""

  def __init__(self, sender: NotificationSender | None = None) -> None:
    self._sender = sender or LoggingNotificationSender()

  async def send_plan_ready(self, user_id: str, *, plan_id: str | None = None) -> None:
    data = {"type": "base_plan_ready"}
    if plan_id:
      data["planId"] = plan_id
    await self._deliver(PlanNotification(user_id=user_id, title=PLAN_READY_TITLE, body=PLAN_READY_BODY, data=data))

  async def send_plan_error(self, user_id: str, error_message: str) -> None:
    # The raw error stays server-side; users get the generic retry prompt.
    logger.info("Sending plan error notification user_id=%s error=%s", user_id, error_message)
    await self._deliver(PlanNotification(user_id=user_id, title=PLAN_ERROR_TITLE, body=PLAN_ERROR_BODY, data={"type": "base_plan_error"}))

  async def _deliver(self, notification: PlanNotification) -> None:
    try:
      await self._sender.send(notification)

    except NotificationProviderError as exc:
      # Provider rejections are expected occasionally; skip the traceback.
      logger.error("Plan notification delivery failed (provider error): %s", exc)

    except NotificationError as exc:
      logger.warning("Plan notification delivery failed: %s", exc, exc_info=True)
