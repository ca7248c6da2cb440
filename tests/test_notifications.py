"""
Tests for notification delivery, event broadcasting and response schemas.
"""

from exam_scheduler.repositories.notification import NotificationRepository
from exam_scheduler.schemas.booking import BookingHistoryResponse, BookingResponse
from exam_scheduler.services.base.event_dispatcher import EventBroadcaster
from exam_scheduler.services.base.notification_dispatcher import (
    InAppNotifier,
    NotificationDispatcher,
    NotificationType,
    StaticAdminDirectory,
)
from exam_scheduler.services.booking import BookingLifecycleService


class TestInAppNotifications:

    def test_notifications_are_stored(self, db, make_service, shifts, place_hold):
        booking = place_hold()
        dispatcher = NotificationDispatcher(InAppNotifier(db), StaticAdminDirectory(["admin-1"]))
        lifecycle = make_service(BookingLifecycleService)
        lifecycle.notifications = dispatcher

        lifecycle.submit(booking.id, "user-1").unwrap()
        dispatcher.send_to_admins(NotificationType.ADMIN_REMINDER, "Due", "Two exams due", booking.id)

        repo = NotificationRepository(db)
        stored = repo.list_for_user("user-1")
        assert [n.type for n in stored] == [NotificationType.BOOKING_SUBMITTED]
        assert stored[0].booking_id == booking.id
        assert stored[0].is_read is False
        assert len(repo.list_for_user("admin-1", unread_only=True)) == 1


class TestNotificationDispatcher:

    def test_failed_delivery_is_swallowed(self, notifier):
        notifier.fail_for = {"user-1"}
        dispatcher = NotificationDispatcher(notifier)

        assert dispatcher.send("user-1", NotificationType.BOOKING_APPROVED, "t", "m") is False
        assert dispatcher.send("user-2", NotificationType.BOOKING_APPROVED, "t", "m") is True
        assert [n["user_id"] for n in notifier.sent] == ["user-2"]

    def test_admin_fan_out_counts_successes(self, notifier):
        notifier.fail_for = {"admin-2"}
        dispatcher = NotificationDispatcher(notifier, StaticAdminDirectory(["admin-1", "admin-2", "admin-3"]))

        assert dispatcher.send_to_admins(NotificationType.ADMIN_REMINDER, "t", "m") == 2

    def test_transition_survives_failed_notification(self, lifecycle, place_hold, notifier):
        notifier.fail_for = {"user-1"}
        booking = place_hold()

        submitted = lifecycle.submit(booking.id, "user-1")

        assert submitted.is_success


class TestEventBroadcaster:

    def test_failing_handler_does_not_stop_others(self):
        broadcaster = EventBroadcaster()
        received = []

        def broken(event):
            raise RuntimeError("socket closed")

        broadcaster.subscribe("booking:created", broken)
        broadcaster.subscribe("*", received.append)

        event = broadcaster.emit("booking:created", {"id": "b-1"})

        assert event.failed == 1
        assert event.delivered == 1
        assert received[0].payload == {"id": "b-1"}

    def test_unsubscribe(self):
        broadcaster = EventBroadcaster()
        received = []
        broadcaster.subscribe("booking:approved", received.append)
        broadcaster.unsubscribe("booking:approved", received.append)

        broadcaster.emit("booking:approved", {})

        assert received == []

    def test_event_serialization(self):
        event = EventBroadcaster().emit("settings:updated", {"updated_by": "admin-1"})

        data = event.to_dict()
        assert data["type"] == "settings:updated"
        assert data["payload"] == {"updated_by": "admin-1"}


class TestResponseSchemas:

    def test_booking_response_from_model(self, pending_booking):
        booking = pending_booking(department_id="CS", candidate_count=12)

        response = BookingResponse.model_validate(booking)

        assert response.department_id == "CS"
        assert response.candidate_count == 12
        assert response.status.value == "pending"
        assert response.hold_expires_at is None
        assert response.model_dump(mode="json")["booking_date"] == "2026-03-10"

    def test_history_response_exposes_metadata(self, lifecycle, place_hold):
        booking = place_hold()
        entry = lifecycle.get_history(booking.id).unwrap()[0]

        response = BookingHistoryResponse.model_validate(entry)

        assert response.event_type.value == "created"
        assert response.metadata == {"confirmation_number": booking.confirmation_number}
