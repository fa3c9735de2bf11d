import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from notifications import services
from notifications.models import Notification, NotificationType
from notifications.tasks import push_change


def _notify(recipient, actor, **extra):
    data = dict(user_id=recipient.id, actor_id=actor.id, actor_name=actor.username, type=NotificationType.POST_LIKE, title="liked")
    data.update(extra)
    return services.create_notification(**data)


@pytest.fixture
def pair(make_profile):
    return make_profile("alice"), make_profile("bob")


@pytest.mark.django_db
class TestCreateNotification:
    def test_self_notification_rejected_without_insert(self, pair):
        alice, _ = pair

        res = _notify(alice, alice)

        assert res.success is False
        assert res.error == "Cannot notify self."
        assert not Notification.objects.exists()

    def test_actor_name_required(self, pair):
        alice, bob = pair

        res = _notify(alice, bob, actor_name="  ")

        assert res.error == "Actor name is required."
        assert not Notification.objects.exists()

    def test_inserted_unread(self, pair):
        alice, bob = pair

        n = _notify(alice, bob).notification

        assert n.is_read is False
        assert n.read_at is None
        assert services.get_unread_notification_count(alice.id) == 1

    def test_best_effort_swallows_rejection(self, pair):
        alice, _ = pair

        assert services.notify_best_effort(user_id=alice.id, actor_id=alice.id, actor_name="alice", type=NotificationType.COMMENT, title="x") is None


@pytest.mark.django_db
class TestReadAndDelete:
    def test_listing_is_newest_first_with_read_filter(self, pair):
        alice, bob = pair
        older = _notify(alice, bob, title="older").notification
        newer = _notify(alice, bob, title="newer").notification
        Notification.objects.filter(pk=older.pk).update(created_at=timezone.now() - timedelta(minutes=5))
        services.mark_notification_as_read(older.id, alice.id)

        assert [n.id for n in services.get_notifications(alice.id)] == [newer.id, older.id]
        assert [n.id for n in services.get_notifications(alice.id, read=True)] == [older.id]
        assert [n.id for n in services.get_notifications(alice.id, offset=1, limit=1)] == [older.id]

    def test_mark_read_is_scoped_to_owner(self, pair):
        alice, bob = pair
        n = _notify(alice, bob).notification

        res = services.mark_notification_as_read(n.id, bob.id)

        n.refresh_from_db()
        assert res.success is False
        assert res.error == "Notification not found."
        assert n.is_read is False

    def test_mark_read_twice_changes_once(self, pair):
        alice, bob = pair
        n = _notify(alice, bob).notification

        first = services.mark_notification_as_read(n.id, alice.id)
        second = services.mark_notification_as_read(n.id, alice.id)

        n.refresh_from_db()
        assert first.success and first.changed
        assert second.success and not second.changed
        assert n.is_read is True and n.read_at is not None

    def test_mark_all_only_touches_own_unread(self, pair, make_profile):
        alice, bob = pair
        carol = make_profile("carol")
        for _ in range(3):
            _notify(alice, bob)
        foreign = _notify(carol, bob).notification

        res = services.mark_all_notifications_as_read(alice.id)

        foreign.refresh_from_db()
        assert res.success and res.updated == 3
        assert services.get_unread_notification_count(alice.id) == 0
        assert foreign.is_read is False

    def test_delete_is_scoped_to_owner(self, pair):
        alice, bob = pair
        n = _notify(alice, bob).notification

        assert services.delete_notification(n.id, bob.id).error == "Notification not found."
        assert services.delete_notification(n.id, alice.id).success
        assert not Notification.objects.exists()


@pytest.mark.django_db
class TestPushEvents:
    def test_insert_published_after_commit(self, pair, push_layer, django_capture_on_commit_callbacks):
        alice, bob = pair

        with django_capture_on_commit_callbacks(execute=True):
            n = _notify(alice, bob).notification

        assert len(push_layer.sent) == 1
        group, message = push_layer.sent[0]
        assert group == f"notifications.{alice.id}"
        assert message["type"] == "notification.change"
        assert message["payload"]["event"] == "INSERT"
        assert message["payload"]["new"]["id"] == str(n.id)
        assert message["payload"]["new"]["is_read"] is False

    def test_update_published_with_old_state(self, pair, push_layer, django_capture_on_commit_callbacks):
        alice, bob = pair
        n = _notify(alice, bob).notification

        with django_capture_on_commit_callbacks(execute=True):
            services.mark_notification_as_read(n.id, alice.id)
            services.mark_notification_as_read(n.id, alice.id)

        assert len(push_layer.sent) == 1
        payload = push_layer.sent[0][1]["payload"]
        assert payload["event"] == "UPDATE"
        assert payload["new"]["is_read"] is True
        assert payload["old"] == {"id": str(n.id), "is_read": False}

    def test_mark_all_publishes_per_changed_row(self, pair, push_layer, django_capture_on_commit_callbacks):
        alice, bob = pair
        first = _notify(alice, bob).notification
        _notify(alice, bob)
        services.mark_notification_as_read(first.id, alice.id)

        with django_capture_on_commit_callbacks(execute=True):
            services.mark_all_notifications_as_read(alice.id)

        assert len(push_layer.sent) == 1
        assert push_layer.sent[0][1]["payload"]["new"]["id"] != str(first.id)

    def test_push_task_without_layer_is_noop(self, monkeypatch):
        monkeypatch.setattr("notifications.tasks.get_channel_layer", lambda: None)

        assert push_change(str(uuid.uuid4()), {"event": "INSERT", "new": {}}) == 0


@pytest.mark.django_db
class TestNotificationsAPI:
    BASE = "/api/v1/notifications"

    def test_list_count_read_and_delete(self, api, pair):
        alice, bob = pair
        n1 = _notify(alice, bob).notification
        n2 = _notify(alice, bob).notification
        api.force_authenticate(user=alice.user)

        listed = api.get(self.BASE).json()
        assert listed["count"] == 2
        assert {n["id"] for n in listed["results"]} == {str(n1.id), str(n2.id)}
        assert api.get(f"{self.BASE}/unread-count").json() == {"unread_count": 2}

        assert api.post(f"{self.BASE}/{n1.id}/read").json() == {"success": True}
        assert api.get(f"{self.BASE}/unread-count").json() == {"unread_count": 1}
        assert api.get(self.BASE, {"read": "false"}).json()["count"] == 1

        assert api.post(f"{self.BASE}/read-all").json() == {"updated": 1}
        assert api.delete(f"{self.BASE}/{n2.id}").status_code == 204
        assert api.delete(f"{self.BASE}/{n2.id}").status_code == 404

    def test_cannot_read_foreign_notification(self, api, pair):
        alice, bob = pair
        n = _notify(alice, bob).notification
        api.force_authenticate(user=bob.user)

        res = api.post(f"{self.BASE}/{n.id}/read")

        assert res.status_code == 404
        n.refresh_from_db()
        assert n.is_read is False

    def test_list_offset_limit_envelope(self, api, pair):
        alice, bob = pair
        for i in range(3):
            _notify(alice, bob, title=f"n{i}")
        api.force_authenticate(user=alice.user)

        body = api.get(self.BASE, {"offset": 1, "limit": 1}).json()

        assert (body["count"], body["offset"], body["limit"]) == (3, 1, 1)
        assert len(body["results"]) == 1
