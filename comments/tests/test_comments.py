import pytest
from django.db import DatabaseError

from comments import services
from comments.models import Comment
from notifications.models import Notification, NotificationType
from posts.models import Post
from posts.services import create_post


@pytest.fixture
def post_of_alice(make_profile):
    alice = make_profile("alice")
    return alice, create_post(author_id=alice.id, title="t", content="c").post


@pytest.mark.django_db
class TestCommentValidation:
    def test_500_chars_accepted_501_rejected(self, make_profile, post_of_alice):
        _, post = post_of_alice
        bob = make_profile("bob")

        ok = services.create_comment(post_id=post.id, author_id=bob.id, content="x" * 500)
        too_long = services.create_comment(post_id=post.id, author_id=bob.id, content="x" * 501)

        assert ok.success is True
        assert too_long.success is False
        assert too_long.error == "Comment must be 500 characters or fewer."
        assert Comment.objects.count() == 1

    @pytest.mark.parametrize("content", ["", "   ", "\n\t "])
    def test_whitespace_only_rejected(self, post_of_alice, content):
        alice, post = post_of_alice

        res = services.create_comment(post_id=post.id, author_id=alice.id, content=content)

        assert res.success is False
        assert res.error == "Comment must not be empty."

    def test_content_is_trimmed(self, post_of_alice):
        alice, post = post_of_alice

        res = services.create_comment(post_id=post.id, author_id=alice.id, content="  hi  ")

        assert res.comment.content == "hi"

    def test_preview(self):
        assert services.message_preview("short") == "short"
        assert services.message_preview("y" * 60) == "y" * 50 + "..."


@pytest.mark.django_db
class TestCommentSideEffects:
    def test_comment_notifies_post_author(self, make_profile, post_of_alice):
        alice, post = post_of_alice
        bob = make_profile("bob")

        res = services.create_comment(post_id=post.id, author_id=bob.id, content="z" * 80)

        n = Notification.objects.get()
        assert n.user_id == alice.id
        assert n.actor_id == bob.id
        assert n.type == NotificationType.COMMENT
        assert n.title == "bob님이 댓글을 남겼습니다"
        assert n.message == "z" * 50 + "..."
        assert n.comment_id == res.comment.id
        assert Post.objects.get(pk=post.id).comments_count == 1

    def test_own_post_comment_does_not_notify(self, post_of_alice):
        alice, post = post_of_alice

        services.create_comment(post_id=post.id, author_id=alice.id, content="note to self")

        assert not Notification.objects.exists()

    def test_notification_failure_keeps_comment(self, make_profile, post_of_alice, monkeypatch):
        _, post = post_of_alice
        bob = make_profile("bob")

        def boom(**kwargs):
            raise RuntimeError("down")

        monkeypatch.setattr("notifications.services.create_notification", boom)

        res = services.create_comment(post_id=post.id, author_id=bob.id, content="hello")

        assert res.success is True
        assert Comment.objects.filter(pk=res.comment.id).exists()

    def test_lookup_failure_keeps_comment(self, make_profile, post_of_alice, monkeypatch):
        _, post = post_of_alice
        bob = make_profile("bob")

        class BrokenProfiles:
            class objects:
                @staticmethod
                def filter(**kwargs):
                    raise DatabaseError("profiles unavailable")

        monkeypatch.setattr(services, "Profile", BrokenProfiles)

        res = services.create_comment(post_id=post.id, author_id=bob.id, content="hello", author_name="bob")

        assert res.success is True
        assert Comment.objects.filter(pk=res.comment.id).exists()
        assert not Notification.objects.exists()


@pytest.mark.django_db
class TestCommentOwnership:
    def test_edit_marks_edited(self, post_of_alice):
        alice, post = post_of_alice
        comment = services.create_comment(post_id=post.id, author_id=alice.id, content="first").comment

        res = services.edit_comment(comment.id, alice.id, "second")

        comment.refresh_from_db()
        assert res.success
        assert comment.content == "second"
        assert comment.is_edited is True
        assert comment.updated_at is not None

    def test_edit_revalidates(self, post_of_alice):
        alice, post = post_of_alice
        comment = services.create_comment(post_id=post.id, author_id=alice.id, content="first").comment

        res = services.edit_comment(comment.id, alice.id, "x" * 501)

        assert res.error == "Comment must be 500 characters or fewer."

    def test_others_cannot_edit_or_delete(self, make_profile, post_of_alice):
        alice, post = post_of_alice
        bob = make_profile("bob")
        comment = services.create_comment(post_id=post.id, author_id=alice.id, content="mine").comment

        edit = services.edit_comment(comment.id, bob.id, "hacked")
        delete = services.delete_comment(comment.id, bob.id)

        assert edit.error == "You can only edit your own comments."
        assert delete.error == "You can only delete your own comments."
        comment.refresh_from_db()
        assert comment.content == "mine"

    def test_delete_decrements_count_not_below_zero(self, post_of_alice):
        alice, post = post_of_alice
        comment = services.create_comment(post_id=post.id, author_id=alice.id, content="bye").comment
        Post.objects.filter(pk=post.id).update(comments_count=0)

        res = services.delete_comment(comment.id, alice.id)

        assert res.success
        assert Post.objects.get(pk=post.id).comments_count == 0
        assert services.get_comment_count(post.id) == 0


@pytest.mark.django_db
class TestCommentsAPI:
    def test_create_list_patch_delete(self, api, make_profile, post_of_alice):
        _, post = post_of_alice
        bob = make_profile("bob")
        api.force_authenticate(user=bob.user)
        base = f"/api/v1/posts/{post.id}/comments"

        created = api.post(base, {"content": "nice"}, format="json")
        assert created.status_code == 201
        cid = created.json()["id"]

        listed = api.get(base)
        assert [c["id"] for c in listed.json()] == [cid]

        patched = api.patch(f"/api/v1/comments/{cid}", {"content": "very nice"}, format="json")
        assert patched.status_code == 200
        assert patched.json()["is_edited"] is True

        assert api.delete(f"/api/v1/comments/{cid}").status_code == 204

    def test_too_long_is_400(self, api, post_of_alice):
        alice, post = post_of_alice
        api.force_authenticate(user=alice.user)

        res = api.post(f"/api/v1/posts/{post.id}/comments", {"content": "x" * 501}, format="json")

        assert res.status_code == 400
        assert res.json()["detail"] == "Comment must be 500 characters or fewer."

    def test_foreign_delete_is_403(self, api, make_profile, post_of_alice):
        alice, post = post_of_alice
        bob = make_profile("bob")
        comment = services.create_comment(post_id=post.id, author_id=alice.id, content="mine").comment
        api.force_authenticate(user=bob.user)

        assert api.delete(f"/api/v1/comments/{comment.id}").status_code == 403
