import uuid

import pytest
from django.contrib.auth import get_user_model

from posts.services import create_post
from profiles.models import Profile
from profiles.services.accounts import delete_orphaned_account, derive_username_base, ensure_profile, validate_username
from relations.services import RelationshipService

User = get_user_model()


@pytest.mark.django_db
class TestEnsureProfile:
    def test_existing_profile_is_returned(self, make_profile):
        p = make_profile("alice")

        profile, created = ensure_profile(p.user)

        assert created is False
        assert profile.pk == p.pk

    def test_username_from_metadata_chain(self):
        user = User.objects.create_user(email="zed@example.com", user_metadata={"user_name": "zed.dev!", "name": "Zed"})

        profile, created = ensure_profile(user)

        assert created is True
        assert profile.username == "zeddev"

    def test_falls_back_to_email_local_part(self):
        user = User.objects.create_user(email="carol_k@example.com")

        assert derive_username_base(user) == "carol_k"

    def test_short_candidate_falls_back_to_timestamp(self):
        user = User.objects.create_user(email="x@example.com")

        assert derive_username_base(user).startswith("user_")

    def test_collision_gets_numeric_suffix(self, make_profile):
        make_profile("dora")
        user = User.objects.create_user(email="dora@elsewhere.org")

        profile, created = ensure_profile(user)

        assert created is True
        assert profile.username != "dora"
        assert profile.username.startswith("dora_")
        assert profile.username[len("dora_") :].isdigit()
        assert len(profile.username) <= 20


@pytest.mark.django_db
class TestUsernameRules:
    @pytest.mark.parametrize("value", ["ab", "a" * 21, "has space", "hyphen-ated", "한글이름"])
    def test_invalid_shapes(self, value):
        res = validate_username(value)
        assert res.success is False
        assert res.error == "Username must be 3-20 characters of letters, numbers or underscores."

    def test_taken_is_case_sensitive(self, make_profile):
        make_profile("Alice")

        assert validate_username("Alice").error == "Username is already taken."
        assert validate_username("alice").success is True

    def test_reserved(self):
        assert validate_username("admin").success is False


@pytest.mark.django_db
class TestOrphanedAccounts:
    def test_delete_refuses_when_profile_exists(self, make_profile):
        p = make_profile("alice")

        res = delete_orphaned_account(p.user_id)

        assert res.success is False
        assert res.error == "Cannot delete user with existing profile. Delete profile first."
        assert User.objects.filter(pk=p.user_id).exists()

    def test_delete_orphan(self):
        orphan = User.objects.create_user(email="ghost@example.com")

        assert delete_orphaned_account(orphan.id).success is True
        assert not User.objects.filter(pk=orphan.id).exists()

    def test_delete_unknown(self):
        assert delete_orphaned_account(uuid.uuid4()).error == "User not found."


@pytest.mark.django_db
class TestMaintenanceAPI:
    def test_fix_profile_creates_then_reports_exists(self, api):
        user = User.objects.create_user(email="newbie@example.com", user_metadata={"preferred_username": "newbie"})
        api.force_authenticate(user=user)

        first = api.get("/api/fix-profile")
        second = api.get("/api/fix-profile")

        assert first.status_code == 200
        assert first.json()["status"] == "created"
        assert first.json()["profile"]["username"] == "newbie"
        assert second.json()["status"] == "exists"
        assert Profile.objects.filter(user=user).count() == 1

    def test_fix_profile_requires_auth(self, api):
        assert api.get("/api/fix-profile").status_code == 401

    def test_orphaned_accounts_admin_only(self, api, make_profile):
        p = make_profile("alice")
        api.force_authenticate(user=p.user)

        assert api.get("/api/orphaned-accounts").status_code == 403

    def test_orphaned_accounts_listing_and_delete(self, api, make_profile):
        make_profile("alice")
        orphan = User.objects.create_user(email="ghost@example.com")
        admin = User.objects.create_user(email="root@example.com", is_staff=True)
        api.force_authenticate(user=admin)

        listing = api.get("/api/orphaned-accounts").json()
        assert listing["total_auth_users"] == 3
        assert listing["total_profiles"] == 1
        assert listing["orphaned_count"] == 2
        assert str(orphan.id) in {a["id"] for a in listing["orphaned_accounts"]}

        assert api.delete("/api/orphaned-accounts").status_code == 400
        assert api.delete("/api/orphaned-accounts?userId=nope").status_code == 400
        assert api.delete(f"/api/orphaned-accounts?userId={uuid.uuid4()}").status_code == 404

        ok = api.delete(f"/api/orphaned-accounts?userId={orphan.id}")
        assert ok.status_code == 200
        assert ok.json() == {"success": True}

    def test_orphaned_delete_with_profile_is_400(self, api, make_profile):
        p = make_profile("alice")
        admin = User.objects.create_user(email="root@example.com", is_staff=True)
        api.force_authenticate(user=admin)

        res = api.delete(f"/api/orphaned-accounts?userId={p.user_id}")

        assert res.status_code == 400
        assert res.json()["detail"] == "Cannot delete user with existing profile. Delete profile first."


@pytest.mark.django_db
class TestProfilesAPI:
    BASE = "/api/v1/profiles"

    def test_create_and_retrieve_with_counts(self, api, make_profile):
        user = User.objects.create_user(email="eve@example.com")
        other = make_profile("mallory")
        api.force_authenticate(user=user)

        created = api.post(self.BASE, {"username": "eve", "bio": "hi"}, format="json")
        assert created.status_code == 201
        RelationshipService.follow_user(user.id, other.id)

        res = api.get(f"{self.BASE}/mallory")
        body = res.json()
        assert res.status_code == 200
        assert body["follower_count"] == 1
        assert body["is_following"] is True
        assert body["is_followed_by"] is False

    def test_me_patch_privacy_flags(self, api, make_profile):
        p = make_profile("alice")
        api.force_authenticate(user=p.user)

        res = api.patch(f"{self.BASE}/me", {"is_private": True, "allow_follow": False}, format="json")

        assert res.status_code == 200
        p.refresh_from_db()
        assert p.is_private is True and p.allow_follow is False

    def test_me_patch_taken_username(self, api, make_profile):
        make_profile("taken")
        p = make_profile("alice")
        api.force_authenticate(user=p.user)

        res = api.patch(f"{self.BASE}/me", {"username": "taken"}, format="json")

        assert res.status_code == 400
        assert "Username is already taken." in str(res.json())

    def test_availability(self, api, make_profile):
        p = make_profile("alice")
        api.force_authenticate(user=p.user)

        free = api.get(f"{self.BASE}/availability", {"username": "brand_new"}).json()
        dup = api.get(f"{self.BASE}/availability", {"username": "alice"}).json()
        bad = api.get(f"{self.BASE}/availability", {"username": "a!"}).json()

        assert free == {"username": "brand_new", "available": True, "reasons": []}
        assert dup["reasons"] == ["Duplicate Username"]
        assert set(bad["reasons"]) == {"Type Error(Length)", "Type Error(Format)"}

    def test_stats(self, api, make_profile):
        a, b = make_profile("alice"), make_profile("bob")
        create_post(author_id=a.id, title="t", content="c")
        RelationshipService.follow_user(b.id, a.id)
        api.force_authenticate(user=b.user)

        res = api.get(f"{self.BASE}/alice/stats")

        assert res.json() == {"post_count": 1, "follower_count": 1, "following_count": 0}
