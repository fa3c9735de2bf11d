import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from profiles.models import Profile

User = get_user_model()


@pytest.fixture(autouse=True)
def _isolated_runtime(settings):
    # 스로틀 카운터(locmem 캐시)와 채널 레이어를 테스트마다 분리
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
    settings.CELERY_TASK_ALWAYS_EAGER = True
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_profile(db):
    def _make(username, **fields):
        email = fields.pop("email", f"{username.lower()}@example.com")
        password = fields.pop("password", None)
        user = User.objects.create_user(email=email, password=password)
        return Profile.objects.create(user=user, username=username, **fields)

    return _make


@pytest.fixture
def api():
    return APIClient()


class DummyLayer:
    """group_send 를 기록만 하는 채널 레이어."""

    def __init__(self):
        self.sent = []

    def group_send(self, group, message):
        self.sent.append((group, message))


@pytest.fixture
def push_layer(monkeypatch):
    layer = DummyLayer()
    monkeypatch.setattr("notifications.tasks.get_channel_layer", lambda: layer)
    return layer
