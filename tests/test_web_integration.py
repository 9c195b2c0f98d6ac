"""
Web integration tests for the Flask host over the in-memory backend.
"""
import pytest

from config_manager import ConfigManager
from quota_policy.backends.memory import InMemoryBackend
from policy_app.main import create_app


@pytest.fixture
def backend():
    return InMemoryBackend(free_daily_limit=2, discovery_max_queries=2)


@pytest.fixture
def app(tmp_path, monkeypatch, backend):
    for name in ("POLICY_BACKEND", "FREE_DAILY_SWIPES", "ATOMIC_CONSUME_RPC", "DISCOVERY_MAX_QUERIES",
                 "SESSION_IDLE_MINUTES", "MAX_SESSIONS"):
        monkeypatch.delenv(name, raising=False)
    config = ConfigManager(str(tmp_path / "policy_config.json"))
    app = create_app(config_manager=config, backend=backend)
    app.config["TESTING"] = True
    yield app
    app.extensions["policy_sessions"].close_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, uid="u1"):
    response = client.post("/login", json={"uid": uid})
    assert response.status_code == 200
    return response


class TestSessionRoutes:
    """Login and logout."""

    def test_login_sets_cookie_and_opens_session(self, app, client):
        response = login(client)
        assert "uid=u1" in response.headers.get("Set-Cookie", "")
        assert response.get_json()["notices"] == []
        assert app.extensions["policy_sessions"].get("u1") is not None

    def test_login_from_form(self, client):
        response = client.post("/login", data={"uid": "form-user"})
        assert response.status_code == 200
        assert response.get_json()["uid"] == "form-user"

    def test_login_without_uid(self, client):
        assert client.post("/login", json={}).status_code == 400

    def test_logout_closes_session(self, app, client):
        login(client)
        session = app.extensions["policy_sessions"].get("u1")

        response = client.post("/logout")
        assert response.status_code == 200
        assert session.is_closed
        assert app.extensions["policy_sessions"].get("u1") is None

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/subscription"),
        ("get", "/api/swipes"),
        ("post", "/api/swipes/consume"),
        ("get", "/api/access/premium"),
        ("post", "/api/discovery/check"),
        ("post", "/api/rate-limit/login"),
        ("get", "/api/rewards/today"),
    ])
    def test_requires_login(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.get_json() == {"error": "Login required"}


class TestSubscriptionRoutes:
    """Subscription endpoints."""

    def test_defaults_to_free(self, client):
        login(client)
        data = client.get("/api/subscription").get_json()
        assert data["tier"] == "free"
        assert data["status"] == "active"
        assert data["remaining_swipes"] == 2

    def test_refresh_after_upgrade(self, client, backend):
        login(client)
        backend.set_subscription("u1", "elite")

        data = client.post("/api/subscription/refresh").get_json()
        assert data["refreshed"] is True
        assert data["tier"] == "elite"

    def test_checkout(self, client):
        login(client)
        data = client.post("/api/subscription/checkout/premium").get_json()
        assert data["url"].endswith("/price_premium_monthly")

    def test_checkout_unknown_tier(self, client):
        login(client)
        assert client.post("/api/subscription/checkout/platinum").status_code == 400
        assert client.post("/api/subscription/checkout/free").status_code == 400

    def test_portal(self, client):
        login(client)
        assert client.post("/api/subscription/portal").get_json()["url"].endswith("/portal")


class TestSwipeRoutes:
    """Swipe endpoints."""

    def test_free_user_runs_out(self, client):
        login(client)

        first = client.post("/api/swipes/consume").get_json()
        assert first["success"] is True
        assert first["remaining_swipes"] == 1

        client.post("/api/swipes/consume")
        denied = client.post("/api/swipes/consume").get_json()
        assert denied["success"] is False
        assert denied["can_swipe"] is False
        assert denied["notices"][0]["title"] == "Daily Limit Reached"

    def test_premium_shows_sentinel(self, client, backend):
        backend.set_subscription("u1", "premium")
        login(client)

        for _ in range(3):
            data = client.post("/api/swipes/consume").get_json()
            assert data["success"] is True
            assert data["remaining_swipes"] == 999
        assert backend.swipes_used_today("u1") == 3

    def test_refresh(self, client, backend):
        login(client)
        backend.increment_swipe_count("u1")

        data = client.post("/api/swipes/refresh").get_json()
        assert data["remaining_swipes"] == 1


class TestAccessRoutes:
    """Access gate endpoint."""

    def test_denied_with_upgrade(self, client, backend):
        backend.set_subscription("u1", "basic")
        login(client)

        data = client.get("/api/access/premium").get_json()
        assert data["allowed"] is False
        assert data["current_tier"] == "basic"
        assert data["upgrade"]["price_ref"] == "price_premium_monthly"

    def test_allowed(self, client, backend):
        backend.set_subscription("u1", "elite")
        login(client)
        assert client.get("/api/access/premium").get_json()["allowed"] is True

    def test_unknown_tier(self, client):
        login(client)
        assert client.get("/api/access/gold").status_code == 400


class TestRateLimitRoutes:
    """Rate limit endpoints."""

    def test_discovery_limit(self, client):
        login(client)

        assert client.post("/api/discovery/check").get_json()["allowed"] is True
        assert client.post("/api/discovery/check").get_json()["allowed"] is True

        data = client.post("/api/discovery/check").get_json()
        assert data["allowed"] is False
        assert data["state"]["is_limited"] is True
        assert data["notices"][0]["title"] == "Rate Limit Reached"

    def test_generic_check_and_record(self, client):
        login(client)

        assert client.post("/api/rate-limit/login/record").get_json()["recorded"] is True
        data = client.post("/api/rate-limit/login").get_json()
        assert data["allowed"] is True
        assert data["blocked"] is False
        assert data["remaining_attempts"] == 9

    @pytest.mark.parametrize("path", ["/api/rate-limit/swipe", "/api/rate-limit/swipe/record"])
    def test_swipe_is_not_a_generic_action(self, client, backend, path):
        login(client)

        response = client.post(path)
        assert response.status_code == 400
        assert "swipe" in response.get_json()["error"]
        assert backend.swipes_used_today("u1") == 0
        assert client.get("/api/swipes").get_json()["remaining_swipes"] == 2


class TestRewardRoutes:
    """Daily reward endpoints."""

    def test_today_then_claim(self, client):
        login(client)

        reward = client.get("/api/rewards/today").get_json()["reward"]
        assert reward["claimed"] is False
        assert reward["reward_type"] in ("super_like", "boost", "points")

        data = client.post("/api/rewards/claim").get_json()
        assert data["claimed"] is True
        assert data["reward"]["id"] == reward["id"]
        assert data["notices"][0]["title"] == "Daily Reward Claimed!"

        again = client.post("/api/rewards/claim").get_json()
        assert again["claimed"] is False


class TestMisc:
    """Other endpoints."""

    def test_test_endpoint(self, client):
        data = client.get("/test").get_json()
        assert data["status"] == "ok"

    def test_not_found_is_json(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.get_json()["error"] == "Not Found"
