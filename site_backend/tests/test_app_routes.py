from site_backend.app.core.session import ACCESS_TOKEN_COOKIE, PROFILE_COOKIE


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["app_env"] == "dev"


def test_root_points_to_sign_in(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["sign_in_url"] == "/auth/tiktok/login"


def test_landing_signed_out(client):
    response = client.get("/tiktok")
    assert response.status_code == 200
    assert response.json() == {"signed_in": False, "profile": None}


def test_landing_signed_in(client, fake_http):
    client.cookies.set(ACCESS_TOKEN_COOKIE, "T1")
    client.cookies.set(PROFILE_COOKIE, '{"open_id":"U1","display_name":"Ann"}')

    response = client.get("/tiktok")

    assert response.json() == {"signed_in": True, "profile": {"open_id": "U1", "display_name": "Ann"}}
    assert fake_http.get.call_count == 0


def test_security_headers(client):
    response = client.get("/health")
    assert response.headers["x-frame-options"] == "DENY"
    assert response.headers["x-content-type-options"] == "nosniff"
    assert "tiktokcdn.com" in response.headers["content-security-policy"]
    # Cleartext dev requests never get HSTS
    assert "strict-transport-security" not in response.headers


def test_session_responses_are_not_cacheable(client):
    assert client.get("/tiktok").headers["cache-control"] == "no-store"
    assert client.get("/auth/error").headers["cache-control"] == "no-store"


def test_unknown_host_is_rejected(client):
    response = client.get("/health", headers={"host": "evil.test"})
    assert response.status_code == 400


def test_cors_origins_come_from_settings():
    from site_backend.app.core.config import Settings
    from site_backend.main import DEV_ORIGINS, cors_origins

    configured = Settings(APP_ENV="production", SITE_ALLOWED_ORIGINS="https://a.test, https://b.test")
    assert cors_origins(configured) == ["https://a.test", "https://b.test"]
    assert cors_origins(Settings(APP_ENV="production")) == []
    assert cors_origins(Settings(APP_ENV="dev")) == DEV_ORIGINS
