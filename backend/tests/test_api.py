"""Tests for the HTTP endpoints."""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from linksplit.config import get_settings
from linksplit.main import app
from linksplit.models.link import Link
from linksplit.services.link_cache import LinkCache, get_link_cache

COOKIE = get_settings().test_cookie_name

TESTS = [
    {"url": "https://a.example", "percentage": 50},
    {"url": "https://b.example", "percentage": 50}
]


def in_days(days):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create_link(client, key="launch", tests=TESTS, days=14):
    payload = {"key": key, "url": "https://a.example"}
    if tests is not None:
        payload.update(tests=tests, tests_complete_at=in_days(days))
    response = client.post("/links", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    """Test the basic health check."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Trace-ID" in response.headers


def test_create_link_with_test(client):
    """Test a link created with tests is active right away."""
    body = create_link(client)

    assert body["test_state"] == "active"
    assert body["test_label"] == "2 URLs"
    assert body["tests"] == TESTS
    assert body["tests_started_at"] is not None


def test_create_link_requires_completion_date_with_tests(client):
    """Test tests without a completion date are rejected by validation."""
    response = client.post("/links", json={"key": "launch", "url": "https://a.example", "tests": TESTS})

    assert response.status_code == 422


def test_save_tests_rejections_name_the_reason(client):
    """Test each save-time validation error is reported with its reason."""
    create_link(client, tests=None)

    bad_sum = [{"url": "https://a.example", "percentage": 50}, {"url": "https://b.example", "percentage": 40}]
    response = client.put("/links/launch/tests", json={"tests": bad_sum, "tests_complete_at": in_days(7)})
    assert response.status_code == 422
    assert "100%" in response.json()["detail"]

    empty_url = [{"url": "https://a.example", "percentage": 50}, {"url": "", "percentage": 50}]
    response = client.put("/links/launch/tests", json={"tests": empty_url, "tests_complete_at": in_days(7)})
    assert response.status_code == 422
    assert "URL 2 is required" in response.json()["detail"]

    response = client.put("/links/launch/tests", json={"tests": TESTS, "tests_complete_at": in_days(60)})
    assert response.status_code == 422
    assert "6 weeks" in response.json()["detail"]

    assert client.get("/links/launch").json()["test_state"] == "no_test"


def test_save_tests_unknown_link(client):
    """Test saving tests on a missing link is a 404."""
    response = client.put("/links/nope/tests", json={"tests": TESTS, "tests_complete_at": in_days(7)})

    assert response.status_code == 404


def test_end_test_then_redirects_go_to_winner(client):
    """Test ending a test collapses every redirect to the winner."""
    create_link(client)

    response = client.post("/links/launch/tests/end", json={"winner_url": "https://b.example"})
    assert response.status_code == 200
    body = response.json()
    assert body["url"] == "https://b.example"
    assert body["test_state"] == "completed"
    assert body["test_label"] == "Test Complete"

    for _ in range(5):
        response = client.get("/r/launch", follow_redirects=False)
        assert response.headers["location"] == "https://b.example"
        assert COOKIE not in response.cookies

    assert client.post("/links/launch/tests/end", json={}).status_code == 409


def test_remove_started_test_conflicts(client):
    """Test a started test cannot be removed."""
    create_link(client)

    response = client.delete("/links/launch/tests")

    assert response.status_code == 409


def test_redirect_without_test(client):
    """Test a plain link redirects to its URL without a cookie."""
    create_link(client, tests=None)

    response = client.get("/r/launch", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "https://a.example"
    assert COOKIE not in response.cookies


def test_redirect_unknown_link(client):
    """Test unknown keys are a 404."""
    assert client.get("/r/nope", follow_redirects=False).status_code == 404


def test_redirect_sets_sticky_cookie_once(client):
    """Test the first visit draws and sets the cookie, later visits reuse it."""
    create_link(client)

    first = client.get("/r/launch", follow_redirects=False)
    destination = first.headers["location"]
    assert destination in {"https://a.example", "https://b.example"}
    # The URL is quoted in Set-Cookie since it contains "/"
    assert first.cookies[COOKIE].strip('"') == destination

    for _ in range(10):
        again = client.get("/r/launch", follow_redirects=False)
        assert again.headers["location"] == destination
        assert COOKIE not in again.cookies


def test_redirect_honours_existing_sticky_cookie(db, link_cache):
    """Test a visitor arriving with a live assignment keeps it."""
    with TestClient(app, cookies={COOKIE: "https://b.example"}) as client:
        create_link(client)
        for _ in range(10):
            response = client.get("/r/launch", follow_redirects=False)
            assert response.headers["location"] == "https://b.example"


def test_redirect_falls_back_on_corrupt_test(client, db):
    """Test corrupt stored tests redirect to the link URL."""
    create_link(client, tests=None)
    link = db.query(Link).filter(Link.key == "launch").first()
    link.tests = [{"url": "https://x.example", "percentage": 70}, {"url": "https://y.example", "percentage": 70}]
    link.tests_complete_at = datetime.now(timezone.utc) + timedelta(days=3)
    db.commit()

    response = client.get("/r/launch", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "https://a.example"


def test_redirect_uses_cached_record(client, mock_redis):
    """Test a cache hit skips the database entirely."""
    mock_redis.get.return_value = b'{"url": "https://cached.example", "tests": null}'

    response = client.get("/r/only-in-cache", follow_redirects=False)

    assert response.headers["location"] == "https://cached.example"


def test_redirect_ignores_cached_record_without_url(client, mock_redis):
    """Test a cached record missing its URL is a miss and the database answers."""
    create_link(client, tests=None)
    mock_redis.get.return_value = b'{"tests": null}'

    response = client.get("/r/launch", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "https://a.example"


def test_editor_add_and_remove(client):
    """Test the stateless rebalancing endpoints."""
    response = client.post("/tests/variants/seed", json={"url": "https://a.example"})
    assert response.json()["tests"] == [
        {"url": "https://a.example", "percentage": 50},
        {"url": "", "percentage": 50}
    ]

    response = client.post("/tests/variants/add", json={"tests": TESTS})
    assert response.status_code == 200
    assert [t["percentage"] for t in response.json()["tests"]] == [33, 33, 34]
    assert response.json()["evenly_split"] is True

    uneven = [
        {"url": "https://a.example", "percentage": 70},
        {"url": "https://b.example", "percentage": 15},
        {"url": "https://c.example", "percentage": 15}
    ]
    response = client.post("/tests/variants/remove", json={"tests": uneven, "index": 1})
    assert response.json()["tests"] == [
        {"url": "https://a.example", "percentage": 70},
        {"url": "https://c.example", "percentage": 30}
    ]


def test_editor_rejections(client):
    """Test rebalancing errors are 422s with a reason."""
    full = [{"url": f"https://{i}.example", "percentage": 25} for i in range(4)]
    response = client.post("/tests/variants/add", json={"tests": full})
    assert response.status_code == 422
    assert "only add 4" in response.json()["detail"]

    response = client.post("/tests/variants/remove", json={"tests": TESTS, "index": 0})
    assert response.status_code == 422
    assert "at least 2" in response.json()["detail"]

    response = client.post("/tests/variants/percentages", json={"tests": TESTS, "percentages": [95, 5]})
    assert response.status_code == 422


@pytest.fixture
def link_cache(mock_redis):
    """Route the app's link cache to the mock Redis client."""
    cache = LinkCache(mock_redis)
    app.dependency_overrides[get_link_cache] = lambda: cache
    yield cache
    app.dependency_overrides.clear()


@pytest.fixture
def client(db, link_cache):
    """Create a test client backed by the test database."""
    return TestClient(app)
