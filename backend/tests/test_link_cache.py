"""Tests for the Redis link cache."""
import json
from datetime import datetime, timezone

import redis

from linksplit.services.link_cache import LinkCache

RECORD = {
    "url": "https://a.example",
    "tests": [
        {"url": "https://a.example", "percentage": 50},
        {"url": "https://b.example", "percentage": 50}
    ],
    "tests_started_at": datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc),
    "tests_complete_at": datetime(2026, 10, 30, 12, 0, tzinfo=timezone.utc),
}


def test_miss_returns_none(mock_redis):
    """Test an empty cache returns None."""
    cache = LinkCache(mock_redis)

    assert cache.get("launch") is None
    mock_redis.get.assert_called_once_with("link:launch")


def test_set_serializes_with_ttl(mock_redis):
    """Test records are stored as JSON under link:{key} with the TTL."""
    cache = LinkCache(mock_redis, ttl=120, test_ttl=30)
    cache.set("launch", RECORD)

    args, kwargs = mock_redis.set.call_args
    assert args[0] == "link:launch"
    assert json.loads(args[1])["tests_complete_at"] == "2026-10-30T12:00:00+00:00"
    assert kwargs["ex"] == 30


def test_records_without_test_use_long_ttl(mock_redis):
    """Test only records carrying a test get the short TTL."""
    cache = LinkCache(mock_redis, ttl=120, test_ttl=30)
    cache.set("plain", {
        "url": "https://a.example",
        "tests": None,
        "tests_started_at": None,
        "tests_complete_at": None,
    })

    assert mock_redis.set.call_args.kwargs["ex"] == 120


def test_hit_restores_timestamps(mock_redis):
    """Test cached timestamps come back as datetimes."""
    cache = LinkCache(mock_redis)
    cache.set("launch", RECORD)
    mock_redis.get.return_value = mock_redis.set.call_args[0][1].encode()

    assert cache.get("launch") == RECORD


def test_corrupt_entry_is_a_miss(mock_redis):
    """Test unreadable cache entries are ignored."""
    cache = LinkCache(mock_redis)

    for raw in (b"{not json", b"[1, 2]", b'{"tests": null}', b'{"url": 42}'):
        mock_redis.get.return_value = raw
        assert cache.get("launch") is None, raw


def test_redis_errors_are_misses(mock_redis):
    """Test a Redis outage never breaks the caller."""
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.set.side_effect = redis.ConnectionError("down")
    mock_redis.delete.side_effect = redis.ConnectionError("down")
    cache = LinkCache(mock_redis)

    assert cache.get("launch") is None
    cache.set("launch", RECORD)
    cache.invalidate("launch")


def test_invalidate_deletes_key(mock_redis):
    """Test invalidation removes the link's entry."""
    LinkCache(mock_redis).invalidate("launch")

    mock_redis.delete.assert_called_once_with("link:launch")


def test_disabled_cache_skips_redis(mock_redis):
    """Test a disabled cache never touches Redis."""
    cache = LinkCache(mock_redis, enabled=False)
    cache.set("launch", RECORD)

    assert cache.get("launch") is None
    mock_redis.get.assert_not_called()
    mock_redis.set.assert_not_called()
