import json
import time
from unittest.mock import patch

import pytest
import responses
from responses import matchers

from cfdyndns.cloudflare import (
    IPIFY_URL,
    LIST_ZONES,
    CloudflareClient,
    CloudflareError,
    Record,
)
from cfdyndns.config import ConfigError, Environment
from cfdyndns.poller import (
    PollerContext,
    build_ctx,
    get_or_create_record,
    routine,
    run,
    validate_ctx,
)

RECORDS_URL = "https://api.cloudflare.com/client/v4/zones/zone1/dns_records"
IP = "203.0.113.7"
OLD_IP = "198.51.100.1"


def _ctx(**overrides):
    values = {
        "domains": ["home.example.com"],
        "interval": 60,
        "max_failures": -1,
        "cooldown": -1,
        "can_create": True,
        "ttl": 60,
        "proxied": False,
        "comment": "made by tests",
    }
    values.update(overrides)
    return PollerContext(**values)


@pytest.fixture
def api():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.get(
            LIST_ZONES,
            json={"success": True, "result": [{"id": "zone1", "name": "example.com"}]},
        )
        yield rsps


@pytest.fixture
def client():
    return CloudflareClient("token", timeout=5)


def test_validate_ctx_no_domains():
    with pytest.raises(ConfigError, match="at least 1 domain"):
        validate_ctx(_ctx(domains=[]))


def test_validate_ctx_bad_interval():
    with pytest.raises(ConfigError, match="Interval must be greater than 0"):
        validate_ctx(_ctx(interval=0))


def test_validate_ctx_bad_ttl():
    with pytest.raises(ConfigError, match="Ttl must be equal to 1 or at least 60"):
        validate_ctx(_ctx(ttl=30))


@pytest.mark.parametrize("ttl", [1, 60, 3600])
def test_validate_ctx_accepts_ttl(ttl):
    ctx = _ctx(ttl=ttl)
    validate_ctx(ctx)
    assert ctx.ttl == ttl


def test_build_ctx_without_domains_fails_before_network(client):
    env = Environment(mode="POLLER", api_token="token")
    with pytest.raises(ConfigError, match="at least 1 domain"):
        build_ctx(env, client)


def test_build_ctx_non_integer_interval(client):
    env = Environment(mode="POLLER", api_token="token", domains="a.example.com", interval="soon")
    with pytest.raises(ValueError, match="interval"):
        build_ctx(env, client)


def test_build_ctx_resolves_records(api, client):
    api.get(IPIFY_URL, body=IP)
    for name, record_id in [("a.example.com", "recA"), ("b.example.com", "recB")]:
        api.get(
            RECORDS_URL,
            json={"success": True, "result": [{"id": record_id, "name": name, "type": "A"}]},
            match=[matchers.query_param_matcher({"name": name, "type": "A"})],
        )
    env = Environment(
        mode="POLLER", api_token="token", domains="a.example.com,,b.example.com,",
        proxied="true", ttl="1",
    )
    ctx = build_ctx(env, client)
    assert ctx.domains == ["a.example.com", "b.example.com"]
    assert [r.id for r in ctx.records] == ["recA", "recB"]
    assert ctx.current_ip == IP
    assert ctx.proxied is True
    assert ctx.can_create is True


def test_build_ctx_ip_failure(api, client):
    api.get(IPIFY_URL, status=503, body="down")
    env = Environment(mode="POLLER", api_token="token", domains="a.example.com")
    with pytest.raises(CloudflareError, match="Cannot retrieve current public ip"):
        build_ctx(env, client)


def test_get_or_create_returns_existing(api, client):
    api.get(RECORDS_URL, json={"success": True, "result": [{"id": "rec1", "name": "home.example.com"}]})
    record = get_or_create_record(_ctx(), client, "home.example.com")
    assert record.id == "rec1"
    assert all(call.request.method == "GET" for call in api.calls)


def test_get_or_create_not_allowed(api, client):
    api.get(RECORDS_URL, json={"success": True, "result": []})
    with pytest.raises(CloudflareError, match="not found and cannot create"):
        get_or_create_record(_ctx(can_create=False), client, "home.example.com")


def test_get_or_create_creates(api, client):
    api.get(RECORDS_URL, json={"success": True, "result": []})
    api.post(RECORDS_URL, json={"success": True, "result": {"id": "new1", "name": "home.example.com"}})
    ctx = _ctx(ttl=120, proxied=True)
    ctx.current_ip = IP
    record = get_or_create_record(ctx, client, "home.example.com")
    assert record.id == "new1"
    body = json.loads(api.calls[-1].request.body)
    assert body["name"] == "home.example.com"
    assert body["type"] == "A"
    assert body["content"] == IP
    assert body["ttl"] == 120
    assert body["proxied"] is True
    assert body["comment"] == "made by tests"


def test_get_or_create_creates_after_search_error(api, client):
    api.get(RECORDS_URL, status=500, json={"success": False})
    api.post(RECORDS_URL, json={"success": True, "result": {"id": "new1"}})
    record = get_or_create_record(_ctx(), client, "home.example.com")
    assert record.id == "new1"


def test_get_or_create_create_failure(api, client):
    api.get(RECORDS_URL, json={"success": True, "result": []})
    api.post(RECORDS_URL, json={"success": False, "errors": []})
    with pytest.raises(CloudflareError, match="get_or_create_record"):
        get_or_create_record(_ctx(), client, "home.example.com")


def test_add_and_reset_failures():
    ctx = _ctx()
    ctx.add_failure()
    ctx.add_failure()
    assert ctx.failures == 2
    first = ctx.last_failure
    ctx.reset_failures()
    assert ctx.failures == 0
    assert ctx.last_failure >= first


def test_routine_updates_records(api, client):
    api.get(IPIFY_URL, body=IP)
    api.add(
        responses.PATCH,
        RECORDS_URL + "/rec1",
        json={"success": True, "result": {"id": "rec1", "name": "home.example.com", "content": IP}},
    )
    ctx = _ctx()
    ctx.current_ip = OLD_IP
    ctx.records = [Record(id="rec1", name="home.example.com", content=OLD_IP)]
    assert routine(ctx, client) is True
    assert ctx.current_ip == IP
    assert ctx.records[0].content == IP
    assert ctx.failures == 0


def test_routine_counts_update_failure(api, client):
    api.get(IPIFY_URL, body=IP)
    api.add(responses.PATCH, RECORDS_URL + "/rec1", json={"success": False})
    ctx = _ctx()
    ctx.current_ip = OLD_IP
    ctx.records = [Record(id="rec1", name="home.example.com", content=OLD_IP)]
    assert routine(ctx, client) is True
    assert ctx.failures == 1
    assert ctx.current_ip == OLD_IP
    assert ctx.records[0].content == OLD_IP


def test_routine_ip_failure(api, client):
    api.get(IPIFY_URL, status=500, body="error")
    ctx = _ctx()
    assert routine(ctx, client) is True
    assert ctx.failures == 1


def test_routine_stops_after_max_failures(api, client):
    ctx = _ctx(max_failures=0)
    ctx.failures = 1
    assert routine(ctx, client) is False
    assert len(api.calls) == 0


def test_routine_cooldown_resets(api, client):
    api.get(IPIFY_URL, status=500, body="error")
    ctx = _ctx(max_failures=0, cooldown=10)
    ctx.failures = 5
    ctx.last_failure = time.monotonic() - 100
    assert routine(ctx, client) is True
    assert ctx.failures == 1


def test_run_stops_when_failures_exceed_limit(api, client):
    api.get(IPIFY_URL, body=IP)
    api.get(IPIFY_URL, status=500, body="error")
    api.get(RECORDS_URL, json={"success": True, "result": [{"id": "rec1", "name": "home.example.com"}]})
    env = Environment(mode="POLLER", api_token="token", domains="home.example.com", max_fails="0")
    with patch("time.sleep") as sleep:
        result = run(env, client)
    assert result is None
    assert sleep.call_count == 2
    assert all(call.args == (60,) for call in sleep.call_args_list)
    ip_calls = [call for call in api.calls if call.request.url.startswith(IPIFY_URL)]
    assert len(ip_calls) == 2