import json

import httpx
import pytest
import respx

from bayan_booking.api.client import TIMEZONEDB_URL, BookingApiClient, extract_plans
from bayan_booking.scheduling.booking import SelectedSession

BASE = "https://api.bayan.test/api/v1"


def make_client(**kwargs) -> BookingApiClient:
    return BookingApiClient(base_url=BASE + "/", **kwargs)


@pytest.mark.asyncio
@respx.mock
async def test_verify_otp_returns_temp_token_for_new_users():
    route = respx.post(f"{BASE}/auth/verify-otp").respond(200, json={"data": {"tempToken": "tmp"}})
    client = make_client()

    result = await client.verify_otp("a@b.co", "123456")

    assert result.success
    assert result.temp_token == "tmp"
    assert json.loads(route.calls[0].request.content) == {"email": "a@b.co", "otp": "123456"}
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_verify_otp_surfaces_server_error_text():
    respx.post(f"{BASE}/auth/verify-otp").respond(400, json={"error": "Invalid OTP"})
    client = make_client()

    result = await client.verify_otp("a@b.co", "000000")

    assert not result.success
    assert result.error == "Invalid OTP"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_network_errors_become_failed_results():
    respx.post(f"{BASE}/auth/send-otp").mock(side_effect=httpx.ConnectError("boom"))
    client = make_client()

    result = await client.send_otp("a@b.co")

    assert not result.success
    assert result.error == "boom"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_complete_registration_promotes_temp_token():
    route = respx.post(f"{BASE}/auth/complete-registration").respond(201, json={"data": {"user": {"id": "u1"}}})
    client = make_client()

    result = await client.complete_registration("tmp", {"firstName": "Sara"})

    assert result.token == "tmp"
    assert result.user == {"id": "u1"}
    assert route.calls[0].request.headers["Authorization"] == "Bearer tmp"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_get_plans_requests_ordered_plans():
    route = respx.get(f"{BASE}/plans").respond(
        200,
        json={"data": {"subscriptionPlans": [{"_id": "p1", "name": "Gold", "sessionsPerWeek": 3, "sessions": 12}]}},
    )
    client = make_client()

    result = await client.get_plans()

    assert route.calls[0].request.url.params["sort"] == "order"
    assert route.calls[0].request.url.params["limit"] == "1000"
    plan = result.plans[0]
    assert plan.plan_id == "p1"
    assert plan.sessions_per_week == 3
    assert plan.to_api()["sessionsPerWeek"] == 3
    await client.aclose()


def test_extract_plans_handles_envelopes():
    assert extract_plans([{"id": 1}]) == [{"id": 1}]
    assert extract_plans({"plans": [{"id": 2}]}) == [{"id": 2}]
    assert extract_plans({"data": {"plans": [{"id": 3}]}}) == [{"id": 3}]
    assert extract_plans({"data": {"other": [{"id": 4}]}}) == [{"id": 4}]
    assert extract_plans("nope") is None


@pytest.mark.asyncio
@respx.mock
async def test_update_user_profile_patches_with_bearer_token():
    route = respx.patch(f"{BASE}/user/profile").respond(200, json={"data": {"user": {"phone": "+20100"}}})
    client = make_client()

    result = await client.update_user_profile("jwt", {"phone": "+20100"})

    assert result.success
    assert result.user == {"phone": "+20100"}
    request = route.calls[0].request
    assert request.headers["Authorization"] == "Bearer jwt"
    assert json.loads(request.content) == {"phone": "+20100"}
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_update_user_profile_failure_uses_server_message():
    respx.patch(f"{BASE}/user/profile").respond(422, json={"message": "Phone is invalid"})
    client = make_client()

    result = await client.update_user_profile("jwt", {"phone": "x"})

    assert not result.success
    assert result.error == "Phone is invalid"
    await client.aclose()

@pytest.mark.asyncio
@respx.mock
async def test_country_timezone_and_countries():
    respx.get(f"{BASE}/countries/United%20States/timezone").respond(200, json={"data": {"timezone": "America/New_York"}})
    respx.get(f"{BASE}/countries").respond(
        200, json={"status": "success", "data": {"countries": [{"name": "Egypt"}]}}
    )
    client = make_client()

    timezone = await client.get_country_timezone("United States")
    countries = await client.get_countries()

    assert timezone.timezone == "America/New_York"
    assert countries.countries == [{"name": "Egypt"}]
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_countries_without_success_status_fail():
    respx.get(f"{BASE}/countries").respond(200, json={"data": {"countries": []}})
    client = make_client()

    result = await client.get_countries()

    assert not result.success
    await client.aclose()


@pytest.mark.asyncio
async def test_timezonedb_requires_key():
    client = make_client()
    client.timezonedb_api_key = None

    result = await client.get_timezone_from_timezonedb("Africa/Cairo")

    assert result.error == "TimeZoneDB API key not configured"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_timezonedb_lookup_by_zone():
    route = respx.get(TIMEZONEDB_URL).respond(200, json={"status": "OK", "zoneName": "Africa/Cairo"})
    client = make_client(timezonedb_api_key="key")

    result = await client.get_timezone_from_timezonedb("Africa/Cairo")

    assert result.data["zoneName"] == "Africa/Cairo"
    assert route.calls[0].request.url.params["by"] == "zone"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_complete_subscription_fills_missing_utc_instants():
    route = respx.post(f"{BASE}/user/complete-subscription").respond(
        201, json={"data": {"subscription": {"_id": "s1"}}}
    )
    client = make_client()
    sessions = [
        SelectedSession("2024-01-15", "01:00"),
        SelectedSession("2024-01-16", "02:00", "2024-01-16T07:00:00.000Z"),
    ]

    result = await client.create_complete_subscription(
        "jwt", "p1", "2024-01-10", sessions, country="United States", timezone="America/New_York"
    )

    assert result.subscription == {"_id": "s1"}
    body = json.loads(route.calls[0].request.content)
    assert body["subscriptionPlanId"] == "p1"
    assert body["userCountry"] == "United States"
    assert [s["startsAtUTC"] for s in body["sessions"]] == [
        "2024-01-15T06:00:00.000Z",
        "2024-01-16T07:00:00.000Z",
    ]
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_complete_subscription_conflict_for_active_plan():
    respx.post(f"{BASE}/user/complete-subscription").respond(
        409, json={"message": "You already have an active subscription to this plan."}
    )
    client = make_client()

    result = await client.create_complete_subscription("jwt", "p1", "2024-01-10", [])

    assert result.error == "You already have an active subscription to this plan"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_create_subscription_reads_nested_id():
    respx.post(f"{BASE}/user/subscriptions").respond(201, json={"data": {"subscription": {"_id": "s9"}}})
    client = make_client()

    result = await client.create_subscription("jwt", "p1", "2024-01-10")

    assert result.subscription_id == "s9"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_session_errors_use_status_messages():
    respx.post(f"{BASE}/user/sessions").respond(409, text="")
    respx.post(f"{BASE}/user/sessions/bulk").respond(409, text="")
    client = make_client()
    session = SelectedSession("2024-01-15", "10:00", "2024-01-15T08:00:00.000Z")

    single = await client.create_session("jwt", "s1", session)
    bulk = await client.create_bulk_sessions("jwt", "s1", [session])

    assert single.error == "Session conflict - you may already have a session at this time"
    assert bulk.error == "Session conflicts - some time slots might be already taken"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_booked_slots_failures_read_as_empty():
    respx.get(f"{BASE}/sessions/booked").respond(500)
    client = make_client()

    result = await client.get_booked_slots()

    assert result.success
    assert result.booked_slots == []
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_booked_slots_parse_utc_fields():
    respx.get(f"{BASE}/sessions/booked").respond(
        200,
        json={"data": {"bookedSlots": [{"date": "2024-01-15", "time": "10:00", "startsAtUTC": "2024-01-15T08:00:00Z"}]}},
    )
    client = make_client()

    result = await client.get_booked_slots("2024-01-15")

    assert result.booked_slots[0].starts_at_utc == "2024-01-15T08:00:00Z"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_confirmation_email_missing_endpoint():
    respx.post(f"{BASE}/enrollment/confirm").respond(404)
    respx.post(f"{BASE}/enrollment").respond(500)
    client = make_client()

    confirmation = await client.send_confirmation_email("a@b.co", {})
    submission = await client.submit_enrollment({})

    assert confirmation.error == "Email confirmation service not available"
    assert submission.error == "Failed to submit enrollment"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_admin_subscription_filters_skip_empty_values():
    route = respx.get(f"{BASE}/admin/complete-subscriptions").respond(
        200, json={"data": {"subscriptions": [{"_id": "s1"}]}}
    )
    client = make_client()

    result = await client.admin_get_subscriptions("jwt", status="active", user_email=None, limit=200)

    assert result.subscriptions == [{"_id": "s1"}]
    params = route.calls[0].request.url.params
    assert params["status"] == "active"
    assert "userEmail" not in params
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_admin_reorder_plans_payload():
    route = respx.post(f"{BASE}/admin/subscription-plans/reorder").respond(200, json={"message": "ok"})
    client = make_client()

    result = await client.admin_reorder_plans("jwt", [("p1", 0), ("p2", 1)])

    assert result.success
    assert json.loads(route.calls[0].request.content) == {
        "plans": [{"planId": "p1", "order": 0}, {"planId": "p2", "order": 1}]
    }
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_admin_delete_reports_server_message():
    respx.delete(f"{BASE}/admin/users/u1").respond(401, json={"message": "Invalid token"})
    client = make_client()

    result = await client.admin_delete_user("jwt", "u1")

    assert result.error == "Invalid token"
    await client.aclose()
