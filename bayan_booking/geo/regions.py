from __future__ import annotations

from .us_states import timezone_for_us_state

CANADA_TIMEZONES = {
    "british columbia": "America/Vancouver", "bc": "America/Vancouver",
    "alberta": "America/Edmonton", "ab": "America/Edmonton",
    "saskatchewan": "America/Regina", "sk": "America/Regina",
    "manitoba": "America/Winnipeg", "mb": "America/Winnipeg",
    "ontario": "America/Toronto", "on": "America/Toronto",
    "quebec": "America/Toronto", "qc": "America/Toronto",
    "new brunswick": "America/Moncton", "nb": "America/Moncton",
    "nova scotia": "America/Halifax", "ns": "America/Halifax",
    "prince edward island": "America/Halifax", "pe": "America/Halifax",
    "newfoundland and labrador": "America/St_Johns", "nl": "America/St_Johns",
    "yukon": "America/Whitehorse", "yt": "America/Whitehorse",
    "northwest territories": "America/Yellowknife", "nt": "America/Yellowknife",
    "nunavut": "America/Iqaluit", "nu": "America/Iqaluit",
}

AUSTRALIA_TIMEZONES = {
    "new south wales": "Australia/Sydney", "nsw": "Australia/Sydney",
    "victoria": "Australia/Melbourne", "vic": "Australia/Melbourne",
    "queensland": "Australia/Brisbane", "qld": "Australia/Brisbane",
    "south australia": "Australia/Adelaide", "sa": "Australia/Adelaide",
    "western australia": "Australia/Perth", "wa": "Australia/Perth",
    "tasmania": "Australia/Hobart", "tas": "Australia/Hobart",
    "northern territory": "Australia/Darwin", "nt": "Australia/Darwin",
    "australian capital territory": "Australia/Sydney", "act": "Australia/Sydney",
}

COUNTRY_TIMEZONES = {
    "United Kingdom": "Europe/London",
    "Egypt": "Africa/Cairo",
    "Saudi Arabia": "Asia/Riyadh",
    "UAE": "Asia/Dubai",
    "Germany": "Europe/Berlin",
    "France": "Europe/Paris",
    "India": "Asia/Kolkata",
    "Pakistan": "Asia/Karachi",
}


def timezone_for_region(country: str | None, region: str | None = None) -> str | None:
    """Representative IANA zone for a curated (country, region) pair."""
    country = (country or "").strip()
    region = (region or "").strip()

    if country == "United States":
        return timezone_for_us_state(region) if region else None
    if country == "Canada":
        return CANADA_TIMEZONES.get(region.lower(), "America/Toronto")
    if country == "Australia":
        return AUSTRALIA_TIMEZONES.get(region.lower(), "Australia/Sydney")
    return COUNTRY_TIMEZONES.get(country)
