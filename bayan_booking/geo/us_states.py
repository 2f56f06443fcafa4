from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class USState:
    name: str
    code: str
    timezone: str


# States spanning several zones map to the predominant one.
US_STATES = [
    USState("Alabama", "AL", "America/Chicago"),
    USState("Alaska", "AK", "America/Anchorage"),
    USState("Arizona", "AZ", "America/Phoenix"),
    USState("Arkansas", "AR", "America/Chicago"),
    USState("California", "CA", "America/Los_Angeles"),
    USState("Colorado", "CO", "America/Denver"),
    USState("Connecticut", "CT", "America/New_York"),
    USState("Delaware", "DE", "America/New_York"),
    USState("District of Columbia", "DC", "America/New_York"),
    USState("Florida", "FL", "America/New_York"),
    USState("Georgia", "GA", "America/New_York"),
    USState("Hawaii", "HI", "Pacific/Honolulu"),
    USState("Idaho", "ID", "America/Denver"),
    USState("Illinois", "IL", "America/Chicago"),
    USState("Indiana", "IN", "America/New_York"),
    USState("Iowa", "IA", "America/Chicago"),
    USState("Kansas", "KS", "America/Chicago"),
    USState("Kentucky", "KY", "America/New_York"),
    USState("Louisiana", "LA", "America/Chicago"),
    USState("Maine", "ME", "America/New_York"),
    USState("Maryland", "MD", "America/New_York"),
    USState("Massachusetts", "MA", "America/New_York"),
    USState("Michigan", "MI", "America/New_York"),
    USState("Minnesota", "MN", "America/Chicago"),
    USState("Mississippi", "MS", "America/Chicago"),
    USState("Missouri", "MO", "America/Chicago"),
    USState("Montana", "MT", "America/Denver"),
    USState("Nebraska", "NE", "America/Chicago"),
    USState("Nevada", "NV", "America/Los_Angeles"),
    USState("New Hampshire", "NH", "America/New_York"),
    USState("New Jersey", "NJ", "America/New_York"),
    USState("New Mexico", "NM", "America/Denver"),
    USState("New York", "NY", "America/New_York"),
    USState("North Carolina", "NC", "America/New_York"),
    USState("North Dakota", "ND", "America/Chicago"),
    USState("Ohio", "OH", "America/New_York"),
    USState("Oklahoma", "OK", "America/Chicago"),
    USState("Oregon", "OR", "America/Los_Angeles"),
    USState("Pennsylvania", "PA", "America/New_York"),
    USState("Rhode Island", "RI", "America/New_York"),
    USState("South Carolina", "SC", "America/New_York"),
    USState("South Dakota", "SD", "America/Chicago"),
    USState("Tennessee", "TN", "America/Chicago"),
    USState("Texas", "TX", "America/Chicago"),
    USState("Utah", "UT", "America/Denver"),
    USState("Vermont", "VT", "America/New_York"),
    USState("Virginia", "VA", "America/New_York"),
    USState("Washington", "WA", "America/Los_Angeles"),
    USState("West Virginia", "WV", "America/New_York"),
    USState("Wisconsin", "WI", "America/Chicago"),
    USState("Wyoming", "WY", "America/Denver"),
]


def timezone_for_us_state(name_or_code: str | None) -> str | None:
    if not name_or_code:
        return None
    query = name_or_code.strip().lower()
    compact = "".join(query.split())
    for state in US_STATES:
        name = state.name.lower()
        if state.code.lower() == query or name == query or "".join(name.split()) == compact:
            return state.timezone
    return None
