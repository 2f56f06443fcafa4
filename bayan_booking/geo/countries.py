from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from .us_states import US_STATES


@dataclass(frozen=True)
class CountryOption:
    value: str
    label: str


@dataclass(frozen=True)
class StateOption:
    name: str
    code: str | None = None


PREFERRED_COUNTRIES = [
    ("United States", "US"),
    ("United Kingdom", "GB"),
    ("Canada", "CA"),
    ("Egypt", "EG"),
    ("Saudi Arabia", "SA"),
    ("UAE", "AE"),
    ("Germany", "DE"),
    ("France", "FR"),
    ("India", "IN"),
    ("Pakistan", "PK"),
    ("Australia", "AU"),
]

SELECT_PROMPT = CountryOption("", "Select your country")
OTHER_OPTION = CountryOption("other", "\U0001F30D Other")

DEFAULT_COUNTRIES = [
    SELECT_PROMPT,
    CountryOption("United States", "\U0001F1FA\U0001F1F8 United States"),
    CountryOption("United Kingdom", "\U0001F1EC\U0001F1E7 United Kingdom"),
    CountryOption("Canada", "\U0001F1E8\U0001F1E6 Canada"),
    CountryOption("Australia", "\U0001F1E6\U0001F1FA Australia"),
    CountryOption("Germany", "\U0001F1E9\U0001F1EA Germany"),
    CountryOption("France", "\U0001F1EB\U0001F1F7 France"),
    CountryOption("Saudi Arabia", "\U0001F1F8\U0001F1E6 Saudi Arabia"),
    CountryOption("UAE", "\U0001F1E6\U0001F1EA UAE"),
    CountryOption("Egypt", "\U0001F1EA\U0001F1EC Egypt"),
    CountryOption("Pakistan", "\U0001F1F5\U0001F1F0 Pakistan"),
    CountryOption("India", "\U0001F1EE\U0001F1F3 India"),
    CountryOption("Malaysia", "\U0001F1F2\U0001F1FE Malaysia"),
    CountryOption("Indonesia", "\U0001F1EE\U0001F1E9 Indonesia"),
    CountryOption("Turkey", "\U0001F1F9\U0001F1F7 Turkey"),
    OTHER_OPTION,
]

_STATES: dict[str, list[StateOption]] = {
    "Canada": [
        StateOption("Alberta", "AB"), StateOption("British Columbia", "BC"),
        StateOption("Manitoba", "MB"), StateOption("New Brunswick", "NB"),
        StateOption("Newfoundland and Labrador", "NL"), StateOption("Northwest Territories", "NT"),
        StateOption("Nova Scotia", "NS"), StateOption("Nunavut", "NU"),
        StateOption("Ontario", "ON"), StateOption("Prince Edward Island", "PE"),
        StateOption("Quebec", "QC"), StateOption("Saskatchewan", "SK"),
        StateOption("Yukon", "YT"),
    ],
    "Australia": [
        StateOption("New South Wales", "NSW"), StateOption("Victoria", "VIC"),
        StateOption("Queensland", "QLD"), StateOption("South Australia", "SA"),
        StateOption("Western Australia", "WA"), StateOption("Tasmania", "TAS"),
        StateOption("Northern Territory", "NT"), StateOption("Australian Capital Territory", "ACT"),
    ],
    "United Kingdom": [
        StateOption(name) for name in ("England", "Scotland", "Wales", "Northern Ireland")
    ],
    "UAE": [
        StateOption(name)
        for name in (
            "Abu Dhabi", "Dubai", "Sharjah", "Ajman", "Umm Al Quwain", "Ras Al Khaimah", "Fujairah",
        )
    ],
    "Saudi Arabia": [
        StateOption(name)
        for name in (
            "Riyadh", "Makkah", "Madinah", "Eastern Province", "Asir", "Jazan", "Tabuk", "Hail",
            "Najran", "Al-Bahah", "Al-Jawf", "Northern Borders",
        )
    ],
    "Egypt": [
        StateOption(name)
        for name in (
            "Cairo", "Giza", "Alexandria", "Dakahlia", "Sharqia", "Qalyubia", "Gharbia", "Monufia",
            "Kafr El Sheikh", "Beheira", "Ismailia", "Suez", "Port Said", "Damietta",
        )
    ],
    "Germany": [
        StateOption(name)
        for name in (
            "Bavaria", "Berlin", "Hamburg", "Hesse", "Lower Saxony", "North Rhine-Westphalia",
            "Saxony", "Baden-Württemberg",
        )
    ],
    "France": [
        StateOption(name)
        for name in (
            "Île-de-France", "Provence-Alpes-Côte d’Azur", "Auvergne-Rhône-Alpes", "Occitanie",
            "Nouvelle-Aquitaine", "Grand Est", "Hauts-de-France",
        )
    ],
    "India": [
        StateOption(name)
        for name in (
            "Maharashtra", "Delhi", "Karnataka", "Tamil Nadu", "West Bengal", "Uttar Pradesh",
            "Gujarat", "Telangana",
        )
    ],
    "Pakistan": [
        StateOption(name)
        for name in (
            "Punjab", "Sindh", "Khyber Pakhtunkhwa", "Balochistan", "Gilgit-Baltistan",
            "Azad Kashmir", "Islamabad Capital Territory",
        )
    ],
}


def flag_for(code: str) -> str:
    return "".join(chr(127397 + ord(ch)) for ch in code.upper())


def country_states(country: str) -> list[StateOption]:
    if country == "United States":
        return [StateOption(state.name, state.code) for state in US_STATES]
    return list(_STATES.get(country, []))


def curate_countries(all_countries: Iterable[Mapping] | None = None) -> list[CountryOption]:
    """Curated country options in preferred order, wrapped in the prompt and "other" entries."""
    order = {name: index for index, (name, _) in enumerate(PREFERRED_COUNTRIES)}
    countries = list(all_countries or [])
    provided = [c for c in countries if c.get("name") in order]
    if countries:
        provided.sort(key=lambda c: order[c["name"]])
        mapped = [
            CountryOption(c["name"], f"{c.get('emoji') or chr(0x1F30D)} {c['name']}") for c in provided
        ]
    else:
        mapped = [CountryOption(name, f"{flag_for(code)} {name}") for name, code in PREFERRED_COUNTRIES]
    return [SELECT_PROMPT, *mapped, OTHER_OPTION]


def options_from_api(countries: Iterable[Mapping]) -> list[CountryOption]:
    return [SELECT_PROMPT, *(CountryOption(c["name"], f"\U0001F30D {c['name']}") for c in countries if c.get("name"))]
