"""Human-readable FIR and Case number formats."""

from typing import Optional

SCOPE_FIR = "FIR"
SCOPE_CASE = "CASE"

COURT_TYPE_ABBREVIATIONS = {
    "supreme court": "SC",
    "high court": "HC",
    "district court": "DC",
    "civil court": "CC",
    "sessions court": "SESS",
}

# Matched by substring, in order
CITY_ABBREVIATIONS = [
    ("lahore", "LHR"),
    ("karachi", "KHI"),
    ("islamabad", "ISB"),
    ("rawalpindi", "RWP"),
    ("faisalabad", "FSD"),
    ("multan", "MUL"),
    ("peshawar", "PSH"),
    ("quetta", "QTA"),
]


def court_type_abbreviation(court_type: Optional[str]) -> str:
    """Abbreviate a court type name, COURT when unknown."""
    return COURT_TYPE_ABBREVIATIONS.get((court_type or "").strip().lower(), "COURT")


def city_abbreviation(city: Optional[str]) -> str:
    """Abbreviate a city name, falling back to its first three letters."""
    city = (city or "City").strip() or "City"
    lowered = city.lower()
    for name, abbr in CITY_ABBREVIATIONS:
        if name in lowered:
            return abbr
    return city[:3].upper()


def format_fir_no(station_code: Optional[str], year: int, sequence: int) -> str:
    """FIR-{stationCode without dashes}-{year}-{seq:04d}."""
    code = (station_code or "STATION").replace("-", "")
    return f"{SCOPE_FIR}-{code}-{year}-{sequence:04d}"


def format_case_no(court_type: Optional[str], city: Optional[str], year: int, sequence: int) -> str:
    """CASE-{courtTypeAbbr}-{cityAbbr}-{year}-{seq:04d}."""
    return (
        f"{SCOPE_CASE}-{court_type_abbreviation(court_type)}-{city_abbreviation(city)}"
        f"-{year}-{sequence:04d}"
    )
