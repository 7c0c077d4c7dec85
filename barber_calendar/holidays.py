# barber_calendar/holidays.py
"""
German statutory public holidays per federal state (Bundesland).

Returned maps are keyed by ``date`` and carry the German holiday name.
"""

from datetime import date, timedelta
from typing import Dict, List

from dateutil.easter import easter

BUNDESLAENDER = {
    "BW": "Baden-Württemberg",
    "BY": "Bayern",
    "BE": "Berlin",
    "BB": "Brandenburg",
    "HB": "Bremen",
    "HH": "Hamburg",
    "HE": "Hessen",
    "MV": "Mecklenburg-Vorpommern",
    "NI": "Niedersachsen",
    "NW": "Nordrhein-Westfalen",
    "RP": "Rheinland-Pfalz",
    "SL": "Saarland",
    "SN": "Sachsen",
    "ST": "Sachsen-Anhalt",
    "SH": "Schleswig-Holstein",
    "TH": "Thüringen",
}

# which states observe which regional holiday
HEILIGE_DREI_KOENIGE = {"BW", "BY", "ST"}
FRAUENTAG = {"BE", "MV"}
FRONLEICHNAM = {"BW", "BY", "HE", "NW", "RP", "SL"}
MARIAE_HIMMELFAHRT = {"BY", "SL"}
WELTKINDERTAG = {"TH"}
REFORMATIONSTAG = {"BB", "HB", "HH", "MV", "NI", "SN", "ST", "SH", "TH"}
ALLERHEILIGEN = {"BW", "BY", "NW", "RP", "SL"}
BUSS_UND_BETTAG = {"SN"}


def _check_state(bundesland: str) -> None:
    if bundesland not in BUNDESLAENDER:
        raise ValueError(f"Unknown Bundesland: {bundesland!r}")


def buss_und_bettag(year: int) -> date:
    # Wednesday before 23 November
    nov23 = date(year, 11, 23)
    days_back = (nov23.weekday() - 2) % 7 or 7
    return nov23 - timedelta(days=days_back)


def get_holidays(year: int, bundesland: str) -> Dict[date, str]:
    _check_state(bundesland)
    easter_sunday = easter(year)

    holidays = {
        date(year, 1, 1): "Neujahr",
        easter_sunday - timedelta(days=2): "Karfreitag",
        easter_sunday + timedelta(days=1): "Ostermontag",
        date(year, 5, 1): "Tag der Arbeit",
        easter_sunday + timedelta(days=39): "Christi Himmelfahrt",
        easter_sunday + timedelta(days=50): "Pfingstmontag",
        date(year, 10, 3): "Tag der Deutschen Einheit",
        date(year, 12, 25): "1. Weihnachtstag",
        date(year, 12, 26): "2. Weihnachtstag",
    }

    if bundesland in HEILIGE_DREI_KOENIGE:
        holidays[date(year, 1, 6)] = "Heilige Drei Könige"
    if bundesland in FRAUENTAG:
        holidays[date(year, 3, 8)] = "Internationaler Frauentag"
    if bundesland in FRONLEICHNAM:
        holidays[easter_sunday + timedelta(days=60)] = "Fronleichnam"
    if bundesland in MARIAE_HIMMELFAHRT:
        holidays[date(year, 8, 15)] = "Mariä Himmelfahrt"
    if bundesland in WELTKINDERTAG:
        holidays[date(year, 9, 20)] = "Weltkindertag"
    if bundesland in REFORMATIONSTAG:
        holidays[date(year, 10, 31)] = "Reformationstag"
    if bundesland in ALLERHEILIGEN:
        holidays[date(year, 11, 1)] = "Allerheiligen"
    if bundesland in BUSS_UND_BETTAG:
        holidays[buss_und_bettag(year)] = "Buß- und Bettag"

    return holidays


def holidays_for_display(year: int, bundesland: str) -> Dict[date, str]:
    """Statutory holidays plus Easter and Whit Sunday (not statutory, but shown in calendars)."""
    holidays = get_holidays(year, bundesland)
    easter_sunday = easter(year)
    holidays[easter_sunday] = "Ostersonntag"
    holidays[easter_sunday + timedelta(days=49)] = "Pfingstsonntag"
    return holidays


def is_holiday(day: date, bundesland: str) -> bool:
    return day in get_holidays(day.year, bundesland)


def holiday_name(day: date, bundesland: str):
    return get_holidays(day.year, bundesland).get(day)


def working_days_between(start: date, end: date, bundesland: str) -> int:
    """Mon-Sat days in ``[start, end]`` that are not holidays."""
    holidays = {}
    for year in range(start.year, end.year + 1):
        holidays.update(get_holidays(year, bundesland))

    count = 0
    current = start
    while current <= end:
        if current.isoweekday() != 7 and current not in holidays:
            count += 1
        current += timedelta(days=1)
    return count


def holidays_list(year: int, bundesland: str) -> List[dict]:
    holidays = get_holidays(year, bundesland)
    return [{"date": day, "name": holidays[day]} for day in sorted(holidays)]
