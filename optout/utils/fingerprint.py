"""Content fingerprints used to block re-ingestion of suppressed listings."""

import hashlib
import re
from datetime import date

_WHITESPACE = re.compile(r"\s+")
_NAME_SUFFIXES = re.compile(r"\b(jr|sr|ii|iii|iv)\.?$")


def _normalize(value: str | None) -> str:
    return _WHITESPACE.sub(" ", (value or "").strip().lower())


def _normalize_name(name: str | None) -> str:
    name = _normalize(name).replace(",", "")
    return _NAME_SUFFIXES.sub("", name).strip()


def compute_fingerprint(
    name: str | None,
    date_of_death: date | str | None = None,
    funeral_home: str | None = None,
    city: str | None = None,
) -> str:
    """
    Stable SHA-1 over the normalized identity of a listing.

    Two scrapes of the same obituary from different sources hash to the same
    value as long as name, date of death, funeral home and city agree after
    normalization, so the blocklist holds across re-ingestion. Ingestion
    stores the result on each obituary row; `POST /api/blocklist/check`
    derives it for a scraped listing before republishing.

    Returns:
        40-character hex digest
    """
    if isinstance(date_of_death, date):
        dod = date_of_death.isoformat()
    else:
        dod = (date_of_death or "").strip()

    parts = [
        _normalize_name(name),
        dod,
        _normalize(funeral_home),
        _normalize(city),
    ]
    return hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()
