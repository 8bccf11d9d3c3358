"""
Field Normalization Rules

Pure functions that canonicalize single fields. Each takes the report of the
current normalization pass and records what it repaired, rejected or assumed.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from restaurant_kb.core.models import CLOSED, WEEKDAYS, Price
from restaurant_kb.normalization.report import NormalizationReport
from restaurant_kb.processors.extractor import DAY_NAMES


E164_PATTERN = re.compile(r'^\+\d{7,15}$')
EMAIL_PATTERN = re.compile(r'^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$')
APPROXIMATE_PATTERN = re.compile(r'(?<!\w)(?:ca\.?|cirka|ungefär|approx\.?)(?!\w)|~', re.IGNORECASE)
NUMBER_PATTERN = re.compile(r'\d+(?:[.,]\d+)?')
RANGE_SPLIT_PATTERN = re.compile(r'\s*(?:-|–|—|till|to)\s*', re.IGNORECASE)
CLOSED_VALUES = {'closed', 'stängt', 'stangt', 'stängd'}

STANDARD_ALLERGENS = [
    'gluten', 'laktos', 'mjölkprotein', 'ägg', 'nötter', 'jordnöt', 'fisk',
    'skaldjur', 'selleri', 'soja', 'sesam', 'senap', 'sulfiter',
]

ALLERGEN_VARIANTS = {
    'mjölk': 'laktos', 'milk': 'laktos', 'lactose': 'laktos',
    'mejeri': 'laktos', 'dairy': 'laktos',
    'vete': 'gluten', 'wheat': 'gluten', 'råg': 'gluten', 'korn': 'gluten', 'havre': 'gluten',
    'ägg': 'ägg', 'egg': 'ägg', 'eggs': 'ägg',
    'nöt': 'nötter', 'nuts': 'nötter', 'hasselnötter': 'nötter', 'hasselnöt': 'nötter',
    'mandel': 'nötter', 'mandlar': 'nötter', 'valnötter': 'nötter', 'valnöt': 'nötter',
    'cashewnötter': 'nötter', 'pistagenötter': 'nötter',
    'jordnötter': 'jordnöt', 'peanut': 'jordnöt', 'peanuts': 'jordnöt',
    'fish': 'fisk',
    'räkor': 'skaldjur', 'räka': 'skaldjur', 'kräftor': 'skaldjur', 'hummer': 'skaldjur',
    'krabba': 'skaldjur', 'musslor': 'skaldjur', 'shellfish': 'skaldjur',
    'celery': 'selleri', 'soy': 'soja', 'sesame': 'sesam', 'mustard': 'senap',
    'sulfit': 'sulfiter', 'sulfites': 'sulfiter', 'sulphites': 'sulfiter',
    'milk protein': 'mjölkprotein',
}

DATE_FORMATS = ['%Y-%m-%d', '%d/%m/%Y', '%d.%m.%Y', '%Y%m%d', '%d %B %Y']


def normalize_phone(phone: Optional[str], report: NormalizationReport,
                    country_code: str = "+46") -> Optional[str]:
    """
    Canonicalize a phone number to E.164.

    Args:
        phone: Raw phone text, e.g. "0431-123 45" or "+46 (0)431 12345"
        report: Report of the current pass
        country_code: Default country code including the plus sign

    Returns:
        "+4643112345" style number, or None when the input cannot be repaired
    """
    if not phone:
        return None

    raw = str(phone).strip()
    has_plus = raw.startswith('+')
    digits = re.sub(r'\D', '', raw.replace('(0)', ''))
    country_digits = country_code.lstrip('+')

    if has_plus:
        normalized = f"+{digits}"
    elif digits.startswith('00'):
        normalized = f"+{digits[2:]}"
    elif digits.startswith('0'):
        normalized = f"{country_code}{digits[1:]}"
    elif digits.startswith(country_digits) and len(digits) >= 10:
        normalized = f"+{digits}"
    else:
        normalized = f"{country_code}{digits}"
        report.add_assumption(f"Phone '{raw}' has no country code, assumed {country_code}")

    if not E164_PATTERN.match(normalized):
        report.add_error(f"Invalid phone number '{raw}'")
        return None

    if normalized != raw:
        report.add_fix(f"Normalized phone '{raw}' to '{normalized}'")
    return normalized


def normalize_time(value: Any, report: NormalizationReport) -> Optional[str]:
    """
    Canonicalize a time of day to HH:MM.

    Accepts H, HH, H:MM, HH:MM, HHMM and H.MM. Hour 24 is only valid as 24:00.
    """
    if value is None:
        report.add_error("Missing time value")
        return None

    text = str(value).strip()
    match = re.fullmatch(r'(\d{2})(\d{2})', text) or re.fullmatch(r'(\d{1,2})(?:[:.](\d{2}))?', text)
    if not match:
        report.add_error(f"Unparseable time '{text}'")
        return None

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    if minute > 59 or hour > 24 or (hour == 24 and minute != 0):
        report.add_error(f"Time out of range '{text}'")
        return None

    return f"{hour:02d}:{minute:02d}"


def normalize_time_range(day: str, value: Any, report: NormalizationReport) -> str:
    """
    Canonicalize one day's opening hours to "HH:MM–HH:MM" or "closed".

    Invalid ranges (unparseable, or start not before end) are logged as errors
    and become "closed".
    """
    if isinstance(value, Mapping):
        value = f"{value.get('open', '')}-{value.get('close', '')}"

    text = str(value or '').strip()
    if not text:
        report.add_assumption(f"Empty opening hours for {day}, assuming closed")
        return CLOSED
    if text.lower() in CLOSED_VALUES:
        return CLOSED

    parts = RANGE_SPLIT_PATTERN.split(text, maxsplit=1)
    if len(parts) != 2:
        report.add_error(f"Unparseable opening hours for {day}: '{text}'")
        return CLOSED

    start = normalize_time(parts[0], report)
    end = normalize_time(parts[1], report)
    if start is None or end is None:
        report.add_error(f"Invalid opening hours for {day}: '{text}', marked closed")
        return CLOSED
    if start >= end:
        report.add_error(f"Opening time {start} is not before closing time {end} on {day}, marked closed")
        return CLOSED

    return f"{start}–{end}"


def normalize_hours(hours: Optional[Mapping[str, Any]], report: NormalizationReport) -> Dict[str, str]:
    """
    Canonicalize a weekly schedule.

    Args:
        hours: Mapping of day name (Swedish or English, full or abbreviated)
            to a time range or "closed"
        report: Report of the current pass

    Returns:
        Mapping with exactly the seven weekdays, monday first. Days missing
        from the input are closed and each one is logged as an assumption.
    """
    result: Dict[str, str] = {}

    if hours is not None and not isinstance(hours, Mapping):
        report.add_error(f"Opening hours must be a mapping, got {type(hours).__name__}")
        hours = None

    for key, value in (hours or {}).items():
        day = DAY_NAMES.get(str(key).strip().lower().rstrip('.'))
        if day is None:
            report.add_error(f"Unknown day '{key}' in opening hours")
            continue
        result[day] = normalize_time_range(day, value, report)

    for day in WEEKDAYS:
        if day not in result:
            result[day] = CLOSED
            report.add_assumption(f"No opening hours for {day}, assuming closed")

    return {day: result[day] for day in WEEKDAYS}


def normalize_price(value: Union[str, int, float, Mapping[str, Any], None], report: NormalizationReport,
                    currency: str = "SEK") -> Optional[Price]:
    """
    Parse a price.

    The first numeric token is the amount; words like "ca", "cirka" or a
    tilde mark it approximate. "ca 125 kr" -> Price(125, "SEK", True).
    An already normalized price mapping is accepted as is.
    """
    if value is None or value == "":
        return None

    if isinstance(value, Mapping):
        approximate = bool(value.get('approximate', False))
        currency = value.get('currency') or currency
        value = value.get('amount')
        if value is None:
            report.add_error("Price without amount")
            return None
    else:
        approximate = False

    if isinstance(value, bool):
        report.add_error(f"Invalid price {value!r}")
        return None

    if isinstance(value, (int, float)):
        if value < 0:
            report.add_error(f"Negative price {value}")
            return None
        amount = float(value)
    else:
        text = str(value)
        match = NUMBER_PATTERN.search(text)
        if not match:
            report.add_error(f"No numeric price in '{text}'")
            return None
        amount = float(match.group(0).replace(',', '.'))
        approximate = bool(APPROXIMATE_PATTERN.search(text))

    return Price(
        amount=int(amount) if amount.is_integer() else amount,
        currency=currency,
        approximate=approximate,
    )


def normalize_email(value: Optional[str], report: NormalizationReport) -> Optional[str]:
    """Validate and lowercase an email address"""
    if not value:
        return None

    text = str(value).strip()
    if text.lower().startswith('mailto:'):
        text = text[7:]

    if not EMAIL_PATTERN.match(text):
        report.add_error(f"Invalid email address '{value}'")
        return None

    normalized = text.lower()
    if normalized != value:
        report.add_fix(f"Normalized email '{value}' to '{normalized}'")
    return normalized


def normalize_allergens(values: Union[str, Iterable[str], None], report: NormalizationReport) -> List[str]:
    """
    Map allergen mentions to the standard vocabulary.

    Known variants are mapped silently; unknown values are kept as given and
    logged as an assumption.
    """
    if not values:
        return []
    if isinstance(values, str):
        values = re.split(r'[,;/]', values)

    result: List[str] = []
    for value in values:
        lower = str(value).strip().lower()
        if not lower:
            continue
        if lower in STANDARD_ALLERGENS:
            canonical = lower
        elif lower in ALLERGEN_VARIANTS:
            canonical = ALLERGEN_VARIANTS[lower]
        else:
            canonical = lower
            report.add_assumption(f"Unknown allergen '{value}' kept as is")
        if canonical not in result:
            result.append(canonical)
    return result


def normalize_date(value: Any, report: NormalizationReport) -> Optional[str]:
    """
    Canonicalize a date to ISO 8601.

    Missing input stays None so repeated runs produce identical records.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text)
        return parsed.date().isoformat() if len(text) <= 10 else parsed.isoformat()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    report.add_error(f"Unparseable date '{text}'")
    return None
