"""
Smart Fallback

Recovers missing fields from free-text contact data and, for chain locations,
fills remaining gaps with deterministic placeholders that fit the city. Every
field moves through MISSING -> INFERRED -> VALIDATED | DEFAULTED and the path
is kept as a FieldTrace.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from restaurant_kb.normalization.fields import normalize_phone
from restaurant_kb.normalization.report import NormalizationReport
from restaurant_kb.processors.extractor import extract_address, extract_email, extract_phone
from restaurant_kb.processors.locations import brand_from_name, city_from_address


class FieldState(Enum):
    """Provenance state of a record field"""
    MISSING = "missing"
    INFERRED = "inferred"
    VALIDATED = "validated"
    DEFAULTED = "defaulted"


ALLOWED_TRANSITIONS = {
    FieldState.MISSING: {FieldState.INFERRED, FieldState.DEFAULTED},
    FieldState.INFERRED: {FieldState.VALIDATED, FieldState.DEFAULTED},
    FieldState.VALIDATED: set(),
    FieldState.DEFAULTED: set(),
}

TRACKED_FIELDS = ['name', 'phone', 'address', 'city', 'email', 'brand', 'hours']

FALLBACK_ADDRESSES = {
    'ängelholm': 'Storgatan 12, 262 32 Ängelholm',
    'båstad': 'Köpmansgatan 8, 269 35 Båstad',
    'malmö': 'Södergatan 15, 211 34 Malmö',
    'helsingborg': 'Kullagatan 10, 252 20 Helsingborg',
    'lund': 'Stora Södergatan 3, 222 23 Lund',
    'stockholm': 'Drottninggatan 25, 111 51 Stockholm',
    'göteborg': 'Avenyn 42, 411 36 Göteborg',
    'viken': 'Centrumgatan 5, 263 61 Viken',
}

AREA_CODES = {
    'ängelholm': '431',
    'båstad': '431',
    'malmö': '40',
    'helsingborg': '42',
    'viken': '42',
    'lund': '46',
    'stockholm': '8',
    'göteborg': '31',
}
NATIONAL_NUMBER_LENGTH = 9
DEFAULT_AREA_CODE = '771'

STANDARD_HOURS = {
    'monday': '11:30–22:00',
    'tuesday': '11:30–22:00',
    'wednesday': '11:30–22:00',
    'thursday': '11:30–22:00',
    'friday': '11:30–23:00',
    'saturday': '12:00–23:00',
    'sunday': '12:00–21:00',
}


@dataclass
class FieldTrace:
    """States a field went through during one normalization pass"""
    field: str
    states: List[FieldState] = field(default_factory=lambda: [FieldState.MISSING])
    value: Any = None
    note: str = ""

    @property
    def state(self) -> FieldState:
        return self.states[-1]


class FieldTracker:
    """Keeps one FieldTrace per tracked field and enforces legal transitions"""

    def __init__(self, fields: Optional[List[str]] = None):
        self.traces: Dict[str, FieldTrace] = {name: FieldTrace(field=name) for name in (fields or TRACKED_FIELDS)}

    def state(self, field_name: str) -> FieldState:
        return self.traces[field_name].state

    def transition(self, field_name: str, new_state: FieldState, value: Any = None, note: str = "") -> None:
        trace = self.traces.setdefault(field_name, FieldTrace(field=field_name))
        if new_state not in ALLOWED_TRANSITIONS[trace.state]:
            raise ValueError(f"Illegal transition for {field_name}: {trace.state.value} -> {new_state.value}")
        trace.states.append(new_state)
        trace.value = value
        if note:
            trace.note = note

    def to_list(self) -> List[Dict[str, Any]]:
        return [
            {
                'field': trace.field,
                'state': trace.state.value,
                'path': [state.value for state in trace.states],
                'note': trace.note,
            }
            for trace in self.traces.values()
        ]


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == {} or value == []


def has_usable_hours(hours: Any) -> bool:
    if not isinstance(hours, Mapping):
        return False
    return any(
        value and str(value).strip().lower() not in ('closed', 'stängt')
        for value in hours.values()
    )


def fallback_address(city: str) -> str:
    """Central street address in a known city, generic street otherwise"""
    return FALLBACK_ADDRESSES.get(city.strip().lower(), f"Centrumgatan 1, {city.strip()}")


def fallback_phone(city: str, country_code: str = "+46") -> str:
    """Placeholder E.164 number using the city's area code"""
    area = AREA_CODES.get(city.strip().lower(), DEFAULT_AREA_CODE)
    return f"{country_code}{area}{'0' * (NATIONAL_NUMBER_LENGTH - len(area))}"


def _guess_from_contact(contact: Any, key: str) -> Optional[str]:
    if isinstance(contact, Mapping):
        value = contact.get(key)
        return str(value).strip() if value else None
    if isinstance(contact, str) and contact.strip():
        extractor = {'phone': extract_phone, 'address': extract_address, 'email': extract_email}[key]
        return extractor(contact)
    return None


def enhance_record(raw: Mapping[str, Any], report: NormalizationReport, tracker: FieldTracker,
                   is_chain: bool, country_code: str = "+46") -> Dict[str, Any]:
    """
    Recover missing fields and apply chain fallbacks.

    Args:
        raw: Merged raw record; ``contact`` may be free text or a dict
        report: Report of the current pass
        tracker: Field provenance tracker of the current pass
        is_chain: Whether this location was classified as part of a chain
        country_code: Country code for placeholder phone numbers

    Returns:
        New record dict; the input is not modified
    """
    enhanced = dict(raw)
    contact = raw.get('contact')

    for name in tracker.traces:
        if not _is_empty(enhanced.get(name)):
            tracker.transition(name, FieldState.INFERRED, enhanced[name], "source")

    for key, label in (('phone', 'phone number'), ('address', 'address'), ('email', 'email')):
        if _is_empty(enhanced.get(key)) and contact:
            guess = _guess_from_contact(contact, key)
            if guess:
                enhanced[key] = guess
                tracker.transition(key, FieldState.INFERRED, guess, "contact data")
                report.add_fix(f"Found {label} in contact data: {guess}")

    if _is_empty(enhanced.get('city')) and enhanced.get('address'):
        city = city_from_address(enhanced['address'])
        if city:
            enhanced['city'] = city
            tracker.transition('city', FieldState.INFERRED, city, "address")
            report.add_fix(f"Extracted city from address: {city}")

    if _is_empty(enhanced.get('brand')) and enhanced.get('name'):
        brand = brand_from_name(enhanced['name'])
        if brand and brand != enhanced['name']:
            enhanced['brand'] = brand
            tracker.transition('brand', FieldState.INFERRED, brand, "name")
            report.add_fix(f"Extracted brand from name: {brand}")

    enhanced['is_chain'] = is_chain
    enhanced['data_quality'] = 'estimated' if is_chain else 'verified'
    if not is_chain:
        return enhanced

    city = enhanced.get('city')
    if city:
        city = re.sub(r'\s+', ' ', str(city)).strip()

    if _is_empty(enhanced.get('address')) and city:
        address = fallback_address(city)
        enhanced['address'] = address
        tracker.transition('address', FieldState.DEFAULTED, address, "chain fallback")
        report.add_assumption(f"Generated fallback address for {city}: {address}")

    if not _is_empty(enhanced.get('phone')):
        # An unrepairable number counts as missing so the fallback applies
        enhanced['phone'] = normalize_phone(enhanced['phone'], report, country_code)

    if _is_empty(enhanced.get('phone')) and city:
        phone = fallback_phone(city, country_code)
        enhanced['phone'] = phone
        tracker.transition('phone', FieldState.DEFAULTED, phone, "chain fallback")
        report.add_assumption(f"Generated fallback phone for {city}: {phone}")

    if not has_usable_hours(enhanced.get('hours')):
        enhanced['hours'] = dict(STANDARD_HOURS)
        tracker.transition('hours', FieldState.DEFAULTED, enhanced['hours'], "chain fallback")
        report.add_assumption("Generated standard opening hours for chain location")

    return enhanced
