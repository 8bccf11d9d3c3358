"""
Info Builder

Assembles a RestaurantInfo record from an enhanced raw record, normalizing
menu items, booking rules, messages and special hours on the way.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from restaurant_kb.core.config import NormalizationConfig
from restaurant_kb.core.models import (
    BookingRules,
    MenuItem,
    Message,
    RestaurantInfo,
    SpecialHours,
)
from restaurant_kb.normalization.fallback import FieldState, FieldTracker
from restaurant_kb.normalization.fields import (
    normalize_allergens,
    normalize_date,
    normalize_email,
    normalize_hours,
    normalize_phone,
    normalize_price,
    normalize_time_range,
)
from restaurant_kb.normalization.report import NormalizationReport
from restaurant_kb.processors.extractor import extract_allergens
from restaurant_kb.utils.text import slugify


DEFAULT_MENU_CATEGORY = "allmän"
MESSAGE_TYPES = {'promotion', 'special_offer', 'daily_special', 'info', 'event'}

LABEL_PATTERNS = [
    ('vegetarisk', re.compile(r'\b(?:vegetarisk\w*|vegetarian|veg)\b', re.IGNORECASE)),
    ('vegansk', re.compile(r'\b(?:vegan\w*)\b', re.IGNORECASE)),
    ('glutenfri', re.compile(r'\b(?:glutenfri\w*|gluten[- ]free)\b', re.IGNORECASE)),
    ('laktosfri', re.compile(r'\b(?:laktosfri\w*|lactose[- ]free)\b', re.IGNORECASE)),
]
FREE_FROM_PATTERN = re.compile(r'\b\w+fri(?:a|tt)?\b|\b\w+[- ]free\b', re.IGNORECASE)


def generate_slug(name: str, city: Optional[str] = None) -> str:
    """'Torstens', 'Ängelholm' -> 'torstens-angelholm'"""
    return slugify(f"{name}-{city}" if city else name)


def _text(value: Any) -> str:
    return re.sub(r'\s+', ' ', str(value)).strip() if value is not None else ""


class InfoBuilder:
    """Builds RestaurantInfo records"""

    def __init__(self, config: Optional[NormalizationConfig] = None):
        self.config = config or NormalizationConfig()

    def build(self, record: Mapping[str, Any], report: NormalizationReport,
              tracker: Optional[FieldTracker] = None, slug: Optional[str] = None) -> RestaurantInfo:
        """
        Build a record.

        Args:
            record: Enhanced raw record
            report: Report of the current pass
            tracker: Field provenance tracker; validated fields are marked on it
            slug: Explicit slug; derived from brand/name and city when omitted

        Returns:
            RestaurantInfo (not yet validated)
        """
        tracker = tracker or FieldTracker()

        name = _text(record.get('name'))
        brand = _text(record.get('brand')) or None
        city = _text(record.get('city')) or None
        address = _text(record.get('address')) or None
        phone = normalize_phone(record.get('phone'), report, self.config.country_code)
        email = normalize_email(record.get('email'), report)
        hours = normalize_hours(record.get('hours'), report)

        info = RestaurantInfo(
            slug=slug or generate_slug(brand or name, city),
            name=name,
            brand=brand,
            address=address,
            city=city,
            phone=phone,
            email=email,
            website=_text(record.get('website')),
            timezone=record.get('timezone') or self.config.timezone,
            source_urls=self._unique(record.get('source_urls') or []),
            hours=hours,
            special_hours=self.build_special_hours(record.get('special_hours') or [], report),
            menu=self.build_menu(record.get('menu') or [], report),
            booking=self.build_booking(record.get('booking'), report),
            messages=self.build_messages(record.get('messages') or [], report),
            updated_at=datetime.now(timezone.utc).isoformat(timespec='seconds'),
            data_quality=record.get('data_quality', 'verified'),
            is_chain=bool(record.get('is_chain', False)),
        )

        for field_name, value in (('name', name), ('brand', brand), ('city', city), ('address', address),
                                  ('phone', phone), ('email', email), ('hours', hours)):
            if value and tracker.state(field_name) is FieldState.INFERRED:
                tracker.transition(field_name, FieldState.VALIDATED, value)

        return info

    def _unique(self, values: List[str]) -> List[str]:
        seen = []
        for value in values:
            if value and value not in seen:
                seen.append(value)
        return seen

    def build_menu(self, items: List[Any], report: NormalizationReport) -> List[MenuItem]:
        """Normalize menu items; items without a title are dropped"""
        menu = []
        for raw in items:
            item = raw if isinstance(raw, Mapping) else vars(raw)
            title = _text(item.get('title') or item.get('name'))
            if not title:
                report.add_error("Dropped menu item without title")
                continue

            description = _text(item.get('description')) or None
            text = f"{title} {description or ''}"

            if item.get('allergens'):
                allergens = normalize_allergens(item.get('allergens'), report)
            else:
                allergens = extract_allergens(FREE_FROM_PATTERN.sub(' ', text))

            labels = list(item.get('labels') or [])
            for label, pattern in LABEL_PATTERNS:
                if label not in labels and pattern.search(text):
                    labels.append(label)

            menu.append(MenuItem(
                title=title,
                description=description,
                category=_text(item.get('category')).lower() or DEFAULT_MENU_CATEGORY,
                price=normalize_price(item.get('price'), report, self.config.currency),
                allergens=allergens,
                labels=labels,
            ))
        return menu

    def build_booking(self, booking: Optional[Mapping[str, Any]], report: NormalizationReport) -> BookingRules:
        """Booking rules from input, falling back to defaults"""
        if not booking:
            report.add_assumption("No booking rules found, using defaults")
            return BookingRules()

        defaults = BookingRules()
        values: Dict[str, Any] = {}
        for key in ('min_guests', 'max_guests', 'lead_time_minutes', 'dining_duration_minutes'):
            value = booking.get(key)
            if value is None:
                continue
            try:
                values[key] = int(value)
            except (TypeError, ValueError):
                report.add_error(f"Invalid booking value {key}={value!r}, using default {getattr(defaults, key)}")

        for key in ('group_overflow_rule', 'cancellation_policy'):
            if booking.get(key):
                values[key] = _text(booking[key])

        rules = BookingRules(**values)
        if rules.min_guests < 1 or rules.max_guests < rules.min_guests:
            report.add_error(
                f"Invalid guest limits {rules.min_guests}-{rules.max_guests}, using defaults"
            )
            rules.min_guests = defaults.min_guests
            rules.max_guests = defaults.max_guests
        return rules

    def build_messages(self, messages: List[Mapping[str, Any]], report: NormalizationReport) -> List[Message]:
        """Normalize announcements; ids are derived from the title"""
        result = []
        seen_ids = set()
        for raw in messages:
            title = _text(raw.get('title'))
            content = _text(raw.get('content') or raw.get('text'))
            if not title and not content:
                report.add_error("Dropped message without title or content")
                continue

            message_type = _text(raw.get('type')).lower() or 'info'
            if message_type not in MESSAGE_TYPES:
                report.add_assumption(f"Unknown message type '{message_type}' treated as info")
                message_type = 'info'

            message_id = f"msg-{slugify(title or content, max_length=40)}"
            if message_id in seen_ids:
                report.add_error(f"Duplicate message '{title or content}' dropped")
                continue
            seen_ids.add(message_id)

            valid = raw.get('validity') or {}
            result.append(Message(
                id=message_id,
                type=message_type,
                title=title or content[:40],
                content=content or title,
                valid_from=normalize_date(raw.get('valid_from') or valid.get('start'), report),
                valid_to=normalize_date(raw.get('valid_to') or valid.get('end'), report),
                priority=_text(raw.get('priority')) or 'normal',
            ))
        return result

    def build_special_hours(self, entries: List[Mapping[str, Any]], report: NormalizationReport) -> List[SpecialHours]:
        """Holiday and event deviations; entries without a valid date are dropped"""
        result = []
        for raw in entries:
            day = normalize_date(raw.get('date'), report)
            if not day:
                report.add_error(f"Dropped special hours without valid date: {dict(raw)}")
                continue
            result.append(SpecialHours(
                date=day[:10],
                hours=normalize_time_range(day[:10], raw.get('hours'), report),
                reason=_text(raw.get('reason')),
            ))
        return sorted(result, key=lambda entry: entry.date)
