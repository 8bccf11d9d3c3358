"""
Location Detection

Decides whether a site describes one restaurant or several (a chain) and
produces one LocationCandidate per physical location.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from restaurant_kb.core.base import ExtractedContent, LocationCandidate


KNOWN_CITIES = [
    'stockholm', 'göteborg', 'malmö', 'uppsala', 'västerås', 'örebro', 'linköping',
    'helsingborg', 'jönköping', 'norrköping', 'lund', 'umeå', 'gävle', 'borås',
    'södertälje', 'eskilstuna', 'halmstad', 'växjö', 'karlstad', 'sundsvall',
    'ängelholm', 'båstad', 'viken', 'höganäs', 'landskrona', 'kristianstad',
]

TRAVEL_WORDS = {'från', 'till', 'mellan', 'via', 'mot'}

BRAND_STOP_WORDS = {'restaurang', 'restaurant', 'café', 'cafe', 'bar', 'pub', 'bistro', 'krog',
                    'pizzeria', 'och', 'the', 'i', 'på', 'in'}

GENERIC_EMAIL_PREFIXES = ('info@', 'kontakt@', 'contact@', 'hello@', 'hej@')

LOCATION_BLOCK_PATTERN = re.compile(
    r'^[ \t]*([A-ZÅÄÖ][A-ZÅÄÖ0-9&\' .-]{2,40})[ \t]*\n+'
    r'[ \t]*([A-ZÅÄÖ][a-zåäöéü]+(?:[ -][A-ZÅÄÖa-zåäöéü]+)?[ \t]+\d+[A-Za-z]?,?[ \t]*\d{3}[ \t]?\d{2}[ \t]+([A-ZÅÄÖ][a-zåäöéü]+))[ \t]*\n+'
    r'[ \t]*(?:[Tt]el(?:efon)?\.?:?[ \t]*)?(\+?\d[\d \t()-]{6,}\d)',
    re.MULTILINE
)
LOCATION_BLOCK_NO_PHONE_PATTERN = re.compile(
    r'^[ \t]*([A-ZÅÄÖ][A-ZÅÄÖ0-9&\' .-]{2,40})[ \t]*\n+'
    r'[ \t]*([A-ZÅÄÖ][a-zåäöéü]+(?:[ -][A-ZÅÄÖa-zåäöéü]+)?[ \t]+\d+[A-Za-z]?,?[ \t]*\d{3}[ \t]?\d{2}[ \t]+([A-ZÅÄÖ][a-zåäöéü]+))',
    re.MULTILINE
)
POSTAL_CITY_PATTERN = re.compile(r'\d{3}\s?\d{2}\s+([A-ZÅÄÖ][a-zåäöéü]+)')


def city_from_address(address: Optional[str], cities: Optional[List[str]] = None) -> Optional[str]:
    """City following the postcode, or a known city named in the address"""
    if not address:
        return None
    match = POSTAL_CITY_PATTERN.search(address)
    if match:
        return match.group(1)
    lower = address.lower()
    for city in cities or KNOWN_CITIES:
        if re.search(rf'\b{re.escape(city)}\b', lower):
            return city.capitalize()
    return None


def brand_from_name(name: Optional[str]) -> Optional[str]:
    """
    Strip generic venue words and a trailing city from a restaurant name.

    "Restaurang Torstens Ängelholm" -> "Torstens"
    """
    if not name:
        return None
    words = [w for w in re.split(r'\s+', name.strip()) if w]
    kept = [w for w in words if w.lower().strip('.,') not in BRAND_STOP_WORDS]
    while kept and kept[-1].lower().strip('.,') in KNOWN_CITIES:
        kept.pop()
    brand = " ".join(kept).strip(' -|–')
    return brand or None


def name_from_title(title: str) -> Optional[str]:
    """Site name from a <title>, dropping the part after a separator"""
    if not title:
        return None
    name = re.split(r'\s+[|–—-]\s+', title.strip())[0].strip()
    return name or None


def find_city_mentions(text: str, cities: Optional[List[str]] = None) -> List[str]:
    """
    Known cities referenced as locations, in order of first appearance.

    Occurrences right after a travel word ("från Malmö", "till Lund") and in
    sentences describing a journey ("på väg") are ignored.
    """
    if not text:
        return []

    found: List[str] = []
    lower = text.lower()
    for sentence in re.split(r'[.!?\n]+', lower):
        if 'på väg' in sentence:
            continue
        for city in cities or KNOWN_CITIES:
            for match in re.finditer(rf'(?<!\w){re.escape(city)}(?!\w)', sentence):
                preceding = sentence[:match.start()].split()
                if preceding and (preceding[-1] in TRAVEL_WORDS or 'mellan' in preceding[-3:]):
                    continue
                if city not in found:
                    found.append(city)
                break

    # Order by first position in the text
    return sorted(found, key=lambda c: lower.find(c))


def is_chain_location(data: Mapping[str, Any], text: str = "",
                      cities: Optional[List[str]] = None) -> bool:
    """
    Heuristic chain classification; at least two indicators must hold.

    Indicators:
    - phone and address missing while an email is present
    - more than one known city mentioned in the name or text
    - generic email address (info@, kontakt@ ...)
    - no usable opening hours

    Args:
        data: Raw location record (name, phone, address, email, hours)
        text: Page text that belongs to this location

    Returns:
        True if the location looks like one branch of a chain
    """
    email = (data.get('email') or '').strip().lower()
    hours = data.get('hours') or {}

    indicators = [
        not data.get('phone') and not data.get('address') and bool(email),
        len(find_city_mentions(f"{data.get('name') or ''}\n{text}", cities)) > 1,
        email.startswith(GENERIC_EMAIL_PREFIXES),
        not any(
            value and str(value).strip().lower() not in ('closed', 'stängt')
            for value in (hours.values() if isinstance(hours, Mapping) else [])
        ),
    ]
    return sum(1 for indicator in indicators if indicator) >= 2


class LocationDetector:
    """Detects restaurant locations described by one page"""

    def __init__(self, cities: Optional[List[str]] = None):
        self.cities = [c.lower() for c in (cities or KNOWN_CITIES)]
        self.logger = logging.getLogger(__name__)

    def detect_locations(self, content: ExtractedContent) -> List[LocationCandidate]:
        """
        Detect locations on a page.

        Returns:
            At least one candidate; several when the page lists multiple branches
        """
        blocks = self._detect_address_blocks(content)
        if len(blocks) >= 2:
            self.logger.info(f"Detected {len(blocks)} locations from address blocks on {content.url}")
            return blocks

        by_city = self._detect_city_locations(content)
        if len(by_city) >= 2:
            self.logger.info(f"Detected {len(by_city)} locations from city mentions on {content.url}")
            return by_city

        return [self._single_location(content)]

    def _detect_address_blocks(self, content: ExtractedContent) -> List[LocationCandidate]:
        text = content.main_text
        brand = brand_from_name(name_from_title(content.title))
        candidates: Dict[str, LocationCandidate] = {}

        for match in LOCATION_BLOCK_PATTERN.finditer(text):
            address = match.group(2).strip()
            candidates.setdefault(address.lower(), LocationCandidate(
                name=match.group(1).strip().title(),
                address=address,
                city=match.group(3),
                phone=match.group(4).strip(),
                brand=brand,
                source_url=content.url,
            ))

        for match in LOCATION_BLOCK_NO_PHONE_PATTERN.finditer(text):
            address = match.group(2).strip()
            candidates.setdefault(address.lower(), LocationCandidate(
                name=match.group(1).strip().title(),
                address=address,
                city=match.group(3),
                brand=brand,
                source_url=content.url,
            ))

        return list(candidates.values())

    def _detect_city_locations(self, content: ExtractedContent) -> List[LocationCandidate]:
        cities = find_city_mentions(content.main_text, self.cities)
        if len(cities) < 2:
            return []

        brand = brand_from_name(name_from_title(content.title) or content.h1) or self._brand_from_text(content.main_text)
        email = content.contact_candidate.email if content.contact_candidate else None
        return [
            LocationCandidate(
                name=f"{brand} {city.capitalize()}" if brand else city.capitalize(),
                city=city.capitalize(),
                email=email,
                brand=brand,
                source_url=content.url,
            )
            for city in cities
        ]

    def _brand_from_text(self, text: str) -> Optional[str]:
        match = re.search(r'\b([A-ZÅÄÖ][a-zåäöé]{2,})\b', text or "")
        return match.group(1) if match else None

    def _single_location(self, content: ExtractedContent) -> LocationCandidate:
        contact = content.contact_candidate
        address = contact.address if contact else None
        name = name_from_title(content.title) or content.h1 or None
        return LocationCandidate(
            name=name,
            address=address,
            city=city_from_address(address, self.cities),
            phone=contact.phone if contact else None,
            email=contact.email if contact else None,
            brand=brand_from_name(name),
            source_url=content.url,
        )
