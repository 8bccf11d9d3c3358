"""
Content Extraction for Restaurant Pages

Turns raw HTML into ExtractedContent: cleaned text, menu item candidates,
opening hours, contact details and allergen mentions. Every extractor is a
heuristic; missing data yields empty fields rather than errors.
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from langdetect import DetectorFactory, LangDetectException, detect

from restaurant_kb.core.base import (
    ContactCandidate,
    ExtractedContent,
    MenuItemCandidate,
)
from restaurant_kb.processors.classifier import PageClassifier
from restaurant_kb.utils.text import collapse_whitespace

DetectorFactory.seed = 0

logger = logging.getLogger(__name__)


NOISE_SELECTORS = ['script', 'style', 'noscript', 'nav', 'header', 'footer', '.nav', '.header', '.footer']

MAX_MENU_ITEMS = 20
MIN_PLAUSIBLE_PRICE = 50
MAX_PLAUSIBLE_PRICE = 800

HEADING_TAGS = ('h1', 'h2', 'h3', 'h4', 'h5', 'h6')
MENU_ITEM_SELECTORS = '.menu-item, .dish, .food-item, .meny-item, .menu-entry, .plate, .course'
MENU_TITLE_SELECTORS = 'h3, h4, h5, .title, .name, .dish-name'
MENU_DESCRIPTION_SELECTORS = 'p, .description, .desc, .dish-desc'

PRICE_PATTERN = re.compile(r'((?:ca\.?|cirka|ungefär|~)\s*)?(\d{1,5}(?:[.,]\d{1,2})?)\s*(?:kr\b|:-|sek\b)',
                           re.IGNORECASE)

FREE_TEXT_MENU_PATTERNS = [
    # "Wallenbergare med potatispuré 195 kr"
    re.compile(r'^([A-ZÅÄÖ][a-zåäöéü]+(?:[ \t]+[a-zåäöéüA-ZÅÄÖ&-]+){0,8})[ \t]+(\d{2,4})[ \t]*(?:kr|:-|SEK)',
               re.MULTILINE),
    # "Pizza Margherita ........ 125:-"
    re.compile(r'^([A-ZÅÄÖ][\wåäöéü \t&-]{2,60}?)[ \t]*[.…]{2,}[ \t]*(\d{2,4})[ \t]*(?:kr|:-|SEK)?',
               re.MULTILINE),
    # "Toast Skagen - 165 kr"
    re.compile(r'^([A-ZÅÄÖ][\wåäöéü \t&]{2,60}?)[ \t]+[-–][ \t]+(\d{2,4})[ \t]*(?:kr|:-|SEK)',
               re.MULTILINE),
]

FOOD_KEYWORDS = [
    'kött', 'fisk', 'kyckling', 'fläsk', 'nöt', 'lamm', 'lax', 'torsk', 'räk', 'sallad', 'soppa',
    'pasta', 'pizza', 'burgare', 'biff', 'schnitzel', 'potatis', 'ris', 'grönsak', 'ost', 'svamp',
    'tomat', 'bröd', 'dessert', 'glass', 'tårta', 'paj', 'gryta', 'stek', 'filé', 'sås', 'toast',
    'wok', 'curry', 'tacos', 'sushi', 'köttbullar', 'kebab', 'falafel', 'halloumi', 'röding',
    'sill', 'skagen', 'wallenbergare', 'pannbiff', 'carbonara', 'lasagne', 'risotto', 'chicken',
    'beef', 'pork', 'salad', 'soup', 'fish', 'burger', 'steak', 'vegetarisk', 'vegan',
]
NON_FOOD_PHRASES = [
    'öppet', 'stängt', 'telefon', 'adress', 'kontakt', 'boka', 'presentkort', 'leverans',
    'frakt', 'moms', 'avgift', 'parkering', 'medlem', 'kort', 'rabatt', 'personal', 'gäster',
    'platser', 'minuter', 'timmar', 'år', 'pris', 'kostar',
]

DAY_NAMES: Dict[str, str] = {
    'måndag': 'monday', 'måndagar': 'monday', 'mån': 'monday', 'monday': 'monday', 'mon': 'monday',
    'tisdag': 'tuesday', 'tisdagar': 'tuesday', 'tis': 'tuesday', 'tuesday': 'tuesday', 'tue': 'tuesday',
    'onsdag': 'wednesday', 'onsdagar': 'wednesday', 'ons': 'wednesday', 'wednesday': 'wednesday',
    'wed': 'wednesday',
    'torsdag': 'thursday', 'torsdagar': 'thursday', 'tors': 'thursday', 'tor': 'thursday',
    'thursday': 'thursday', 'thu': 'thursday', 'thurs': 'thursday',
    'fredag': 'friday', 'fredagar': 'friday', 'fre': 'friday', 'friday': 'friday', 'fri': 'friday',
    'lördag': 'saturday', 'lördagar': 'saturday', 'lör': 'saturday', 'saturday': 'saturday',
    'sat': 'saturday',
    'söndag': 'sunday', 'söndagar': 'sunday', 'sön': 'sunday', 'sunday': 'sunday', 'sun': 'sunday',
}
WEEK = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

_DAY_ALT = '|'.join(sorted((re.escape(name) for name in DAY_NAMES), key=len, reverse=True))
_DAY = rf'\b({_DAY_ALT})\b\.?'
_TIME = r'(\d{1,2}(?:[.:]?\d{2})?)'
_DASH = r'\s*(?:-|–|—|till|to)\s*'

HOURS_RANGE_PATTERN = re.compile(rf'{_DAY}{_DASH}{_DAY}\s*:?\s*{_TIME}{_DASH}{_TIME}', re.IGNORECASE)
HOURS_CLOSED_RANGE_PATTERN = re.compile(rf'{_DAY}{_DASH}{_DAY}\s*:?\s*(?:stängt|closed)', re.IGNORECASE)
HOURS_SINGLE_PATTERN = re.compile(rf'{_DAY}\s*:?\s*{_TIME}{_DASH}{_TIME}', re.IGNORECASE)
HOURS_CLOSED_PATTERN = re.compile(rf'{_DAY}\s*:?\s*(?:stängt|closed)', re.IGNORECASE)

PHONE_PATTERNS = [
    # International format: +46 431-123 45
    re.compile(r'\+\d{2,3}[ \t-]?\(?0?\)?\d{1,4}(?:[ \t-]?\d{2,4}){1,4}'),
    # National format: 0431-123 45, 08-123 456 78
    re.compile(r'\b0\d{1,3}[ \t-]?\d{2,3}(?:[ \t-]?\d{2,3}){1,3}\b'),
    # Labelled: "Tel: 431 123 45"
    re.compile(r'(?:tel|telefon|phone|ring)\.?[ \t]*:?[ \t]*(\d[\d \t-]{6,}\d)', re.IGNORECASE),
    # Generic numeric run
    re.compile(r'\b\d{3}[ \t-]\d{2,3}[ \t-]\d{2,3}(?:[ \t-]\d{2})?\b'),
]
# Prices such as "125 kr" or "125:-" directly after a number run
PRICE_SUFFIX_PATTERN = re.compile(r'[ \t]*(?:kr\b|sek\b|:-)', re.IGNORECASE)
EMAIL_PATTERN = re.compile(r'[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}')
ADDRESS_PATTERNS = [
    # Street + number + postcode + city: "Storgatan 12, 262 32 Ängelholm"
    re.compile(r'([A-ZÅÄÖ][a-zåäöéü]+(?:[ -][A-ZÅÄÖ][a-zåäöéü]+)?\s+\d+[A-Za-z]?,?\s+\d{3}\s?\d{2}\s+[A-ZÅÄÖ][a-zåäöéü]+)'),
    # Labelled: "Adress: Storgatan 12"
    re.compile(r'\b(?:besöksadress|adress|address)\s*:?\s*([^\n]{5,80})', re.IGNORECASE),
    # Street + number + city: "Storgatan 12, Ängelholm"
    re.compile(r'([A-ZÅÄÖ][a-zåäöéü]+(?:gatan|vägen|torget|gränd|stigen|allén|plan|backe)\s+\d+[A-Za-z]?,\s*[A-ZÅÄÖ][a-zåäöéü]+)'),
]

ALLERGEN_KEYWORDS: List[Tuple[str, List[str]]] = [
    ('gluten', ['gluten', 'vete', 'råg', 'korn', 'havre', 'wheat']),
    ('laktos', ['laktos', 'mjölk', 'grädde', 'smör', 'lactose', 'milk', 'dairy']),
    ('ägg', ['ägg', 'egg']),
    ('nötter', ['nötter', 'mandel', 'valnöt', 'hasselnöt', 'cashew', 'pistage', 'nuts']),
    ('jordnöt', ['jordnöt', 'peanut']),
    ('soja', ['soja', 'soy']),
    ('fisk', ['fisk', 'fish']),
    ('skaldjur', ['skaldjur', 'kräft', 'räka', 'räkor', 'hummer', 'krabba', 'musslor', 'shellfish']),
    ('selleri', ['selleri', 'celery']),
    ('sesam', ['sesam', 'sesame']),
    ('senap', ['senap', 'mustard']),
    ('sulfiter', ['sulfit', 'sulphite', 'sulfite']),
]

MenuStrategy = Callable[[BeautifulSoup, str], List[MenuItemCandidate]]


def _clean(text: Optional[str]) -> str:
    return re.sub(r'\s+', ' ', text or '').strip()


def is_likely_food_item(name: str, price: float) -> bool:
    """Plausibility filter for free-text menu matches"""
    if not (MIN_PLAUSIBLE_PRICE <= price <= MAX_PLAUSIBLE_PRICE):
        return False

    lower = name.lower().strip()
    if len(lower) < 3 or len(lower) > 80:
        return False
    if any(re.search(rf'\b{re.escape(phrase)}\b', lower) for phrase in NON_FOOD_PHRASES):
        return False
    return any(keyword in lower for keyword in FOOD_KEYWORDS)


def extract_structured_menu(soup: BeautifulSoup, text: str) -> List[MenuItemCandidate]:
    """Strategy (a): elements carrying common menu-item class names"""
    items = []
    for element in soup.select(MENU_ITEM_SELECTORS):
        title_el = element.select_one(MENU_TITLE_SELECTORS)
        title = _clean(title_el.get_text(" ")) if title_el else ""
        if not title:
            title = _clean(next((s for s in element.stripped_strings), ""))
        if not title:
            continue

        desc_el = element.select_one(MENU_DESCRIPTION_SELECTORS)
        description = _clean(desc_el.get_text(" ")) if desc_el and desc_el is not title_el else ""

        price_match = PRICE_PATTERN.search(element.get_text(" "))
        price = _clean(price_match.group(0)) if price_match else None

        if price and description == price:
            description = ""
        items.append(MenuItemCandidate(title=title, description=description, price=price))
    return items


def extract_free_text_menu(soup: BeautifulSoup, text: str) -> List[MenuItemCandidate]:
    """Strategy (b): "<Name> <price> kr" lines filtered by the food lexicon"""
    items = []
    seen = set()
    for pattern in FREE_TEXT_MENU_PATTERNS:
        for match in pattern.finditer(text):
            name = _clean(re.sub(r'[\s.…–-]+$', '', match.group(1)))
            price = float(match.group(2))
            key = name.lower()
            if key in seen or not is_likely_food_item(name, price):
                continue
            seen.add(key)
            items.append(MenuItemCandidate(title=name, price=f"{match.group(2)} kr"))
    return items


def extract_heading_menu(soup: BeautifulSoup, text: str) -> List[MenuItemCandidate]:
    """Strategy (c): h3/h4/h5 headings followed by a price or description"""
    items = []
    for heading in soup.find_all(['h3', 'h4', 'h5']):
        title = _clean(heading.get_text(" "))
        if not title or len(title) > 80:
            continue

        sibling = heading.find_next_sibling()
        if isinstance(sibling, Tag) and sibling.name not in HEADING_TAGS:
            sibling_text = _clean(sibling.get_text(" "))
        else:
            sibling_text = ""
        heading_price = PRICE_PATTERN.search(title)
        sibling_price = PRICE_PATTERN.search(sibling_text) if sibling_text else None

        if heading_price:
            price = _clean(heading_price.group(0))
            title = _clean(title[:heading_price.start()]).rstrip('.-–') or title
        elif sibling_price:
            price = _clean(sibling_price.group(0))
        else:
            price = None

        description = sibling_text if sibling_text and sibling_text != price else ""
        if price is None and not description:
            continue
        if description and sibling_price and description.strip() == _clean(sibling_price.group(0)):
            description = ""
        items.append(MenuItemCandidate(title=title, description=description, price=price))
    return items


DEFAULT_MENU_STRATEGIES: List[MenuStrategy] = [
    extract_structured_menu,
    extract_free_text_menu,
    extract_heading_menu,
]


def extract_menu_items(soup: BeautifulSoup, text: str,
                       strategies: Optional[List[MenuStrategy]] = None) -> List[MenuItemCandidate]:
    """Run menu strategies in order and keep the first non-empty result"""
    for strategy in strategies or DEFAULT_MENU_STRATEGIES:
        items = strategy(soup, text)
        if items:
            logger.debug(f"Menu strategy {strategy.__name__} found {len(items)} items")
            return items[:MAX_MENU_ITEMS]
    return []


def _day_span(start: str, end: str) -> List[str]:
    """Days from start to end inclusive, wrapping around the week"""
    start_index = WEEK.index(DAY_NAMES[start.lower()])
    end_index = WEEK.index(DAY_NAMES[end.lower()])
    span = (end_index - start_index) % 7
    return [WEEK[(start_index + offset) % 7] for offset in range(span + 1)]


def extract_hours(text: str) -> Optional[Dict[str, str]]:
    """
    Find opening hours in free text.

    Returns:
        Mapping of canonical day to a raw range ("11.30-22.00") or "closed",
        or None when nothing was found
    """
    hours: Dict[str, str] = {}

    def assign(days: List[str], value: str) -> None:
        for day in days:
            hours.setdefault(day, value)

    for match in HOURS_RANGE_PATTERN.finditer(text):
        assign(_day_span(match.group(1), match.group(2)), f"{match.group(3)}-{match.group(4)}")
    for match in HOURS_CLOSED_RANGE_PATTERN.finditer(text):
        assign(_day_span(match.group(1), match.group(2)), "closed")
    for match in HOURS_SINGLE_PATTERN.finditer(text):
        assign([DAY_NAMES[match.group(1).lower()]], f"{match.group(2)}-{match.group(3)}")
    for match in HOURS_CLOSED_PATTERN.finditer(text):
        assign([DAY_NAMES[match.group(1).lower()]], "closed")

    if not hours:
        return None
    return {day: hours[day] for day in WEEK if day in hours}


def extract_phone(text: str) -> Optional[str]:
    for pattern in PHONE_PATTERNS:
        for match in pattern.finditer(text):
            if PRICE_SUFFIX_PATTERN.match(text, match.end()):
                continue
            value = match.group(1) if pattern.groups else match.group(0)
            if len(re.sub(r'\D', '', value)) >= 7:
                return _clean(value)
    return None


def extract_email(text: str) -> Optional[str]:
    match = EMAIL_PATTERN.search(text)
    return match.group(0) if match else None


def extract_address(text: str) -> Optional[str]:
    for pattern in ADDRESS_PATTERNS:
        match = pattern.search(text)
        if match:
            return _clean(match.group(1)).rstrip(',.')
    return None


def extract_contact(text: str) -> Optional[ContactCandidate]:
    """First phone, email and address found in the text"""
    contact = ContactCandidate(
        phone=extract_phone(text),
        email=extract_email(text),
        address=extract_address(text),
    )
    return None if contact.is_empty() else contact


def extract_allergens(text: str) -> List[str]:
    """Canonical allergen categories mentioned in the text, in fixed order"""
    lower = text.lower()
    found = []
    for category, keywords in ALLERGEN_KEYWORDS:
        for keyword in keywords:
            if re.search(rf'\b{re.escape(keyword)}\w*', lower):
                found.append(category)
                break
    return found


def detect_language(text: str) -> str:
    """ISO 639-1 code from langdetect, or 'unknown'"""
    sample = text[:2000].strip()
    if len(sample) < 20:
        return "unknown"
    try:
        return detect(sample)
    except LangDetectException:
        return "unknown"


class ContentExtractor:
    """
    Extracts structured restaurant content from HTML pages.

    The page category comes from PageClassifier and does not depend on whether
    any extractor found data.
    """

    def __init__(self, classifier: Optional[PageClassifier] = None,
                 menu_strategies: Optional[List[MenuStrategy]] = None):
        self.classifier = classifier or PageClassifier()
        self.menu_strategies = menu_strategies or list(DEFAULT_MENU_STRATEGIES)
        self.logger = logging.getLogger(__name__)

    def extract(self, raw_html: str, url: str = "") -> ExtractedContent:
        """
        Extract content from one page. Never raises.

        Args:
            raw_html: Page HTML
            url: Page URL, used for classification and link resolution

        Returns:
            ExtractedContent; on parse failure every field except url/category is empty
        """
        try:
            soup = BeautifulSoup(raw_html or "", 'html.parser')
            title, h1, headings, main_text = self.extract_text(soup)
        except Exception as e:
            self.logger.warning(f"Could not parse HTML from {url}: {e}")
            return ExtractedContent(url=url, category=self.classifier.classify(url, "").category)

        category = self.classifier.classify(url, main_text, title).category

        content = ExtractedContent(
            url=url,
            category=category,
            title=title,
            h1=h1,
            headings=headings,
            main_text=main_text,
            links=self.extract_links(soup, url),
            language=detect_language(main_text),
        )

        steps = [
            ('menu', lambda: extract_menu_items(soup, main_text, self.menu_strategies)),
            ('hours', lambda: extract_hours(main_text)),
            ('contact', lambda: extract_contact(main_text)),
            ('allergens', lambda: extract_allergens(main_text)),
        ]
        for name, step in steps:
            try:
                value = step()
            except Exception as e:
                self.logger.warning(f"{name} extraction failed for {url}: {e}")
                continue
            if name == 'menu':
                content.menu_item_candidates = value
            elif name == 'hours':
                content.hours_candidate = value
            elif name == 'contact':
                content.contact_candidate = value
            else:
                content.allergens = value

        self.logger.debug(
            f"Extracted {url}: category={category.value}, menu_items={len(content.menu_item_candidates)}, "
            f"hours={'yes' if content.hours_candidate else 'no'}, "
            f"contact={'yes' if content.contact_candidate else 'no'}"
        )
        return content

    def extract_text(self, soup: BeautifulSoup) -> Tuple[str, str, List[str], str]:
        """Title, h1, h2/h3 headings and newline-separated main text, without page chrome"""
        title = _clean(soup.title.get_text()) if soup.title else ""

        for element in soup.select(', '.join(NOISE_SELECTORS)):
            element.decompose()

        h1_el = soup.find('h1')
        h1 = _clean(h1_el.get_text(" ")) if h1_el else ""
        headings = [_clean(h.get_text(" ")) for h in soup.find_all(['h2', 'h3'])]
        headings = [h for h in headings if h]

        container = soup.find('main') or soup.body or soup
        main_text = collapse_whitespace(container.get_text("\n"))
        return title, h1, headings, main_text

    def extract_links(self, soup: BeautifulSoup, base_url: str) -> List[Dict[str, str]]:
        links = []
        for anchor in soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if not href or href.startswith(('#', 'javascript:', 'mailto:', 'tel:')):
                continue
            links.append({
                'text': _clean(anchor.get_text(" ")),
                'href': urljoin(base_url, href) if base_url else href,
            })
        return links
