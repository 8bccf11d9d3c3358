"""
Tests for Content Extraction

Tests text cleanup, menu strategies, opening hours, contact details,
allergens and robustness against malformed HTML.
"""

import pytest
from bs4 import BeautifulSoup

from restaurant_kb.core.base import MenuItemCandidate, PageCategory
from restaurant_kb.processors.extractor import (
    ContentExtractor,
    _day_span,
    extract_allergens,
    extract_contact,
    extract_free_text_menu,
    extract_heading_menu,
    extract_hours,
    extract_menu_items,
    extract_phone,
    is_likely_food_item,
)


STRUCTURED_MENU = """
<html><head><title>Meny | Torstens</title></head>
<body>
  <nav><a href="/meny">Meny</a><a href="/kontakt">Kontakt</a></nav>
  <main>
    <h1>Vår meny</h1>
    <h2>Varmrätter</h2>
    <div class="menu-item">
      <h4>Wallenbergare</h4>
      <p>Med potatispuré, lingon och brynt smör</p>
      <span class="price">195 kr</span>
    </div>
    <div class="menu-item">
      <h4>Toast Skagen</h4>
      <p>ca 165 kr</p>
    </div>
  </main>
  <footer>Storgatan 12, 262 32 Ängelholm</footer>
  <script>var tracking = true;</script>
</body></html>
"""

CONTACT_PAGE = """
<html><head><title>Kontakt - Torstens</title></head>
<body>
  <h1>Kontakta oss</h1>
  <p>Storgatan 12, 262 32 Ängelholm</p>
  <p>Tel: <a href="tel:043112345">0431-123 45</a></p>
  <p>E-post: <a href="mailto:info@torstens.se">info@torstens.se</a></p>
  <h2>Öppettider</h2>
  <p>Måndag–Fredag 11:30-22:00</p>
  <p>Lördag 12-23</p>
  <p>Söndag stängt</p>
  <a href="/boka-bord">Boka bord</a>
</body></html>
"""


class TestMenuExtraction:
    """Test suite for menu strategies"""

    def test_structured_menu(self):
        content = ContentExtractor().extract(STRUCTURED_MENU, "https://torstens.se/meny")

        assert content.menu_item_candidates == [
            MenuItemCandidate(title="Wallenbergare", description="Med potatispuré, lingon och brynt smör",
                              price="195 kr"),
            MenuItemCandidate(title="Toast Skagen", description="", price="ca 165 kr"),
        ]

    def test_free_text_menu(self):
        text = "\n".join([
            "Wallenbergare med potatispuré 195 kr",
            "Toast Skagen - 165 kr",
            "Pizza Margherita ........ 125:-",
            "Presentkort 500 kr",
            "Öppet 11-22",
        ])
        items = extract_free_text_menu(BeautifulSoup("", 'html.parser'), text)

        assert [item.title for item in items] == ["Wallenbergare med potatispuré", "Toast Skagen", "Pizza Margherita"]
        assert [item.price for item in items] == ["195 kr", "165 kr", "125 kr"]

    def test_heading_menu(self):
        html = """
        <h3>Husets burgare</h3><p>Högrevsburgare med cheddar. 179 kr</p>
        <h3>Om oss</h3><h3>Kladdkaka 89 kr</h3>
        """
        soup = BeautifulSoup(html, 'html.parser')
        items = extract_heading_menu(soup, soup.get_text("\n"))

        assert items[0].title == "Husets burgare"
        assert items[0].price == "179 kr"
        assert items[1] == MenuItemCandidate(title="Kladdkaka", description="", price="89 kr")
        assert len(items) == 2

    def test_strategies_stop_at_first_result(self):
        calls = []

        def first(soup, text):
            calls.append('first')
            return []

        def second(soup, text):
            calls.append('second')
            return [MenuItemCandidate(title=f"Rätt {i}") for i in range(30)]

        def third(soup, text):
            calls.append('third')
            return [MenuItemCandidate(title="never")]

        items = extract_menu_items(BeautifulSoup("", 'html.parser'), "", [first, second, third])

        assert calls == ['first', 'second']
        assert len(items) == 20

    @pytest.mark.parametrize("name, price, expected", [
        ("Grillad lax", 189, True),
        ("Grillad lax", 20, False),
        ("Grillad lax", 1200, False),
        ("Presentkort", 500, False),
        ("Parkering per timme", 60, False),
        ("Något helt annat", 150, False),
    ])
    def test_food_plausibility(self, name, price, expected):
        assert is_likely_food_item(name, price) is expected


class TestHoursExtraction:
    """Test suite for opening hours"""

    def test_range_single_and_closed(self):
        text = "Öppettider\nMåndag–Fredag 11:30-22:00\nLördag 12-23\nSöndag stängt"

        assert extract_hours(text) == {
            'monday': '11:30-22:00',
            'tuesday': '11:30-22:00',
            'wednesday': '11:30-22:00',
            'thursday': '11:30-22:00',
            'friday': '11:30-22:00',
            'saturday': '12-23',
            'sunday': 'closed',
        }

    def test_english_abbreviations(self):
        assert extract_hours("Mon - Thu: 11.30 - 21.00") == {
            'monday': '11.30-21.00',
            'tuesday': '11.30-21.00',
            'wednesday': '11.30-21.00',
            'thursday': '11.30-21.00',
        }

    def test_compact_times(self):
        hours = extract_hours("Monday - Friday 1130-2200")

        assert hours == {day: '1130-2200' for day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday')}

    def test_closed_range(self):
        hours = extract_hours("Mån-Tis stängt\nOnsdag 17-23")
        assert hours == {'monday': 'closed', 'tuesday': 'closed', 'wednesday': '17-23'}

    def test_range_wraps_around_week(self):
        assert _day_span('fredag', 'måndag') == ['friday', 'saturday', 'sunday', 'monday']

    def test_no_hours(self):
        assert extract_hours("Välkommen till oss!") is None


class TestContactExtraction:
    """Test suite for contact details"""

    def test_contact_fields(self):
        contact = extract_contact("Storgatan 12, 262 32 Ängelholm\nTel: 0431-123 45\ninfo@torstens.se")

        assert contact.address == "Storgatan 12, 262 32 Ängelholm"
        assert contact.phone == "0431-123 45"
        assert contact.email == "info@torstens.se"

    def test_international_phone_first(self):
        assert extract_phone("Ring 0431-123 45 eller +46 431 123 45") == "+46 431 123 45"

    def test_short_numbers_ignored(self):
        assert extract_phone("Öppet 11-22, 3 rätter") is None

    def test_prices_on_separate_lines_are_not_a_phone(self):
        assert extract_contact("Pizza Margherita\n125\n145\n165\nVälkommen") is None

    def test_number_run_followed_by_price_suffix_is_skipped(self):
        assert extract_phone("Familjepizza 125 145 165 kr") is None
        assert extract_phone("Meny 245 195 95:- Bokning 042-236 00 00") == "042-236 00 00"

    def test_labelled_address(self):
        contact = extract_contact("Adress: Hamnplan 3 i Viken")
        assert contact.address == "Hamnplan 3 i Viken"

    def test_no_contact(self):
        assert extract_contact("Bara text här") is None


class TestAllergens:
    """Test suite for allergen detection"""

    def test_fixed_order_and_prefix_match(self):
        text = "Toast med räkor. Innehåller mjölk och vetemjöl. Kan innehålla spår av nötter."
        assert extract_allergens(text) == ['gluten', 'laktos', 'nötter', 'skaldjur']

    def test_no_allergens(self):
        assert extract_allergens("Grillad halloumi med sallad") == []


class TestContentExtractor:
    """Test suite for ContentExtractor"""

    @pytest.fixture
    def extractor(self):
        return ContentExtractor()

    def test_noise_removed_from_text(self, extractor):
        content = extractor.extract(STRUCTURED_MENU, "https://torstens.se/meny")

        assert content.title == "Meny | Torstens"
        assert content.h1 == "Vår meny"
        assert "Varmrätter" in content.headings
        assert "tracking" not in content.main_text
        assert "Storgatan" not in content.main_text
        assert "Kontakt" not in content.main_text
        assert content.category is PageCategory.MENU

    def test_contact_page(self, extractor):
        content = extractor.extract(CONTACT_PAGE, "https://torstens.se/kontakt")

        assert content.category is PageCategory.CONTACT
        assert content.contact_candidate.phone == "0431-123 45"
        assert content.contact_candidate.email == "info@torstens.se"
        assert content.contact_candidate.address == "Storgatan 12, 262 32 Ängelholm"
        assert content.hours_candidate['sunday'] == 'closed'
        assert content.hours_candidate['monday'] == '11:30-22:00'
        assert {'text': 'Boka bord', 'href': 'https://torstens.se/boka-bord'} in content.links
        assert all(not link['href'].startswith(('tel:', 'mailto:')) for link in content.links)

    def test_category_independent_of_extraction(self, extractor):
        content = extractor.extract("<html><body></body></html>", "https://torstens.se/meny")

        assert content.category is PageCategory.MENU
        assert content.menu_item_candidates == []
        assert content.language == "unknown"

    @pytest.mark.parametrize("raw_html", [None, "", "<<<>>><div><p>unclosed <b>tags", "\x00\x01 binary"])
    def test_malformed_html_never_raises(self, extractor, raw_html):
        content = extractor.extract(raw_html, "https://torstens.se/")
        assert content.url == "https://torstens.se/"
        assert content.hours_candidate is None

    def test_extraction_is_deterministic(self, extractor):
        first = extractor.extract(CONTACT_PAGE, "https://torstens.se/kontakt")
        second = extractor.extract(CONTACT_PAGE, "https://torstens.se/kontakt")
        assert first.to_dict() == second.to_dict()
