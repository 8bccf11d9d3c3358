"""
Tests for Page Classification

Tests URL path hints, keyword-based relevance scoring and the general
fallback.
"""

import pytest

from restaurant_kb.core.base import PageCategory
from restaurant_kb.processors.classifier import ClassificationResult, PageClassifier


class TestPageClassifier:
    """Test suite for PageClassifier"""

    @pytest.fixture
    def classifier(self):
        return PageClassifier()

    def test_keyword_normalization(self):
        """Keywords are lowercased and de-duplicated"""
        classifier = PageClassifier({'menu': ['MENY', 'Meny', '  rätter  ', 'pris']})
        assert classifier.category_keywords['menu'] == ['meny', 'rätter', 'pris']

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            PageClassifier({'weather': ['sol']})

    def test_content_preprocessing(self, classifier):
        processed = classifier._preprocess_content("  Dagens LUNCH: 125 kr!!!  ")
        assert processed == "dagens lunch 125 kr"

    @pytest.mark.parametrize("url, expected", [
        ("https://torstens.se/meny", PageCategory.MENU),
        ("https://torstens.se/lunch/vecka-12", PageCategory.MENU),
        ("https://torstens.se/kontakt", PageCategory.CONTACT),
        ("https://torstens.se/hitta-hit", PageCategory.CONTACT),
        ("https://torstens.se/%C3%B6ppettider", PageCategory.HOURS),
        ("https://torstens.se/om-oss", PageCategory.ABOUT),
        ("https://torstens.se/boka-bord", PageCategory.BOOKING),
    ])
    def test_url_hints(self, classifier, url, expected):
        result = classifier.classify(url, "")
        assert result.category is expected
        assert result.matched_by == 'url'
        assert result.confidence == 1.0

    def test_url_hint_order(self, classifier):
        """Menu hints are checked before booking hints"""
        assert classifier.classify_url("https://torstens.se/boka/meny") is PageCategory.MENU

    def test_root_has_no_hint(self, classifier):
        assert classifier.classify_url("https://torstens.se/") is None

    def test_keyword_classification(self, classifier):
        text = ("Öppettider: måndag till fredag öppet 11-22, lördag öppet 12-23, "
                "söndag stängt. Välkommen!")
        result = classifier.classify("https://torstens.se/", text)

        assert isinstance(result, ClassificationResult)
        assert result.category is PageCategory.HOURS
        assert result.matched_by == 'keywords'
        assert result.scores['hours'] > result.scores['menu']

    def test_unrelated_text_is_general(self, classifier):
        result = classifier.classify("https://torstens.se/", "Lorem ipsum dolor sit amet consectetur.")

        assert result.category is PageCategory.GENERAL
        assert result.matched_by == 'default'
        assert result.confidence == 0.0

    def test_relevance_score_bounds(self, classifier):
        assert classifier.calculate_relevance_score("", ['meny']) == 0.0
        assert classifier.calculate_relevance_score("meny", []) == 0.0

        score = classifier.calculate_relevance_score("meny meny meny rätter pris kr", ['meny', 'rätter', 'pris', 'kr'])
        assert 0.0 < score <= 1.0
