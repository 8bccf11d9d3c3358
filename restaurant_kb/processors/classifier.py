"""
Page Classification for Restaurant Sites

Assigns each page a category (menu, contact, hours, about, booking, general)
from URL path hints first, then keyword-based relevance scoring.
"""

import re
import logging
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
from urllib.parse import urlparse, unquote

from restaurant_kb.core.base import PageCategory


DEFAULT_URL_HINTS: List[Tuple[PageCategory, List[str]]] = [
    (PageCategory.MENU, ['meny', 'menu', 'lunch', 'dagens', 'mat', 'food']),
    (PageCategory.CONTACT, ['kontakt', 'contact', 'hitta-hit', 'find-us']),
    (PageCategory.HOURS, ['oppettider', 'öppettider', 'hours', 'opening']),
    (PageCategory.ABOUT, ['om-oss', 'om', 'about']),
    (PageCategory.BOOKING, ['boka', 'bokning', 'book', 'booking', 'reservation']),
]

DEFAULT_CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    'menu': ['meny', 'menu', 'rätter', 'förrätt', 'huvudrätt', 'efterrätt', 'dessert',
             'lunch', 'middag', 'dagens', 'pris', 'kr'],
    'contact': ['kontakt', 'contact', 'telefon', 'phone', 'adress', 'address', 'e-post', 'email'],
    'hours': ['öppettider', 'öppet', 'stängt', 'hours', 'open', 'closed', 'måndag', 'fredag',
              'lördag', 'söndag'],
    'booking': ['boka', 'bokning', 'bord', 'reservation', 'book', 'table', 'sällskap'],
}


@dataclass
class ClassificationResult:
    """Result of page classification"""
    category: PageCategory
    scores: Dict[str, float]
    confidence: float
    matched_by: str  # url, keywords or default


class PageClassifier:
    """
    Restaurant page classifier.

    URL path hints are checked in a fixed order (menu, contact, hours, about,
    booking). Pages without a path hint are scored against per-category
    keyword lists; the best score above the threshold wins, otherwise the page
    is ``general``.
    """

    def __init__(self, category_keywords: Optional[Dict[str, List[str]]] = None,
                 url_hints: Optional[List[Tuple[PageCategory, List[str]]]] = None,
                 min_confidence_threshold: float = 0.15):
        """
        Initialize the page classifier.

        Args:
            category_keywords: Mapping of category value to keyword list
            url_hints: Ordered (category, path tokens) pairs
            min_confidence_threshold: Minimum keyword score for a category
        """
        self.category_keywords = self._normalize_keywords(category_keywords or DEFAULT_CATEGORY_KEYWORDS)
        self.url_hints = url_hints or DEFAULT_URL_HINTS
        self.min_confidence_threshold = min_confidence_threshold
        self.logger = logging.getLogger(__name__)

        for category in self.category_keywords:
            PageCategory(category)  # raises ValueError for unknown categories

    def _normalize_keywords(self, category_keywords: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """Lowercase keywords and drop duplicates, preserving order"""
        normalized = {}
        for category, keywords in category_keywords.items():
            normalized_keywords = []
            seen = set()
            for keyword in keywords:
                lower_keyword = keyword.lower().strip()
                if lower_keyword and lower_keyword not in seen:
                    normalized_keywords.append(lower_keyword)
                    seen.add(lower_keyword)
            normalized[category] = normalized_keywords
        return normalized

    def _preprocess_content(self, content: str) -> str:
        if not content:
            return ""
        content = content.lower()
        content = re.sub(r'[^\w\s-]', ' ', content)
        return re.sub(r'\s+', ' ', content).strip()

    def _path_tokens(self, url: str) -> List[str]:
        path = unquote(urlparse(url).path).lower()
        return [token for token in re.split(r'[/_.]+', path) if token]

    def classify_url(self, url: str) -> Optional[PageCategory]:
        """Return the first category whose hint matches a URL path segment"""
        tokens = self._path_tokens(url)
        if not tokens:
            return None

        for category, hints in self.url_hints:
            for token in tokens:
                if token in hints or any(token.startswith(f"{hint}-") for hint in hints):
                    return category
        return None

    def _calculate_keyword_matches(self, content: str, keywords: List[str]) -> Dict[str, int]:
        matches = {}
        for keyword in keywords:
            pattern = r'\b' + re.escape(keyword) + r'\w*'
            match_count = len(re.findall(pattern, content))
            if match_count > 0:
                matches[keyword] = match_count
        return matches

    def calculate_relevance_score(self, content: str, keywords: List[str]) -> float:
        """
        Calculate relevance score for a keyword list.

        Args:
            content: Preprocessed content text
            keywords: Keywords for the category

        Returns:
            Relevance score (0.0 to 1.0)
        """
        if not content or not keywords:
            return 0.0

        matches = self._calculate_keyword_matches(content, keywords)
        if not matches:
            return 0.0

        total_matches = sum(matches.values())
        unique_keywords_matched = len(matches)

        coverage_score = unique_keywords_matched / len(keywords)
        frequency_score = min(total_matches / max(len(content.split()), 1) * 10, 1.0)
        diversity_bonus = min(unique_keywords_matched / 5, 0.2)

        return min(coverage_score * 0.5 + frequency_score * 0.4 + diversity_bonus, 1.0)

    def classify(self, url: str, text: str, title: str = "") -> ClassificationResult:
        """
        Classify a page.

        Args:
            url: Page URL
            text: Main text of the page
            title: Page title, scored together with the text

        Returns:
            ClassificationResult
        """
        url_category = self.classify_url(url)
        if url_category is not None:
            return ClassificationResult(
                category=url_category,
                scores={url_category.value: 1.0},
                confidence=1.0,
                matched_by='url'
            )

        processed = self._preprocess_content(f"{title} {text}")
        scores = {
            category: self.calculate_relevance_score(processed, keywords)
            for category, keywords in self.category_keywords.items()
        }

        best_category, best_score = None, 0.0
        for category, score in scores.items():
            if score > best_score:
                best_category, best_score = category, score

        if best_category is None or best_score < self.min_confidence_threshold:
            self.logger.debug(f"No category met threshold for {url}, using general")
            return ClassificationResult(
                category=PageCategory.GENERAL,
                scores=scores,
                confidence=0.0,
                matched_by='default'
            )

        self.logger.debug(f"Classified {url} as {best_category} ({best_score:.3f})")
        return ClassificationResult(
            category=PageCategory(best_category),
            scores=scores,
            confidence=best_score,
            matched_by='keywords'
        )
