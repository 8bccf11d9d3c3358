"""
Restaurant Record Models

Dataclasses for the normalized restaurant record and the knowledge items
generated from it. ``to_dict`` produces the JSON documents written to disk.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']
CLOSED = "closed"


@dataclass
class Price:
    """Normalized price"""
    amount: float
    currency: str = "SEK"
    approximate: bool = False


@dataclass
class MenuItem:
    """Normalized menu entry"""
    title: str
    description: Optional[str] = None
    category: str = "allmän"
    price: Optional[Price] = None
    allergens: List[str] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)


@dataclass
class BookingRules:
    """Table booking rules"""
    min_guests: int = 1
    max_guests: int = 8
    lead_time_minutes: int = 120
    dining_duration_minutes: int = 120
    group_overflow_rule: str = "manual"
    cancellation_policy: str = "Avbokning senast 2 timmar före bokad tid"


@dataclass
class SpecialHours:
    """Deviation from the regular week, e.g. a holiday"""
    date: str
    hours: str
    reason: str = ""


@dataclass
class Message:
    """Time-limited announcement such as an offer or the daily special"""
    id: str
    type: str
    title: str
    content: str
    valid_from: Optional[str] = None
    valid_to: Optional[str] = None
    priority: str = "normal"


@dataclass
class RestaurantInfo:
    """Validated restaurant record for one location"""
    slug: str
    name: str
    address: Optional[str]
    city: Optional[str]
    phone: Optional[str]
    website: str
    timezone: str
    hours: Dict[str, str]
    brand: Optional[str] = None
    email: Optional[str] = None
    source_urls: List[str] = field(default_factory=list)
    special_hours: List[SpecialHours] = field(default_factory=list)
    menu: List[MenuItem] = field(default_factory=list)
    booking: BookingRules = field(default_factory=BookingRules)
    messages: List[Message] = field(default_factory=list)
    updated_at: str = ""
    data_quality: str = "verified"
    is_chain: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class KnowledgeItem:
    """One question/answer pair for the voice assistant"""
    id: str
    question: str
    answer: str
    source_tag: str
    tags: List[str] = field(default_factory=list)
    location: str = ""
    priority: str = "high"
    type: str = "qa"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KnowledgeItem':
        missing = [key for key in ('id', 'question', 'answer') if not data.get(key)]
        if missing:
            raise ValueError(f"Knowledge item missing required fields: {', '.join(missing)}")
        tags = data.get('tags') or []
        if not isinstance(tags, list):
            raise ValueError(f"tags must be a list, got {type(tags).__name__}")
        return cls(
            id=str(data['id']),
            question=str(data['question']),
            answer=str(data['answer']),
            source_tag=str(data.get('source_tag', '')),
            tags=[str(tag) for tag in tags],
            location=str(data.get('location', '')),
            priority=str(data.get('priority', 'high')),
            type=str(data.get('type', 'qa')),
        )
