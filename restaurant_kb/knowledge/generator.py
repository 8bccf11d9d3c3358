"""
Knowledge Generator

Generates Swedish question/answer items for the voice assistant from a
validated RestaurantInfo. Output is deterministic: the same record always
yields the same items in the same order.
"""

import logging
from typing import Dict, List, Optional, Tuple

from restaurant_kb.core.models import CLOSED, KnowledgeItem, RestaurantInfo
from restaurant_kb.utils.text import slugify


SWEDISH_DAY_NAMES = {
    'monday': 'måndag',
    'tuesday': 'tisdag',
    'wednesday': 'onsdag',
    'thursday': 'torsdag',
    'friday': 'fredag',
    'saturday': 'lördag',
    'sunday': 'söndag',
}
WEEKDAY_KEYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday']
WEEKEND_KEYS = ['saturday', 'sunday']

# (allergen, question, free-from label)
TRACKED_ALLERGENS = [
    ('gluten', 'Har ni glutenfritt?', 'glutenfri'),
    ('laktos', 'Har ni laktosfritt?', 'laktosfri'),
    ('nötter', 'Har ni rätter utan nötter?', 'nötfri'),
]

SERVICE_ANSWERS = [
    (
        'Vilka betalningsmetoder tar ni emot?',
        'Vi tar emot kontanter, kort och Swish. Alla vanliga betalmetoder fungerar bra.',
        ['betalning', 'swish', 'kort', 'kontanter'],
    ),
    (
        'Är ni barnvänliga?',
        'Absolut! Vi välkomnar barn och familjer. Vi har barnstolar och kan anpassa mat för de minsta.',
        ['barn', 'familj', 'barnvänlig'],
    ),
    (
        'Har ni wifi?',
        'Ja, vi erbjuder fri wifi till våra gäster. Fråga personalen om lösenordet när du kommer!',
        ['wifi', 'internet'],
    ),
    (
        'Kan jag beställa takeaway?',
        'Ring oss och fråga vad som är möjligt för den rätt du vill ha! Vi hjälper dig gärna.',
        ['takeaway', 'avhämtning'],
    ),
]

MAX_ID_SLUG_LENGTH = 60


def knowledge_id(prefix: str, question: str) -> str:
    """Stable item id, e.g. ('hours', 'Har ni öppet på helger?') -> 'hours-har-ni-oppet-pa-helger'"""
    return f"{prefix}-{slugify(question, max_length=MAX_ID_SLUG_LENGTH)}"


def _format_amount(amount: float) -> str:
    return f"{amount:g}"


class KnowledgeGenerator:
    """
    Builds the knowledge base for one restaurant location.

    Categories, in output order: hours, menu, booking, contact, service,
    promotions. Every category has a fallback answer when the record lacks
    the data for a specific one.
    """

    def __init__(self, large_group_threshold: int = 8):
        self.large_group_threshold = large_group_threshold
        self.logger = logging.getLogger(__name__)

    def generate(self, info: RestaurantInfo, location: Optional[str] = None) -> List[KnowledgeItem]:
        """
        Generate knowledge items.

        Args:
            info: Validated restaurant record
            location: Location label stamped on every item, defaults to the slug

        Returns:
            List of KnowledgeItem with unique ids
        """
        location = location or info.slug
        entries: List[Tuple[str, str, str, str, List[str]]] = []
        entries.extend(self._hours(info))
        entries.extend(self._menu(info))
        entries.extend(self._booking(info))
        entries.extend(self._contact(info))
        entries.extend(self._service())
        entries.extend(self._promotions(info))

        items: List[KnowledgeItem] = []
        seen = set()
        for prefix, question, answer, source_tag, tags in entries:
            item_id = knowledge_id(prefix, question)
            if item_id in seen:
                self.logger.debug(f"Dropping duplicate knowledge item {item_id}")
                continue
            seen.add(item_id)
            items.append(KnowledgeItem(
                id=item_id,
                question=question,
                answer=answer,
                source_tag=source_tag,
                tags=tags,
                location=location,
            ))

        self.logger.debug(f"Generated {len(items)} knowledge items for {location}")
        return items

    def _call_us(self, info: RestaurantInfo) -> str:
        if info.phone:
            return f"ring oss på {info.phone}"
        if info.website:
            return f"besök {info.website}"
        return "kontakta oss"

    def _hours(self, info: RestaurantInfo):
        entries = []
        weekday = [
            f"{SWEDISH_DAY_NAMES[day]} {info.hours[day]}"
            for day in WEEKDAY_KEYS
            if info.hours.get(day, CLOSED) != CLOSED
        ]

        if weekday:
            entries.append((
                'hours', 'Vilka öppettider har ni?',
                f"Vi har öppet {', '.join(weekday)}.",
                'hours_data', ['öppettider', 'tider', 'vardag'],
            ))
        else:
            entries.append((
                'hours', 'Vilka öppettider har ni?',
                f"Våra öppettider varierar, {self._call_us(info)} för aktuell information.",
                'fallback', ['öppettider', 'tider'],
            ))

        weekend = [
            f"{SWEDISH_DAY_NAMES[day]} {'stängt' if info.hours.get(day, CLOSED) == CLOSED else info.hours[day]}"
            for day in WEEKEND_KEYS
        ]
        entries.append((
            'hours', 'Har ni öppet på helger?',
            f"På helger: {', '.join(weekend)}.",
            'hours_data', ['öppettider', 'helg', 'lördag', 'söndag'],
        ))

        if info.special_hours:
            deviations = ", ".join(
                f"{entry.date} {'stängt' if entry.hours == CLOSED else entry.hours}"
                + (f" ({entry.reason})" if entry.reason else "")
                for entry in info.special_hours
            )
            entries.append((
                'hours', 'Har ni avvikande öppettider?',
                f"Ja, följande dagar avviker: {deviations}.",
                'special_hours', ['öppettider', 'avvikande', 'helgdag'],
            ))

        return entries

    def _menu(self, info: RestaurantInfo):
        if not info.menu:
            return [(
                'menu', 'Vad serverar ni för mat?',
                f"Vi serverar god mat tillagad med kärlek. Fråga gärna personalen eller {self._call_us(info)} för aktuell meny!",
                'fallback', ['meny', 'mat'],
            )]

        entries = []
        categories: List[str] = []
        for item in info.menu:
            if item.category not in categories:
                categories.append(item.category)
        examples = ", ".join(item.title for item in info.menu[:3])
        entries.append((
            'menu', 'Vad serverar ni för mat?',
            f"Vår meny har {', '.join(categories)}, till exempel {examples}.",
            'menu_analysis', ['meny', 'mat', 'kategorier'],
        ))

        prices = [item.price for item in info.menu if item.price is not None]
        if prices:
            low = min(price.amount for price in prices)
            high = max(price.amount for price in prices)
            currency = 'kr' if prices[0].currency == 'SEK' else prices[0].currency
            if low == high:
                answer = f"Våra rätter kostar {_format_amount(low)} {currency}."
            else:
                answer = f"Våra priser ligger mellan {_format_amount(low)} {currency} och {_format_amount(high)} {currency}."
            entries.append((
                'price', 'Vad kostar era rätter?', answer,
                'menu_analysis', ['pris', 'kostnad', 'meny'],
            ))

        allergens = {allergen for item in info.menu for allergen in item.allergens}
        labels = {label for item in info.menu for label in item.labels}
        for allergen, question, free_label in TRACKED_ALLERGENS:
            if free_label in labels:
                answer = f"Ja, vi har {free_label}a alternativ på menyn. Säg till personalen när du beställer!"
                source_tag = 'menu_analysis'
            elif allergen in allergens:
                answer = (
                    f"Flera av våra rätter innehåller {allergen}, men vi kan anpassa många av dem. "
                    f"Säg alltid till om allergi så hjälper vi dig!"
                )
                source_tag = 'menu_analysis'
            else:
                answer = f"Vi märker vår meny så gott det går. Fråga alltid personalen om alternativ utan {allergen}!"
                source_tag = 'policy'
            entries.append(('allergen', question, answer, source_tag, ['allergi', allergen]))

        vegetarian = [item.title for item in info.menu if {'vegetarisk', 'vegansk'} & set(item.labels)]
        if vegetarian:
            answer = f"Ja, till exempel {', '.join(vegetarian[:3])}. Fråga personalen för dagens utbud!"
            source_tag = 'menu_analysis'
        else:
            answer = "Vi strävar efter att erbjuda vegetariska alternativ. Fråga personalen vad vi kan erbjuda idag!"
            source_tag = 'policy'
        entries.append((
            'dietary', 'Har ni vegetariska alternativ?', answer,
            source_tag, ['vegetariskt', 'veganskt', 'mat'],
        ))

        return entries

    def _booking(self, info: RestaurantInfo):
        booking = info.booking
        entries = [(
            'booking', 'Kan jag boka bord?',
            f"Absolut! {self._call_us(info).capitalize()} så hjälper vi dig hitta en ledig tid. "
            f"Vi tar bokningar för {booking.min_guests} till {booking.max_guests} personer.",
            'booking_policy', ['bokning', 'reservation'],
        ), (
            'booking', 'Kan jag avboka mitt bord?',
            booking.cancellation_policy,
            'booking_policy', ['avbokning', 'policy'],
        )]

        if booking.max_guests > self.large_group_threshold:
            answer = (
                f"Ja, vi tar gärna emot sällskap upp till {booking.max_guests} personer. "
                f"Hör av dig i förväg så ordnar vi plats!"
            )
        else:
            answer = (
                f"Vi bokar upp till {booking.max_guests} personer direkt. För större sällskap, "
                f"{self._call_us(info)} så ordnar vi plats och eventuellt en specialmeny!"
            )
        entries.append((
            'booking', 'Kan ni ta emot större sällskap?', answer,
            'booking_policy', ['grupp', 'sällskap', 'bokning'],
        ))
        return entries

    def _contact(self, info: RestaurantInfo):
        entries = []
        if info.phone:
            entries.append((
                'contact', 'Vad är ert telefonnummer?',
                f"Du når oss på {info.phone}.",
                'contact_data', ['telefon', 'kontakt'],
            ))
        if info.address:
            place = info.address if not info.city or info.city in info.address else f"{info.address}, {info.city}"
            entries.append((
                'contact', 'Var ligger ni?',
                f"Vi finns på {place}.",
                'contact_data', ['adress', 'plats', 'hitta'],
            ))
            entries.append((
                'contact', 'Finns det parkering?',
                "Det finns parkeringsmöjligheter i närheten. Kontakta oss för mer information om parkering.",
                'general_info', ['parkering', 'bil'],
            ))
        if info.email:
            entries.append((
                'contact', 'Vad är er e-postadress?',
                f"Du kan maila oss på {info.email}.",
                'contact_data', ['e-post', 'kontakt'],
            ))
        if not entries:
            entries.append((
                'contact', 'Hur kontaktar jag er?',
                f"Besök {info.website} för kontaktuppgifter." if info.website else "Fråga personalen på plats.",
                'fallback', ['kontakt'],
            ))
        return entries

    def _service(self):
        return [
            ('service', question, answer, 'general_policy', tags)
            for question, answer, tags in SERVICE_ANSWERS
        ]

    def _promotions(self, info: RestaurantInfo):
        grouped: Dict[str, List[str]] = {'promotion': [], 'daily': []}
        for message in info.messages:
            text = f"{message.title}: {message.content}" if message.content != message.title else message.title
            if message.valid_to:
                text += f" (gäller till {message.valid_to[:10]})"
            if message.type in ('promotion', 'special_offer'):
                grouped['promotion'].append(text)
            elif message.type == 'daily_special':
                grouped['daily'].append(text)

        entries = []
        if grouped['promotion']:
            entries.append((
                'promotion', 'Har ni några erbjudanden just nu?',
                " ".join(f"{text}." if not text.endswith('.') else text for text in grouped['promotion']),
                'current_promotions', ['erbjudande', 'kampanj'],
            ))
        else:
            entries.append((
                'promotion', 'Har ni några erbjudanden just nu?',
                "Vi har inga särskilda erbjudanden just nu. Håll utkik på vår hemsida!",
                'fallback', ['erbjudande', 'kampanj'],
            ))
        if grouped['daily']:
            entries.append((
                'daily', 'Vad är dagens rätt?',
                " ".join(f"{text}." if not text.endswith('.') else text for text in grouped['daily']),
                'daily_menu', ['dagens', 'lunch'],
            ))
        return entries
