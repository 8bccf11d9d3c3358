"""
Record Validation

Checks a built RestaurantInfo against the record schema. Problems are logged
to the report; only missing required fields block emission.
"""

import re
from dataclasses import dataclass, field
from typing import List

from restaurant_kb.core.base import ValidationError
from restaurant_kb.core.models import CLOSED, WEEKDAYS, RestaurantInfo
from restaurant_kb.normalization.fields import E164_PATTERN
from restaurant_kb.normalization.report import NormalizationReport


HOURS_VALUE_PATTERN = re.compile(r'^(\d{2}:\d{2})–(\d{2}:\d{2})$')


@dataclass
class ValidationOutcome:
    """Whether the record may be emitted, and why not"""
    emit: bool = True
    blocking: List[str] = field(default_factory=list)


def validate_record(info: RestaurantInfo, is_chain: bool, report: NormalizationReport,
                    strict: bool = False) -> ValidationOutcome:
    """
    Validate a restaurant record.

    Args:
        info: Record built by InfoBuilder
        is_chain: Chain locations only get assumptions for missing phone/address
        report: Report of the current pass
        strict: Raise ValidationError instead of returning a blocked outcome

    Returns:
        ValidationOutcome
    """
    outcome = ValidationOutcome()

    def block(message: str) -> None:
        report.add_error(message)
        outcome.emit = False
        outcome.blocking.append(message)

    if not info.name or not info.name.strip():
        block("Missing required field: name")

    for field_name in ('phone', 'address'):
        if getattr(info, field_name):
            continue
        if is_chain:
            report.add_assumption(f"Chain location without {field_name}, callers are referred to the brand")
        else:
            block(f"Missing required field: {field_name}")

    if info.phone and not E164_PATTERN.match(info.phone):
        block(f"Phone '{info.phone}' is not in E.164 format")

    if list(info.hours.keys()) != WEEKDAYS:
        block(f"Opening hours must list exactly {', '.join(WEEKDAYS)}")
    else:
        for day, value in info.hours.items():
            if value == CLOSED:
                continue
            match = HOURS_VALUE_PATTERN.match(value)
            if not match or match.group(1) >= match.group(2):
                block(f"Invalid opening hours for {day}: '{value}'")

    for item in info.menu:
        if item.price is not None and item.price.amount < 0:
            block(f"Negative price for menu item '{item.title}'")

    if not info.menu:
        report.add_assumption("No menu items found, menu questions get generic answers")

    if strict and not outcome.emit:
        raise ValidationError("; ".join(outcome.blocking))

    return outcome
