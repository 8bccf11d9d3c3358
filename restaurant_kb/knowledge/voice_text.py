"""
Voice Assistant Document

Renders knowledge items as the plain-text document uploaded to the voice
assistant: a header, the Q&A list and operator instructions.
"""

from typing import List, Optional

from restaurant_kb.core.models import KnowledgeItem

RULE = "─" * 72

PRIORITY_ORDER = {'high': 0, 'medium': 1, 'low': 2}

INSTRUCTIONS = [
    "Var vänlig och professionell",
    "Använd informationen ovan som källa",
    "Om du inte hittar svaret, erbjud att koppla till personal",
    "Vid bokning, fråga alltid: datum, tid och antal gäster",
    "Vid allergifrågor, rekommendera alltid att prata med personalen",
]


def render_voice_text(items: List[KnowledgeItem], restaurant_name: str,
                      location: Optional[str] = None, updated_at: str = "") -> str:
    """
    Render the voice assistant document.

    Args:
        items: Knowledge items of one location
        restaurant_name: Name shown in the header
        location: City or location label shown in the header
        updated_at: Timestamp of the record the items were generated from

    Returns:
        Document text
    """
    title = restaurant_name.upper()
    if location:
        title += f" - {location.upper()}"

    lines = [
        RULE,
        title,
        "VOICE AI KUNSKAPSBAS",
        RULE,
        "",
    ]
    if updated_at:
        lines += [f"Uppdaterad: {updated_at}", ""]

    qa_items = [item for item in items if item.type == 'qa']
    if qa_items:
        lines += ["=== VANLIGA FRÅGOR OCH SVAR ===", ""]
        # Stable sort keeps generation order within a priority
        for item in sorted(qa_items, key=lambda i: PRIORITY_ORDER.get(i.priority, len(PRIORITY_ORDER))):
            lines.append(f"FRÅGA: {item.question}")
            lines.append(f"SVAR: {item.answer}")
            if item.tags:
                lines.append(f"Nyckelord: {', '.join(item.tags)}")
            lines.append("")

    lines += [RULE, "", "=== INSTRUKTIONER FÖR VOICE AI ===", "", "När du svarar på kundfrågor:"]
    lines += [f"{number}. {text}" for number, text in enumerate(INSTRUCTIONS, 1)]
    lines += ["", RULE]

    return "\n".join(lines) + "\n"
