"""Call-type classification into a display category and a sort priority."""

import re
from dataclasses import dataclass
from enum import StrEnum


class CallCategory(StrEnum):
    VIOLENT = "violent"
    WEAPONS = "weapons"
    PROPERTY = "property"
    TRAFFIC = "traffic"
    DISTURBANCE = "disturbance"
    DRUG = "drug"
    MEDICAL = "medical"
    ADMIN = "admin"
    OTHER = "other"


@dataclass(frozen=True)
class Classification:
    category: CallCategory
    priority: int


# Lower priority = more severe; first matching rule wins
_RULES: list[tuple[re.Pattern[str], Classification]] = [
    (
        re.compile(r"\b(homicide|shoot(?:ing|s)|shots? fired|stabbing|robbery|assault with a deadly weapon)\b", re.I),
        Classification(CallCategory.VIOLENT, 10),
    ),
    (
        re.compile(r"\b(brandishing|gun|weapon|armed|carjacking)\b", re.I),
        Classification(CallCategory.WEAPONS, 20),
    ),
    (
        re.compile(
            r"\b(burglary|residential burglary|commercial burglary|theft|larcen\w*|shoplift\w*|stolen"
            r"|auto theft|vehicle theft)\b",
            re.I,
        ),
        Classification(CallCategory.PROPERTY, 30),
    ),
    (
        re.compile(r"\b(traffic collision|hit ?&? ?run|dui|reckless|speed|non-?injury|injury)\b", re.I),
        Classification(CallCategory.TRAFFIC, 40),
    ),
    (
        re.compile(r"\b(disturbance|battery|domestic|fight|prowler|noise)\b", re.I),
        Classification(CallCategory.DISTURBANCE, 50),
    ),
    (
        re.compile(r"\b(drug|narcotic|controlled substance|possession)\b", re.I),
        Classification(CallCategory.DRUG, 60),
    ),
    (
        re.compile(r"\b(overdose|medical aid|ambulance|unconscious|cpr)\b", re.I),
        Classification(CallCategory.MEDICAL, 70),
    ),
    (
        re.compile(r"\b(vehicle stop|patrol check|information|follow up|admin|welfare check)\b", re.I),
        Classification(CallCategory.ADMIN, 90),
    ),
]

_DEFAULT = Classification(CallCategory.OTHER, 80)


def classify(call_type: str) -> Classification:
    """Classify a free-text call type.

    Args:
        call_type: Call type as published by the feed (e.g. "SHOTS FIRED").

    Returns:
        The category and priority of the first matching rule, else ``other``/80.
    """
    for pattern, classification in _RULES:
        if pattern.search(call_type):
            return classification
    return _DEFAULT
