"""
Dose Parsing

Reads dose strings such as "100 mg", "100mg", "0.1 g", "1,000 mg" or
"2 milligrams/kg" into comparable quantities. A comma followed by groups of
three digits separates thousands; any other comma is a decimal comma. Mass
units are brought to milligrams so that equivalent doses written in
different units compare equal.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

_DOSE = re.compile(
    r"(?<!\d)(?<!\d[.,])"
    r"(?:(?P<grouped>\d{1,3}(?:,\d{3})+(?:\.\d+)?)|(?P<value>\d+(?:[.,]\d+)?))\s*"
    r"(?P<unit>[a-zµμ]+(?:\s*/\s*(?:kg|m2|m²))?)",
    re.IGNORECASE,
)

UNIT_SYNONYMS = {
    "mg": "mg",
    "milligram": "mg",
    "milligrams": "mg",
    "g": "g",
    "gram": "g",
    "grams": "g",
    "mcg": "mcg",
    "ug": "mcg",
    "µg": "mcg",
    "μg": "mcg",
    "microgram": "mcg",
    "micrograms": "mcg",
    "ml": "ml",
    "milliliter": "ml",
    "milliliters": "ml",
    "iu": "iu",
    "unit": "iu",
    "units": "iu",
}

# Factor to milligrams
MASS_FACTORS = {"g": Decimal(1000), "mg": Decimal(1), "mcg": Decimal("0.001")}


@dataclass(frozen=True)
class DoseQuantity:
    """A dose reduced to a value in a canonical unit."""

    value: Decimal
    unit: str
    per: str | None = None  # "kg" or "m2" for weight/BSA based dosing

    def __str__(self) -> str:
        text = f"{format(self.value.normalize(), 'f')} {self.unit}"
        return f"{text}/{self.per}" if self.per else text


def _split_unit(raw_unit: str) -> tuple[str, str | None]:
    unit, _, per = raw_unit.lower().replace(" ", "").partition("/")
    per = per.replace("²", "2") or None
    return unit, per


def parse_dose(text: str | None) -> DoseQuantity | None:
    """
    Parse the first dose quantity in ``text``.

    Returns None for non-quantities ("placebo", "as tolerated") and for
    unknown units.
    """
    if not text:
        return None
    for match in _DOSE.finditer(text):
        raw_unit, per = _split_unit(match.group("unit"))
        unit = UNIT_SYNONYMS.get(raw_unit)
        if unit is None:
            continue
        try:
            if match.group("grouped"):
                value = Decimal(match.group("grouped").replace(",", ""))
            else:
                # A lone comma is a decimal comma ("2,5 mg")
                value = Decimal(match.group("value").replace(",", "."))
        except InvalidOperation:
            continue
        if unit in MASS_FACTORS:
            value, unit = value * MASS_FACTORS[unit], "mg"
        return DoseQuantity(value=value.normalize(), unit=unit, per=per)
    return None
