from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from functools import partial
from typing import Callable

from app.core.logging import get_logger


_logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ParsedAddress:
    street: str = ""
    postal_code: str = ""
    city: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.street or self.postal_code or self.city)

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


StrategyCallable = Callable[[str], "ParsedAddress | None"]


@dataclass(frozen=True, slots=True)
class ExtractionStrategy:
    """A named extraction step; ``requires_city`` rejects results without a city."""

    name: str
    extract: StrategyCallable
    requires_city: bool = False


_POSTAL_CODE_PATTERN = re.compile(r"(?<![0-9])[0-9]{5}(?![0-9])")

# Five 2-digit groups, e.g. "01 23 45 67 89" or "01.23.45.67.89"
_PHONE_PATTERN = re.compile(r"(?<![0-9])[0-9]{2}(?:[ .][0-9]{2}){4}(?![0-9])")

_WHITESPACE_PATTERN = re.compile(r"\s+")

_BOILERPLATE_PATTERN = re.compile(
    r"\s[-–]\s|\b(?:"
    r"prendre\s+(?:un\s+)?(?:rdv|rendez-vous)|appeler|itin[ée]raire|site\s+web|"
    r"mentions\s+l[ée]gales|"
    r"comptes?\s+annuels?|chiffre\s+d['’]affaires|informations?\s+financi[èe]res?|"
    r"accessibilit[ée]|horaires|ouvert|ferm[ée]"
    r")\b",
    flags=re.IGNORECASE,
)

_STRICT_PATTERN = re.compile(
    r"^(?P<street>.*?)\s*,?\s*"
    r"(?<![0-9])(?P<postal_code>[0-9]{5})(?![0-9])\s+"
    r"(?P<city>[^\W\d_](?:[^\W\d_]|[\s-])*)\s*(?:\.|$)"
)

_CITY_SEPARATOR_PATTERN = re.compile(r"\.|\s-\s")
_CITY_WORD_PATTERN = re.compile(r"[^\W\d_]+(?:-[^\W\d_]+)*")
_LETTER_RUN_PATTERN = re.compile(r"(?:[^\W\d_]|-)+")

_STREET_PATTERN = re.compile(
    r"^(?P<street>[0-9]+[\s,].*?)[\s,]*(?=(?<![0-9])[0-9]{5}(?![0-9])|$)"
)


def strip_noise(text: str) -> str:
    """Remove phone numbers and trailing boilerplate from scraped address text.

    Boilerplate markers are only honoured after the first postal code so that
    the cut never removes the code itself.
    """

    cleaned = _WHITESPACE_PATTERN.sub(" ", text)
    cleaned = _PHONE_PATTERN.sub(" ", cleaned)
    cleaned = _WHITESPACE_PATTERN.sub(" ", cleaned).strip()

    postal = _POSTAL_CODE_PATTERN.search(cleaned)
    if postal is None:
        return cleaned

    marker = _BOILERPLATE_PATTERN.search(cleaned, postal.end())
    if marker is not None:
        cleaned = cleaned[: marker.start()]
    return cleaned.strip()


def _clean_street(value: str) -> str:
    return value.strip().rstrip(",").strip()


def _build(street: str, postal_code: str, city: str) -> ParsedAddress:
    # Neither street nor city may carry the code itself (e.g. "750012").
    if postal_code:
        if postal_code in street:
            street = _WHITESPACE_PATTERN.sub(" ", street.replace(postal_code, " "))
            street = _clean_street(street)
        if postal_code in city:
            city = _WHITESPACE_PATTERN.sub(" ", city.replace(postal_code, " ")).strip()
    return ParsedAddress(street=street, postal_code=postal_code, city=city)


def _strict_match(text: str, *, first_word_city: bool) -> ParsedAddress | None:
    match = _STRICT_PATTERN.match(text)
    if match is None:
        return None

    first = _POSTAL_CODE_PATTERN.search(text)
    if first is None or first.start() != match.start("postal_code"):
        return None

    city = match.group("city").strip()
    city = _CITY_SEPARATOR_PATTERN.split(city, maxsplit=1)[0].strip()
    if first_word_city:
        word = _CITY_WORD_PATTERN.match(city)
        city = word.group(0) if word else ""

    return _build(
        _clean_street(match.group("street")),
        match.group("postal_code"),
        city,
    )


def _permissive_match(text: str) -> ParsedAddress | None:
    match = _POSTAL_CODE_PATTERN.search(text)
    if match is None:
        return None

    remainder = text[match.end() :].lstrip()
    letters = _LETTER_RUN_PATTERN.match(remainder)
    city = letters.group(0).strip("-") if letters else ""

    return _build(_clean_street(text[: match.start()]), match.group(0), city)


class AddressNormalizer:
    """Turn noisy search-result text into a street / postal code / city triple.

    Strategies run in order and the first result carrying a postal code wins.
    The advanced variant keeps only the first word of a strict-pattern city
    and falls through to the permissive strategy when that city is empty.
    Both strategies anchor on the first postal code, so that fallback always
    yields a result.
    """

    def __init__(self, *, advanced: bool = True) -> None:
        self._strategies: tuple[ExtractionStrategy, ...] = (
            ExtractionStrategy(
                "strict",
                partial(_strict_match, first_word_city=advanced),
                requires_city=advanced,
            ),
            ExtractionStrategy("permissive", _permissive_match),
        )

    @property
    def strategies(self) -> tuple[ExtractionStrategy, ...]:
        return self._strategies

    def normalize(self, raw: object) -> ParsedAddress:
        if not isinstance(raw, str) or not raw.strip():
            return ParsedAddress()

        text = strip_noise(raw)

        for index, strategy in enumerate(self._strategies):
            result = strategy.extract(text)
            if result is None or not result.postal_code:
                continue

            if strategy.requires_city and not result.city:
                _logger.info(
                    "Address strategy yielded no city",
                    strategy=strategy.name,
                    raw_text=raw,
                )
                continue

            if index > 0:
                _logger.info(
                    "Address parsed with fallback strategy",
                    strategy=strategy.name,
                    raw_text=raw,
                )
            return result

        _logger.warning("Address parsing failed", raw_text=raw)
        return ParsedAddress()


_default_normalizer = AddressNormalizer()


def normalize_address(raw: object) -> ParsedAddress:
    """Parse raw address text with the default (advanced) normalizer."""

    return _default_normalizer.normalize(raw)


def extract_street(address: str) -> str:
    """Return the leading "number + street name" part of ``address``.

    The input is returned unchanged when it does not start with a street
    number.
    """

    match = _STREET_PATTERN.match(address.strip())
    if match is None:
        return address
    return _clean_street(match.group("street"))
