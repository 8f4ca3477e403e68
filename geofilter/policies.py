"""Whitelist/blacklist country policy evaluation."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from .countries import UNKNOWN, is_country_code


class FilterMode(enum.Enum):
    WHITELIST = "whitelist"
    BLACKLIST = "blacklist"

    @classmethod
    def parse(cls, value: str) -> "FilterMode":
        try:
            return cls(value.strip().lower())
        except (AttributeError, ValueError) as exc:
            raise ValueError(
                f"Invalid GeoIP mode: {value}. Valid modes are: whitelist, blacklist"
            ) from exc

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True, slots=True)
class Verdict:
    """Outcome of a decision.

    ``country`` is the resolved country (or ``UNKNOWN``). For blocked
    verdicts it is also the reason for the block.
    """

    allowed: bool
    country: str = UNKNOWN

    @classmethod
    def allow(cls, country: str = UNKNOWN) -> "Verdict":
        return cls(allowed=True, country=country)

    @classmethod
    def block(cls, country: str) -> "Verdict":
        return cls(allowed=False, country=country)

    @property
    def blocked(self) -> bool:
        return not self.allowed


@dataclass(frozen=True, slots=True)
class FilterPolicy:
    mode: FilterMode
    countries: FrozenSet[str] = field(default_factory=frozenset)
    allow_unknown: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.mode, FilterMode):
            raise ValueError(f"mode must be a FilterMode, got {self.mode!r}")
        codes = frozenset(self.countries)
        for code in codes:
            if not isinstance(code, str) or not is_country_code(code):
                raise ValueError(f"Policy contains malformed country code: {code!r}")
        object.__setattr__(self, "countries", codes)

    @classmethod
    def create(cls, mode: FilterMode | str, countries: Iterable[str], allow_unknown: bool = False) -> "FilterPolicy":
        if isinstance(mode, str):
            mode = FilterMode.parse(mode)
        return cls(mode=mode, countries=frozenset(countries), allow_unknown=allow_unknown)

    def evaluate(self, country: str) -> Verdict:
        if country == UNKNOWN:
            return Verdict.allow(UNKNOWN) if self.allow_unknown else Verdict.block(UNKNOWN)
        listed = country in self.countries
        if self.mode is FilterMode.WHITELIST:
            return Verdict.allow(country) if listed else Verdict.block(country)
        return Verdict.block(country) if listed else Verdict.allow(country)


__all__ = ["FilterMode", "FilterPolicy", "Verdict"]
