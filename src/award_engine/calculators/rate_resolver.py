"""Effective-dated pay rate resolution."""

from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Iterable
from dataclasses import replace
from datetime import date

from award_engine.calculators.types import PayRate, RateType
from award_engine.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class RateNotFoundError(ConfigurationError):
    """Raised when no rate version covers the requested date."""

    code = "RATE_NOT_FOUND"

    def __init__(
        self,
        classification_id: str,
        rate_type: RateType,
        as_of_date: date,
    ):
        self.classification_id = classification_id
        self.rate_type = rate_type
        self.as_of_date = as_of_date
        super().__init__(
            f"No {rate_type.value} pay rate found for classification "
            f"{classification_id} on {as_of_date}",
            classification_id=classification_id,
            rate_type=rate_type.value,
            as_of_date=as_of_date.isoformat(),
        )


class RateRepository:
    """Append-only interval lists of rate versions, keyed by classification.

    Invariants per (classification_id, rate_type):
    - versions are sorted by effective_from and never overlap
    - at most one version is open-ended (effective_to is None), and it is last

    Lookups binary-search the sorted start dates.
    """

    def __init__(self, rates: Iterable[PayRate] = ()):
        self._versions: dict[tuple[str, RateType], list[PayRate]] = {}
        self._starts: dict[tuple[str, RateType], list[date]] = {}
        for rate in sorted(rates, key=lambda r: r.effective_from):
            self._insert(rate)

    def append(self, rate: PayRate) -> PayRate | None:
        """Append a new version, closing the current open-ended one.

        Returns the superseded version (with its new effective_to), if any.
        """
        key = (rate.classification_id, rate.rate_type)
        versions = self._versions.get(key, [])
        superseded = None
        if versions and versions[-1].effective_to is None:
            current = versions[-1]
            if rate.effective_from <= current.effective_from:
                raise ConfigurationError(
                    f"Rate version {rate.version or rate.effective_from} for "
                    f"{rate.classification_id} does not start after current version",
                    classification_id=rate.classification_id,
                    effective_from=rate.effective_from.isoformat(),
                )
            superseded = replace(current, effective_to=rate.effective_from)
            # Nothing is modified until the new version is known to fit
            self._check_follows(rate, superseded)
            versions[-1] = superseded
        self._insert(rate)
        return superseded

    def _insert(self, rate: PayRate) -> None:
        key = (rate.classification_id, rate.rate_type)
        versions = self._versions.get(key)
        self._check_follows(rate, versions[-1] if versions else None)

        self._versions.setdefault(key, []).append(rate)
        self._starts.setdefault(key, []).append(rate.effective_from)

    @staticmethod
    def _check_follows(rate: PayRate, last: PayRate | None) -> None:
        """Raise unless ``rate`` is a valid interval starting after ``last``."""
        if rate.effective_to is not None and rate.effective_to <= rate.effective_from:
            raise ConfigurationError(
                f"Rate for {rate.classification_id} ends before it starts",
                classification_id=rate.classification_id,
                effective_from=rate.effective_from.isoformat(),
            )
        if last is not None and (last.effective_to is None or rate.effective_from < last.effective_to):
            raise ConfigurationError(
                f"Overlapping {rate.rate_type.value} rates for classification "
                f"{rate.classification_id} at {rate.effective_from}",
                classification_id=rate.classification_id,
                rate_type=rate.rate_type.value,
                effective_from=rate.effective_from.isoformat(),
            )

    def resolve_rate(
        self,
        classification_id: str,
        rate_type: RateType,
        as_of_date: date,
    ) -> PayRate:
        """Return the version whose interval contains as_of_date.

        Raises:
            RateNotFoundError: If no version covers the date
        """
        key = (classification_id, rate_type)
        starts = self._starts.get(key)
        if not starts:
            raise RateNotFoundError(classification_id, rate_type, as_of_date)

        index = bisect_right(starts, as_of_date) - 1
        if index < 0:
            raise RateNotFoundError(classification_id, rate_type, as_of_date)

        rate = self._versions[key][index]
        if not rate.contains(as_of_date):
            raise RateNotFoundError(classification_id, rate_type, as_of_date)

        logger.debug(
            "Resolved %s rate %s for %s on %s (version %s)",
            rate_type.value,
            rate.hourly_rate,
            classification_id,
            as_of_date,
            rate.version,
        )
        return rate

    def history(self, classification_id: str, rate_type: RateType) -> list[PayRate]:
        """All versions for a classification, oldest first."""
        return list(self._versions.get((classification_id, rate_type), []))

    def validate_current(self) -> None:
        """Check every rate history ends in exactly one current version."""
        for (classification_id, rate_type), versions in self._versions.items():
            if versions[-1].effective_to is not None:
                raise ConfigurationError(
                    f"No current {rate_type.value} rate for classification {classification_id}",
                    classification_id=classification_id,
                    rate_type=rate_type.value,
                )

    def __iter__(self):
        for versions in self._versions.values():
            yield from versions
