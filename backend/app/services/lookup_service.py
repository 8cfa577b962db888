from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Sequence

from app.core.config import Settings
from app.core.logging import get_logger
from app.domain.address import AddressNormalizer, ParsedAddress
from app.domain.establishment import (
    EstablishmentColumns,
    EstablishmentRecord,
    build_search_query,
    build_street_query,
    merge_parsed_address,
)
from app.schemas.jobs import LookupStatus
from app.services.search import SearchClient
from app.services.tabular import read_header, read_records, write_records


FetchCallable = Callable[[str], Awaitable[str]]
NormalizeCallable = Callable[[str], ParsedAddress]
SleepCallable = Callable[[float], Awaitable[None]]


_logger = get_logger(__name__)


@dataclass(slots=True)
class LookupOutcome:
    index: int
    query: str
    raw_text: str
    parsed: ParsedAddress
    record: EstablishmentRecord
    status: LookupStatus


ProgressCallable = Callable[[LookupOutcome], Awaitable[None]]


def columns_from_settings(settings: Settings) -> EstablishmentColumns:
    return EstablishmentColumns(
        name=settings.name_column,
        street=settings.street_column,
        postal_code=settings.postal_code_column,
        city=settings.city_column,
    )


def output_fieldnames(
    header: Sequence[str], columns: EstablishmentColumns
) -> list[str]:
    """Input columns followed by any address column the input lacks."""

    extra = (columns.street, columns.postal_code, columns.city)
    return list(dict.fromkeys([*header, *extra]))


class LookupService:
    """Looks up, parses and merges addresses for establishment records."""

    def __init__(
        self,
        settings: Settings,
        *,
        fetcher: FetchCallable,
        normalizer: NormalizeCallable | None = None,
        sleeper: SleepCallable = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._columns = columns_from_settings(settings)
        self._delay_range = (settings.delay_min, settings.delay_max)
        self._fetcher = fetcher
        self._normalizer = (
            normalizer
            or AddressNormalizer(advanced=settings.advanced_parsing).normalize
        )
        self._sleeper = sleeper
        self._rng = rng or random.Random()

    @property
    def columns(self) -> EstablishmentColumns:
        return self._columns

    async def lookup(
        self, record: Mapping[str, str], index: int = 0
    ) -> LookupOutcome:
        query = build_search_query(record, self._columns)
        try:
            raw_text = await self._fetcher(query)
            parsed = self._normalizer(raw_text) if raw_text else ParsedAddress()

            follow_up = build_street_query(record, self._columns)
            if not parsed.postal_code and follow_up and follow_up != query:
                _logger.info(
                    "Retrying with street-only query",
                    index=index,
                    query=follow_up,
                )
                await self._pause()
                follow_raw = await self._fetcher(follow_up)
                follow_parsed = (
                    self._normalizer(follow_raw) if follow_raw else ParsedAddress()
                )
                if follow_parsed.postal_code or (follow_raw and not raw_text):
                    query, raw_text, parsed = follow_up, follow_raw, follow_parsed
        except Exception as exc:  # pylint: disable=broad-except
            _logger.error(
                "Lookup failed",
                index=index,
                query=query,
                error=str(exc),
                exc_info=True,
            )
            return LookupOutcome(
                index=index,
                query=query,
                raw_text="",
                parsed=ParsedAddress(),
                record=merge_parsed_address(record, ParsedAddress(), self._columns),
                status="error",
            )

        if parsed.postal_code:
            status: LookupStatus = "found"
        elif raw_text:
            status = "partial"
        else:
            status = "not_found"

        merged = merge_parsed_address(record, parsed, self._columns)
        _logger.info(
            "Lookup finished",
            index=index,
            status=status,
            street=parsed.street,
            postal_code=parsed.postal_code,
            city=parsed.city,
        )
        return LookupOutcome(
            index=index,
            query=query,
            raw_text=raw_text,
            parsed=parsed,
            record=merged,
            status=status,
        )

    async def run(
        self,
        records: Sequence[Mapping[str, str]],
        on_progress: ProgressCallable | None = None,
    ) -> list[LookupOutcome]:
        """Process every record in order; none is ever dropped."""

        total = len(records)
        _logger.info("Lookup batch started", total=total)

        outcomes: list[LookupOutcome] = []
        for index, record in enumerate(records):
            _logger.info(
                "Lookup started",
                position=index + 1,
                total=total,
                name=record.get(self._columns.name, ""),
            )
            outcome = await self.lookup(record, index=index)
            outcomes.append(outcome)
            if on_progress is not None:
                await on_progress(outcome)
            if index < total - 1:
                await self._pause()

        found = sum(1 for outcome in outcomes if outcome.status == "found")
        _logger.info("Lookup batch completed", total=total, found=found)
        return outcomes

    async def _pause(self) -> None:
        low, high = self._delay_range
        delay = self._rng.uniform(low, high)
        if delay <= 0:
            return
        _logger.debug("Pausing between lookups", seconds=round(delay, 1))
        await self._sleeper(delay)


async def run_batch(
    settings: Settings, input_path: Path, output_path: Path
) -> list[LookupOutcome]:
    """Read ``input_path``, look up every establishment and write ``output_path``."""

    records = await asyncio.to_thread(read_records, input_path)
    header = await asyncio.to_thread(read_header, input_path)
    async with SearchClient(settings) as client:
        service = LookupService(settings, fetcher=client.fetch_address_text)
        outcomes = await service.run(records)
    await asyncio.to_thread(
        write_records,
        output_path,
        [outcome.record for outcome in outcomes],
        output_fieldnames(header, columns_from_settings(settings)),
    )
    return outcomes
