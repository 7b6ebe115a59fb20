"""Batched competitor research."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel

from core.capabilities import AutomationDriver, PageAnalysis
from core.errors import describe_error
from utils import log


class CompetitorTarget(BaseModel):
    name: str
    url: str


class CompetitorRecord(BaseModel):
    """Analysis of one competitor; ``error`` is set instead of data when it failed."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    competitor: str
    url: str
    timestamp: str
    page_data: Optional[Dict[str, Any]] = None
    structure: Optional[Dict[str, Any]] = None
    links: Optional[List[Dict[str, Any]]] = None
    performance: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @computed_field
    @property
    def success(self) -> bool:
        return self.error is None


class ResearchAggregator:
    """Runs the analysis pipeline over each target, one target at a time."""

    def __init__(self, driver: AutomationDriver, analyzer: PageAnalysis, lock: Optional[asyncio.Lock] = None):
        self.driver = driver
        self.analyzer = analyzer
        self.lock = lock or asyncio.Lock()

    async def research(self, targets: List[Union[CompetitorTarget, Dict[str, Any]]]) -> List[CompetitorRecord]:
        """
        Analyze every competitor in input order.

        A failing target yields a record carrying only the failure reason;
        the remaining targets are still processed.

        Args:
            targets: Competitors as ``{name, url}``

        Returns:
            One record per target, in the same order
        """
        competitors = [CompetitorTarget.model_validate(target) for target in targets]
        log.info(f"Starting competitor research for {len(competitors)} competitors")

        records: List[CompetitorRecord] = []
        async with self.lock:
            for competitor in competitors:
                records.append(await self._analyze(competitor))
        return records

    async def _analyze(self, competitor: CompetitorTarget) -> CompetitorRecord:
        timestamp = datetime.now().isoformat()
        try:
            await self.driver.navigate(competitor.url)
            # Read-only snapshots of the page we just loaded. All four settle
            # before the next target navigates.
            snapshots = await asyncio.gather(
                self.driver.extract_page_data(),
                self.analyzer.analyze_structure(),
                self.analyzer.extract_links(),
                self.analyzer.get_performance_metrics(),
                return_exceptions=True,
            )
            for snapshot in snapshots:
                if isinstance(snapshot, Exception):
                    raise snapshot
            page_data, structure, links, performance = snapshots
        except Exception as e:
            reason = describe_error(e)
            log.error(f"  Failed to analyze: {competitor.name} - {reason}")
            return CompetitorRecord(
                competitor=competitor.name,
                url=competitor.url,
                timestamp=timestamp,
                error=reason
            )

        log.info(f"  Analyzed: {competitor.name}")
        return CompetitorRecord(
            competitor=competitor.name,
            url=competitor.url,
            timestamp=timestamp,
            page_data=page_data,
            structure=structure,
            links=links,
            performance=performance
        )
