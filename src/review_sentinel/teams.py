from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, Sequence, Tuple

from sanic.log import logger

from review_sentinel.codeowners import is_team
from review_sentinel.metric import team_lookup_counter


TeamLookup = Callable[[str], Awaitable[Sequence[str]]]


class TeamCache:
    """
    Team members resolved during a single run.

    Every team is looked up at most once. Lookups for different teams may run
    concurrently, each key has its own lock so only one coroutine fills it.
    Failed lookups are not cached.
    """

    def __init__(self, lookup: TeamLookup):
        self._lookup = lookup
        self._members: Dict[str, Tuple[str, ...]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.lookup_count = 0

    def __contains__(self, team: str) -> bool:
        return team in self._members

    async def members(self, team: str) -> Tuple[str, ...]:
        lock = self._locks.setdefault(team, asyncio.Lock())
        async with lock:
            if team not in self._members:
                logger.info("Getting members of %s", team)
                self.lookup_count += 1
                try:
                    members = await self._lookup(team)
                except Exception:
                    team_lookup_counter.labels(result="error").inc()
                    raise
                team_lookup_counter.labels(result="ok").inc()
                self._members[team] = tuple(dict.fromkeys(members))
                logger.debug("%s has %d members", team, len(self._members[team]))
            return self._members[team]

    async def prefetch(self, teams: Iterable[str]) -> None:
        distinct = list(dict.fromkeys(teams))
        if len(distinct) == 0:
            return
        logger.debug("Prefetching %d teams", len(distinct))
        await asyncio.gather(*(self.members(team) for team in distinct))


async def expand_owners(owners: Iterable[str], cache: TeamCache) -> Tuple[str, ...]:
    expanded: Dict[str, None] = {}
    for owner in owners:
        if not is_team(owner):
            logger.debug("%s is not a team, using as is", owner)
            expanded[owner] = None
            continue

        logger.debug("%s is a team, expanding", owner)
        for member in await cache.members(owner):
            expanded[member] = None
    return tuple(expanded)
