from dataclasses import dataclass
from functools import cached_property, lru_cache
from typing import Iterable, List, Sequence, Tuple

import pathspec
from sanic.log import logger


GHOST = "@ghost"
SIGIL = "@"


@lru_cache(maxsize=1024)
def _compile(pattern: str) -> pathspec.GitIgnoreSpec:
    return pathspec.GitIgnoreSpec.from_lines([pattern])


def pattern_matches(pattern: str, path: str) -> bool:
    """
    Check whether ``path`` would be ignored by a gitignore file containing only
    ``pattern``. CODEOWNERS patterns follow the same rules.
    """
    return _compile(pattern).match_file(path)


@dataclass(frozen=True)
class OwnershipRule:
    pattern: str
    owners: Tuple[str, ...] = ()

    @cached_property
    def spec(self) -> pathspec.GitIgnoreSpec:
        return _compile(self.pattern)

    def matches(self, path: str) -> bool:
        return self.spec.match_file(path)


def parse_codeowners(content: str) -> List[OwnershipRule]:
    rules: List[OwnershipRule] = []
    for line in content.split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        pattern, *owners = line.split()
        rules.append(OwnershipRule(pattern=pattern, owners=tuple(owners)))
    return rules


def strip_sigil(token: str) -> str:
    if token.startswith(SIGIL):
        return token[len(SIGIL) :]
    return token


def get_file_owners(rules: Sequence[OwnershipRule], path: str) -> List[str]:
    """
    Owner tokens of the rule owning ``path``, with the ``@`` removed. Team
    tokens (``org/team``) are returned as is.

    CODEOWNERS is last-one-wins: the rules are checked in reverse and the
    first one whose pattern matches decides. A file nobody matches has no
    owners, and ``@ghost`` disavows ownership.
    """
    for rule in reversed(rules):
        if not rule.matches(path):
            continue
        logger.debug("%s matched by '%s'", path, rule.pattern)
        if len(rule.owners) > 0 and rule.owners[0] == GHOST:
            return []
        return [strip_sigil(owner) for owner in rule.owners]
    return []


def is_team(owner: str) -> bool:
    return "/" in owner


def team_tokens(owners: Iterable[str]) -> List[str]:
    return [owner for owner in owners if is_team(owner)]
