"""Automatic identity mapping of users, teams and business units."""

import logging
from typing import Any, Callable, Dict, List, Sequence, Tuple

from ..clients.base import BaseRecordClient
from ..exceptions import AutoMappingError
from ..models.record import (
    AutoMappingResult,
    BusinessUnitRecord,
    Confidence,
    TeamRecord,
    UserRecord,
)

logger = logging.getLogger(__name__)

# (key function, confidence, criteria label), tried in order
USER_MATCH_RULES: List[Tuple[Callable[[UserRecord], Any], Confidence, str]] = [
    (lambda u: u.domainname, Confidence.HIGH, "Domain Name"),
    (lambda u: u.internalemailaddress, Confidence.HIGH, "Email Address"),
    (lambda u: u.fullname, Confidence.MEDIUM, "Full Name"),
]

TEAM_MATCH_RULES: List[Tuple[Callable[[TeamRecord], Any], Confidence, str]] = [
    (lambda t: (t.name, t.teamtype) if t.name else None, Confidence.HIGH, "Name & Type"),
]

BUSINESS_UNIT_MATCH_RULES: List[Tuple[Callable[[BusinessUnitRecord], Any], Confidence, str]] = [
    (lambda b: b.name, Confidence.HIGH, "Name"),
]


def _index(records: Sequence[Any], key: Callable[[Any], Any]) -> Dict[Any, Any]:
    """Index records by key, keeping the first record for duplicate keys."""
    index: Dict[Any, Any] = {}
    for record in records:
        value = key(record)
        if value and value not in index:
            index[value] = record
    return index


def _match(
    source_records: Sequence[Any],
    target_records: Sequence[Any],
    rules: List[Tuple[Callable[[Any], Any], Confidence, str]],
    id_of: Callable[[Any], str],
    name_of: Callable[[Any], str]
) -> List[AutoMappingResult]:
    """Run a match cascade; the first rule that matches wins."""
    indexes = [_index(target_records, key) for key, _, _ in rules]
    results = []

    for source in source_records:
        for (key, confidence, criteria), index in zip(rules, indexes):
            value = key(source)
            if not value or value not in index:
                continue
            target = index[value]
            results.append(AutoMappingResult(
                source_id=id_of(source),
                target_id=id_of(target),
                display_name=name_of(source),
                confidence=confidence,
                match_criteria=criteria,
            ))
            break

    return results


def match_users(source: Sequence[UserRecord], target: Sequence[UserRecord]) -> List[AutoMappingResult]:
    """Match users by domain name, then email address, then full name."""
    return _match(source, target, USER_MATCH_RULES, lambda u: u.systemuserid, lambda u: u.fullname)


def match_teams(source: Sequence[TeamRecord], target: Sequence[TeamRecord]) -> List[AutoMappingResult]:
    """Match teams by name and team type together."""
    return _match(source, target, TEAM_MATCH_RULES, lambda t: t.teamid, lambda t: t.name)


def match_business_units(
    source: Sequence[BusinessUnitRecord],
    target: Sequence[BusinessUnitRecord]
) -> List[AutoMappingResult]:
    """Match business units by name."""
    return _match(
        source, target, BUSINESS_UNIT_MATCH_RULES,
        lambda b: b.businessunitid, lambda b: b.name,
    )


class IdentityAutoMapper:
    """
    Matches system entities between a source and a target environment.

    Matching is pure and repeatable: running it again over unchanged data
    yields the same results.
    """

    def __init__(self, source_client: BaseRecordClient, target_client: BaseRecordClient):
        self.source_client = source_client
        self.target_client = target_client

    def map_users(self) -> List[AutoMappingResult]:
        """Auto-map users between environments."""
        return self._run("users", lambda c: c.fetch_users(), match_users)

    def map_teams(self) -> List[AutoMappingResult]:
        """Auto-map teams between environments."""
        return self._run("teams", lambda c: c.fetch_teams(), match_teams)

    def map_business_units(self) -> List[AutoMappingResult]:
        """Auto-map business units between environments."""
        return self._run("business units", lambda c: c.fetch_business_units(), match_business_units)

    def _run(
        self,
        label: str,
        fetch: Callable[[BaseRecordClient], List[Any]],
        match: Callable[[Sequence[Any], Sequence[Any]], List[AutoMappingResult]]
    ) -> List[AutoMappingResult]:
        try:
            source_records = fetch(self.source_client)
            target_records = fetch(self.target_client)
        except Exception as e:
            logger.error(f"Failed to auto-map {label}: {e}")
            raise AutoMappingError(f"Failed to auto-map {label}: {e}") from e

        results = match(source_records, target_records)
        logger.info(f"Auto-mapped {len(results)}/{len(source_records)} {label}")
        return results


def summarize(results: Sequence[AutoMappingResult]) -> Dict[str, int]:
    """Count results per confidence level."""
    counts = {c.value: 0 for c in Confidence}
    for result in results:
        counts[result.confidence.value] += 1
    return counts

