"""
Computer Count Service

Aggregates computer counts for every node matching a target name and groups
them by location (the DN element directly above the matched node).

Pipeline for one run:
1. Deduplicate discovered nodes by distinguished name
2. Count computer objects in each node's subtree via the directory client
3. Derive each node's location from its DN
4. Sum per location, sorted by location label

A failed count for one node is logged and recorded as a NodeFailure; it
contributes nothing to the totals and never aborts the remaining nodes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List

import pandas as pd

from ldap.exceptions import NoCountsObtainedError, NoNodesFoundError
from ldap.models import Node

from .location_extractor import extract_location

logger = logging.getLogger(__name__)

COMPUTER_OBJECT_CLASS = "computer"


@dataclass(frozen=True)
class LocatedCount:
    """Computer count for one node, tagged with its location."""
    path: str
    location: str
    count: int


@dataclass(frozen=True)
class LocationSummary:
    """Total computers across all nodes sharing a location."""
    location: str
    total: int


@dataclass(frozen=True)
class NodeFailure:
    """A node whose count query failed."""
    path: str
    error: str


@dataclass
class AggregationResult:
    """Outcome of one aggregation run."""
    target_name: str
    total: int
    summaries: List[LocationSummary] = field(default_factory=list)
    located_counts: List[LocatedCount] = field(default_factory=list)
    failures: List[NodeFailure] = field(default_factory=list)


def deduplicate_nodes(nodes: Iterable[Node]) -> List[Node]:
    """
    Drop nodes whose distinguished name was already seen.

    DNs compare case-insensitively, as the directory does. The first
    occurrence wins and input order is kept.
    """
    unique = {}
    for node in nodes:
        unique.setdefault(node.dedup_key, node)
    return list(unique.values())


def _coerce_count(value: Any) -> int:
    """
    Validate a count returned by the directory client.

    Raises:
        ValueError: If the value is not a non-negative integer
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"count query returned non-integer value {value!r}")
    if value < 0:
        raise ValueError(f"count query returned negative value {value}")
    return int(value)


def summarize_by_location(located_counts: List[LocatedCount]) -> List[LocationSummary]:
    """
    Sum counts per location, ordered by location label ascending.

    Only locations with at least one node appear in the result.
    """
    if not located_counts:
        return []

    df = pd.DataFrame(
        [(lc.location, lc.count) for lc in located_counts],
        columns=["location", "count"],
    )
    totals = df.groupby("location", sort=True)["count"].sum()

    return [
        LocationSummary(location=str(location), total=int(total))
        for location, total in totals.items()
    ]


def aggregate(nodes: Iterable[Node], target_name: str, directory_client) -> AggregationResult:
    """
    Count computers under each matched node and group the counts by location.

    Args:
        nodes: Nodes returned by discovery, possibly with duplicates
        target_name: The node name that was searched for
        directory_client: Object providing count_descendants_of_type(base_dn, object_class)

    Returns:
        AggregationResult: Grand total, per-location summaries, per-node counts and failures

    Raises:
        NoNodesFoundError: If there are no nodes to process
        NoCountsObtainedError: If every node's count query failed
    """
    unique_nodes = deduplicate_nodes(nodes)
    if not unique_nodes:
        raise NoNodesFoundError(f"No nodes named '{target_name}' were found")

    logger.info(f"Counting computers under {len(unique_nodes)} node(s) named '{target_name}'")

    located_counts = []
    failures = []

    for node in unique_nodes:
        path = node.distinguished_name
        try:
            count = _coerce_count(
                directory_client.count_descendants_of_type(path, COMPUTER_OBJECT_CLASS)
            )
        except Exception as e:
            logger.warning(f"⚠️  Failed to count computers under {path}: {e}")
            failures.append(NodeFailure(path=path, error=str(e)))
            continue

        location = extract_location(path, target_name)
        logger.debug(f"{path}: {count} computer(s), location '{location}'")
        located_counts.append(LocatedCount(path=path, location=location, count=count))

    if not located_counts:
        raise NoCountsObtainedError(
            f"Computer counts could not be obtained for any of the "
            f"{len(unique_nodes)} node(s) named '{target_name}'"
        )

    total = sum(lc.count for lc in located_counts)
    summaries = summarize_by_location(located_counts)

    logger.info(
        f"Aggregated {total} computer(s) across {len(summaries)} location(s)"
        + (f", {len(failures)} node(s) failed" if failures else "")
    )

    return AggregationResult(
        target_name=target_name,
        total=total,
        summaries=summaries,
        located_counts=located_counts,
        failures=failures,
    )
