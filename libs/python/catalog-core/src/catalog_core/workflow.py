"""Allowed status transitions for governed requests.

Repositories apply transitions as conditional updates guarded on the source
states returned here, so a request can only move along these edges.
"""

from __future__ import annotations

from typing import TypeVar

from catalog_core.enums import AccessRequestStatus, ChangeRequestStatus

S = TypeVar("S", ChangeRequestStatus, AccessRequestStatus)

CHANGE_REQUEST_TRANSITIONS: dict[ChangeRequestStatus, frozenset[ChangeRequestStatus]] = {
    ChangeRequestStatus.PENDING: frozenset(
        {ChangeRequestStatus.APPROVED, ChangeRequestStatus.DENIED, ChangeRequestStatus.MORE_INFO_NEEDED}
    ),
    ChangeRequestStatus.MORE_INFO_NEEDED: frozenset({ChangeRequestStatus.PENDING}),
    ChangeRequestStatus.APPROVED: frozenset(),
    ChangeRequestStatus.DENIED: frozenset(),
}

# A reviewer may still decide while waiting on the requester.
ACCESS_REQUEST_TRANSITIONS: dict[AccessRequestStatus, frozenset[AccessRequestStatus]] = {
    AccessRequestStatus.PENDING: frozenset(
        {AccessRequestStatus.APPROVED, AccessRequestStatus.DENIED, AccessRequestStatus.PENDING_INFO}
    ),
    AccessRequestStatus.PENDING_INFO: frozenset(
        {
            AccessRequestStatus.PENDING,
            AccessRequestStatus.PENDING_INFO,
            AccessRequestStatus.APPROVED,
            AccessRequestStatus.DENIED,
        }
    ),
    AccessRequestStatus.APPROVED: frozenset(),
    AccessRequestStatus.DENIED: frozenset(),
}


def _sources(table: dict[S, frozenset[S]], target: S) -> frozenset[S]:
    return frozenset(source for source, targets in table.items() if target in targets)


def change_request_sources(target: ChangeRequestStatus) -> frozenset[ChangeRequestStatus]:
    """States from which a change request may move to ``target``."""
    return _sources(CHANGE_REQUEST_TRANSITIONS, target)


def access_request_sources(target: AccessRequestStatus) -> frozenset[AccessRequestStatus]:
    """States from which an access request may move to ``target``."""
    return _sources(ACCESS_REQUEST_TRANSITIONS, target)


def is_terminal(status: ChangeRequestStatus | AccessRequestStatus) -> bool:
    if isinstance(status, ChangeRequestStatus):
        return not CHANGE_REQUEST_TRANSITIONS[status]
    return not ACCESS_REQUEST_TRANSITIONS[status]
