"""
Noticeboard Broadcast Service

Broadcast lifecycle: creation, reading, ownership-checked mutation,
filtered listing and statistics.
"""

import logging
from typing import Any, Optional

from ..db.broadcasts import BroadcastRepository, SORT_FIELDS
from ..db.connection import Database
from ..db.models import (
    Broadcast,
    BroadcastStats,
    BroadcastStatus,
    BroadcastType,
    Identity,
    Urgency,
)
from ..errors import FieldError, ForbiddenError, NotFoundError, ValidationError
from ..utils.formatting import format_timestamp, now_us
from ..utils.pagination import MAX_PAGE_SIZE, MAX_ROW_OFFSET, Pagination, page_offset
from .validation import CREATE_FIELDS, check_broadcast, coerce_broadcast_fields

logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 20
DEFAULT_SORT = "-createdAt"
DEFAULT_STATUS = BroadcastStatus.ACTIVE.value


def effective_status(
    stored: BroadcastStatus,
    expiry_date_us: Optional[int],
    at_us: int
) -> BroadcastStatus:
    """
    Status a broadcast must be written with at time ``at_us``.

    A past expiry date forces ``expired`` whatever was stored or requested.
    """
    if expiry_date_us is not None and expiry_date_us < at_us:
        return BroadcastStatus.EXPIRED
    return stored


def parse_sort(sort: Optional[str]) -> tuple[str, bool]:
    """
    Split a sort spec like ``-createdAt`` into (field, descending).

    Raises:
        ValidationError: unknown field
    """
    spec = (sort or DEFAULT_SORT).strip()
    descending = spec.startswith("-")
    field_name = spec[1:] if spec[:1] in ("-", "+") else spec
    if field_name not in SORT_FIELDS:
        allowed = ", ".join(SORT_FIELDS)
        raise ValidationError.single("sort", f"sort must be one of: {allowed}")
    return field_name, descending


def _parse_positive_int(value: Any, name: str, default: int, maximum: Optional[int] = None) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError.single(name, f"{name} must be a positive integer")
    if number < 1:
        raise ValidationError.single(name, f"{name} must be a positive integer")
    if maximum is not None and number > maximum:
        raise ValidationError.single(name, f"{name} cannot exceed {maximum}")
    return number


def _parse_filter(value: Optional[str], name: str, enum_cls):
    # Empty means "don't filter on this"
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError.single(name, f"{name} must be one of: {allowed}")


def broadcast_view(broadcast: Broadcast, at_us: Optional[int] = None) -> dict[str, Any]:
    """JSON-ready broadcast with its author populated."""
    if at_us is None:
        at_us = now_us()

    if broadcast.author is not None:
        created_by: Any = {
            "id": broadcast.author.id,
            "username": broadcast.author.username,
            "email": broadcast.author.email,
        }
    else:
        created_by = broadcast.created_by

    return {
        "id": broadcast.id,
        "title": broadcast.title,
        "message": broadcast.message,
        "urgency": broadcast.urgency.value,
        "type": broadcast.type.value,
        "tags": list(broadcast.tags),
        "createdBy": created_by,
        "expiryDate": format_timestamp(broadcast.expiry_date_us),
        "status": broadcast.status.value,
        "views": broadcast.views,
        "priority": broadcast.priority,
        "createdAt": format_timestamp(broadcast.created_at_us),
        "updatedAt": format_timestamp(broadcast.updated_at_us),
        "isExpired": broadcast.is_expired(at_us),
    }


def stats_view(stats: BroadcastStats) -> dict[str, Any]:
    """JSON-ready summary statistics."""
    return {
        "totalBroadcasts": stats.total,
        "byUrgency": dict(stats.by_urgency),
        "byType": dict(stats.by_type),
        "activeBroadcasts": stats.active,
        "recentActivity": [
            {
                "title": recent.title,
                "createdAt": format_timestamp(recent.created_at_us),
                "urgency": recent.urgency.value,
            }
            for recent in stats.recent_activity
        ],
    }


class BroadcastService:
    """
    Broadcast service for Noticeboard.

    Features:
    - Public filtered/paginated listing and single reads (with view counting)
    - Owner-or-admin update and delete
    - Expiry-driven status, settled on every write
    - Summary statistics
    """

    def __init__(self, db: Database, default_page_size: int = DEFAULT_PAGE_SIZE):
        self.repo = BroadcastRepository(db)
        self.default_page_size = default_page_size

    def list_broadcasts(
        self,
        type: Optional[str] = None,
        urgency: Optional[str] = None,
        status: Optional[str] = DEFAULT_STATUS,
        search: Optional[str] = None,
        sort: Optional[str] = DEFAULT_SORT,
        page: Any = 1,
        limit: Any = None
    ) -> tuple[list[Broadcast], Pagination]:
        """
        List broadcasts matching the filters.

        ``status`` defaults to ``active`` (None counts as unspecified);
        pass an empty string to list every status.

        Returns:
            (broadcasts on the requested page, pagination block)

        Raises:
            ValidationError: bad page, limit, sort or filter value
        """
        page_number = _parse_positive_int(page, "page", 1)
        page_size = _parse_positive_int(limit, "limit", self.default_page_size, MAX_PAGE_SIZE)
        offset = page_offset(page_number, page_size)
        if offset > MAX_ROW_OFFSET:
            raise ValidationError.single("page", "page is out of range")
        sort_field, descending = parse_sort(sort)

        if status is None:
            status = DEFAULT_STATUS

        broadcasts, total = self.repo.query_broadcasts(
            type=_parse_filter(type, "type", BroadcastType),
            urgency=_parse_filter(urgency, "urgency", Urgency),
            status=_parse_filter(status, "status", BroadcastStatus),
            search=search or None,
            sort_field=sort_field,
            descending=descending,
            limit=page_size,
            offset=offset
        )
        return broadcasts, Pagination(page=page_number, limit=page_size, total=total)

    def get_broadcast(self, broadcast_id: int) -> Broadcast:
        """
        Read one broadcast, counting the view.

        Raises:
            NotFoundError: no such broadcast
        """
        if not self.repo.increment_views(broadcast_id):
            raise NotFoundError("Broadcast not found")

        broadcast = self.repo.get_broadcast_by_id(broadcast_id)
        if broadcast is None:
            raise NotFoundError("Broadcast not found")
        return broadcast

    def create_broadcast(self, payload: dict[str, Any], owner_id: int) -> Broadcast:
        """
        Create a broadcast owned by ``owner_id``.

        Raises:
            ValidationError: missing or invalid fields
        """
        accepted = {key: payload[key] for key in CREATE_FIELDS if key in payload}
        values, errors = coerce_broadcast_fields(accepted)

        broadcast = Broadcast(created_by=owner_id)
        for attr, value in values.items():
            setattr(broadcast, attr, value)

        errors.extend(check_broadcast(broadcast))
        if errors:
            raise ValidationError(_dedupe(errors))

        broadcast.status = effective_status(
            BroadcastStatus.ACTIVE, broadcast.expiry_date_us, now_us()
        )

        created = self.repo.create_broadcast(broadcast)
        logger.info(f"Broadcast {created.id} created by user {owner_id} (status={created.status.value})")
        return created

    def update_broadcast(
        self,
        broadcast_id: int,
        identity: Identity,
        payload: dict[str, Any]
    ) -> Broadcast:
        """
        Overwrite whichever fields the payload carries.

        Any known field may be replaced, including ``createdBy``, ``views``
        and ``status``. The expiry rule then runs again, so a past expiry
        date always wins over a requested status.

        Raises:
            NotFoundError: no such broadcast
            ForbiddenError: caller is neither owner nor admin
            ValidationError: invalid fields
        """
        values, errors = coerce_broadcast_fields(payload)

        # Load and save under one transaction so a view counted in
        # between is not overwritten by the stale count
        with self.repo.db.transaction():
            broadcast = self._get_owned(broadcast_id, identity, "update")

            for attr, value in values.items():
                setattr(broadcast, attr, value)

            errors.extend(check_broadcast(broadcast))
            if errors:
                raise ValidationError(_dedupe(errors))

            broadcast.status = effective_status(
                broadcast.status, broadcast.expiry_date_us, now_us()
            )

            updated = self.repo.save_broadcast(broadcast)
            if updated is None:
                raise NotFoundError("Broadcast not found")

        logger.info(
            f"Broadcast {broadcast_id} updated by user {identity.id} "
            f"fields={sorted(values)}"
        )
        return updated

    def delete_broadcast(self, broadcast_id: int, identity: Identity):
        """
        Permanently remove a broadcast.

        Raises:
            NotFoundError: no such broadcast
            ForbiddenError: caller is neither owner nor admin
        """
        with self.repo.db.transaction():
            self._get_owned(broadcast_id, identity, "delete")

            if not self.repo.delete_broadcast(broadcast_id):
                raise NotFoundError("Broadcast not found")

        logger.info(f"Broadcast {broadcast_id} deleted by user {identity.id}")

    def summary_stats(self) -> BroadcastStats:
        """Counts by urgency and type, active count and recent activity."""
        return self.repo.summary_stats()

    def _get_owned(self, broadcast_id: int, identity: Identity, action: str) -> Broadcast:
        """Load a broadcast the caller may mutate."""
        broadcast = self.repo.get_broadcast_by_id(broadcast_id)
        if broadcast is None:
            raise NotFoundError("Broadcast not found")

        if broadcast.created_by != identity.id and not identity.is_admin:
            logger.warning(
                f"User {identity.id} may not {action} broadcast {broadcast_id} "
                f"owned by {broadcast.created_by}"
            )
            raise ForbiddenError("Not authorized")

        return broadcast


def _dedupe(errors: list[FieldError]) -> list[FieldError]:
    # Coercion and the record check can both flag the same field
    seen = set()
    result = []
    for error in errors:
        if error.field in seen:
            continue
        seen.add(error.field)
        result.append(error)
    return result
