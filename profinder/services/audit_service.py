"""
Relationship audit.

Multi-record actions are not atomic, so relationship sets can drift: one-sided
connections, pending requests left behind after a connection was made, and
references to deleted accounts. This pass finds them and optionally repairs
the ones with an unambiguous fix.
"""
import logging
from typing import Dict, List

from profinder.core.relationship import is_connection_asymmetric
from profinder.models.user import RELATIONSHIP_FIELDS, User
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.connection import AuditIssue, AuditReport

logger = logging.getLogger(__name__)

PAGE_SIZE = 500


class AuditService:
    """Scans every user record for relationship inconsistencies."""

    def __init__(self, store: RelationshipStore):
        self.store = store

    async def _load_all(self) -> Dict[str, User]:
        users: Dict[str, User] = {}
        offset = 0
        while True:
            page = await self.store.list_users(limit=PAGE_SIZE, offset=offset)
            for user in page:
                users[user.id] = user
            if len(page) < PAGE_SIZE:
                return users
            offset += PAGE_SIZE

    async def audit(self, repair: bool = False) -> AuditReport:
        """
        Run the audit.

        Args:
            repair: Drop one-sided connections and remove self or dangling
                references. Pending entries next to a connection are only
                reported; the resolver already ignores them.

        Returns:
            AuditReport with one issue per offending entry
        """
        users = await self._load_all()
        issues: List[AuditIssue] = []
        removals: Dict[str, Dict[str, List[str]]] = {}

        def flag(kind: str, user_id: str, other_id: str, field: str, fixable: bool) -> None:
            issues.append(AuditIssue(
                kind=kind,
                user_id=user_id,
                other_user_id=other_id,
                field=field,
                repaired=repair and fixable,
            ))
            if repair and fixable:
                removals.setdefault(user_id, {}).setdefault(field, []).append(other_id)

        for user_id, user in users.items():
            for field in RELATIONSHIP_FIELDS:
                for other_id in getattr(user, field) or []:
                    if other_id == user_id:
                        flag("self_reference", user_id, other_id, field, True)
                    elif other_id not in users:
                        flag("dangling_reference", user_id, other_id, field, True)

            connections = set(user.connections or [])
            for other_id in connections:
                other = users.get(other_id)
                if other_id == user_id or other is None:
                    continue
                if is_connection_asymmetric(user_id, user, other_id, other):
                    flag("asymmetric_connection", user_id, other_id, "connections", True)

            for other_id in user.pending_connections or []:
                if other_id in connections:
                    flag("pending_while_connected", user_id, other_id, "pending_connections", False)

        repaired = 0
        for user_id, remove in removals.items():
            if await self.store.update_user(user_id, remove=remove) is not None:
                repaired += sum(len(ids) for ids in remove.values())

        if issues:
            logger.warning(
                f"Relationship audit: {len(issues)} issue(s) across {len(users)} user(s), "
                f"{repaired} repaired"
            )
        else:
            logger.info(f"Relationship audit: {len(users)} user(s) consistent")

        return AuditReport(users_scanned=len(users), issues=issues, repaired=repaired)
