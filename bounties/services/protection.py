"""
Repository protection service.

No bounty, payout, transaction, repository or installation record is ever
physically deleted. Delete requests are refused and audited; the only way to
take an entity out of active use is a soft delete, which flips a status field.
"""

import logging

from django.utils import timezone

from bounties.exceptions import Conflict, DeletionBlocked, NotFound, ValidationFailed
from bounties.models import Bounty, BountyLog, EnabledRepository, GitHubInstallation, Payout, Transaction

logger = logging.getLogger(__name__)

BLOCKED_ACTIONS = ("delete", "remove", "purge")
SOFT_DELETE_ACTIONS = ("soft_delete", "mark_inactive")

PROTECTION_POLICIES = [
    "NO_HARD_DELETE",
    "SOFT_DELETE_ONLY",
    "DATA_PRESERVATION",
    "AUDIT_LOGGING",
]

PROTECTED_TABLES = {
    "bounties": Bounty,
    "payouts": Payout,
    "transactions": Transaction,
    "enabled_repositories": EnabledRepository,
    "github_installations": GitHubInstallation,
    "bounty_logs": BountyLog,
}

TABLE_ALIASES = {
    "repositories": "enabled_repositories",
    "installations": "github_installations",
}


def table_for_model(model):
    for table, protected_model in PROTECTED_TABLES.items():
        if model is protected_model:
            return table
    return None


class ProtectionGatekeeper:
    """Single policy layer every destructive request goes through."""

    def handle(self, action, table, target_id=None):
        """
        Dispatch a protection request.

        Returns a response dict for soft deletes and audits. Raises
        DeletionBlocked for any delete/remove/purge request.
        """
        action = (action or "").strip().lower()
        logger.info("Repository protection service called: action=%s table=%s target=%s", action, table, target_id)

        if action in BLOCKED_ACTIONS:
            self.block_deletion(action, table, target_id)
        if action in SOFT_DELETE_ACTIONS:
            return self.soft_delete(table, target_id, action=action)
        if action == "audit":
            return self.audit()

        raise ValidationFailed("Unknown action. Supported: soft_delete, mark_inactive, audit")

    def block_deletion(self, action, table, target_id, record=True):
        """Refuse a physical deletion. Always raises."""
        logger.error(
            "DELETION ATTEMPT BLOCKED: action=%s table=%s target=%s",
            action,
            table,
            target_id,
        )
        if record:
            BountyLog.objects.create(
                action="deletion_blocked",
                details={
                    "attempted_action": action,
                    "attempted_table": table,
                    "attempted_target": None if target_id is None else str(target_id),
                    "blocked_at": timezone.now().isoformat(),
                    "protection_level": "CRITICAL",
                },
                success=True,
                error_message="Deletion attempt blocked by repository protection service",
            )
        raise DeletionBlocked(table=table, target=None if target_id is None else str(target_id))

    def soft_delete(self, table, target_id, action="soft_delete"):
        table = TABLE_ALIASES.get(table, table)
        if target_id in (None, ""):
            raise ValidationFailed("targetId is required for soft deletion")
        try:
            target_id = int(target_id)
        except (TypeError, ValueError):
            raise ValidationFailed("targetId must be an integer")

        now = timezone.now()
        if table == "enabled_repositories":
            updated = EnabledRepository.objects.filter(pk=target_id).update(enabled=False, updated_at=now)
        elif table == "github_installations":
            updated = GitHubInstallation.objects.filter(pk=target_id).update(
                repository_selection="inactive", updated_at=now
            )
        elif table == "bounties":
            updated = self._deactivate_bounty(target_id, now)
        else:
            raise ValidationFailed(f"Table {table} not supported for soft deletion")

        if not updated:
            self._record_soft_delete(table, target_id, action, success=False, error="Record not found")
            raise NotFound(f"No {table} record with id {target_id}")

        self._record_soft_delete(table, target_id, action, success=True)
        logger.info("Soft deletion completed: table=%s target=%s", table, target_id)
        return {
            "success": True,
            "action": "soft_deletion",
            "message": "Data safely marked as inactive (preserved)",
            "details": {"table": table, "target_id": str(target_id)},
        }

    def _deactivate_bounty(self, target_id, now):
        updated = Bounty.objects.filter(pk=target_id, status=Bounty.STATUS_ACTIVE).update(
            status=Bounty.STATUS_INACTIVE, updated_at=now
        )
        if updated:
            return updated

        bounty = Bounty.objects.filter(pk=target_id).first()
        if bounty is None:
            return 0
        if bounty.status == Bounty.STATUS_INACTIVE:
            return 1
        # A matched or paid bounty is owned by its payout
        raise Conflict(f"Bounty {target_id} is {bounty.status} and cannot be marked inactive")

    def _record_soft_delete(self, table, target_id, action, success, error=None):
        BountyLog.objects.create(
            action="soft_deletion_completed" if success else "soft_deletion_failed",
            bounty_id=target_id if table == "bounties" else None,
            details={
                "table": table,
                "target_id": str(target_id),
                "operation": action,
                "completed_at": timezone.now().isoformat(),
            },
            success=success,
            error_message=error,
        )

    def audit(self):
        counts = {table: model.objects.count() for table, model in PROTECTED_TABLES.items()}
        return {
            "success": True,
            "audit": {
                "timestamp": timezone.now().isoformat(),
                "protection_status": "ACTIVE",
                "data_integrity": "VERIFIED",
                "counts": counts,
                "protection_policies": list(PROTECTION_POLICIES),
            },
            "message": "All repository data is protected and preserved",
        }


gatekeeper = ProtectionGatekeeper()
