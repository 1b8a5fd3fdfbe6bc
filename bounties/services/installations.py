"""
GitHub App installation events. Records are created or flipped, never removed.
"""
import logging

from django.utils import timezone

from bounties.models import EnabledRepository, GitHubInstallation
from bounties.services.protection import gatekeeper

logger = logging.getLogger(__name__)

INACTIVE = "inactive"
SUSPENDED = "suspended"


def handle_installation_event(payload: dict) -> dict:
    action = payload.get("action")
    installation = payload.get("installation") or {}
    installation_id = installation.get("id")
    if installation_id is None:
        return {"status": "ignored", "reason": "missing_installation"}
    installation_id = str(installation_id)

    if action == "created":
        account = installation.get("account") or {}
        record, created = GitHubInstallation.objects.update_or_create(
            installation_id=installation_id,
            defaults={
                "account_id": str(account.get("id", "")),
                "account_login": account.get("login", ""),
                "account_type": account.get("type") or "User",
                "permissions": installation.get("permissions") or {},
                "repository_selection": installation.get("repository_selection"),
            },
        )
        logger.info(f"Installation {installation_id} {'created' if created else 'updated'} for {record.account_login}")
        return {"status": "installed", "installation_id": installation_id}

    record = GitHubInstallation.objects.filter(installation_id=installation_id).first()
    if record is None:
        logger.warning(f"Installation event {action} for unknown installation {installation_id}")
        return {"status": "ignored", "reason": "unknown_installation"}

    if action == "deleted":
        gatekeeper.soft_delete("github_installations", record.pk, action="mark_inactive")
        return {"status": "deactivated", "installation_id": installation_id}

    if action == "suspend":
        _set_selection(record, SUSPENDED)
        return {"status": "suspended", "installation_id": installation_id}

    if action == "unsuspend":
        _set_selection(record, installation.get("repository_selection") or "selected")
        return {"status": "unsuspended", "installation_id": installation_id}

    return {"status": "ignored", "reason": f"unhandled_action:{action}"}


def _set_selection(record, selection):
    GitHubInstallation.objects.filter(pk=record.pk).update(repository_selection=selection, updated_at=timezone.now())
    logger.info(f"Installation {record.installation_id} repository_selection -> {selection}")


def handle_installation_repositories_event(payload: dict) -> dict:
    if payload.get("action") != "removed":
        return {"status": "ignored", "reason": f"unhandled_action:{payload.get('action')}"}

    repository_ids = [str(repo.get("id")) for repo in payload.get("repositories_removed") or [] if repo.get("id")]
    disabled = 0
    for repository in EnabledRepository.objects.filter(repository_id__in=repository_ids, enabled=True):
        gatekeeper.soft_delete("enabled_repositories", repository.pk, action="mark_inactive")
        disabled += 1
    logger.info(f"Disabled {disabled} repositories removed from the installation")
    return {"status": "repositories_disabled", "count": disabled}
