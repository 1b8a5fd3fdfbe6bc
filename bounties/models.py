from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


class Bounty(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_PENDING_PAYOUT = "pending_payout"
    STATUS_PAID = "paid"
    STATUS_INACTIVE = "inactive"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_PENDING_PAYOUT, "Pending payout"),
        (STATUS_PAID, "Paid"),
        (STATUS_INACTIVE, "Inactive"),
    ]
    LIVE_STATUSES = (STATUS_ACTIVE, STATUS_PENDING_PAYOUT)

    COMPLEXITY_CHOICES = [
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
        ("critical", "Critical"),
    ]

    # GitHub identifiers are kept as strings, as delivered by the collaborators
    repository_id = models.CharField(max_length=64, db_index=True)
    repository_name = models.CharField(max_length=255)  # e.g. "org/repo"
    issue_id = models.CharField(max_length=64, blank=True, default="")
    issue_number = models.PositiveIntegerField()
    issue_title = models.CharField(max_length=255, blank=True, default="")
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    currency = models.CharField(max_length=10, default="USD")
    complexity = models.CharField(max_length=10, choices=COMPLEXITY_CHOICES, default="medium")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    creator_id = models.CharField(max_length=64)
    protection_status = models.CharField(max_length=20, default="protected")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["repository_id", "issue_number"],
                condition=Q(status__in=["active", "pending_payout"]),
                name="unique_live_bounty_per_issue",
            ),
        ]
        indexes = [
            models.Index(fields=["repository_id", "status"], name="bounty_repo_status_idx"),
        ]

    def __str__(self):
        return f"{self.repository_name}#{self.issue_number} {self.amount} {self.currency} ({self.status})"


class Payout(models.Model):
    STATUS_PENDING = "pending"
    STATUS_PENDING_CLAIM = "pending_claim"
    STATUS_CLAIMED = "claimed"
    STATUS_PAID = "paid"
    STATUS_FAILED = "failed"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PENDING_CLAIM, "Pending claim"),
        (STATUS_CLAIMED, "Claimed"),
        (STATUS_PAID, "Paid"),
        (STATUS_FAILED, "Failed"),
    ]
    # Forward order of the lifecycle; failed sits outside it
    STATUS_ORDER = (STATUS_PENDING, STATUS_PENDING_CLAIM, STATUS_CLAIMED, STATUS_PAID)
    IN_FLIGHT_STATUSES = (STATUS_PENDING, STATUS_PENDING_CLAIM, STATUS_CLAIMED)
    CLAIMABLE_STATUSES = (STATUS_PENDING, STATUS_PENDING_CLAIM)

    DESTINATION_CHOICES = [
        ("wallet", "Crypto wallet"),
        ("bank", "Bank transfer"),
    ]

    repository_id = models.CharField(max_length=64)
    repository_name = models.CharField(max_length=255)
    pull_request_id = models.CharField(max_length=64)
    pull_request_number = models.PositiveIntegerField()
    issue_number = models.PositiveIntegerField()
    # Captured when the merge matched the bounty; deliberately not a foreign key
    bounty_id = models.BigIntegerField(db_index=True)
    contributor_id = models.CharField(max_length=64, db_index=True)
    contributor_name = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=10, default="USD")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING_CLAIM, db_index=True)
    destination_type = models.CharField(max_length=10, choices=DESTINATION_CHOICES, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            # Idempotency key for at-least-once webhook delivery
            models.UniqueConstraint(
                fields=["repository_id", "pull_request_number", "contributor_id", "issue_number"],
                condition=~Q(status="failed"),
                name="unique_payout_idempotency_key",
            ),
            models.UniqueConstraint(
                fields=["bounty_id"],
                condition=~Q(status="failed"),
                name="unique_live_payout_per_bounty",
            ),
        ]

    def __str__(self):
        return f"Payout {self.pk} to {self.contributor_name} for {self.repository_name}#{self.pull_request_number}"

    @classmethod
    def is_valid_transition(cls, current, new):
        if current == new:
            return False
        if new == cls.STATUS_FAILED:
            return current in cls.IN_FLIGHT_STATUSES
        if current not in cls.STATUS_ORDER or new not in cls.STATUS_ORDER:
            return False
        return cls.STATUS_ORDER.index(new) > cls.STATUS_ORDER.index(current)

    @property
    def is_claimable(self):
        return self.status in self.CLAIMABLE_STATUSES


class Transaction(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
    ]

    payout = models.ForeignKey(Payout, on_delete=models.PROTECT, related_name="transactions")
    provider_transaction_id = models.CharField(max_length=255, blank=True, default="")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    # Always the payout currency; the asset actually moved is in settled_asset
    currency = models.CharField(max_length=10)
    settled_asset = models.CharField(max_length=10, blank=True, default="")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    error_message = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Transaction {self.provider_transaction_id or self.pk} for payout {self.payout_id} ({self.status})"

    def clean(self):
        if self.payout_id and self.amount != self.payout.amount:
            raise ValidationError("Transaction amount must equal the payout amount.")

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.clean()
        super().save(*args, **kwargs)


class FundingSource(models.Model):
    """Connected payment account a bounty creator pays out from."""

    owner_id = models.CharField(max_length=64, unique=True)
    provider = models.CharField(max_length=20, default="coinbase")
    access_token = models.TextField()
    refresh_token = models.TextField(blank=True, default="")
    expires_at = models.DateTimeField(null=True, blank=True)
    # Sum of amounts held by settlements that have not finished yet
    reserved_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    # Bumped on every release; a balance read taken under an older version may predate a transfer
    settlement_version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.provider} funding source for {self.owner_id}"

    @property
    def is_expired(self):
        return self.expires_at is not None and self.expires_at <= timezone.now()


class EnabledRepository(models.Model):
    user_id = models.CharField(max_length=64)
    repository_id = models.CharField(max_length=64, db_index=True)
    repository_name = models.CharField(max_length=255)
    repository_full_name = models.CharField(max_length=255)
    repository_description = models.TextField(null=True, blank=True)
    repository_language = models.CharField(max_length=100, null=True, blank=True)
    stargazers_count = models.PositiveIntegerField(null=True, blank=True)
    enabled = models.BooleanField(default=True)
    protection_status = models.CharField(max_length=20, default="protected")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "enabled_repositories"
        verbose_name_plural = "enabled repositories"

    def __str__(self):
        return f"{self.repository_full_name} ({'enabled' if self.enabled else 'disabled'})"


class GitHubInstallation(models.Model):
    installation_id = models.CharField(max_length=64, unique=True)
    account_id = models.CharField(max_length=64)
    account_login = models.CharField(max_length=255)
    account_type = models.CharField(max_length=20, default="User")
    permissions = models.JSONField(default=dict, blank=True)
    repository_selection = models.CharField(max_length=20, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "github_installations"

    def __str__(self):
        return f"Installation {self.installation_id} for {self.account_login}"


class BountyLog(models.Model):
    """Audit trail of protection decisions and payout events."""

    action = models.CharField(max_length=100)
    bounty_id = models.BigIntegerField(null=True, blank=True)
    payout_id = models.BigIntegerField(null=True, blank=True)
    details = models.JSONField(default=dict, blank=True)
    success = models.BooleanField(default=True)
    error_message = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.action} at {self.created_at}"
