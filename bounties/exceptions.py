"""
Error taxonomy for the bounty payout pipeline.

Every error carries the HTTP status the views answer with, so a caller-facing
outcome can be rendered without a lookup table.
"""


class BountyFlowError(Exception):
    # Base exception for every expected pipeline failure.
    status_code = 500
    code = "error"

    def __init__(self, message=None, **details):
        self.message = message or self.__class__.__doc__ or self.code
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        payload = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationFailed(BountyFlowError):
    """Request is malformed or missing required fields"""

    status_code = 400
    code = "validation_failed"


class InvalidSignature(ValidationFailed):
    """Invalid or missing webhook signature"""

    status_code = 401
    code = "invalid_signature"


class Unauthorized(ValidationFailed):
    """Unauthorized"""

    status_code = 401
    code = "unauthorized"


class NotFound(BountyFlowError):
    """Requested record does not exist"""

    status_code = 404
    code = "not_found"


class PayoutNotFound(NotFound):
    """Payout not found or not owned by the requesting contributor"""

    code = "payout_not_found"


class Conflict(BountyFlowError):
    """Operation cannot happen in the current state"""

    status_code = 409
    code = "conflict"


class AlreadyProcessed(Conflict):
    """Payout has already been processed"""

    code = "already_processed"


class InvalidStateTransition(Conflict):
    """Status transition is not allowed"""

    code = "invalid_state_transition"


class DuplicatePayout(Conflict):
    """A payout already exists for this bounty and pull request"""

    code = "duplicate_payout"


class ResourceError(BountyFlowError):
    # Rejected before any provider call is attempted.
    status_code = 402
    code = "resource_error"


class InsufficientFunds(ResourceError):
    """Funding source balance does not cover this payout"""

    code = "insufficient_funds"


class FundingSourceMissing(ResourceError):
    """Bounty creator has not connected a funding source"""

    status_code = 400
    code = "funding_source_missing"


class UpstreamError(BountyFlowError):
    # Failure reported by GitHub or the payment provider, including timeouts.
    status_code = 502
    code = "upstream_error"

    def __init__(self, message=None, status=None, **details):
        self.status = status
        super().__init__(message, **details)


class GitHubAPIError(UpstreamError):
    """GitHub API request failed"""

    code = "github_error"


class GitHubAuthError(GitHubAPIError):
    """GitHub rejected the credentials"""

    code = "github_auth_failed"


class GitHubNotFoundError(GitHubAPIError):
    """GitHub resource not found"""

    code = "github_not_found"


class GitHubRateLimitError(GitHubAPIError):
    """GitHub rate limit exceeded"""

    status_code = 503
    code = "github_rate_limited"


class PaymentProviderError(UpstreamError):
    """Payment provider rejected or failed the request"""

    code = "payment_provider_error"


class ProtectionViolation(BountyFlowError):
    """Operation blocked by the data protection policy"""

    status_code = 403
    code = "protection_violation"


class DeletionBlocked(ProtectionViolation):
    """Deletion blocked: repositories and related data cannot be deleted"""

    code = "deletion_blocked"

    def as_dict(self):
        payload = super().as_dict()
        payload.update(
            {
                "blocked": True,
                "protection": "ACTIVE",
                "alternative": "Use soft deletion (marking as inactive) instead",
            }
        )
        return payload
