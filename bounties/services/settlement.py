"""
Claim and settlement of payouts.

The funding source balance is shared by every claim against the same bounty
creator. Before any transfer, the payout amount is reserved on the funding
source with a conditional update that only succeeds while
reserved + amount <= provider balance, so two concurrent settlements cannot
both pass the balance check.

A reservation is released once its transfer has either completed or failed,
and each release bumps the funding source's settlement_version. The
reservation only applies if the version is the one seen before the balance
was read; otherwise a transfer may have finished while the balance request
was in flight and the balance is read again.
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from bounties.exceptions import (
    AlreadyProcessed,
    Conflict,
    FundingSourceMissing,
    InsufficientFunds,
    NotFound,
    PaymentProviderError,
    PayoutNotFound,
    ValidationFailed,
)
from bounties.fees import calculate_platform_fee
from bounties.models import Bounty, BountyLog, FundingSource, Payout, Transaction
from bounties.services import bounty_store, payout_ledger
from bounties.services.payment_provider import BALANCE_CURRENCY, CoinbaseClient

logger = logging.getLogger(__name__)

BALANCE_READ_ATTEMPTS = 3
def validate_destination(destination):
    """Return (destination_type, target) or raise ValidationFailed."""
    if not isinstance(destination, dict):
        raise ValidationFailed("destination must be an object")

    destination_type = destination.get("type")
    if destination_type == "wallet":
        address = destination.get("address")
        if not isinstance(address, str) or not address.strip():
            raise ValidationFailed("Wallet destination requires an address")
        return "wallet", address.strip()
    if destination_type == "bank":
        bank_details = destination.get("bank_details")
        if not isinstance(bank_details, dict) or not bank_details:
            raise ValidationFailed("Bank destination requires bank_details")
        return "bank", bank_details

    raise ValidationFailed("destination.type must be 'wallet' or 'bank'")


class ClaimSettlementProcessor:
    def __init__(self, client_factory=None):
        self.client_factory = client_factory or CoinbaseClient

    def settle(self, payout_id, contributor_id, destination) -> dict:
        destination_type, target = validate_destination(destination)
        try:
            payout_id = int(payout_id)
        except (TypeError, ValueError):
            raise ValidationFailed("payoutId must be an integer")
        if not contributor_id:
            raise ValidationFailed("contributorId is required")

        payout = Payout.objects.filter(pk=payout_id, contributor_id=str(contributor_id)).first()
        if payout is None:
            raise PayoutNotFound(payout_id=payout_id)
        if not payout.is_claimable:
            raise AlreadyProcessed(payout_id=payout_id, status=payout.status)

        bounty = Bounty.objects.filter(pk=payout.bounty_id).first()
        if bounty is None:
            raise NotFound(f"Bounty {payout.bounty_id} for payout {payout_id} does not exist")

        funding_source = FundingSource.objects.filter(owner_id=bounty.creator_id).first()
        if funding_source is None:
            raise FundingSourceMissing(owner_id=bounty.creator_id)
        if funding_source.is_expired:
            raise FundingSourceMissing("Bounty creator's funding source credential has expired")
        if payout.currency != BALANCE_CURRENCY:
            raise ValidationFailed(
                f"Payout currency {payout.currency} cannot be settled; balances are counted in {BALANCE_CURRENCY}"
            )

        client = self.client_factory(funding_source.access_token)
        self._reserve(client, funding_source, payout.amount)

        try:
            claimed = Payout.objects.filter(pk=payout.pk, status__in=Payout.CLAIMABLE_STATUSES).update(
                status=Payout.STATUS_CLAIMED, destination_type=destination_type, updated_at=timezone.now()
            )
            if not claimed:
                raise AlreadyProcessed(payout_id=payout_id)
            payout.status = Payout.STATUS_CLAIMED
            logger.info(f"Payout {payout.pk} claimed by {payout.contributor_name} via {destination_type}")

            try:
                provider_transaction_id, asset = self._transfer(client, payout, destination_type, target)
            except PaymentProviderError as e:
                self._record_failure(payout, e)
                raise

            return self._record_success(payout, bounty, provider_transaction_id, asset)
        finally:
            self._release(funding_source, payout.amount)

    def _reserve(self, client, funding_source, amount):
        for attempt in range(1, BALANCE_READ_ATTEMPTS + 1):
            version = FundingSource.objects.values_list("settlement_version", flat=True).get(pk=funding_source.pk)
            balance = Decimal(str(client.get_available_balance()))
            reserved = FundingSource.objects.filter(
                pk=funding_source.pk, settlement_version=version, reserved_amount__lte=balance - amount
            ).update(reserved_amount=F("reserved_amount") + amount, updated_at=timezone.now())
            if reserved:
                return balance

            funding_source.refresh_from_db(fields=["reserved_amount", "settlement_version"])
            if funding_source.settlement_version == version:
                logger.warning(
                    f"Insufficient funds for {amount}: balance {balance}, reserved {funding_source.reserved_amount}"
                )
                raise InsufficientFunds(
                    available=str(balance),
                    reserved=str(funding_source.reserved_amount),
                    requested=str(amount),
                )
            logger.info(f"Balance of funding source {funding_source.pk} changed during read {attempt}; reading again")

        raise Conflict(
            "Funding source balance kept changing while the claim was checked; try again",
            funding_source_id=funding_source.pk,
        )

    def _release(self, funding_source, amount):
        FundingSource.objects.filter(pk=funding_source.pk).update(
            reserved_amount=F("reserved_amount") - amount,
            settlement_version=F("settlement_version") + 1,
            updated_at=timezone.now(),
        )

    def _transfer(self, client, payout, destination_type, target):
        description = f"Bounty payment for PR #{payout.pull_request_number} in {payout.repository_name}"
        if destination_type == "wallet":
            return client.send_crypto(target, payout.amount, description), settings.PAYOUT_CURRENCY
        return client.bank_withdrawal(target, payout.amount, description), settings.BANK_PAYOUT_CURRENCY
    def _record_failure(self, payout, error):
        logger.error(f"Transfer for payout {payout.pk} failed: {error.message}")
        payout_ledger.update_status(payout.pk, Payout.STATUS_FAILED, expected=Payout.STATUS_CLAIMED)
        Transaction.objects.create(
            payout=payout,
            amount=payout.amount,
            currency=payout.currency,
            status="failed",
            error_message=error.message,
        )
        BountyLog.objects.create(
            action="payout_failed",
            bounty_id=payout.bounty_id,
            payout_id=payout.pk,
            success=False,
            error_message=error.message,
        )

    def _record_success(self, payout, bounty, provider_transaction_id, asset):
        # The completed Transaction is written first; it is what reconcile_payouts trusts
        transaction_record = Transaction.objects.create(
            payout=payout,
            provider_transaction_id=provider_transaction_id,
            amount=payout.amount,
            fee=calculate_platform_fee(payout.amount),
            currency=payout.currency,
            settled_asset=asset,
            status="completed",
        )

        try:
            payout_ledger.update_status(payout.pk, Payout.STATUS_PAID, expected=Payout.STATUS_CLAIMED)
            bounty_store.mark_paid(bounty.pk)
            BountyLog.objects.create(
                action="payout_paid",
                bounty_id=bounty.pk,
                payout_id=payout.pk,
                details={"transaction_id": provider_transaction_id, "amount": str(payout.amount)},
            )
            payout.status = Payout.STATUS_PAID
        except Exception:
            logger.exception(
                f"Transfer {provider_transaction_id} completed but payout {payout.pk} was not marked paid; "
                "run reconcile_payouts"
            )

        logger.info(f"Payout {payout.pk} settled: tx {provider_transaction_id}")
        return {
            "success": True,
            "payout_id": payout.pk,
            "status": payout.status,
            "transaction_id": provider_transaction_id,
            "amount": str(payout.amount),
            "fee": str(transaction_record.fee),
            "currency": payout.currency,
            "settled_asset": asset,
        }
