import logging
from decimal import Decimal, InvalidOperation

import requests
from django.conf import settings

from bounties.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)

# Currency get_available_balance reports in
BALANCE_CURRENCY = "USD"


def _provider_message(response):
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or "Unknown error"
    errors = data.get("errors") or []
    if errors and isinstance(errors[0], dict):
        return errors[0].get("message") or "Unknown error"
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message") or "Unknown error"
    return error or "Unknown error"


class CoinbaseClient:
    """Coinbase v2 API client scoped to one funding source's access token."""

    def __init__(self, access_token, base_url=None, timeout=None):
        if not access_token:
            raise ValueError("Coinbase access token is required")
        self.base_url = (base_url or settings.COINBASE_API_URL).rstrip("/")
        self.timeout = timeout or settings.EXTERNAL_CALL_TIMEOUT
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "CB-VERSION": settings.COINBASE_API_VERSION,
        }

    def _request(self, method, path, payload=None):
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, json=payload, headers=self.headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error(f"Coinbase request timed out: {method} {path}")
            raise PaymentProviderError("Payment provider timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Coinbase request failed: {str(e)}")
            raise PaymentProviderError("Payment provider unreachable") from e

        if response.status_code >= 400:
            message = _provider_message(response)
            logger.error(f"Coinbase API error ({response.status_code}): {message}")
            raise PaymentProviderError(f"Coinbase API error: {message}", status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise PaymentProviderError("Invalid payment provider response") from e

    def get_available_balance(self):
        """
        Total spendable balance across accounts, in BALANCE_CURRENCY.

        Stablecoins listed in SUPPORTED_BALANCE_CURRENCIES count 1:1 with it;
        other currencies are ignored.
        """
        data = self._request("GET", "/v2/accounts")
        total = Decimal("0")
        for account in data.get("data") or []:
            balance = account.get("balance") or {}
            if balance.get("currency") not in settings.SUPPORTED_BALANCE_CURRENCIES:
                continue
            try:
                total += Decimal(str(balance.get("amount", "0")))
            except InvalidOperation:
                logger.warning(f"Skipping account {account.get('id')} with unreadable balance")
        return total

    def send_crypto(self, address, amount, description):
        """Send stablecoin to a wallet address. Returns the provider transaction id."""
        payload = {
            "type": "send",
            "to": address,
            "amount": str(amount),
            "currency": settings.PAYOUT_CURRENCY,
            "description": description,
        }
        data = self._request("POST", "/v2/accounts/primary/transactions", payload)
        tx_id = (data.get("data") or {}).get("id")
        if not tx_id:
            logger.error("Coinbase send response missing transaction id")
            raise PaymentProviderError("Invalid payment provider response")
        logger.info(f"Coinbase send success: tx {tx_id}")
        return tx_id

    def bank_withdrawal(self, bank_details, amount, description):
        """Withdraw to a bank account by wire. Returns the provider transaction id."""
        payload = {
            "type": "bank_wire",
            "amount": str(amount),
            "currency": settings.BANK_PAYOUT_CURRENCY,
            "payment_method": {"type": "bank_wire", "bank_details": bank_details},
            "description": description,
        }
        data = self._request("POST", "/v2/withdrawals", payload)
        tx_id = (data.get("data") or {}).get("id")
        if not tx_id:
            logger.error("Coinbase withdrawal response missing transaction id")
            raise PaymentProviderError("Invalid payment provider response")
        logger.info(f"Coinbase withdrawal success: tx {tx_id}")
        return tx_id
