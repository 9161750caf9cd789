"""REST client for the payment gateway (invoice and payment lookups)."""
from __future__ import annotations
import logging

import requests

logger = logging.getLogger(__name__)


class PaymentGatewayError(RuntimeError):
    pass


class PaymentGateway:
    """
    Looks up payments by id so webhook deliveries are never trusted as-is.
    The gateway uses HTTP basic auth with the secret key as the username.
    """

    def __init__(self, base_url: str, secret_key: str, timeout: float = 10.0):
        self._base_url = base_url.rstrip("/")
        self._secret_key = secret_key
        self._timeout = timeout

    def _get(self, path: str) -> requests.Response:
        return requests.get(
            f"{self._base_url}/{path}",
            auth=(self._secret_key, ""),
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )

    def fetch_payment(self, payment_id: str) -> dict:
        """Fetch an invoice, falling back to the payments endpoint when no invoice has that id."""
        if not self._secret_key:
            raise PaymentGatewayError("Payment gateway secret key is not configured.")
        try:
            res = self._get(f"invoices/{payment_id}")
            if res.status_code == 404:
                logger.info("No invoice %s, looking up payment instead", payment_id)
                res = self._get(f"payments/{payment_id}")
            res.raise_for_status()
            return res.json()
        except requests.RequestException as e:
            raise PaymentGatewayError(f"Payment verification failed: {e}") from e
        except ValueError as e:
            raise PaymentGatewayError(f"Payment gateway returned invalid JSON: {e}") from e
