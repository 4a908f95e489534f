import logging
from typing import Any, Dict, List, Optional

import requests

from app.config import settings
from app.constants.statuses import PaymentMethod, PaymentStatus
from app.utils.exceptions import GatewayError

logger = logging.getLogger(__name__)

_PAID = {"PAID", "paid"}
_EXPIRED = {"EXPIRED", "expired"}


def map_gateway_status(status: str) -> str:
    """Translate a Xendit invoice status into the local payment vocabulary.

    Only the paid and expired spellings are recognised, every other value
    is stored as the gateway sent it.
    """
    if status in _PAID:
        return PaymentStatus.paid.value
    if status in _EXPIRED:
        return PaymentStatus.expired.value
    return status


def payment_methods_for(method: str, bank_code: Optional[str] = None) -> List[str]:
    if method == PaymentMethod.virtual_account.value:
        return ["BANK_TRANSFER"] + ([bank_code] if bank_code else [])
    if method == PaymentMethod.qris.value:
        return ["EWALLET"]
    return []


class XenditClient:
    """Thin wrapper around the Xendit invoice API (basic auth with the secret key)."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        http: Optional[requests.Session] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.XENDIT_SECRET_KEY
        self.base_url = (base_url or settings.XENDIT_API_URL).rstrip("/")
        self.timeout = timeout or settings.XENDIT_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    def _request(self, method: str, path: str, ok_statuses=(200,), **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(
                method,
                url,
                auth=(self.secret_key, ""),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.error("Xendit %s %s failed: %s", method, path, e)
            raise GatewayError("Failed to connect to payment gateway", details=str(e))

        if response.status_code not in ok_statuses:
            logger.error("Xendit %s %s returned %s: %s", method, path, response.status_code, response.text)
            raise GatewayError(
                "Payment gateway error",
                code="PAYMENT_ERROR",
                details=response.text,
            )

        try:
            return response.json()
        except ValueError:
            raise GatewayError("Failed to parse payment response", code="PARSE_ERROR")

    def create_invoice(
        self,
        *,
        external_id: str,
        amount: float,
        description: str,
        customer_name: str,
        customer_email: str,
        payment_methods: List[str],
        item_name: str,
        currency: str = "IDR",
    ) -> Dict[str, Any]:
        payload = {
            "external_id": external_id,
            "amount": amount,
            "description": description,
            "currency": currency,
            "customer": {"given_names": customer_name, "email": customer_email},
            "items": [{"name": item_name, "quantity": 1, "price": amount}],
        }
        if payment_methods:
            payload["payment_methods"] = payment_methods

        return self._request("POST", "/v2/invoices", ok_statuses=(200, 201), json=payload)

    def get_invoice(self, invoice_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/v2/invoices/{invoice_id}")
