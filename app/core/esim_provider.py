"""
eSIM provisioning against the eSIM Go inventory API.

Two interchangeable strategies expose the same ``provision(bundle_name,
order_reference)`` call:

- ``EsimGoClient`` orders a real bundle and reads the assigned SIM profile
  from the response.
- ``MockEsimProvider`` synthesises a profile so the QR/email pipeline can be
  exercised without spending inventory. It is only ever selected when
  TEST_MODE is on.
"""
import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.core import config
from app.core.qr import build_activation_code

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """Raised when a bundle could not be turned into an assigned eSIM profile."""


@dataclass
class ProvisionedEsim:
    iccid: str
    smdp_address: str
    matching_id: str

    @property
    def qr_code(self) -> str:
        return build_activation_code(self.smdp_address, self.matching_id)


def parse_provisioned_esim(payload: Dict[str, Any]) -> ProvisionedEsim:
    """
    Pull the first assigned SIM out of an eSIM Go order response:
    {"order": [{"esims": [{"iccid", "smdpAddress", "matchingId"}], ...}], ...}
    Any of the three missing is a provisioning failure.
    """
    order_items = payload.get("order") or []
    esims = (order_items[0].get("esims") or []) if order_items else []
    esim = esims[0] if esims else {}

    iccid = esim.get("iccid")
    smdp_address = esim.get("smdpAddress")
    matching_id = esim.get("matchingId")
    if not (iccid and smdp_address and matching_id):
        raise ProvisioningError("Failed to get eSIM details from provider")
    return ProvisionedEsim(iccid=iccid, smdp_address=smdp_address, matching_id=matching_id)


class EsimGoClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = config.ESIMGO_API_BASE,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
        order_type: str = "transaction",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # "validate" dry-runs an order without charging the account
        self.order_type = order_type
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"X-API-Key": self.api_key},
            transport=self._transport,
        )

    def create_order(self, bundle_name: str, order_reference: str) -> Dict[str, Any]:
        if not self.api_key:
            raise ProvisioningError("ESIMGO_API_KEY not configured")

        logger.info(f"Creating eSIM Go order ({self.order_type}) for bundle {bundle_name}, reference {order_reference}")
        body = {
            "type": self.order_type,
            "assign": True,
            "reference": order_reference,
            "Order": [{"type": "bundle", "quantity": 1, "item": bundle_name}],
        }
        try:
            with self._client() as client:
                response = client.post("/orders", json=body)
        except httpx.HTTPError as e:
            raise ProvisioningError(f"eSIM Go request failed: {e}") from e

        if not response.is_success:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            message = error_data.get("message") or error_data.get("error") or "Unknown error"
            logger.error(f"eSIM Go order failed: {response.status_code} {error_data}")
            raise ProvisioningError(f"eSIM Go API error: {response.status_code} - {message}")

        try:
            return response.json()
        except ValueError as e:
            raise ProvisioningError("eSIM Go returned a non-JSON response") from e

    def provision(self, bundle_name: str, order_reference: str) -> ProvisionedEsim:
        esim = parse_provisioned_esim(self.create_order(bundle_name, order_reference))
        logger.info(f"eSIM Go assigned ICCID {esim.iccid} to {order_reference}")
        return esim


class MockEsimProvider:
    SMDP_ADDRESS = "rsp.test.esim-go.io"

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def _suffix(self, length: int = 6) -> str:
        alphabet = string.ascii_lowercase + string.digits
        return "".join(self._rng.choice(alphabet) for _ in range(length))

    def provision(self, bundle_name: str, order_reference: str) -> ProvisionedEsim:
        esim = ProvisionedEsim(
            iccid=f"TEST-{int(time.time() * 1000)}",
            smdp_address=self.SMDP_ADDRESS,
            matching_id=f"TEST-{order_reference}-{self._suffix()}",
        )
        logger.info(f"Mock eSIM for {order_reference} (bundle {bundle_name}): {esim.iccid}")
        return esim


def build_provisioner(test_mode: bool):
    if test_mode:
        return MockEsimProvider()
    return EsimGoClient(api_key=config.ESIMGO_API_KEY)
