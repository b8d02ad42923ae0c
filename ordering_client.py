"""
Ordering API client
===================
Async client for the menu / orders / contact endpoints.

Every public call returns a ``Result``: transport errors, timeouts and
non-2xx responses are converted into a failed ``Result`` and never raised.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
import structlog

from cart import CartSnapshot, LineItem
from config import get_settings

logger = structlog.get_logger()


class FailureKind(str, Enum):
    TRANSPORT = "transport"  # network / HTTP error, user may retry
    VALIDATION = "validation"  # missing or bad fields, shown inline
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Result:
    success: bool
    data: Any = None
    error: Optional[str] = None
    kind: Optional[FailureKind] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: FailureKind, error: str) -> "Result":
        return cls(success=False, error=error, kind=kind)

    @property
    def retryable(self) -> bool:
        return self.kind is FailureKind.TRANSPORT


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class CustomerInfo:
    name: str = ""
    phone: str = ""
    address: str = ""

    def missing_fields(self) -> List[str]:
        return [k for k in ("name", "phone", "address") if _blank(getattr(self, k))]

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "phone": self.phone, "address": self.address}


@dataclass(frozen=True)
class ContactMessage:
    name: str = ""
    email: str = ""
    message: str = ""

    def missing_fields(self) -> List[str]:
        return [k for k in ("name", "email", "message") if _blank(getattr(self, k))]

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "email": self.email, "message": self.message}


@dataclass(frozen=True)
class Order:
    items: Tuple[LineItem, ...]
    customer_info: CustomerInfo = field(default_factory=CustomerInfo)
    total: Decimal = Decimal("0")

    @classmethod
    def from_snapshot(cls, snapshot: CartSnapshot, customer_info: CustomerInfo) -> "Order":
        return cls(items=snapshot.items, customer_info=customer_info, total=snapshot.total_price)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "items": [
                {"name": item.name, "price": float(item.price), "quantity": item.quantity}
                for item in self.items
            ],
            "customerInfo": self.customer_info.to_dict(),
            "total": float(self.total),
        }


class OrderingClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.request_timeout if timeout is None else timeout
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._cache: Dict[str, Any] = {}

    async def __aenter__(self) -> "OrderingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, path: str, method: str = "GET", json: Any = None) -> Result:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.request(method, url, json=json)
        except httpx.TimeoutException:
            logger.warning("api_request_timeout", method=method, url=url, timeout=self.timeout)
            return Result.fail(FailureKind.TRANSPORT, "Request timed out. Please try again.")
        except httpx.HTTPError as e:
            logger.error("api_request_failed", method=method, url=url, error=str(e))
            return Result.fail(FailureKind.TRANSPORT, f"Network error: {e}")
        except (httpx.InvalidURL, RuntimeError) as e:
            # bad base URL, or the client was already closed
            logger.error("api_request_failed", method=method, url=url, error=str(e))
            return Result.fail(FailureKind.TRANSPORT, f"Request could not be sent: {e}")

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.is_success:
            if data is None:
                logger.error("api_response_invalid", method=method, url=url, status=resp.status_code)
                return Result.fail(FailureKind.TRANSPORT, "Invalid response from server")
            return Result.ok(data)

        message = data.get("error") if isinstance(data, dict) else None
        if not message:
            message = f"HTTP error! status: {resp.status_code}"
        if resp.status_code in (400, 422):
            kind = FailureKind.VALIDATION
        elif resp.status_code == 404:
            kind = FailureKind.NOT_FOUND
        else:
            kind = FailureKind.TRANSPORT
        logger.warning("api_request_rejected", method=method, url=url, status=resp.status_code, error=message)
        return Result.fail(kind, message)

    async def get_menu_items(self, category: str = "all") -> Result:
        cache_key = f"menu_{category}"
        if cache_key in self._cache:
            return Result.ok(self._cache[cache_key])

        path = "/menu" if category == "all" else f"/menu/{quote(category, safe='')}"
        result = await self.request(path)
        if result.success:
            self._cache[cache_key] = result.data
        return result

    async def search_menu_items(self, query: str) -> Result:
        if not query.strip():
            return Result.ok([])
        return await self.request(f"/menu/search/{quote(query.strip(), safe='')}")

    async def submit_order(self, order: Order) -> Result:
        result = await self.request("/orders", method="POST", json=order.to_payload())
        if result.success and not isinstance(result.data, dict):
            result = Result.fail(FailureKind.TRANSPORT, "Invalid response from server")
        if result.success:
            logger.info("order_submitted", order_id=result.data.get("orderId"), total=str(order.total))
        else:
            logger.warning("order_submit_failed", kind=result.kind.value, error=result.error)
        return result

    async def get_order_status(self, order_id: int) -> Result:
        return await self.request(f"/orders/{order_id}")

    async def submit_contact_message(self, message: ContactMessage) -> Result:
        if message.missing_fields():
            return Result.fail(FailureKind.VALIDATION, "Please fill in all fields.")
        return await self.request("/contact", method="POST", json=message.to_dict())

    def clear_cache(self) -> None:
        self._cache.clear()
