"""
StripeConnector — products, prices, checkout, customers and balance.

Token: secret key (``sk_live_…`` / ``sk_test_…``) as a bearer header.
Stripe takes form-encoded bodies, with nested objects and arrays written
as bracketed keys: ``line_items[0][price]=price_123``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from connectors.base import ActionParams, BaseConnector, NoParams, action
from connectors.models import AccountInfo

_STRIPE_API = "https://api.stripe.com/v1"


def form_encode(data: Any, prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested dicts/lists into Stripe's bracketed form pairs."""
    pairs: List[Tuple[str, str]] = []
    items = data.items() if isinstance(data, dict) else enumerate(data)
    for key, value in items:
        if value is None:
            continue
        full_key = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, (dict, list, tuple)):
            pairs.extend(form_encode(value, full_key))
        elif isinstance(value, bool):
            pairs.append((full_key, "true" if value else "false"))
        else:
            pairs.append((full_key, str(value)))
    return pairs


class ListProducts(ActionParams):
    limit: int = 10
    active: Optional[bool] = None


class CreateProduct(ActionParams):
    name: str
    description: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None


class CreatePrice(ActionParams):
    product: str
    unit_amount: int
    currency: str = "usd"
    recurring: Optional[Dict[str, Any]] = None  # {interval: month}


class ListPrices(ActionParams):
    product: Optional[str] = None
    limit: int = 10


class CreateCheckout(ActionParams):
    line_items: List[Dict[str, Any]]
    success_url: str
    cancel_url: str
    mode: str = "payment"


class ListCustomers(ActionParams):
    limit: int = 10
    email: Optional[str] = None


class CreateCustomer(ActionParams):
    name: Optional[str] = None
    email: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None


class ListSubscriptions(ActionParams):
    customer: Optional[str] = None
    status: Optional[str] = None
    limit: int = 10


class ListPayments(ActionParams):
    limit: int = 10


class StripeConnector(BaseConnector):
    base_url = _STRIPE_API

    @property
    def provider_name(self) -> str:
        return "stripe"

    @property
    def display_name(self) -> str:
        return "Stripe"

    def _headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/x-www-form-urlencoded",
            "User-Agent": self.settings.user_agent,
        }

    def _error_message(self, body: Any) -> Optional[str]:
        if isinstance(body, dict):
            return (body.get("error") or {}).get("message")
        return None

    def _error_code(self, body: Any) -> Optional[str]:
        if isinstance(body, dict):
            return (body.get("error") or {}).get("code")
        return None

    async def _post_form(self, path: str, token: str, data: Dict[str, Any]) -> Any:
        return await self._request("POST", path, token, content=urlencode(form_encode(data)))

    async def test_connection(self, token: str) -> AccountInfo:
        account = await self._request("GET", "/account", token)
        profile = account.get("business_profile") or {}
        dashboard = (account.get("settings") or {}).get("dashboard") or {}
        return AccountInfo(
            id=account.get("id"),
            name=profile.get("name") or dashboard.get("display_name") or account.get("id"),
            email=account.get("email"),
            plan=account.get("type"),  # standard | express | custom
            extra={
                "country": account.get("country"),
                "default_currency": account.get("default_currency"),
                "charges_enabled": account.get("charges_enabled"),
                "payouts_enabled": account.get("payouts_enabled"),
                "livemode": "_test_" not in token,
            },
        )

    # ── Actions ────────────────────────────────────────────────────────

    @action(ListProducts)
    async def list_products(self, params: ListProducts, token: str) -> Any:
        """List products."""
        query = {"limit": params.limit}
        if params.active is not None:
            query["active"] = "true" if params.active else "false"
        return await self._request("GET", "/products", token, params=query)

    @action(CreateProduct)
    async def create_product(self, params: CreateProduct, token: str) -> Any:
        """Create a product."""
        return await self._post_form("/products", token, params.model_dump())

    @action(CreatePrice)
    async def create_price(self, params: CreatePrice, token: str) -> Any:
        """Create a one-off or recurring price."""
        return await self._post_form("/prices", token, params.model_dump())

    @action(ListPrices)
    async def list_prices(self, params: ListPrices, token: str) -> Any:
        """List prices, optionally for one product."""
        return await self._request(
            "GET", "/prices", token, params={"limit": params.limit, "product": params.product}
        )

    @action(CreateCheckout)
    async def create_checkout(self, params: CreateCheckout, token: str) -> Any:
        """Create a checkout session."""
        return await self._post_form("/checkout/sessions", token, params.model_dump())

    @action(ListCustomers)
    async def list_customers(self, params: ListCustomers, token: str) -> Any:
        """List customers."""
        return await self._request(
            "GET", "/customers", token, params={"limit": params.limit, "email": params.email}
        )

    @action(CreateCustomer)
    async def create_customer(self, params: CreateCustomer, token: str) -> Any:
        """Create a customer."""
        return await self._post_form("/customers", token, params.model_dump())

    @action(ListSubscriptions)
    async def list_subscriptions(self, params: ListSubscriptions, token: str) -> Any:
        """List subscriptions."""
        return await self._request("GET", "/subscriptions", token, params=params.model_dump())

    @action(NoParams)
    async def get_balance(self, params: NoParams, token: str) -> Any:
        """Get the account balance."""
        return await self._request("GET", "/balance", token)

    @action(ListPayments)
    async def list_payments(self, params: ListPayments, token: str) -> Any:
        """List payment intents."""
        return await self._request("GET", "/payment_intents", token, params={"limit": params.limit})
