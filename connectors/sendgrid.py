"""
SendGridConnector — transactional email and templates.

Token: API key (bearer header).  ``/mail/send`` answers 202 with no body.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import Field

from connectors.base import ActionParams, BaseConnector, NoParams, action
from connectors.models import AccountInfo

_SENDGRID_API = "https://api.sendgrid.com/v3"


def _address(value: Union[str, Dict[str, str]]) -> Dict[str, str]:
    return {"email": value} if isinstance(value, str) else value


class SendEmail(ActionParams):
    to: Union[str, List[str]]
    from_: Union[str, Dict[str, str]] = Field(alias="from")
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None


class ListTemplates(ActionParams):
    generations: str = "dynamic"


class SendTemplateEmail(ActionParams):
    to: str
    from_: Union[str, Dict[str, str]] = Field(alias="from")
    template_id: str
    dynamic_template_data: Dict[str, Any] = Field(default_factory=dict)


class GetStats(ActionParams):
    start_date: Optional[str] = None  # YYYY-MM-DD, defaults to 30 days ago


class SendGridConnector(BaseConnector):
    base_url = _SENDGRID_API

    @property
    def provider_name(self) -> str:
        return "sendgrid"

    @property
    def display_name(self) -> str:
        return "SendGrid"

    def _error_message(self, body: Any) -> Optional[str]:
        if isinstance(body, dict) and body.get("errors"):
            return body["errors"][0].get("message")
        return None

    def _unwrap(self, resp: httpx.Response) -> Any:
        if resp.status_code in (202, 204):
            return {"success": True}
        return super()._unwrap(resp)

    async def test_connection(self, token: str) -> AccountInfo:
        user = await self._request("GET", "/user/profile", token)
        full_name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
        return AccountInfo(
            id=user.get("username"),
            name=full_name or user.get("username"),
            email=user.get("email"),
            extra={"company": user.get("company"), "website": user.get("website")},
        )

    @action(SendEmail, summary="Send an email.")
    async def send_email(self, params: SendEmail, token: str) -> Any:
        recipients = params.to if isinstance(params.to, list) else [params.to]
        content = []
        if params.text:
            content.append({"type": "text/plain", "value": params.text})
        if params.html:
            content.append({"type": "text/html", "value": params.html})
        return await self._request(
            "POST",
            "/mail/send",
            token,
            json={
                "personalizations": [{"to": [{"email": r} for r in recipients]}],
                "from": _address(params.from_),
                "subject": params.subject,
                "content": content,
            },
        )

    @action(ListTemplates)
    async def list_templates(self, params: ListTemplates, token: str) -> Any:
        """List email templates."""
        return await self._request("GET", "/templates", token, params={"generations": params.generations})

    @action(SendTemplateEmail, summary="Send a dynamic template email.")
    async def send_template_email(self, params: SendTemplateEmail, token: str) -> Any:
        return await self._request(
            "POST",
            "/mail/send",
            token,
            json={
                "personalizations": [
                    {"to": [{"email": params.to}], "dynamic_template_data": params.dynamic_template_data}
                ],
                "from": _address(params.from_),
                "template_id": params.template_id,
            },
        )

    @action(NoParams)
    async def list_senders(self, params: NoParams, token: str) -> Any:
        """List verified senders."""
        return await self._request("GET", "/verified_senders", token)

    @action(GetStats)
    async def get_stats(self, params: GetStats, token: str) -> Any:
        """Global delivery stats since a date."""
        start = params.start_date or (date.today() - timedelta(days=30)).isoformat()
        return await self._request("GET", "/stats", token, params={"start_date": start})
