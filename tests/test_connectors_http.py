"""
Wire-protocol tests for the service adapters, driven through httpx.MockTransport.
"""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from config.settings import Settings
from connectors.cloudflare import CloudflareConnector
from connectors.errors import (
    AuthError,
    InvalidActionParams,
    NetworkError,
    ProviderError,
    UnknownAction,
)
from connectors.github import GitHubConnector
from connectors.namecheap import NamecheapConnector, parse_credential
from connectors.sendgrid import SendGridConnector
from connectors.stripe import StripeConnector, form_encode
from connectors.supabase import SupabaseConnector
from connectors.vercel import VercelConnector

NC_TOKEN = "alice|k3y-s3cret|203.0.113.7"


def _make(cls, handler, **overrides):
    settings = Settings(network_backoff_seconds=0, **{"network_max_retries": 0, **overrides})
    return cls(settings, httpx.MockTransport(handler))


class TestGitHub:
    @pytest.mark.asyncio
    async def test_verify_maps_profile(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/user"
            assert request.headers["Authorization"] == "Bearer ghp_secret"
            return httpx.Response(
                200,
                json={"id": 42, "login": "octo", "name": None, "avatar_url": "https://a/x.png",
                      "public_repos": 3, "plan": {"name": "pro"}},
            )

        info = await _make(GitHubConnector, handler).test_connection("ghp_secret")

        assert info.id == "42"
        assert info.name == "octo"
        assert info.plan == "pro"
        assert info.extra["login"] == "octo"

    @pytest.mark.asyncio
    async def test_401_is_auth_error_with_provider_message(self):
        handler = lambda request: httpx.Response(401, json={"message": "Bad credentials"})

        with pytest.raises(AuthError) as exc:
            await _make(GitHubConnector, handler).test_connection("ghp_bad")
        assert exc.value.message == "Bad credentials"
        assert exc.value.status == 401

    @pytest.mark.asyncio
    async def test_other_status_is_provider_error(self):
        handler = lambda request: httpx.Response(404, json={"message": "Not Found"})

        with pytest.raises(ProviderError) as exc:
            await _make(GitHubConnector, handler).execute("get_repo", {"owner": "o", "repo": "r"}, "t")
        assert not isinstance(exc.value, AuthError)
        assert exc.value.status == 404

    @pytest.mark.asyncio
    async def test_error_without_body_uses_status(self):
        handler = lambda request: httpx.Response(500)

        with pytest.raises(ProviderError, match="GitHub API error: 500"):
            await _make(GitHubConnector, handler).execute("list_repos", {}, "t")

    @pytest.mark.asyncio
    async def test_get_file_drops_missing_ref(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json={"name": "README.md"})

        await _make(GitHubConnector, handler).execute(
            "get_file", {"owner": "o", "repo": "r", "path": "README.md"}, "t"
        )
        assert seen["url"].path == "/repos/o/r/contents/README.md"
        assert "ref" not in seen["url"].params

    @pytest.mark.asyncio
    async def test_put_file_base64_encodes(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"content": {}})

        await _make(GitHubConnector, handler).execute(
            "put_file", {"owner": "o", "repo": "r", "path": "a.txt", "content": "hello"}, "t"
        )
        assert seen["body"]["content"] == "aGVsbG8="
        assert seen["body"]["message"] == "Update a.txt"

    @pytest.mark.asyncio
    async def test_unknown_action_lists_available(self):
        conn = _make(GitHubConnector, lambda r: httpx.Response(200, json={}))

        with pytest.raises(UnknownAction) as exc:
            await conn.execute("delete_everything", {}, "t")
        assert 'Unknown GitHub action: "delete_everything"' in exc.value.message
        assert "list_repos" in exc.value.available

    @pytest.mark.asyncio
    async def test_invalid_params(self):
        conn = _make(GitHubConnector, lambda r: httpx.Response(200, json={}))

        with pytest.raises(InvalidActionParams, match="github.get_repo"):
            await conn.execute("get_repo", {"owner": "o"}, "t")
        with pytest.raises(InvalidActionParams):
            await conn.execute("get_repo", {"owner": "o", "repo": "r", "bogus": 1}, "t")


class TestRetry:
    @pytest.mark.asyncio
    async def test_transport_failures_retried_then_succeed(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"id": 1, "login": "octo"})

        info = await _make(GitHubConnector, handler, network_max_retries=2).test_connection("t")

        assert info.name == "octo"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_network_error(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(NetworkError) as exc:
            await _make(GitHubConnector, handler, network_max_retries=1).test_connection("t")

        assert len(attempts) == 2
        assert exc.value.message == "Could not reach GitHub (ConnectTimeout)"

    @pytest.mark.asyncio
    async def test_http_errors_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(503, json={"message": "unavailable"})

        with pytest.raises(ProviderError):
            await _make(GitHubConnector, handler, network_max_retries=3).test_connection("t")
        assert len(attempts) == 1

    def test_backoff_is_exponential(self):
        settings = Settings(network_backoff_seconds=0.5, network_backoff_multiplier=2.0)
        assert [settings.backoff_delay(n) for n in range(3)] == [0.5, 1.0, 2.0]


class TestVercel:
    @pytest.mark.asyncio
    async def test_error_from_envelope(self):
        handler = lambda request: httpx.Response(
            403, json={"error": {"code": "forbidden", "message": "Not authorized"}}
        )

        with pytest.raises(AuthError) as exc:
            await _make(VercelConnector, handler).test_connection("t")
        assert exc.value.message == "Not authorized"
        assert exc.value.provider_code == "forbidden"

    @pytest.mark.asyncio
    async def test_camel_case_params(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, json={"id": "prj_1"})

        await _make(VercelConnector, handler).execute("get_project", {"projectId": "prj_1"}, "t")
        assert seen["path"].endswith("/projects/prj_1")


class TestStripe:
    def test_form_encode_nested(self):
        pairs = form_encode(
            {
                "mode": "payment",
                "line_items": [{"price": "price_1", "quantity": 2}],
                "metadata": {"order": "42"},
                "livemode": False,
                "skip": None,
            }
        )
        assert pairs == [
            ("mode", "payment"),
            ("line_items[0][price]", "price_1"),
            ("line_items[0][quantity]", "2"),
            ("metadata[order]", "42"),
            ("livemode", "false"),
        ]

    @pytest.mark.asyncio
    async def test_checkout_is_form_encoded(self):
        seen = {}

        def handler(request):
            seen["ctype"] = request.headers["Content-Type"]
            seen["form"] = parse_qs(request.content.decode())
            seen["path"] = request.url.path
            return httpx.Response(200, json={"id": "cs_1", "url": "https://checkout"})

        result = await _make(StripeConnector, handler).execute(
            "create_checkout",
            {
                "line_items": [{"price": "price_1", "quantity": 1}],
                "success_url": "https://ok",
                "cancel_url": "https://cancel",
            },
            "sk_test_123",
        )

        assert result["id"] == "cs_1"
        assert seen["path"] == "/v1/checkout/sessions"
        assert seen["ctype"] == "application/x-www-form-urlencoded"
        assert seen["form"]["line_items[0][price]"] == ["price_1"]
        assert seen["form"]["mode"] == ["payment"]

    @pytest.mark.asyncio
    async def test_error_body(self):
        handler = lambda request: httpx.Response(
            400, json={"error": {"code": "resource_missing", "message": "No such price"}}
        )

        with pytest.raises(ProviderError) as exc:
            await _make(StripeConnector, handler).execute("create_price", {"product": "p", "unit_amount": 100}, "t")
        assert exc.value.message == "No such price"
        assert exc.value.provider_code == "resource_missing"


class TestSendGrid:
    @pytest.mark.asyncio
    async def test_send_email_202(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(202)

        result = await _make(SendGridConnector, handler).execute(
            "send_email",
            {"to": ["a@example.com", "b@example.com"], "from": "me@example.com", "subject": "Hi", "text": "yo"},
            "SG.key",
        )

        assert result == {"success": True}
        assert seen["body"]["from"] == {"email": "me@example.com"}
        assert seen["body"]["personalizations"][0]["to"] == [
            {"email": "a@example.com"},
            {"email": "b@example.com"},
        ]

    @pytest.mark.asyncio
    async def test_error_message(self):
        handler = lambda request: httpx.Response(401, json={"errors": [{"message": "authorization required"}]})

        with pytest.raises(AuthError, match="authorization required"):
            await _make(SendGridConnector, handler).test_connection("SG.bad")


class TestSupabase:
    @pytest.mark.asyncio
    async def test_create_table_sql(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["sql"] = json.loads(request.content)["query"]
            return httpx.Response(201, json=[])

        await _make(SupabaseConnector, handler).execute(
            "create_table",
            {
                "projectRef": "abc",
                "tableName": "todos",
                "columns": [
                    {"name": "id", "type": "bigint", "primaryKey": True},
                    {"name": "title", "type": "text", "notNull": True},
                ],
            },
            "sbp_x",
        )

        assert seen["path"] == "/v1/projects/abc/database/query"
        assert seen["sql"] == (
            'CREATE TABLE IF NOT EXISTS public."todos" '
            '("id" bigint PRIMARY KEY, "title" text NOT NULL);'
        )

    @pytest.mark.asyncio
    async def test_verify_tolerates_org_failure(self):
        def handler(request):
            if request.url.path == "/v1/organizations":
                return httpx.Response(500, json={"message": "oops"})
            return httpx.Response(200, json=[{"id": "abc", "name": "demo", "region": "us-east-1"}])

        info = await _make(SupabaseConnector, handler).test_connection("sbp_x")
        assert info.extra["projectCount"] == 1


class TestCloudflare:
    @pytest.mark.asyncio
    async def test_envelope_result_unwrapped(self):
        handler = lambda request: httpx.Response(
            200, json={"success": True, "errors": [], "result": [{"id": "z1", "name": "example.com"}]}
        )

        zones = await _make(CloudflareConnector, handler).execute("list_zones", {}, "cf")
        assert zones == [{"id": "z1", "name": "example.com"}]

    @pytest.mark.asyncio
    async def test_envelope_failure_on_200(self):
        handler = lambda request: httpx.Response(
            200, json={"success": False, "errors": [{"code": 81057, "message": "Record already exists."}]}
        )

        with pytest.raises(ProviderError) as exc:
            await _make(CloudflareConnector, handler).execute(
                "create_dns_record",
                {"zoneId": "z1", "type": "A", "name": "www", "content": "192.0.2.1"},
                "cf",
            )
        assert exc.value.message == "Record already exists."
        assert exc.value.provider_code == "81057"

    @pytest.mark.asyncio
    async def test_403_is_auth_error(self):
        handler = lambda request: httpx.Response(
            403, json={"success": False, "errors": [{"code": 9109, "message": "Invalid access token"}]}
        )

        with pytest.raises(AuthError, match="Invalid access token"):
            await _make(CloudflareConnector, handler).test_connection("cf")


_NC_HOSTS = """<?xml version="1.0" encoding="utf-8"?>
<ApiResponse Status="OK" xmlns="http://api.namecheap.com/xml.response">
  <CommandResponse Type="namecheap.domains.dns.getHosts">
    <DomainDNSGetHostsResult Domain="example.co.uk" IsUsingOurDNS="true">
      <host HostId="1" Name="@" Type="A" Address="192.0.2.1" MXPref="10" TTL="1800" />
      <Host HostId="2" Name="www" Type="CNAME" Address="example.co.uk." MXPref="10" TTL="1800" />
    </DomainDNSGetHostsResult>
  </CommandResponse>
</ApiResponse>"""

_NC_ERROR = """<?xml version="1.0" encoding="utf-8"?>
<ApiResponse Status="ERROR" xmlns="http://api.namecheap.com/xml.response">
  <Errors><Error Number="2019166">Domain not found</Error></Errors>
</ApiResponse>"""

_NC_DOMAINS = """<?xml version="1.0" encoding="utf-8"?>
<ApiResponse Status="OK" xmlns="http://api.namecheap.com/xml.response">
  <CommandResponse Type="namecheap.domains.getList">
    <DomainGetListResult>
      <Domain ID="1" Name="example.com" Expires="01/01/2030" IsExpired="false" AutoRenew="true" IsOurDNS="true" />
    </DomainGetListResult>
  </CommandResponse>
</ApiResponse>"""


class TestNamecheap:
    def test_parse_credential(self):
        cred = parse_credential(NC_TOKEN)
        assert cred.api_user == "alice"
        assert cred.client_ip == "203.0.113.7"

    @pytest.mark.parametrize("token", ["", "alice", "alice|key", "alice||1.2.3.4", "a|b|c|d"])
    def test_malformed_credential_is_auth_error(self, token):
        with pytest.raises(AuthError):
            parse_credential(token)

    @pytest.mark.asyncio
    async def test_get_dns_parses_attributes(self):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(200, text=_NC_HOSTS)

        hosts = await _make(NamecheapConnector, handler).execute("get_dns", {"domain": "example.co.uk"}, NC_TOKEN)

        assert seen["params"]["Command"] == "namecheap.domains.dns.getHosts"
        assert seen["params"]["SLD"] == "example"
        assert seen["params"]["TLD"] == "co.uk"
        assert seen["params"]["ApiUser"] == "alice"
        assert seen["params"]["ClientIp"] == "203.0.113.7"
        assert [h["name"] for h in hosts] == ["@", "www"]
        assert hosts[0]["address"] == "192.0.2.1"

    @pytest.mark.asyncio
    async def test_status_error_is_provider_error(self):
        handler = lambda request: httpx.Response(200, text=_NC_ERROR)

        with pytest.raises(ProviderError) as exc:
            await _make(NamecheapConnector, handler).execute("get_dns", {"domain": "nope.com"}, NC_TOKEN)
        assert not isinstance(exc.value, AuthError)
        assert exc.value.message == "Domain not found"
        assert exc.value.provider_code == "2019166"

    @pytest.mark.asyncio
    async def test_verify_error_is_auth_error(self):
        handler = lambda request: httpx.Response(200, text=_NC_ERROR)

        with pytest.raises(AuthError):
            await _make(NamecheapConnector, handler).test_connection(NC_TOKEN)

    @pytest.mark.asyncio
    async def test_verify_lists_domains(self):
        handler = lambda request: httpx.Response(200, text=_NC_DOMAINS)

        info = await _make(NamecheapConnector, handler).test_connection(NC_TOKEN)
        assert info.name == "alice"
        assert info.extra["domains"] == ["example.com"]

    @pytest.mark.asyncio
    async def test_set_dns_numbers_records(self):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(
                200,
                text='<ApiResponse Status="OK"><CommandResponse>'
                '<DomainDNSSetHostsResult Domain="example.com" IsSuccess="true" />'
                "</CommandResponse></ApiResponse>",
            )

        result = await _make(NamecheapConnector, handler).execute(
            "set_dns",
            {
                "domain": "example.com",
                "records": [
                    {"name": "@", "type": "A", "address": "192.0.2.1"},
                    {"name": "mail", "type": "MX", "address": "mx.example.com", "mxPref": 10},
                ],
            },
            NC_TOKEN,
        )

        assert result == {"domain": "example.com", "success": True, "records": 2}
        assert seen["params"]["HostName2"] == "mail"
        assert seen["params"]["MXPref2"] == "10"
        assert "MXPref1" not in seen["params"]

    @pytest.mark.asyncio
    async def test_network_error_hides_query_string(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(NetworkError) as exc:
            await _make(NamecheapConnector, handler).execute("list_domains", {}, NC_TOKEN)
        assert "k3y-s3cret" not in str(exc.value)
        assert "k3y-s3cret" not in str(exc.value.details)


_NC_CHECK = """<?xml version="1.0" encoding="utf-8"?>
<ApiResponse Status="OK" xmlns="http://api.namecheap.com/xml.response">
  <CommandResponse Type="namecheap.domains.check">
    <DomainCheckResult Domain="a.com" Available="true" IsPremiumName="false" />
    <DomainCheckResult Domain="b.com" Available="false" IsPremiumName="false" />
  </CommandResponse>
</ApiResponse>"""


class TestNamecheapAvailability:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("domains", ["a.com,b.com", "a.com, b.com", ["a.com", "b.com"]])
    async def test_domains_as_string_or_list(self, domains):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(200, text=_NC_CHECK)

        result = await _make(NamecheapConnector, handler).execute(
            "check_availability", {"domains": domains}, NC_TOKEN
        )

        assert seen["params"]["DomainList"] == "a.com,b.com"
        assert [r["available"] for r in result] == [True, False]


class TestNonJsonBody:
    @pytest.mark.asyncio
    async def test_html_on_200_is_provider_error(self):
        handler = lambda request: httpx.Response(200, text="<html>portal</html>")

        with pytest.raises(ProviderError, match="GitHub returned a non-JSON response") as exc:
            await _make(GitHubConnector, handler).test_connection("ghp_secret")
        assert not isinstance(exc.value, AuthError)
        assert exc.value.status == 200

    @pytest.mark.asyncio
    async def test_execute_on_html_is_provider_error(self):
        handler = lambda request: httpx.Response(200, text="<html>portal</html>")

        with pytest.raises(ProviderError):
            await _make(VercelConnector, handler).execute("list_projects", {}, "t")
