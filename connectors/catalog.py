"""
Provider catalog — static metadata for every provider the hub knows about.

Pure data: the UI groups providers by category and shows the credential help
link; the connection tool advertises ``ENABLED_PROVIDERS`` to the agent.
Only enabled providers have adapters.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ProviderDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    category: str  # hosting | database | version-control | payments | email | domains
    auth_method: str  # api-key | personal-token
    token_name: str
    token_help_url: str
    token_placeholder: str
    docs_url: str
    features: Tuple[str, ...] = ()


def _p(**kwargs) -> ProviderDescriptor:
    kwargs["features"] = tuple(kwargs.get("features", ()))
    return ProviderDescriptor(**kwargs)


PROVIDERS: Dict[str, ProviderDescriptor] = {
    p.id: p
    for p in [
        _p(
            id="github",
            name="GitHub",
            description="Version control, repos, commits",
            category="version-control",
            auth_method="personal-token",
            token_name="Personal Access Token",
            token_help_url="https://github.com/settings/tokens?type=beta",
            token_placeholder="github_pat_...",
            docs_url="https://docs.github.com/en/rest",
            features=["Push/pull code", "Create repos", "Manage branches", "Create PRs"],
        ),
        _p(
            id="vercel",
            name="Vercel",
            description="Deploy, domains, SSL, previews",
            category="hosting",
            auth_method="personal-token",
            token_name="Access Token",
            token_help_url="https://vercel.com/account/tokens",
            token_placeholder="Bearer ...",
            docs_url="https://vercel.com/docs/rest-api",
            features=["Deploy projects", "Manage domains", "SSL certificates",
                      "Environment variables", "Preview deploys"],
        ),
        _p(
            id="netlify",
            name="Netlify",
            description="Deploy, domains, forms, functions",
            category="hosting",
            auth_method="personal-token",
            token_name="Personal Access Token",
            token_help_url="https://app.netlify.com/user/applications#personal-access-tokens",
            token_placeholder="nfp_...",
            docs_url="https://docs.netlify.com/api/get-started/",
            features=["Deploy sites", "Manage domains", "SSL certificates",
                      "Form submissions", "Functions"],
        ),
        _p(
            id="supabase",
            name="Supabase",
            description="Database, auth, storage, functions",
            category="database",
            auth_method="personal-token",
            token_name="Access Token",
            token_help_url="https://supabase.com/dashboard/account/tokens",
            token_placeholder="sbp_...",
            docs_url="https://supabase.com/docs/reference/api/introduction",
            features=["Create tables", "Manage auth", "File storage",
                      "Edge functions", "Database migrations"],
        ),
        _p(
            id="stripe",
            name="Stripe",
            description="Payments, subscriptions, invoices",
            category="payments",
            auth_method="api-key",
            token_name="Secret Key",
            token_help_url="https://dashboard.stripe.com/apikeys",
            token_placeholder="sk_live_... or sk_test_...",
            docs_url="https://stripe.com/docs/api",
            features=["Products & prices", "Checkout sessions", "Subscriptions",
                      "Customer management"],
        ),
        _p(
            id="sendgrid",
            name="SendGrid",
            description="Transactional email, templates",
            category="email",
            auth_method="api-key",
            token_name="API Key",
            token_help_url="https://app.sendgrid.com/settings/api_keys",
            token_placeholder="SG....",
            docs_url="https://docs.sendgrid.com/api-reference",
            features=["Send emails", "Email templates", "Contact lists", "Delivery tracking"],
        ),
        _p(
            id="namecheap",
            name="Namecheap",
            description="Domains, DNS records",
            category="domains",
            auth_method="api-key",
            token_name="API User | API Key | Client IP",
            token_help_url="https://www.namecheap.com/support/api/intro/",
            token_placeholder="apiUser|apiKey|yourPublicIP",
            docs_url="https://www.namecheap.com/support/api/methods/",
            features=["DNS records", "Domain management", "Nameserver config"],
        ),
        _p(
            id="cloudflare",
            name="Cloudflare",
            description="DNS, CDN, security, pages",
            category="domains",
            auth_method="api-key",
            token_name="API Token",
            token_help_url="https://dash.cloudflare.com/profile/api-tokens",
            token_placeholder="Your Cloudflare API token",
            docs_url="https://developers.cloudflare.com/api/",
            features=["DNS records", "CDN config", "Security rules", "Pages deployment"],
        ),
        # ── catalogued, no adapter yet ────────────────────────────────────
        _p(
            id="railway",
            name="Railway",
            description="Deploy, databases, env variables",
            category="hosting",
            auth_method="personal-token",
            token_name="API Token",
            token_help_url="https://railway.app/account/tokens",
            token_placeholder="Your Railway token",
            docs_url="https://docs.railway.app/reference/public-api",
            features=["Deploy services", "Manage databases", "Environment variables"],
        ),
        _p(
            id="render",
            name="Render",
            description="Deploy, databases, cron jobs",
            category="hosting",
            auth_method="api-key",
            token_name="API Key",
            token_help_url="https://dashboard.render.com/u/settings#api-keys",
            token_placeholder="rnd_...",
            docs_url="https://api-docs.render.com/",
            features=["Deploy services", "Managed databases", "Cron jobs"],
        ),
        _p(
            id="firebase",
            name="Firebase",
            description="Firestore, auth, storage",
            category="database",
            auth_method="api-key",
            token_name="Service Account Key",
            token_help_url="https://console.firebase.google.com/project/_/settings/serviceaccounts/adminsdk",
            token_placeholder="Paste JSON key or token",
            docs_url="https://firebase.google.com/docs/reference/rest",
            features=["Firestore database", "Authentication", "File storage", "Cloud functions"],
        ),
        _p(
            id="planetscale",
            name="PlanetScale",
            description="MySQL databases, branches",
            category="database",
            auth_method="personal-token",
            token_name="Service Token",
            token_help_url="https://app.planetscale.com/~/settings/service-tokens",
            token_placeholder="pscale_tkn_...",
            docs_url="https://api-docs.planetscale.com/",
            features=["Create databases", "Database branches", "Deploy requests",
                      "Schema management"],
        ),
        _p(
            id="paypal",
            name="PayPal",
            description="Payments, subscriptions",
            category="payments",
            auth_method="api-key",
            token_name="Client ID + Secret",
            token_help_url="https://developer.paypal.com/dashboard/applications/",
            token_placeholder="Client ID",
            docs_url="https://developer.paypal.com/docs/api/overview/",
            features=["Payments", "Subscriptions", "Invoices"],
        ),
        _p(
            id="resend",
            name="Resend",
            description="Modern transactional email",
            category="email",
            auth_method="api-key",
            token_name="API Key",
            token_help_url="https://resend.com/api-keys",
            token_placeholder="re_...",
            docs_url="https://resend.com/docs/api-reference",
            features=["Send emails", "React email templates", "Delivery tracking"],
        ),
    ]
}

# Providers the agent may target.
ENABLED_PROVIDERS: List[str] = [
    "github", "vercel", "netlify", "supabase", "stripe", "sendgrid", "namecheap", "cloudflare",
]

# Category display order and labels
CATEGORIES: List[Tuple[str, str]] = [
    ("hosting", "Hosting & Deployment"),
    ("version-control", "Version Control"),
    ("database", "Database"),
    ("payments", "Payments"),
    ("domains", "Domains & DNS"),
    ("email", "Email"),
]


def get_provider(provider_id: str) -> Optional[ProviderDescriptor]:
    return PROVIDERS.get(provider_id)


def display_name(provider_id: str) -> str:
    meta = PROVIDERS.get(provider_id)
    return meta.name if meta else provider_id


def providers_by_category() -> List[Tuple[str, List[ProviderDescriptor]]]:
    """Group the catalog in ``CATEGORIES`` order (label, descriptors)."""
    return [
        (label, [p for p in PROVIDERS.values() if p.category == category_id])
        for category_id, label in CATEGORIES
    ]
