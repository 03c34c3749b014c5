"""Consolidated .env file generation.

Values starting with ``#`` are placeholders: they mark a variable that still
needs a real value and are written unquoted so dotenv loaders read them as
empty.
"""

from __future__ import annotations

import base64
import re
import secrets
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from stackctl.env.schema import EnvVarDefinition

_ENV_LINE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=(.*)$")
_NEEDS_QUOTES = re.compile(r"[\s#\"]")

PLACEHOLDER_PREFIX = "#"
REQUIRED_PLACEHOLDER = "# REQUIRED - set this value"

CATEGORIES = (
    "Database",
    "Better Auth",
    "Stripe",
    "Email",
    "OAuth Providers",
    "Node",
    "Other",
)


@dataclass(frozen=True)
class EnvVarDefaults:
    """Example value and description for a well-known variable."""

    example: str
    comment: str
    auto_generate: bool = False


ENV_VAR_DEFAULTS: dict[str, EnvVarDefaults] = {
    # Auth
    "BETTER_AUTH_SECRET": EnvVarDefaults(
        example="# Auto-generated",
        comment="Better Auth secret key (min 32 chars) - auto-generated",
        auto_generate=True,
    ),
    "BETTER_AUTH_URL": EnvVarDefaults("http://localhost:3000", "Better Auth base URL"),
    # Stripe
    "STRIPE_SECRET_KEY": EnvVarDefaults(
        "sk_test_...", "Stripe secret key (test mode for development)"
    ),
    "STRIPE_WEBHOOK_SECRET": EnvVarDefaults("whsec_...", "Stripe webhook signing secret"),
    # Email
    "RESEND_API_KEY": EnvVarDefaults("re_...", "Resend API key for sending emails"),
    "EMAIL_FROM": EnvVarDefaults("noreply@example.com", "Default sender email address"),
    # OAuth providers
    "GOOGLE_CLIENT_ID": EnvVarDefaults(
        "# Get from Google Cloud Console", "Google OAuth client ID"
    ),
    "GOOGLE_CLIENT_SECRET": EnvVarDefaults(
        "# Get from Google Cloud Console", "Google OAuth client secret"
    ),
    "GITHUB_CLIENT_ID": EnvVarDefaults(
        "# Get from GitHub Developer Settings", "GitHub OAuth client ID"
    ),
    "GITHUB_CLIENT_SECRET": EnvVarDefaults(
        "# Get from GitHub Developer Settings", "GitHub OAuth client secret"
    ),
    "DISCORD_CLIENT_ID": EnvVarDefaults(
        "# Get from Discord Developer Portal", "Discord OAuth client ID"
    ),
    "DISCORD_CLIENT_SECRET": EnvVarDefaults(
        "# Get from Discord Developer Portal", "Discord OAuth client secret"
    ),
    "APPLE_CLIENT_ID": EnvVarDefaults(
        "# Get from Apple Developer Portal", "Apple OAuth client ID"
    ),
    "APPLE_CLIENT_SECRET": EnvVarDefaults(
        "# Get from Apple Developer Portal", "Apple OAuth client secret"
    ),
    # Database (filled in by db-switch)
    "DATABASE_URL": EnvVarDefaults(
        "# Set by db-switch command", "Database connection string"
    ),
    "DIRECT_URL": EnvVarDefaults(
        "# Direct connection for migrations", "Direct database URL for migrations"
    ),
    "TURSO_DATABASE_URL": EnvVarDefaults("libsql://your-db.turso.io", "Turso database URL"),
    "TURSO_AUTH_TOKEN": EnvVarDefaults("# Get from Turso CLI", "Turso authentication token"),
    "TURSO_DB_NAME": EnvVarDefaults("my-db", "Turso database name (for CLI migrations)"),
    "USE_LOCAL_DB": EnvVarDefaults("true", "Use local database instead of remote"),
    # Node
    "NODE_ENV": EnvVarDefaults("development", "Node environment"),
}


def generate_secret(length: int = 32) -> str:
    """Random secret: ``length`` bytes, base64 encoded (44 chars for 32 bytes)."""
    return base64.b64encode(secrets.token_bytes(length)).decode("ascii")


def is_placeholder(value: str | None) -> bool:
    """True for missing, empty, or ``#``-prefixed values."""
    return not value or value.startswith(PLACEHOLDER_PREFIX)


def requires_value(definition: EnvVarDefinition) -> bool:
    """Whether the schema rejects the variable when it is unset."""
    return not definition.optional and ".default(" not in definition.validator


def categorize(name: str) -> str:
    """Group a variable name under a .env section heading."""
    if name.startswith(("DATABASE", "DIRECT", "TURSO")) or name == "USE_LOCAL_DB":
        return "Database"
    if name.startswith("BETTER_AUTH"):
        return "Better Auth"
    if name.startswith("STRIPE"):
        return "Stripe"
    if name.startswith(("RESEND", "EMAIL")):
        return "Email"
    if "CLIENT_ID" in name or "CLIENT_SECRET" in name:
        return "OAuth Providers"
    if name == "NODE_ENV":
        return "Node"
    return "Other"


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        inner = value[1:-1]
        return inner.replace('\\"', '"') if value[0] == '"' else inner
    return value


def parse_env_content(content: str) -> dict[str, str]:
    """Parse KEY=VALUE lines, skipping comments and blank lines.

    Surrounding quotes are removed. ``#`` placeholder values are kept as-is.
    """
    values: dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _ENV_LINE.match(stripped)
        if match:
            values[match.group(1)] = _unquote(match.group(2).strip())
    return values


def format_env_value(value: str) -> str:
    """Render a value for the right-hand side of KEY=VALUE."""
    if value.startswith(PLACEHOLDER_PREFIX):
        return value
    if _NEEDS_QUOTES.search(value):
        return '"' + value.replace('"', '\\"') + '"'
    return value


def merge_env_content(existing: str, new_vars: Mapping[str, str]) -> str:
    """Update or append variables while keeping every other line intact."""
    result: list[str] = []
    updated: set[str] = set()

    for line in existing.split("\n"):
        match = _ENV_LINE.match(line.strip())
        if match and match.group(1) in new_vars:
            key = match.group(1)
            result.append(f"{key}={format_env_value(new_vars[key])}")
            updated.add(key)
        else:
            result.append(line)

    remaining = [key for key in new_vars if key not in updated]
    if remaining:
        if result and result[-1].strip():
            result.append("")
        for key in remaining:
            result.append(f"{key}={format_env_value(new_vars[key])}")
        result.append("")

    return "\n".join(result)


def generate_env(
    schema_vars: Sequence[EnvVarDefinition],
    existing_content: str = "",
    overrides: Mapping[str, str] | None = None,
    *,
    generated_by: str = "stackctl",
    secret_factory: Callable[[], str] = generate_secret,
) -> str:
    """Build the consolidated .env for every schema variable.

    Existing values are kept, ``overrides`` win over them, secrets flagged for
    auto-generation are created when missing, and documented examples fill
    the rest. Override keys not yet in the schema are still written.

    Args:
        schema_vars: Declarations parsed from the env schema source
        existing_content: Current .env content ("" if none)
        overrides: Values that replace existing ones (e.g. connection strings)
        generated_by: Tool name recorded in the header
        secret_factory: Source of new secrets

    Returns:
        Complete .env content
    """
    values = parse_env_content(existing_content)
    if overrides:
        values.update(overrides)

    grouped: dict[str, list[EnvVarDefinition]] = {name: [] for name in CATEGORIES}
    known = {v.name for v in schema_vars}

    for definition in schema_vars:
        defaults = ENV_VAR_DEFAULTS.get(definition.name)
        if defaults and defaults.auto_generate and is_placeholder(values.get(definition.name)):
            values[definition.name] = secret_factory()
        grouped[categorize(definition.name)].append(definition)

    for name in overrides or {}:
        if name not in known:
            grouped[categorize(name)].append(EnvVarDefinition(name=name, validator="z.string()"))
            known.add(name)

    lines = [
        "# Environment Configuration",
        f"# Generated by: {generated_by}",
        "",
    ]

    for category, definitions in grouped.items():
        if not definitions:
            continue
        lines.append(f"# {category}")
        for definition in definitions:
            defaults = ENV_VAR_DEFAULTS.get(definition.name)
            if definition.name in values:
                value = values[definition.name]
            elif defaults:
                value = defaults.example
            else:
                value = REQUIRED_PLACEHOLDER if requires_value(definition) else ""

            comment = defaults.comment if defaults else definition.comment
            if comment and not value.startswith(PLACEHOLDER_PREFIX):
                lines.append(f"# {comment}")
            lines.append(f"{definition.name}={format_env_value(value)}")
        lines.append("")

    return "\n".join(lines)


def check_missing_env_vars(
    schema_vars: Sequence[EnvVarDefinition], env_content: str
) -> list[str]:
    """Required variables whose value is empty or still a placeholder."""
    values = parse_env_content(env_content)
    return [
        definition.name
        for definition in schema_vars
        if requires_value(definition) and is_placeholder(values.get(definition.name))
    ]
