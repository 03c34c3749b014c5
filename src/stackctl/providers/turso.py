"""Turso distributed SQLite.

Migrations are generated against a local SQLite file (``DATABASE_URL``) and
then applied to the remote database with ``turso db shell``. The runtime
client connects with ``TURSO_DATABASE_URL`` and ``TURSO_AUTH_TOKEN``.
"""

from __future__ import annotations

from stackctl.env.schema import EnvVarDefinition
from stackctl.providers.base import (
    NOOP_SCRIPT,
    Dependencies,
    LocalDevOption,
    LocalDevType,
    ProductionEnvVar,
    ProviderDefinition,
    ProviderDocs,
    ProviderReadme,
    ProviderTemplates,
    SetupContext,
    SetupResult,
)
from stackctl.providers.sqlite import LIBSQL_IMPORT
from stackctl.providers.templates import PRISMA_CONFIG_TS, client_ts

PLACEHOLDERS = {
    "TURSO_DATABASE_URL": "# Get from: turso db show <db-name> --url",
    "TURSO_AUTH_TOKEN": "# Get from: turso db tokens create <db-name>",
    "TURSO_DB_NAME": "# Your Turso database name (for CLI migrations)",
}

PROMPTS = {
    "TURSO_DATABASE_URL": "TURSO_DATABASE_URL (libsql://...)",
    "TURSO_AUTH_TOKEN": "TURSO_AUTH_TOKEN",
    "TURSO_DB_NAME": "TURSO_DB_NAME (for CLI migrations)",
}

MIGRATE_DEPLOY = (
    "for f in prisma/migrations/*/migration.sql; do "
    'echo "Applying $f..." && turso db shell $TURSO_DB_NAME < "$f"; done'
)


def setup(option: LocalDevOption, ctx: SetupContext) -> SetupResult:
    """Local SQLite URLs plus the remote credentials (asked for, or placeholders)."""
    url = ctx.sqlite_url
    ctx.output(f"  [OK] Local SQLite path: {url}")
    env_vars = {"DATABASE_URL": url, "DIRECT_URL": url}

    if ctx.skip_prompts:
        ctx.output("  [WARN] Skipping prompts - TURSO_* variables will need to be set manually")
        env_vars.update(PLACEHOLDERS)
        return SetupResult(env_vars=env_vars)

    ctx.output("  Turso credentials (get from: turso db show <db-name>)")
    ctx.output("  Leave empty to configure later")
    for name, message in PROMPTS.items():
        value = ctx.ask(message).strip()
        env_vars[name] = value or PLACEHOLDERS[name]

    ctx.output("  [OK] Turso configuration complete")
    return SetupResult(env_vars=env_vars)


TURSO = ProviderDefinition(
    id="turso",
    display_name="Turso",
    description="Turso distributed SQLite database",
    data_model_provider="sqlite",
    auth_adapter_provider="sqlite",
    dependencies=Dependencies(
        add={"@prisma/adapter-libsql": "^7.0.0"},
        remove=("@prisma/adapter-pg", "@prisma/adapter-neon", "pg"),
    ),
    local_dev_options=(
        LocalDevOption(
            type=LocalDevType.LOCAL_FILE,
            label="Local SQLite + Remote Turso",
            description="Local SQLite for migrations (XDG data directory), Turso for production",
            env_vars=PLACEHOLDERS,
            package_scripts={
                "dev": "prisma studio",
                "db:start": NOOP_SCRIPT,
                "db:stop": NOOP_SCRIPT,
            },
        ),
    ),
    production_env_vars=(
        ProductionEnvVar(
            name="TURSO_DATABASE_URL",
            description="Turso database URL (libsql://...)",
            required=True,
            example="libsql://your-db.turso.io",
        ),
        ProductionEnvVar(
            name="TURSO_AUTH_TOKEN",
            description="Turso authentication token",
            required=True,
            example="eyJhbGciOiJFZERTQSIsInR5cCI6IkpXVCJ9...",
        ),
        ProductionEnvVar(
            name="TURSO_DB_NAME",
            description="Turso database name (for CLI migrations)",
            required=True,
            example="my-prod-db",
        ),
    ),
    schema_env_vars=(
        EnvVarDefinition(
            name="DATABASE_URL",
            validator="z.string()",
            comment="Database (local SQLite for migrations)",
        ),
        EnvVarDefinition(
            name="TURSO_DATABASE_URL",
            validator="z.string()",
            comment="Turso (runtime)",
        ),
        EnvVarDefinition(name="TURSO_AUTH_TOKEN", validator="z.string()"),
        EnvVarDefinition(
            name="TURSO_DB_NAME",
            validator="z.string()",
            comment="Turso database name (for CLI migrations)",
        ),
    ),
    docs=ProviderDocs(
        prisma="https://www.prisma.io/docs/orm/overview/databases/turso",
        provider="https://docs.turso.tech",
    ),
    templates=ProviderTemplates(
        client_ts=client_ts(
            LIBSQL_IMPORT,
            "new PrismaLibSql({\n"
            "    url: serverEnv.TURSO_DATABASE_URL,\n"
            "    authToken: serverEnv.TURSO_AUTH_TOKEN,\n"
            "  })",
            doc=(
                "Creates Prisma client with Turso adapter\n"
                "Uses TURSO_DATABASE_URL and TURSO_AUTH_TOKEN for remote connection"
            ),
        ),
        prisma_config_ts=PRISMA_CONFIG_TS,
    ),
    readme=ProviderReadme(
        quickstart="""\
## Quick Start

### 1. Set up Turso

```bash
# Create a Turso database
turso db create template-dev

# Get your database URL
turso db show template-dev --url

# Create an auth token
turso db tokens create template-dev
```

### 2. Configure environment variables

Add to `.env`:
```bash
# Local SQLite for migrations (required)
DATABASE_URL="file:{sqlite_path}"

# Turso credentials for runtime
TURSO_DATABASE_URL="libsql://your-db-name.turso.io"
TURSO_AUTH_TOKEN="your-token-here"
TURSO_DB_NAME="template-dev"
```

### 3. Run migrations (two-step process)

```bash
# Step 1: Generate migration against local SQLite
pnpm db:migrate:dev --name init

# Step 2: Apply every migration to remote Turso
pnpm db:migrate:deploy
```""",
        troubleshooting="""\
## Troubleshooting

**"Cannot migrate" or migration errors**
- Turso doesn't support `prisma migrate` directly against remote URLs
- Ensure `DATABASE_URL` points to a local SQLite file
- Run migrations locally, then apply SQL to Turso with `turso db shell`

**Connection timeout**
- Verify `TURSO_DATABASE_URL` starts with `libsql://`
- Check that `TURSO_AUTH_TOKEN` is valid and not expired
- Run `turso db list` to verify the database exists

**"Database not found" error**
- Ensure the URL matches exactly (no trailing slashes)
- Verify you're using the correct database name

**Local dev vs Production**
- Local development uses `DATABASE_URL` (local SQLite file)
- Production runtime uses `TURSO_DATABASE_URL` + `TURSO_AUTH_TOKEN`""",
    ),
    setup=setup,
    migrate_deploy_script=MIGRATE_DEPLOY,
)
