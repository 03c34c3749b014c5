"""Supabase with the local development stack from the Supabase CLI."""

from __future__ import annotations

import structlog

from stackctl.providers.base import (
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
from stackctl.providers.templates import (
    DATABASE_URL_VAR,
    DIRECT_URL_VAR,
    PG_CLIENT_TS,
    PRISMA_CONFIG_TS,
)
from stackctl.system.dependencies import SYSTEM_DEPS
from stackctl.system.supabase import SupabaseError, setup_supabase

logger = structlog.get_logger(__name__)

DRY_RUN_PLACEHOLDERS = {
    "DATABASE_URL": "# Captured from supabase status on switch",
    "DIRECT_URL": "# Captured from supabase status on switch",
}


def setup(option: LocalDevOption, ctx: SetupContext) -> SetupResult:
    """Initialize and start the local stack, then read its database URL.

    Any failure degrades to empty values with a warning.
    """
    if ctx.dry_run:
        ctx.output("  Would run supabase init/start to capture the database URL")
        return SetupResult(env_vars=dict(DRY_RUN_PLACEHOLDERS))

    ctx.output("  Setting up Supabase local stack...")
    try:
        status = setup_supabase(ctx.paths.db_package_dir)
    except (SupabaseError, ValueError) as e:
        logger.warning("supabase.setup_failed", error=str(e))
        ctx.output(f"  [WARN] Supabase setup failed: {e}")
        ctx.output("  [WARN] DATABASE_URL and DIRECT_URL will need to be set manually")
        return SetupResult()

    ctx.output("  [OK] Captured connection string from Supabase")
    return SetupResult(
        env_vars={"DATABASE_URL": status.database_url, "DIRECT_URL": status.database_url}
    )


SUPABASE = ProviderDefinition(
    id="supabase",
    display_name="Supabase",
    description="Supabase with local development stack",
    data_model_provider="postgresql",
    auth_adapter_provider="postgresql",
    dependencies=Dependencies(
        add={"@prisma/adapter-pg": "^7.0.0", "pg": "^8.13.0"},
        remove=("@prisma/adapter-libsql", "@prisma/adapter-neon"),
    ),
    local_dev_options=(
        LocalDevOption(
            type=LocalDevType.VENDOR_LOCAL_STACK,
            label="Supabase Local",
            description="Local Supabase stack (auto-configured from supabase status)",
            package_scripts={
                "dev": "supabase start && prisma studio",
                "db:start": "supabase start",
                "db:stop": "supabase stop",
            },
            system_deps=(SYSTEM_DEPS["docker"], SYSTEM_DEPS["supabase"]),
        ),
    ),
    production_env_vars=(
        ProductionEnvVar(
            name="DATABASE_URL",
            description="Supabase PostgreSQL pooled connection string (port 6543)",
            required=True,
            example=(
                "postgresql://postgres.xxxxx:password@"
                "aws-0-us-west-1.pooler.supabase.com:6543/postgres"
            ),
        ),
        ProductionEnvVar(
            name="DIRECT_URL",
            description="Supabase PostgreSQL direct connection string (port 5432)",
            required=True,
            example=(
                "postgresql://postgres.xxxxx:password@"
                "aws-0-us-west-1.pooler.supabase.com:5432/postgres"
            ),
        ),
    ),
    schema_env_vars=(DATABASE_URL_VAR, DIRECT_URL_VAR),
    docs=ProviderDocs(
        prisma="https://www.prisma.io/docs/orm/overview/databases/supabase",
        provider="https://supabase.com/docs/guides/cli/local-development",
    ),
    templates=ProviderTemplates(
        client_ts=PG_CLIENT_TS,
        prisma_config_ts=PRISMA_CONFIG_TS,
    ),
    readme=ProviderReadme(
        quickstart="""\
## Quick Start

### Prerequisites
- Install Supabase CLI: `npm install -g supabase`
- Docker must be running

### Local Development
1. Initialize (first time only): `supabase init`
2. Start local stack: `pnpm db:start`
3. Run migrations: `pnpm db:migrate:dev --name init`
4. Open Prisma Studio: `pnpm db:studio`

The local Supabase stack includes PostgreSQL, Auth, Storage, and more.""",
        troubleshooting="""\
## Troubleshooting

**"supabase: command not found"**
- Install Supabase CLI: `npm install -g supabase`

**Docker errors**
- Ensure Docker Desktop is running
- Try: `supabase stop && supabase start`

**Port conflicts**
- Default PostgreSQL port is 54322 (not 5432)
- Stop other PostgreSQL instances if needed

**Connection pooler errors (production)**
- Use port 5432 for DIRECT_URL (direct connection)
- Use port 6543 for DATABASE_URL (pooled connection)""",
    ),
    setup=setup,
)
