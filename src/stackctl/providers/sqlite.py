"""SQLite through the libsql driver adapter, stored in the XDG data dir."""

from __future__ import annotations

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
from stackctl.providers.templates import DATABASE_URL_VAR, PRISMA_CONFIG_TS, client_ts

LIBSQL_IMPORT = "import { PrismaLibSql } from '@prisma/adapter-libsql'"


def setup(option: LocalDevOption, ctx: SetupContext) -> SetupResult:
    """Point both URLs at the local file; nothing needs to run."""
    url = ctx.sqlite_url
    ctx.output(f"  [OK] SQLite path: {url}")
    return SetupResult(env_vars={"DATABASE_URL": url, "DIRECT_URL": url})


SQLITE = ProviderDefinition(
    id="sqlite",
    display_name="SQLite",
    description="Local SQLite database using libsql adapter",
    data_model_provider="sqlite",
    auth_adapter_provider="sqlite",
    dependencies=Dependencies(
        add={"@prisma/adapter-libsql": "^7.0.0"},
        remove=("@prisma/adapter-pg", "@prisma/adapter-neon", "pg"),
    ),
    local_dev_options=(
        LocalDevOption(
            type=LocalDevType.LOCAL_FILE,
            label="XDG file (recommended)",
            description="Store database in the XDG data directory (auto-configured)",
            package_scripts={
                "dev": "prisma studio",
                "db:start": NOOP_SCRIPT,
                "db:stop": NOOP_SCRIPT,
            },
        ),
    ),
    production_env_vars=(
        ProductionEnvVar(
            name="DATABASE_URL",
            description="SQLite file path or libsql URL",
            required=True,
            example="file:./prod.db",
        ),
    ),
    schema_env_vars=(DATABASE_URL_VAR,),
    docs=ProviderDocs(
        prisma="https://www.prisma.io/docs/orm/overview/databases/sqlite",
        provider="https://www.prisma.io/docs/orm/overview/databases/sqlite",
    ),
    templates=ProviderTemplates(
        client_ts=client_ts(
            LIBSQL_IMPORT,
            "new PrismaLibSql({\n    url: serverEnv.DATABASE_URL,\n  })",
        ),
        prisma_config_ts=PRISMA_CONFIG_TS,
    ),
    readme=ProviderReadme(
        quickstart="""\
## Quick Start

1. The database file is stored at `{sqlite_path}` (XDG-compliant)
2. Run migrations: `pnpm db:migrate:dev --name init`
3. Open Prisma Studio: `pnpm db:studio`""",
        troubleshooting="""\
## Troubleshooting

**Database file not found**
- Ensure DATABASE_URL is set to `file:{sqlite_path}`
- The directory will be created automatically on first migration

**Permission errors**
- Check that the parent directory exists and is writable""",
    ),
    setup=setup,
)
