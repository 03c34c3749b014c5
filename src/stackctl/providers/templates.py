"""Generated source bodies shared by several providers."""

from __future__ import annotations

from stackctl.env.schema import EnvVarDefinition

ENV_IMPORT = "import { serverEnv } from '@_/platform/server'"

# Migrations always connect through DIRECT_URL
PRISMA_CONFIG_TS = """\
import path from 'node:path'
import 'dotenv/config'
import { defineConfig } from 'prisma/config'

export default defineConfig({
  schema: path.join(import.meta.dirname, 'prisma', 'schema.prisma'),
  migrations: {
    path: path.join(import.meta.dirname, 'prisma', 'migrations'),
  },
  datasource: {
    url: process.env.DIRECT_URL,
  },
})
"""


def client_ts(adapter_import: str, adapter_expr: str, doc: str | None = None) -> str:
    """Render a client bootstrap that caches one client per process in dev.

    Args:
        adapter_import: Import line for the driver adapter
        adapter_expr: Expression constructing the adapter (may span lines)
        doc: Optional JSDoc body placed above ``createPrismaClient``
    """
    lines = [
        ENV_IMPORT,
        adapter_import,
        "import { PrismaClient } from './generated/prisma/client'",
        "",
        "const globalForPrisma = globalThis as unknown as { prisma: PrismaClient | undefined }",
        "",
    ]
    if doc:
        lines.append("/**")
        lines.extend(f" * {line}" for line in doc.splitlines())
        lines.append(" */")
    lines.extend(
        [
            "function createPrismaClient() {",
            f"  const adapter = {adapter_expr}",
            "  return new PrismaClient({ adapter })",
            "}",
            "",
            "export const prisma = globalForPrisma.prisma ?? createPrismaClient()",
            "",
            "if (serverEnv.NODE_ENV !== 'production') {",
            "  globalForPrisma.prisma = prisma",
            "}",
            "",
        ]
    )
    return "\n".join(lines)


PG_CLIENT_TS = client_ts(
    "import { PrismaPg } from '@prisma/adapter-pg'",
    "new PrismaPg({ connectionString: serverEnv.DATABASE_URL })",
)

POSTGRES_COMPOSE_YML = """\
services:
  postgres:
    image: postgres:16
    restart: unless-stopped
    ports:
      - "5432:5432"
    environment:
      POSTGRES_USER: postgres
      POSTGRES_PASSWORD: postgres
      POSTGRES_DB: dev
    volumes:
      - postgres_data:/var/lib/postgresql/data
    healthcheck:
      test: ["CMD-SHELL", "pg_isready -U postgres"]
      interval: 5s
      timeout: 5s
      retries: 5

volumes:
  postgres_data:
"""

DATABASE_URL_VAR = EnvVarDefinition(name="DATABASE_URL", validator="z.string()", comment="Database")
DIRECT_URL_VAR = EnvVarDefinition(
    name="DIRECT_URL",
    validator="z.string()",
    comment="Direct connection for migrations",
)

