"""stackctl - monorepo settings CLI.

Switches the database provider of a pnpm/turborepo monorepo and manages
the environment variable schema and .env symlinks its packages share.
"""

__version__ = "0.1.0"
