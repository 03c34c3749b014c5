"""Environment variable schema, manifest, .env file and symlink management."""

from stackctl.env.dotenv import (
    check_missing_env_vars,
    generate_env,
    merge_env_content,
    parse_env_content,
)
from stackctl.env.manifest import SyncResult, sync_global_env_manifest
from stackctl.env.schema import (
    EnvVarDefinition,
    add_vars,
    extract_var_names,
    parse_env_schema,
    remove_vars,
)
from stackctl.env.symlinks import create_symlinks, get_symlink_status

__all__ = [
    "EnvVarDefinition",
    "SyncResult",
    "add_vars",
    "check_missing_env_vars",
    "create_symlinks",
    "extract_var_names",
    "generate_env",
    "get_symlink_status",
    "merge_env_content",
    "parse_env_content",
    "parse_env_schema",
    "remove_vars",
    "sync_global_env_manifest",
]
