"""Data-model schema and dependent source patching."""

from stackctl.schema.patch import (
    ensure_generator_compat,
    patch_auth_adapter,
    patch_package_scripts,
    patch_schema_for_provider,
    remove_deprecated_url_field,
    render_readme,
    update_datasource_provider,
)

__all__ = [
    "ensure_generator_compat",
    "patch_auth_adapter",
    "patch_package_scripts",
    "patch_schema_for_provider",
    "remove_deprecated_url_field",
    "render_readme",
    "update_datasource_provider",
]
