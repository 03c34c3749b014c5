"""stackctl env-config command.

Interactive editor for the env schema source and the values in .env.
Schema edits are staged in memory and only written by the apply action,
which also syncs the global-env manifest.
"""

from __future__ import annotations

from collections.abc import Callable

import click
import structlog

from stackctl.config import ProjectPaths
from stackctl.diff import display_diff, generate_diff
from stackctl.env.dotenv import (
    ENV_VAR_DEFAULTS,
    categorize,
    check_missing_env_vars,
    generate_env,
    generate_secret,
    is_placeholder,
    parse_env_content,
)
from stackctl.env.manifest import sync_global_env_manifest
from stackctl.env.schema import (
    EnvVarDefinition,
    add_vars,
    extract_var_names,
    is_valid_var_name,
    parse_env_schema,
    remove_vars,
)
from stackctl.fileio import atomic_write_text, read_text, read_text_or_empty
from stackctl.prompts import Choice, Prompter

logger = structlog.get_logger(__name__)

Output = Callable[[str], None]

GENERATED_BY = "stackctl env-config"

ACTIONS = [
    Choice("set-values", "Set values for environment variables", "Configure values in .env"),
    Choice("add", "Add new variable to schema", "Add a new environment variable to the schema"),
    Choice("remove", "Remove variable from schema", "Remove an environment variable from the schema"),
    Choice("view", "View schema changes", "Preview schema changes before applying"),
    Choice("apply", "Apply schema changes", "Save schema changes and sync the global-env manifest"),
    Choice("exit", "Exit", "Exit without saving schema changes"),
]

VALIDATOR_TEMPLATES = [
    Choice("z.string()", "String", "Any string value"),
    Choice("z.string().min(1)", "String (non-empty)", "String that cannot be empty"),
    Choice("z.string().url()", "URL", "Valid URL format"),
    Choice("z.coerce.number()", "Number", "Numeric value (coerced from string)"),
    Choice("z.coerce.boolean()", "Boolean", "Boolean value (coerced from string)"),
    Choice("z.string().email()", "Email", "Valid email address"),
    Choice("custom", "Custom", "Enter a custom validator expression"),
]

CUSTOM_VALIDATOR_PREFIX = "z."


def _select_vars(
    schema_vars: list[EnvVarDefinition], prompter: Prompter
) -> list[EnvVarDefinition] | None:
    """Ask which group of variables to edit. None means go back."""
    categories = sorted({categorize(v.name) for v in schema_vars})
    choice = prompter.choose(
        "Which variables do you want to configure?",
        [
            Choice("required", "All required variables"),
            Choice("all", "All variables"),
            *(Choice(c, c, f"Configure {c} variables") for c in categories),
            Choice("back", "Go back"),
        ],
    )
    if choice == "back":
        return None
    if choice == "required":
        return [v for v in schema_vars if not v.optional]
    if choice == "all":
        return list(schema_vars)
    return [v for v in schema_vars if categorize(v.name) == choice]


def set_values(paths: ProjectPaths, prompter: Prompter, output: Output) -> None:
    """Fill .env values for a chosen group of schema variables.

    Secrets flagged for auto-generation are created without prompting when
    missing. An empty answer keeps the shown default.
    """
    output("")
    output("=== Set Environment Variable Values ===")
    schema_vars = parse_env_schema(read_text(paths.env_schema))
    existing = read_text_or_empty(paths.env_file)

    if not existing.strip():
        output("Creating .env with all schema variables...")
        existing = generate_env(schema_vars, generated_by=GENERATED_BY)
        atomic_write_text(paths.env_file, existing)
        output("  [OK] Created .env")

    selected = _select_vars(schema_vars, prompter)
    if selected is None:
        return
    if not selected:
        output("No variables to configure in this category")
        return

    output("")
    output(f"Configuring {len(selected)} variable(s)...")
    output("Press Enter to keep the current value, or type a new value.")

    current = parse_env_content(existing)
    values: dict[str, str] = {}
    for definition in selected:
        value = current.get(definition.name, "")
        defaults = ENV_VAR_DEFAULTS.get(definition.name)

        if defaults and defaults.auto_generate:
            if is_placeholder(value):
                values[definition.name] = generate_secret()
                output(f"  [OK] {definition.name}: Auto-generated")
            else:
                output(f"  {definition.name}: Keeping existing value")
            continue

        shown = value
        if is_placeholder(value) and defaults:
            shown = defaults.example
        description = (defaults.comment if defaults else None) or definition.comment
        if description:
            output(f"# {description}")

        suffix = " (optional)" if definition.optional else ""
        answer = prompter.ask(f"{definition.name}{suffix} [{shown}]").strip()
        values[definition.name] = answer or shown

    content = generate_env(schema_vars, existing, values, generated_by=GENERATED_BY)
    atomic_write_text(paths.env_file, content)
    output("")
    output("  [OK] Updated .env")
    logger.info("env_config.values_set", names=sorted(values))

    missing = check_missing_env_vars(schema_vars, content)
    if missing:
        output("")
        output("  [WARN] Still missing required values:")
        for name in missing:
            output(f"    - {name}")


def add_variable(source: str, prompter: Prompter, output: Output) -> str:
    """Prompt for a new declaration and return the staged source."""
    output("")
    output("=== Add Environment Variable ===")
    existing = set(extract_var_names(source))

    while True:
        name = prompter.ask("Variable name (e.g., API_KEY)").strip()
        if not name:
            output("  [ERROR] Variable name is required")
        elif not is_valid_var_name(name):
            output("  [ERROR] Variable name must be UPPER_SNAKE_CASE (e.g., API_KEY)")
        elif name in existing:
            output(f"  [ERROR] Variable {name} already exists")
        else:
            break

    validator = prompter.choose("Variable type:", VALIDATOR_TEMPLATES)
    while validator == "custom":
        expression = prompter.ask("Enter validator expression (e.g., z.string().min(1))").strip()
        if expression.startswith(CUSTOM_VALIDATOR_PREFIX):
            validator = expression
        else:
            output(f'  [ERROR] Validator expression must start with "{CUSTOM_VALIDATOR_PREFIX}"')

    optional = prompter.confirm("Is this variable optional?", False)
    comment = None
    if prompter.confirm("Add a comment?", True):
        comment = prompter.ask("Comment").strip() or None

    updated = add_vars(
        source,
        [EnvVarDefinition(name=name, validator=validator, optional=optional, comment=comment)],
    )
    output(f"  [OK] Added {name} to schema")
    return updated


def remove_variable(source: str, prompter: Prompter, output: Output) -> str:
    """Prompt for a declaration to drop and return the staged source."""
    output("")
    output("=== Remove Environment Variable ===")
    names = extract_var_names(source)
    if not names:
        output("  [WARN] No environment variables to remove")
        return source

    name = prompter.choose(
        "Which variable do you want to remove?", [Choice(n, n) for n in names]
    )
    if not prompter.confirm(f"Are you sure you want to remove {name}?", False):
        output("  [WARN] Removal cancelled")
        return source

    updated = remove_vars(source, [name])
    output(f"  [OK] Removed {name} from schema")
    return updated


def view_changes(paths: ProjectPaths, original: str, staged: str, output: Output) -> None:
    output("")
    output("=== Preview Changes ===")
    diff = generate_diff(original, staged, paths.relative(paths.env_schema))
    if not diff:
        output("No changes to preview")
        return
    display_diff(diff, output)


def apply_changes(
    paths: ProjectPaths, original: str, staged: str, prompter: Prompter, output: Output
) -> bool:
    """Write the staged schema and sync the manifest.

    Returns:
        True if the schema was written
    """
    output("")
    output("=== Apply Changes ===")
    if original == staged:
        output("No changes to apply")
        return False

    label = paths.relative(paths.env_schema)
    display_diff(generate_diff(original, staged, label), output)
    if not prompter.confirm("Apply these changes?", True):
        output("  [WARN] Changes not applied")
        return False

    atomic_write_text(paths.env_schema, staged)
    output(f"  [OK] Updated {label}")

    manifest_label = paths.relative(paths.global_env_manifest)
    output(f"Syncing {manifest_label}...")
    result = sync_global_env_manifest(paths.env_schema, paths.global_env_manifest)
    for name in sorted(result.added):
        output(f"  + {name}")
    for name in sorted(result.removed):
        output(f"  - {name}")
    if not result.changed:
        output(f"  {manifest_label} already in sync")

    output("")
    output("Environment configuration updated!")
    output("")
    output("Next steps:")
    output("  1. Set values for the new variables (stackctl env-config, set-values)")
    output("  2. Restart your development server")
    return True


def run_env_config(paths: ProjectPaths, prompter: Prompter, output: Output = click.echo) -> None:
    """Main menu loop. Returns after apply or exit.

    Raises:
        SchemaParseError: If the env schema server block cannot be located
        ManifestError: If the manifest cannot be synced
    """
    output("=== Environment Variable Configuration ===")
    original = read_text(paths.env_schema)
    staged = original

    output("Current environment variables:")
    for name in extract_var_names(original):
        output(f"  {name}")
    output("")

    while True:
        action = prompter.choose("What would you like to do?", ACTIONS)
        if action == "set-values":
            set_values(paths, prompter, output)
        elif action == "add":
            staged = add_variable(staged, prompter, output)
        elif action == "remove":
            staged = remove_variable(staged, prompter, output)
        elif action == "view":
            view_changes(paths, original, staged, output)
        elif action == "apply":
            apply_changes(paths, original, staged, prompter, output)
            return
        else:
            if staged != original:
                output("  [WARN] Exited without saving schema changes")
            return


@click.command("env-config")
def env_config() -> None:
    """Edit environment variables interactively.

    Set .env values by category, add or remove variables in the env schema,
    preview the schema diff, and apply it (which also syncs the global-env
    manifest).
    """
    from stackctl.config import settings
    from stackctl.errors import StackctlError

    try:
        run_env_config(settings.paths(), Prompter())
    except StackctlError as e:
        raise click.ClickException(str(e)) from e
    except FileNotFoundError as e:
        raise click.ClickException(f"File not found: {e.filename}") from e
