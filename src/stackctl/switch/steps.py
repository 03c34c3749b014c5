"""Switch step orchestration.

Coordinates the execution of the individual switch steps. Fatal problems
raise a ``StackctlError`` subclass; best-effort steps print a warning line,
record it on the result and carry on.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from contextlib import ExitStack

import click
import structlog

from stackctl.diff import display_diffs
from stackctl.env.dotenv import check_missing_env_vars, parse_env_content
from stackctl.env.schema import parse_env_schema
from stackctl.env.symlinks import create_symlinks
from stackctl.errors import (
    DependencyInstallError,
    MissingDependencyError,
    StackctlError,
    SwitchCancelled,
)
from stackctl.fileio import read_text_or_empty
from stackctl.prompts import Choice, Prompter
from stackctl.providers import (
    LocalDevOption,
    LocalDevType,
    ProviderDefinition,
    SetupContext,
    get_all_providers,
    require_local_dev_option,
    require_provider,
)
from stackctl.safety.git import ensure_directories_committed
from stackctl.switch import SwitchOptions, SwitchResult, SwitchStep
from stackctl.switch.plan import AppliedChanges, apply_changes, plan_changes
from stackctl.system.dependencies import check_system_dependencies
from stackctl.system.exec import run_streaming
from stackctl.system.prisma_dev import DEFAULT_INSTANCE, PrismaDevError, prisma_dev_server

logger = structlog.get_logger(__name__)

TOTAL_STEPS = 10

Output = Callable[[str], None]


def _step(output: Output, number: int, message: str) -> None:
    output(f"[{number}/{TOTAL_STEPS}] {message}")


def _warn(result: SwitchResult, output: Output, message: str) -> None:
    output(f"  [WARN] {message}")
    result.add_warning(message)


def step_git_check(options: SwitchOptions, result: SwitchResult, output: Output) -> None:
    """Refuse to run over uncommitted changes in the protected packages."""
    _step(output, 1, "Checking git status...")
    status = ensure_directories_committed(options.paths.protected_dirs, options.paths.root)
    if not status.is_git_repo:
        _warn(result, output, "Not a git repository - proceeding with caution")
    else:
        output("  [OK] Protected packages are committed")
    result.add_completed(SwitchStep.GIT_CHECK)


def step_select_provider(
    options: SwitchOptions, result: SwitchResult, output: Output, prompter: Prompter
) -> ProviderDefinition:
    _step(output, 2, "Selecting database provider...")
    provider_id = options.provider
    if provider_id is None:
        provider_id = prompter.choose(
            "Which database provider do you want to use?",
            [Choice(p.id, p.display_name, p.description) for p in get_all_providers()],
        )

    provider = require_provider(provider_id)
    output(f"  [OK] Selected provider: {provider.display_name}")
    result.provider_id = provider.id
    result.add_completed(SwitchStep.SELECT_PROVIDER)
    return provider


def step_select_local_dev(
    provider: ProviderDefinition,
    options: SwitchOptions,
    result: SwitchResult,
    output: Output,
    prompter: Prompter,
) -> LocalDevOption:
    _step(output, 3, "Configuring local development...")
    dev_type = options.local
    if dev_type is None:
        if len(provider.local_dev_options) == 1:
            dev_type = provider.local_dev_options[0].type.value
            output(f"  Auto-selected: {provider.local_dev_options[0].label}")
        else:
            dev_type = prompter.choose(
                "How do you want to run the database locally?",
                [
                    Choice(o.type.value, o.label, o.description)
                    for o in provider.local_dev_options
                ],
            )

    option = require_local_dev_option(provider, dev_type)
    output(f"  [OK] Local dev: {option.label}")
    result.local_dev_type = option.type.value
    result.add_completed(SwitchStep.SELECT_LOCAL_DEV)
    return option


def step_check_system_deps(
    option: LocalDevOption, result: SwitchResult, output: Output
) -> None:
    """Abort before anything is planned if a required binary is missing."""
    _step(output, 4, "Checking system dependencies...")
    if not option.system_deps:
        output("  No system dependencies required")
        result.add_completed(SwitchStep.CHECK_SYSTEM_DEPS)
        return

    report = check_system_dependencies(option.system_deps)
    for check in report.results:
        if check.available:
            output(f"  [OK] {check.dependency.name}")
        else:
            output(f"  [MISSING] {check.dependency.name}")
            output(f"    {check.dependency.install_hint}")

    if not report.all_satisfied:
        result.add_error(SwitchStep.CHECK_SYSTEM_DEPS, "Missing required system dependencies")
        raise MissingDependencyError(report.missing)
    result.add_completed(SwitchStep.CHECK_SYSTEM_DEPS)


def step_provider_setup(
    provider: ProviderDefinition,
    option: LocalDevOption,
    options: SwitchOptions,
    result: SwitchResult,
    output: Output,
    prompter: Prompter,
) -> dict[str, str]:
    """Collect connection values. A failing setup degrades to no values."""
    _step(output, 5, "Running provider setup...")
    existing = parse_env_content(read_text_or_empty(options.paths.env_file))
    env_vars = {k: v for k, v in option.env_vars.items() if k not in existing}

    ctx = SetupContext(
        paths=options.paths,
        sqlite_path=options.sqlite_path,
        skip_prompts=options.yes,
        dry_run=options.dry_run,
        output=output,
        ask=prompter.ask,
        package_manager=options.package_manager,
    )
    try:
        env_vars.update(provider.setup(option, ctx).env_vars)
    except (StackctlError, OSError, RuntimeError, ValueError) as e:
        logger.warning("switch.setup_failed", provider=provider.id, error=str(e))
        _warn(result, output, f"Provider setup failed: {e}")
        _warn(result, output, "Connection values will need to be set manually in .env")

    result.env_vars = env_vars
    result.add_completed(SwitchStep.PROVIDER_SETUP)
    return env_vars


def step_generate_diffs(
    provider: ProviderDefinition,
    option: LocalDevOption,
    env_vars: dict[str, str],
    options: SwitchOptions,
    result: SwitchResult,
    output: Output,
) -> None:
    _step(output, 6, "Generating diffs...")
    result.planned = plan_changes(
        provider,
        option,
        env_vars,
        options.paths,
        generated_by=options.generated_by,
        sqlite_path=options.sqlite_path,
    )
    output(f"  [OK] Generated {len(result.planned)} diffs")
    result.add_completed(SwitchStep.GENERATE_DIFFS)

    if result.planned:
        output("")
        output("=== Preview Changes ===")
        display_diffs(((c.label, c.diff) for c in result.planned), output)
    else:
        output("  No changes needed for code files")


def step_confirm(
    options: SwitchOptions, result: SwitchResult, output: Output, prompter: Prompter
) -> None:
    """Raises:
        SwitchCancelled: If the operator declines
    """
    _step(output, 7, "Applying changes...")
    if not options.yes and not prompter.confirm("Apply these changes?", True):
        raise SwitchCancelled("Operation cancelled by user")
    result.add_completed(SwitchStep.PREVIEW_CONFIRM)


def step_apply(
    options: SwitchOptions, result: SwitchResult, output: Output
) -> AppliedChanges:
    """Back up and write every planned file, then check .env for missing values."""
    output(f"  Creating backups of {sum(c.path.exists() for c in result.planned)} files...")
    applied = apply_changes(result.planned)
    result.add_completed(SwitchStep.BACKUP)
    for path in applied.written:
        output(f"  [OK] Updated {options.paths.relative(path)}")
    result.written = list(applied.written)
    result.add_completed(SwitchStep.APPLY_WRITES)

    schema_vars = parse_env_schema(read_text_or_empty(options.paths.env_schema))
    missing = check_missing_env_vars(schema_vars, read_text_or_empty(options.paths.env_file))
    if missing:
        _warn(result, output, "Missing required env vars in .env: " + ", ".join(missing))
        output("  Run: stackctl env-config to configure these")

    return applied


def install_dependencies(
    provider: ProviderDefinition,
    options: SwitchOptions,
    applied: AppliedChanges,
    result: SwitchResult,
    output: Output,
) -> None:
    """Swap driver packages, reinstall and regenerate the client.

    Raises:
        DependencyInstallError: If adding packages fails (files are rolled
            back first), or if install or generate fails
    """
    _step(output, 8, "Installing dependencies...")
    pm, root = options.package_manager, options.paths.root
    package_filter = ["--filter", options.db_package]

    if provider.dependencies.remove:
        output(f"  Removing old dependencies: {', '.join(provider.dependencies.remove)}")
        code = run_streaming([pm, *package_filter, "remove", *provider.dependencies.remove], cwd=root)
        if code != 0:
            _warn(result, output, "Some packages may not have been installed - continuing")

    specs = provider.dependencies.add_specs()
    if specs:
        output(f"  Adding dependencies: {', '.join(specs)}")
        code = run_streaming([pm, *package_filter, "add", *specs], cwd=root)
        if code != 0:
            output("  [ERROR] Failed to add dependencies, rolling back file changes...")
            applied.rollback()
            result.written = []
            result.add_error(SwitchStep.INSTALL_DEPS, "Failed to add dependencies")
            raise DependencyInstallError(
                f"Failed to add dependencies ({', '.join(specs)}), exit code {code}. "
                "All file changes were rolled back."
            )

    output(f"  Running {pm} install...")
    code = run_streaming([pm, "install"], cwd=root)
    if code != 0:
        result.add_error(SwitchStep.INSTALL_DEPS, "install failed")
        raise DependencyInstallError(f"{pm} install failed with exit code {code}")

    output("  Running prisma generate...")
    code = run_streaming([pm, *package_filter, "db:generate"], cwd=root)
    if code != 0:
        result.add_error(SwitchStep.INSTALL_DEPS, "generate failed")
        raise DependencyInstallError(f"prisma generate failed with exit code {code}")

    output("  [OK] Dependencies installed successfully")
    result.add_completed(SwitchStep.INSTALL_DEPS)


def step_link_env_files(options: SwitchOptions, result: SwitchResult, output: Output) -> None:
    """Point each target package's .env at the root one (best-effort)."""
    if not options.symlink_targets:
        return

    env_name = options.paths.relative(options.paths.env_file)
    try:
        links = create_symlinks(options.paths.root, env_name, options.symlink_targets)
    except StackctlError as e:
        _warn(result, output, f"Could not create .env symlinks: {e}")
        return

    linked = [r for r in links if r.success]
    if linked:
        output(f"  [OK] Created {len(linked)} symlink(s) to {env_name}")
    for failed in (r for r in links if not r.success):
        _warn(result, output, f"Symlink for {failed.target} failed: {failed.error}")


def run_migrations(
    option: LocalDevOption,
    options: SwitchOptions,
    result: SwitchResult,
    output: Output,
    prompter: Prompter,
) -> bool:
    """Clear the previous provider's migration history and run the first migration.

    Returns:
        True if the initial migration ran successfully
    """
    _step(output, 9, "Setting up migrations...")
    migrations = options.paths.db_migrations

    if migrations.exists():
        _warn(result, output, "Existing migrations directory found")
        output("  Migrations from another provider are incompatible and must be removed")
        output("  to create fresh migrations for the new provider.")
        if options.yes or prompter.confirm("Remove existing migrations directory?", True):
            shutil.rmtree(migrations)
            output("  [OK] Removed migrations directory")
        else:
            _warn(result, output, "Keeping existing migrations - skipping initial migration")
            _warn(result, output, "This may cause issues with the new provider")
            result.add_completed(SwitchStep.MIGRATE)
            return False

    pm, package = options.package_manager, options.db_package
    with ExitStack() as stack:
        if option.type is LocalDevType.MANAGED_DEV_SERVER:
            output("  Starting Prisma Dev for migration...")
            try:
                stack.enter_context(
                    prisma_dev_server(
                        options.paths.db_package_dir,
                        name=DEFAULT_INSTANCE,
                        runner=(pm, "exec"),
                    )
                )
            except PrismaDevError as e:
                logger.warning("switch.prisma_dev_unavailable", error=str(e))
                _warn(result, output, "Could not start Prisma Dev - migration may fail")

        output("  Running initial migration...")
        code = run_streaming(
            [pm, "--filter", package, "db:migrate:dev", "--name", "init"],
            cwd=options.paths.root,
        )

    result.add_completed(SwitchStep.MIGRATE)
    if code != 0:
        _warn(result, output, "Migration failed - you may need to start your database first")
        output(f"  Run: {pm} --filter {package} db:start")
        output(f"  Then: {pm} --filter {package} db:migrate:dev --name init")
        return False

    output("  [OK] Initial migration complete")
    return True


def next_steps(
    option: LocalDevOption,
    migration_ran: bool,
    provider: ProviderDefinition,
    package_manager: str = "pnpm",
    db_package: str = "@_/infra.db",
) -> list[str]:
    """Numbered follow-up instructions for the chosen local-dev type."""
    run = f"{package_manager} --filter {db_package}"
    steps = []
    if option.type is LocalDevType.CONTAINER:
        steps.append(f"Start the database: {run} db:start")
    elif option.type is LocalDevType.VENDOR_LOCAL_STACK:
        steps.append(f"Start {provider.display_name}: {run} db:start")
    elif option.type is LocalDevType.MANAGED_DEV_SERVER:
        steps.append(f"Start {option.label}: {run} dev")
    elif option.type is LocalDevType.REMOTE:
        steps.append("Update .env with your remote connection strings")

    if not migration_ran:
        steps.append(f"Run migrations: {run} db:migrate:dev --name init")
    steps.append(f"Start your app: {package_manager} dev")

    return [f"{index}. {step}" for index, step in enumerate(steps, start=1)]


def step_next_steps(
    provider: ProviderDefinition,
    option: LocalDevOption,
    options: SwitchOptions,
    result: SwitchResult,
    output: Output,
) -> None:
    _step(output, 10, "Complete!")
    output("")
    output("Next steps:")
    result.next_steps = next_steps(
        option, result.migration_ran, provider, options.package_manager, options.db_package
    )
    for line in result.next_steps:
        output(f"  {line}")
    output("")
    output("Documentation:")
    output(f"  Prisma: {provider.docs.prisma}")
    output(f"  Provider: {provider.docs.provider}")
    result.add_completed(SwitchStep.NEXT_STEPS)


def run_switch(
    options: SwitchOptions,
    prompter: Prompter,
    output: Output = click.echo,
) -> SwitchResult:
    """Run the full switch.

    Args:
        options: Switch options
        prompter: Prompt callables for the interactive branches
        output: Progress line sink

    Returns:
        SwitchResult; status is "cancelled" when the operator declined

    Raises:
        StackctlError: On any fatal step (dirty tree, unknown provider or
            option, missing dependency, unparseable source, write or
            dependency-add failure)
    """
    result = SwitchResult()
    output("=== Database Provider Switch (dry run) ===" if options.dry_run else "=== Database Provider Switch ===")
    output("")

    step_git_check(options, result, output)
    provider = step_select_provider(options, result, output, prompter)
    option = step_select_local_dev(provider, options, result, output, prompter)
    step_check_system_deps(option, result, output)
    env_vars = step_provider_setup(provider, option, options, result, output, prompter)
    step_generate_diffs(provider, option, env_vars, options, result, output)

    if options.dry_run:
        output("")
        output("Dry run mode - no changes applied")
        output("Run without --dry-run to apply changes")
        result.status = "dry_run"
        return result

    try:
        step_confirm(options, result, output, prompter)
    except SwitchCancelled as e:
        output(f"  [WARN] {e}")
        result.status = "cancelled"
        return result

    applied = step_apply(options, result, output)
    install_dependencies(provider, options, applied, result, output)
    step_link_env_files(options, result, output)
    result.migration_ran = run_migrations(option, options, result, output, prompter)
    step_next_steps(provider, option, options, result, output)

    output("")
    output("Database provider switch complete!")
    logger.info("switch.completed", provider=provider.id, local=option.type.value)
    return result
