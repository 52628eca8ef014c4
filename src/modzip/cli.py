"""Typer CLI entrypoint for modzip."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
import yaml

from modzip.config import AppSettings, load_settings
from modzip.discover.descriptor import has_metadata
from modzip.discover.loader import discover_mods
from modzip.errors import ModzipError
from modzip.logging_utils import LOG_FILE_NAME, configure_logging
from modzip.package.pipeline import InstallRunOptions, InstallRunResult, ModState, run_install
from modzip.package.platform import default_mods_dir

app = typer.Typer(
    add_completion=False,
    help="Factorio mod helper: zip mods and install them into the game's mods folder.",
    no_args_is_help=True,
)

RUN_ERROR_EXIT_CODE = 2

_CONFIG_FILE_OPTION = typer.Option(
    None,
    "--config-file",
    help="Optional settings YAML path.",
    exists=False,
    file_okay=True,
    dir_okay=False,
    readable=True,
)
_REPO_ROOT_OPTION = typer.Option(
    None,
    "--repo-root",
    help="Repository root to scan for mods (default: current directory).",
    file_okay=False,
    dir_okay=True,
)


def _load_and_optionally_configure_logger(
    config_file: Path | None,
    repo_root: Path | None,
    configure: bool,
    verbose: bool = False,
) -> tuple[AppSettings, logging.Logger]:
    settings = load_settings(config_file=config_file, repo_root=repo_root)
    if configure:
        level = logging.DEBUG if verbose else logging.INFO
        log_file = settings.paths.logs_root / LOG_FILE_NAME if settings.paths.repo_root.is_dir() else None
        try:
            logger = configure_logging(log_file, level=level)
        except OSError as exc:
            # The run itself reports an unwritable build directory as a fatal IoFailure.
            logger = configure_logging(None, level=level)
            logger.warning("logging.file_unavailable path=%s error=%s", log_file, exc)
    else:
        logger = logging.getLogger("modzip")
    return settings, logger


def _normalize_choice(value: str | None, *, allowed: set[str], option_name: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in allowed:
        allowed_rendered = ",".join(sorted(allowed))
        raise typer.BadParameter(f"{option_name} must be one of: {allowed_rendered}")
    return normalized


def _apply_overrides(
    settings: AppSettings,
    *,
    out_dir: Path | None = None,
    mods_dir: Path | None = None,
    default_thumbnail: Path | None = None,
    symlinks: str | None = None,
    on_existing: str | None = None,
) -> AppSettings:
    """Return settings with command-line overrides applied."""

    paths = settings.paths
    if out_dir is not None:
        build_dir = out_dir if out_dir.is_absolute() else paths.repo_root / out_dir
        paths = paths.model_copy(update={"build_dir": build_dir.resolve()})

    packaging_updates: dict[str, object] = {}
    if default_thumbnail is not None:
        packaging_updates["default_thumbnail"] = default_thumbnail.resolve()
    normalized_symlinks = _normalize_choice(symlinks, allowed={"follow", "reject"}, option_name="symlinks")
    if normalized_symlinks is not None:
        packaging_updates["symlinks"] = normalized_symlinks

    install_updates: dict[str, object] = {}
    if mods_dir is not None:
        install_updates["mods_dir"] = mods_dir.resolve()
    normalized_existing = _normalize_choice(on_existing, allowed={"overwrite", "skip"}, option_name="on-existing")
    if normalized_existing is not None:
        install_updates["on_existing"] = normalized_existing

    return settings.model_copy(
        update={
            "paths": paths,
            "packaging": settings.packaging.model_copy(update=packaging_updates),
            "install": settings.install.model_copy(update=install_updates),
        }
    )


def _split_mod_argument(
    mod: str | None,
    repo_root: Path,
    metadata_file: str,
) -> tuple[str | None, Path | None]:
    """Split MOD into a name filter or a path to a mod folder.

    A bare name is always a filter. Anything that looks like a path must hold
    the metadata file; relative paths are taken from the repository root.
    """

    if mod is None:
        return None, None
    candidate = Path(mod).expanduser()
    looks_like_path = candidate.is_absolute() or "/" in mod or "\\" in mod or mod in {".", ".."}
    if not looks_like_path:
        return mod, None
    if not candidate.is_absolute():
        candidate = repo_root / candidate
    if not (candidate.is_dir() and has_metadata(candidate, metadata_file)):
        raise typer.BadParameter(f"No {metadata_file} found at {candidate}")
    return None, candidate.resolve()


def _echo_outcomes(result: InstallRunResult) -> None:
    for outcome in result.outcomes:
        label = f"{outcome.name}_{outcome.version}" if outcome.version else outcome.name
        if outcome.state is ModState.INSTALLED:
            typer.echo(f"installed: {label} -> {outcome.install_path}")
        elif outcome.state is ModState.PACKAGED:
            typer.echo(f"packaged: {label} -> {outcome.archive_path}")
        else:
            stage = outcome.failed_stage.value if outcome.failed_stage else "unknown"
            typer.echo(f"failed: {label} (at {stage}): {outcome.error}", err=True)
    summary = result.summary
    typer.echo(f"run_id: {result.run_id}")
    typer.echo(f"mods_succeeded: {summary['mods_succeeded']}")
    typer.echo(f"mods_failed: {summary['mods_failed']}")
    if result.summary_path is not None:
        typer.echo(f"summary_path: {result.summary_path}")


def _run(
    *,
    mod: str | None,
    install: bool,
    repo_root: Path | None,
    out_dir: Path | None,
    mods_dir: Path | None,
    default_thumbnail: Path | None,
    symlinks: str | None,
    on_existing: str | None,
    verbose: bool,
    config_file: Path | None,
) -> None:
    settings, logger = _load_and_optionally_configure_logger(config_file, repo_root, configure=True, verbose=verbose)
    settings = _apply_overrides(
        settings,
        out_dir=out_dir,
        mods_dir=mods_dir,
        default_thumbnail=default_thumbnail,
        symlinks=symlinks,
        on_existing=on_existing,
    )
    name_filter, mod_path = _split_mod_argument(mod, settings.paths.repo_root, settings.packaging.metadata_file)
    try:
        result = run_install(
            settings,
            name_filter=name_filter,
            options=InstallRunOptions(install=install, mod_path=mod_path),
            logger=logger,
        )
    except ModzipError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=RUN_ERROR_EXIT_CODE) from exc

    _echo_outcomes(result)
    if result.exit_code != 0:
        raise typer.Exit(code=result.exit_code)


@app.command("install")
def install_command(
    mod: str | None = typer.Argument(
        None,
        help=(
            "Mod name, or path to a mod folder containing info.json (relative paths start at the repo root). "
            "Omit to install every detected mod."
        ),
    ),
    repo_root: Path | None = _REPO_ROOT_OPTION,
    out_dir: Path | None = typer.Option(
        None,
        "--out-dir",
        help="Output directory for built zips (default: build, relative to the repo root).",
    ),
    mods_dir: Path | None = typer.Option(
        None,
        "--mods-dir",
        help="Install into this directory instead of the platform default.",
    ),
    default_thumbnail: Path | None = typer.Option(
        None,
        "--default-thumbnail",
        metavar="PATH",
        help="Thumbnail injected into mods that have none.",
    ),
    symlinks: str | None = typer.Option(
        None,
        "--symlinks",
        help="Symlink policy: follow or reject.",
    ),
    on_existing: str | None = typer.Option(
        None,
        "--on-existing",
        help="Policy for an installed zip of the same name: overwrite or skip.",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log every archived entry."),
    config_file: Path | None = _CONFIG_FILE_OPTION,
) -> None:
    """Build each mod's zip and copy it into the Factorio mods folder."""

    _run(
        mod=mod,
        install=True,
        repo_root=repo_root,
        out_dir=out_dir,
        mods_dir=mods_dir,
        default_thumbnail=default_thumbnail,
        symlinks=symlinks,
        on_existing=on_existing,
        verbose=verbose,
        config_file=config_file,
    )


@app.command("package")
def package_command(
    mod: str | None = typer.Argument(None, help="Mod name or path to a mod folder."),
    repo_root: Path | None = _REPO_ROOT_OPTION,
    out_dir: Path | None = typer.Option(None, "--out-dir", help="Output directory for built zips."),
    default_thumbnail: Path | None = typer.Option(None, "--default-thumbnail", metavar="PATH"),
    symlinks: str | None = typer.Option(None, "--symlinks", help="Symlink policy: follow or reject."),
    verbose: bool = typer.Option(False, "--verbose", help="Log every archived entry."),
    config_file: Path | None = _CONFIG_FILE_OPTION,
) -> None:
    """Build zips into the output directory without installing them."""

    _run(
        mod=mod,
        install=False,
        repo_root=repo_root,
        out_dir=out_dir,
        mods_dir=None,
        default_thumbnail=default_thumbnail,
        symlinks=symlinks,
        on_existing=None,
        verbose=verbose,
        config_file=config_file,
    )


@app.command("list")
def list_command(
    repo_root: Path | None = _REPO_ROOT_OPTION,
    config_file: Path | None = _CONFIG_FILE_OPTION,
) -> None:
    """List detected mods and directories with malformed metadata."""

    settings, logger = _load_and_optionally_configure_logger(config_file, repo_root, configure=False)
    try:
        discovery = discover_mods(
            settings.paths.repo_root,
            metadata_file=settings.packaging.metadata_file,
            excludes=tuple(settings.packaging.excludes),
            logger=logger,
        )
    except ModzipError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=RUN_ERROR_EXIT_CODE) from exc

    for descriptor in discovery.descriptors:
        typer.echo(f"{descriptor.token}\t{descriptor.source_dir}")
    for error in discovery.errors:
        typer.echo(f"malformed\t{error.source_dir}\t{error.reason}", err=True)
    if discovery.errors:
        raise typer.Exit(code=1)


@app.command("mods-dir")
def mods_dir_command(config_file: Path | None = _CONFIG_FILE_OPTION) -> None:
    """Print the directory archives are installed into."""

    settings, _ = _load_and_optionally_configure_logger(config_file, None, configure=False)
    if settings.install.mods_dir is not None:
        typer.echo(str(settings.install.mods_dir.expanduser()))
        return
    try:
        typer.echo(str(default_mods_dir()))
    except ModzipError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=RUN_ERROR_EXIT_CODE) from exc


@app.command("show-config")
def show_config(
    repo_root: Path | None = _REPO_ROOT_OPTION,
    config_file: Path | None = _CONFIG_FILE_OPTION,
) -> None:
    """Print the effective configuration after env overrides."""

    settings, _ = _load_and_optionally_configure_logger(config_file, repo_root, configure=False)
    rendered = yaml.safe_dump(settings.as_dict(), sort_keys=False)
    typer.echo(rendered)


def main() -> None:
    """CLI script entrypoint."""

    app()


if __name__ == "__main__":
    main()
