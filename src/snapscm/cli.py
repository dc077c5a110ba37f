from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from snapscm.core.config import AppCfg, load_config
from snapscm.core.engine import RevertStatus, SnapshotEngine
from snapscm.core.errors import IntegrityError, ScmError
from snapscm.core.logging_utils import EventLogger, setup_logging
from snapscm.core.repo_state import RepoState

log = logging.getLogger("snapscm.cli")

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Minimal local snapshot history for a flat working directory.",
)

EXIT_ERROR = 1
EXIT_INTEGRITY = 3

_WORKDIR_OPT = typer.Option(
    None, "--workdir", "-C", file_okay=False, exists=True, help="Working directory (default: current)."
)
_CONFIG_OPT = typer.Option(None, "--config", exists=True, dir_okay=False, help="YAML config file.")
_VERBOSE_OPT = typer.Option(False, "--verbose", "-v", help="Log progress at INFO level.")


def _prepare(workdir: Optional[Path], config: Optional[Path], verbose: bool) -> tuple[SnapshotEngine, EventLogger]:
    try:
        cfg: AppCfg = load_config(config)
    except ScmError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=EXIT_ERROR)

    if workdir is not None:
        cfg = cfg.with_workdir(workdir)

    level = logging.INFO if verbose else cfg.logging.level
    _, ev = setup_logging(level=level, logs_dir=cfg.paths.logs_dir)

    engine = SnapshotEngine(
        workdir=cfg.paths.workdir,
        repo=RepoState(cfg.paths.repo_root),
        rules=cfg.tracking_rules(),
        ev=ev,
        show_progress=cfg.ui.progress,
    )
    return engine, ev


def _fail(e: Exception) -> typer.Exit:
    if isinstance(e, IntegrityError):
        typer.echo(str(e), err=True)
        typer.echo("Revert aborted; working directory and HEAD were not changed.", err=True)
        return typer.Exit(code=EXIT_INTEGRITY)
    typer.echo(f"Error: {e}", err=True)
    return typer.Exit(code=EXIT_ERROR)


@app.command()
def commit(
    workdir: Optional[Path] = _WORKDIR_OPT,
    config: Optional[Path] = _CONFIG_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Save the current state of the working directory as a new version."""
    engine, ev = _prepare(workdir, config, verbose)
    try:
        result = engine.commit()
    except (ScmError, OSError) as e:
        log.debug("commit failed", exc_info=True)
        raise _fail(e)
    except Exception as e:
        log.debug("commit failed unexpectedly", exc_info=True)
        typer.echo(f"Error: unexpected failure during commit: {e!r}", err=True)
        raise typer.Exit(code=EXIT_ERROR)
    finally:
        ev.close()

    if result.initialized:
        typer.echo(f"Initialized empty repository in {engine.repo.root}")
    typer.echo(f"Committed version {result.version_id} ({result.file_count} files).")


@app.command()
def revert(
    workdir: Optional[Path] = _WORKDIR_OPT,
    config: Optional[Path] = _CONFIG_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Restore the working directory to the version before HEAD."""
    engine, ev = _prepare(workdir, config, verbose)
    try:
        result = engine.revert()
    except (ScmError, OSError) as e:
        log.debug("revert failed", exc_info=True)
        raise _fail(e)
    except Exception as e:
        log.debug("revert failed unexpectedly", exc_info=True)
        typer.echo(f"Error: unexpected failure during revert: {e!r}", err=True)
        raise typer.Exit(code=EXIT_ERROR)
    finally:
        ev.close()

    if result.status is RevertStatus.NO_REPOSITORY:
        typer.echo("No repository found.")
    elif result.status is RevertStatus.NOTHING_TO_REVERT:
        typer.echo("Nothing to revert (already at initial state or empty).")
    elif result.status is RevertStatus.TARGET_NOT_FOUND:
        typer.echo(f"Target version {result.version_id} not found.")
    else:
        typer.echo(f"Reverted to version {result.version_id} ({result.file_count} files restored).")


def main() -> None:
    app(prog_name="scm")


if __name__ == "__main__":
    main()
