from __future__ import annotations

import json
import sys
from typing import Callable, Optional

import typer

from mdm_submit.config import get_settings
from mdm_submit.errors import SubmitError, ValidationError
from mdm_submit.submit.factory import open_submit_service
from mdm_submit.submit.service import MdmSubmitService
from mdm_submit.utils.logging import configure_logging
from mdm_submit.utils.profiler import profile_block

app = typer.Typer(help="Resubmit stored resources to the MDM channel.")

EXIT_STORE_FAILURE = 1
EXIT_INVALID_REQUEST = 2


def _run(label: str, dry_run: bool, action: Callable[[MdmSubmitService], int]) -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        with open_submit_service(settings, dry_run=dry_run) as service:
            with profile_block(label) as stats:
                submitted = action(service)
    except ValidationError as exc:
        typer.echo(f"Invalid request: {exc}", err=True)
        raise typer.Exit(code=EXIT_INVALID_REQUEST) from exc
    except SubmitError as exc:
        typer.echo(f"Submission failed: {exc}", err=True)
        raise typer.Exit(code=EXIT_STORE_FAILURE) from exc

    typer.echo(
        json.dumps(
            {"submitted": submitted, "dry_run": dry_run, "profile": stats.as_dict()},
            indent=2,
        )
    )


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"types={','.join(settings.mdm_types)} page_size={settings.mdm_submit_page_size} "
        f"transaction_mode={settings.mdm_transaction_mode.value}"
    )


@app.command()
def submit(
    resource_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        help="Resource type to submit (default: every allow-listed type).",
    ),
    criteria: Optional[str] = typer.Option(
        None,
        "--criteria",
        "-c",
        help="Search criteria, e.g. 'name=Smith&_lastUpdated=ge2020-01-01'.",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Collect resources in memory instead of publishing."
    ),
) -> None:
    """
    Submit all matching resources of one or every allow-listed type.
    """
    if resource_type is None:
        _run("submit-all", dry_run, lambda service: service.submit_all(criteria))
    else:
        _run(
            f"submit-{resource_type}",
            dry_run,
            lambda service: service.submit_type(resource_type, criteria),
        )


@app.command("submit-one")
def submit_one(
    resource_id: str = typer.Argument(..., help="Typed resource id, e.g. Patient/123."),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Collect the resource in memory instead of publishing."
    ),
) -> None:
    """
    Submit a single resource by id.
    """
    _run("submit-one", dry_run, lambda service: service.submit_one(resource_id))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
