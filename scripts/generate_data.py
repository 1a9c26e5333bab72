"""
Synthetic resource generation and loading script for MDM Submit.

Implements deterministic pseudo-random resource generation, CSV emission, and
Postgres COPY loading into `mdm_resources`, so bulk submissions can be tried
against a realistically sized store.
"""

from __future__ import annotations

import csv
import json
import random
import sys
import tempfile
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path

import psycopg
import typer

from mdm_submit.infrastructure.db_factory import build_dsn

app = typer.Typer(help="Generate synthetic resources and load into Postgres (CSV + COPY).")

CSV_HEADER = ["resource_type", "resource_id", "version", "last_updated", "payload"]

FAMILY_NAMES = ["Smith", "Jones", "Garcia", "Nguyen", "Okafor", "Kowalski", "Tanaka", "Silva"]
GIVEN_NAMES = ["Ana", "Ben", "Chen", "Dana", "Eli", "Farah", "Gus", "Hana"]


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _payload(rng: random.Random, resource_type: str, resource_id: str) -> dict:
    payload = {
        "resourceType": resource_type,
        "id": resource_id,
        "name": rng.choice(FAMILY_NAMES),
        "given": rng.choice(GIVEN_NAMES),
        "gender": rng.choice(["male", "female", "other", "unknown"]),
        "active": rng.choice(["true", "false"]),
    }
    if resource_type == "Patient":
        birth = datetime(1940, 1, 1) + timedelta(days=rng.randint(0, 30_000))
        payload["birthDate"] = birth.date().isoformat()
    return payload


def _generate_rows_csv(
    csv_path: Path,
    rows: int,
    batch_size: int,
    seed: int,
    resource_types: tuple[str, ...] = ("Patient", "Practitioner"),
) -> None:
    rng = random.Random(seed)
    now = datetime.now(UTC)

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)

        buffer: list[list[str]] = []
        for i in range(rows):
            resource_type = rng.choice(resource_types)
            resource_id = f"{resource_type.lower()}-{i + 1}"
            last_updated = now - timedelta(days=rng.randint(0, 3650))
            buffer.append(
                [
                    resource_type,
                    resource_id,
                    str(rng.randint(1, 5)),
                    last_updated.isoformat(),
                    json.dumps(_payload(rng, resource_type, resource_id)),
                ]
            )
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)


def _copy_into_db(dsn: str, csv_path: Path) -> None:
    with psycopg.connect(dsn) as conn:
        with conn.cursor() as cur:
            with cur.copy(
                """
                COPY public.mdm_resources (resource_type, resource_id, version, last_updated, payload)
                FROM STDIN WITH (FORMAT csv, HEADER TRUE)
                """
            ) as copy:
                with csv_path.open("r", encoding="utf-8") as f:
                    for line in f:
                        copy.write(line)
            conn.commit()


@app.command()
def main(
    rows: int = typer.Option(
        10_000,
        "--rows",
        "-r",
        help="Number of resources to generate.",
    ),
    batch_size: int = typer.Option(
        5_000,
        "--batch-size",
        "-b",
        help="Batch size for CSV buffering during generation.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path (if omitted, a temp file will be used).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate CSV; skip loading into Postgres.",
    ),
) -> None:
    """
    Generate synthetic resources and optionally load them into Postgres using COPY.
    """
    start = time.perf_counter()
    if output:
        csv_path = output
        csv_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="mdm_resources_"))
        csv_path = tmpdir / "resources.csv"

    typer.echo(f"Generating {rows:,} resources -> {csv_path} (batch={batch_size}, seed={seed})")
    _generate_rows_csv(csv_path, rows=rows, batch_size=batch_size, seed=seed)
    gen_duration = time.perf_counter() - start
    typer.echo(f"CSV generation completed in {gen_duration:.2f}s")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    load_start = time.perf_counter()
    typer.echo("Loading CSV into Postgres via COPY...")
    _copy_into_db(_build_dsn(dsn), csv_path)
    typer.echo(f"Load completed in {time.perf_counter() - load_start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
