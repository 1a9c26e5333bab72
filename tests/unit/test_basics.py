import csv
import json
from pathlib import Path
from time import sleep

import pytest

from mdm_submit import config
from mdm_submit.domain.models import ResourceId
from mdm_submit.utils import profiler
from scripts import generate_data


def test_get_settings_defaults(monkeypatch):
    for name in ("MDM_TYPES", "MDM_SUBMIT_PAGE_SIZE", "MDM_TRANSACTION_MODE", "DB_HOST"):
        monkeypatch.delenv(name, raising=False)
    settings = config.get_settings()
    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.mdm_types == ("Patient", "Practitioner")
    assert settings.mdm_submit_page_size == 100
    assert settings.mdm_transaction_mode is config.TransactionMode.PER_TYPE


def test_settings_read_allow_list_from_env(monkeypatch):
    monkeypatch.setenv("MDM_TYPES", " Practitioner, Patient ,Practitioner,,Device")
    monkeypatch.setenv("MDM_SUBMIT_PAGE_SIZE", "25")
    monkeypatch.setenv("MDM_TRANSACTION_MODE", "shared")
    settings = config.Settings()
    assert settings.mdm_types == ("Practitioner", "Patient", "Device")
    assert settings.mdm_submit_page_size == 25
    assert settings.mdm_transaction_mode is config.TransactionMode.SHARED


def test_settings_reject_empty_allow_list(monkeypatch):
    monkeypatch.setenv("MDM_TYPES", " , ")
    with pytest.raises(ValueError):
        config.Settings()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Patient/123", "Patient/123"),
        ("http://fhir.example.org/Patient/abc-1", "Patient/abc-1"),
        ("Practitioner/9/_history/2", "Practitioner/9"),
    ],
)
def test_resource_id_parse(raw, expected):
    assert str(ResourceId.parse(raw)) == expected


@pytest.mark.parametrize("raw", ["Patient", "patient/1", "Patient/", "Patient/a b"])
def test_resource_id_parse_rejects_untyped_ids(raw):
    with pytest.raises(ValueError):
        ResourceId.parse(raw)


def test_profile_block_measures_time():
    with profiler.profile_block("sleep") as stats:
        sleep(0.05)
    assert stats.duration_seconds >= 0.05
    assert stats.peak_rss_bytes is not None and stats.peak_rss_bytes > 0
    assert stats.as_dict()["label"] == "sleep"


def test_generate_data_writes_csv(tmp_path: Path):
    csv_path = tmp_path / "resources.csv"
    # Generate a tiny dataset without loading into DB
    generate_data._generate_rows_csv(csv_path, rows=5, batch_size=2, seed=123)
    assert csv_path.exists()
    with csv_path.open("r", newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    # header + 5 rows = 6 lines
    assert len(rows) == 6
    assert rows[0] == ["resource_type", "resource_id", "version", "last_updated", "payload"]
    resource_ids = [row[1] for row in rows[1:]]
    assert len(set(resource_ids)) == 5
    first_payload = json.loads(rows[1][4])
    assert first_payload["resourceType"] == rows[1][0]
    assert first_payload["id"] == rows[1][1]
