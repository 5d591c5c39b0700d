import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure backend/ is importable as the top-level "farmreport" package even when pytest runs from repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Settings are cached on first use, so the environment must be set before any farmreport import
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET", "test_secret")
os.environ.setdefault("JWT_ALG", "HS256")
os.environ.setdefault("UPSTREAM_BASE_URL", "http://upstream.test")

from farmreport.core.upstream import get_record_source
from farmreport.main import app
from farmreport.schemas.records import LotSetup, WeeklyProduction, WeeklyStock
from farmreport.services.record_source import InMemoryRecordSource

from _helpers import FARM_ID, LOT, WEEK, rec, token_for


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def memory_source() -> InMemoryRecordSource:
    """Two buildings, both sexes in B1, only Mâle in B2; one week of three days."""
    return InMemoryRecordSource(
        farm_id=FARM_ID,
        lot=LOT,
        setups={
            ("B1", "Mâle"): LotSetup.model_validate(
                {"effectifMisEnPlace": 500, "dateMiseEnPlace": "2024-03-01", "souche": "PREMIUM"}
            ),
            ("B1", "Femelle"): LotSetup.model_validate(
                {"effectifMisEnPlace": 480, "dateMiseEnPlace": "2024-03-02", "souche": "Optima"}
            ),
            ("B2", "Mâle"): LotSetup.model_validate({"effectifMisEnPlace": 20}),
        },
        records={
            ("B1", "Mâle", WEEK): [
                rec("2024-03-08", ageJour=8, mortaliteNbre=2, consoEauL=40.5, tempMin=18, tempMax=30, effectifDepart=490),
                rec("2024-03-09", ageJour=9, mortaliteNbre=1, consoEauL=41, tempMin=19, tempMax=29),
            ],
            ("B1", "Femelle", WEEK): [
                rec("2024-03-08", ageJour=7, mortaliteNbre=3, consoEauL=39.5, tempMin=17),
                rec("2024-03-10", ageJour=9, mortaliteNbre=0, effectifDepart=999),
            ],
            ("B2", "Mâle", WEEK): [
                rec("2024-03-09", ageJour=10, mortaliteNbre=4, consoEauL=10, tempMax=31, effectifDepart=10),
            ],
        },
        production={
            ("B1", "Mâle", WEEK): WeeklyProduction.model_validate({"venteNbre": 5, "ventePoids": 12.5}),
            ("B2", "Mâle", WEEK): WeeklyProduction.model_validate({"consoNbre": 2, "autreNbre": 1, "reportNbre": 3}),
        },
        stock={
            ("B1", "Mâle", WEEK): WeeklyStock.model_validate({"poidsVifProduitKg": 100.0, "stockAliment": 50}),
            ("B2", "Mâle", WEEK): WeeklyStock.model_validate({"poidsVifProduitKg": 20.0, "stockAliment": 12}),
        },
        report_dates={
            FARM_ID: ["2024-03-01", "2024-03-02", "2024-03-03", "2024-03-04",
                      "2024-03-05", "2024-03-06", "2024-03-07", "2024-03-10", "2024-02-15"],
            None: ["2024-03-10", "2024-02-15"],
        },
    )


@pytest.fixture
def make_client(memory_source):
    """Client authenticated as `role`, reading records from the in-memory source."""
    opened = []

    def _make(role: str = "ADMINISTRATEUR", **claims) -> TestClient:
        claims.setdefault("farm_id", FARM_ID)
        token = token_for(role, **claims)
        c = TestClient(app, headers={"Authorization": f"Bearer {token}"})
        opened.append(c)
        return c

    app.dependency_overrides[get_record_source] = lambda: memory_source
    try:
        yield _make
    finally:
        for c in opened:
            c.close()
        app.dependency_overrides.pop(get_record_source, None)


@pytest.fixture
def client(make_client):
    return make_client("ADMINISTRATEUR")
