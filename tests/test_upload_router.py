"""
tests/test_upload_router.py

HTTP contract of the admin upload endpoints, with repositories swapped for
in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_ingestion_repositories
from app.domain.ingestion import DatasetType
from app.main import create_app
from app.services.upload_ingestion_service import (
    IngestionRepositories,
    UploadIngestionService,
    get_upload_ingestion_service,
)
from tests.conftest import FakeAuditStore, FakeDatasetStore, FakeRunLedger


@pytest.fixture()
def client(repositories: IngestionRepositories, service: UploadIngestionService) -> Iterator[TestClient]:
    application = create_app(check_database=False)
    application.dependency_overrides[get_ingestion_repositories] = lambda: repositories
    application.dependency_overrides[get_upload_ingestion_service] = lambda: service
    with TestClient(application) as test_client:
        yield test_client


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "datasetType": "budgets",
        "mode": "append",
        "records": [
            {"fiscal_year": 2024, "department_name": "Parks", "amount": "1,000"},
            {"fiscal_year": 2023, "department_name": "Fire", "amount": 250},
        ],
    }
    payload.update(overrides)
    return payload


class TestJsonUpload:
    def test_success(self, client: TestClient, audit_store: FakeAuditStore) -> None:
        response = client.post("/admin/uploads", json=_payload(), headers={"X-Actor-Id": "admin-7"})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["insertedCount"] == 2
        assert body["affectedFiscalYears"] == [2023, 2024]
        assert body["recomputedFiscalYears"] == [2024, 2023]
        assert audit_store.entries[0].actor == "admin-7"

    def test_validation_issues_are_400(self, client: TestClient, datasets: FakeDatasetStore) -> None:
        records = [{"fiscal_year": 2024, "department_name": "Parks", "amount": "12abc"}]

        response = client.post("/admin/uploads", json=_payload(records=records))

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["ok"] is False
        assert detail["issues"] == [
            {"row": 2, "field": "amount", "message": detail["issues"][0]["message"], "value": "12abc"}
        ]
        assert detail["remainingIssueCount"] == 0
        assert datasets.calls == []

    def test_replace_table_without_confirmation_is_400(self, client: TestClient) -> None:
        response = client.post("/admin/uploads", json=_payload(mode="replace_table"))

        assert response.status_code == 400
        assert "confirm_replace_table" in response.json()["detail"]["error"]

    def test_conflicting_run_is_409(self, client: TestClient, ledger: FakeRunLedger) -> None:
        ledger.conflict = True

        response = client.post("/admin/uploads", json=_payload())

        assert response.status_code == 409

    def test_chunk_failure_is_500_with_details(self, client: TestClient, datasets: FakeDatasetStore) -> None:
        datasets.fail_on_chunk = 1

        response = client.post("/admin/uploads", json=_payload())

        assert response.status_code == 500
        assert response.json()["detail"]["details"] == {
            "attemptedRows": 2,
            "successfullyInsertedRows": 0,
            "failedAtIndex": 0,
        }

    def test_unknown_mode_is_rejected_by_schema(self, client: TestClient) -> None:
        response = client.post("/admin/uploads", json=_payload(mode="merge"))

        assert response.status_code == 422


class TestCsvUpload:
    def test_csv_file_is_ingested(self, client: TestClient, datasets: FakeDatasetStore) -> None:
        content = b"period,amount,category\n2024-03,100,Property tax\n2024-04,\"1,500.25\",Fees\n"

        response = client.post(
            "/admin/uploads/csv",
            files={"file": ("revenues.csv", content, "text/csv")},
            data={"dataset_type": "revenues", "mode": "append"},
        )

        assert response.status_code == 200
        assert response.json()["insertedCount"] == 2
        assert len(datasets.rows[DatasetType.REVENUES]) == 2

    def test_header_only_file_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/admin/uploads/csv",
            files={"file": ("revenues.csv", b"period,amount\n", "text/csv")},
            data={"dataset_type": "revenues"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "No records were supplied."

    def test_non_csv_file_is_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/admin/uploads/csv",
            files={"file": ("budgets.xlsx", b"binary", "application/octet-stream")},
            data={"dataset_type": "budgets"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Only CSV files are allowed."


class TestDeleteAndHistory:
    def test_delete_fiscal_year_then_history(self, client: TestClient, datasets: FakeDatasetStore) -> None:
        datasets.rows[DatasetType.TRANSACTIONS] = [{"fiscal_year": 2022}, {"fiscal_year": 2022}]

        response = client.post(
            "/admin/uploads/delete-fiscal-year",
            json={"datasetType": "transactions", "fiscalYear": 2022},
        )

        assert response.status_code == 200
        assert response.json()["deletedCount"] == 2

        history = client.get("/admin/uploads/history", params={"datasetType": "transactions"})
        assert history.status_code == 200
        entries = history.json()["entries"]
        assert [(entry["mode"], entry["rowCount"], entry["fiscalYear"]) for entry in entries] == [
            ("replace_year", -2, 2022)
        ]

    def test_history_limit_is_bounded(self, client: TestClient) -> None:
        assert client.get("/admin/uploads/history", params={"limit": 0}).status_code == 422


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
