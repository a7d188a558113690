"""Tests for the HTTP routes and error mapping, wired to in-memory collaborators."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from server.core.QueryService import NO_SOURCES_ANSWER, QueryService
from server.core.error_handlers import register_error_handlers
from server.routers.DocumentsRouter import router as documents_router
from server.routers.HealthRouter import router as health_router
from server.routers.QueryRouter import router as query_router
from services.ingest.DocumentParser import DocumentParser
from services.ingest.IngestService import IngestService
from shared.errors import DependencyError


@pytest.fixture
def app(helper_config, store_client, llm_client) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(documents_router)
    app.include_router(query_router)

    app.state.logging = helper_config.get_logger()
    app.state.helper_config = helper_config
    app.state.store_client = store_client
    app.state.llm_client = llm_client
    app.state.ingest_service = IngestService(
        helper_config=helper_config,
        store_client=store_client,
        llm_client=llm_client,
        parser=DocumentParser(helper_config=helper_config, ocr_pipeline=MagicMock()),
    )
    app.state.query_service = QueryService(helper_config=helper_config, store_client=store_client, llm_client=llm_client)
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def fruit_file(tmp_path):
    path = tmp_path / "fruits.txt"
    path.write_text("apple apple pie with banana and cherry on top", encoding="utf-8")
    return path


class TestHealth:
    def test_ok(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_store_down(self, client, store_client) -> None:
        store_client.healthy = False

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json() == {"ok": False}


class TestDocuments:
    def test_ingest_by_path(self, client, fruit_file) -> None:
        response = client.post("/v1/documents", json={"path": str(fruit_file), "chunk_size": 4, "chunk_overlap": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["skipped"] is False
        assert body["chunks_added"] == 3
        assert body["document"]["status"] == "ready"
        assert body["document"]["filename"] == "fruits.txt"

    def test_ingest_same_file_twice_is_skipped(self, client, fruit_file) -> None:
        client.post("/v1/documents", json={"path": str(fruit_file)})

        response = client.post("/v1/documents", json={"path": str(fruit_file)})

        assert response.status_code == 200
        assert response.json()["skipped"] is True
        assert response.json()["reason"] == "already_exists"

    def test_missing_path_maps_to_400(self, client, tmp_path) -> None:
        response = client.post("/v1/documents", json={"path": str(tmp_path / "missing.txt")})

        assert response.status_code == 400
        assert response.json()["kind"] == "resource"
        assert "error" in response.json()

    def test_unsupported_type_maps_to_400(self, client, tmp_path) -> None:
        path = tmp_path / "table.csv"
        path.write_text("a,b,c", encoding="utf-8")

        response = client.post("/v1/documents", json={"path": str(path)})

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported file type: .csv", "kind": "validation", "details": {"supported": [".txt", ".md", ".docx", ".pdf"]}}

    def test_missing_body_field_is_422(self, client) -> None:
        response = client.post("/v1/documents", json={})

        assert response.status_code == 422

    def test_list_newest_first(self, client, tmp_path) -> None:
        for name in ("one.txt", "two.txt"):
            path = tmp_path / name
            path.write_text(f"content of {name}", encoding="utf-8")
            client.post("/v1/documents", json={"path": str(path)})

        response = client.get("/v1/documents")

        assert response.status_code == 200
        assert [item["filename"] for item in response.json()["items"]] == ["two.txt", "one.txt"]

    def test_upload_keeps_original_name_and_extension(self, client, tmp_path) -> None:
        response = client.post(
            "/v1/documents/upload",
            files={"file": ("My Notes.txt", b"apple banana cherry", "text/plain")},
            data={"chunk_size": "2", "chunk_overlap": "0"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["document"]["filename"] == "My Notes.txt"
        assert body["chunks_added"] == 2
        stored = os.listdir(tmp_path / "uploads")
        assert len(stored) == 1
        assert stored[0].endswith(".txt")
        assert body["document"]["local_path"] == str(tmp_path / "uploads" / stored[0])

    def test_upload_over_limit_is_rejected_and_removed(self, client, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("UPLOAD_MAX_BYTES", "5")

        response = client.post("/v1/documents/upload", files={"file": ("big.txt", b"0123456789", "text/plain")})

        assert response.status_code == 400
        assert response.json()["error"] == "File too large."
        assert os.listdir(tmp_path / "uploads") == []

    def test_upload_without_file(self, client) -> None:
        response = client.post("/v1/documents/upload", data={"force": "true"})

        assert response.status_code == 400
        assert response.json()["error"] == "file is required"

    def test_delete(self, client, store_client, fruit_file) -> None:
        document_id = client.post("/v1/documents", json={"path": str(fruit_file)}).json()["document"]["id"]

        response = client.delete(f"/v1/documents/{document_id}")

        assert response.status_code == 200
        assert response.json() == {"deleted": True}
        assert store_client.documents == {}
        assert store_client.chunks == {}
        assert store_client.embeddings == {}

    def test_delete_unknown_is_404(self, client) -> None:
        response = client.delete("/v1/documents/does-not-exist")

        assert response.status_code == 404
        assert "error" in response.json()

    def test_delete_unknown_id_never_deletes(self, client, store_client, monkeypatch) -> None:
        delete = AsyncMock(return_value=True)
        monkeypatch.setattr(store_client, "delete_document", delete)

        response = client.delete("/v1/documents/3f1c9a52-0000-4000-8000-000000000000")

        assert response.status_code == 404
        assert response.json() == {"error": "Document 3f1c9a52-0000-4000-8000-000000000000 not found."}
        delete.assert_not_awaited()

    def test_delete_twice_is_404_the_second_time(self, client, fruit_file) -> None:
        document_id = client.post("/v1/documents", json={"path": str(fruit_file)}).json()["document"]["id"]

        first = client.delete(f"/v1/documents/{document_id}")
        second = client.delete(f"/v1/documents/{document_id}")

        assert first.status_code == 200
        assert second.status_code == 404


class TestQuery:
    def test_no_documents(self, client) -> None:
        response = client.post("/v1/query", json={"question": "What about apples?"})

        assert response.status_code == 200
        assert response.json() == {"answer": NO_SOURCES_ANSWER, "sources": []}

    def test_answer_with_shaped_sources(self, client, fruit_file) -> None:
        client.post("/v1/documents", json={"path": str(fruit_file)})

        response = client.post(
            "/v1/query",
            json={"question": "apple", "include_filename": False, "include_chunk_index": True, "snippet_max": 9},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "The answer is apple."
        (source,) = body["sources"]
        assert set(source) == {"document_id", "page", "snippet", "chunk_index"}
        assert source["page"] is None
        assert source["chunk_index"] == 0
        assert source["snippet"] == "apple app..."

    def test_blank_question_is_400(self, client) -> None:
        response = client.post("/v1/query", json={"question": "  "})

        assert response.status_code == 400
        assert response.json()["kind"] == "validation"

    def test_missing_question_is_422(self, client) -> None:
        assert client.post("/v1/query", json={}).status_code == 422

    def test_invalid_top_k_is_422(self, client) -> None:
        assert client.post("/v1/query", json={"question": "apple", "top_k": 0}).status_code == 422

    def test_backend_failure_maps_to_502(self, client, llm_client, fruit_file) -> None:
        client.post("/v1/documents", json={"path": str(fruit_file)})
        llm_client.chat_error = DependencyError("Ollama chat failed: 500 boom")

        response = client.post("/v1/query", json={"question": "apple"})

        assert response.status_code == 502
        assert response.json() == {"error": "Ollama chat failed: 500 boom", "kind": "dependency"}
