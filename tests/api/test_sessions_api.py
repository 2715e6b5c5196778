from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from docdesk.api import routes as routes_module
from docdesk.main import app

from tests.helpers.stubs import FailingLLMService, StubLLMService, make_pdf, page_texts


@pytest_asyncio.fixture()
async def client() -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


async def _new_session(client: httpx.AsyncClient) -> str:
    response = await client.post("/api/v1/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


@pytest.mark.asyncio
async def test_root_and_health(client: httpx.AsyncClient) -> None:
    assert (await client.get("/")).status_code == 200
    assert (await client.get("/api/v1/health")).json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_unknown_session_returns_404(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/v1/sessions/missing/files")

    assert response.status_code == 404
    assert "missing" in response.json()["detail"]


@pytest.mark.asyncio
async def test_upload_reports_accepted_and_rejected(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)

    response = await client.post(
        f"/api/v1/sessions/{session_id}/files",
        params={"workspace": "operations"},
        files=[
            ("files", ("a.pdf", make_pdf("a"), "application/pdf")),
            ("files", ("notes.txt", b"plain", "text/plain")),
        ],
    )

    assert response.status_code == 200
    payload = response.json()
    assert [item["name"] for item in payload["accepted"]] == ["a.pdf"]
    assert [item["name"] for item in payload["rejected"]] == ["notes.txt"]

    listed = (await client.get(f"/api/v1/sessions/{session_id}/files")).json()
    assert [item["name"] for item in listed] == ["a.pdf"]


@pytest.mark.asyncio
async def test_upload_with_nothing_acceptable_is_400(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)

    response = await client.post(
        f"/api/v1/sessions/{session_id}/files",
        params={"workspace": "operations"},
        files=[("files", ("notes.txt", b"plain", "text/plain"))],
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_merge_single_pdf_is_rejected(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)
    await client.post(
        f"/api/v1/sessions/{session_id}/files",
        files=[("files", ("only.pdf", make_pdf("x"), "application/pdf"))],
    )

    response = await client.post(f"/api/v1/sessions/{session_id}/operations/merge")

    assert response.status_code == 400
    downloads = (await client.get(f"/api/v1/sessions/{session_id}/downloads")).json()
    assert downloads == []
    notices = (await client.get(f"/api/v1/sessions/{session_id}/notifications")).json()
    assert notices[-1]["level"] == "error"


@pytest.mark.asyncio
async def test_unknown_operation_is_400(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)
    await client.post(
        f"/api/v1/sessions/{session_id}/files",
        files=[("files", ("only.pdf", make_pdf("x"), "application/pdf"))],
    )

    response = await client.post(f"/api/v1/sessions/{session_id}/operations/rotate")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_pdf_and_download(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)

    created = await client.post(
        f"/api/v1/sessions/{session_id}/pdf",
        json={"text": "Hello there", "title": "Greeting"},
    )
    assert created.status_code == 200
    assert created.json()["filename"] == "Greeting.pdf"

    download = await client.get(f"/api/v1/sessions/{session_id}/downloads/Greeting.pdf")
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/pdf"
    assert download.content.startswith(b"%PDF")

    missing = await client.get(f"/api/v1/sessions/{session_id}/downloads/other.pdf")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_create_pdf_blank_text_is_400(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)

    response = await client.post(f"/api/v1/sessions/{session_id}/pdf", json={"text": "   "})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_chat_flow(client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    llm = StubLLMService(reply="The notes mention apples.")
    monkeypatch.setattr(routes_module.LLMService, "from_settings", lambda settings, *, model=None, client=None: llm)
    session_id = await _new_session(client)
    await client.post(
        f"/api/v1/sessions/{session_id}/files",
        params={"workspace": "chat"},
        files=[("files", ("notes.txt", b"apples and pears", "text/plain"))],
    )

    analyzed = await client.post(f"/api/v1/sessions/{session_id}/chat/documents")
    assert [item["status"] for item in analyzed.json()] == ["succeeded"]

    answer = await client.post(f"/api/v1/sessions/{session_id}/chat/messages", json={"question": "Which fruit?"})
    assert answer.status_code == 200
    assert answer.json()["content"] == "The notes mention apples."
    assert "apples and pears" in llm.prompts[0]

    state = (await client.get(f"/api/v1/sessions/{session_id}/chat")).json()
    assert [doc["source_file_name"] for doc in state["documents"]] == ["notes.txt"]
    assert [message["role"] for message in state["transcript"]] == ["user", "assistant"]

    cleared = await client.delete(f"/api/v1/sessions/{session_id}/chat/messages")
    assert cleared.status_code == 204
    state = (await client.get(f"/api/v1/sessions/{session_id}/chat")).json()
    assert state["transcript"] == []
    assert len(state["documents"]) == 1


@pytest.mark.asyncio
async def test_chat_without_documents_is_400(client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    llm = StubLLMService()
    monkeypatch.setattr(routes_module.LLMService, "from_settings", lambda settings, *, model=None, client=None: llm)
    session_id = await _new_session(client)

    response = await client.post(f"/api/v1/sessions/{session_id}/chat/messages", json={"question": "Hi"})

    assert response.status_code == 400
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_chat_model_failure_returns_apology(client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        routes_module.LLMService,
        "from_settings",
        lambda settings, *, model=None, client=None: FailingLLMService(),
    )
    session_id = await _new_session(client)
    await client.post(
        f"/api/v1/sessions/{session_id}/files",
        files=[("files", ("notes.txt", b"apples", "text/plain"))],
    )
    await client.post(f"/api/v1/sessions/{session_id}/chat/documents")

    response = await client.post(f"/api/v1/sessions/{session_id}/chat/messages", json={"question": "Hi"})

    assert response.status_code == 200
    assert response.json()["role"] == "assistant"
    assert response.json()["content"].startswith("Sorry")


@pytest.mark.asyncio
async def test_drop_session(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)

    assert (await client.delete(f"/api/v1/sessions/{session_id}")).status_code == 204
    assert (await client.get(f"/api/v1/sessions/{session_id}")).status_code == 404


async def _upload_pdfs(client: httpx.AsyncClient, session_id: str, *named_pages: tuple[str, str]) -> list[str]:
    response = await client.post(
        f"/api/v1/sessions/{session_id}/files",
        files=[("files", (name, make_pdf(text), "application/pdf")) for name, text in named_pages],
    )
    return [item["id"] for item in response.json()["accepted"]]


@pytest.mark.asyncio
async def test_merge_follows_requested_order(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)
    first_id, second_id = await _upload_pdfs(client, session_id, ("a.pdf", "page-a"), ("b.pdf", "page-b"))

    response = await client.post(
        f"/api/v1/sessions/{session_id}/operations/merge",
        json={"file_ids": [second_id, first_id]},
    )

    assert response.status_code == 200
    (merged_name,) = response.json()["outputs"]
    merged = await client.get(f"/api/v1/sessions/{session_id}/downloads/{merged_name}")
    assert page_texts(merged.content) == ["page-b", "page-a"]


@pytest.mark.asyncio
async def test_operation_runs_only_on_selected_files(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)
    first_id, _ = await _upload_pdfs(client, session_id, ("a.pdf", "page-a"), ("b.pdf", "page-b"))

    response = await client.post(
        f"/api/v1/sessions/{session_id}/operations/split",
        json={"file_ids": [first_id]},
    )

    assert response.status_code == 200
    assert response.json()["outputs"] == ["a_page_1.pdf"]


@pytest.mark.asyncio
async def test_analyze_runs_only_on_selected_files(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)
    _, second_id = await _upload_pdfs(client, session_id, ("a.pdf", "page-a"), ("b.pdf", "page-b"))

    response = await client.post(
        f"/api/v1/sessions/{session_id}/chat/documents",
        json={"file_ids": [second_id]},
    )

    assert response.status_code == 200
    assert [item["filename"] for item in response.json()] == ["b.pdf"]
    state = (await client.get(f"/api/v1/sessions/{session_id}/chat")).json()
    assert [doc["source_file_name"] for doc in state["documents"]] == ["b.pdf"]


@pytest.mark.asyncio
async def test_download_with_non_latin_name(client: httpx.AsyncClient) -> None:
    session_id = await _new_session(client)
    await _upload_pdfs(client, session_id, ("报告.pdf", "report"))
    await client.post(f"/api/v1/sessions/{session_id}/operations/compress")

    response = await client.get(f"/api/v1/sessions/{session_id}/downloads/compressed_报告.pdf")

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert "filename*=UTF-8''compressed_%E6%8A%A5%E5%91%8A.pdf" in disposition
    assert 'filename="compressed___.pdf"' in disposition
    assert response.content.startswith(b"%PDF")
