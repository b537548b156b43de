"""
Test the AI routes: chat proxy, batched card generation and text extraction.

The provider is never called; `llm_pipeline.chat_completion` is replaced
with a fake for every test that needs an answer.
"""

import io
import json
import re

import pytest
from docx import Document
from fastapi.testclient import TestClient

from medcards.api import llm_pipeline
from medcards.database.config.config import settings


@pytest.fixture
def provider_key(monkeypatch):
    monkeypatch.setattr(settings, "LLM_API_KEY", "test-key")


def _fake_batches():
    """A provider that answers every prompt-mode call with the requested number of distinct cards."""
    state = {"counter": 0, "calls": []}

    def fake(messages, model=None, temperature=None, max_tokens=None):
        state["calls"].append({"messages": messages, "max_tokens": max_tokens})
        wanted = int(re.search(r"Generate EXACTLY (\d+) cards", messages[0]["content"]).group(1))
        cards = []
        for _ in range(wanted):
            state["counter"] += 1
            cards.append({"title": f"Topic {state['counter']}", "content": "<p>body</p>", "sources": ["UpToDate"]})
        return json.dumps(cards)

    return fake, state


def test_chat_requires_messages(client: TestClient, auth_headers):
    response = client.post("/api/ai/chat", json={"messages": []}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "messages array is required"}


def test_chat_without_provider_key(client: TestClient, auth_headers):
    response = client.post("/api/ai/chat", json={"messages": [{"role": "user", "content": "hi"}]}, headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "AI provider API key is not configured"}


def test_chat_relays_answer(client: TestClient, auth_headers, monkeypatch):
    seen = {}

    def fake(messages, model=None, temperature=None, max_tokens=None):
        seen.update(messages=messages, model=model, max_tokens=max_tokens)
        return "Magnesium sulfate."

    monkeypatch.setattr(llm_pipeline, "chat_completion", fake)
    response = client.post(
        "/api/ai/chat",
        json={"messages": [{"role": "user", "content": "First line for eclampsia?"}], "model": "some/model"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"content": "Magnesium sulfate."}
    assert seen["messages"] == [{"role": "user", "content": "First line for eclampsia?"}]
    assert seen["model"] == "some/model"
    assert seen["max_tokens"] == 4000


def test_chat_provider_error_is_500(client: TestClient, auth_headers, monkeypatch):
    def fake(messages, **kwargs):
        raise llm_pipeline.ProviderError("upstream unavailable")

    monkeypatch.setattr(llm_pipeline, "chat_completion", fake)
    response = client.post("/api/ai/chat", json={"messages": [{"role": "user", "content": "hi"}]}, headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "upstream unavailable"}


def test_generate_cards_requires_request(client: TestClient, auth_headers, provider_key):
    response = client.post("/api/ai/generate-cards", json={"request": "  "}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "request is required"}


def test_generate_cards_without_provider_key(client: TestClient, auth_headers):
    response = client.post("/api/ai/generate-cards", json={"request": "cards on sepsis"}, headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "AI provider API key is not configured"}


def test_generate_cards_batches_to_target(client: TestClient, auth_headers, provider_key, monkeypatch):
    """30 requested cards come back from two sequential batches."""
    fake, state = _fake_batches()
    monkeypatch.setattr(llm_pipeline, "chat_completion", fake)

    response = client.post(
        "/api/ai/generate-cards", json={"request": "Generate 30 cards on obstetric emergencies"}, headers=auth_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "ready"
    assert data["requestedCount"] == 30
    assert len(data["cards"]) == 30
    assert all(card["aiGenerated"] for card in data["cards"])
    assert data["errors"] == []
    assert len(state["calls"]) == 2
    assert state["calls"][0]["max_tokens"] == llm_pipeline.GENERATION_MAX_TOKENS


def test_generate_cards_first_batch_failure(client: TestClient, auth_headers, provider_key, monkeypatch):
    def fake(messages, **kwargs):
        raise llm_pipeline.ProviderError("rate limited")

    monkeypatch.setattr(llm_pipeline, "chat_completion", fake)
    response = client.post("/api/ai/generate-cards", json={"request": "cards on sepsis"}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["cards"] == []
    assert data["state"] == "idle"
    assert data["errors"] == ["Batch 1: rate limited"]


def test_extract_text_from_txt(client: TestClient, auth_headers):
    response = client.post(
        "/api/ai/extract-text",
        files={"file": ("notes.txt", b"  Placenta previa\n\nNo digital exam.  ", "text/plain")},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["text"] == "Placenta previa\n\nNo digital exam."
    assert response.json()["filename"] == "notes.txt"


def test_extract_text_from_docx(client: TestClient, auth_headers):
    document = Document()
    document.add_paragraph("Postpartum haemorrhage")
    document.add_paragraph("Oxytocin first line.")
    buffer = io.BytesIO()
    document.save(buffer)

    response = client.post(
        "/api/ai/extract-text",
        files={"file": ("pph.docx", buffer.getvalue(),
                        "application/vnd.openxmlformats-officedocument.wordprocessingml.document")},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["text"] == "Postpartum haemorrhage\n\nOxytocin first line."


def test_extract_text_rejects_unsupported_type(client: TestClient, auth_headers):
    response = client.post(
        "/api/ai/extract-text", files={"file": ("scan.png", b"\x89PNG", "image/png")}, headers=auth_headers
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("Unsupported file type")


def test_extract_text_rejects_large_upload(client: TestClient, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)
    response = client.post(
        "/api/ai/extract-text", files={"file": ("notes.txt", b"text", "text/plain")}, headers=auth_headers
    )
    assert response.status_code == 400
    assert response.json() == {"error": "File too large. Maximum size: 0MB"}


def test_draft_card_requires_prompt(client: TestClient, auth_headers):
    response = client.post("/api/ai/draft-card", json={"prompt": " "}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "prompt is required"}


def test_draft_card_without_provider_key(client: TestClient, auth_headers):
    response = client.post("/api/ai/draft-card", json={"prompt": "Card on sepsis"}, headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "AI provider API key is not configured"}


def test_draft_card_returns_parsed_card(client: TestClient, auth_headers, monkeypatch):
    seen = {}

    def fake(messages, model=None, temperature=None, max_tokens=None):
        seen.update(messages=messages, max_tokens=max_tokens)
        return "<strong>🎯 Sepsis</strong><h3>Bundle</h3><p><strong>📚 Sources:</strong> SSC Guidelines</p>"

    monkeypatch.setattr(llm_pipeline, "chat_completion", fake)
    response = client.post("/api/ai/draft-card", json={"prompt": "Card on sepsis"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"title": "🎯 Sepsis", "content": "<h3>Bundle</h3>", "sources": ["SSC Guidelines"]}
    assert seen["max_tokens"] == 4000
    assert seen["messages"][-1] == {"role": "user", "content": "Card on sepsis"}


def test_draft_card_edit_mode_sends_current_content(client: TestClient, auth_headers, monkeypatch):
    seen = {}

    def fake(messages, **kwargs):
        seen["messages"] = messages
        return "<strong>Sepsis</strong><h3>Bundle</h3><h3>Lactate</h3>"

    monkeypatch.setattr(llm_pipeline, "chat_completion", fake)
    response = client.post(
        "/api/ai/draft-card",
        json={
            "prompt": "Add lactate",
            "history": [{"role": "user", "content": "Card on sepsis"}],
            "currentContent": "<h3>Bundle</h3>",
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["content"] == "<h3>Bundle</h3><h3>Lactate</h3>"
    assert "CURRENT CONTENT:\n<h3>Bundle</h3>" in seen["messages"][0]["content"]
    assert seen["messages"][1] == {"role": "user", "content": "Card on sepsis"}


def test_draft_card_provider_error_is_500(client: TestClient, auth_headers, monkeypatch):
    def fake(messages, **kwargs):
        raise llm_pipeline.ProviderError("upstream unavailable")

    monkeypatch.setattr(llm_pipeline, "chat_completion", fake)
    response = client.post("/api/ai/draft-card", json={"prompt": "Card on sepsis"}, headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "upstream unavailable"}
