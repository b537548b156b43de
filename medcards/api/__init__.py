"""
API Package: FastAPI Routers • Models • JWT Utils • LLM Provider • Document Ingestion
======================================================================================

Mission
-------
This package defines the backend's HTTP interface and its support stack:
FastAPI routing, bearer-token auth, the LLM proxy and the document text
extraction feeding batched card generation.

Contents
--------
- fast_api
    FastAPI routers with endpoints for:
      • Auth (/api/auth): register, login, me, logout
      • Medical cards (/api/medical-cards): list, create, update, delete
      • Public cards (/api/public-cards): list, make-public
      • Catalog: templates, entries, categories, links
      • AI (/api/ai): chat proxy, draft-card, generate-cards, extract-text

- models
    Pydantic data contracts (camelCase on the wire, snake_case accepted).

- utils
    JWT helpers:
      • create_access_token(claims): issues signed JWTs with exp
      • verify_token(token): validates JWTs and returns their claims
      • get_current_user_id: FastAPI dependency for `Authorization: Bearer`

- llm_pipeline
    OpenAI-compatible provider access (OpenRouter by default):
      • chat_completion(messages, ...): one completion call
      • make_completer(model): callable used by `medcards.generation`
      • draft_card(prompt, history, current_content): create or edit one card

- prompt_utilities
    Upload → plain text for .txt/.md (decode), .pdf (pypdf), .docx (python-docx).

Operational Notes
-----------------
- Errors are JSON bodies `{"error": "..."}`; see `medcards.main`.
- Security: tokens travel in the Authorization header; never log secrets.
"""
