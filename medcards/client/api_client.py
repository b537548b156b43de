"""
REST client for the MedCards API.

Wraps a ``requests.Session`` with the bearer token and turns every non-2xx
answer into ``ApiError(status, message)`` using the API's ``{"error": ...}``
body. Transport failures (connection refused, timeout) are raised as
``ApiError`` with ``status=None`` so callers handle one exception type.
"""

import logging
import os
from typing import Any, Callable, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001"
DEFAULT_TIMEOUT = 30
GENERATION_TIMEOUT = 300


class ApiError(Exception):
    """A failed API call; `status` is None when no HTTP answer was received."""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return f"{self.status}: {self.message}" if self.status else self.message


class ApiClient:
    """
    Parameters
    ----------
    base_url : str
        Server root, e.g. "http://localhost:3001".
    token : str, optional
        Bearer token sent with every request.
    session : requests.Session, optional
        Injected session (tests); otherwise one with a small retry policy
        on idempotent requests is created.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=3,
                backoff_factor=1,
                status_forcelist=[502, 503, 504],
                allowed_methods=["GET", "PUT", "DELETE"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, timeout: Optional[float] = None, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=timeout or self.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ApiError(None, str(e)) from e

        if not response.ok:
            try:
                message = response.json().get("error") or response.reason
            except ValueError:
                message = response.text or response.reason
            raise ApiError(response.status_code, str(message))
        if not response.content:
            return None
        return response.json()

    # -- auth -------------------------------------------------------------

    def register(self, email: str, password: str, name: Optional[str] = None) -> dict:
        body = {"email": email, "password": password}
        if name:
            body["name"] = name
        return self._request("POST", "/api/auth/register", json=body)

    def login(self, email: str, password: str) -> dict:
        return self._request("POST", "/api/auth/login", json={"email": email, "password": password})

    def me(self) -> dict:
        return self._request("GET", "/api/auth/me")["user"]

    def logout(self) -> None:
        self._request("POST", "/api/auth/logout")

    # -- cards ------------------------------------------------------------

    def list_cards(self, specialty: Optional[str] = None, section: Optional[str] = None) -> List[dict]:
        params = {k: v for k, v in (("specialty", specialty), ("section", section)) if v}
        return self._request("GET", "/api/medical-cards", params=params)

    def create_card(self, card: dict) -> dict:
        return self._request("POST", "/api/medical-cards", json=card)

    def update_card(self, card_id: str, updates: dict) -> dict:
        return self._request("PUT", f"/api/medical-cards/{card_id}", json=updates)

    def delete_card(self, card_id: str) -> dict:
        return self._request("DELETE", f"/api/medical-cards/{card_id}")

    def public_cards(self) -> List[dict]:
        return self._request("GET", "/api/public-cards")

    def make_public(self, card_id: str) -> dict:
        return self._request("POST", f"/api/public-cards/make-public/{card_id}")

    # -- AI ---------------------------------------------------------------

    def chat(self, messages: List[dict], model: Optional[str] = None,
             temperature: Optional[float] = None, max_tokens: Optional[int] = None) -> str:
        body: Dict[str, Any] = {"messages": messages}
        if model:
            body["model"] = model
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        return self._request("POST", "/api/ai/chat", json=body, timeout=GENERATION_TIMEOUT)["content"]

    def completer(self, model: Optional[str] = None) -> Callable[[List[dict]], str]:
        """`complete(messages)` callable running a `GenerationSession` through the chat proxy."""
        def complete(messages: List[dict]) -> str:
            return self.chat(messages, model=model, temperature=0.7, max_tokens=16000)

        return complete

    def draft_card(self, prompt: str, history: Optional[List[dict]] = None,
                   current_content: Optional[str] = None, model: Optional[str] = None) -> dict:
        """Draft one card, or revise `current_content`; returns {title, content, sources}."""
        body = {"prompt": prompt, "history": history or [], "currentContent": current_content, "model": model}
        return self._request("POST", "/api/ai/draft-card", json=body, timeout=GENERATION_TIMEOUT)

    def generate_cards(self, request: str, document_text: Optional[str] = None, model: Optional[str] = None) -> dict:
        body = {"request": request, "documentText": document_text, "model": model}
        return self._request("POST", "/api/ai/generate-cards", json=body, timeout=GENERATION_TIMEOUT)

    def extract_text(self, path: str) -> dict:
        with open(path, "rb") as fh:
            files = {"file": (os.path.basename(path), fh)}
            return self._request("POST", "/api/ai/extract-text", files=files)
