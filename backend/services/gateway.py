import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests

from services.errors import TransportError, UpstreamError, extract_upstream_message

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = "Empty response from model."

DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;]+);base64,(?P<data>.+)$", re.S)


def _openrouter_body(model: str, messages: list[dict]) -> dict:
    return {"model": model, "messages": messages}


def _google_part(part):
    if isinstance(part, str):
        return {"text": part}
    if part.get("type") == "image_url":
        m = DATA_URL_RE.match(part["image_url"]["url"])
        if m:
            return {"inline_data": {"mime_type": m.group("mime"), "data": m.group("data")}}
        return {"file_data": {"file_uri": part["image_url"]["url"]}}
    return {"text": part.get("text", "")}


def _google_body(model: str, messages: list[dict]) -> dict:
    """Translate OpenAI-style chat messages to a generateContent body."""
    body = {"contents": []}
    for msg in messages:
        content = msg["content"]
        parts = [_google_part(p) for p in content] if isinstance(content, list) else [{"text": content}]
        if msg["role"] == "system":
            body["systemInstruction"] = {"parts": parts}
            continue
        role = "model" if msg["role"] == "assistant" else "user"
        body["contents"].append({"role": role, "parts": parts})
    return body


@dataclass(frozen=True)
class ProviderConfig:
    """Everything that differs between chat-completion providers."""
    name: str
    endpoint: str
    api_key: Optional[str]
    model: str
    vision_model: Optional[str] = None
    timeout: Optional[float] = None
    auth_header: str = "Authorization"
    auth_prefix: str = "Bearer "
    model_in_path: bool = False
    content_path: tuple = ("choices", 0, "message", "content")
    build_body: Callable[[str, list], dict] = field(default=_openrouter_body, compare=False)

    def url_for(self, model: str) -> str:
        if self.model_in_path:
            return f"{self.endpoint.rstrip('/')}/{model}:generateContent"
        return self.endpoint

    def headers(self) -> dict:
        return {
            self.auth_header: f"{self.auth_prefix}{self.api_key or ''}",
            "Content-Type": "application/json",
        }


OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
GOOGLE_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"

PROVIDERS = {
    "openrouter": dict(
        endpoint=OPENROUTER_ENDPOINT,
        model="google/gemini-2.0-flash-exp:free",
        vision_model="mistralai/mistral-small-3.1-24b-instruct:free",
    ),
    "google": dict(
        endpoint=GOOGLE_ENDPOINT,
        model="gemini-2.0-flash",
        auth_header="x-goog-api-key",
        auth_prefix="",
        model_in_path=True,
        content_path=("candidates", 0, "content", "parts", 0, "text"),
        build_body=_google_body,
    ),
}


def make_provider(name: str, api_key: Optional[str], endpoint: Optional[str] = None,
                  model: Optional[str] = None, vision_model: Optional[str] = None,
                  timeout: Optional[float] = None) -> ProviderConfig:
    if name not in PROVIDERS:
        raise ValueError(f"Unknown LLM provider {name!r}; expected one of {sorted(PROVIDERS)}")
    opts = dict(PROVIDERS[name])
    if endpoint:
        opts["endpoint"] = endpoint
    if model:
        opts["model"] = model
    if vision_model:
        opts["vision_model"] = vision_model
    return ProviderConfig(name=name, api_key=api_key, timeout=timeout, **opts)


def _dig(data, path):
    for key in path:
        try:
            data = data[key]
        except (KeyError, IndexError, TypeError):
            return None
    return data


class ModelGateway:
    """
    Single-shot client for a chat-completion style endpoint.

    No retries: every call is one POST. Closing the gateway closes the
    underlying session, which is how a caller abandons an in-flight call.
    """

    def __init__(self, config: ProviderConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        if not config.api_key:
            logger.warning("No API key configured for provider %s; requests will be rejected upstream.",
                           config.name)

    def complete(self, messages: list[dict], model: Optional[str] = None) -> str:
        model = model or self.config.model
        cfg = self.config
        logger.info("Calling %s model %s", cfg.name, model)

        try:
            resp = self.session.post(
                cfg.url_for(model),
                json=cfg.build_body(model, messages),
                headers=cfg.headers(),
                timeout=cfg.timeout,
            )
        except requests.RequestException as e:
            logger.error("No response from %s: %s", cfg.name, e)
            raise TransportError() from e

        if not 200 <= resp.status_code < 300:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            logger.error("Model error from %s (%s): %s", cfg.name, resp.status_code, body)
            raise UpstreamError(resp.status_code, extract_upstream_message(body))

        try:
            data = resp.json()
        except ValueError:
            data = None
        content = _dig(data, cfg.content_path)
        if not isinstance(content, str) or not content.strip():
            logger.error("No content in %s response: %s", cfg.name, data)
            raise UpstreamError(502, EMPTY_RESPONSE_MESSAGE)
        return content

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
