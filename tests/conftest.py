import json
from unittest.mock import MagicMock

import pytest
import requests

from services.gateway import ModelGateway, make_provider

SINGLE_RECIPE = [
    {
        "title": "Fluffy Pancakes",
        "ingredients": ["egg", "flour", "milk"],
        "instructions": "1. Whisk everything. 2. Fry in a pan.",
    }
]


def make_response(status=200, body=None, text=None):
    """A stand-in for requests.Response."""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    if body is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
        resp.text = text or ""
    else:
        resp.json.return_value = body
        resp.text = text if text is not None else json.dumps(body)
    return resp


def chat_reply(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def provider():
    return make_provider("openrouter", api_key="test-api-key")


@pytest.fixture
def gateway(provider, session):
    return ModelGateway(provider, session=session)
