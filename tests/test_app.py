"""
Route tests through Flask's test client; the model provider is a mocked session.
"""
import io
import json

import pytest

from app import create_app
from config import Settings
from services.extractor import RAW_OUTPUT_TITLE
from services.gateway import ModelGateway

from conftest import SINGLE_RECIPE, chat_reply, make_response


@pytest.fixture
def client(provider, session, tmp_path):
    settings = Settings(provider=provider, data_dir=str(tmp_path))
    app = create_app(settings, gateway=ModelGateway(provider, session=session))
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "provider": "openrouter"}


class TestGenerateRoute:

    def test_recipes(self, client, session):
        session.post.return_value = make_response(200, chat_reply(json.dumps(SINGLE_RECIPE)))
        resp = client.post("/ai", json={"items": ["egg", "flour", "milk"]})
        assert resp.status_code == 200
        assert resp.get_json() == {"recipes": SINGLE_RECIPE}

    @pytest.mark.parametrize("body", [{}, {"items": []}, {"items": "egg"}, None])
    def test_items_required(self, client, session, body):
        resp = client.post("/ai", json=body) if body is not None else client.post("/ai", data="oops")
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Items array is required."}
        session.post.assert_not_called()

    def test_upstream_status_passed_through(self, client, session):
        session.post.return_value = make_response(429, {"error": {"message": "rate limited"}})
        resp = client.post("/ai", json={"items": ["egg"]})
        assert resp.status_code == 429
        assert resp.get_json() == {"error": "rate limited"}

    def test_invalid_model_output(self, client, session):
        session.post.return_value = make_response(200, chat_reply("not json at all"))
        resp = client.post("/ai", json={"items": ["egg"]})
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Invalid JSON from AI model.", "raw": "not json at all"}

    def test_raw_mode_query(self, client, session):
        session.post.return_value = make_response(200, chat_reply("not json at all"))
        resp = client.post("/ai?on_invalid=raw", json={"items": ["egg"]})
        assert resp.status_code == 200
        assert resp.get_json()["recipes"][0]["title"] == RAW_OUTPUT_TITLE


class TestIdentifyRoute:

    def test_multipart(self, client, session):
        session.post.return_value = make_response(200, chat_reply('{"name": "Pear", "description": "Green"}'))
        resp = client.post(
            "/ai/identify",
            data={"image": (io.BytesIO(b"ABC"), "pear.jpg", "image/jpeg")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.get_json() == {"name": "Pear", "description": "Green"}
        url = session.post.call_args.kwargs["json"]["messages"][1]["content"][1]["image_url"]["url"]
        assert url == "data:image/jpeg;base64,QUJD"

    def test_json_body(self, client, session):
        session.post.return_value = make_response(200, chat_reply('"name": "Fig"'))
        resp = client.post("/ai/identify", json={"image_base64": "QUJD"})
        assert resp.get_json() == {"name": "Fig", "description": ""}

    def test_missing_image(self, client, session):
        resp = client.post("/ai/identify", json={})
        assert resp.status_code == 400
        session.post.assert_not_called()

    def test_list_body(self, client, session):
        resp = client.post("/ai/identify", json=["x"])
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "image is required"}
        session.post.assert_not_called()

    def test_nameless_reply(self, client, session):
        session.post.return_value = make_response(200, chat_reply('{"description": "round fruit"}'))
        resp = client.post("/ai/identify", json={"image_base64": "QUJD"})
        assert resp.status_code == 500
        assert resp.get_json()["raw"] == '{"description": "round fruit"}'


class TestListRoutes:

    def test_crud(self, client):
        resp = client.post("/api/lists", json={"name": "Fridge", "items": [{"name": "butter"}]})
        assert resp.status_code == 201
        list_id = resp.get_json()["id"]

        lists = client.get("/api/lists").get_json()["lists"]
        assert [l["name"] for l in lists] == ["Fridge"]

        assert client.delete(f"/api/lists/{list_id}").get_json() == {"deleted": list_id}
        assert client.get("/api/lists").get_json() == {"lists": []}

    def test_name_required(self, client):
        resp = client.post("/api/lists", json={"name": "  ", "items": []})
        assert resp.status_code == 400

    def test_list_body(self, client):
        resp = client.post("/api/lists", json=["x"])
        assert resp.status_code == 400
        assert set(resp.get_json()) == {"error"}

    def test_delete_unknown(self, client):
        resp = client.delete("/api/lists/nope")
        assert resp.status_code == 404


class TestScanRoutes:

    def test_add_list_and_clear(self, client, tmp_path):
        resp = client.post(
            "/api/scans",
            data={"image": (io.BytesIO(b"jpeg"), "snap.jpg"), "name": "Garlic", "description": "two cloves"},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        item = resp.get_json()
        assert item["name"] == "Garlic"
        assert (tmp_path / item["uri"].split("/")[-1]).exists()

        assert client.get("/api/scans").get_json() == {"items": [item]}
        assert client.delete("/api/scans").get_json() == {"cleared": 1}
        assert client.get("/api/scans").get_json() == {"items": []}

    def test_name_required(self, client):
        resp = client.post(
            "/api/scans",
            data={"image": (io.BytesIO(b"jpeg"), "snap.jpg")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400
