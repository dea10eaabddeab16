from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ev_troubleshooting.app.dependencies import (
    get_fault_pack_repository,
    get_settings,
    get_telegram_bot,
)
from ev_troubleshooting.app.main import app
from ev_troubleshooting.config import Settings, settings
from ev_troubleshooting.repositories.fault_packs import YamlFaultPackRepository


@pytest.fixture
def fake_bot():
    return SimpleNamespace(
        is_running=False,
        webhook_secret="",
        process_webhook_update=AsyncMock(return_value=True),
    )


@pytest.fixture
def client(repository, fake_bot):
    app.dependency_overrides[get_fault_pack_repository] = lambda: repository
    app.dependency_overrides[get_telegram_bot] = lambda: fake_bot
    app.dependency_overrides[get_settings] = lambda: Settings(
        _env_file=None,
        PUBLIC_URL="evbot.example.com",
        USE_WEBHOOK=True,
        TELEGRAM_WEBHOOK_SECRET="s3cret",
    )
    # No context manager: the lifespan (and the real bot) never starts
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestStatusEndpoints:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "EVBot OK"

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["mode"] == "webhook"
        assert body["public_url"] == "https://evbot.example.com"
        assert body["webhook_url"] == "https://evbot.example.com/telegram"
        assert body["secret_enabled"] is True
        assert body["packs"] == {"general_dc": 1, "autel": 3, "kempower": 0, "tritium": 0}

    def test_debug_pack(self, client):
        body = client.get("/debug/autel").json()
        assert body["pack"] == "autel"
        assert body["fault_count"] == 3
        assert body["titles"][0] == "Emergency stop pressed"
        assert body["source"] is None

    def test_debug_reports_yaml_source(self, client, tmp_path):
        (tmp_path / "tritium.yml").write_text("- title: RCD trip\n", encoding="utf-8")
        app.dependency_overrides[get_fault_pack_repository] = lambda: YamlFaultPackRepository(tmp_path)

        body = client.get("/debug/TRITIUM").json()
        assert body["exists"] is True
        assert body["source"].endswith("tritium.yml")
        assert body["titles"] == ["RCD trip"]

    def test_debug_unknown_pack(self, client):
        assert client.get("/debug/acme").status_code == 404


class TestWebhook:
    def test_forwards_update(self, client, fake_bot):
        response = client.post(settings.WEBHOOK_PATH, json={"update_id": 1})
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        fake_bot.process_webhook_update.assert_awaited_once_with({"update_id": 1})

    def test_rejects_bad_secret(self, client, fake_bot):
        fake_bot.webhook_secret = "s3cret"
        response = client.post(
            settings.WEBHOOK_PATH,
            json={"update_id": 1},
            headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
        )
        assert response.status_code == 401
        fake_bot.process_webhook_update.assert_not_called()

    def test_accepts_matching_secret(self, client, fake_bot):
        fake_bot.webhook_secret = "s3cret"
        response = client.post(
            settings.WEBHOOK_PATH,
            json={"update_id": 1},
            headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
        )
        assert response.status_code == 200
