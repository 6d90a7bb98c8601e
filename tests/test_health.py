# File: tests/test_health.py
# Directory: tests
# Purpose: /livez and /readyz behavior (non-prod vs prod, key redaction).

import importlib


def test_livez(client):
    r = client.get("/livez")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_readyz_reports_completion_config_without_key(client):
    r = client.get("/readyz")
    assert r.status_code == 200
    j = r.json()
    assert j["ok"] is True
    assert j["completion"]["api_key_present"] is True
    assert j["completion"]["model"] == "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo"
    assert j["completion"]["base_url"] == "https://api.together.xyz/v1"
    assert "test-key" not in r.text
    assert j["details"]["cors_middleware"]["detected"] is True
    assert j["details"]["routes_count"] >= 3


def test_readyz_non_prod_missing_key_does_not_block(monkeypatch, client):
    monkeypatch.delenv("TOGETHER_API_KEY", raising=False)
    r = client.get("/readyz")
    assert r.status_code == 200
    assert "completion_api_key_missing" in r.json()["problems"]


def test_readyz_prod_missing_key_returns_503(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("FRONTEND_ORIGINS", "https://context.example.com")
    monkeypatch.delenv("TOGETHER_API_KEY", raising=False)
    from fastapi.testclient import TestClient
    main = importlib.import_module("main")
    r = TestClient(main.create_app()).get("/readyz")
    assert r.status_code == 503
    assert r.json()["ok"] is False
