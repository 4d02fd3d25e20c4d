from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tempcast import main
from tempcast.connectivity import ConnectivityMonitor
from tempcast.domain.models import TemperatureRecord
from tempcast.settings import load_settings
from tempcast.storage import SqliteTemperatureStore

from .conftest import FakeWeatherAdapter


@pytest.fixture
def fake_adapter():
    return FakeWeatherAdapter({("Paris", "2020-06-01"): (24.0, 15.0), ("New York", "2020-06-01"): (27.5, 18.25)})


@pytest.fixture
def client(tmp_path: Path, monkeypatch, fake_adapter):
    config_path = tmp_path / "tempcast.yaml"
    config_path.write_text("connectivity:\n  mode: online\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TEMPCAST_ENV", "test")
    monkeypatch.setenv("TEMPCAST_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("TEMPCAST_DB_PATH", str(tmp_path / "tempcast.db"))
    monkeypatch.setattr(main, "build_weather_adapter", lambda settings: fake_adapter)
    load_settings.cache_clear()

    with TestClient(main.app) as test_client:
        yield test_client

    load_settings.cache_clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["environment"] == "test"
    assert body["online"] is True
    assert body["scheduler_running"] is True
    assert body["record_count"] == 0


def test_api_past_date(client):
    response = client.get("/api/temperatures", params={"city": "Paris", "date": "2020-06-01"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["estimate"]["max_temp"] == 24.0
    assert body["estimate"]["min_temp"] == 15.0
    assert body["estimate"]["source"] == "remote"
    assert client.get("/health").json()["record_count"] == 1


def test_api_invalid_date(client):
    response = client.get("/api/temperatures", params={"city": "Paris", "date": "2024-02-30"})

    assert response.status_code == 422


def test_api_unresolved(client):
    response = client.get("/api/temperatures", params={"city": "Atlantis", "date": "2020-06-01"})

    assert response.status_code == 404
    body = response.json()
    assert body["status"] == "remote_unavailable"
    assert body["estimate"] is None


def test_api_offline_uses_store(client):
    client.app.state.store.put(TemperatureRecord(city="Lyon", date="2019-07-14", max_temp=31.0, min_temp=19.5))
    client.app.state.connectivity = ConnectivityMonitor(mode="offline")

    hit = client.get("/api/temperatures", params={"city": "Lyon", "date": "2019-07-14"})
    miss = client.get("/api/temperatures", params={"city": "Paris", "date": "2020-06-01"})

    assert hit.json()["estimate"]["source"] == "cache"
    assert miss.status_code == 404
    assert miss.json()["status"] == "not_found"


def test_index_page(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "New York" in response.text
    assert "Get Weather" in response.text


def test_weather_page_shows_temperatures(client):
    response = client.get("/weather", params={"date": "2020-06-01"})

    assert response.status_code == 200
    assert "Max Temp: 27.5°C" in response.text
    assert "Min Temp: 18.25°C" in response.text


def test_weather_page_invalid_date(client):
    response = client.get("/weather", params={"date": "06/01/2020"})

    assert response.status_code == 200
    assert "Invalid date format. Please enter date in YYYY-MM-DD format." in response.text


def test_weather_page_fetch_error(client):
    response = client.get("/weather", params={"city": "Atlantis", "date": "2020-06-01"})

    assert response.status_code == 200
    assert "Error fetching data." in response.text


def test_records_cleared_on_startup(tmp_path, monkeypatch, fake_adapter):
    config_path = tmp_path / "tempcast.yaml"
    config_path.write_text("connectivity:\n  mode: offline\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TEMPCAST_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("TEMPCAST_DB_PATH", str(tmp_path / "tempcast.db"))
    monkeypatch.setattr(main, "build_weather_adapter", lambda settings: fake_adapter)
    load_settings.cache_clear()

    with TestClient(main.app) as first:
        first.app.state.store.put(TemperatureRecord(city="Paris", date="2020-06-01", max_temp=1.0, min_temp=0.0))
        assert first.get("/health").json()["record_count"] == 1

    with TestClient(main.app) as second:
        assert second.get("/health").json()["record_count"] == 0
        assert second.get("/health").json()["online"] is False

    load_settings.cache_clear()


def test_build_weather_adapter_requires_key(tmp_path, monkeypatch):
    config_path = tmp_path / "tempcast.yaml"
    config_path.write_text("", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TEMPCAST_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("VISUAL_CROSSING_API_KEY", "")
    load_settings.cache_clear()

    with pytest.raises(ValueError):
        main.build_weather_adapter(load_settings())

    load_settings.cache_clear()


def test_offline_mode_starts_without_api_key(tmp_path, monkeypatch):
    config_path = tmp_path / "tempcast.yaml"
    config_path.write_text("connectivity:\n  mode: offline\nstorage:\n  clear_on_startup: false\n", encoding="utf-8")
    db_path = tmp_path / "tempcast.db"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TEMPCAST_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("TEMPCAST_DB_PATH", str(db_path))
    monkeypatch.setenv("VISUAL_CROSSING_API_KEY", "")
    load_settings.cache_clear()

    with TestClient(main.app) as client:
        client.app.state.store.put(TemperatureRecord(city="Lyon", date="2019-07-14", max_temp=31.0, min_temp=19.5))

        hit = client.get("/api/temperatures", params={"city": "Lyon", "date": "2019-07-14"})
        miss = client.get("/api/temperatures", params={"city": "Lyon", "date": "2019-07-15"})

    assert hit.status_code == 200
    assert hit.json()["estimate"]["max_temp"] == 31.0
    assert miss.json()["status"] == "not_found"

    load_settings.cache_clear()


def test_online_mode_still_requires_api_key(tmp_path, monkeypatch):
    config_path = tmp_path / "tempcast.yaml"
    config_path.write_text("connectivity:\n  mode: online\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TEMPCAST_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("TEMPCAST_DB_PATH", str(tmp_path / "tempcast.db"))
    monkeypatch.setenv("VISUAL_CROSSING_API_KEY", "")
    load_settings.cache_clear()

    settings = load_settings()
    store = SqliteTemperatureStore(settings.db_path)

    with pytest.raises(ValueError):
        main.build_resolver(settings, store)

    load_settings.cache_clear()
