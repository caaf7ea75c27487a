from datetime import datetime, timedelta, timezone
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.schemas import HaikuRecord
from datastore.haiku_store import HaikuStore
from models.records import SensorReading
from services.errors import StoreError
from settings import Settings

_STORE_TARGETS = (
    "app.main.build_default_store",
    "app.api.build_default_store",
    "app.web.build_default_store",
)


def _settings(**overrides) -> Settings:
    values = dict(
        store_name="test",
        store_path=None,
        store_max_records=0,
        store_timeout=1.0,
        llm_api_url=None,
        llm_model=None,
        llm_api_key=None,
        scheduler_enabled=False,
    )
    values.update(overrides)
    return Settings(**values)


class BrokenStore(HaikuStore):
    def append(self, record: HaikuRecord) -> None:
        raise StoreError("write refused")

    def list_all(self) -> List[HaikuRecord]:
        raise StoreError("read refused")

    def ping(self, timeout: float = 2.0) -> None:
        raise StoreError("store unreachable")


def _install_store(monkeypatch, store: HaikuStore) -> None:
    def build_test_store(name=None, path=None) -> HaikuStore:
        return store

    build_test_store.cache_clear = lambda: None  # type: ignore[attr-defined]
    for target in _STORE_TARGETS:
        monkeypatch.setattr(target, build_test_store)


@pytest.fixture
def store(tmp_path) -> HaikuStore:
    return HaikuStore(name="test", persistence_path=tmp_path / "haikus.json")


@pytest.fixture
def api_client(store: HaikuStore, monkeypatch) -> Iterator[TestClient]:
    _install_store(monkeypatch, store)
    monkeypatch.setattr("app.main.get_settings", lambda: _settings())

    app = create_app()
    with TestClient(app) as client:
        yield client


def _reading() -> SensorReading:
    return SensorReading(moisture=550, illumination=700, temperature=25, ph=7)


def test_post_haiku_returns_created_record(api_client: TestClient) -> None:
    response = api_client.post(
        "/haikus",
        json={"text": "old pond", "moisture": 10, "temperature": 5, "illumination": 20, "ph": 6},
    )

    assert response.status_code == 201
    body = response.json()
    assert isinstance(body["id"], str) and body["id"]
    assert datetime.fromisoformat(body["date"].replace("Z", "+00:00"))
    assert body["text"] == "old pond"
    assert (body["moisture"], body["illumination"], body["temperature"], body["ph"]) == (10, 20, 5, 6)


def test_posted_haiku_is_listed(api_client: TestClient, store: HaikuStore) -> None:
    created = api_client.post(
        "/haikus",
        json={"text": "old pond", "moisture": 10, "temperature": 5, "illumination": 20, "ph": 6},
    ).json()

    listed = api_client.get("/api/haikus").json()

    assert [item["id"] for item in listed] == [created["id"]]
    assert store.list_all()[0].id == created["id"]


@pytest.mark.parametrize(
    "body",
    [
        {"moisture": 10, "temperature": 5, "illumination": 20, "ph": 6},
        {"text": "   ", "moisture": 10, "temperature": 5, "illumination": 20, "ph": 6},
        {"text": "hot", "moisture": 10, "temperature": 41, "illumination": 20, "ph": 6},
        {"text": "sour", "moisture": 10, "temperature": 5, "illumination": 20, "ph": 15},
        {"text": "typed", "moisture": "wet", "temperature": 5, "illumination": 20, "ph": 6},
        {"text": "extra", "moisture": 10, "temperature": 5, "illumination": 20, "ph": 6, "id": "x"},
    ],
)
def test_post_invalid_haiku_returns_bad_request(api_client: TestClient, body: dict) -> None:
    response = api_client.post("/haikus", json=body)

    assert response.status_code == 400
    assert response.json()["detail"]


def test_post_blank_haiku_is_rejected_and_not_stored(api_client: TestClient, store: HaikuStore) -> None:
    response = api_client.post(
        "/haikus",
        json={"text": " \n\t ", "moisture": 10, "temperature": 5, "illumination": 20, "ph": 6},
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Haiku text must not be blank."}
    assert store.list_all() == []


def test_post_malformed_json_returns_bad_request(api_client: TestClient, store: HaikuStore) -> None:
    response = api_client.post(
        "/haikus",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert store.list_all() == []


def test_api_lists_newest_first(api_client: TestClient, store: HaikuStore) -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for hours, text in ((0, "dawn"), (2, "noon"), (1, "morning")):
        store.append(HaikuRecord.new(text, _reading(), date=base + timedelta(hours=hours)))

    response = api_client.get("/api/haikus")

    assert response.status_code == 200
    assert [item["text"] for item in response.json()] == ["noon", "morning", "dawn"]


def test_api_lists_empty_store_as_empty_array(api_client: TestClient) -> None:
    response = api_client.get("/api/haikus")

    assert response.status_code == 200
    assert response.json() == []


def test_html_page_renders_records(api_client: TestClient, store: HaikuStore) -> None:
    base = datetime(2024, 1, 1, 6, 30, tzinfo=timezone.utc)
    store.append(HaikuRecord.new("first light\non the seedlings", _reading(), date=base))
    store.append(HaikuRecord.new("puddles shine", _reading(), date=base + timedelta(hours=1)))

    response = api_client.get("/haikus")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    page = response.text
    assert "first light\non the seedlings" in page
    assert page.index("puddles shine") < page.index("first light")
    assert "2024-01-01 06:30:00" in page
    assert "Illumination:</span> 700" in page
    assert "pH:</span> 7" in page


def test_html_page_escapes_haiku_text(api_client: TestClient, store: HaikuStore) -> None:
    store.append(HaikuRecord.new("<script>alert(1)</script>", _reading()))

    page = api_client.get("/").text

    assert "<script>alert(1)</script>" not in page
    assert "&lt;script&gt;" in page


def test_html_page_shows_empty_state(api_client: TestClient) -> None:
    response = api_client.get("/haikus")

    assert response.status_code == 200
    assert "No haikus generated yet" in response.text


def test_ping_and_db_ping(api_client: TestClient) -> None:
    assert api_client.get("/ping").json() == {"message": "pong"}
    assert api_client.get("/db-ping").json() == {"status": "ok"}


def test_store_failures_map_to_server_errors(monkeypatch) -> None:
    _install_store(monkeypatch, BrokenStore(name="broken"))
    monkeypatch.setattr("app.main.get_settings", lambda: _settings())

    with TestClient(create_app()) as client:
        created = client.post(
            "/haikus",
            json={"text": "old pond", "moisture": 10, "temperature": 5, "illumination": 20, "ph": 6},
        )
        listed = client.get("/api/haikus")
        page = client.get("/haikus")
        ready = client.get("/db-ping")

    assert created.status_code == 500
    assert "write refused" in created.json()["detail"]
    assert listed.status_code == 500
    assert page.status_code == 500
    assert ready.status_code == 503
    assert ready.json()["detail"] == "store unreachable"


class FakeScheduler:
    instances: List["FakeScheduler"] = []

    def __init__(self, pipeline, interval_seconds: float) -> None:
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self.started = False
        self.stopped = False
        FakeScheduler.instances.append(self)

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.stopped = True


class FakePipeline:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


def test_lifespan_starts_and_stops_scheduler(monkeypatch, store: HaikuStore) -> None:
    _install_store(monkeypatch, store)
    pipeline = FakePipeline()
    modes: List = []

    def build_test_pipeline(sensor_mode=None) -> FakePipeline:
        modes.append(sensor_mode)
        return pipeline

    build_test_pipeline.cache_clear = lambda: None  # type: ignore[attr-defined]
    FakeScheduler.instances.clear()
    monkeypatch.setattr("app.main.build_default_pipeline", build_test_pipeline)
    monkeypatch.setattr("app.main.HaikuScheduler", FakeScheduler)
    monkeypatch.setattr(
        "app.main.get_settings",
        lambda: _settings(
            llm_api_url="https://llm.example.test/v1/chat/completions",
            llm_model="test-model",
            llm_api_key="secret-key",
            scheduler_enabled=True,
            interval_seconds=60.0,
        ),
    )

    with TestClient(create_app(sensor_mode="simulated")):
        (scheduler,) = FakeScheduler.instances
        assert scheduler.started is True
        assert scheduler.interval_seconds == 60.0

    assert modes == ["simulated"]
    assert scheduler.stopped is True
    assert pipeline.closed is True


def test_lifespan_skips_scheduler_without_llm_settings(monkeypatch, store: HaikuStore) -> None:
    _install_store(monkeypatch, store)
    FakeScheduler.instances.clear()
    monkeypatch.setattr("app.main.HaikuScheduler", FakeScheduler)
    monkeypatch.setattr("app.main.get_settings", lambda: _settings(scheduler_enabled=True))

    app = create_app()
    with TestClient(app) as client:
        assert client.get("/ping").status_code == 200
        assert app.state.scheduler is None

    assert FakeScheduler.instances == []


def test_lifespan_rejects_unknown_sensor_mode(monkeypatch, store: HaikuStore) -> None:
    _install_store(monkeypatch, store)
    monkeypatch.setattr("app.main.get_settings", lambda: _settings(sensor_mode="lidar"))

    with pytest.raises(ValueError, match="Unknown sensor mode 'lidar'"):
        with TestClient(create_app()):
            pass
