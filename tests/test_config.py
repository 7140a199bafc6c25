import pytest

from stationery_sync.config import load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("STATIONERY_API_HOST", "STATIONERY_API_TOKEN", "STATIONERY_QUEUE_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_builtin_defaults():
    config = load_config()
    assert config.api_host == "http://localhost:5000"
    assert config.timeout == 15
    assert config.token is None
    assert config.queue_file.endswith("pending.json")
    assert "~" not in config.queue_file


def test_custom_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "api_host: https://stationery.example.edu/\n"
        "timeout: 4.5\n"
        "receipt_header: CITY COLLEGE\n"
    )
    config = load_config(str(path))
    assert config.api_host == "https://stationery.example.edu"
    assert config.timeout == 4.5
    assert config.receipt_header == "CITY COLLEGE"
    assert config.queue_file is None


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("STATIONERY_API_HOST", "http://backend:8080")
    monkeypatch.setenv("STATIONERY_API_TOKEN", "secret")
    monkeypatch.setenv("STATIONERY_QUEUE_FILE", str(tmp_path / "q.json"))
    config = load_config()
    assert config.api_host == "http://backend:8080"
    assert config.token == "secret"
    assert config.queue_file == str(tmp_path / "q.json")


def test_missing_file(tmp_path):
    with pytest.raises(SystemExit, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("api_host: [unclosed\n")
    with pytest.raises(SystemExit, match="failed to parse"):
        load_config(str(path))


def test_invalid_value_type(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("timeout: soon\n")
    with pytest.raises(SystemExit, match="timeout"):
        load_config(str(path))


def test_unknown_keys_ignored(tmp_path):
    path = tmp_path / "extra.yaml"
    path.write_text("colour: blue\n")
    assert load_config(str(path)).api_host == "http://localhost:5000"
