# Configuration loader tests
# Dependent files: config_loader.py, config.tech.yaml, app/services/mux.py

from config_loader import env_secret, load_config
from app.services.mux import MuxClient


def test_content_file_overrides_tech_file(tmp_path):
    (tmp_path / "config.tech.yaml").write_text("server:\n  port: 8000\nblog:\n  max_limit: 100\n")
    (tmp_path / "config.content.yaml").write_text("server:\n  port: 9000\n")
    config = load_config(root=tmp_path)
    assert config["server"] == {"port": 9000}
    assert config["blog"] == {"max_limit": 100}


def test_missing_files_give_empty_config(tmp_path):
    assert load_config(root=tmp_path) == {}


def test_shipped_sections_only_hold_consumed_keys():
    config = load_config()
    assert set(config["blog"]) == {"default_limit", "max_limit"}
    assert set(config["mux"]) == {"api_url", "page_size", "timeout"}


def test_mux_client_reads_its_section():
    client = MuxClient("id", "secret", {"api_url": "https://mux.internal/", "page_size": 25, "timeout": 3})
    assert client.api_url == "https://mux.internal"
    assert client.page_size == 25
    assert client.timeout == 3


def test_env_secret_strips_whitespace(monkeypatch):
    monkeypatch.setenv("SOME_TOKEN", "  abc\n")
    assert env_secret("SOME_TOKEN") == "abc"
    assert env_secret("UNSET_TOKEN_XYZ", "fallback") == "fallback"
