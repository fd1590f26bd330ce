import pytest

from shared.config import Settings, parse_clusters, parse_ports
from shared.models import WorkerAddress

ENV_VARS = [
    "UDP_PORTS", "UDP_PORT", "WORKER_HOST", "IP_BASIC_OCTETS", "SCAN_INTERFACES",
    "DISCOVERY_TIMEOUT", "DISPATCH_TIMEOUT", "DISCOVERY_INTERVAL",
    "DISCOVERY_CONCURRENCY", "DISPATCH_RETRIES", "DISPATCH_CONCURRENCY",
    "CLUSTERS", "PORT", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env(load_env_file=False)

    assert settings.udp_ports == [41234, 41235, 5000, 6000]
    assert settings.worker_port == 41234
    assert settings.address_prefix is None
    assert settings.discovery_timeout == 2.0
    assert settings.dispatch_retries == 0
    assert settings.dispatch_concurrency == 1
    assert settings.clusters == []


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("UDP_PORTS", "41234, 9000")
    monkeypatch.setenv("UDP_PORT", "9000")
    monkeypatch.setenv("IP_BASIC_OCTETS", "192.168.1.")
    monkeypatch.setenv("DISPATCH_TIMEOUT", "0.5")
    monkeypatch.setenv("DISPATCH_RETRIES", "1")
    monkeypatch.setenv("CLUSTERS", "192.168.1.7:41234,192.168.1.8:41234")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env(load_env_file=False)

    assert settings.udp_ports == [41234, 9000]
    assert settings.worker_port == 9000
    assert settings.address_prefix == "192.168.1."
    assert settings.dispatch_timeout == 0.5
    assert settings.dispatch_retries == 1
    assert settings.clusters == [
        WorkerAddress(ip="192.168.1.7", port=41234),
        WorkerAddress(ip="192.168.1.8", port=41234),
    ]
    assert settings.log_level == "DEBUG"


def test_env_file_is_loaded(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text("UDP_PORT=41299\n")
    monkeypatch.chdir(tmp_path)
    # Registers UDP_PORT for removal at teardown, since load_dotenv sets it
    monkeypatch.setenv("UDP_PORT", "")
    monkeypatch.delenv("UDP_PORT")

    assert Settings.from_env().worker_port == 41299


@pytest.mark.parametrize("name,value", [
    ("UDP_PORTS", "abc"),
    ("UDP_PORTS", "70000"),
    ("DISPATCH_TIMEOUT", "0"),
    ("DISPATCH_CONCURRENCY", "0"),
    ("CLUSTERS", "192.168.1.7"),
    ("LOG_LEVEL", "loud"),
])
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        Settings.from_env(load_env_file=False)


def test_parse_helpers():
    assert parse_ports("") == []
    assert parse_ports("1,2") == [1, 2]
    assert parse_clusters(None) == []
    with pytest.raises(ValueError):
        parse_clusters("host:notaport")
