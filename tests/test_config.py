import pytest

from token_indexer.config import get_settings, load_query_settings, load_settings
from token_indexer.errors import ConfigError

ENV = {
    "RPC_URL": "https://rpc.example.org",
    "DATABASE_URL": "sqlite:///index.sqlite",
    "START_BLOCK": "100",
    "END_BLOCK": "5000",
}


def test_valid_settings():
    s = load_settings(ENV)
    assert s.rpc_url == "https://rpc.example.org"
    assert (s.start_block, s.end_block) == (100, 5000)
    assert s.batch_size == 2000
    assert s.db_path == "index.sqlite"
    assert s.log_level == "INFO"


def test_optional_overrides():
    s = load_settings({**ENV, "BATCH_SIZE": "50", "POLL_INTERVAL": "0.5", "LOG_LEVEL": "debug",
                       "DATABASE_URL": "sqlite:////var/lib/idx.sqlite"})
    assert s.batch_size == 50
    assert s.poll_interval == 0.5
    assert s.log_level == "DEBUG"
    assert s.db_path == "/var/lib/idx.sqlite"


@pytest.mark.parametrize("missing", sorted(ENV))
def test_required_settings(missing):
    env = {k: v for k, v in ENV.items() if k != missing}
    with pytest.raises(ConfigError) as exc:
        load_settings(env)
    assert any(p.startswith(missing) for p in exc.value.problems)


@pytest.mark.parametrize("key,value", [
    ("START_BLOCK", "-1"),
    ("END_BLOCK", "ten"),
    ("RPC_URL", "not a url"),
    ("RPC_URL", "ftp://rpc.example.org"),
    ("DATABASE_URL", "postgres://db/indexer"),
    ("DATABASE_URL", "sqlite:///"),
    ("BATCH_SIZE", "0"),
])
def test_malformed_settings(key, value):
    with pytest.raises(ConfigError) as exc:
        load_settings({**ENV, key: value})
    assert any(p.startswith(key) for p in exc.value.problems)


def test_end_before_start():
    with pytest.raises(ConfigError):
        load_settings({**ENV, "START_BLOCK": "10", "END_BLOCK": "9"})


def test_query_settings_need_only_the_store():
    s = load_query_settings({"DATABASE_URL": "sqlite:///q.sqlite"})
    assert s.db_path == "q.sqlite"
    assert s.mcp_port == 8000


def test_get_settings_exits_on_bad_config(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ENV:
        monkeypatch.delenv(key, raising=False)
    with pytest.raises(SystemExit):
        get_settings()


def test_get_settings_reads_dotenv(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ENV:
        monkeypatch.delenv(key, raising=False)
    (tmp_path / ".env").write_text("\n".join(f"{k}={v}" for k, v in ENV.items()))
    assert get_settings().end_block == 5000
    for key in ENV:
        monkeypatch.delenv(key, raising=False)


def test_get_settings_with_query_loader_needs_only_the_store(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ENV:
        monkeypatch.delenv(key, raising=False)
    (tmp_path / ".env").write_text("DATABASE_URL=sqlite:///served.sqlite\n")
    s = get_settings(load_query_settings)
    assert s.db_path == "served.sqlite"
    with pytest.raises(SystemExit):
        get_settings()
    monkeypatch.delenv("DATABASE_URL", raising=False)
