import pytest

from jobs.config import DEFAULT_PORT, DEFAULT_USER_AGENT, env_bool, env_first, load_settings


def test_defaults_for_empty_environment():
    settings = load_settings({})

    assert settings.database_url is None
    assert settings.wu_api_key is None
    assert settings.daily_ingest_enabled is False
    assert settings.port == DEFAULT_PORT
    assert settings.user_agent == DEFAULT_USER_AGENT
    assert settings.has_database is False
    assert settings.scheduler_enabled is False


def test_first_non_blank_alias_wins():
    env = {
        "DATABASE_URL": "  ",
        "URL_DE_LA_BASE_DE_DATOS": " data/pws.duckdb ",
        "URL DE LA BASE DE DATOS": "other.duckdb",
        "CLAVE API WU": "secret",
        "id_de_estación": "IALFAR30",
    }

    settings = load_settings(env)

    assert settings.database_url == "data/pws.duckdb"
    assert settings.wu_api_key == "secret"
    assert settings.daily_station_id == "IALFAR30"


@pytest.mark.parametrize("raw", ["1", "true", "YES", "si", "Sí", "on"])
def test_truthy_flags(raw):
    assert env_bool(["ENABLE_DAILY_INGEST"], environ={"ENABLE_DAILY_INGEST": raw}) is True


@pytest.mark.parametrize("raw", ["0", "false", "No", "off"])
def test_falsy_flags(raw):
    assert env_bool(["ENABLE_DAILY_INGEST"], True, environ={"ENABLE_DAILY_INGEST": raw}) is False


def test_unrecognized_flag_falls_back_to_default():
    assert env_bool(["FLAG"], True, environ={"FLAG": "maybe"}) is True
    assert env_bool(["FLAG"], False, environ={"FLAG": "maybe"}) is False


def test_scheduler_enabled_through_spanish_names():
    settings = load_settings(
        {
            "URL_DE_LA_BASE_DE_DATOS": "pws.duckdb",
            "HABILITAR_CARGA_DIARIA": "sí",
            "ESTACION_DIARIA": "IALFAR30",
            "PORT": "8080",
        }
    )

    assert settings.scheduler_enabled is True
    assert settings.port == 8080


def test_describe_hides_secrets():
    settings = load_settings({"WU_API_KEY": "secret", "DATABASE_URL": "db.duckdb"})

    summary = settings.describe()

    assert summary == {
        "hasDB": True,
        "hasWUKey": True,
        "stationEnvPresent": False,
        "dailyIngestEnabled": False,
    }
    assert "secret" not in str(summary)


def test_invalid_port_is_rejected():
    with pytest.raises(ValueError):
        load_settings({"PORT": "abc"})


def test_env_first_reads_process_environment(monkeypatch):
    monkeypatch.setenv("WU_API_KEY", "from-env")

    assert env_first(["WU_API_KEY"]) == "from-env"
