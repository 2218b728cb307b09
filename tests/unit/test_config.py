import pytest
from pydantic import ValidationError

from app.utils.config import ReadingMode, Settings, TimeUnit


def test_defaults(tmp_path):
    settings = Settings(_env_file=None, directory=tmp_path)

    assert settings.mode is ReadingMode.REF
    assert settings.filename_pattern is None
    assert settings.prevent_duplicates is True
    assert settings.max_messages == -1
    assert settings.metadata_store == "mongodb"
    assert settings.metadata_collection == "integrationMetadataStore"
    assert settings.seen_key_prefix == "seen-files"
    assert settings.poll_interval_seconds() == 1


def test_directory_is_required():
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_empty_directory_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory="  ")


def test_loads_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("DIRECTORY", str(tmp_path))
    monkeypatch.setenv("FILENAME_PATTERN", "*.txt")
    monkeypatch.setenv("MODE", "lines")
    monkeypatch.setenv("MAX_MESSAGES", "5")

    settings = Settings(_env_file=None)

    assert settings.directory == tmp_path
    assert settings.filename_pattern == "*.txt"
    assert settings.mode is ReadingMode.LINES
    assert settings.max_messages == 5


def test_unknown_mode_rejected(tmp_path):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory=tmp_path, mode="chunks")


def test_blank_pattern_means_no_pattern(tmp_path):
    settings = Settings(_env_file=None, directory=tmp_path, filename_pattern="")
    assert settings.filename_pattern is None


def test_pattern_and_regex_are_exclusive(tmp_path):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory=tmp_path, filename_pattern="*.txt", filename_regex=r".*\.txt")


def test_invalid_regex_rejected(tmp_path):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory=tmp_path, filename_regex="([")


@pytest.mark.parametrize("value", [0, -2])
def test_max_messages_must_be_positive_or_unlimited(tmp_path, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory=tmp_path, max_messages=value)


def test_unknown_store_rejected(tmp_path):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory=tmp_path, metadata_store="etcd")


def test_time_unit_conversion(tmp_path):
    settings = Settings(
        _env_file=None,
        directory=tmp_path,
        fixed_delay=500,
        initial_delay=2,
        time_unit="milliseconds",
    )

    assert settings.time_unit is TimeUnit.MILLISECONDS
    assert settings.poll_interval_seconds() == pytest.approx(0.5)
    assert settings.initial_delay_seconds() == pytest.approx(0.002)


def test_unknown_encoding_rejected(tmp_path):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory=tmp_path, mode="lines", encoding="no-such-codec")


def test_negative_max_depth_rejected(tmp_path):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory=tmp_path, max_depth=-1)


@pytest.mark.parametrize("value", [0, -5])
def test_memory_channel_capacity_must_be_positive(tmp_path, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, directory=tmp_path, memory_channel_capacity=value)
