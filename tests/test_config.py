import os

import pytest
import yaml

from photo_sorter.config import Config, load_config, write_default_config
from photo_sorter.errors import ConfigError


def test_defaults_when_file_missing(tmp_path):
    config = load_config(str(tmp_path / "missing.yaml"))
    assert config.workers == 4
    assert config.date_format == "%Y-%m"
    assert ".jpg" in config.formats
    assert os.path.isabs(config.dst_dir)


def test_yaml_overrides_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"workers": 8, "formats": [".JPG"], "dry_run": True}))

    config = load_config(str(path))

    assert config.workers == 8
    assert config.dry_run is True
    assert config.is_supported_format("photo.jpg")
    assert not config.is_supported_format("clip.mov")


def test_unknown_keys_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("colour: blue\n")
    with pytest.raises(ConfigError, match="colour"):
        load_config(str(path))


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_write_default_config_round_trips(tmp_path):
    path = tmp_path / "config.yaml"
    write_default_config(str(path))
    config = load_config(str(path))
    assert config.formats == Config().formats
    assert config.ignore == Config().ignore


def test_apply_overrides_skips_missing_values(tmp_path):
    config = Config(src_dir=str(tmp_path), workers=3)
    config.apply_overrides(workers=None, log_level=None, enable_verify=True)
    assert config.workers == 3
    assert config.log_level == "INFO"
    assert config.enable_verify is True

    with pytest.raises(ConfigError):
        config.apply_overrides(not_a_setting=1)


@pytest.mark.parametrize("name,ignored", [
    ("notes.md", True),
    ("NOTES.MD", True),
    (".gitignore", True),
    (".DS_Store", True),
    ("photo.jpg", False),
    ("Thumbs.db", True),
])
def test_should_ignore(name, ignored):
    config = Config(ignore=[".md", ".gitignore", ".DS_Store", "thumbs.db"])
    assert config.should_ignore(os.path.join("some", "dir", name)) is ignored


def test_validate(tmp_path):
    Config(src_dir=str(tmp_path)).validate()

    with pytest.raises(ConfigError):
        Config(src_dir=str(tmp_path), workers=0).validate()
    with pytest.raises(ConfigError):
        Config(src_dir=str(tmp_path / "nope")).validate()
    with pytest.raises(ConfigError):
        Config(src_dir=str(tmp_path), enable_geotag=True).validate()
