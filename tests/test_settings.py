import pytest

from distshrink.errors import ConfigError
from distshrink.settings import Settings


def write(tmp_path, text):
    path = tmp_path / "distshrink.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults():
    settings = Settings()
    assert settings.extensions == [".html", ".css", ".js"]
    assert settings.scope_id_prefix == "astro-cid-"
    assert settings.custom_property_min_length == 6
    assert settings.max_workers is None
    assert not settings.dry_run


def test_load_yaml(tmp_path):
    path = write(tmp_path, "extensions: [HTML, .Css, ' ']\nminify_css: false\nmax_workers: 2\n")
    settings = Settings.load(path)
    assert settings.extensions == [".html", ".css"]
    assert settings.minify_css is False
    assert settings.max_workers == 2


def test_empty_file_gives_defaults(tmp_path):
    assert Settings.load(write(tmp_path, "")) == Settings()


def test_overrides_win_but_none_is_ignored(tmp_path):
    path = write(tmp_path, "dry_run: true\nfold_calc: false\n")
    settings = Settings.load(path, dry_run=None, fold_calc=True)
    assert settings.dry_run is True
    assert settings.fold_calc is True


@pytest.mark.parametrize(
    "text",
    [
        "extensions: [",
        "colour: red\n",
        "- a\n- b\n",
        "max_workers: 0\n",
        "custom_property_min_length: -1\n",
    ],
)
def test_bad_settings_raise_config_error(tmp_path, text):
    with pytest.raises(ConfigError):
        Settings.load(write(tmp_path, text))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        Settings.load(tmp_path / "nope.yaml")
