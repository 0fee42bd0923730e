import pytest


@pytest.fixture
def dist(tmp_path):
    """Build a build-output tree from a ``{relative path: text}`` mapping."""

    def build(files):
        for name, text in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(text, bytes):
                path.write_bytes(text)
            else:
                path.write_text(text, encoding="utf-8")
        return tmp_path

    return build


@pytest.fixture
def read(tmp_path):
    def read_file(name):
        return (tmp_path / name).read_text(encoding="utf-8")

    return read_file
