# tests/core/test_path_utils.py
from xmlshape.core.utils.path_utils import PathUtils


def test_package_root_holds_settings():
    assert (PathUtils.get_package_root() / "settings.json").is_file()


def test_expand_filenames_globs_and_dedupes(tmp_path):
    """Globs are expanded in sorted order, directories skipped, duplicates dropped."""
    (tmp_path / "b.xml").write_text("<b/>")
    (tmp_path / "a.xml").write_text("<a/>")
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "sub.xml").mkdir()
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "c.xml").write_text("<c/>")

    result = list(PathUtils.expand_filenames([
        str(tmp_path / "*.xml"),
        str(tmp_path / "a.xml"),
        str(tmp_path / "**" / "*.xml"),
    ]))

    assert result == [
        str(tmp_path / "a.xml"),
        str(tmp_path / "b.xml"),
        str(nested / "c.xml"),
    ]


def test_expand_filenames_warns_on_no_match(tmp_path, caplog):
    with caplog.at_level("WARNING"):
        result = list(PathUtils.expand_filenames([str(tmp_path / "missing.xml")]))

    assert result == []
    assert "No files matched" in caplog.text
