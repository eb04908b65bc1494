from __future__ import annotations

"""
Unit tests for the tree walk filtering rules.
"""

import logging

from multiverse.core.filters import (
    compile_patterns,
    default_exclude_patterns,
    load_gitignore_patterns,
    make_exclude_filter,
    matches_any,
)


def test_default_patterns_exclude_artifacts():
    compiled = compile_patterns(default_exclude_patterns())
    assert matches_any("module.pyc", compiled)
    assert matches_any("__pycache__", compiled)
    assert matches_any(".git", compiled)
    assert not matches_any("index.py", compiled)
    assert not matches_any("lib", compiled)


def test_invalid_pattern_is_discarded(caplog):
    with caplog.at_level(logging.WARNING, logger="multiverse.core.filters"):
        compiled = compile_patterns(["[unclosed", r"^ok$"])
    assert len(compiled) == 1
    assert "invalid exclude pattern" in caplog.text


def test_exclude_filter_predicate():
    keep = make_exclude_filter([r"^fixtures$", r"_test\.py$"])
    assert keep("index.py", "/x/index.py", False)
    assert not keep("fixtures", "/x/fixtures", True)
    assert not keep("walker_test.py", "/x/walker_test.py", False)


def test_gitignore_translation(tmp_path):
    (tmp_path / ".gitignore").write_text(
        "# comment\n\nbuild/\n*.log\n!keep.log\n", encoding="utf-8"
    )
    keep = make_exclude_filter(load_gitignore_patterns(str(tmp_path)))

    assert not keep("build", str(tmp_path / "build"), True)
    assert not keep("debug.log", str(tmp_path / "debug.log"), False)
    assert keep("keep.py", str(tmp_path / "keep.py"), False)


def test_gitignore_missing_file(tmp_path):
    assert load_gitignore_patterns(str(tmp_path)) == []
