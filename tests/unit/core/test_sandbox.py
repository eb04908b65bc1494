from __future__ import annotations

"""
Unit tests for the Execution Sandbox.

Verifies:
1. Isolation: executed code never leaks into caller globals or sys.modules.
2. Relative imports resolve against the logical path, not the physical one.
3. Import overrides take precedence over every other resolution.
4. Failures are tagged with the logical path.
"""

import os
import sys
import types

import pytest

from multiverse.core.sandbox import ModuleResolver, SandboxImporter, new_module, run_file, run_source
from multiverse.domain.errors import ExecutionError, SynthesisError


def test_run_source_returns_module_namespace(tmp_path):
    module = run_source("VALUE = 41\nVALUE += 1\n", str(tmp_path / "answer.py"))

    assert isinstance(module, types.ModuleType)
    assert module.VALUE == 42
    assert module.__name__ == "answer"
    assert module.__file__ == str(tmp_path / "answer.py")


def test_run_source_does_not_leak_bindings(tmp_path):
    run_source("LEAKED_NAME = 1\n", str(tmp_path / "leak.py"))

    assert "LEAKED_NAME" not in globals()
    assert "leak" not in sys.modules


def test_run_source_injects_logger(tmp_path):
    module = run_source("NAME = logger.name\n", str(tmp_path / "noisy.py"))
    assert module.NAME == "multiverse.sandbox.noisy"


def test_absolute_imports_pass_through(tmp_path):
    module = run_source("import json\nDUMPED = json.dumps([1])\n", str(tmp_path / "m.py"))
    assert module.DUMPED == "[1]"


def test_relative_import_resolves_against_logical_path(write_tree):
    root = write_tree({
        "real/helpers.py": "WHERE = 'real'\n",
        "virtual/helpers.py": "WHERE = 'virtual'\n",
    })
    source = "from .helpers import WHERE\n"

    module = run_source(source, os.path.join(root, "virtual", "index.py"))

    assert module.WHERE == "virtual"


def test_parent_relative_import(write_tree):
    root = write_tree({
        "pkg/base.py": "NAME = 'base'\n",
        "pkg/sub/leaf.py": "from ..base import NAME\n",
    })
    module = run_file(os.path.join(root, "pkg", "sub", "leaf.py"))
    assert module.NAME == "base"


def test_from_dot_import_submodule(write_tree):
    root = write_tree({
        "pkg/one.py": "N = 1\n",
        "pkg/two.py": "N = 2\n",
        "pkg/main.py": "from . import one, two\nTOTAL = one.N + two.N\n",
    })
    module = run_file(os.path.join(root, "pkg", "main.py"))
    assert module.TOTAL == 3


def test_from_package_import_submodule(write_tree):
    root = write_tree({
        "app/util/__init__.py": "FLAG = True\n",
        "app/util/text.py": "def up(s):\n    return s.upper()\n",
        "app/main.py": "from .util import text, FLAG\nRESULT = text.up('x') if FLAG else None\n",
    })
    module = run_file(os.path.join(root, "app", "main.py"))
    assert module.RESULT == "X"


def test_missing_relative_import_raises_execution_error(tmp_path):
    path = str(tmp_path / "lonely.py")
    with pytest.raises(ExecutionError) as exc_info:
        run_source("from .nowhere import thing\n", path)

    assert exc_info.value.path == path
    assert isinstance(exc_info.value.__cause__, ImportError)


def test_overrides_take_precedence(write_tree):
    root = write_tree({"pkg/helpers.py": "WHERE = 'disk'\n"})
    fake_helpers = types.SimpleNamespace(WHERE="override")
    fake_json = types.SimpleNamespace(dumps=lambda value: "fake")

    module = run_source(
        "from .helpers import WHERE\nimport json\nOUT = json.dumps(1)\n",
        os.path.join(root, "pkg", "main.py"),
        overrides={".helpers": fake_helpers, "json": fake_json},
    )

    assert module.WHERE == "override"
    assert module.OUT == "fake"


def test_runtime_error_is_tagged_with_logical_path(tmp_path):
    path = str(tmp_path / "boom.py")
    with pytest.raises(ExecutionError) as exc_info:
        run_source("raise ValueError('bad')\n", path)

    assert exc_info.value.path == path
    assert "ValueError: bad" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, ValueError)


def test_syntax_error_is_synthesis_error(tmp_path):
    with pytest.raises(SynthesisError):
        run_source("def broken(:\n", str(tmp_path / "broken.py"))


def test_run_file_unreadable_is_synthesis_error(tmp_path):
    with pytest.raises(SynthesisError):
        run_file(str(tmp_path / "missing.py"))


def test_functions_keep_sandboxed_import(write_tree):
    """Imports executed lazily inside functions still use the sandbox hook."""
    root = write_tree({
        "pkg/late.py": "VALUE = 'late'\n",
        "pkg/main.py": "def get():\n    from .late import VALUE\n    return VALUE\n",
    })
    module = run_file(os.path.join(root, "pkg", "main.py"))
    assert module.get() == "late"


def test_custom_resolver_controls_loading(tmp_path):
    loaded = []

    class VirtualResolver(ModuleResolver):
        def is_module(self, path):
            return path.endswith("ghost.py")

        def load(self, path):
            loaded.append(path)
            return types.SimpleNamespace(BOO="boo")

    module = run_source(
        "from .ghost import BOO\n",
        str(tmp_path / "haunted.py"),
        resolver=VirtualResolver(),
    )

    assert module.BOO == "boo"
    assert loaded == [os.path.normpath(str(tmp_path / "ghost.py"))]


def test_importer_builtins_are_private():
    importer = SandboxImporter("/x/y.py", ModuleResolver())
    namespace = importer.builtins()

    assert namespace["__import__"] is importer
    import builtins
    assert builtins.__import__ is not importer


def test_run_source_executes_into_given_module(tmp_path):
    path = str(tmp_path / "pre.py")
    target = new_module(path)

    module = run_source("VALUE = 3\n", path, module=target)

    assert module is target
    assert module.VALUE == 3
    assert module.__name__ == "pre"
    assert module.__file__ == path


def test_resolver_can_expose_module_while_it_executes(write_tree):
    root = write_tree({
        "ring/a.py": "from . import b\nNAME = 'a'\n",
        "ring/b.py": "from . import a\nSEEN = a\n",
    })
    in_flight = {}

    class CyclingResolver(ModuleResolver):
        def load(self, path):
            if path in in_flight:
                return in_flight[path]
            in_flight[path] = new_module(path)
            return run_file(path, self, module=in_flight[path])

    module = CyclingResolver().load(os.path.join(root, "ring", "a.py"))

    assert module.NAME == "a"
    assert module.b.SEEN is module
