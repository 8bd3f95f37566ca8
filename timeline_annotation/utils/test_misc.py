import sys

import pytest  # noqa: F401
from timeline_annotation.utils.misc import load_module


def test_load_module_by_path(tmp_path):
    script = tmp_path / "plugin_script.py"
    script.write_text("VALUE = 42\n")
    module = load_module(script, module_name="timeline_test_plugin_script")
    try:
        assert module.VALUE == 42
        assert sys.modules["timeline_test_plugin_script"] is module
    finally:
        sys.modules.pop("timeline_test_plugin_script", None)


def test_load_module_package_supports_relative_imports(tmp_path):
    package = tmp_path / "plugin_pkg"
    package.mkdir()
    (package / "__init__.py").write_text(
        "def handle():\n    from .impl import VALUE\n    return VALUE\n"
    )
    (package / "impl.py").write_text("VALUE = 'ok'\n")
    module = load_module(package / "__init__.py", module_name="timeline_test_pkg")
    try:
        assert module.handle() == "ok"
    finally:
        sys.modules.pop("timeline_test_pkg", None)
        sys.modules.pop("timeline_test_pkg.impl", None)
