"""Verify every module imports cleanly in a fresh interpreter.

Each module is imported in its own subprocess so that import order inside
the test session cannot hide a circular import.

Run with: pytest tests/test_imports.py -v
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

SRC = Path(__file__).parent.parent / "src"


def _get_all_modules() -> list[str]:
    """Discover all Python modules in src/scanwell."""
    modules: list[str] = []
    for py_file in (SRC / "scanwell").rglob("*.py"):
        if "__pycache__" in py_file.parts:
            continue
        relative = py_file.relative_to(SRC)
        if py_file.name == "__init__.py":
            # scanwell/scanning/__init__.py -> scanwell.scanning
            module = ".".join(relative.parent.parts)
        else:
            # scanwell/scanning/lock.py -> scanwell.scanning.lock
            module = ".".join(relative.with_suffix("").parts)
        modules.append(module)
    return sorted(set(modules))


ALL_MODULES = _get_all_modules()


def _import_fresh(module: str) -> subprocess.CompletedProcess:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        capture_output=True,
        text=True,
        env=env,
        timeout=60,
    )


@pytest.mark.slow
@pytest.mark.parametrize("module", ALL_MODULES)
def test_module_imports(module: str) -> None:
    """Each module imports on its own, first, with nothing else loaded."""
    result = _import_fresh(module)
    if result.returncode != 0:
        pytest.fail(f"Failed to import {module}:\n{result.stderr}")


def test_scanning_package_exports() -> None:
    result = _import_fresh(
        "scanwell.scanning; "
        "from scanwell.scanning import AnalysisExecutor, ScanOrchestrator, RetryPolicy"
    )
    assert result.returncode == 0, result.stderr


def test_cli_module_not_shadowed_by_group() -> None:
    import click

    from scanwell.interface.cli import main as group
    from scanwell.interface.cli.core import main as module

    assert isinstance(group, click.Group)
    assert group is module.main
    assert hasattr(module, "ScanOrchestrator")
