"""Shared fixtures: throwaway packages carrying resource files."""

import importlib
import sys
import uuid
import zipfile
from pathlib import Path
from types import ModuleType
from typing import Callable, Iterator, Mapping, Union

import pytest

import embres

ResourceFiles = Mapping[str, Union[str, bytes]]
PackageFactory = Callable[[ResourceFiles], ModuleType]


def _unique_name() -> str:
    return f"embres_fixture_{uuid.uuid4().hex[:10]}"


@pytest.fixture
def make_package(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[PackageFactory]:
    """Write a package with the given resource files and import it."""
    created: list[str] = []
    site = tmp_path / "site"

    def _make(files: ResourceFiles) -> ModuleType:
        name = _unique_name()
        package_dir = site / name
        package_dir.mkdir(parents=True)
        (package_dir / "__init__.py").write_text("")
        for relative, content in files.items():
            path = package_dir.joinpath(*relative.split("/"))
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_bytes(content.encode("utf-8"))

        monkeypatch.syspath_prepend(str(site))
        created.append(name)
        return importlib.import_module(name)

    yield _make

    for name in created:
        sys.modules.pop(name, None)


@pytest.fixture
def make_zip_package(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[PackageFactory]:
    """Like ``make_package`` but the package is imported from a zip archive."""
    created: list[str] = []

    def _make(files: ResourceFiles) -> ModuleType:
        name = _unique_name()
        archive = tmp_path / f"{name}.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr(f"{name}/__init__.py", "")
            for relative, content in files.items():
                zf.writestr(f"{name}/{relative}", content)

        monkeypatch.syspath_prepend(str(archive))
        created.append(name)
        return importlib.import_module(name)

    yield _make

    for name in created:
        sys.modules.pop(name, None)


@pytest.fixture(autouse=True)
def reset_global_accessor() -> Iterator[None]:
    """Keep the module-level accessor singleton from leaking between tests."""
    embres._ACCESSOR_INSTANCE = None
    yield
    embres._ACCESSOR_INSTANCE = None
