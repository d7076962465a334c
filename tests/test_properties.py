"""Tests for sonar-project.properties generation."""

import os
from datetime import UTC, datetime
from pathlib import Path

import pytest

from scanwell.foundation.types.scan import ScannerStrategy
from scanwell.scanning.params.paths import M2_GLOB
from scanwell.scanning.properties import (
    ConfigPersister,
    ModuleConfig,
    PropertiesConfig,
    PropertiesFileManager,
    parse_params,
)
from scanwell.scanning.validation.existing import PROPERTIES_FILE, parse_properties

CLI_PARAMS = [
    "-Dsonar.projectKey=demo-project",
    "-Dsonar.host.url=https://sonar.example.com",
    "-Dsonar.login=squ_0123456789abcdef",
    "-Dsonar.projectVersion=1760000000000",
    "-Dsonar.sources=src",
    "-Dsonar.tests=tests",
    "-Dsonar.python.version=3.11",
]


class TestConfigPersister:
    """Tests for saving the parameters of a CLI run."""

    def test_writes_cli_params(self, tmp_path: Path) -> None:
        path = ConfigPersister().persist(tmp_path, CLI_PARAMS, ScannerStrategy.CLI)

        assert path == tmp_path / PROPERTIES_FILE
        properties = parse_properties(path.read_text())
        assert properties["sonar.projectKey"] == "demo-project"
        assert properties["sonar.sources"] == "src"
        assert properties["sonar.tests"] == "tests"
        assert properties["sonar.python.version"] == "3.11"
        assert properties["sonar.sourceEncoding"] == "UTF-8"

    def test_credentials_never_written(self, tmp_path: Path) -> None:
        path = ConfigPersister().persist(tmp_path, CLI_PARAMS, ScannerStrategy.CLI)

        content = path.read_text()
        assert "squ_0123456789abcdef" not in content
        assert "sonar.host.url" not in content
        assert "sonar.projectVersion" not in content

    def test_native_strategy_skipped(self, tmp_path: Path) -> None:
        """Maven and Gradle plugins never read the file."""
        assert ConfigPersister().persist(tmp_path, CLI_PARAMS, ScannerStrategy.MAVEN) is None
        assert not (tmp_path / PROPERTIES_FILE).exists()

    def test_only_transient_params(self, tmp_path: Path) -> None:
        params = [p for p in CLI_PARAMS if "host.url" in p or "login" in p]

        assert ConfigPersister().persist(tmp_path, params, ScannerStrategy.CLI) is None

    def test_existing_file_untouched(self, tmp_path: Path) -> None:
        (tmp_path / PROPERTIES_FILE).write_text("sonar.sources=app\n")

        assert ConfigPersister().persist(tmp_path, CLI_PARAMS, ScannerStrategy.CLI) is None
        assert (tmp_path / PROPERTIES_FILE).read_text() == "sonar.sources=app\n"

    def test_libraries_are_made_portable(self, tmp_path: Path) -> None:
        params = [
            "-Dsonar.projectKey=shop",
            "-Dsonar.java.binaries=target/classes",
            "-Dsonar.java.libraries=/home/dev/.m2/repository/a.jar,/home/dev/.m2/repository/b.jar",
        ]

        path = ConfigPersister().persist(tmp_path, params, ScannerStrategy.CLI)

        properties = parse_properties(path.read_text())
        assert properties["sonar.java.libraries"] == M2_GLOB
        assert properties["sonar.java.binaries"] == "target/classes"

    def test_absolute_library_mode(self, tmp_path: Path) -> None:
        params = ["-Dsonar.projectKey=shop", "-Dsonar.java.libraries=/opt/a.jar"]

        path = ConfigPersister(library_path_mode="absolute").persist(tmp_path, params, ScannerStrategy.CLI)

        assert parse_properties(path.read_text())["sonar.java.libraries"] == "/opt/a.jar"

    def test_write_failure_is_swallowed(self, tmp_path: Path) -> None:
        missing = tmp_path / "does-not-exist"

        assert ConfigPersister().persist(missing, CLI_PARAMS, ScannerStrategy.CLI) is None


class TestPropertiesFileManager:
    """Tests for rendering and writing the file."""

    def test_render_single_module(self) -> None:
        content = PropertiesFileManager().render(
            PropertiesConfig(project_key="shop", sources="src/main/java", java_source="17"),
            now=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC),
        )

        assert content.splitlines()[:3] == [
            "# SonarQube Project Configuration",
            "# Generated by scanwell",
            "# 2026-01-02T03:04:05+00:00",
        ]
        assert "sonar.sources=src/main/java" in content
        assert "# Java\nsonar.java.source=17" in content

    def test_render_modules(self) -> None:
        config = PropertiesConfig(
            project_key="shop",
            modules=(
                ModuleConfig(name="api", base_dir="api", sources="src/main/java", binaries="target/classes"),
                ModuleConfig(name="web", base_dir="web", sources="src"),
            ),
        )

        properties = parse_properties(PropertiesFileManager().render(config))

        assert properties["sonar.modules"] == "api,web"
        assert properties["api.sonar.java.binaries"] == "target/classes"
        assert properties["web.sonar.projectBaseDir"] == "web"
        assert "sonar.sources" not in properties

    def test_no_overwrite_by_default(self, tmp_path: Path) -> None:
        manager = PropertiesFileManager()
        (tmp_path / PROPERTIES_FILE).write_text("old\n")

        result = manager.write_config(tmp_path, PropertiesConfig(project_key="shop"))

        assert result.success is False
        assert result.warnings
        assert manager.read(tmp_path) == {}

    def test_file_created_while_writing_is_kept(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        target = tmp_path / PROPERTIES_FILE
        real_link = os.link

        def user_writes_first(src, dst):
            Path(dst).write_text("sonar.sources=mine\n")
            real_link(src, dst)

        monkeypatch.setattr(os, "link", user_writes_first)

        result = PropertiesFileManager().write_config(tmp_path, PropertiesConfig(project_key="shop"))

        assert result.success is False
        assert target.read_text() == "sonar.sources=mine\n"
        assert list(tmp_path.glob(".*.tmp")) == []

    def test_new_file_leaves_no_temp_files(self, tmp_path: Path) -> None:
        result = PropertiesFileManager().write_config(tmp_path, PropertiesConfig(project_key="shop"))

        assert result.success is True
        written = parse_properties((tmp_path / PROPERTIES_FILE).read_text())
        assert written["sonar.projectKey"] == "shop"
        assert list(tmp_path.glob(".*.tmp")) == []

    def test_overwrite_keeps_backup(self, tmp_path: Path) -> None:
        manager = PropertiesFileManager()
        (tmp_path / PROPERTIES_FILE).write_text("sonar.sources=old\n")

        result = manager.write_config(tmp_path, PropertiesConfig(project_key="shop"), overwrite=True)

        assert result.success
        assert result.backup_path is not None
        assert result.backup_path.read_text() == "sonar.sources=old\n"
        assert manager.read(tmp_path)["sonar.projectKey"] == "shop"
        assert not list(tmp_path.glob("*.tmp"))

    def test_read_delete(self, tmp_path: Path) -> None:
        manager = PropertiesFileManager()

        assert manager.read(tmp_path) is None
        assert manager.delete(tmp_path) is False
        manager.write_config(tmp_path, PropertiesConfig(project_key="shop"))
        assert manager.exists(tmp_path)
        assert manager.delete(tmp_path) is True


def test_parse_params() -> None:
    assert parse_params(["sonar:sonar", "-q", "-Dsonar.sources=a=b", "-D=x"]) == {"sonar.sources": "a=b"}
