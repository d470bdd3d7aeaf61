"""Unit tests for the post-generation pass (compose_cli.project)."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from compose_cli.project import (
    APP_NAME_TOKEN,
    apply_modifications,
    include_module,
    set_executable_permissions,
    substitute_placeholder,
)
from compose_cli.resources import TEMPLATES_DIR, DirectoryResourceProvider
from compose_cli.tracker import StepTracker
from conftest import SETTINGS_GRADLE


@pytest.fixture
def extracted_project(tmp_path: Path) -> Path:
    project = tmp_path / "MyApp"
    project.mkdir()
    (project / "settings.gradle.kts").write_bytes(SETTINGS_GRADLE)
    (project / "README.md").write_text("# Generated by the wizard\n", encoding="utf-8")
    gradlew = project / "gradlew"
    gradlew.write_text("#!/bin/sh\n", encoding="utf-8")
    gradlew.chmod(0o644)
    return project


class TestIncludeModule:
    def test_appends_directive(self):
        result = include_module('include(":composeApp")\n')
        assert result.endswith('\ninclude(":dev")\n')

    def test_is_idempotent(self):
        once = include_module(SETTINGS_GRADLE.decode())
        twice = include_module(once)
        assert twice == once
        assert twice.count('":dev"') == 1

    def test_existing_declaration_is_kept(self):
        content = 'include(":composeApp", ":dev")\n'
        assert include_module(content) == content


class TestSubstitutePlaceholder:
    def test_replaces_every_occurrence(self):
        template = f"<title>{APP_NAME_TOKEN}</title><h1>{APP_NAME_TOKEN}</h1>{APP_NAME_TOKEN}"
        result = substitute_placeholder(template, APP_NAME_TOKEN, "Pocket")
        assert result.count("Pocket") == 3
        assert APP_NAME_TOKEN not in result

    def test_without_token_is_unchanged(self):
        assert substitute_placeholder("plain", APP_NAME_TOKEN, "Pocket") == "plain"


class TestSetExecutablePermissions:
    def test_missing_gradlew(self, tmp_path: Path):
        assert set_executable_permissions(tmp_path) is False

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions only")
    def test_sets_execute_bit(self, extracted_project: Path):
        assert set_executable_permissions(extracted_project) is True
        assert os.access(extracted_project / "gradlew", os.X_OK)


class TestApplyModifications:
    def test_full_pass(self, extracted_project: Path):
        tracker = StepTracker("test")
        skipped = apply_modifications(
            extracted_project, "MyApp", DirectoryResourceProvider(TEMPLATES_DIR), tracker=tracker
        )

        assert skipped == []
        assert (extracted_project / "dev" / "build.gradle.kts").is_file()
        assert (extracted_project / ".github" / "workflows" / "build.yml").is_file()
        assert (extracted_project / "docs" / "index.md").is_file()
        assert (extracted_project / "README.md").read_bytes() == (TEMPLATES_DIR / "project" / "README.md").read_bytes()

        settings = (extracted_project / "settings.gradle.kts").read_text(encoding="utf-8")
        assert settings.count('include(":dev")') == 1

        web = extracted_project / "composeApp" / "src" / "webMain" / "resources"
        for name in ["app.html", "index.html", "preview.html"]:
            content = (web / name).read_text(encoding="utf-8")
            assert "MyApp" in content
            assert APP_NAME_TOKEN not in content
        assert (web / "styles.css").read_bytes() == (
            TEMPLATES_DIR / "project" / "composeApp" / "src" / "webMain" / "resources" / "styles.css"
        ).read_bytes()

        main_kt = extracted_project / "composeApp" / "src" / "webMain" / "kotlin" / "org" / "example" / "project" / "main.kt"
        content = main_kt.read_text(encoding="utf-8")
        assert content.startswith("package org.example.project")
        assert "{{namespace}}" not in content

        assert all(step.status == "done" for step in tracker.steps)

    def test_running_twice_keeps_single_directive(self, extracted_project: Path):
        resources = DirectoryResourceProvider(TEMPLATES_DIR)
        apply_modifications(extracted_project, "MyApp", resources)
        apply_modifications(extracted_project, "MyApp", resources)

        settings = (extracted_project / "settings.gradle.kts").read_text(encoding="utf-8")
        assert settings.count('include(":dev")') == 1

    def test_missing_resources_are_skipped(self, extracted_project: Path, tmp_path: Path):
        empty = tmp_path / "no-templates"
        empty.mkdir()
        tracker = StepTracker("test")

        skipped = apply_modifications(extracted_project, "MyApp", DirectoryResourceProvider(empty), tracker=tracker)

        assert set(skipped) == {"dev-module", "workflows", "readme", "docs", "web-main"}
        assert (extracted_project / "README.md").read_text(encoding="utf-8") == "# Generated by the wizard\n"
        assert 'include(":dev")' in (extracted_project / "settings.gradle.kts").read_text(encoding="utf-8")
        assert tracker.status("readme") == "skipped"
        assert tracker.status("chmod") == "done"

    def test_missing_settings_and_gradlew_are_skipped(self, tmp_path: Path):
        project = tmp_path / "Bare"
        project.mkdir()

        skipped = apply_modifications(project, "Bare", DirectoryResourceProvider(TEMPLATES_DIR))

        assert skipped == ["settings", "chmod"]
        assert not (project / "settings.gradle.kts").exists()
        assert (project / "README.md").exists()
