"""Post-generation changes applied to a freshly extracted wizard project."""

import os
import stat
from pathlib import Path

from .config import DEFAULT_NAMESPACE
from .errors import ResourceMissingError
from .resources import ResourceProvider
from .tracker import StepTracker

DEV_MODULE = ":dev"
APP_NAME_TOKEN = "{{app_name}}"
NAMESPACE_TOKEN = "{{namespace}}"

WEB_RESOURCES_SUBPATH = Path("composeApp", "src", "webMain", "resources")
WEB_TEMPLATE_FILES = ["app.html", "index.html", "preview.html"]
WEB_STATIC_FILES = ["styles.css"]
WEB_MAIN_RESOURCE = "project/composeApp/src/webMain/kotlin/org/example/main.kt"


def include_module(settings_text: str, module: str = DEV_MODULE) -> str:
    """Return ``settings_text`` with an ``include`` directive for ``module``.

    Unchanged when the module is already declared.
    """
    if f'"{module}"' in settings_text:
        return settings_text
    return settings_text + f'\ninclude("{module}")\n'


def substitute_placeholder(text: str, token: str, value: str) -> str:
    return text.replace(token, value)


def namespace_dir(namespace: str) -> Path:
    return Path(*namespace.split("."))


def add_dev_module(target_dir: Path) -> bool:
    settings_file = target_dir / "settings.gradle.kts"
    if not settings_file.exists():
        return False
    content = settings_file.read_text(encoding="utf-8")
    updated = include_module(content)
    if updated != content:
        settings_file.write_text(updated, encoding="utf-8")
    return True


def write_web_resources(target_dir: Path, name: str, resources: ResourceProvider) -> int:
    """Render the web entry pages for ``name``; returns how many files were written."""
    web_dir = target_dir / WEB_RESOURCES_SUBPATH
    web_dir.mkdir(parents=True, exist_ok=True)
    written = 0
    for file_name in WEB_TEMPLATE_FILES:
        try:
            content = resources.read_text(f"project/{WEB_RESOURCES_SUBPATH.as_posix()}/{file_name}")
        except ResourceMissingError:
            continue
        (web_dir / file_name).write_text(substitute_placeholder(content, APP_NAME_TOKEN, name), encoding="utf-8")
        written += 1
    for file_name in WEB_STATIC_FILES:
        try:
            resources.copy_file(f"project/{WEB_RESOURCES_SUBPATH.as_posix()}/{file_name}", web_dir / file_name)
        except ResourceMissingError:
            continue
        written += 1
    return written


def write_web_main(target_dir: Path, resources: ResourceProvider, namespace: str = DEFAULT_NAMESPACE) -> Path:
    content = resources.read_text(WEB_MAIN_RESOURCE)
    kotlin_dir = target_dir / "composeApp" / "src" / "webMain" / "kotlin" / namespace_dir(namespace)
    kotlin_dir.mkdir(parents=True, exist_ok=True)
    main_kt = kotlin_dir / "main.kt"
    main_kt.write_text(substitute_placeholder(content, NAMESPACE_TOKEN, namespace), encoding="utf-8")
    return main_kt


def set_executable_permissions(target_dir: Path) -> bool:
    """Make ``gradlew`` executable; False when the project has none."""
    gradlew = target_dir / "gradlew"
    if not gradlew.is_file():
        return False
    if os.name != "nt":
        mode = gradlew.stat().st_mode
        gradlew.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return True


MODIFICATION_STEPS = [
    ("dev-module", "Copy dev module"),
    ("settings", "Include dev module in settings"),
    ("workflows", "Copy CI workflows"),
    ("readme", "Replace README"),
    ("docs", "Copy docs"),
    ("web-resources", "Patch web resources"),
    ("web-main", "Patch web entry point"),
    ("chmod", "Make gradlew executable"),
]


def apply_modifications(
    target_dir: Path,
    name: str,
    resources: ResourceProvider,
    *,
    tracker: StepTracker | None = None,
) -> list[str]:
    """Apply the bundled customisations to an extracted project.

    Every step is optional: a bundled resource that cannot be found skips
    that step only. Returns the keys of the skipped steps.
    """
    skipped: list[str] = []

    def run(key: str, action):
        if tracker:
            tracker.start(key)
        try:
            detail = action()
        except ResourceMissingError as e:
            skipped.append(key)
            if tracker:
                tracker.skip(key, e.resource_path)
            return
        if detail is False:
            skipped.append(key)
            if tracker:
                tracker.skip(key, "not present")
        elif tracker:
            tracker.complete(key, detail if isinstance(detail, str) else "")

    run("dev-module", lambda: f"{resources.copy_tree('project/dev', target_dir / 'dev')} files")
    run("settings", lambda: add_dev_module(target_dir))
    run(
        "workflows",
        lambda: f"{resources.copy_tree('project/github/workflows', target_dir / '.github' / 'workflows')} files",
    )
    run("readme", lambda: resources.copy_file("project/README.md", target_dir / "README.md").name)
    run("docs", lambda: f"{resources.copy_tree('project/docs', target_dir / 'docs')} files")
    run("web-resources", lambda: f"{write_web_resources(target_dir, name, resources)} files")
    run("web-main", lambda: write_web_main(target_dir, resources).relative_to(target_dir).as_posix())
    run("chmod", lambda: set_executable_permissions(target_dir))
    return skipped
