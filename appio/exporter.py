import io
import logging
import re
import zipfile
from typing import Dict, List, Set, Tuple

from .rendering import render_source
from .schemas import Page, Project

logger = logging.getLogger(__name__)

MANIFEST_PATH = "pubspec.yaml"
ENTRY_POINT_PATH = "lib/main.dart"
PAGES_DIR = "lib/pages"

_SEPARATOR_RE = re.compile(r"[\s/\\]+")


def normalize_name(name: str) -> str:
    """Lowercase, whitespace and path-separator runs to underscores (used for file and archive names)."""
    return _SEPARATOR_RE.sub("_", name.lower()).replace("..", "_")


def page_file_path(page: Page) -> str:
    return f"{PAGES_DIR}/{normalize_name(page.name)}_page.dart"


def archive_name(project: Project) -> str:
    return f"{normalize_name(project.name)}.zip"


def page_file_paths(project: Project) -> List[Tuple[Page, str]]:
    """
    One file per page, in page order.

    Pages whose normalized names collide (e.g. two fallback pages from the same
    prompt) get a numeric suffix so no page is dropped from the archive.
    """
    used: Set[str] = set()
    paths: List[Tuple[Page, str]] = []
    for page in project.pages:
        base = normalize_name(page.name)
        path = page_file_path(page)
        count = 1
        while path in used:
            count += 1
            path = f"{PAGES_DIR}/{base}_{count}_page.dart"
        used.add(path)
        paths.append((page, path))
    return paths


def project_file_paths(project: Project) -> List[str]:
    """The project tree as shown in the workspace, without the manifest."""
    return [ENTRY_POINT_PATH] + [path for _, path in page_file_paths(project)]


def render_manifest(project: Project) -> str:
    return render_source(
        "pubspec.yaml.j2",
        package_name=normalize_name(project.name),
        description=project.description,
    )


def render_entry_point(project: Project) -> str:
    return render_source("main.dart.j2", project_name=project.name)


def build_project_files(project: Project) -> Dict[str, str]:
    files: Dict[str, str] = {
        MANIFEST_PATH: render_manifest(project),
        ENTRY_POINT_PATH: render_entry_point(project),
    }
    for page, path in page_file_paths(project):
        files[path] = page.dart_code
    return files


def build_project_archive(project: Project) -> Tuple[str, bytes]:
    files = build_project_files(project)
    mem = io.BytesIO()
    with zipfile.ZipFile(mem, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path, content in files.items():
            zf.writestr(path, content)

    name = archive_name(project)
    logger.info("Exported project=%s files=%d archive=%s", project.id, len(files), name)
    return name, mem.getvalue()
