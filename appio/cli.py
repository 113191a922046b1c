"""
Command-line workspace for APPio.

Keeps projects in the local workspace file and talks to a running APPio
service for page generation and backend connection, e.g.:

    appio create "Shop" --description "Small storefront"
    appio generate <project-id> "Login page with email and password fields"
    appio export <project-id> --out ./dist
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .api_client import ApiError
from .workspace import OperationInProgressError, Workspace, WorkspaceError, open_workspace
from .workspace_store import WorkspaceStoreError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="appio", description="Build Flutter apps with AI.")
    parser.add_argument("--workspace", default=None, help="Workspace JSON file (default: APPIO_WORKSPACE_PATH).")
    parser.add_argument("--api-url", default=None, help="APPio service URL (default: APPIO_API_BASE_URL).")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("projects", help="List projects.")

    create = sub.add_parser("create", help="Create a project.")
    create.add_argument("name")
    create.add_argument("--description", default="")

    show = sub.add_parser("show", help="Show a project's pages and file structure.")
    show.add_argument("project_id")

    generate = sub.add_parser("generate", help="Generate a page from a prompt.")
    generate.add_argument("project_id")
    generate.add_argument("prompt")

    regenerate = sub.add_parser("regenerate", help="Generate a new page from an existing page's prompt.")
    regenerate.add_argument("project_id")
    regenerate.add_argument("page_id")

    delete = sub.add_parser("delete-page", help="Remove a page from a project.")
    delete.add_argument("project_id")
    delete.add_argument("page_id")

    code = sub.add_parser("code", help="Print a page's Dart source.")
    code.add_argument("project_id")
    code.add_argument("page_id")

    connect = sub.add_parser("connect", help="Run the backend analysis for a project.")
    connect.add_argument("project_id")

    export = sub.add_parser("export", help="Write the project archive.")
    export.add_argument("project_id")
    export.add_argument("--out", default=".", help="Output directory.")

    preview = sub.add_parser("preview", help="Print the web preview URL.")
    preview.add_argument("project_id")

    return parser.parse_args(argv)


def _print_project(workspace: Workspace, project_id: str) -> None:
    project = workspace.get_project(project_id)
    status = "Backend Connected" if project.backend_connected else "Frontend Only"
    print(f"{project.name} [{status}]")
    if project.description:
        print(f"  {project.description}")
    print(f"  Pages ({len(project.pages)}):")
    for page in project.pages:
        widgets = ", ".join(page.widgets[:3])
        if len(page.widgets) > 3:
            widgets += f" +{len(page.widgets) - 3} more"
        print(f"    {page.id}  {page.name}  ({widgets})")
        print(f"      {page.prompt}")
    print("  Files:")
    for path in workspace.project_files(project_id):
        print(f"    {path}")


async def run(args: argparse.Namespace, workspace: Workspace) -> None:
    if args.command == "projects":
        for project in workspace.list_projects():
            status = "Connected" if project.backend_connected else "Frontend Only"
            print(
                f"{project.id}  {project.name}  {len(project.pages)} pages  "
                f"{project.created_at.date().isoformat()}  [{status}]"
            )
    elif args.command == "create":
        project = workspace.create_project(args.name, args.description)
        print(f"Project created successfully: {project.id}")
    elif args.command == "show":
        _print_project(workspace, args.project_id)
    elif args.command == "generate":
        page = await workspace.generate_page(args.project_id, args.prompt)
        print(f"Page generated successfully: {page.id} {page.name}")
    elif args.command == "regenerate":
        page = await workspace.regenerate_page(args.project_id, args.page_id)
        print(f"Page generated successfully: {page.id} {page.name}")
    elif args.command == "delete-page":
        workspace.delete_page(args.project_id, args.page_id)
        print("Page deleted successfully")
    elif args.command == "code":
        page = workspace.get_page(args.project_id, args.page_id)
        print(page.dart_code)
    elif args.command == "connect":
        result = await workspace.connect_backend(args.project_id)
        print(result.message)
        print("Services: " + ", ".join(result.services))
        print(result.analysis)
    elif args.command == "export":
        filename, content = workspace.export_project(args.project_id)
        out_dir = Path(args.out)
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / filename
        target.write_bytes(content)
        print(f"Project downloaded successfully: {target}")
    elif args.command == "preview":
        print(workspace.preview_url(args.project_id))


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s [%(name)s] %(message)s")

    try:
        workspace = open_workspace(args.workspace, base_url=args.api_url)
        asyncio.run(run(args, workspace))
    except (WorkspaceError, ApiError, OperationInProgressError, WorkspaceStoreError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
