import pathlib
import sys


def ensure_project_path() -> None:
    """Make sure the project root is on sys.path for local module imports."""
    project_root = pathlib.Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(project_root))


if __name__ == "__main__":
    ensure_project_path()

    from appio.main import app  # noqa: E402
    from appio.page_generator import page_generator  # noqa: E402

    mode = "Gemini" if page_generator.settings.gemini_api_key else "fallback-only"
    print("FastAPI app imported successfully with", len(app.routes), "routes; generator:", mode)
