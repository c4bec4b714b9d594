"""
Utility script to generate and write the OpenAPI schema for the FastAPI app.

This script imports the FastAPI application instance and serializes its OpenAPI
schema to interfaces/openapi.json so that API clients (the Flutter front end)
can consume a stable schema without running the server.

Usage:
    python -m tasks_api.generate_openapi [OUTPUT_PATH]
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .main import app, openapi_tags

logger = logging.getLogger(__name__)

# <project_root>/interfaces/openapi.json, project_root being the parent of src/
DEFAULT_OUTPUT = Path(__file__).resolve().parents[2] / "interfaces" / "openapi.json"


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema contains the tags metadata declared by the app,
    without overriding existing tag definitions.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[Union[str, Path]] = None) -> Path:
    """Write the OpenAPI schema to ``out_path`` (default interfaces/openapi.json) and return the path."""
    schema = app.openapi()
    _ensure_tags(schema)

    path = Path(out_path) if out_path is not None else DEFAULT_OUTPUT
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    logger.info("Wrote OpenAPI schema to %s", path)
    return path


def main(argv: Optional[List[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    path = generate_openapi(args[0] if args else None)
    print(f"Wrote OpenAPI schema to: {path}")


if __name__ == "__main__":
    main()
