"""
Utility script to generate and write the OpenAPI schema for the FastAPI app.

The schema is the contract the API Explorer page and other HTTP clients read,
so it is written to a stable file that can be consumed without running the
server.

Usage:
    python -m records_api.generate_openapi [output_path]

Notes:
- The 'health' and 'records' tags are guaranteed present in the tag metadata.
- The default output path is interfaces/openapi.json under the project root.
"""
from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI

from .main import create_app, openapi_tags
from .repositories import InMemoryRepository
from .settings import get_settings

logger = structlog.get_logger(__name__)


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema contains the expected tags metadata. Existing
    tag definitions are left alone; only missing ones are appended.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


def default_output_path() -> str:
    # <project_root>/interfaces/openapi.json, where this file is <project_root>/src/records_api/
    package_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(os.path.dirname(package_dir))
    return os.path.join(project_root, "interfaces", "openapi.json")


# PUBLIC_INTERFACE
def generate_openapi(output_path: Optional[str] = None, app: Optional[FastAPI] = None) -> str:
    """Generate the OpenAPI schema file and return the written file path."""
    # The schema does not depend on the storage backend, so never open a database for it
    app = app or create_app(get_settings(), repository=InMemoryRepository())
    schema = app.openapi()
    _ensure_tags(schema)

    out_path = output_path or default_output_path()
    os.makedirs(os.path.dirname(os.path.abspath(out_path)), exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    logger.info("openapi_written", path=out_path)
    return out_path


def main(argv: Optional[List[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    path = generate_openapi(args[0] if args else None)
    print(f"Wrote OpenAPI schema to: {path}")


if __name__ == "__main__":
    main()
