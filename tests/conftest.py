from pathlib import Path

import pytest
import yaml


SESSIONS_FRAGMENT = {
    "/sessions": {
        "get": {
            "tags": ["Sessions"],
            "summary": "List sessions",
            "responses": {"200": {"description": "OK"}},
        }
    },
    "/sessions/{sessionId}": {
        "delete": {
            "tags": ["Sessions"],
            "parameters": [{"name": "sessionId", "in": "path", "required": True, "schema": {"type": "string"}}],
            "responses": {"204": {"description": "Deleted"}},
        }
    },
}

BRANCHES_FRAGMENT = {
    "/branches": {
        "post": {
            "tags": ["Branches"],
            "requestBody": {"$ref": "#/components/requestBodies/Branch"},
            "responses": {"201": {"description": "Created"}},
        }
    },
}

COMPONENTS = {
    "components": {
        "schemas": {
            "Session": {
                "type": "object",
                "properties": {"id": {"type": "string"}, "active": {"type": "boolean"}},
            }
        },
        "requestBodies": {
            "Branch": {"content": {"application/json": {"schema": {"type": "object"}}}},
        },
    }
}


def write_yaml(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """A working directory laid out like the collabsvc openapi folder."""
    (tmp_path / "tags").mkdir()
    (tmp_path / "components").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def populated(workspace):
    write_yaml(workspace / "tags" / "sessions.yaml", SESSIONS_FRAGMENT)
    write_yaml(workspace / "tags" / "branches.yaml", BRANCHES_FRAGMENT)
    write_yaml(workspace / "components" / "components.yaml", COMPONENTS)
    return workspace
