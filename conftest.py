"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- A well-formed sample data point shared across test modules
"""

import json
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# =============================================================================
# Sample Data Point
# =============================================================================

WIDGET_COMPONENTS_TEXT = """\
interface WidgetProps {
  // Stable identifier of the widget
  id: string;

  // Optional caption under the widget
  label?: string;
}
"""


def make_widget_conversation() -> dict:
    """A conversation document for which every check passes."""
    return {
        "componentsSchema": {
            "$defs": {
                "Widget": {
                    "properties": {
                        "props": {
                            "properties": {"id": {"type": "string"}},
                            "required": ["id"],
                            "additionalProperties": False,
                        }
                    }
                }
            },
        },
        "conversation": [
            {
                "role": "user",
                "content": "Show me my widget",
                "grading_guidance": {
                    "quality_criteria": ["Shows the widget"],
                    "expected_components": ["Widget"],
                },
            },
            {
                "role": "assistant",
                "content": None,
                "toolCalls": [{"id": "call_1", "name": "get_widget"}],
            },
            {
                "role": "tool",
                "content": json.dumps({"id": "widget-0001"}),
                "toolCallId": "call_1",
            },
            {
                "role": "assistant",
                "content": [
                    {
                        "type": "component",
                        "component": {"name": "Widget", "props": {"id": "widget-0001"}},
                    }
                ],
            },
        ],
    }


@pytest.fixture
def widget_components_text() -> str:
    """Components text declaring a single Widget interface."""
    return WIDGET_COMPONENTS_TEXT


@pytest.fixture
def widget_conversation() -> dict:
    """Raw conversation document matching ``widget_components_text``."""
    return make_widget_conversation()


@pytest.fixture
def data_point_folder(tmp_path: Path) -> Path:
    """A data point folder on disk holding the sample files."""
    folder = tmp_path / "show_widget_20250101_120000"
    folder.mkdir()
    (folder / "components.ts").write_text(WIDGET_COMPONENTS_TEXT, encoding="utf-8")
    (folder / "conversation.json").write_text(
        json.dumps(make_widget_conversation(), indent=2), encoding="utf-8"
    )
    return folder
