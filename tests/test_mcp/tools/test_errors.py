"""Tests for mcp/tools/errors.py -- error response builders.

Covers:
- build_error_response() structure and format
- translate_replica_error() category mapping
"""

import mcp.types as types
import pytest

from replica_sync.exceptions import (
    BootstrapError,
    RecordNotFoundError,
    ReplicaSyncError,
    StoreUnavailableError,
    SyncPassError,
)
from replica_sync.mcp.tools.errors import (
    build_error_response,
    translate_replica_error,
)


def _get_error_text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


class TestBuildErrorResponse:
    def test_marks_error(self):
        result = build_error_response("not_found", "Not found", "Try again")

        assert isinstance(result, types.CallToolResult)
        assert result.isError is True

    def test_text_format(self):
        result = build_error_response(
            "validation_error", "id is required", "Pass an id."
        )

        assert _get_error_text(result) == (
            "Error (validation_error): id is required\n\nAction: Pass an id."
        )


class TestTranslateReplicaError:
    @pytest.mark.parametrize(
        "error,category",
        [
            (RecordNotFoundError("p9"), "not_found"),
            (
                SyncPassError("force", 2, StoreUnavailableError("target", "x")),
                "sync_failed",
            ),
            (StoreUnavailableError("source", "refused"), "store_error"),
            (BootstrapError(3), "server_error"),
            (ReplicaSyncError("odd"), "server_error"),
        ],
    )
    def test_categories(self, error, category):
        result = translate_replica_error(error)

        assert result.isError is True
        assert _get_error_text(result).startswith(f"Error ({category}):")

    def test_not_found_message(self):
        text = _get_error_text(translate_replica_error(RecordNotFoundError("p9")))

        assert "Person with id p9 not found" in text
        assert "record_list" in text

    def test_store_error_names_store(self):
        text = _get_error_text(
            translate_replica_error(StoreUnavailableError("target", "down"))
        )

        assert "The target store is unreachable" in text

    def test_sync_failed_reports_no_count(self):
        text = _get_error_text(
            translate_replica_error(
                SyncPassError("force", 4, StoreUnavailableError("target", "x"))
            )
        )

        assert "No result count is reported" in text
