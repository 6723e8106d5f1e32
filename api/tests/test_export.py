from __future__ import annotations

from datetime import datetime, timezone

import pytest

from signal_console.core.errors import NotFoundError
from signal_console.services.export import export_filename, render_csv


def test_render_csv_quotes_every_cell() -> None:
    table = {
        "columns": ["account_id", "note", "active", "missing"],
        "rows": [
            {"account_id": "A-1", "note": "line one\nline two", "active": True, "missing": None},
            {"account_id": "A-2", "note": 'says "hi", twice', "active": False},
        ],
    }

    text = render_csv(table)

    assert text == (
        '"account_id","note","active","missing"\r\n'
        '"A-1","line one\nline two","true",""\r\n'
        '"A-2","says ""hi"", twice","false",""'
    )


def test_render_csv_formats_datetimes_and_numbers() -> None:
    table = {
        "columns": ["created_at", "score_value"],
        "rows": [{"created_at": datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc), "score_value": 12.5}],
    }
    assert render_csv(table).split("\r\n")[1] == '"2026-01-02T03:04:05+00:00","12.5"'


def test_render_csv_without_rows_raises_not_found() -> None:
    with pytest.raises(NotFoundError, match="no rows to export"):
        render_csv({"columns": ["account_id"], "rows": []})


def test_export_filename_uses_kind_and_timestamp() -> None:
    now = datetime(2026, 10, 17, 8, 5, 9, tzinfo=timezone.utc)
    assert export_filename("tag", now) == "tag-evaluations_20261017080509.csv"
    assert export_filename("score", now) == "score-evaluations_20261017080509.csv"
