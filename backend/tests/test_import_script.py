"""Tests for the scripts/import_data.py command line entry point."""

import importlib.util
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy.orm import sessionmaker

from tests.factories import write_json_lines

SCRIPT_PATH = Path(__file__).resolve().parent.parent / "scripts" / "import_data.py"


@pytest.fixture
def import_script():
    spec = importlib.util.spec_from_file_location("import_data_script", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def data_dir(tmp_path):
    write_json_lines(tmp_path / "business.json", [
        {"business_id": "b1", "name": "Corner Deli", "city": "Reno", "state": "NV",
         "categories": "Delis, Sandwiches", "stars": 4.0, "review_count": 8},
    ])
    write_json_lines(tmp_path / "review.json", [
        {"review_id": "r1", "business_id": "b1", "stars": 1.0, "text": "Stale bread", "date": "2024-01-02 08:00:00"},
        {"review_id": "r2", "business_id": "b1", "stars": 5.0, "text": "Great", "date": "2024-01-03 08:00:00"},
    ])
    return tmp_path


def test_import_script_runs_full_import(import_script, engine, data_dir, capsys):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with patch.object(import_script, "get_session_local", return_value=SessionLocal):
        exit_code = import_script.main([
            "--data-dir", str(data_dir),
            "--business-file", "business.json",
            "--review-file", "review.json",
        ])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Corner Deli: 2 reviews" in output
    assert "High Risk (1-2★): 1 (50%)" in output


def test_import_script_missing_file_exits_1(import_script, engine, tmp_path, capsys):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with patch.object(import_script, "get_session_local", return_value=SessionLocal):
        exit_code = import_script.main(["--data-dir", str(tmp_path)])

    assert exit_code == 1
    assert "Source file not found" in capsys.readouterr().out


def test_import_script_missing_file_leaves_schema_untouched(import_script, tmp_path, capsys):
    with patch.object(import_script, "create_tables") as create_tables, \
            patch.object(import_script, "get_session_local") as get_session_local:
        exit_code = import_script.main(["--data-dir", str(tmp_path), "--create-tables"])

    assert exit_code == 1
    assert "Source file not found" in capsys.readouterr().out
    create_tables.assert_not_called()
    get_session_local.assert_not_called()


def test_import_script_creates_tables_when_files_exist(import_script, engine, data_dir):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with patch.object(import_script, "create_tables") as create_tables, \
            patch.object(import_script, "get_session_local", return_value=SessionLocal):
        exit_code = import_script.main([
            "--data-dir", str(data_dir),
            "--business-file", "business.json",
            "--review-file", "review.json",
            "--create-tables",
        ])

    assert exit_code == 0
    create_tables.assert_called_once()


def test_import_script_rejects_non_positive_limits(import_script, capsys):
    assert import_script.main(["--max-businesses", "0"]) == 1
