"""
Tests for the export output file utilities.
"""

import os
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from appd_config_manager.shared.exceptions import OutputError
from appd_config_manager.shared.file_utils import (
    create_run_directory,
    make_subdirectory,
    output_name,
    safe_filename,
    validate_config_output,
    write_output_file,
)


class TestRunDirectory:
    """Test cases for create_run_directory and make_subdirectory."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_creates_output_and_timestamp_directories(self):
        output_dir = Path(self.temp_dir) / "backups"
        run_dir = create_run_directory(output_dir, "20240101120000")

        assert run_dir == output_dir / "20240101120000"
        assert run_dir.is_dir()

    def test_default_timestamp_format(self):
        run_dir = create_run_directory(self.temp_dir)
        assert len(run_dir.name) == 14
        assert run_dir.name.isdigit()

    def test_output_dir_is_a_file(self):
        blocker = Path(self.temp_dir) / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(OutputError, match="Could not create output directory"):
            create_run_directory(blocker, "20240101120000")

    def test_make_subdirectory(self):
        path = make_subdirectory(Path(self.temp_dir), "MyApp")
        assert path.is_dir()
        assert make_subdirectory(Path(self.temp_dir), "MyApp") == path

    def test_make_subdirectory_failure(self):
        with patch.object(Path, "mkdir", side_effect=PermissionError("denied")):
            with pytest.raises(OutputError, match="Could not create directory"):
                make_subdirectory(Path(self.temp_dir), "MyApp")


class TestNames:
    """Test cases for output naming."""

    def test_safe_filename_replaces_separators(self):
        assert safe_filename("Ops/Prod\\EU") == "Ops_Prod_EU"

    def test_safe_filename_keeps_spaces(self):
        assert safe_filename("My App") == "My App"

    @pytest.mark.parametrize("name", ["", ".", ".."])
    def test_safe_filename_reserved(self, name):
        assert safe_filename(name) not in ("", ".", "..")

    def test_output_name_by_name(self):
        assert output_name("My/App", 101) == "My_App"

    def test_output_name_by_id(self):
        assert output_name("My App", 101, "id") == "101"


class TestExportFiles:
    """Test cases for writing and validating exported documents."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_write_creates_parent(self):
        path = Path(self.temp_dir) / "MyApp" / "scopes.json"
        write_output_file(path, b'{"controllerUrl": "x"}')
        assert path.read_bytes() == b'{"controllerUrl": "x"}'

    def test_valid_document(self):
        path = write_output_file(Path(self.temp_dir) / "ok.json", b'{"controllerUrl": "https://c", "data": []}')
        assert validate_config_output(path) is True

    def test_error_document(self):
        path = write_output_file(Path(self.temp_dir) / "bad.json", b'{"error": "not found"}')
        assert validate_config_output(path) is False

    def test_missing_file(self):
        assert validate_config_output(os.path.join(self.temp_dir, "missing.json")) is False
