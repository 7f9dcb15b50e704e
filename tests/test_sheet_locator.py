import os
import sys

import pytest

# add pipeline directory to path for workstats imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "pipeline"))

from workstats import sheet_locator
from workstats.sheet_locator import SheetMode


#============================================
def test_empty_reference_is_absent() -> None:
	reference = sheet_locator.parse_spreadsheet_reference("")
	assert reference.mode is SheetMode.ABSENT
	assert reference.spreadsheet_id == ""


#============================================
def test_new_keyword() -> None:
	reference = sheet_locator.parse_spreadsheet_reference("new")
	assert reference.mode is SheetMode.NEW


#============================================
def test_full_url_extracts_id() -> None:
	"""
	The id is pulled from a standard edit URL.
	"""
	url = "https://docs.google.com/spreadsheets/d/ABC123xyz_-/edit#gid=0"
	reference = sheet_locator.parse_spreadsheet_reference(url)
	assert reference.mode is SheetMode.EXISTING
	assert reference.spreadsheet_id == "ABC123xyz_-"


#============================================
def test_url_with_query_and_other_fragment() -> None:
	"""
	Surrounding query strings and fragments are ignored.
	"""
	url = "https://docs.google.com/spreadsheets/d/1aB-c_D/edit?usp=sharing#gid=42"
	reference = sheet_locator.parse_spreadsheet_reference(url)
	assert reference.spreadsheet_id == "1aB-c_D"


#============================================
def test_url_without_id_raises() -> None:
	with pytest.raises(sheet_locator.SpreadsheetReferenceError):
		sheet_locator.parse_spreadsheet_reference("https://docs.google.com/document/d/XYZ/edit")
	with pytest.raises(RuntimeError):
		sheet_locator.parse_spreadsheet_reference("NEW")
