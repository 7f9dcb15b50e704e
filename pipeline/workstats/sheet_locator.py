import enum
import re
from dataclasses import dataclass


NEW_SHEET_KEYWORD = "new"
SHEETS_URL_PREFIX = "https://docs.google.com"
SHEETS_URL_SUFFIX = "edit#gid=0"
# https://developers.google.com/sheets/api/guides/concepts
SPREADSHEET_ID_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")


#============================================
class SpreadsheetReferenceError(RuntimeError):
	"""
	Raised when a spreadsheet URL does not contain a usable identifier.
	"""


#============================================
class SheetMode(enum.Enum):
	ABSENT = "absent"
	NEW = "new"
	EXISTING = "existing"


#============================================
@dataclass(frozen=True)
class SpreadsheetReference:
	"""
	Resolved remote-sink mode; spreadsheet_id is set only for EXISTING.
	"""
	mode: SheetMode
	spreadsheet_id: str = ""


#============================================
def strip_url_affixes(url: str) -> str:
	"""
	Remove the known docs.google.com prefix and edit-fragment suffix.
	"""
	trimmed = url
	if trimmed.startswith(SHEETS_URL_PREFIX):
		trimmed = trimmed[len(SHEETS_URL_PREFIX):]
	if trimmed.endswith(SHEETS_URL_SUFFIX):
		trimmed = trimmed[: -len(SHEETS_URL_SUFFIX)]
	return trimmed


#============================================
def parse_spreadsheet_reference(text: str) -> SpreadsheetReference:
	"""
	Parse "", "new", or a spreadsheet URL into a SpreadsheetReference.
	"""
	if text == "":
		return SpreadsheetReference(SheetMode.ABSENT)
	if text == NEW_SHEET_KEYWORD:
		return SpreadsheetReference(SheetMode.NEW)
	match = SPREADSHEET_ID_RE.search(strip_url_affixes(text))
	if match is None:
		raise SpreadsheetReferenceError(f"Unable to determine spreadsheet ID for {text}")
	return SpreadsheetReference(SheetMode.EXISTING, match.group(1))
