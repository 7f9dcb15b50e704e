from datetime import datetime

from googleapiclient.errors import HttpError

from workstats import sheet_locator
from workstats.sheet_locator import SheetMode


SPREADSHEET_TITLE_TEMPLATE = "Work Stats (as of {date})"
TITLE_DATE_FORMAT = "%m-%d-%Y"


#============================================
class AppendPhaseError(RuntimeError):
	"""
	Raised when tabs were added to a spreadsheet but filling them failed.

	The new tabs stay behind empty; they are named here so an operator can
	remove them or re-run the append by hand.
	"""

	def __init__(self, spreadsheet_id: str, orphaned_titles: list[str], cause: Exception):
		self.spreadsheet_id = spreadsheet_id
		self.orphaned_titles = list(orphaned_titles)
		message = (
			f"Added tabs {', '.join(self.orphaned_titles)} to spreadsheet "
			+ f"{spreadsheet_id} but appending rows failed: {cause}. "
			+ "The tabs were left empty."
		)
		super().__init__(message)


#============================================
def spreadsheet_title(start: datetime) -> str:
	"""
	Build the overall spreadsheet title embedding the run's since date.
	"""
	return SPREADSHEET_TITLE_TEMPLATE.format(date=start.strftime(TITLE_DATE_FORMAT))


#============================================
def sheet_properties(title: str) -> dict:
	"""
	Tab properties shared by create and append mode: first row frozen.
	"""
	return {
		"title": title,
		"gridProperties": {"frozenRowCount": 1},
	}


#============================================
def build_spreadsheet_body(title: str, rows_by_title: dict) -> dict:
	"""
	Build the create-call body with one pre-populated tab per report.
	"""
	sheets = []
	for tab_title, styled_rows in rows_by_title.items():
		sheets.append({
			"properties": sheet_properties(tab_title),
			"data": [{"rowData": [row.to_row_data() for row in styled_rows]}],
		})
	return {
		"properties": {"title": title},
		"sheets": sheets,
	}


#============================================
def create_spreadsheet(service, start: datetime, rows_by_title: dict) -> dict:
	"""
	Create a new spreadsheet holding every report in one call.
	"""
	body = build_spreadsheet_body(spreadsheet_title(start), rows_by_title)
	return service.spreadsheets().create(body=body).execute()


#============================================
def build_add_sheet_requests(rows_by_title: dict) -> list[dict]:
	return [
		{"addSheet": {"properties": sheet_properties(title)}}
		for title in rows_by_title
	]


#============================================
def build_append_requests(sheets: list[dict], rows_by_title: dict) -> list[dict]:
	"""
	Match each returned tab to its report by title and build appendCells requests.
	"""
	sheet_ids = {}
	for sheet in sheets:
		properties = sheet.get("properties", {})
		sheet_ids[properties.get("title")] = properties.get("sheetId")
	requests = []
	for title, styled_rows in rows_by_title.items():
		if title not in sheet_ids:
			raise RuntimeError(f"Spreadsheet response did not include new tab {title!r}.")
		requests.append({
			"appendCells": {
				"sheetId": sheet_ids[title],
				"rows": [row.to_row_data() for row in styled_rows],
				"fields": "*",
			}
		})
	return requests


#============================================
def batch_update(service, spreadsheet_id: str, requests: list[dict]) -> dict:
	"""
	Run one batchUpdate and return the response, spreadsheet included.
	"""
	body = {
		"requests": requests,
		"includeSpreadsheetInResponse": True,
	}
	return service.spreadsheets().batchUpdate(spreadsheetId=spreadsheet_id, body=body).execute()


#============================================
def append_to_spreadsheet(service, spreadsheet_id: str, rows_by_title: dict, log_fn=None) -> dict:
	"""
	Add one tab per report to an existing spreadsheet, then fill the tabs.

	The second batch needs the sheet ids the server assigned in the first,
	so the two calls always run in this order.
	"""
	if not rows_by_title:
		return service.spreadsheets().get(spreadsheetId=spreadsheet_id).execute()
	response = batch_update(service, spreadsheet_id, build_add_sheet_requests(rows_by_title))
	updated = response.get("updatedSpreadsheet") or {}
	if log_fn is not None:
		log_fn(f"Added {len(rows_by_title)} tab(s) to spreadsheet {spreadsheet_id}.")
	try:
		append_requests = build_append_requests(updated.get("sheets", []), rows_by_title)
		response = batch_update(service, spreadsheet_id, append_requests)
	except (HttpError, OSError, RuntimeError) as error:
		raise AppendPhaseError(spreadsheet_id, list(rows_by_title), error) from error
	return response.get("updatedSpreadsheet") or updated


#============================================
def autoresize_columns(service, spreadsheet: dict):
	"""
	Auto-size the columns of every tab; returns None when there are no tabs.
	"""
	requests = []
	for sheet in spreadsheet.get("sheets", []):
		requests.append({
			"autoResizeDimensions": {
				"dimensions": {
					"dimension": "COLUMNS",
					"sheetId": sheet["properties"]["sheetId"],
				}
			}
		})
	if not requests:
		return None
	body = {"requests": requests}
	return service.spreadsheets().batchUpdate(
		spreadsheetId=spreadsheet["spreadsheetId"],
		body=body,
	).execute()


#============================================
def publish(
	service,
	reference: sheet_locator.SpreadsheetReference,
	start: datetime,
	rows_by_title: dict,
	log_fn=None,
):
	"""
	Write the accumulated reports to the spreadsheet the reference selects.
	"""
	if reference.mode is SheetMode.ABSENT:
		return None
	if reference.mode is SheetMode.NEW:
		spreadsheet = create_spreadsheet(service, start, rows_by_title)
	elif reference.mode is SheetMode.EXISTING:
		spreadsheet = append_to_spreadsheet(
			service,
			reference.spreadsheet_id,
			rows_by_title,
			log_fn=log_fn,
		)
	else:
		raise RuntimeError(f"Unsupported spreadsheet mode: {reference.mode}")
	autoresize_columns(service, spreadsheet)
	return spreadsheet
