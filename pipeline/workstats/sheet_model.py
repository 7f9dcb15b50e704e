from dataclasses import dataclass

from workstats import table_model
from workstats.table_model import RowKind


TOTAL_BACKGROUND = (0.92, 0.92, 0.92)
SUBTOTAL_BACKGROUND = (0.96, 0.96, 0.96)
BOLD_KINDS = frozenset({RowKind.HEADER, RowKind.TOTAL, RowKind.SUBTOTAL})
BACKGROUND_BY_KIND = {
	RowKind.TOTAL: TOTAL_BACKGROUND,
	RowKind.SUBTOTAL: SUBTOTAL_BACKGROUND,
}


#============================================
@dataclass(frozen=True)
class StyledCell:
	"""
	One cell value plus its presentation hints.
	"""
	value: str
	bold: bool
	background: tuple | None = None

	#============================================
	def to_cell_data(self) -> dict:
		"""
		Render as a Sheets API CellData mapping.
		"""
		cell_format = {"textFormat": {"bold": self.bold}}
		if self.background is not None:
			red, green, blue = self.background
			cell_format["backgroundColor"] = {
				"red": red,
				"green": green,
				"blue": blue,
			}
		return {
			"userEnteredValue": {"stringValue": self.value},
			"userEnteredFormat": cell_format,
		}


#============================================
@dataclass(frozen=True)
class StyledRow:
	"""
	One report row whose cells carry styling derived from the row kind.
	"""
	kind: RowKind
	cells: tuple

	#============================================
	def to_row_data(self) -> dict:
		"""
		Render as a Sheets API RowData mapping.
		"""
		return {"values": [cell.to_cell_data() for cell in self.cells]}


#============================================
def style_row(kind: RowKind, row) -> StyledRow:
	"""
	Apply the bold/background rules of one row kind to every cell.
	"""
	bold = kind in BOLD_KINDS
	background = BACKGROUND_BY_KIND.get(kind)
	cells = tuple(StyledCell(str(value), bold, background) for value in row)
	return StyledRow(kind=kind, cells=cells)


#============================================
def build_styled_rows(report: table_model.Report) -> list[StyledRow]:
	"""
	Build the styled grid for one report, preserving row and cell order.
	"""
	styled = []
	for kind, row in zip(report.row_kinds(), report.rows):
		styled.append(style_row(kind, row))
	return styled


#============================================
class RunAccumulator:
	"""
	Collects styled rows per report name across source batches.

	Filled by one writer during the run and consumed exactly once when the
	spreadsheet sink runs.
	"""

	def __init__(self):
		self._rows_by_title: dict[str, list[StyledRow]] = {}
		self._consumed = False

	#============================================
	def add_report(self, report: table_model.Report) -> None:
		"""
		Style one report and store it under its name.
		"""
		if self._consumed:
			raise RuntimeError("RunAccumulator was already consumed; cannot add reports.")
		self._rows_by_title[report.name] = build_styled_rows(report)

	#============================================
	def add_reports(self, reports: list[table_model.Report]) -> None:
		for report in reports:
			self.add_report(report)

	#============================================
	def titles(self) -> list[str]:
		return list(self._rows_by_title)

	#============================================
	def __len__(self) -> int:
		return len(self._rows_by_title)

	#============================================
	@property
	def consumed(self) -> bool:
		return self._consumed

	#============================================
	def consume(self) -> dict[str, list[StyledRow]]:
		"""
		Hand over the collected rows; a second call raises RuntimeError.
		"""
		if self._consumed:
			raise RuntimeError("RunAccumulator can only be consumed once.")
		self._consumed = True
		rows_by_title = self._rows_by_title
		self._rows_by_title = {}
		return rows_by_title
