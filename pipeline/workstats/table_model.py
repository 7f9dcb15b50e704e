import enum
from dataclasses import dataclass


TOTAL_MARKER = "Total"
SUBTOTAL_MARKER = "Subtotal"


#============================================
class RowKind(enum.Enum):
	"""
	Derived classification of one report row, used only for styling.
	"""
	HEADER = "header"
	TOTAL = "total"
	SUBTOTAL = "subtotal"
	DATA = "data"


#============================================
def classify_row(row_index: int, row) -> RowKind:
	"""
	Classify a row from its position and first cell.

	Row 0 is always the header. After that only the literal first cell is
	inspected, so an empty row is plain data.
	"""
	if row_index == 0:
		return RowKind.HEADER
	if len(row) < 1:
		return RowKind.DATA
	if row[0] == TOTAL_MARKER:
		return RowKind.TOTAL
	if row[0] == SUBTOTAL_MARKER:
		return RowKind.SUBTOTAL
	return RowKind.DATA


#============================================
@dataclass(frozen=True)
class Report:
	"""
	One named table of string cells; row 0 is the header.
	"""
	name: str
	rows: tuple

	#============================================
	@classmethod
	def from_rows(cls, name: str, rows) -> "Report":
		"""
		Freeze a list-of-lists table into a Report.
		"""
		frozen = tuple(tuple(str(cell) for cell in row) for row in rows)
		return cls(name=str(name), rows=frozen)

	#============================================
	def row_kinds(self) -> list[RowKind]:
		"""
		Return the derived kind of every row, in order.
		"""
		return [classify_row(index, row) for index, row in enumerate(self.rows)]


#============================================
def reports_from_tables(tables: dict) -> list[Report]:
	"""
	Convert a name -> rows mapping into Reports sorted by name.
	"""
	return [Report.from_rows(name, tables[name]) for name in sorted(tables)]
