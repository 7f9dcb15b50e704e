import csv
import os

from workstats import table_model


#============================================
def report_csv_path(output_dir: str, report: table_model.Report) -> str:
	"""
	Build the <name>.csv path for one report.
	"""
	return os.path.join(os.path.abspath(output_dir), f"{report.name}.csv")


#============================================
def write_report_csv(output_dir: str, report: table_model.Report) -> str:
	"""
	Write every row of one report verbatim and return the file path.
	"""
	path = report_csv_path(output_dir, report)
	with open(path, "w", encoding="utf-8", newline="") as handle:
		writer = csv.writer(handle)
		for row in report.rows:
			writer.writerow(row)
	return path


#============================================
def write_reports_csv(output_dir: str, reports: list[table_model.Report]) -> list[str]:
	"""
	Write one CSV per report; the first failure aborts the whole batch.
	"""
	os.makedirs(output_dir, exist_ok=True)
	written = []
	for report in reports:
		written.append(write_report_csv(output_dir, report))
	return written
