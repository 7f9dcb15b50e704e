from workstats import csv_sink
from workstats import sheet_model
from workstats import table_model


#============================================
def process_batch(
	output_dir: str,
	tables: dict,
	accumulator: sheet_model.RunAccumulator,
	log_fn=None,
) -> list[table_model.Report]:
	"""
	Write one source's tables to CSV, then stage them for the spreadsheet.

	Files are written first; any failure aborts before the accumulator
	sees the batch.
	"""
	reports = table_model.reports_from_tables(tables)
	paths = csv_sink.write_reports_csv(output_dir, reports)
	if log_fn is not None:
		for path in paths:
			log_fn(f"Wrote output to {path}.")
	accumulator.add_reports(reports)
	return reports
