#!/usr/bin/env python3
import argparse
import os
import sys
import tempfile
from dataclasses import dataclass
from datetime import datetime

import rich.console
from github.GithubException import GithubException
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from workstats import activity_table
from workstats import gerrit_client
from workstats import github_activity
from workstats import github_client
from workstats import golang_activity
from workstats import pipeline_settings
from workstats import report_pipeline
from workstats import sheet_locator
from workstats import sheet_model
from workstats import sheets_service
from workstats import sheets_sink
from workstats.pipeline_settings import ConfigError
from workstats.sheet_locator import SheetMode


RICH_CONSOLE = rich.console.Console()


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[work_stats {now_text}] {message}"
	lower = message.lower()
	style = "cyan"
	if ("failed" in lower) or ("error" in lower):
		style = "bold red"
	elif ("rate limit" in lower) or ("skipping" in lower):
		style = "yellow"
	elif ("wrote " in lower) or ("collected" in lower):
		style = "green"
	RICH_CONSOLE.print(line, style=style, highlight=False)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Collect GitHub and Go project activity into CSV files and a Google Sheet."
	)
	parser.add_argument(
		"--username",
		default=None,
		help="GitHub username (falls back to settings.yaml github.username).",
	)
	parser.add_argument(
		"--email",
		default=None,
		help="Gerrit email or emails, comma-separated (falls back to settings.yaml gerrit.emails).",
	)
	parser.add_argument(
		"--since",
		default=None,
		help="Date from which to collect data, YYYY-MM-DD (default: all history).",
	)
	parser.add_argument(
		"--period",
		choices=activity_table.PERIOD_CHOICES,
		default=None,
		help="Bucket size for report rows (default: month).",
	)
	gerrit_group = parser.add_mutually_exclusive_group()
	gerrit_group.add_argument(
		"--gerrit",
		dest="gerrit",
		action="store_true",
		help="Collect data on Go issues and changelists (default: settings sources.gerrit, else on).",
	)
	gerrit_group.add_argument(
		"--no-gerrit",
		dest="gerrit",
		action="store_false",
		help="Skip Go issues and changelists.",
	)
	github_group = parser.add_mutually_exclusive_group()
	github_group.add_argument(
		"--github",
		dest="github",
		action="store_true",
		help="Collect data on GitHub issues and pull requests (default: settings sources.github, else on).",
	)
	github_group.add_argument(
		"--no-github",
		dest="github",
		action="store_false",
		help="Skip GitHub issues and pull requests.",
	)
	parser.set_defaults(gerrit=None, github=None)
	parser.add_argument(
		"--sheets",
		default=None,
		help='Write or append output to a Google spreadsheet: "", "new" (default), or a sheet URL.',
	)
	parser.add_argument(
		"--credentials",
		default=None,
		help="Path to Google OAuth client file (default: credentials.json).",
	)
	parser.add_argument(
		"--token",
		default=None,
		help="Path to cached Google OAuth token (default: token.json).",
	)
	parser.add_argument(
		"--output-dir",
		default="",
		help="Directory for CSV output (default: a new temporary directory).",
	)
	parser.add_argument(
		"--settings",
		default="settings.yaml",
		help="YAML settings path for defaults.",
	)
	return parser.parse_args(argv)


#============================================
@dataclass(frozen=True)
class RunConfig:
	username: str
	emails: list[str]
	start: datetime
	period: str
	use_gerrit: bool
	use_github: bool
	reference: sheet_locator.SpreadsheetReference
	credentials_path: str
	token_path: str
	github_token: str
	gerrit_url: str
	cache_ttl_seconds: int


#============================================
def pick(value, fallback):
	"""
	Prefer an explicit CLI value over a settings value.
	"""
	if value is None:
		return fallback
	return value


#============================================
def resolve_run_config(args: argparse.Namespace, settings: dict) -> RunConfig:
	"""
	Merge CLI flags with settings and validate everything before any work starts.
	"""
	username = pick(args.username, pipeline_settings.get_setting_str(settings, ["github", "username"], "")).strip()
	if args.email is not None:
		emails = pipeline_settings.split_csv_text(args.email)
	else:
		emails = pipeline_settings.get_setting_list(settings, ["gerrit", "emails"])
	use_gerrit = pick(args.gerrit, pipeline_settings.get_setting_bool(settings, ["sources", "gerrit"], True))
	use_github = pick(args.github, pipeline_settings.get_setting_bool(settings, ["sources", "github"], True))
	if use_github and not username:
		raise ConfigError("Please provide a GitHub username.")
	if use_gerrit and not username:
		raise ConfigError("Please provide a GitHub username for Go issue activity.")
	if use_gerrit and not emails:
		raise ConfigError("Please provide your Gerrit email.")
	cache_ttl_hours = pipeline_settings.get_setting_int(settings, ["report", "cache_ttl_hours"], 24)
	since_text = pick(args.since, pipeline_settings.get_setting_str(settings, ["report", "since"], ""))
	start = pipeline_settings.parse_since_date(since_text)
	period = pick(args.period, pipeline_settings.get_setting_str(settings, ["report", "period"], activity_table.DEFAULT_PERIOD))
	try:
		activity_table.validate_period(period)
	except ValueError as error:
		raise ConfigError(str(error)) from error
	sheets_text = pick(args.sheets, pipeline_settings.get_setting_str(settings, ["sheets", "reference"], "new"))
	reference = sheet_locator.parse_spreadsheet_reference(sheets_text)
	return RunConfig(
		username=username,
		emails=emails,
		start=start,
		period=period,
		use_gerrit=use_gerrit,
		use_github=use_github,
		reference=reference,
		credentials_path=pick(args.credentials, pipeline_settings.get_setting_str(settings, ["sheets", "credentials"], "credentials.json")),
		token_path=pick(args.token, pipeline_settings.get_setting_str(settings, ["sheets", "token"], "token.json")),
		github_token=pipeline_settings.get_setting_str(settings, ["github", "token"], ""),
		gerrit_url=pipeline_settings.get_setting_str(settings, ["gerrit", "url"], gerrit_client.DEFAULT_GERRIT_URL),
		cache_ttl_seconds=cache_ttl_hours * 60 * 60,
	)


#============================================
def resolve_output_dir(path_text: str) -> str:
	"""
	Use the requested directory, or a fresh temporary one.
	"""
	if path_text:
		output_dir = os.path.abspath(path_text)
		os.makedirs(output_dir, exist_ok=True)
		return output_dir
	return tempfile.mkdtemp(prefix="work-stats")


#============================================
def collect_and_write(config: RunConfig, output_dir: str, accumulator: sheet_model.RunAccumulator) -> None:
	"""
	Poll each enabled source in turn and write its batch immediately.
	"""
	github = None
	gerrit = None
	if config.use_gerrit or config.use_github:
		github = github_client.GitHubClient(
			config.github_token,
			log_fn=log_step,
			cache_ttl_seconds=config.cache_ttl_seconds,
		)
	if config.use_gerrit:
		go_issues = golang_activity.collect_go_issues(
			github, config.username, config.start, config.period, log_fn=log_step,
		)
		report_pipeline.process_batch(output_dir, go_issues, accumulator, log_fn=log_step)
		gerrit = gerrit_client.GerritClient(
			config.gerrit_url,
			log_fn=log_step,
			cache_ttl_seconds=config.cache_ttl_seconds,
		)
		go_cls = golang_activity.collect_go_changelists(
			gerrit, config.emails, config.start, config.period, log_fn=log_step,
		)
		report_pipeline.process_batch(output_dir, go_cls, accumulator, log_fn=log_step)
	if config.use_github:
		exclude_repos = [golang_activity.GO_REPO] if config.use_gerrit else []
		github_tables = github_activity.collect_issues_and_prs(
			github,
			config.username,
			config.start,
			config.period,
			exclude_repos=exclude_repos,
			log_fn=log_step,
		)
		report_pipeline.process_batch(output_dir, github_tables, accumulator, log_fn=log_step)
	for label, client in (("GitHub", github), ("Gerrit", gerrit)):
		if client is None:
			continue
		usage = client.api_usage_snapshot()
		log_step(
			f"{label} API usage: "
			+ f"calls={usage.get('api_call_count', 0)}, "
			+ f"cache_hits={usage.get('cache_hit_count', 0)}, "
			+ f"cache_misses={usage.get('cache_miss_count', 0)}"
		)


#============================================
def run(config: RunConfig, output_dir: str) -> None:
	"""
	Collect every enabled source, then publish to the spreadsheet when requested.
	"""
	accumulator = sheet_model.RunAccumulator()
	collect_and_write(config, output_dir, accumulator)
	if config.reference.mode is SheetMode.ABSENT:
		return
	service = sheets_service.build_sheets_service(
		config.credentials_path,
		config.token_path,
		log_fn=log_step,
	)
	spreadsheet = sheets_sink.publish(
		service,
		config.reference,
		config.start,
		accumulator.consume(),
		log_fn=log_step,
	)
	log_step(f"Wrote data to Google Sheet: {spreadsheet.get('spreadsheetUrl', '')}")


#============================================
def main(argv: list[str] | None = None) -> None:
	"""
	Run the work-stats report.
	"""
	args = parse_args(argv)
	try:
		settings, settings_path = pipeline_settings.load_settings(args.settings)
		config = resolve_run_config(args, settings)
	except RuntimeError as error:
		log_step(f"Configuration error: {error}")
		sys.exit(1)
	log_step(f"Using settings file: {settings_path}")
	log_step(f"Collecting activity since {config.start.date().isoformat()} by {config.period}.")
	output_dir = resolve_output_dir(args.output_dir)
	log_step(f"Writing CSV output to: {output_dir}")
	try:
		run(config, output_dir)
	except (RuntimeError, OSError, ValueError, GithubException, GoogleAuthError, HttpError) as error:
		log_step(f"Run failed: {error}")
		sys.exit(1)


if __name__ == "__main__":
	main()
