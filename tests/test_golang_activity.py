import os
import sys
from types import SimpleNamespace

import pytest
import requests

# add pipeline directory to path for workstats imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "pipeline"))

from workstats import activity_table
from workstats import gerrit_client
from workstats import golang_activity


#============================================
class FakeSession:
	"""
	Serves queued Gerrit response bodies and records request params.
	"""

	def __init__(self, bodies: list[str], status_code: int = 200):
		self.bodies = list(bodies)
		self.status_code = status_code
		self.calls = []

	def get(self, url, params=None, timeout=None):
		self.calls.append((url, dict(params or {})))
		status_code = self.status_code

		def raise_for_status():
			if status_code >= 400:
				raise requests.HTTPError(f"{status_code} error")

		return SimpleNamespace(
			text=self.bodies.pop(0) if self.bodies else ")]}'\n[]",
			raise_for_status=raise_for_status,
		)


#============================================
class FakeGerrit:
	def __init__(self, answers: dict):
		self.answers = answers
		self.queries = []

	def query_changes(self, query: str, options: tuple = ()) -> list[dict]:
		self.queries.append((query, tuple(options)))
		return self.answers.get(query, [])


#============================================
def review_message(email: str, date: str, tag: str = "") -> dict:
	message = {"author": {"email": email}, "date": date}
	if tag:
		message["tag"] = tag
	return message


#============================================
def make_client(tmp_path, session) -> gerrit_client.GerritClient:
	return gerrit_client.GerritClient(
		"https://go-review.example.com/",
		cache_dir=str(tmp_path / "cache"),
		session=session,
	)


#============================================
def test_strip_xssi_prefix() -> None:
	assert gerrit_client.strip_xssi_prefix(")]}'\n[1]") == "[1]"
	assert gerrit_client.strip_xssi_prefix("[1]") == "[1]"


#============================================
def test_parse_gerrit_time() -> None:
	parsed = gerrit_client.parse_gerrit_time("2026-02-03 04:05:06.000000000")
	assert parsed.isoformat() == "2026-02-03T04:05:06+00:00"
	assert gerrit_client.parse_gerrit_time("") is None


#============================================
def test_query_changes_follows_pagination(tmp_path) -> None:
	"""
	Pages are fetched with S= offsets until _more_changes disappears.
	"""
	session = FakeSession([
		')]}\'\n[{"_number": 1}, {"_number": 2, "_more_changes": true}]',
		')]}\'\n[{"_number": 3}]',
	])
	client = make_client(tmp_path, session)
	changes = client.query_changes("owner:me@example.com")
	assert [change["_number"] for change in changes] == [1, 2, 3]
	assert [params["S"] for _, params in session.calls] == [0, 2]
	assert session.calls[0][0] == "https://go-review.example.com/changes/"


#============================================
def test_query_changes_uses_cache(tmp_path) -> None:
	session = FakeSession([')]}\'\n[{"_number": 9}]'])
	client = make_client(tmp_path, session)
	first = client.query_changes("owner:me@example.com")
	second = client.query_changes("owner:me@example.com")
	assert first == second
	assert len(session.calls) == 1


#============================================
def test_query_changes_http_error(tmp_path) -> None:
	client = make_client(tmp_path, FakeSession([], status_code=500))
	with pytest.raises(gerrit_client.GerritError):
		client.query_changes("owner:me@example.com")


#============================================
def test_query_changes_invalid_json(tmp_path) -> None:
	client = make_client(tmp_path, FakeSession([")]}'\nnot json"]))
	with pytest.raises(gerrit_client.GerritError):
		client.query_changes("owner:me@example.com")


#============================================
def test_collect_go_changelists() -> None:
	"""
	Owned CLs count Opened plus their outcome. Reviews are timed by the
	user's own messages and deduplicated across emails.
	"""
	start = activity_table.parse_timestamp("2026-01-01T00:00:00Z")
	merged = {
		"_number": 1,
		"project": "go",
		"status": "MERGED",
		"created": "2026-01-02 10:00:00.000000000",
		"submitted": "2026-02-01 10:00:00.000000000",
	}
	abandoned = {
		"_number": 2,
		"project": "tools",
		"status": "ABANDONED",
		"created": "2026-01-03 10:00:00.000000000",
		"updated": "2026-01-04 10:00:00.000000000",
	}
	reviewed = {
		"_number": 3,
		"project": "go",
		"status": "NEW",
		"created": "2025-12-01 10:00:00.000000000",
		"updated": "2026-03-20 10:00:00.000000000",
		"messages": [
			review_message("a@example.com", "2025-12-05 10:00:00.000000000"),
			review_message("A@example.com", "2026-01-20 10:00:00.000000000"),
			review_message("a@example.com", "2026-01-21 10:00:00.000000000", "autogenerated:gerrit:newPatchSet"),
			review_message("owner@example.com", "2026-03-20 10:00:00.000000000"),
		],
	}
	gerrit = FakeGerrit({
		"owner:a@example.com after:2026-01-01": [merged, abandoned],
		"owner:b@example.com after:2026-01-01": [merged],
		"reviewer:a@example.com -owner:a@example.com after:2026-01-01": [reviewed],
		"reviewer:b@example.com -owner:b@example.com after:2026-01-01": [reviewed, merged],
	})
	tables = golang_activity.collect_go_changelists(
		gerrit,
		["a@example.com", "b@example.com"],
		start,
	)
	assert gerrit.queries[2] == (
		"reviewer:a@example.com -owner:a@example.com after:2026-01-01",
		("MESSAGES", "DETAILED_ACCOUNTS"),
	)
	assert tables["go-cls"] == [
		["Period", "Project", "Opened", "Merged", "Abandoned", "Reviewed", "Total"],
		["2026-01", "go", "1", "0", "0", "1", "2"],
		["2026-01", "tools", "1", "0", "1", "0", "2"],
		["Subtotal", "2026-01", "2", "0", "1", "1", "4"],
		["2026-02", "go", "0", "1", "0", "0", "1"],
		["Subtotal", "2026-02", "0", "1", "0", "0", "1"],
		["Total", "", "2", "1", "1", "1", "5"],
	]


#============================================
def test_collect_go_changelists_empty_is_header_only() -> None:
	start = activity_table.parse_timestamp("2026-01-01T00:00:00Z")
	tables = golang_activity.collect_go_changelists(FakeGerrit({}), ["a@example.com"], start)
	assert tables["go-cls"] == [["Period", "Project", "Opened", "Merged", "Abandoned", "Reviewed", "Total"]]
