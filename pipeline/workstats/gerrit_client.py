import json
from datetime import datetime
from datetime import timezone

import requests

from workstats import query_cache


DEFAULT_GERRIT_URL = "https://go-review.googlesource.com"
DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60
XSSI_PREFIX = ")]}'"
GERRIT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
PAGE_SIZE = 500


#============================================
class GerritError(RuntimeError):
	"""
	Raised when the Gerrit REST API returns an unusable response.
	"""


#============================================
def strip_xssi_prefix(text: str) -> str:
	"""
	Drop the anti-XSSI guard line Gerrit puts before every JSON body.
	"""
	if text.startswith(XSSI_PREFIX):
		return text[len(XSSI_PREFIX):].lstrip("\r\n")
	return text


#============================================
def parse_gerrit_time(value: str) -> datetime | None:
	"""
	Parse Gerrit's "YYYY-MM-DD hh:mm:ss.fffffffff" UTC timestamps.
	"""
	if not value:
		return None
	parsed = datetime.strptime(value[:19], GERRIT_TIME_FORMAT)
	return parsed.replace(tzinfo=timezone.utc)


#============================================
class GerritClient:
	"""
	Minimal Gerrit change-query client backed by the query cache.
	"""

	def __init__(
		self,
		base_url: str = DEFAULT_GERRIT_URL,
		log_fn=None,
		cache_dir: str = "out/cache/gerrit_api",
		session=None,
		cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
	):
		self.base_url = base_url.rstrip("/")
		self.session = session or requests.Session()
		self.cache = query_cache.QueryCache(
			cache_dir,
			cache_ttl_seconds,
			label="Gerrit",
			log_fn=log_fn,
		)
		self._api_call_count = 0

	#============================================
	def fetch_page(self, query: str, start: int, options: tuple[str, ...] = ()) -> list[dict]:
		"""
		Fetch one page of ChangeInfo records.
		"""
		url = f"{self.base_url}/changes/"
		params = {"q": query, "n": PAGE_SIZE, "S": start}
		if options:
			params["o"] = list(options)
		self._api_call_count += 1
		try:
			response = self.session.get(url, params=params, timeout=30)
			response.raise_for_status()
		except requests.RequestException as error:
			raise GerritError(f"Gerrit query failed ({query!r}, S={start}): {error}") from error
		try:
			payload = json.loads(strip_xssi_prefix(response.text))
		except ValueError as error:
			raise GerritError(f"Gerrit returned invalid JSON for {query!r}.") from error
		if not isinstance(payload, list):
			raise GerritError(f"Unexpected Gerrit response format for {query!r}.")
		return payload

	#============================================
	def _query_changes_live(self, query: str, options: tuple[str, ...]) -> list[dict]:
		"""
		Follow _more_changes pagination until the result set is exhausted.
		"""
		changes = []
		while True:
			page = self.fetch_page(query, len(changes), options)
			changes.extend(page)
			if not page or not page[-1].get("_more_changes"):
				break
		return changes

	#============================================
	def query_changes(self, query: str, options: tuple[str, ...] = ()) -> list[dict]:
		"""
		Return every change matching a Gerrit search query.

		options are Gerrit `o=` flags such as MESSAGES or DETAILED_ACCOUNTS.
		"""
		key = {"base_url": self.base_url, "q": query, "o": list(options)}
		return self.cache.fetch(
			"query_changes",
			key,
			lambda: self._query_changes_live(query, options),
		)

	#============================================
	def api_usage_snapshot(self) -> dict:
		usage = {"api_call_count": self._api_call_count}
		usage.update(self.cache.usage())
		return usage
