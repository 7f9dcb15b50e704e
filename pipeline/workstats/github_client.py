import random
import time
from datetime import datetime
from datetime import timezone

from github import Auth
from github import Github
from github.GithubException import GithubException

from workstats import query_cache


DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60
SEARCH_RESULT_CAP = 1000


#============================================
class RateLimitError(RuntimeError):
	"""
	Raised when GitHub API rate limits block further requests.
	"""


#============================================
class GitHubClient:
	"""
	Thin PyGithub wrapper for issue and pull-request search.
	"""

	def __init__(
		self,
		token: str,
		log_fn=None,
		cache_dir: str = "out/cache/github_api",
		cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
	):
		self.log_fn = log_fn
		self._rate_check_count = 0
		self._low_remaining_threshold = 2
		self._max_proactive_sleep_seconds = 65
		self._api_call_count = 0
		self._api_calls_by_context: dict[str, int] = {}
		self.cache = query_cache.QueryCache(
			cache_dir,
			cache_ttl_seconds,
			label="GitHub",
			log_fn=log_fn,
		)
		self.client = self._build_github_client(token)

	#============================================
	def _build_github_client(self, token: str) -> Github:
		"""
		Create Github client with PyGithub's own retry disabled.
		"""
		if token:
			return Github(auth=Auth.Token(token), retry=None)
		return Github(retry=None)

	#============================================
	def log(self, message: str) -> None:
		"""
		Emit one log line when logger is configured.
		"""
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def record_api_call(self, context: str) -> None:
		"""
		Track one outbound GitHub API call.
		"""
		self._api_call_count += 1
		if context not in self._api_calls_by_context:
			self._api_calls_by_context[context] = 0
		self._api_calls_by_context[context] += 1

	#============================================
	def api_usage_snapshot(self) -> dict:
		"""
		Return API/caching counters for reporting.
		"""
		usage = {
			"api_call_count": self._api_call_count,
			"api_calls_by_context": dict(self._api_calls_by_context),
		}
		usage.update(self.cache.usage())
		return usage

	#============================================
	def parse_rate_limit_reset(self, reset_value) -> datetime:
		"""
		Normalize PyGithub reset values to timezone-aware UTC datetime.
		"""
		if isinstance(reset_value, datetime):
			if reset_value.tzinfo is None:
				return reset_value.replace(tzinfo=timezone.utc)
			return reset_value.astimezone(timezone.utc)
		if isinstance(reset_value, (int, float)):
			return datetime.fromtimestamp(float(reset_value), tz=timezone.utc)
		if isinstance(reset_value, str):
			return datetime.fromisoformat(reset_value.replace("Z", "+00:00"))
		raise RuntimeError(f"Unsupported rate-limit reset value: {reset_value!r}")

	#============================================
	def get_rate_limit_snapshot(self, resource: str = "search") -> tuple[int, datetime]:
		"""
		Read remaining/reset for one rate-limit resource across PyGithub versions.
		"""
		self.record_api_call("GET /rate_limit")
		overview = self.client.get_rate_limit()
		rate_limit = getattr(overview, resource, None)
		if rate_limit is None:
			resources = getattr(overview, "resources", None)
			if isinstance(resources, dict):
				rate_limit = resources.get(resource)
			elif resources is not None:
				rate_limit = getattr(resources, resource, None)
		if rate_limit is None:
			raise RuntimeError(f"Rate limit data does not expose {resource} resource fields.")
		remaining = int(getattr(rate_limit, "remaining"))
		reset_time = self.parse_rate_limit_reset(getattr(rate_limit, "reset"))
		return remaining, reset_time

	#============================================
	def maybe_wait_for_rate_limit(self, context: str, force: bool = False, resource: str = "search") -> None:
		"""
		Sleep until reset when the rate limit for one resource is very low.
		"""
		self._rate_check_count += 1
		if (not force) and (self._rate_check_count % 5 != 0):
			return
		try:
			remaining, reset_time = self.get_rate_limit_snapshot(resource)
		except (GithubException, RuntimeError) as error:
			self.log(f"Rate limit check ({context}) unavailable: {error}")
			return
		self.log(
			f"Rate limit check ({context}): remaining={remaining}, "
			+ f"reset_at={reset_time.isoformat()}"
		)
		if remaining > self._low_remaining_threshold:
			return
		sleep_seconds = int((reset_time - datetime.now(timezone.utc)).total_seconds()) + 1
		if sleep_seconds <= 0:
			return
		if sleep_seconds > self._max_proactive_sleep_seconds:
			self.log(
				"Rate limit is low, but proactive wait exceeds cap "
				+ f"({sleep_seconds}s > {self._max_proactive_sleep_seconds}s); "
				+ "skipping proactive sleep and continuing."
			)
			return
		self.log(
			f"Rate limit is low ({remaining}); sleeping {sleep_seconds}s until reset."
		)
		time.sleep(sleep_seconds)

	#============================================
	def sleep_request_jitter(self, context: str) -> None:
		"""
		Add small random jitter before API calls.
		"""
		delay = random.random()
		time.sleep(delay)

	#============================================
	def call_api(self, context: str, call_fn):
		"""
		Run one API call with jitter, translating rate-limit failures.
		"""
		self.sleep_request_jitter(context)
		try:
			self.record_api_call(context)
			return call_fn()
		except GithubException as error:
			self.raise_from_github_error(error, context)

	#============================================
	def cached_query(self, category: str, query: dict, context: str, call_fn):
		"""
		Resolve one query through the file cache, calling the API on a miss.
		"""
		return self.cache.fetch(category, query, lambda: self.call_api(context, call_fn))

	#============================================
	def raise_from_github_error(self, error: GithubException, context: str) -> None:
		"""
		Raise a human-readable rate-limit error or re-raise original.
		"""
		status = getattr(error, "status", None)
		if status not in (403, 429):
			raise error
		reset_text = "unknown"
		remaining_text = "unknown"
		try:
			remaining, reset_time = self.get_rate_limit_snapshot()
			reset_text = reset_time.isoformat()
			remaining_text = str(remaining)
		except (GithubException, RuntimeError):
			pass
		raise RateLimitError(
			"GitHub API rate limit exceeded while "
			+ f"{context}; remaining={remaining_text}; reset_at={reset_text}. "
			+ "Provide settings.yaml github.token for higher limits."
		) from error

	#============================================
	def search_issues(self, query: str) -> list[dict]:
		"""
		Run one issue search and return raw issue payloads.
		"""
		self.maybe_wait_for_rate_limit(f"search_issues {query}")
		return self.cached_query(
			"search_issues",
			{"q": query},
			"GET /search/issues",
			lambda: self._search_issues_live(query),
		)

	#============================================
	def _search_issues_live(self, query: str) -> list[dict]:
		"""
		Fetch issue raw payloads from live search API.

		GitHub stops serving search results after the first 1000 matches.
		"""
		results = self.client.search_issues(query=query, sort="created", order="asc")
		total = results.totalCount
		if total > SEARCH_RESULT_CAP:
			self.log(
				f"Warning: search [{query}] matched {total} items; "
				+ f"GitHub returns only the first {SEARCH_RESULT_CAP}, skipping the rest. "
				+ "Use a later --since to narrow it."
			)
		return [getattr(issue_obj, "raw_data", {}) or {} for issue_obj in results]

	#============================================
	def issue_comments(self, repo_name: str, number: int, since: datetime) -> list[dict]:
		"""
		Comments on one issue or pull request created or edited after since.
		"""
		self.maybe_wait_for_rate_limit(f"issue_comments {repo_name}#{number}", resource="core")
		return self.cached_query(
			"issue_comments",
			{"repo": repo_name, "number": number, "since": since.isoformat()},
			"GET /repos/issues/comments",
			lambda: [
				comment.raw_data
				for comment in self.client.get_repo(repo_name, lazy=True).get_issue(number).get_comments(since=since)
			],
		)

	#============================================
	def pull_reviews(self, repo_name: str, number: int) -> list[dict]:
		"""
		Every submitted review on one pull request.
		"""
		self.maybe_wait_for_rate_limit(f"pull_reviews {repo_name}#{number}", resource="core")
		return self.cached_query(
			"pull_reviews",
			{"repo": repo_name, "number": number},
			"GET /repos/pulls/reviews",
			lambda: [
				review.raw_data
				for review in self.client.get_repo(repo_name, lazy=True).get_pull(number).get_reviews()
			],
		)
