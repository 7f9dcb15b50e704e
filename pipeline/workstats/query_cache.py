import hashlib
import json
import os
from datetime import datetime
from datetime import timezone


#============================================
def query_digest(category: str, query: dict) -> str:
	"""
	Stable file-name digest for one remote query.
	"""
	key_text = json.dumps([category, query], sort_keys=True, ensure_ascii=True)
	return hashlib.sha256(key_text.encode("utf-8")).hexdigest()


#============================================
def entry_age_seconds(entry: dict, now: datetime) -> float | None:
	"""
	Seconds since the entry was stored, or None when the stamp is unusable.
	"""
	stamp = str(entry.get("stored_at", "")).strip()
	if not stamp:
		return None
	try:
		stored_at = datetime.fromisoformat(stamp)
	except ValueError:
		return None
	if stored_at.tzinfo is None:
		stored_at = stored_at.replace(tzinfo=timezone.utc)
	return (now - stored_at).total_seconds()


#============================================
class QueryCache:
	"""
	One JSON file per remote query result, reused while younger than the TTL.

	A cache belongs to one client; `fetch` counts hits and misses so each
	client can report how much of its run was served locally. A negative
	TTL keeps entries forever.
	"""

	def __init__(self, cache_dir: str, ttl_seconds: int, label: str = "", log_fn=None):
		self.cache_dir = os.path.abspath(cache_dir)
		self.ttl_seconds = int(ttl_seconds)
		self.label = label
		self.log_fn = log_fn
		self.hits = 0
		self.misses = 0
		os.makedirs(self.cache_dir, exist_ok=True)

	#============================================
	def entry_path(self, category: str, query: dict) -> str:
		return os.path.join(self.cache_dir, f"{category}_{query_digest(category, query)}.json")

	#============================================
	def load(self, category: str, query: dict):
		"""
		Return the stored result, or None when missing, stale or unreadable.
		"""
		path = self.entry_path(category, query)
		if not os.path.isfile(path):
			return None
		try:
			with open(path, "r", encoding="utf-8") as handle:
				entry = json.load(handle)
		except (OSError, ValueError):
			return None
		if not isinstance(entry, dict) or "result" not in entry:
			return None
		age = entry_age_seconds(entry, datetime.now(timezone.utc))
		if age is None or age < 0:
			return None
		if self.ttl_seconds >= 0 and age > self.ttl_seconds:
			return None
		return entry["result"]

	#============================================
	def store(self, category: str, query: dict, result) -> str:
		path = self.entry_path(category, query)
		entry = {
			"query": query,
			"stored_at": datetime.now(timezone.utc).isoformat(),
			"result": result,
		}
		with open(path, "w", encoding="utf-8") as handle:
			json.dump(entry, handle, ensure_ascii=True, sort_keys=True, indent=2)
			handle.write("\n")
		return path

	#============================================
	def fetch(self, category: str, query: dict, fetch_fn):
		"""
		Serve one query from disk, or run fetch_fn and store what it returns.
		"""
		result = self.load(category, query)
		if result is not None:
			self.hits += 1
			self._log(f"cache hit [{category}]")
			return result
		self.misses += 1
		self._log(f"cache miss [{category}]")
		result = fetch_fn()
		self.store(category, query, result)
		return result

	#============================================
	def usage(self) -> dict:
		return {"cache_hit_count": self.hits, "cache_miss_count": self.misses}

	#============================================
	def _log(self, message: str) -> None:
		if self.log_fn is None:
			return
		if self.label:
			message = f"{self.label} {message}"
		self.log_fn(message)
