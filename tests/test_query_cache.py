import json
import os
import sys

# add pipeline directory to path for workstats imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "pipeline"))

from workstats import query_cache


#============================================
def test_store_then_load(tmp_path) -> None:
	cache = query_cache.QueryCache(str(tmp_path), 3600)
	path = cache.store("search_issues", {"q": "is:pr"}, [{"number": 7}])
	assert os.path.isfile(path)
	assert cache.load("search_issues", {"q": "is:pr"}) == [{"number": 7}]
	assert cache.load("search_issues", {"q": "is:issue"}) is None


#============================================
def test_fetch_counts_hits_and_misses(tmp_path) -> None:
	"""
	Only the first fetch of a query reaches the remote call.
	"""
	lines = []
	cache = query_cache.QueryCache(str(tmp_path), 3600, label="Gerrit", log_fn=lines.append)
	calls = []

	def remote():
		calls.append(1)
		return [{"_number": 1}]

	assert cache.fetch("query_changes", {"q": "owner:me"}, remote) == [{"_number": 1}]
	assert cache.fetch("query_changes", {"q": "owner:me"}, remote) == [{"_number": 1}]
	assert len(calls) == 1
	assert cache.usage() == {"cache_hit_count": 1, "cache_miss_count": 1}
	assert lines == ["Gerrit cache miss [query_changes]", "Gerrit cache hit [query_changes]"]


#============================================
def test_stale_entry_is_refetched(tmp_path) -> None:
	"""
	Entries older than the TTL are ignored; a negative TTL never expires.
	"""
	cache = query_cache.QueryCache(str(tmp_path), 3600)
	path = cache.store("query_changes", {"q": "owner:me"}, [])
	with open(path, "r", encoding="utf-8") as handle:
		entry = json.load(handle)
	entry["stored_at"] = "2020-01-01T00:00:00+00:00"
	with open(path, "w", encoding="utf-8") as handle:
		json.dump(entry, handle)
	assert cache.load("query_changes", {"q": "owner:me"}) is None
	forever = query_cache.QueryCache(str(tmp_path), -1)
	assert forever.load("query_changes", {"q": "owner:me"}) == []


#============================================
def test_corrupt_entry_is_a_miss(tmp_path) -> None:
	cache = query_cache.QueryCache(str(tmp_path), 3600)
	path = cache.store("search_issues", {"q": "x"}, [1])
	with open(path, "w", encoding="utf-8") as handle:
		handle.write("{not json")
	assert cache.load("search_issues", {"q": "x"}) is None
	assert cache.fetch("search_issues", {"q": "x"}, lambda: [2]) == [2]
