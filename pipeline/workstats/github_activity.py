from datetime import datetime

from workstats import activity_table
from workstats.activity_table import ActivityEvent


ISSUE_ACTIONS = ["Opened", "Commented"]
PR_ACTIONS = ["Opened", "Merged", "Reviewed"]
REPOS_URL_MARKER = "/repos/"


#============================================
def search_date(start: datetime) -> str:
	return start.strftime("%Y-%m-%d")


#============================================
def build_query(*terms: str, exclude_repos: list[str] | None = None) -> str:
	"""
	Join search qualifiers, appending one -repo: term per excluded repo.
	"""
	parts = [term for term in terms if term]
	for repo in exclude_repos or []:
		parts.append(f"-repo:{repo}")
	return " ".join(parts)


#============================================
def repo_full_name(issue: dict) -> str:
	"""
	Resolve owner/name for one search result payload.
	"""
	url = issue.get("repository_url") or ""
	if REPOS_URL_MARKER in url:
		return url.split(REPOS_URL_MARKER, 1)[1].strip("/")
	html_url = issue.get("html_url") or ""
	pieces = html_url.split("/")
	if len(pieces) >= 5:
		return f"{pieces[3]}/{pieces[4]}"
	return "(unknown)"


#============================================
def events_from_issues(issues: list[dict], action: str, time_field: str) -> list[ActivityEvent]:
	"""
	Turn search payloads into events timed by one payload field.
	"""
	events = []
	for issue in issues:
		event_time = activity_table.parse_timestamp(issue.get(time_field))
		if event_time is None:
			continue
		events.append(ActivityEvent(event_time, repo_full_name(issue), action))
	return events


#============================================
def merged_events(pull_requests: list[dict]) -> list[ActivityEvent]:
	"""
	Build Merged events from authored pull requests that carry merged_at.
	"""
	events = []
	for issue in pull_requests:
		pr_info = issue.get("pull_request") or {}
		merged_at = activity_table.parse_timestamp(pr_info.get("merged_at"))
		if merged_at is None:
			continue
		events.append(ActivityEvent(merged_at, repo_full_name(issue), "Merged"))
	return events


#============================================
def is_by_user(payload: dict, username: str) -> bool:
	login = (payload.get("user") or {}).get("login") or ""
	return login.lower() == username.lower()


#============================================
def comment_events(client, commented: list[dict], username: str, start: datetime) -> list[ActivityEvent]:
	"""
	One Commented event per comment the user wrote, timed by that comment.

	The search only finds issues the user ever commented on; the comments
	themselves decide which periods the activity lands in.
	"""
	events = []
	for issue in commented:
		repo_name = repo_full_name(issue)
		for comment in client.issue_comments(repo_name, issue["number"], start):
			if not is_by_user(comment, username):
				continue
			created = activity_table.parse_timestamp(comment.get("created_at"))
			if created is None or created < start:
				continue
			events.append(ActivityEvent(created, repo_name, "Commented"))
	return events


#============================================
def review_events(client, reviewed: list[dict], username: str, start: datetime) -> list[ActivityEvent]:
	"""
	One Reviewed event per review the user submitted, timed by submitted_at.
	"""
	events = []
	for pull_request in reviewed:
		repo_name = repo_full_name(pull_request)
		for review in client.pull_reviews(repo_name, pull_request["number"]):
			if not is_by_user(review, username):
				continue
			# pending reviews have no submitted_at
			submitted = activity_table.parse_timestamp(review.get("submitted_at"))
			if submitted is None or submitted < start:
				continue
			events.append(ActivityEvent(submitted, repo_name, "Reviewed"))
	return events


#============================================
def collect_issue_events(
	client,
	username: str,
	start: datetime,
	repo_filter: str = "",
	exclude_repos: list[str] | None = None,
) -> list[ActivityEvent]:
	"""
	Opened and Commented issue events for one user.
	"""
	since = search_date(start)
	opened = client.search_issues(build_query(
		"is:issue",
		f"author:{username}",
		f"created:>={since}",
		repo_filter,
		exclude_repos=exclude_repos,
	))
	commented = client.search_issues(build_query(
		"is:issue",
		f"commenter:{username}",
		f"-author:{username}",
		f"updated:>={since}",
		repo_filter,
		exclude_repos=exclude_repos,
	))
	return (
		events_from_issues(opened, "Opened", "created_at")
		+ comment_events(client, commented, username, start)
	)


#============================================
def collect_pr_events(
	client,
	username: str,
	start: datetime,
	exclude_repos: list[str] | None = None,
) -> list[ActivityEvent]:
	"""
	Opened, Merged and Reviewed pull-request events for one user.
	"""
	since = search_date(start)
	authored = client.search_issues(build_query(
		"is:pr",
		f"author:{username}",
		f"created:>={since}",
		exclude_repos=exclude_repos,
	))
	reviewed = client.search_issues(build_query(
		"is:pr",
		f"reviewed-by:{username}",
		f"-author:{username}",
		f"updated:>={since}",
		exclude_repos=exclude_repos,
	))
	return (
		events_from_issues(authored, "Opened", "created_at")
		+ merged_events(authored)
		+ review_events(client, reviewed, username, start)
	)


#============================================
def collect_issues_and_prs(
	client,
	username: str,
	start: datetime,
	period: str = activity_table.DEFAULT_PERIOD,
	exclude_repos: list[str] | None = None,
	log_fn=None,
) -> dict[str, list[list[str]]]:
	"""
	Build the github-issues and github-prs tables for one user.
	"""
	issue_events = collect_issue_events(client, username, start, exclude_repos=exclude_repos)
	pr_events = collect_pr_events(client, username, start, exclude_repos=exclude_repos)
	if log_fn is not None:
		log_fn(
			f"GitHub: collected {len(issue_events)} issue event(s) and "
			+ f"{len(pr_events)} pull request event(s) for {username}."
		)
	return {
		"github-issues": activity_table.build_activity_table(
			issue_events, ISSUE_ACTIONS, "Repository", period, start,
		),
		"github-prs": activity_table.build_activity_table(
			pr_events, PR_ACTIONS, "Repository", period, start,
		),
	}
