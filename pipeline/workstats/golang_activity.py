from datetime import datetime

from workstats import activity_table
from workstats import gerrit_client
from workstats import github_activity
from workstats.activity_table import ActivityEvent


GO_REPO = "golang/go"
CL_ACTIONS = ["Opened", "Merged", "Abandoned", "Reviewed"]
CL_STATUS_ACTIONS = {
	"MERGED": ("Merged", "submitted"),
	"ABANDONED": ("Abandoned", "updated"),
}
REVIEW_QUERY_OPTIONS = ("MESSAGES", "DETAILED_ACCOUNTS")
AUTOGENERATED_TAG = "autogenerated:"


#============================================
def collect_go_issues(
	client,
	username: str,
	start: datetime,
	period: str = activity_table.DEFAULT_PERIOD,
	log_fn=None,
) -> dict[str, list[list[str]]]:
	"""
	Build the go-issues table from the user's activity on golang/go.
	"""
	events = github_activity.collect_issue_events(
		client,
		username,
		start,
		repo_filter=f"repo:{GO_REPO}",
	)
	if log_fn is not None:
		log_fn(f"Go issues: collected {len(events)} event(s) for {username}.")
	table = activity_table.build_activity_table(
		events, github_activity.ISSUE_ACTIONS, "Repository", period, start,
	)
	return {"go-issues": table}


#============================================
def change_events(change: dict) -> list[ActivityEvent]:
	"""
	Opened plus the final outcome for one change the user owns.
	"""
	project = change.get("project") or "(unknown)"
	events = []
	created = gerrit_client.parse_gerrit_time(change.get("created", ""))
	if created is not None:
		events.append(ActivityEvent(created, project, "Opened"))
	status_action = CL_STATUS_ACTIONS.get(change.get("status", ""))
	if status_action is not None:
		action, time_field = status_action
		closed = gerrit_client.parse_gerrit_time(change.get(time_field, ""))
		if closed is not None:
			events.append(ActivityEvent(closed, project, action))
	return events


#============================================
def review_events(change: dict, emails: set[str], start: datetime) -> list[ActivityEvent]:
	"""
	One Reviewed event per review message the user posted on someone else's change.
	"""
	project = change.get("project") or "(unknown)"
	events = []
	for message in change.get("messages") or []:
		author_email = ((message.get("author") or {}).get("email") or "").lower()
		if author_email not in emails:
			continue
		# patch set uploads and bot notices, not reviews
		if (message.get("tag") or "").startswith(AUTOGENERATED_TAG):
			continue
		posted = gerrit_client.parse_gerrit_time(message.get("date", ""))
		if posted is None or posted < start:
			continue
		events.append(ActivityEvent(posted, project, "Reviewed"))
	return events


#============================================
def unique_changes(changes: list[dict], seen: set) -> list[dict]:
	"""
	Drop changes already counted under another email.
	"""
	fresh = []
	for change in changes:
		key = change.get("_number") or change.get("id")
		if key in seen:
			continue
		seen.add(key)
		fresh.append(change)
	return fresh


#============================================
def collect_go_changelists(
	gerrit,
	emails: list[str],
	start: datetime,
	period: str = activity_table.DEFAULT_PERIOD,
	log_fn=None,
) -> dict[str, list[list[str]]]:
	"""
	Build the go-cls table from Gerrit changes owned or reviewed by the user.
	"""
	since = start.strftime("%Y-%m-%d")
	user_emails = {email.lower() for email in emails}
	owned_seen: set = set()
	reviewed_seen: set = set()
	events = []
	for email in emails:
		owned = gerrit.query_changes(f"owner:{email} after:{since}")
		for change in unique_changes(owned, owned_seen):
			events.extend(change_events(change))
	for email in emails:
		reviewed = gerrit.query_changes(
			f"reviewer:{email} -owner:{email} after:{since}",
			REVIEW_QUERY_OPTIONS,
		)
		for change in unique_changes(reviewed, reviewed_seen):
			if change.get("_number") in owned_seen:
				continue
			events.extend(review_events(change, user_emails, start))
	if log_fn is not None:
		log_fn(f"Go CLs: collected {len(events)} event(s) for {', '.join(emails)}.")
	table = activity_table.build_activity_table(
		events, CL_ACTIONS, "Project", period, start,
	)
	return {"go-cls": table}
