from dataclasses import dataclass
from datetime import datetime
from datetime import timezone

from workstats.table_model import SUBTOTAL_MARKER
from workstats.table_model import TOTAL_MARKER


PERIOD_CHOICES = ("week", "month", "quarter", "year")
DEFAULT_PERIOD = "month"


#============================================
@dataclass(frozen=True)
class ActivityEvent:
	"""
	One timestamped action by the user in one repository or project.
	"""
	event_time: datetime
	group: str
	action: str


#============================================
def parse_timestamp(value) -> datetime | None:
	"""
	Parse ISO-8601 text or a datetime into an aware UTC datetime.
	"""
	if value is None or value == "":
		return None
	if isinstance(value, datetime):
		parsed = value
	else:
		parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed.astimezone(timezone.utc)


#============================================
def validate_period(period: str) -> str:
	if period not in PERIOD_CHOICES:
		raise ValueError(
			f"Unknown period {period!r}; expected one of {', '.join(PERIOD_CHOICES)}."
		)
	return period


#============================================
def period_key(event_time: datetime, period: str) -> str:
	"""
	Bucket key for one timestamp; keys sort chronologically as text.
	"""
	validate_period(period)
	if period == "week":
		iso_year, iso_week, _ = event_time.isocalendar()
		return f"{iso_year:04d}-W{iso_week:02d}"
	if period == "month":
		return f"{event_time.year:04d}-{event_time.month:02d}"
	if period == "quarter":
		quarter = (event_time.month - 1) // 3 + 1
		return f"{event_time.year:04d}-Q{quarter}"
	return f"{event_time.year:04d}"


#============================================
def count_row(label: str, group: str, counts: dict[str, int], actions: list[str]) -> list[str]:
	values = [counts.get(action, 0) for action in actions]
	return [label, group] + [str(value) for value in values] + [str(sum(values))]


#============================================
def add_counts(target: dict[str, int], source: dict[str, int]) -> None:
	for action, value in source.items():
		target[action] = target.get(action, 0) + value


#============================================
def build_activity_table(
	events: list[ActivityEvent],
	actions: list[str],
	group_label: str,
	period: str = DEFAULT_PERIOD,
	start: datetime | None = None,
) -> list[list[str]]:
	"""
	Group events into period buckets with per-period subtotals and a grand total.

	Rows are the header, then for each period one row per group followed by a
	Subtotal row, then a final Total row. Without events only the header is
	returned.
	"""
	validate_period(period)
	header = ["Period", group_label] + list(actions) + ["Total"]
	buckets: dict[str, dict[str, dict[str, int]]] = {}
	for event in events:
		if event.action not in actions:
			raise ValueError(f"Unknown action {event.action!r} for columns {actions}.")
		if start is not None and event.event_time < start:
			continue
		key = period_key(event.event_time, period)
		groups = buckets.setdefault(key, {})
		counts = groups.setdefault(event.group, {})
		counts[event.action] = counts.get(event.action, 0) + 1
	rows = [header]
	if not buckets:
		return rows
	grand_counts: dict[str, int] = {}
	for key in sorted(buckets):
		period_counts: dict[str, int] = {}
		for group in sorted(buckets[key]):
			counts = buckets[key][group]
			rows.append(count_row(key, group, counts, actions))
			add_counts(period_counts, counts)
		rows.append(count_row(SUBTOTAL_MARKER, key, period_counts, actions))
		add_counts(grand_counts, period_counts)
	rows.append(count_row(TOTAL_MARKER, "", grand_counts, actions))
	return rows
