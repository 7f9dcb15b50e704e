import os
from datetime import datetime
from datetime import timezone

import yaml


DATE_FORMAT = "%Y-%m-%d"
BEGINNING_OF_TIME = datetime(1900, 1, 1, tzinfo=timezone.utc)


#============================================
class ConfigError(RuntimeError):
	"""
	Raised when run parameters cannot be resolved into a usable configuration.
	"""


#============================================
def get_repo_root() -> str:
	"""
	Return repository root based on this module location.
	"""
	module_dir = os.path.dirname(os.path.abspath(__file__))
	pipeline_dir = os.path.dirname(module_dir)
	return os.path.dirname(pipeline_dir)


#============================================
def resolve_settings_path(path_text: str) -> str:
	"""
	Resolve settings path against cwd first, then repo root.
	"""
	if os.path.isabs(path_text):
		return path_text
	cwd_candidate = os.path.abspath(path_text)
	if os.path.isfile(cwd_candidate):
		return cwd_candidate
	repo_root = get_repo_root()
	repo_candidate = os.path.join(repo_root, path_text)
	return os.path.abspath(repo_candidate)


#============================================
def load_settings(path_text: str) -> tuple[dict, str]:
	"""
	Load YAML settings dict and return it with resolved path.
	"""
	resolved_path = resolve_settings_path(path_text)
	if not os.path.isfile(resolved_path):
		return {}, resolved_path
	with open(resolved_path, "r", encoding="utf-8") as handle:
		text = handle.read()
	try:
		data = yaml.safe_load(text)
	except yaml.YAMLError as error:
		raise ConfigError(f"Settings file is not valid YAML: {resolved_path}: {error}") from error
	if data is None:
		return {}, resolved_path
	if not isinstance(data, dict):
		raise ConfigError(f"Settings file must contain a mapping: {resolved_path}")
	return data, resolved_path


#============================================
def get_nested_value(settings: dict, keys: list[str], default_value):
	"""
	Read nested mapping value by key path.
	"""
	current = settings
	for key in keys:
		if not isinstance(current, dict):
			return default_value
		if key not in current:
			return default_value
		current = current[key]
	return current


#============================================
def get_setting_str(settings: dict, keys: list[str], default_value: str) -> str:
	"""
	Read a string setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	return str(value).strip()


#============================================
def get_setting_int(settings: dict, keys: list[str], default_value: int) -> int:
	"""
	Read an integer setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	try:
		return int(value)
	except (TypeError, ValueError) as error:
		raise ConfigError(f"Invalid integer for setting path {'.'.join(keys)}: {value}") from error


#============================================
def get_setting_bool(settings: dict, keys: list[str], default_value: bool) -> bool:
	"""
	Read a boolean setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if isinstance(value, bool):
		return value
	if isinstance(value, str):
		text = value.strip().lower()
		if text in {"1", "true", "yes", "on"}:
			return True
		if text in {"0", "false", "no", "off"}:
			return False
		raise ConfigError(f"Invalid boolean for setting path {'.'.join(keys)}: {value}")
	if isinstance(value, int):
		return value != 0
	if value is None:
		return default_value
	raise ConfigError(f"Invalid boolean for setting path {'.'.join(keys)}: {value}")


#============================================
def get_setting_list(settings: dict, keys: list[str]) -> list[str]:
	"""
	Read a list of strings from a YAML list or a comma-separated string.
	"""
	value = get_nested_value(settings, keys, None)
	if value is None:
		return []
	if isinstance(value, str):
		return split_csv_text(value)
	if isinstance(value, list):
		return [str(item).strip() for item in value if str(item).strip()]
	raise ConfigError(f"Invalid list for setting path {'.'.join(keys)}: {value}")


#============================================
def split_csv_text(text: str) -> list[str]:
	"""
	Split comma-separated text, dropping blank entries.
	"""
	return [part.strip() for part in (text or "").split(",") if part.strip()]


#============================================
def parse_since_date(text: str) -> datetime:
	"""
	Parse a YYYY-MM-DD start date; blank text means all history.
	"""
	value = (text or "").strip()
	if not value:
		return BEGINNING_OF_TIME
	try:
		parsed = datetime.strptime(value, DATE_FORMAT)
	except ValueError as error:
		raise ConfigError(f"Invalid --since date {value!r}; expected YYYY-MM-DD.") from error
	return parsed.replace(tzinfo=timezone.utc)
