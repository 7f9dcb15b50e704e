import os
import sys
from datetime import datetime
from datetime import timezone

import pytest

# add pipeline directory to path for workstats imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "pipeline"))

from workstats import pipeline_settings


#============================================
def test_load_settings_missing_file(tmp_path) -> None:
	"""
	Missing settings file should return empty settings.
	"""
	settings, resolved_path = pipeline_settings.load_settings(str(tmp_path / "missing.yaml"))
	assert settings == {}
	assert resolved_path.endswith("missing.yaml")


#============================================
def test_load_settings_reads_yaml(tmp_path) -> None:
	"""
	YAML settings should be parsed into nested mapping values.
	"""
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text(
		"github:\n"
		"  username: gopher\n"
		"gerrit:\n"
		"  emails:\n"
		"    - gopher@golang.org\n"
		"    - gopher@example.com\n"
		"report:\n"
		"  cache_ttl_hours: 12\n",
		encoding="utf-8",
	)
	settings, _ = pipeline_settings.load_settings(str(settings_path))
	assert pipeline_settings.get_setting_str(settings, ["github", "username"], "") == "gopher"
	assert pipeline_settings.get_setting_list(settings, ["gerrit", "emails"]) == [
		"gopher@golang.org",
		"gopher@example.com",
	]
	assert pipeline_settings.get_setting_int(settings, ["report", "cache_ttl_hours"], 24) == 12


#============================================
def test_load_settings_rejects_non_mapping(tmp_path) -> None:
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text("- just\n- a list\n", encoding="utf-8")
	with pytest.raises(pipeline_settings.ConfigError):
		pipeline_settings.load_settings(str(settings_path))


#============================================
def test_get_setting_int_invalid_value_raises() -> None:
	"""
	Invalid integer setting should raise RuntimeError.
	"""
	settings = {"report": {"cache_ttl_hours": "abc"}}
	with pytest.raises(RuntimeError):
		pipeline_settings.get_setting_int(settings, ["report", "cache_ttl_hours"], 24)


#============================================
def test_get_setting_bool_values() -> None:
	settings = {"sources": {"gerrit": "off", "github": 1}}
	assert pipeline_settings.get_setting_bool(settings, ["sources", "gerrit"], True) is False
	assert pipeline_settings.get_setting_bool(settings, ["sources", "github"], False) is True
	assert pipeline_settings.get_setting_bool(settings, ["sources", "missing"], True) is True
	with pytest.raises(pipeline_settings.ConfigError):
		pipeline_settings.get_setting_bool({"a": "maybe"}, ["a"], True)


#============================================
def test_get_setting_list_from_comma_text() -> None:
	settings = {"gerrit": {"emails": "a@example.com, ,b@example.com"}}
	assert pipeline_settings.get_setting_list(settings, ["gerrit", "emails"]) == [
		"a@example.com",
		"b@example.com",
	]
	assert pipeline_settings.get_setting_list({}, ["gerrit", "emails"]) == []


#============================================
def test_parse_since_date() -> None:
	"""
	Blank means all history; otherwise YYYY-MM-DD in UTC.
	"""
	assert pipeline_settings.parse_since_date("") == datetime(1900, 1, 1, tzinfo=timezone.utc)
	assert pipeline_settings.parse_since_date("2026-03-01") == datetime(2026, 3, 1, tzinfo=timezone.utc)
	with pytest.raises(pipeline_settings.ConfigError):
		pipeline_settings.parse_since_date("03/01/2026")


#============================================
def test_load_settings_rejects_malformed_yaml(tmp_path) -> None:
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text("github: [unclosed\n", encoding="utf-8")
	with pytest.raises(pipeline_settings.ConfigError) as excinfo:
		pipeline_settings.load_settings(str(settings_path))
	assert "not valid YAML" in str(excinfo.value)
