"""YAML configuration for the multiple projects mode."""

# Standard Library
import os
from dataclasses import dataclass

# PIP3 modules
import yaml

# local repo modules
from resumelib.errors import ConfigurationError

DEFAULT_BRANCH = "master"


#============================================
@dataclass(frozen=True)
class ProjectConfig:
	name: str
	origin: str
	branches: tuple
	team: str | None = None


#============================================
@dataclass(frozen=True)
class Configuration:
	default_branch: str = DEFAULT_BRANCH
	projects: tuple = ()
	jobs: int = 0
	cache_dir: str = ""
	ssh_command: str = ""
	path: str = ""


#============================================
def resolve_config_path(path_text: str) -> str:
	"""
	Resolve a config path against the current directory only.
	"""
	return os.path.abspath(os.path.expanduser(path_text))


#============================================
def load_settings(path_text: str) -> tuple[dict, str]:
	"""
	Load the YAML mapping and return it with its resolved path.
	"""
	resolved_path = resolve_config_path(path_text)
	if not os.path.isfile(resolved_path):
		raise ConfigurationError(f"Configuration file not found: {resolved_path}")
	with open(resolved_path, "r", encoding="utf-8") as handle:
		text = handle.read()
	try:
		data = yaml.safe_load(text)
	except yaml.YAMLError as error:
		raise ConfigurationError(f"Configuration file is not valid YAML: {resolved_path}") from error
	if data is None:
		return {}, resolved_path
	if not isinstance(data, dict):
		raise ConfigurationError(f"Configuration file must contain a mapping: {resolved_path}")
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
	if isinstance(value, (dict, list)):
		raise ConfigurationError(f"Invalid string for setting path {'.'.join(keys)}: {value!r}")
	return str(value).strip()


#============================================
def get_setting_int(settings: dict, keys: list[str], default_value: int) -> int:
	"""
	Read an integer setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	if isinstance(value, bool):
		raise ConfigurationError(f"Invalid integer for setting path {'.'.join(keys)}: {value}")
	try:
		return int(value)
	except (TypeError, ValueError) as error:
		raise ConfigurationError(f"Invalid integer for setting path {'.'.join(keys)}: {value}") from error


#============================================
def parse_branches(entry: dict, position: int, default_branch: str) -> tuple:
	"""
	Read the branch list of one project; 'branch' is accepted as a single alias.
	"""
	branches = entry.get("branches")
	if branches is None and entry.get("branch") is not None:
		branches = [entry.get("branch")]
	if branches is None:
		return (default_branch,)
	if isinstance(branches, str):
		branches = [branches]
	if not isinstance(branches, list) or not branches:
		raise ConfigurationError(f"projects[{position}].branches must be a non-empty list")
	names = []
	for branch in branches:
		name = str(branch).strip()
		if not name:
			raise ConfigurationError(f"projects[{position}].branches contains an empty name")
		if name not in names:
			names.append(name)
	return tuple(names)


#============================================
def parse_project(entry, position: int, default_branch: str) -> ProjectConfig:
	"""
	Validate one projects[] item.
	"""
	if not isinstance(entry, dict):
		raise ConfigurationError(f"projects[{position}] must be a mapping")
	name = get_setting_str(entry, ["name"], "")
	origin = get_setting_str(entry, ["origin"], "")
	if not name:
		raise ConfigurationError(f"projects[{position}] is missing 'name'")
	if not origin:
		raise ConfigurationError(f"projects[{position}] ({name}) is missing 'origin'")
	team = get_setting_str(entry, ["team"], "") or None
	return ProjectConfig(
		name=name,
		origin=origin,
		branches=parse_branches(entry, position, default_branch),
		team=team,
	)


#============================================
def parse_configuration(settings: dict, path: str = "") -> Configuration:
	"""
	Build a Configuration from a loaded settings mapping.
	"""
	default_branch = get_setting_str(settings, ["default_branch"], DEFAULT_BRANCH) or DEFAULT_BRANCH
	raw_projects = get_nested_value(settings, ["projects"], [])
	if raw_projects is None:
		raw_projects = []
	if not isinstance(raw_projects, list):
		raise ConfigurationError("Invalid configuration: projects must be a list.")
	projects = []
	seen_origins = set()
	for position, entry in enumerate(raw_projects):
		project = parse_project(entry, position, default_branch)
		if project.origin in seen_origins:
			raise ConfigurationError(f"Origin listed twice in projects: {project.origin}")
		seen_origins.add(project.origin)
		projects.append(project)
	jobs = get_setting_int(settings, ["jobs"], 0)
	if jobs < 0:
		raise ConfigurationError(f"Invalid configuration: jobs must be >= 0, got {jobs}")
	return Configuration(
		default_branch=default_branch,
		projects=tuple(projects),
		jobs=jobs,
		cache_dir=get_setting_str(settings, ["cache_dir"], ""),
		ssh_command=get_setting_str(settings, ["ssh_command"], ""),
		path=path,
	)


#============================================
def load_configuration(path_text: str) -> Configuration:
	settings, resolved_path = load_settings(path_text)
	return parse_configuration(settings, resolved_path)
