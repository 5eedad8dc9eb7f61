import hashlib
import os
import re


SLUG_RE = re.compile(r"[^A-Za-z0-9._-]+")


#============================================
def default_cache_root() -> str:
	"""
	Return the per-user cache root for bare repository clones.
	"""
	xdg_cache = (os.environ.get("XDG_CACHE_HOME", "") or "").strip()
	if xdg_cache:
		return os.path.join(xdg_cache, "resume")
	return os.path.join(os.path.expanduser("~"), ".cache", "resume")


#============================================
def resolve_cache_root(cache_dir: str = "") -> str:
	"""
	Resolve a configured cache directory, falling back to the default.
	"""
	value = (cache_dir or "").strip()
	if not value:
		value = default_cache_root()
	return os.path.abspath(os.path.expanduser(value))


#============================================
def origin_slug(origin: str) -> str:
	"""
	Build a readable directory stem from the tail of an origin URL.
	"""
	tail = origin.rstrip("/").replace(":", "/").split("/")[-1]
	if tail.endswith(".git"):
		tail = tail[: -len(".git")]
	slug = SLUG_RE.sub("-", tail).strip("-.")
	return slug or "repository"


#============================================
def repository_cache_path(cache_root: str, origin: str) -> str:
	"""
	Return the bare clone directory for one origin.

	The sha256 suffix keeps two origins with the same repository name
	(forks, mirrors) in separate directories.
	"""
	hash_text = hashlib.sha256(origin.encode("utf-8")).hexdigest()[:16]
	return os.path.join(cache_root, f"{origin_slug(origin)}-{hash_text}.git")
