"""Snapshots of the last known head per branch per repository.

A Snapshot records where the previous run left off. Its hash is computed
over a canonical (lexically sorted) view of origins and branches, so the
order in which parallel workers finished never changes it. The history
file is append-only and never stores the same hash twice in a row.
"""

# Standard Library
import hashlib
import os
import re
from dataclasses import dataclass
from dataclasses import field

# PIP3 modules
import yaml

# local repo modules
from resumelib.errors import ConfigurationError
from resumelib.errors import SnapshotReferenceError


SNAPSHOT_HASH_RE = re.compile(r"^[0-9a-f]{64}$")
INDEX_REFERENCE_RE = re.compile(r"^[0-9]+$")


#============================================
@dataclass(frozen=True)
class Snapshot:
	"""
	Immutable hashed record of branch heads for every repository.
	"""
	hash: str
	repositories: dict = field(default_factory=dict)

	def get(self, origin: str) -> dict | None:
		"""
		Return the branch -> commit mapping recorded for one origin.
		"""
		return self.repositories.get(origin)

	def to_dict(self) -> dict:
		repositories = {}
		for origin, branches in self.repositories.items():
			repositories[origin] = dict(branches)
		return {
			"hash": self.hash,
			"repositories": repositories,
		}


#============================================
def canonical_repositories(repository_snapshots: dict) -> dict:
	"""
	Return a copy with origins and branches in lexical order.
	"""
	canonical = {}
	for origin in sorted(repository_snapshots):
		branches = repository_snapshots[origin]
		canonical[str(origin)] = {
			str(branch): str(branches[branch]) for branch in sorted(branches)
		}
	return canonical


#============================================
def compute_snapshot_hash(repositories: dict) -> str:
	"""
	Hash origins, then each (branch, commit) pair, in lexical order.
	"""
	hasher = hashlib.sha256()
	for origin in sorted(repositories):
		hasher.update(str(origin).encode("utf-8"))
		branches = repositories[origin]
		for branch in sorted(branches):
			hasher.update(str(branch).encode("utf-8"))
			hasher.update(str(branches[branch]).encode("utf-8"))
	return hasher.hexdigest()


#============================================
def build_snapshot(repository_snapshots: dict) -> Snapshot:
	"""
	Build one Snapshot from per-repository branch heads.

	Args:
		repository_snapshots: mapping origin -> {branch: commit hash}.

	Returns:
		Snapshot with a hash independent of input insertion order.
	"""
	repositories = canonical_repositories(repository_snapshots)
	return Snapshot(hash=compute_snapshot_hash(repositories), repositories=repositories)


#============================================
class SnapshotHistory:
	"""
	Append-only sequence of snapshots, oldest first.
	"""

	def __init__(self, snapshots: list | None = None):
		self._snapshots: list[Snapshot] = list(snapshots or [])

	def __len__(self) -> int:
		return len(self._snapshots)

	def __iter__(self):
		return iter(self._snapshots)

	def __eq__(self, other) -> bool:
		if not isinstance(other, SnapshotHistory):
			return NotImplemented
		return self._snapshots == other._snapshots

	#============================================
	def last(self) -> Snapshot | None:
		if not self._snapshots:
			return None
		return self._snapshots[-1]

	#============================================
	def push(self, snapshot: Snapshot) -> bool:
		"""
		Append a snapshot unless it repeats the latest hash.

		Returns:
			True when the history grew.
		"""
		latest = self.last()
		if latest is not None and latest.hash == snapshot.hash:
			return False
		self._snapshots.append(snapshot)
		return True

	#============================================
	def get_by_index(self, index: int) -> Snapshot | None:
		"""
		Return a snapshot counting back from the latest (0 = latest).
		"""
		if index < 0 or index >= len(self._snapshots):
			return None
		return self._snapshots[len(self._snapshots) - index - 1]

	#============================================
	def get_by_hash(self, snapshot_hash: str) -> Snapshot | None:
		"""
		Return the most recent snapshot with this hash.
		"""
		for snapshot in reversed(self._snapshots):
			if snapshot.hash == snapshot_hash:
				return snapshot
		return None

	#============================================
	def to_dict(self) -> dict:
		return {"snapshots": [snapshot.to_dict() for snapshot in self._snapshots]}


#============================================
def snapshot_from_dict(data, position: int) -> Snapshot:
	"""
	Decode one stored snapshot record, keeping its stored hash.
	"""
	if not isinstance(data, dict):
		raise ConfigurationError(f"Snapshot #{position} must be a mapping")
	snapshot_hash = data.get("hash")
	if not isinstance(snapshot_hash, str) or not snapshot_hash:
		raise ConfigurationError(f"Snapshot #{position} has no hash")
	raw_repositories = data.get("repositories") or {}
	if not isinstance(raw_repositories, dict):
		raise ConfigurationError(f"Snapshot #{position} repositories must be a mapping")
	repositories = {}
	for origin, branches in raw_repositories.items():
		if not isinstance(branches, dict):
			raise ConfigurationError(
				f"Snapshot #{position} repository {origin} must map branches to commits"
			)
		for branch, commit in branches.items():
			if not isinstance(commit, str) or not commit:
				raise ConfigurationError(
					f"Snapshot #{position} branch {branch} of {origin} has no commit"
				)
		repositories[origin] = dict(branches)
	return Snapshot(hash=snapshot_hash, repositories=repositories)


#============================================
def history_from_text(text: str) -> SnapshotHistory:
	"""
	Decode a YAML history document.
	"""
	try:
		# base loader: hashes and commit ids stay strings, never ints or octals
		data = yaml.load(text, Loader=yaml.BaseLoader)
	except yaml.YAMLError as error:
		raise ConfigurationError("State file is not valid YAML") from error
	if data is None:
		return SnapshotHistory()
	if not isinstance(data, dict):
		raise ConfigurationError("State file must contain a mapping with a snapshots list")
	raw_snapshots = data.get("snapshots") or []
	if not isinstance(raw_snapshots, list):
		raise ConfigurationError("State file snapshots must be a list")
	snapshots = [
		snapshot_from_dict(item, position)
		for position, item in enumerate(raw_snapshots)
	]
	return SnapshotHistory(snapshots)


#============================================
def history_to_text(history: SnapshotHistory) -> str:
	"""
	Encode a history as YAML, keeping stored key order.
	"""
	return yaml.safe_dump(
		history.to_dict(),
		sort_keys=False,
		default_flow_style=False,
		allow_unicode=True,
	)


#============================================
def load_history(path: str) -> SnapshotHistory:
	"""
	Load history from disk; a missing file is an empty history.
	"""
	if not os.path.isfile(path):
		return SnapshotHistory()
	with open(path, "r", encoding="utf-8") as handle:
		text = handle.read()
	try:
		return history_from_text(text)
	except ConfigurationError as error:
		raise ConfigurationError(f"Invalid state file: {path}") from error


#============================================
def save_history(history: SnapshotHistory, path: str) -> str:
	"""
	Rewrite the whole history file.
	"""
	output_path = os.path.abspath(path)
	output_dir = os.path.dirname(output_path)
	if output_dir:
		os.makedirs(output_dir, exist_ok=True)
	with open(output_path, "w", encoding="utf-8") as handle:
		handle.write(history_to_text(history))
	return output_path


#============================================
def resolve_snapshot_reference(history: SnapshotHistory, reference: str) -> Snapshot:
	"""
	Resolve a user reference: decimal digits are an index, 64 hex chars a hash.

	Raises:
		SnapshotReferenceError: unparseable reference or no such snapshot.
	"""
	text = (reference or "").strip()
	if INDEX_REFERENCE_RE.match(text) and len(text) < 64:
		snapshot = history.get_by_index(int(text))
		if snapshot is None:
			raise SnapshotReferenceError(
				f"No snapshot at index {text}; history holds {len(history)} snapshot(s)"
			)
		return snapshot
	if SNAPSHOT_HASH_RE.match(text.lower()):
		snapshot = history.get_by_hash(text.lower())
		if snapshot is None:
			raise SnapshotReferenceError(f"No snapshot with hash {text}")
		return snapshot
	raise SnapshotReferenceError(
		f"Snapshot reference {reference!r} is neither an index nor a snapshot hash"
	)
