"""Hierarchical grouping of changelog entries.

The tree alternates between GroupIndex nodes (insertion-ordered mappings
from a key value to a child) and GroupLeaf lists of entries. Its depth is
the number of configured fields, and every leaf sits at that depth.
"""

# local repo modules
from resumelib import message as message_mod
from resumelib.errors import InvalidIndex
from resumelib.errors import InvalidSelector

MISSING_KEY = "(none)"


#============================================
def select_origin(entry) -> str:
	return entry.origin


#============================================
def select_project(entry) -> str:
	"""
	Last path component of the origin, without a .git suffix.
	"""
	tail = entry.origin.rstrip("/").replace(":", "/").split("/")[-1]
	if tail.endswith(".git"):
		tail = tail[: -len(".git")]
	return tail or entry.origin


#============================================
def select_branch(entry) -> str:
	return entry.branch


#============================================
def select_commit_type(entry) -> str:
	return entry.message.commit_type


#============================================
def select_scope(entry) -> str:
	return entry.message.scope or MISSING_KEY


#============================================
def select_team(entry) -> str:
	# first trailer wins when a message names several teams
	values = message_mod.trailer_values(entry.message, message_mod.TEAM_TRAILER_KEY)
	if not values:
		return MISSING_KEY
	return values[0]


#============================================
def select_breaking(entry) -> str:
	if entry.message.breaking:
		return "breaking"
	return "non-breaking"


SELECTORS = {
	"origin": select_origin,
	"project": select_project,
	"branch": select_branch,
	"type": select_commit_type,
	"commit-type": select_commit_type,
	"scope": select_scope,
	"team": select_team,
	"breaking": select_breaking,
}


#============================================
def resolve_selectors(field_names) -> tuple:
	"""
	Map field names to selector callables.

	Raises:
		InvalidSelector: for a name that is not a known field.
	"""
	selectors = []
	for name in field_names:
		key = str(name).strip().lower()
		if key not in SELECTORS:
			known = ", ".join(sorted(SELECTORS))
			raise InvalidSelector(f"Unknown grouping field {name!r}; expected one of: {known}")
		selectors.append(SELECTORS[key])
	return tuple(selectors)


#============================================
class GroupIndex:
	"""
	Index node: key value -> child node, in first-insertion order.
	"""

	def __init__(self):
		self.children: dict = {}

	def to_data(self) -> dict:
		return {key: child.to_data() for key, child in self.children.items()}


#============================================
class GroupLeaf:
	"""
	Leaf node: entries in insertion order.
	"""

	def __init__(self):
		self.entries: list = []

	def to_data(self) -> list:
		return [entry.to_dict() for entry in self.entries]


#============================================
class Grouper:
	"""
	Buckets entries by an ordered, immutable list of fields.
	"""

	def __init__(self, field_names=()):
		self.field_names = tuple(field_names)
		self.selectors = resolve_selectors(self.field_names)
		if self.selectors:
			self.root = GroupIndex()
		else:
			self.root = GroupLeaf()

	#============================================
	def keys_for(self, entry) -> tuple:
		return tuple(selector(entry) for selector in self.selectors)

	#============================================
	def insert(self, entry) -> None:
		"""
		Descend the index nodes for all but the last key and append to the leaf.
		"""
		keys = self.keys_for(entry)
		node = self.root
		if not keys:
			if not isinstance(node, GroupLeaf):
				raise InvalidIndex("Expected a leaf list at the root of an ungrouped tree")
			node.entries.append(entry)
			return
		for depth, key in enumerate(keys):
			if not isinstance(node, GroupIndex):
				raise InvalidIndex(
					f"Expected an index node at depth {depth} for key {key!r}, found a leaf list"
				)
			is_last = depth == len(keys) - 1
			child = node.children.get(key)
			if child is None:
				child = GroupLeaf() if is_last else GroupIndex()
				node.children[key] = child
			node = child
		if not isinstance(node, GroupLeaf):
			raise InvalidIndex(f"Expected a leaf list at depth {len(keys)}, found an index node")
		node.entries.append(entry)

	#============================================
	def extend(self, entries) -> None:
		for entry in entries:
			self.insert(entry)

	#============================================
	def to_data(self):
		"""
		Return nested dicts and lists ready for serialization.
		"""
		return self.root.to_data()
