"""Serialize a grouped changelog tree."""

# PIP3 modules
import yaml

SECTION_TITLES = {
	"feat": "✨ New Features",
	"fix": "🐛 Bug Fixes",
	"perf": "⚡ Performance",
	"docs": "📝 Documentation",
	"refactor": "♻️ Refactoring",
}
BREAKING_MARK = "💥"
TITLED_FIELDS = ("type", "commit-type")


#============================================
def render_yaml(tree_data, fields=()) -> str:
	"""
	Dump the tree as YAML, keeping group keys in first-seen order.

	Group keys are written as-is, so fields are not needed here.
	"""
	return yaml.safe_dump(
		tree_data,
		sort_keys=False,
		default_flow_style=False,
		allow_unicode=True,
	)


#============================================
def format_entry_line(entry: dict) -> str:
	prefix = f"{BREAKING_MARK} " if entry.get("breaking") else ""
	scope = entry.get("scope")
	scope_text = f"**{scope}**: " if scope else ""
	return f" - {prefix}{scope_text}{entry.get('summary', '')}"


#============================================
def _render_node(node, depth: int, lines: list[str], fields: tuple) -> None:
	if isinstance(node, list):
		for entry in node:
			lines.append(format_entry_line(entry))
		lines.append("")
		return
	level = depth - 1
	level_field = fields[level].strip().lower() if level < len(fields) else ""
	for key, child in node.items():
		title = str(key)
		# emoji titles name commit types, never a scope or branch that shares the word
		if level_field in TITLED_FIELDS:
			title = SECTION_TITLES.get(title, title)
		lines.append(f"{'#' * min(depth + 1, 6)} {title}")
		lines.append("")
		_render_node(child, depth + 1, lines, fields)


#============================================
def render_text(tree_data, fields=()) -> str:
	"""
	Render the tree as nested markdown-style headings and bullet lines.

	Args:
		tree_data: nested dicts and lists from Grouper.to_data().
		fields: grouping field per level; only commit type levels get
			section titles.
	"""
	lines: list[str] = []
	_render_node(tree_data, 1, lines, tuple(fields))
	return "\n".join(lines).rstrip() + "\n"


RENDERERS = {
	"yaml": render_yaml,
	"text": render_text,
}


#============================================
def render(tree_data, output_format: str = "yaml", fields=()) -> str:
	if output_format not in RENDERERS:
		raise ValueError(f"Unknown output format: {output_format}")
	return RENDERERS[output_format](tree_data, fields)
