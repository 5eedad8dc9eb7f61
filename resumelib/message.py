"""Conventional commit message parser.

Parses one raw commit message into a ConventionalMessage:

	type(scope)!: summary

	optional body paragraphs

	Key: value
	Other-Key: value

Scope and the breaking mark are optional. The body and the trailer block
must be separated from the headline by a blank line. The last paragraph is
read as trailers only when every one of its lines is a trailer line.
"""

# Standard Library
import re
from dataclasses import dataclass

from resumelib.errors import MessageParseError


KNOWN_COMMIT_TYPES = (
	"build",
	"ci",
	"docs",
	"feat",
	"fix",
	"perf",
	"refactor",
	"style",
	"test",
)

HEADLINE_RE = re.compile(
	r"^(?P<type>[A-Za-z0-9_-]+)"
	r"(?:\((?P<scope>[^()\n]+)\))?"
	r"(?P<breaking>!)?"
	r": (?P<summary>\S.*)$"
)
TRAILER_RE = re.compile(r"^(?P<key>BREAKING CHANGE|[A-Za-z0-9][A-Za-z0-9_-]*):\s+(?P<value>\S.*)$")
PARAGRAPH_SPLIT_RE = re.compile(r"\n[ \t]*\n")
TEAM_TRAILER_KEY = "team"


#============================================
@dataclass(frozen=True)
class ConventionalMessage:
	"""
	One parsed conventional commit message.
	"""
	commit_type: str
	scope: str | None
	breaking: bool
	summary: str
	body: str | None = None
	trailers: tuple = ()

	@property
	def is_known_type(self) -> bool:
		return self.commit_type in KNOWN_COMMIT_TYPES

	def to_dict(self) -> dict:
		"""
		Return a plain mapping for YAML output.
		"""
		return {
			"type": self.commit_type,
			"scope": self.scope,
			"breaking": self.breaking,
			"summary": self.summary,
			"body": self.body,
			"trailers": [{"key": key, "value": value} for key, value in self.trailers],
		}


#============================================
def parse_headline(line: str) -> tuple[str, str | None, bool, str]:
	"""
	Split a headline into type, scope, breaking flag and summary.
	"""
	match = HEADLINE_RE.match(line.rstrip())
	if match is None:
		raise MessageParseError(f"Headline does not match 'type(scope)!: summary': {line!r}")
	scope = match.group("scope")
	if scope is not None:
		scope = scope.strip()
	return (
		match.group("type"),
		scope or None,
		match.group("breaking") is not None,
		match.group("summary").strip(),
	)


#============================================
def parse_trailer_block(paragraph: str) -> list[tuple[str, str]] | None:
	"""
	Parse a paragraph as trailers, or return None if any line is not one.
	"""
	trailers = []
	for line in paragraph.split("\n"):
		match = TRAILER_RE.match(line.strip())
		if match is None:
			return None
		trailers.append((match.group("key").strip(), match.group("value").strip()))
	return trailers


#============================================
def parse_message(text: str) -> ConventionalMessage:
	"""
	Parse one raw commit message.

	Args:
		text: full commit message text as stored in the commit object.

	Returns:
		ConventionalMessage with headline fields, body and trailers.

	Raises:
		MessageParseError: when the headline or layout does not match.
	"""
	if text is None:
		raise MessageParseError("Empty commit message")
	normalized = text.replace("\r\n", "\n")
	headline, _, rest = normalized.partition("\n")
	commit_type, scope, breaking, summary = parse_headline(headline)

	body = None
	trailers: list[tuple[str, str]] = []
	if rest.strip():
		first_line = rest.split("\n", 1)[0]
		if first_line.strip():
			raise MessageParseError("Headline must be followed by a blank line")
		rest = rest.strip()
		paragraphs = PARAGRAPH_SPLIT_RE.split(rest)
		last_paragraph = paragraphs[-1]
		parsed_trailers = parse_trailer_block(last_paragraph)
		if parsed_trailers is None:
			body = rest
		else:
			trailers = parsed_trailers
			body = rest[: len(rest) - len(last_paragraph)].strip()
		if not body:
			body = None

	return ConventionalMessage(
		commit_type=commit_type,
		scope=scope,
		breaking=breaking,
		summary=summary,
		body=body,
		trailers=tuple(trailers),
	)


#============================================
def try_parse_message(text: str) -> ConventionalMessage | None:
	"""
	Parse a message, returning None when it is not conventional.
	"""
	try:
		return parse_message(text)
	except MessageParseError:
		return None


#============================================
def trailer_values(message: ConventionalMessage, key: str) -> list[str]:
	"""
	Return every trailer value stored under an exact key.
	"""
	return [value for trailer_key, value in message.trailers if trailer_key == key]
