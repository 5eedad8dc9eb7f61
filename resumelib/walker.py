"""Commit-graph walker.

Walks a branch from its head backward, hiding every sentinel commit and
its ancestors, and turns conventional commit messages into changelog
entries. Merge commits met along the way become new sentinels so that a
later branch in the same run does not count the merged commits again.
"""

# Standard Library
import tempfile
from dataclasses import dataclass

# PIP3 modules
import git

# local repo modules
from resumelib import message as message_mod
from resumelib.errors import RepositoryAccessError


#============================================
@dataclass(frozen=True)
class ChangeLogEntry:
	"""
	One conventional commit attributed to a repository and branch.
	"""
	origin: str
	branch: str
	message: message_mod.ConventionalMessage
	commit: str = ""

	def to_dict(self) -> dict:
		data = {
			"origin": self.origin,
			"branch": self.branch,
			"commit": self.commit,
		}
		data.update(self.message.to_dict())
		return data


#============================================
def walk(repo: git.Repo, branch_head: str, hidden: set[str]) -> list:
	"""
	List commits reachable from branch_head but not from hidden.

	Commits come in topological order, newest first. Hidden ids that are
	unknown to the repository (pruned or rewritten history) are ignored.
	Revisions go to rev-list on stdin; the hidden set grows with every
	merge seen and would overflow the command line of a long history.
	"""
	revisions = [branch_head] + [f"^{commit_id}" for commit_id in sorted(hidden)]
	with tempfile.TemporaryFile() as revision_stream:
		revision_stream.write(("\n".join(revisions) + "\n").encode("ascii"))
		revision_stream.seek(0)
		output = repo.git.rev_list(
			"--stdin",
			"--topo-order",
			"--ignore-missing",
			istream=revision_stream,
		)
	return [repo.commit(line.strip()) for line in output.splitlines() if line.strip()]


#============================================
def matches_team(message: message_mod.ConventionalMessage, team: str | None) -> bool:
	"""
	Return True when no team filter is set or a 'team' trailer equals it.
	"""
	if team is None:
		return True
	return team in message_mod.trailer_values(message, message_mod.TEAM_TRAILER_KEY)


#============================================
def extract_entries(
	commits,
	origin: str,
	branch: str,
	team: str | None = None,
) -> tuple[list[ChangeLogEntry], set[str]]:
	"""
	Turn walked commits into changelog entries.

	Args:
		commits: iterable of commits exposing hexsha, parents and message.
		origin: repository origin attached to each entry.
		branch: branch name attached to each entry.
		team: optional exact value required in a 'team' trailer.

	Returns:
		Tuple of (entries in traversal order, ids of merge commits seen).
	"""
	entries = []
	new_sentinels = set()
	for commit in commits:
		if len(commit.parents) > 1:
			new_sentinels.add(commit.hexsha)
		parsed = message_mod.try_parse_message(commit.message)
		if parsed is None:
			continue
		if not matches_team(parsed, team):
			continue
		entries.append(ChangeLogEntry(origin, branch, parsed, commit.hexsha))
	return entries, new_sentinels


#============================================
def walk_branches(
	repo: git.Repo,
	origin: str,
	heads: list[tuple[str, str]],
	sentinels: set[str],
	team: str | None = None,
	on_branch=None,
) -> list[ChangeLogEntry]:
	"""
	Walk branches in order, growing the sentinel set between branches.

	Args:
		repo: repository holding every head.
		origin: repository origin for the produced entries.
		heads: ordered (branch, head commit) pairs.
		sentinels: caller-owned set, seeded with previously recorded heads;
			merge commits found on each branch are added to it.
		team: optional team trailer filter.
		on_branch: optional callable(index, branch, entry_count) run after
			each branch is traversed.

	Returns:
		All entries, grouped by branch in the configured order.
	"""
	all_entries = []
	for index, (branch, head) in enumerate(heads):
		try:
			commits = walk(repo, head, sentinels)
			entries, new_sentinels = extract_entries(commits, origin, branch, team=team)
		except (git.exc.GitCommandError, OSError) as error:
			raise RepositoryAccessError(f"Unable to walk branch {branch} of {origin}") from error
		sentinels.update(new_sentinels)
		all_entries.extend(entries)
		if on_branch is not None:
			on_branch(index, branch, len(entries))
	return all_entries
