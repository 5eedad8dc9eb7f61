"""Repository access: open, bare clone, branch fetch and lookup.

All git work goes through GitPython, which drives the git CLI, so SSH
agents and credential helpers configured for git apply unchanged. The
optional env mapping (for example GIT_SSH_COMMAND) is the credential hook.
"""

# Standard Library
import os

# PIP3 modules
import git

# local repo modules
from resumelib import repo_cache
from resumelib.errors import BranchNotFound
from resumelib.errors import RepositoryAccessError

MISSING_REMOTE_REF_MARKERS = (
	"couldn't find remote ref",
	"could not find remote ref",
)


#============================================
def build_git_env(ssh_command: str = "") -> dict:
	"""
	Build extra environment for clone/fetch commands.
	"""
	env = {}
	if ssh_command:
		env["GIT_SSH_COMMAND"] = ssh_command
	return env


#============================================
def open_repository(path: str) -> git.Repo:
	"""
	Open a local (bare or working-tree) repository.
	"""
	try:
		return git.Repo(path)
	except git.exc.NoSuchPathError as error:
		raise RepositoryAccessError(f"Repository path does not exist: {path}") from error
	except git.exc.InvalidGitRepositoryError as error:
		raise RepositoryAccessError(f"Not a git repository: {path}") from error


#============================================
def clone_bare(origin: str, destination: str, env: dict | None = None) -> git.Repo:
	"""
	Clone origin as a bare repository into destination.
	"""
	parent = os.path.dirname(os.path.abspath(destination))
	if parent:
		os.makedirs(parent, exist_ok=True)
	try:
		return git.Repo.clone_from(origin, destination, env=env or None, bare=True)
	except git.exc.GitCommandError as error:
		raise RepositoryAccessError(f"Unable to clone {origin}") from error


#============================================
def find_branch(repo: git.Repo, branch: str) -> str:
	"""
	Return the head commit of a branch, trying local then remote-tracking refs.

	Raises:
		BranchNotFound: no local head and no remote-tracking ref.
	"""
	candidates = [f"refs/heads/{branch}"]
	for remote in repo.remotes:
		candidates.append(f"refs/remotes/{remote.name}/{branch}")
	for ref_name in candidates:
		try:
			return repo.commit(ref_name).hexsha
		except (git.exc.BadName, ValueError):
			continue
	raise BranchNotFound(branch, repo.git_dir)


#============================================
def fetch_branch(repo: git.Repo, branch: str, env: dict | None = None) -> str:
	"""
	Fetch one branch from origin into the local branch of the same name.

	The local ref is created when absent and force-updated otherwise.

	Returns:
		The fetched head commit id.
	"""
	refspec = f"+refs/heads/{branch}:refs/heads/{branch}"
	try:
		with repo.git.custom_environment(**(env or {})):
			repo.git.fetch("origin", refspec)
	except git.exc.GitCommandError as error:
		stderr_text = str(getattr(error, "stderr", "") or "").lower()
		for marker in MISSING_REMOTE_REF_MARKERS:
			if marker in stderr_text:
				raise BranchNotFound(branch, "origin") from error
		raise RepositoryAccessError(f"Unable to fetch branch {branch}") from error
	return find_branch(repo, branch)


#============================================
class Project:
	"""
	One configured repository and the branches tracked for it.
	"""

	def __init__(
		self,
		name: str,
		origin: str,
		branches: list[str],
		team: str | None = None,
		repo: git.Repo | None = None,
	):
		self.name = name
		self.origin = origin
		self.branches = list(branches)
		self.team = team
		self.repo = repo

	#============================================
	@classmethod
	def from_standalone_repository(
		cls,
		path: str,
		branches: list[str],
		team: str | None = None,
	) -> "Project":
		"""
		Open a local repository; its absolute path serves as origin.
		"""
		resolved = os.path.realpath(path)
		repo = open_repository(resolved)
		name = os.path.basename(resolved.rstrip(os.sep)) or resolved
		return cls(name, resolved, branches, team=team, repo=repo)

	#============================================
	def acquire(self, cache_root: str, env: dict | None = None, log_fn=None) -> bool:
		"""
		Reuse the cached bare clone if it opens, otherwise clone it.

		Returns:
			True when a fresh clone was made.
		"""
		path = repo_cache.repository_cache_path(cache_root, self.origin)
		if os.path.isdir(path):
			# an unusable cache directory is fatal; it is never deleted here
			self.repo = open_repository(path)
			if log_fn is not None:
				log_fn(f"Reusing cached clone for {self.name}: {path}")
			return False
		if log_fn is not None:
			log_fn(f"Cloning {self.origin} -> {path}")
		self.repo = clone_bare(self.origin, path, env=env)
		return True

	#============================================
	def fetch(self, branch: str, env: dict | None = None) -> str:
		return fetch_branch(self.require_repo(), branch, env=env)

	#============================================
	def head(self, branch: str) -> str:
		return find_branch(self.require_repo(), branch)

	#============================================
	def require_repo(self) -> git.Repo:
		if self.repo is None:
			raise RepositoryAccessError(f"Repository for {self.name} has not been acquired")
		return self.repo
