"""Error types raised by resume.

Every error derives from ResumeError so the CLI can print the full cause
chain and exit non-zero without catching unrelated exceptions.
"""


#============================================
class ResumeError(RuntimeError):
	"""
	Base class for all fatal resume errors.
	"""


#============================================
class ConfigurationError(ResumeError):
	"""
	Raised when a config or state document is missing or malformed.
	"""


#============================================
class RepositoryAccessError(ResumeError):
	"""
	Raised when a repository cannot be opened, cloned or fetched.
	"""


#============================================
class BranchNotFound(ResumeError):
	"""
	Raised when a branch exists neither locally nor on the remote.
	"""

	def __init__(self, branch: str, location: str = ""):
		self.branch = branch
		self.location = location
		message = f"Branch {branch} doesn't exist"
		if location:
			message += f" in {location}"
		super().__init__(message)


#============================================
class InvalidSelector(ResumeError):
	"""
	Raised for an unknown grouping field name.
	"""


#============================================
class InvalidIndex(ResumeError):
	"""
	Raised when the grouping tree shape does not match the field list.

	This is a defect, not a user error: every entry goes through the same
	immutable field list, so the tree depth can never change mid-run.
	"""


#============================================
class SnapshotReferenceError(ResumeError):
	"""
	Raised when a requested historical snapshot does not exist.
	"""


#============================================
class MessageParseError(ResumeError):
	"""
	Raised when a commit message does not follow the conventional grammar.
	"""
