"""
Shared fixtures: throwaway git repositories built commit by commit.

Commits are written straight from the (empty) index with explicit parents,
so merge topologies can be built without checkouts or a configured user.
"""

# PIP3 modules
import git
import pytest


ACTOR = git.Actor("Resume Tests", "tests@example.com")


#============================================
class GraphBuilder:
	"""
	Build commits and branch refs in one repository.
	"""

	def __init__(self, path):
		self.path = str(path)
		self.repo = git.Repo.init(self.path)
		self._tick = 0

	#============================================
	def commit(self, message: str, parents=()) -> git.Commit:
		self._tick += 1
		stamp = f"{1700000000 + self._tick} +0000"
		return self.repo.index.commit(
			message,
			parent_commits=list(parents),
			head=False,
			author=ACTOR,
			committer=ACTOR,
			author_date=stamp,
			commit_date=stamp,
		)

	#============================================
	def set_branch(self, name: str, commit: git.Commit) -> None:
		self.repo.create_head(name, commit, force=True)


#============================================
@pytest.fixture
def graph(tmp_path):
	"""
	A fresh repository builder under tmp_path/work.
	"""
	return GraphBuilder(tmp_path / "work")


#============================================
@pytest.fixture
def merged_feature(graph):
	"""
	main: A - B - M, feature: A - F1, with M merging F1 into main.
	"""
	base = graph.commit("feat: base layout")
	feature_commit = graph.commit("feat(auth): add login\n\nteam: platform", [base])
	main_fix = graph.commit("fix: main only fix", [base])
	merge = graph.commit("Merge branch 'feature'", [main_fix, feature_commit])
	graph.set_branch("main", merge)
	graph.set_branch("feature", feature_commit)
	return {
		"graph": graph,
		"base": base,
		"feature": feature_commit,
		"fix": main_fix,
		"merge": merge,
	}


#============================================
@pytest.fixture
def builder_factory():
	"""
	The GraphBuilder class, for tests that need several repositories.
	"""
	return GraphBuilder
