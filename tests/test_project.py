"""Tests for repository caching, cloning and branch lookup."""

# Standard Library
import os

# PIP3 modules
import git
import pytest

# local repo modules
from resumelib import project
from resumelib import repo_cache
from resumelib.errors import BranchNotFound
from resumelib.errors import RepositoryAccessError


#============================================
def test_repository_cache_path_separates_same_named_origins(tmp_path) -> None:
	first = repo_cache.repository_cache_path(str(tmp_path), "git@github.com:alice/tool.git")
	second = repo_cache.repository_cache_path(str(tmp_path), "git@github.com:bob/tool.git")
	assert first != second
	assert os.path.basename(first).startswith("tool-")
	assert first.endswith(".git")
	assert repo_cache.repository_cache_path(str(tmp_path), "git@github.com:alice/tool.git") == first


#============================================
def test_cache_root_prefers_xdg(monkeypatch, tmp_path) -> None:
	monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))
	assert repo_cache.resolve_cache_root("") == str(tmp_path / "xdg" / "resume")
	assert repo_cache.resolve_cache_root(str(tmp_path / "custom")) == str(tmp_path / "custom")


#============================================
def test_origin_slug_handles_scp_and_paths() -> None:
	assert repo_cache.origin_slug("git@github.com:acme/api.git") == "api"
	assert repo_cache.origin_slug("/srv/git/tools/") == "tools"
	assert repo_cache.origin_slug("::") == "repository"


#============================================
def test_open_repository_errors(tmp_path) -> None:
	with pytest.raises(RepositoryAccessError):
		project.open_repository(str(tmp_path / "missing"))
	(tmp_path / "plain").mkdir()
	with pytest.raises(RepositoryAccessError):
		project.open_repository(str(tmp_path / "plain"))


#============================================
def test_find_branch_local_then_remote(merged_feature, tmp_path) -> None:
	graph = merged_feature["graph"]
	assert project.find_branch(graph.repo, "feature") == merged_feature["feature"].hexsha

	clone = git.Repo.clone_from(graph.path, str(tmp_path / "checkout"), no_checkout=True)
	# only remote-tracking refs exist for 'feature' in the working clone
	assert "feature" not in [head.name for head in clone.heads]
	assert project.find_branch(clone, "feature") == merged_feature["feature"].hexsha
	with pytest.raises(BranchNotFound):
		project.find_branch(clone, "nope")


#============================================
def test_clone_and_fetch_branch(merged_feature, tmp_path) -> None:
	graph = merged_feature["graph"]
	bare = project.clone_bare(graph.path, str(tmp_path / "cache" / "work.git"))
	assert bare.bare is True
	assert project.find_branch(bare, "main") == merged_feature["merge"].hexsha

	newer = graph.commit("feat: later", [merged_feature["merge"]])
	graph.set_branch("main", newer)
	assert project.fetch_branch(bare, "main") == newer.hexsha

	graph.set_branch("hotfix", merged_feature["fix"])
	assert project.fetch_branch(bare, "hotfix") == merged_feature["fix"].hexsha


#============================================
def test_fetch_missing_branch_raises(merged_feature, tmp_path) -> None:
	bare = project.clone_bare(merged_feature["graph"].path, str(tmp_path / "bare.git"))
	with pytest.raises(BranchNotFound):
		project.fetch_branch(bare, "does-not-exist")


#============================================
def test_clone_failure_is_repository_access_error(tmp_path) -> None:
	with pytest.raises(RepositoryAccessError):
		project.clone_bare(str(tmp_path / "no-such-origin"), str(tmp_path / "dest.git"))


#============================================
def test_project_acquire_reuses_cache(merged_feature, tmp_path) -> None:
	messages = []
	cache_root = str(tmp_path / "cache")
	first = project.Project("work", merged_feature["graph"].path, ["main"])
	assert first.acquire(cache_root, log_fn=messages.append) is True
	second = project.Project("work", merged_feature["graph"].path, ["main"])
	assert second.acquire(cache_root, log_fn=messages.append) is False
	assert second.head("main") == merged_feature["merge"].hexsha
	assert any("Reusing cached clone" in line for line in messages)


#============================================
def test_standalone_project_uses_path_as_origin(merged_feature) -> None:
	graph = merged_feature["graph"]
	standalone = project.Project.from_standalone_repository(graph.path, ["main"])
	assert standalone.name == "work"
	assert standalone.origin == os.path.realpath(graph.path)
	with pytest.raises(RepositoryAccessError):
		project.Project("x", "y", ["main"]).require_repo()


#============================================
def test_build_git_env() -> None:
	assert project.build_git_env("") == {}
	assert project.build_git_env("ssh -i key") == {"GIT_SSH_COMMAND": "ssh -i key"}
