"""Run the changelog walk across many repositories in parallel.

One task per configured project runs on a bounded thread pool. A task
owns its repository handle, its progress handle and its sentinel set; the
previous snapshot is shared read-only. The first failing task aborts the
whole batch before any state is written.
"""

# Standard Library
import concurrent.futures
import os
from dataclasses import dataclass
from dataclasses import field

# local repo modules
from resumelib import grouping
from resumelib import progress as progress_mod
from resumelib import project as project_mod
from resumelib import repo_cache
from resumelib import snapshots
from resumelib import walker


#============================================
@dataclass(frozen=True)
class ProjectResult:
	origin: str
	entries: tuple = ()
	repository_snapshot: dict = field(default_factory=dict)


#============================================
def _log(log_fn, message: str) -> None:
	if log_fn is not None:
		log_fn(message)


#============================================
def seed_sentinels(previous_snapshot: snapshots.Snapshot | None, origin: str) -> set[str]:
	"""
	Start the sentinel set from every head recorded for this origin.
	"""
	if previous_snapshot is None:
		return set()
	recorded = previous_snapshot.get(origin)
	if not recorded:
		return set()
	return set(recorded.values())


#============================================
def process_project(
	project: project_mod.Project,
	previous_snapshot: snapshots.Snapshot | None,
	coordinator: progress_mod.ProgressCoordinator,
	cache_root: str,
	env: dict | None = None,
	log_fn=None,
) -> ProjectResult:
	"""
	Acquire, fetch and walk one project.

	Steps reported: repository acquired, branch i/n fetched, branch i/n
	traversed. Branches are handled strictly in configured order.
	"""
	branch_count = len(project.branches)
	handle = coordinator.register(project.name, 1 + 2 * branch_count)
	failed = True
	try:
		handle.set_status("acquiring")
		project.acquire(cache_root, env=env, log_fn=log_fn)
		handle.advance()

		heads = []
		for index, branch in enumerate(project.branches):
			head = project.fetch(branch, env=env)
			heads.append((branch, head))
			handle.set_status(f"fetched {index + 1}/{branch_count}")
			handle.advance()

		sentinels = seed_sentinels(previous_snapshot, project.origin)

		def on_branch(index: int, branch: str, entry_count: int) -> None:
			handle.set_status(f"traversed {index + 1}/{branch_count}")
			handle.advance()
			_log(log_fn, f"{project.name} {branch}: collected {entry_count} entr(ies)")

		entries = walker.walk_branches(
			project.require_repo(),
			project.origin,
			heads,
			sentinels,
			team=project.team,
			on_branch=on_branch,
		)
		failed = False
		return ProjectResult(
			origin=project.origin,
			entries=tuple(entries),
			repository_snapshot=dict(heads),
		)
	finally:
		handle.finish(failed=failed)


#============================================
def default_jobs() -> int:
	return os.cpu_count() or 1


#============================================
def run_projects(
	projects: list[project_mod.Project],
	previous_snapshot: snapshots.Snapshot | None,
	cache_root: str,
	jobs: int = 0,
	env: dict | None = None,
	show_progress: bool = True,
	console=None,
	log_fn=None,
) -> list[ProjectResult]:
	"""
	Process every project on a thread pool and return results in project order.

	Raises:
		The first error raised by any task; remaining results are discarded.
	"""
	worker_count = jobs if jobs > 0 else default_jobs()
	worker_count = max(1, min(worker_count, max(1, len(projects))))
	coordinator = progress_mod.ProgressCoordinator(
		len(projects),
		console=console,
		enabled=show_progress,
	)
	coordinator.start()
	executor = concurrent.futures.ThreadPoolExecutor(
		max_workers=worker_count,
		thread_name_prefix="resume-worker",
	)
	try:
		futures = [
			executor.submit(
				process_project,
				project,
				previous_snapshot,
				coordinator,
				cache_root,
				env,
				log_fn,
			)
			for project in projects
		]
		done, not_done = concurrent.futures.wait(
			futures,
			return_when=concurrent.futures.FIRST_EXCEPTION,
		)
		failures = [future for future in futures if future in done and future.exception() is not None]
		if failures:
			for future in not_done:
				future.cancel()
			coordinator.abort()
			raise failures[0].exception()
		return [future.result() for future in futures]
	finally:
		executor.shutdown(wait=True, cancel_futures=True)
		coordinator.join()


#============================================
def build_projects(configuration) -> list[project_mod.Project]:
	return [
		project_mod.Project(
			project_config.name,
			project_config.origin,
			list(project_config.branches),
			team=project_config.team,
		)
		for project_config in configuration.projects
	]


#============================================
def run_configuration(
	configuration,
	previous_snapshot: snapshots.Snapshot | None,
	jobs: int = 0,
	show_progress: bool = True,
	console=None,
	log_fn=None,
) -> list[ProjectResult]:
	"""
	Run every configured project with the configuration's cache and credentials.
	"""
	cache_root = repo_cache.resolve_cache_root(configuration.cache_dir)
	env = project_mod.build_git_env(configuration.ssh_command)
	_log(log_fn, f"Using repository cache: {cache_root}")
	return run_projects(
		build_projects(configuration),
		previous_snapshot,
		cache_root,
		jobs=jobs or configuration.jobs,
		env=env,
		show_progress=show_progress,
		console=console,
		log_fn=log_fn,
	)


#============================================
def run_repository(path: str, branches: list[str], team: str | None = None) -> list:
	"""
	Single repository mode: walk local branches with an empty starting sentinel set.
	"""
	project = project_mod.Project.from_standalone_repository(path, branches, team=team)
	heads = [(branch, project.head(branch)) for branch in project.branches]
	return walker.walk_branches(project.require_repo(), project.origin, heads, set(), team=team)


#============================================
def build_changelog(entries, fields) -> grouping.Grouper:
	grouper = grouping.Grouper(fields)
	grouper.extend(entries)
	return grouper


#============================================
def collect_entries(results: list[ProjectResult]) -> list:
	entries = []
	for result in results:
		entries.extend(result.entries)
	return entries


#============================================
def snapshot_from_results(results: list[ProjectResult]) -> snapshots.Snapshot:
	return snapshots.build_snapshot(
		{result.origin: result.repository_snapshot for result in results}
	)
