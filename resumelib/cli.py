#!/usr/bin/env python3
import argparse
import os
import sys
from datetime import datetime

import rich.console
import yaml

from resumelib import config as config_mod
from resumelib import errors
from resumelib import message as message_mod
from resumelib import orchestrator
from resumelib import report
from resumelib import snapshots


DEFAULT_CONFIG_PATH = "resume.yaml"
DEFAULT_STATE_PATH = "resume.state.yaml"
DEFAULT_GROUP_FIELDS = ["type"]
ERROR_CONSOLE = rich.console.Console(stderr=True)


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line to stderr.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[resume {now_text}] {message}"
	lower = message.lower()
	style = "cyan"
	if ("failed" in lower) or ("error" in lower):
		style = "bold red"
	elif ("skipping" in lower) or ("unchanged" in lower):
		style = "yellow"
	elif ("wrote " in lower) or ("collected" in lower) or ("saved" in lower):
		style = "green"
	ERROR_CONSOLE.print(line, style=style, markup=False, highlight=False)


#============================================
def add_output_arguments(parser: argparse.ArgumentParser) -> None:
	"""
	Grouping and output options shared by both run modes.
	"""
	parser.add_argument(
		"-g",
		"--group-by",
		dest="group_by",
		action="append",
		default=None,
		help="Grouping field, repeat for nested groups "
		+ "(origin, project, branch, type, scope, team, breaking). Default: type.",
	)
	parser.add_argument(
		"--flat",
		action="store_true",
		help="Do not group entries; output one flat list.",
	)
	parser.add_argument(
		"--format",
		dest="output_format",
		choices=sorted(report.RENDERERS),
		default="yaml",
		help="Output format (default: yaml).",
	)
	parser.add_argument(
		"-o",
		"--output",
		default="",
		help="Write the changelog to this file instead of stdout.",
	)


#============================================
def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="resume",
		description="Build grouped changelogs from conventional commits, incrementally.",
	)
	subparsers = parser.add_subparsers(dest="command", required=True)

	repository_parser = subparsers.add_parser(
		"repository",
		aliases=["r"],
		help="Changelog of one local repository.",
	)
	repository_parser.add_argument("repository", help="Path to a local git repository.")
	repository_parser.add_argument(
		"-b",
		"--branch",
		dest="branches",
		action="append",
		default=None,
		help="Branch to walk, repeat for several (default: master).",
	)
	repository_parser.add_argument(
		"--team",
		default=None,
		help="Keep only commits whose 'team' trailer equals this value.",
	)
	add_output_arguments(repository_parser)
	repository_parser.set_defaults(handler=run_repository_command)

	projects_parser = subparsers.add_parser(
		"projects",
		aliases=["p"],
		help="Incremental changelog of every configured project.",
	)
	projects_parser.add_argument(
		"config_file",
		nargs="?",
		default=DEFAULT_CONFIG_PATH,
		help=f"YAML configuration path (default: {DEFAULT_CONFIG_PATH}).",
	)
	projects_parser.add_argument(
		"--state",
		dest="state_file",
		default=DEFAULT_STATE_PATH,
		help=f"Snapshot history path (default: {DEFAULT_STATE_PATH}).",
	)
	projects_parser.add_argument(
		"--no-state",
		action="store_true",
		help="Ignore the snapshot history: walk full history and save nothing.",
	)
	projects_parser.add_argument(
		"--force-save",
		action="store_true",
		help="Save the new snapshot even when replaying from a historical one.",
	)
	projects_parser.add_argument(
		"--snapshot",
		default="",
		help="Start from a historical snapshot: index (0 = latest) or hash. "
		+ "Not allowed with --no-state.",
	)
	projects_parser.add_argument(
		"-j",
		"--jobs",
		type=int,
		default=0,
		help="Parallel repository workers (default: config jobs, else CPU count).",
	)
	projects_parser.add_argument(
		"--no-progress",
		action="store_true",
		help="Disable the live progress display.",
	)
	add_output_arguments(projects_parser)
	projects_parser.set_defaults(handler=run_projects_command)

	check_parser = subparsers.add_parser(
		"check-message",
		help="Parse one commit message and fail if it is not conventional.",
	)
	check_parser.add_argument(
		"message_file",
		nargs="?",
		default="-",
		help="File holding the message ('-' reads stdin).",
	)
	check_parser.set_defaults(handler=run_check_message_command)
	return parser


#============================================
def resolve_group_fields(args: argparse.Namespace) -> list[str]:
	if args.flat:
		return []
	if args.group_by:
		return list(args.group_by)
	return list(DEFAULT_GROUP_FIELDS)


#============================================
def write_output(args: argparse.Namespace, text: str) -> None:
	if not args.output:
		sys.stdout.write(text)
		sys.stdout.flush()
		return
	output_path = os.path.abspath(args.output)
	output_dir = os.path.dirname(output_path)
	if output_dir:
		os.makedirs(output_dir, exist_ok=True)
	with open(output_path, "w", encoding="utf-8") as handle:
		handle.write(text)
	log_step(f"Wrote changelog to {output_path}")


#============================================
def emit_changelog(args: argparse.Namespace, entries: list) -> None:
	grouper = orchestrator.build_changelog(entries, resolve_group_fields(args))
	write_output(args, report.render(grouper.to_data(), args.output_format, grouper.field_names))


#============================================
def run_repository_command(args: argparse.Namespace) -> None:
	"""
	Walk branches of one local repository.
	"""
	# validate grouping fields before touching the repository
	fields = resolve_group_fields(args)
	orchestrator.build_changelog([], fields)
	branches = args.branches or [config_mod.DEFAULT_BRANCH]
	entries = orchestrator.run_repository(args.repository, branches, team=args.team)
	log_step(f"Collected {len(entries)} changelog entr(ies) from {args.repository}")
	emit_changelog(args, entries)


#============================================
def select_previous_snapshot(
	args: argparse.Namespace,
	history: snapshots.SnapshotHistory,
) -> snapshots.Snapshot | None:
	if args.no_state:
		return None
	if args.snapshot:
		snapshot = snapshots.resolve_snapshot_reference(history, args.snapshot)
		log_step(f"Starting from snapshot {snapshot.hash}")
		return snapshot
	return history.last()


#============================================
def should_save_state(args: argparse.Namespace) -> bool:
	if args.no_state:
		return False
	if args.snapshot and not args.force_save:
		return False
	return True


#============================================
def run_projects_command(args: argparse.Namespace) -> None:
	"""
	Run every configured project, then extend and save the snapshot history.
	"""
	if args.no_state and args.snapshot:
		raise errors.ConfigurationError("--snapshot reads the snapshot history and cannot be combined with --no-state")
	fields = resolve_group_fields(args)
	orchestrator.build_changelog([], fields)
	configuration = config_mod.load_configuration(args.config_file)
	log_step(f"Using config file: {configuration.path} ({len(configuration.projects)} project(s))")
	history = snapshots.SnapshotHistory()
	if not args.no_state:
		history = snapshots.load_history(args.state_file)
		log_step(f"Loaded {len(history)} snapshot(s) from {os.path.abspath(args.state_file)}")
	previous_snapshot = select_previous_snapshot(args, history)

	results = orchestrator.run_configuration(
		configuration,
		previous_snapshot,
		jobs=args.jobs,
		show_progress=not args.no_progress,
		console=ERROR_CONSOLE,
		log_fn=log_step,
	)
	entries = orchestrator.collect_entries(results)
	log_step(f"Collected {len(entries)} changelog entr(ies) across {len(results)} project(s)")

	snapshot = orchestrator.snapshot_from_results(results)
	if should_save_state(args):
		if history.push(snapshot):
			saved_path = snapshots.save_history(history, args.state_file)
			log_step(f"Saved snapshot {snapshot.hash} to {saved_path}")
		else:
			log_step(f"Snapshot {snapshot.hash} unchanged; history not extended")
	emit_changelog(args, entries)


#============================================
def run_check_message_command(args: argparse.Namespace) -> None:
	"""
	Parse one message strictly; parse failures are fatal here.
	"""
	if args.message_file == "-":
		text = sys.stdin.read()
	else:
		with open(args.message_file, "r", encoding="utf-8") as handle:
			text = handle.read()
	parsed = message_mod.parse_message(text)
	sys.stdout.write(yaml.safe_dump(parsed.to_dict(), sort_keys=False, allow_unicode=True))


#============================================
def print_error_chain(error: BaseException) -> None:
	"""
	Print an error and every chained cause to stderr.
	"""
	ERROR_CONSOLE.print(f"error: {error}", style="bold red", markup=False, highlight=False)
	cause = error.__cause__ or error.__context__
	seen = {id(error)}
	while cause is not None and id(cause) not in seen:
		seen.add(id(cause))
		ERROR_CONSOLE.print(f"  caused by: {cause}", style="red", markup=False, highlight=False)
		cause = cause.__cause__ or cause.__context__


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Entry point of the resume command.
	"""
	parser = build_parser()
	args = parser.parse_args(argv)
	try:
		args.handler(args)
	except (errors.ResumeError, OSError) as error:
		print_error_chain(error)
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())
