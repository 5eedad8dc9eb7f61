"""Tests for the resume command line: both run modes and check-message."""

# Standard Library
import io

# PIP3 modules
import yaml

# local repo modules
from resumelib import cli
from resumelib import snapshots


#============================================
def write_config(tmp_path, origin_path: str) -> str:
	config_path = tmp_path / "resume.yaml"
	config_path.write_text(
		yaml.safe_dump({
			"default_branch": "main",
			"cache_dir": str(tmp_path / "cache"),
			"projects": [
				{"name": "work", "origin": origin_path, "branches": ["main", "feature"]},
			],
		}),
		encoding="utf-8",
	)
	return str(config_path)


#============================================
def test_repository_mode_prints_grouped_yaml(merged_feature, capsys) -> None:
	"""
	The default grouping is by commit type.
	"""
	status = cli.main(["repository", merged_feature["graph"].path, "-b", "main"])
	assert status == 0
	data = yaml.safe_load(capsys.readouterr().out)
	assert sorted(data) == ["feat", "fix"]
	assert sorted(item["summary"] for item in data["feat"]) == ["add login", "base layout"]
	assert data["fix"][0]["branch"] == "main"


#============================================
def test_repository_mode_text_format_and_output_file(merged_feature, tmp_path) -> None:
	output_path = tmp_path / "out" / "changelog.md"
	status = cli.main([
		"r",
		merged_feature["graph"].path,
		"--branch",
		"main",
		"--format",
		"text",
		"-g",
		"scope",
		"-g",
		"type",
		"-o",
		str(output_path),
	])
	assert status == 0
	text = output_path.read_text(encoding="utf-8")
	assert "## auth" in text
	assert "### ✨ New Features" in text
	assert " - **auth**: add login" in text


#============================================
def test_repository_mode_missing_branch_fails(merged_feature, capsys) -> None:
	status = cli.main(["repository", merged_feature["graph"].path, "-b", "nope"])
	assert status == 1
	assert "nope" in capsys.readouterr().err


#============================================
def test_unknown_group_field_fails(merged_feature, capsys) -> None:
	status = cli.main(["repository", merged_feature["graph"].path, "-g", "author"])
	assert status == 1
	assert "author" in capsys.readouterr().err


#============================================
def test_projects_mode_saves_state_once(merged_feature, tmp_path, capsys) -> None:
	"""
	A second run with no new commits leaves the history unchanged.
	"""
	config_path = write_config(tmp_path, merged_feature["graph"].path)
	state_path = tmp_path / "state.yaml"
	args = ["projects", config_path, "--state", str(state_path), "--no-progress", "--flat"]

	assert cli.main(args) == 0
	first_output = yaml.safe_load(capsys.readouterr().out)
	assert len(first_output) == 3
	history = snapshots.load_history(str(state_path))
	assert len(history) == 1
	assert history.last().get(merged_feature["graph"].path)["main"] == merged_feature["merge"].hexsha

	assert cli.main(args) == 0
	assert yaml.safe_load(capsys.readouterr().out) == []
	assert len(snapshots.load_history(str(state_path))) == 1


#============================================
def test_projects_mode_replays_historical_snapshot(merged_feature, tmp_path, capsys) -> None:
	graph = merged_feature["graph"]
	config_path = write_config(tmp_path, graph.path)
	state_path = str(tmp_path / "state.yaml")
	base_args = ["projects", config_path, "--state", state_path, "--no-progress", "--flat"]
	assert cli.main(base_args) == 0

	newer = graph.commit("feat: second release", [merged_feature["merge"]])
	graph.set_branch("main", newer)
	assert cli.main(base_args) == 0
	capsys.readouterr()
	assert len(snapshots.load_history(state_path)) == 2

	# replay from the older snapshot without saving
	assert cli.main(base_args + ["--snapshot", "1"]) == 0
	replay = yaml.safe_load(capsys.readouterr().out)
	assert [item["summary"] for item in replay] == ["second release"]
	assert len(snapshots.load_history(state_path)) == 2


#============================================
def test_projects_mode_bad_snapshot_reference(merged_feature, tmp_path, capsys) -> None:
	config_path = write_config(tmp_path, merged_feature["graph"].path)
	status = cli.main([
		"projects",
		config_path,
		"--state",
		str(tmp_path / "state.yaml"),
		"--no-progress",
		"--snapshot",
		"3",
	])
	assert status == 1
	assert "No snapshot at index 3" in capsys.readouterr().err
	# the failure happens before any repository is cloned
	assert not (tmp_path / "cache").exists()


#============================================
def test_projects_mode_no_state_skips_history(merged_feature, tmp_path, capsys) -> None:
	config_path = write_config(tmp_path, merged_feature["graph"].path)
	state_path = tmp_path / "state.yaml"
	args = ["projects", config_path, "--state", str(state_path), "--no-progress", "--no-state"]
	assert cli.main(args) == 0
	assert not state_path.exists()


#============================================
def test_projects_mode_failure_leaves_state_untouched(merged_feature, tmp_path, capsys) -> None:
	"""
	A run that fails on a missing branch writes no state, old or new.
	"""
	origin_path = merged_feature["graph"].path
	config_path = write_config(tmp_path, origin_path)
	state_path = tmp_path / "state.yaml"
	args = ["projects", config_path, "--state", str(state_path), "--no-progress"]
	assert cli.main(args) == 0
	saved_bytes = state_path.read_bytes()

	newer = merged_feature["graph"].commit("feat: not yet recorded", [merged_feature["merge"]])
	merged_feature["graph"].set_branch("main", newer)
	broken_config = tmp_path / "broken.yaml"
	broken_config.write_text(
		yaml.safe_dump({
			"default_branch": "main",
			"cache_dir": str(tmp_path / "cache"),
			"projects": [
				{"name": "work", "origin": origin_path, "branches": ["main", "gone"]},
			],
		}),
		encoding="utf-8",
	)
	failing_args = ["projects", str(broken_config), "--state", str(state_path), "--no-progress"]
	assert cli.main(failing_args) == 1
	assert "gone" in capsys.readouterr().err
	assert state_path.read_bytes() == saved_bytes

	fresh_state = tmp_path / "fresh.yaml"
	assert cli.main(["projects", str(broken_config), "--state", str(fresh_state), "--no-progress"]) == 1
	assert not fresh_state.exists()


#============================================
def test_snapshot_with_no_state_is_rejected(merged_feature, tmp_path, capsys) -> None:
	config_path = write_config(tmp_path, merged_feature["graph"].path)
	status = cli.main(["projects", config_path, "--no-state", "--snapshot", "0", "--no-progress"])
	assert status == 1
	assert "--no-state" in capsys.readouterr().err
	assert not (tmp_path / "cache").exists()


#============================================
def test_missing_config_prints_cause(tmp_path, capsys) -> None:
	status = cli.main(["projects", str(tmp_path / "absent.yaml"), "--no-progress"])
	assert status == 1
	assert "Configuration file not found" in capsys.readouterr().err


#============================================
def test_check_message_accepts_and_rejects(monkeypatch, tmp_path, capsys) -> None:
	monkeypatch.setattr("sys.stdin", io.StringIO("feat(api)!: new endpoint\n\nteam: core\n"))
	assert cli.main(["check-message"]) == 0
	parsed = yaml.safe_load(capsys.readouterr().out)
	assert parsed["scope"] == "api"
	assert parsed["breaking"] is True

	message_path = tmp_path / "COMMIT_EDITMSG"
	message_path.write_text("updated stuff\n", encoding="utf-8")
	assert cli.main(["check-message", str(message_path)]) == 1
	assert "Headline does not match" in capsys.readouterr().err


#============================================
def test_print_error_chain_lists_causes(capsys) -> None:
	try:
		try:
			raise OSError("disk full")
		except OSError as inner:
			raise cli.errors.ConfigurationError("cannot save state") from inner
	except cli.errors.ConfigurationError as error:
		cli.print_error_chain(error)
	err = capsys.readouterr().err
	assert "error: cannot save state" in err
	assert "caused by: disk full" in err
