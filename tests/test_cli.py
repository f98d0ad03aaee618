"""Tests for the cratedl command line: argument parsing and exit codes."""

from unittest.mock import patch

import pytest

from args import parse_args
from constants import Constants, ExitCodes
from acquire.models import AcquisitionOutcome, FailureKind, OutcomeKind
from acquire.orchestrator import RunSummary
from registry.index import IndexUpdateError
import cratedl


def test_parse_specs_and_flags():
    ns = parse_args(["serde@1.0", "rand", "-x", "--allow-yanked", "--no-cache", "--no-index-update"])
    assert [str(s) for s in ns.specs] == ["serde@1.0", "rand"]
    assert ns.EXTRACT is True
    assert ns.ALLOW_YANKED is True
    assert ns.USE_CACHE is False
    assert ns.UPDATE_INDEX is False
    assert ns.OUTPUT is None


def test_defaults():
    ns = parse_args(["serde"])
    assert ns.EXTRACT is False
    assert ns.USE_CACHE is True
    assert ns.UPDATE_INDEX is True
    assert ns.CACHE_DIRS == []
    assert ns.QUIET is False


def test_repeated_cache_dir():
    ns = parse_args(["serde", "--cache-dir", "/a", "--cache-dir", "/b"])
    assert ns.CACHE_DIRS == ["/a", "/b"]


def test_extract_aliases():
    assert parse_args(["serde", "-e"]).EXTRACT is True
    assert parse_args(["serde", "--extract"]).EXTRACT is True


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["bad name"],
        ["serde@"],
        ["serde@not-a-version"],
        ["a", "b", "--output", "out.crate"],
        ["serde", "--jobs", "0"],
    ],
)
def test_usage_errors_exit_2(argv, capsys):
    with pytest.raises(SystemExit) as excinfo:
        parse_args(argv)
    assert excinfo.value.code == 2
    assert "usage:" in capsys.readouterr().err


def test_invalid_spec_message_names_token(capsys):
    with pytest.raises(SystemExit):
        parse_args(["ser$de"])
    err = capsys.readouterr().err
    assert "'ser$de'" in err
    assert "'$'" in err


@pytest.fixture
def no_user_config(tmp_path, monkeypatch):
    monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


def ok_summary(*specs):
    return RunSummary([AcquisitionOutcome(s, OutcomeKind.WRITTEN, path=f"{s}.crate") for s in specs])


@pytest.mark.usefixtures("no_user_config")
@patch("cratedl.configure_logging")
class TestMain:
    """Exit status of the entry point."""

    @patch("cratedl.AcquisitionOrchestrator")
    def test_success(self, mock_orch, _mock_logging):
        mock_orch.return_value.run.return_value = ok_summary("serde")
        with pytest.raises(SystemExit) as excinfo:
            cratedl.main(["serde", "-q"])
        assert excinfo.value.code == ExitCodes.SUCCESS.value

    @patch("cratedl.AcquisitionOrchestrator")
    def test_any_failure_exits_1(self, mock_orch, _mock_logging, caplog):
        summary = ok_summary("serde")
        summary.outcomes.append(
            AcquisitionOutcome.failed("nothere", FailureKind.NOT_FOUND, "could not find crate in the index")
        )
        mock_orch.return_value.run.return_value = summary
        with pytest.raises(SystemExit) as excinfo:
            cratedl.main(["serde", "nothere", "-q"])
        assert excinfo.value.code == ExitCodes.ACQUISITION_FAILED.value
        assert "nothere: could not find crate in the index" in caplog.text
        assert "Failed to acquire 1 of 2 crate(s)" in caplog.text

    @patch("cratedl.AcquisitionOrchestrator")
    def test_index_update_failure(self, mock_orch, _mock_logging, caplog):
        mock_orch.return_value.run.side_effect = IndexUpdateError("fetching config.json returned HTTP 503")
        with pytest.raises(SystemExit) as excinfo:
            cratedl.main(["serde"])
        assert excinfo.value.code == ExitCodes.CONNECTION_ERROR.value
        assert "HTTP 503" in caplog.text

    @patch("cratedl.AcquisitionOrchestrator")
    def test_options_reach_orchestrator(self, mock_orch, _mock_logging, tmp_path):
        mock_orch.return_value.run.return_value = ok_summary("serde")
        index_dir = tmp_path / "idx"
        with pytest.raises(SystemExit):
            cratedl.main(["serde", "-x", "-o", "out", "--index-dir", str(index_dir), "-j", "3", "-q"])
        index, options, emit = mock_orch.call_args[0]
        assert index.path == str(index_dir)
        assert options.extract is True
        assert options.output == "out"
        assert options.max_workers == 3
        assert emit is None

    @patch("cratedl.AcquisitionOrchestrator")
    def test_progress_reporter_attached_unless_quiet(self, mock_orch, _mock_logging):
        mock_orch.return_value.run.return_value = ok_summary("serde")
        with pytest.raises(SystemExit):
            cratedl.main(["serde"])
        _, _, emit = mock_orch.call_args[0]
        assert callable(emit)
