"""Tests for guarded execution from the command line."""

import json


class TestExecute:
    """Test the execute command."""

    def test_success(self, discovered) -> None:
        """A successful call is recorded and analyzed."""
        result = discovered("--json", "execute", "clicmds.greet", "--args", '{"name": "Ada"}', "--notes", "smoke")
        assert result.exit_code == 0, result.output

        document = json.loads(result.stdout)
        outcome = document["result"]["outcome"]
        assert outcome["success"] is True
        assert outcome["result"] == "Hello, Ada."
        assert document["result"]["notes"] == "smoke"
        assert document["analysis"]["commandId"] == "clicmds.greet"
        assert "success" in document["analysis"]["tags"]

    def test_failure(self, discovered) -> None:
        """A raising callee exits non-zero with the error kind."""
        result = discovered("--json", "execute", "clicmds.explode")
        assert result.exit_code == 1

        error = json.loads(result.stdout)["result"]["outcome"]["error"]
        assert error["kind"] == "RuntimeError"
        assert error["message"] == "boom"

    def test_validation_refusal(self, discovered) -> None:
        """Invalid arguments are refused before the call."""
        result = discovered("--json", "execute", "clicmds.greet", "--args", "{}")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["result"]["outcome"]["error"]["kind"] == "ValidationFailed"

    def test_skip_validation(self, discovered) -> None:
        """--no-validate passes arguments straight to the callee."""
        result = discovered("--json", "execute", "clicmds.greet", "--no-validate", "--args", "{}")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["result"]["outcome"]["error"]["kind"] == "TypeError"

    def test_destructive_needs_confirmation(self, discovered) -> None:
        """Destructive commands are refused without --confirm in machine output."""
        result = discovered("--json", "execute", "clicmds.delete_note", "--args", '{"path": "n.txt"}')
        assert result.exit_code == 1
        assert json.loads(result.stdout)["result"]["outcome"]["error"]["kind"] == "ConfirmationRequired"

    def test_destructive_confirmed(self, discovered) -> None:
        """--confirm lets a destructive command run."""
        result = discovered(
            "--json", "execute", "clicmds.delete_note", "--args", '{"path": "n.txt"}', "--confirm"
        )
        assert result.exit_code == 0
        analysis = json.loads(result.stdout)["analysis"]
        assert "Command marked as destructive" in analysis["risk"]["factors"]

    def test_interactive_prompt_declined(self, discovered) -> None:
        """Declining the prompt refuses the call."""
        result = discovered("execute", "clicmds.delete_note", "--args", '{"path": "n.txt"}', input="n\n")
        assert result.exit_code == 1
        assert "ConfirmationRequired" in result.stdout

    def test_interactive_prompt_accepted(self, discovered) -> None:
        """Accepting the prompt runs the command."""
        result = discovered("execute", "clicmds.delete_note", "--args", '{"path": "n.txt"}', input="y\n")
        assert result.exit_code == 0
        assert "succeeded" in result.stdout

    def test_workspace_snapshot(self, discovered, tmp_path) -> None:
        """A workspace enables snapshots, discarded after success."""
        workspace = tmp_path / "workspace"
        workspace.mkdir()
        (workspace / "note.txt").write_text("keep", encoding="utf-8")

        result = discovered(
            "--json", "execute", "clicmds.greet", "--args", '{"name": "Ada"}', "-w", str(workspace), "--snapshot"
        )
        assert result.exit_code == 0, result.output
        outcome = json.loads(result.stdout)["result"]["outcome"]
        assert outcome["snapshotId"] is None
        assert outcome["sideEffects"] == []
        assert (workspace / "note.txt").read_text(encoding="utf-8") == "keep"

    def test_snapshot_without_workspace(self, discovered) -> None:
        """Requesting a snapshot without a workspace only warns."""
        result = discovered("--json", "execute", "clicmds.greet", "--args", '{"name": "Ada"}', "--snapshot")
        assert result.exit_code == 0
        warnings = json.loads(result.stdout)["result"]["outcome"]["warnings"]
        assert warnings == ["Snapshot requested but no snapshot provider is configured"]
