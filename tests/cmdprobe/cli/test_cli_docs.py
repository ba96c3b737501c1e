"""Tests for the documentation commands."""

import json


class TestDocsGenerate:
    """Test documentation generation."""

    def test_generate_formats(self, discovered, tmp_path) -> None:
        """Requested formats are written to the output directory."""
        output = tmp_path / "site"
        result = discovered("--json", "docs", "generate", "-f", "markdown", "-f", "html", "-o", str(output))
        assert result.exit_code == 0, result.output

        document = json.loads(result.stdout)
        assert document["success"] is True
        assert {f["format"] for f in document["files"]} == {"markdown", "html"}
        assert (output / "README.md").exists()
        assert (output / "index.html").exists()
        assert (output / "package.json").exists()

    def test_examples_from_results(self, discovered, tmp_path) -> None:
        """Recorded executions become examples."""
        discovered("--json", "execute", "clicmds.greet", "--args", '{"name": "Ada"}')
        output = tmp_path / "site"
        discovered("docs", "generate", "-f", "markdown", "-o", str(output))

        assert "Hello, Ada." in (output / "EXAMPLES.md").read_text(encoding="utf-8")

    def test_without_results(self, discovered, tmp_path) -> None:
        """--without-results leaves the examples out."""
        discovered("--json", "execute", "clicmds.greet", "--args", '{"name": "Ada"}')
        output = tmp_path / "site"
        discovered("docs", "generate", "-f", "markdown", "-o", str(output), "--without-results")

        assert not (output / "EXAMPLES.md").exists()

    def test_second_generation_reports_changes(self, discovered, tmp_path) -> None:
        """A second run compares against the saved package."""
        output = tmp_path / "site"
        discovered("docs", "generate", "-f", "json", "-o", str(output))
        result = discovered("docs", "generate", "-f", "json", "-o", str(output))

        assert result.exit_code == 0
        assert "No changes detected." in result.stdout

    def test_unknown_format_only(self, discovered, tmp_path) -> None:
        """Nothing to write is a failure."""
        result = discovered("docs", "generate", "-f", "pdf", "-o", str(tmp_path / "site"))
        assert result.exit_code == 1
        assert "pdf" in result.stdout


class TestDocsQuality:
    """Test the quality report."""

    def test_quality_json(self, discovered) -> None:
        """The report scores the discovered commands."""
        report = json.loads(discovered("--json", "docs", "quality").stdout)
        assert 0 <= report["overallScore"] <= 100
        assert report["coverage"]["signatures"] == 100.0

    def test_quality_pretty(self, discovered) -> None:
        """Pretty output includes the score label."""
        result = discovered("docs", "quality")
        assert result.exit_code == 0
        assert "documentation quality" in result.stdout
