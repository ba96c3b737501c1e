"""Tests for change tracking between documentation generations."""

from cmdprobe.docs.changes import compute_change_summary, diff_signatures, format_change_summary
from cmdprobe.models.operation import Operation, Parameter, RiskLevel, Signature


def _op(command_id: str, *params: Parameter, **kwargs) -> Operation:
    signature = Signature(parameters=params) if params else None
    return Operation(id=command_id, category=command_id.split(".")[0], signature=signature, **kwargs)


class TestComputeChangeSummary:
    """Test added, removed and modified detection."""

    def test_identical_generations(self) -> None:
        """No differences yield an empty summary."""
        ops = [_op("a.one"), _op("a.two")]
        summary = compute_change_summary(ops, ops)
        assert summary.is_empty
        assert format_change_summary(summary) == "No changes detected."

    def test_added_and_removed(self) -> None:
        """Ids on one side only are added or removed."""
        summary = compute_change_summary([_op("a.one"), _op("a.gone")], [_op("a.one"), _op("a.new")])

        assert summary.commands_added == ("a.new",)
        assert summary.commands_removed == ("a.gone",)
        assert summary.commands_modified == ()

    def test_removed_entirely(self) -> None:
        """An empty current generation removes every command."""
        summary = compute_change_summary([_op("a.one"), _op("b.two")], [])
        assert summary.commands_removed == ("a.one", "b.two")
        assert summary.commands_added == ()

    def test_field_changes(self) -> None:
        """Tracked fields are reported by label."""
        before = [_op("files.remove", description="Remove")]
        after = [_op("files.remove", description="Remove a file", risk_level=RiskLevel.DESTRUCTIVE)]
        summary = compute_change_summary(before, after)

        (modification,) = summary.commands_modified
        assert modification.command_id == "files.remove"
        assert modification.changes == ("description changed", "risk level changed")

    def test_signature_changes(self) -> None:
        """Parameter additions, removals and retypes are itemized."""
        before = [_op("files.read", Parameter(name="path", type="string"), Parameter(name="mode"))]
        after = [
            _op("files.read", Parameter(name="path", type="string|array"), Parameter(name="encoding"))
        ]
        summary = compute_change_summary(before, after)

        (change,) = summary.signature_changes
        assert change.added == ("encoding",)
        assert change.removed == ("mode",)
        assert [(t.name, t.before, t.after) for t in change.type_changed] == [
            ("path", "string", "string|array")
        ]
        assert summary.commands_modified[0].changes == ("signature changed",)

    def test_signature_added(self) -> None:
        """A first empty signature counts as a modification."""
        before = [_op("a.one")]
        after = [Operation(id="a.one", category="a", signature=Signature())]
        summary = compute_change_summary(before, after)
        assert summary.commands_modified[0].changes == ("signature added",)
        assert summary.signature_changes == ()


class TestDiffSignatures:
    """Test the parameter-level diff."""

    def test_none_to_signature(self) -> None:
        """Every parameter of a new signature is added."""
        change = diff_signatures("a.one", None, Signature(parameters=(Parameter(name="x"),)))
        assert change.added == ("x",)
        assert not change.is_empty


class TestFormatChangeSummary:
    """Test the markdown rendering."""

    def test_sections(self) -> None:
        """Each non-empty category gets its own heading."""
        before = [_op("a.one", Parameter(name="x")), _op("a.gone")]
        after = [_op("a.one", Parameter(name="y")), _op("a.new")]
        text = format_change_summary(compute_change_summary(before, after))

        assert "### Added (1)" in text
        assert "- `a.new`" in text
        assert "### Removed (1)" in text
        assert "### Modified (1)" in text
        assert "### Signature Changes" in text
        assert "- `a.one`: added y; removed x" in text

    def test_none(self) -> None:
        """A missing summary renders as no changes."""
        assert format_change_summary(None) == "No changes detected."
