"""Diffing of two successive documentation generations."""

from __future__ import annotations

from collections.abc import Sequence

from cmdprobe.models.documentation import (
    ChangeSummary,
    CommandModification,
    DocumentationPackage,
    SignatureChange,
    TypeChange,
)
from cmdprobe.models.operation import Operation, Signature

_TRACKED_FIELDS = (
    ("description", "description"),
    ("risk_level", "risk level"),
    ("category", "category"),
    ("subcategory", "subcategory"),
    ("display_name", "display name"),
)


def diff_signatures(command_id: str, before: Signature | None, after: Signature | None) -> SignatureChange:
    """Parameter-level differences between two signatures of one command."""
    old = {p.name: p for p in before.parameters} if before else {}
    new = {p.name: p for p in after.parameters} if after else {}
    return SignatureChange(
        command_id=command_id,
        added=tuple(name for name in new if name not in old),
        removed=tuple(name for name in old if name not in new),
        type_changed=tuple(
            TypeChange(name=name, before=old[name].type, after=new[name].type)
            for name in new
            if name in old and old[name].type != new[name].type
        ),
    )


def compute_change_summary(
    previous: DocumentationPackage | Sequence[Operation], operations: Sequence[Operation]
) -> ChangeSummary:
    """Compare the operations of ``previous`` against ``operations``.

    Ids only present now are added, ids only present before are removed,
    and shared ids are compared field by field and signature by signature.
    """
    before_ops = previous.operations if isinstance(previous, DocumentationPackage) else previous
    before = {op.id: op for op in before_ops}
    after = {op.id: op for op in operations}

    modified: list[CommandModification] = []
    signature_changes: list[SignatureChange] = []
    for command_id in sorted(before.keys() & after.keys()):
        old, new = before[command_id], after[command_id]
        changes = [
            f"{label} changed"
            for attr, label in _TRACKED_FIELDS
            if getattr(old, attr) != getattr(new, attr)
        ]
        signature_change = diff_signatures(command_id, old.signature, new.signature)
        if not signature_change.is_empty:
            signature_changes.append(signature_change)
            changes.append("signature changed")
        elif (old.signature is None) != (new.signature is None):
            changes.append("signature added" if new.signature else "signature removed")
        if changes:
            modified.append(CommandModification(command_id=command_id, changes=tuple(changes)))

    return ChangeSummary(
        commands_added=tuple(sorted(after.keys() - before.keys())),
        commands_removed=tuple(sorted(before.keys() - after.keys())),
        commands_modified=tuple(modified),
        signature_changes=tuple(signature_changes),
    )


def format_change_summary(summary: ChangeSummary | None) -> str:
    """Human-readable markdown rendering of a change summary."""
    if summary is None or summary.is_empty:
        return "No changes detected."

    lines: list[str] = []
    if summary.commands_added:
        lines.append(f"### Added ({len(summary.commands_added)})")
        lines += [f"- `{c}`" for c in summary.commands_added]
        lines.append("")
    if summary.commands_removed:
        lines.append(f"### Removed ({len(summary.commands_removed)})")
        lines += [f"- `{c}`" for c in summary.commands_removed]
        lines.append("")
    if summary.commands_modified:
        lines.append(f"### Modified ({len(summary.commands_modified)})")
        lines += [f"- `{m.command_id}`: {', '.join(m.changes)}" for m in summary.commands_modified]
        lines.append("")
    if summary.signature_changes:
        lines.append("### Signature Changes")
        for change in summary.signature_changes:
            parts = []
            if change.added:
                parts.append("added " + ", ".join(change.added))
            if change.removed:
                parts.append("removed " + ", ".join(change.removed))
            parts += [f"{t.name}: {t.before} → {t.after}" for t in change.type_changed]
            lines.append(f"- `{change.command_id}`: {'; '.join(parts)}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"
