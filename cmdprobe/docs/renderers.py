"""Format renderers: pure projections of a :class:`DocumentationPackage`.

Every renderer takes the package and export settings and returns a mapping
of relative file name to file content. Renderers never modify the package,
so the exporter can run them concurrently.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from itertools import groupby
from typing import Any

import yaml
from jinja2.sandbox import SandboxedEnvironment

from cmdprobe.core.config.models import ExportSettings
from cmdprobe.core.exceptions import GenerationError
from cmdprobe.docs.changes import format_change_summary
from cmdprobe.docs.quality import describe_score
from cmdprobe.docs.typedefs import render_python, render_typescript
from cmdprobe.models.documentation import DocumentationPackage
from cmdprobe.models.operation import Operation

Renderer = Callable[[DocumentationPackage, ExportSettings], dict[str, str]]

RISK_BADGES = {"safe": "🟢 safe", "moderate": "🟡 moderate", "destructive": "🔴 destructive"}


def _json(document: Any) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False, default=str) + "\n"


def _header(package: DocumentationPackage) -> str:
    meta = package.metadata
    lines = [f"Generated by cmdprobe {meta.generator_version} at {meta.generated_at.isoformat()}"]
    if meta.author:
        lines.append(f"Author: {meta.author}")
    if meta.organization:
        lines.append(f"Organization: {meta.organization}")
    return "\n".join(lines)


def _by_category(package: DocumentationPackage) -> list[tuple[str, list[Operation]]]:
    ops = sorted(package.operations, key=lambda op: (op.category, op.id))
    return [(category, list(items)) for category, items in groupby(ops, key=lambda op: op.category)]


def _cell(value: Any) -> str:
    text = "" if value is None else str(value)
    return text.replace("|", "\\|").replace("\n", " ")


# ============================================================================
# Markdown
# ============================================================================


def _readme(package: DocumentationPackage) -> str:
    meta = package.metadata
    stats = package.statistics
    quality = package.quality
    lines = [
        "# Command Documentation",
        "",
        f"_{_header(package).replace(chr(10), ' · ')}_",
        "",
        "## Overview",
        "",
        f"- **Commands:** {meta.command_count}",
        f"- **Recorded executions:** {meta.test_result_count}",
        f"- **Schema version:** {meta.version}",
        f"- **Quality score:** {quality.overall_score}/100 ({describe_score(quality.overall_score)})",
        "",
        "## Commands by Category",
        "",
        "| Category | Commands |",
        "|----------|----------|",
    ]
    lines += [f"| `{c}` | {n} |" for c, n in sorted(stats.by_category.items())]
    lines += ["", "## Commands by Risk Level", "", "| Risk | Commands |", "|------|----------|"]
    lines += [f"| {RISK_BADGES.get(r, r)} | {n} |" for r, n in stats.by_risk_level.items()]
    lines += [
        "",
        "## Documentation Coverage",
        "",
        f"- Descriptions: {quality.coverage.descriptions}%",
        f"- Signatures: {quality.coverage.signatures}%",
        f"- Examples: {quality.coverage.examples}%",
        "",
    ]
    if quality.recommendations:
        lines += ["### Recommendations", ""]
        lines += [f"- {r}" for r in quality.recommendations]
        lines.append("")
    if meta.change_summary is not None:
        lines += ["## Changes Since Last Generation", "", format_change_summary(meta.change_summary)]
    lines += [
        "## Files",
        "",
        "- [COMMAND_REFERENCE.md](COMMAND_REFERENCE.md) - every command with its parameters",
        "- [API.md](API.md) - remote invocation protocol",
    ]
    if package.test_results:
        lines.append("- [EXAMPLES.md](EXAMPLES.md) - recorded executions")
    return "\n".join(lines) + "\n"


def _command_reference(package: DocumentationPackage) -> str:
    lines = ["# Command Reference", ""]
    for category, operations in _by_category(package):
        lines += [f"## {category}", ""]
        for op in operations:
            lines += [f"### {op.display_name or op.id}", "", f"`{op.id}`", ""]
            if op.description:
                lines += [op.description, ""]
            lines.append(f"- **Risk:** {RISK_BADGES.get(op.risk_level.value, op.risk_level.value)}")
            lines.append(f"- **Subcategory:** {op.subcategory}")
            if op.context_requirements:
                lines.append(f"- **Requires:** {', '.join(op.context_requirements)}")

            signature = op.signature
            if signature is None:
                lines += ["", "_Signature not researched yet._", ""]
                continue
            lines.append(f"- **Confidence:** {signature.confidence.value}")
            if signature.is_async:
                lines.append("- **Async:** yes")
            if signature.return_type:
                lines.append(f"- **Returns:** `{signature.return_type}`")
            lines.append("")
            if signature.parameters:
                lines += [
                    "| Parameter | Type | Required | Default | Source | Description |",
                    "|-----------|------|----------|---------|--------|-------------|",
                ]
                for p in signature.parameters:
                    default = "" if p.default_value is None else f"`{json.dumps(p.default_value, default=str)}`"
                    lines.append(
                        f"| `{p.name}` | `{_cell(p.type)}` | {'yes' if p.required else 'no'} "
                        f"| {_cell(default)} | {p.source.value} | {_cell(p.description)} |"
                    )
                lines.append("")
            else:
                lines += ["_No parameters._", ""]
    return "\n".join(lines)


def _api_guide(package: DocumentationPackage) -> str:
    api = package.api_description
    info = api.get("info", {})
    lines = [f"# {info.get('title', 'API')}", "", info.get("description", ""), ""]
    lines += ["## Servers", ""]
    lines += [f"- `{s['url']}` - {s.get('description', '')}" for s in api.get("servers", [])]
    lines += ["", "## Endpoints", ""]
    for path, methods in api.get("paths", {}).items():
        for method, details in methods.items():
            lines += [f"### `{method.upper()} {path}`", "", details.get("description", ""), ""]
            body = details.get("requestBody", {}).get("content", {}).get("application/json", {})
            if "example" in body:
                lines += ["Request:", "", "```json", _json(body["example"]).rstrip(), "```", ""]
            lines += ["| Status | Description |", "|--------|-------------|"]
            lines += [f"| {code} | {r.get('description', '')} |" for code, r in details.get("responses", {}).items()]
            lines.append("")
    lines += [
        "## Message Protocol",
        "",
        "Messages are JSON text frames of the form "
        "`{type: execute|result|error|ping|pong, id, timestamp, payload}`. "
        "An `execute` payload is an `ExecutionRequest`; `result` and `error` payloads mirror "
        "`ExecutionResponse`.",
        "",
        "## Schemas",
        "",
    ]
    lines += [f"- `{name}`" for name in api.get("components", {}).get("schemas", {})]
    return "\n".join(lines) + "\n"


def _examples(package: DocumentationPackage, settings: ExportSettings) -> str:
    successful = [r for r in package.test_results if r.outcome.success][: settings.max_examples]
    lines = ["# Examples", "", f"{len(successful)} recorded successful execution(s).", ""]
    for result in successful:
        operation = package.get_operation(result.command_id)
        title = operation.display_name if operation and operation.display_name else result.command_id
        lines += [
            f"## {title}",
            "",
            f"`{result.command_id}` · {result.outcome.duration_ms:.1f}ms · {result.timestamp.isoformat()}",
            "",
            "Parameters:",
            "",
            "```json",
            _json(result.parameters).rstrip(),
            "```",
            "",
        ]
        if result.outcome.result is not None:
            lines += ["Result:", "", "```json", _json(result.outcome.result).rstrip(), "```", ""]
        if result.outcome.side_effects:
            lines += ["Side effects:", ""]
            lines += [f"- {e.type.value}: {e.description}" for e in result.outcome.side_effects]
            lines.append("")
        if result.notes:
            lines += [f"> {result.notes}", ""]
    return "\n".join(lines)


def render_markdown(package: DocumentationPackage, settings: ExportSettings) -> dict[str, str]:
    files = {
        "README.md": _readme(package),
        "COMMAND_REFERENCE.md": _command_reference(package),
        "API.md": _api_guide(package),
    }
    if package.test_results and settings.include_examples:
        files["EXAMPLES.md"] = _examples(package, settings)
    return files


# ============================================================================
# HTML
# ============================================================================

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Command Documentation</title>
  <link rel="stylesheet" href="styles.css">
</head>
<body>
  <header>
    <h1>Command Documentation</h1>
    <p class="meta">{{ header }}</p>
    <p class="score score-{{ score_class }}">Quality score: {{ quality.overall_score }}/100</p>
  </header>
  <main>
  {% for category, operations in categories %}
    <section>
      <h2>{{ category }}</h2>
      {% for op in operations %}
      <article class="command risk-{{ op.risk_level.value }}">
        <h3>{{ op.display_name or op.id }} <code>{{ op.id }}</code></h3>
        {% if op.description %}<p>{{ op.description }}</p>{% endif %}
        <p class="risk">Risk: {{ op.risk_level.value }}</p>
        {% if op.signature and op.signature.parameters %}
        <table>
          <thead><tr><th>Parameter</th><th>Type</th><th>Required</th><th>Description</th></tr></thead>
          <tbody>
          {% for p in op.signature.parameters %}
            <tr><td><code>{{ p.name }}</code></td><td>{{ p.type }}</td><td>{{ "yes" if p.required else "no" }}</td><td>{{ p.description or "" }}</td></tr>
          {% endfor %}
          </tbody>
        </table>
        {% elif not op.signature %}
        <p class="missing">Signature not researched yet.</p>
        {% endif %}
      </article>
      {% endfor %}
    </section>
  {% endfor %}
  </main>
</body>
</html>
"""

STYLESHEET = """body { font-family: system-ui, sans-serif; margin: 0 auto; max-width: 960px; padding: 1rem; }
header { border-bottom: 1px solid #ddd; margin-bottom: 1rem; }
.meta { color: #666; }
.score-excellent { color: #1a7f37; }
.score-good { color: #2f81f7; }
.score-fair { color: #bf8700; }
.score-poor { color: #cf222e; }
article.command { border-left: 4px solid #ccc; margin: 1rem 0; padding-left: 1rem; }
article.risk-safe { border-color: #1a7f37; }
article.risk-moderate { border-color: #bf8700; }
article.risk-destructive { border-color: #cf222e; }
table { border-collapse: collapse; width: 100%; }
th, td { border: 1px solid #ddd; padding: 0.25rem 0.5rem; text-align: left; }
.missing { color: #888; font-style: italic; }
"""


def _score_class(score: int) -> str:
    if score >= 90:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 50:
        return "fair"
    return "poor"


def render_html(package: DocumentationPackage, settings: ExportSettings) -> dict[str, str]:
    env = SandboxedEnvironment(autoescape=True, keep_trailing_newline=True)
    page = env.from_string(HTML_TEMPLATE).render(
        header=_header(package),
        quality=package.quality,
        score_class=_score_class(package.quality.overall_score),
        categories=_by_category(package),
    )
    return {"index.html": page, "styles.css": STYLESHEET}


# ============================================================================
# Machine-readable formats
# ============================================================================


def render_json(package: DocumentationPackage, settings: ExportSettings) -> dict[str, str]:
    commands = {
        "metadata": package.metadata.to_document(),
        "statistics": package.statistics.to_document(),
        "commands": [op.to_document() for op in package.operations],
    }
    if settings.include_test_results:
        commands["testResults"] = [r.to_document() for r in package.test_results]
    return {"commands.json": _json(commands), "schema.json": _json(package.schema_document)}


def render_typescript_file(package: DocumentationPackage, settings: ExportSettings) -> dict[str, str]:
    return {"types.d.ts": render_typescript(package.type_definitions, header=_header(package))}


def render_python_file(package: DocumentationPackage, settings: ExportSettings) -> dict[str, str]:
    return {"types.py": render_python(package.type_definitions, header=_header(package))}


def render_openapi(package: DocumentationPackage, settings: ExportSettings) -> dict[str, str]:
    return {"openapi.json": _json(package.api_description)}


def render_openapi_yaml(package: DocumentationPackage, settings: ExportSettings) -> dict[str, str]:
    document = json.loads(json.dumps(package.api_description, default=str))
    return {"openapi.yaml": yaml.safe_dump(document, sort_keys=False, allow_unicode=True)}


RENDERERS: dict[str, Renderer] = {
    "markdown": render_markdown,
    "html": render_html,
    "json": render_json,
    "typescript": render_typescript_file,
    "python": render_python_file,
    "openapi": render_openapi,
    "yaml": render_openapi_yaml,
}


def render(format: str, package: DocumentationPackage, settings: ExportSettings | None = None) -> dict[str, str]:
    """Render ``package`` in one format.

    Raises
    ------
    GenerationError
        If ``format`` has no renderer
    """
    renderer = RENDERERS.get(format)
    if renderer is None:
        raise GenerationError(format, f"unknown format; expected one of {', '.join(RENDERERS)}")
    return renderer(package, settings or ExportSettings())
