"""Markdown summary report for pull requests.

The report is a heading followed by a fixed sequence of collapsible
``<details>`` blocks: Overview (links to the profile images in the gist),
Judgement, Current and Reference. Sections whose artifact does not exist
in the current mode are left out.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from prbench.export import export_judgement_markdown, export_markdown

if TYPE_CHECKING:
    from prbench.pipeline import RunArtifacts

DEFAULT_HEADING = "### Benchmark Results"


@dataclass
class Section:
    """One collapsible block: either a pre-rendered table or image links."""

    title: str
    table: str | None = None
    images: list[str] = field(default_factory=list)


def image_links(base_url: str, files: Sequence[str]) -> list[str]:
    """Resolve gist file names to raw URLs under *base_url*."""
    base = base_url.rstrip("/")
    return [f"{base}/raw/{name}" for name in files]


def _render_section(section: Section) -> list[str]:
    lines = ["<details>", f"<summary>{section.title}</summary>"]
    if section.table is not None:
        lines.append("<br>")
        lines.append("")
        lines.append(section.table)
        lines.append("")
    for image in section.images:
        lines.append(image)
    lines.append("</details>")
    return lines


def render(sections: Sequence[Section], *, heading: str = DEFAULT_HEADING) -> str:
    """Render *sections* in order under *heading*.

    Consecutive table sections are separated by a ``<br>`` so they do not
    collapse into each other on GitHub.
    """
    lines = [heading]
    previous: Section | None = None
    for section in sections:
        if previous is not None and previous.table is not None and section.table is not None:
            lines.append("<br>")
        lines.extend(_render_section(section))
        previous = section
    return "\n".join(lines) + "\n"


def simple_report_sections(
    artifacts: RunArtifacts,
    gist_url: str | None,
    images: Sequence[str],
) -> list[Section]:
    """Build the fixed Overview / Judgement / Current / Reference sequence."""
    sections: list[Section] = []
    if gist_url and images:
        sections.append(Section("Overview", images=image_links(gist_url, images)))
    if artifacts.judgement is not None:
        sections.append(Section("Judgement", table=export_judgement_markdown(artifacts.judgement)))
    if artifacts.reference is not None:
        sections.append(Section("Current", table=export_markdown(artifacts.current)))
        sections.append(Section("Reference", table=export_markdown(artifacts.reference)))
    return sections
