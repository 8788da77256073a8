"""
ASCII terminal formatters for CLI reporting commands.

All formatters accept in-memory models and return plain multi-line strings
suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Layout of a set::

  === Recommendations for user u-1 ===
    Set:          rec-set-...
    Generated at: 2026-06-01T12:00:00+00:00

    Rank  Type      Source    Conf.  Title
    ---------------------------------------------------------------
       1  business  analysis   0.85  Favorable Break-Even Point
             You reach break-even at just 40.0% of your monthly ...

    Summary:
      Based on your business feasibility analysis, we recommend: ...
"""

from __future__ import annotations

import textwrap

from agri_advisor.models.recommendation import RecommendationSet

_TITLE_WIDTH = 40
_WRAP_WIDTH = 76


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def format_recommendation_set(rec_set: RecommendationSet, show_descriptions: bool = True) -> str:
    """Format a recommendation set as a ranked ASCII table plus its summary.

    Args:
        rec_set:           The set to display.
        show_descriptions: Print each item's description under its row.

    Returns:
        Multi-line string.
    """
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Recommendations for user {rec_set.user_id} ===")
    lines.append(f"  Set:          {rec_set.id}")
    lines.append(f"  Generated at: {rec_set.created_at.isoformat()}")

    if not rec_set.recommendations:
        lines.append("")
        lines.append("  (no recommendations — import analyses or chat history first)")
    else:
        header = (
            f"  {'Rank':>4}  {'Type':<8}  {'Source':<8}  {'Conf.':>5}  "
            f"{'Title':<{_TITLE_WIDTH}}"
        )
        lines.append("")
        lines.append(header)
        lines.append("  " + "-" * (len(header) - 2))
        for rank, item in enumerate(rec_set.recommendations, start=1):
            lines.append(
                f"  {rank:>4}  {item.type.value:<8}  {item.source.value:<8}  "
                f"{item.confidence:>5.2f}  {_truncate(item.title, _TITLE_WIDTH)}"
            )
            if show_descriptions:
                for part in textwrap.wrap(item.description, width=_WRAP_WIDTH - 9):
                    lines.append(f"         {part}")

    lines.append("")
    lines.append("  Summary:")
    for part in textwrap.wrap(rec_set.summary, width=_WRAP_WIDTH - 4):
        lines.append(f"    {part}")
    return "\n".join(lines)


def format_rejections(rejected: list, limit: int = 5) -> str:
    """Format import rejections (``section[index]: reason``), capped at ``limit`` lines."""
    lines = [f"  {r.section}[{r.index}]: {r.reason}" for r in rejected[:limit]]
    if len(rejected) > limit:
        lines.append(f"  ... and {len(rejected) - limit} more.")
    return "\n".join(lines)
