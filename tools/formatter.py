"""
Message formatting for postings — plain text and Discord embeds.
"""

from models.posting import UNSPECIFIED, Posting, Source


SOURCE_COLORS = {
    Source.LINKEDIN: 0x0A66C2,
    Source.LEVER: 0x1DB954,
    Source.GREENHOUSE: 0x3AB549,
    Source.WELLFOUND: 0x000000,
    Source.YCOMBINATOR: 0xFF6600,
}
DEFAULT_COLOR = 0x5865F2


def source_color(source: Source) -> int:
    return SOURCE_COLORS.get(source, DEFAULT_COLOR)


def _shown(value: str) -> str:
    return "?" if not value or value == UNSPECIFIED else value


def format_posting_text(posting: Posting) -> str:
    """Format a posting as a short plain-text alert."""
    lines = [
        "**New Job Alert**",
        "",
        f"**Role:** {posting.title}",
        f"**Company:** {_shown(posting.company)}",
        f"**Location:** {_shown(posting.location)}",
        f"**Comp:** {_shown(posting.attributes.get('salary', ''))}",
        f"**Source:** {posting.source.value}",
        "",
        f"Apply: {posting.url}",
    ]
    return "\n".join(lines)


def format_posting_embed(posting: Posting) -> dict:
    """Format a posting as a Discord embed payload."""
    fields = []

    if posting.company != UNSPECIFIED:
        fields.append({"name": "Company", "value": posting.company, "inline": True})
    if posting.location != UNSPECIFIED:
        fields.append({"name": "Location", "value": posting.location, "inline": True})

    team = posting.attributes.get("team") or posting.attributes.get("department")
    if team:
        fields.append({"name": "Team", "value": team, "inline": True})
    if "salary" in posting.attributes:
        fields.append({"name": "Compensation", "value": posting.attributes["salary"], "inline": True})
    if "equity" in posting.attributes:
        fields.append({"name": "Equity", "value": posting.attributes["equity"], "inline": True})

    fields.append({"name": "Source", "value": posting.source.value, "inline": True})

    return {
        "title": posting.title[:256],
        "url": posting.url,
        "color": source_color(posting.source),
        "fields": fields,
        "footer": {"text": f"via {posting.source.value}"},
        "timestamp": posting.observed_at.isoformat(),
    }
